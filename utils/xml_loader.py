# utils/xml_loader.py
import xml.etree.ElementTree as ET
from typing import Any, Dict, Tuple
from pathlib import Path

from models import Heir

# Sections holding <item year="YYYY">amount</item> children
YEAR_MAP_SECTIONS = ("roth_conversions", "prior_magi", "expense_overrides")


def parse_setup_xml(file_path: Any) -> Dict[str, Any]:
    """
    Load a household setup file into a flat dict keyed by PlannerInputs
    field names. ``file_path`` may be a path or a file-like object.
    """
    tree = ET.parse(file_path)
    root = tree.getroot()

    setup_dict: Dict[str, Any] = {}

    for child in root:
        if child.tag in YEAR_MAP_SECTIONS:
            setup_dict[child.tag] = _parse_year_map(child)
        elif child.tag == "heirs":
            setup_dict["heirs"] = _parse_heirs(child)
        elif child.tag == "withdrawal_order":
            setup_dict["withdrawal_order"] = parse_order(child.text)
        else:
            val = try_cast(child.text)
            if child.tag in ["start_year", "end_year", "birth_year", "survivor_death_year", "max_iterations"]:
                val = int(val) if val is not None else val
            setup_dict[child.tag] = val

    return setup_dict


def _parse_year_map(section: ET.Element) -> Dict[int, float]:
    values: Dict[int, float] = {}
    for item in section:
        year = item.get("year")
        if year is None or item.text is None:
            raise ValueError(f"<{section.tag}> entries need a year attribute and an amount")
        values[int(year)] = float(item.text.strip())
    return values


def _parse_heirs(section: ET.Element) -> Tuple[Heir, ...]:
    heirs = []
    for node in section.findall("heir"):
        heirs.append(Heir(
            name=node.get("name", f"Heir_{len(heirs) + 1}"),
            split_percent=float(node.get("split_percent", 0)),
            fed_rate=float(node.get("fed_rate", 0)),
            state_rate=float(node.get("state_rate", 0)),
        ))
    return tuple(heirs)


def parse_order(value: Any) -> Tuple[str, ...]:
    """'after_tax, ira, roth' -> ('after_tax', 'ira', 'roth')."""
    if isinstance(value, (list, tuple)):
        return tuple(str(v).strip().lower() for v in value)
    if value is None:
        return ()
    return tuple(part.strip().lower() for part in str(value).split(",") if part.strip())


def try_cast(value: str) -> Any:
    """Try to convert string to int or float if possible, else leave as str."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    # Booleans
    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    # Integers (try first)
    try:
        if '.' not in value:
            return int(value)
    except ValueError:
        pass

    # Floats (try second)
    try:
        return float(value)
    except ValueError:
        pass

    return value # Return as string if all else fails


CONFIG_DIR = Path(__file__).parent.parent / "config"

DEFAULT_SETUP = parse_setup_xml(CONFIG_DIR / "default_setup.xml")
