from models import Heir, PlannerInputs
from utils.xml_loader import DEFAULT_SETUP, parse_order
from dataclasses import fields
from typing import Dict, Any, Mapping, Optional


def _year_keyed(values: Optional[Mapping]) -> Dict[int, float]:
    return {int(year): float(amount) for year, amount in (values or {}).items()}


def get_planner_inputs(setup: Optional[Mapping[str, Any]] = None,
                       **kwargs: Any              # Catch all other inputs dynamically
                       ) -> PlannerInputs:
    """
    Dynamically generates PlannerInputs by merging setup defaults and overrides,
    using reflection (dataclasses.fields) to ensure only valid fields are passed.
    """

    # 1. Start with defaults loaded from the XML setup file
    inputs_dict = dict(DEFAULT_SETUP if setup is None else setup)

    # 2. Merge ALL overrides (passed via **kwargs) into the defaults.
    inputs_dict.update(kwargs)

    # 3. Normalize the structured fields
    for key in ("roth_conversions", "prior_magi", "expense_overrides"):
        if key in inputs_dict:
            inputs_dict[key] = _year_keyed(inputs_dict[key])

    if "withdrawal_order" in inputs_dict:
        inputs_dict["withdrawal_order"] = parse_order(inputs_dict["withdrawal_order"])

    if "heirs" in inputs_dict:
        inputs_dict["heirs"] = tuple(
            h if isinstance(h, Heir) else Heir(**h) for h in (inputs_dict["heirs"] or ())
        )

    # 4. DYNAMIC FIELD MAPPING AND FILTERING (Reflection)
    planner_field_names = {f.name for f in fields(PlannerInputs)}

    final_inputs = {
        key: value
        for key, value in inputs_dict.items()
        if key in planner_field_names
    }

    # 5. Create the PlannerInputs object
    return PlannerInputs(**final_inputs)
