# utils/validation.py
from typing import List

from config.projection_assumptions import account_kinds
from engine.errors import ConfigurationError
from models import PlannerInputs

RETURN_MODES = ("account", "blended")


def collect_input_errors(inputs: PlannerInputs) -> List[str]:
    """Every problem with the inputs, in field order. Empty when valid."""
    errors: List[str] = []

    # --- Timeline ---
    if inputs.end_year < inputs.start_year:
        errors.append(f"end_year ({inputs.end_year}) is before start_year ({inputs.start_year})")
    if inputs.birth_year > inputs.start_year:
        errors.append(f"birth_year ({inputs.birth_year}) is after start_year ({inputs.start_year})")

    # --- Non-negative amounts ---
    for name in ("after_tax_start", "ira_start", "roth_start", "after_tax_cost_basis",
                 "annual_expenses", "social_security_monthly",
                 "low_risk_target", "mod_risk_target"):
        value = getattr(inputs, name)
        if value < 0:
            errors.append(f"{name} must not be negative (got {value})")

    for year, amount in sorted(inputs.expense_overrides.items()):
        if amount < 0:
            errors.append(f"expense override for {year} must not be negative (got {amount})")
    for year, amount in sorted(inputs.roth_conversions.items()):
        if amount < 0:
            errors.append(f"Roth conversion for {year} must not be negative (got {amount})")

    # --- Rates ---
    if inputs.return_mode not in RETURN_MODES:
        errors.append(f"return_mode must be one of {RETURN_MODES} (got '{inputs.return_mode}')")
    for name in ("at_return", "ira_return", "roth_return", "low_risk_return",
                 "mod_risk_return", "high_risk_return", "expense_inflation",
                 "ss_cola", "discount_rate"):
        value = getattr(inputs, name)
        if value <= -1:
            errors.append(f"{name} must be greater than -100% (got {value})")

    for name in ("heir_fed_rate", "heir_state_rate"):
        value = getattr(inputs, name)
        if not 0 <= value <= 1:
            errors.append(f"{name} must be between 0 and 1 (got {value})")
    if inputs.heir_fed_rate + inputs.heir_state_rate > 1:
        errors.append("heir_fed_rate + heir_state_rate must not exceed 1")

    # --- Heirs ---
    if inputs.heirs:
        for heir in inputs.heirs:
            if not 0 <= heir.split_percent <= 100:
                errors.append(f"heir '{heir.name}' split_percent must be between 0 and 100")
            if not 0 <= heir.fed_rate + heir.state_rate <= 1:
                errors.append(f"heir '{heir.name}' combined tax rate must be between 0 and 1")
        total_split = sum(h.split_percent for h in inputs.heirs)
        if abs(total_split - 100) > 0.01:
            errors.append(f"heir splits must total 100% (got {total_split})")

    # --- Survivor ---
    for name in ("survivor_ss_percent", "survivor_expense_percent"):
        value = getattr(inputs, name)
        if value < 0:
            errors.append(f"{name} must not be negative (got {value})")

    # --- Solver ---
    if inputs.max_iterations < 1:
        errors.append(f"max_iterations must be at least 1 (got {inputs.max_iterations})")
    if inputs.convergence_threshold <= 0:
        errors.append(f"convergence_threshold must be positive (got {inputs.convergence_threshold})")

    order = tuple(inputs.withdrawal_order)
    if sorted(order) != sorted(account_kinds):
        errors.append(f"withdrawal_order must list each of {account_kinds} exactly once (got {order})")

    return errors


def validate_inputs(inputs: PlannerInputs) -> None:
    """Raises ConfigurationError carrying every problem found."""
    errors = collect_input_errors(inputs)
    if errors:
        raise ConfigurationError(errors)
