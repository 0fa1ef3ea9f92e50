# engine/errors.py
from typing import Iterable


class ConfigurationError(ValueError):
    """Raised before a run starts when PlannerInputs are malformed.

    All problems found are reported together in ``errors``.
    """

    def __init__(self, errors: Iterable[str]):
        self.errors = list(errors)
        message = "Invalid projection inputs:\n" + "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(message)


class UnknownFieldError(KeyError):
    """A dependency graph lookup named a field that is not on YearRecord."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Unknown projection field '{field_name}'")


class UnknownYearError(LookupError):
    """A dependency graph lookup named a year outside the projection."""

    def __init__(self, year: int):
        self.year = year
        super().__init__(f"Year {year} is not part of the projection")
