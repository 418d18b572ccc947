from __future__ import annotations


class ValidationError(ValueError):
    """Input rejected before any state was touched."""


class PlanLimitError(ValidationError):
    """The current plan does not allow the requested change."""

    def __init__(self, message: str, required_plan: str | None = None) -> None:
        super().__init__(message)
        self.required_plan = required_plan
