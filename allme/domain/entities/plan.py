from __future__ import annotations

from enum import Enum


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    BUSINESS = "business"

    @classmethod
    def parse(cls, value: str | Plan | None) -> Plan:
        """Resolve a stored plan value; anything unrecognised is the free tier."""
        if isinstance(value, Plan):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.FREE


# lowest to highest
PLAN_ORDER: tuple[Plan, ...] = (Plan.FREE, Plan.PRO, Plan.BUSINESS)
