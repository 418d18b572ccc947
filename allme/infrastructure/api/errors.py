from __future__ import annotations

from fastapi import HTTPException, status

from allme.domain.errors import PlanLimitError, ValidationError


def to_http_error(exc: ValidationError) -> HTTPException:
    """400 for bad input, 403 with the unlocking plan for plan limits."""
    if isinstance(exc, PlanLimitError):
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": str(exc), "required_plan": exc.required_plan},
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
