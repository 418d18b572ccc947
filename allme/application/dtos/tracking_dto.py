from __future__ import annotations

from pydantic import BaseModel, Field


class TrackResponse(BaseModel):
    """Tracking endpoints always answer 200; ``success`` tells if the count landed."""
    success: bool = Field(..., description="Whether the counter was incremented")
