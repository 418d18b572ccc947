from __future__ import annotations

from pydantic import BaseModel, Field


class DeleteAccountResponse(BaseModel):
    status: str = Field(..., description="complete, partial or failed", examples=["complete"])
    failed: list[str] = Field(default_factory=list, description="Sub-steps that did not go through")
    message: str | None = None


class PromoBody(BaseModel):
    code: str = Field(..., max_length=64, examples=["LAUNCH2026"])


class PromoResponse(BaseModel):
    success: bool
    plan: str | None = None
    error: str | None = None


class AvatarResponse(BaseModel):
    avatar_url: str | None = Field(None, description="Public URL of the stored avatar")
