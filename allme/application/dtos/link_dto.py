from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from allme.domain.entities.link import LinkEntity, as_utc


class LinkItem(BaseModel):
    """A link as shown in the dashboard."""
    id: str = Field(..., description="Link id; drafts carry a temporary id", examples=["5f0c..."])
    profile_id: str = Field(..., description="Owning profile id")
    title: str = Field(..., description="Button label", examples=["My Website"])
    url: str = Field(..., description="Target URL", examples=["https://example.com"])
    position: int = Field(..., description="0-based order within the profile")
    is_active: bool = Field(..., description="Whether the link is shown on the public page")
    click_count: int = Field(0, description="Number of recorded clicks")
    scheduled_at: datetime | None = Field(None, description="Link stays hidden until this time")
    created_at: datetime | None = Field(None, description="Creation timestamp")
    status: str = Field(..., description="draft, active or inactive")

    @classmethod
    def from_entity(cls, link: LinkEntity) -> LinkItem:
        return cls(
            id=link.id,
            profile_id=link.profile_id,
            title=link.title,
            url=link.url,
            position=link.position,
            is_active=link.is_active,
            click_count=link.click_count,
            scheduled_at=link.scheduled_at,
            created_at=link.created_at,
            status=link.status.value,
        )


class PublicLinkItem(BaseModel):
    """A link as shown to visitors."""
    id: str
    title: str
    url: str
    position: int


class ListLinksResponse(BaseModel):
    links: list[LinkItem] = Field(..., description="Links ordered by position")


class CreateLinkBody(BaseModel):
    title: str = Field(..., max_length=200, description="Button label", examples=["My Website"])
    url: str = Field(..., max_length=2048, description="Target URL", examples=["https://example.com"])
    scheduled_at: datetime | None = Field(None, description="Publish time (paid plans)")

    @field_validator("scheduled_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class UpdateLinkBody(BaseModel):
    title: str | None = Field(None, max_length=200)
    url: str | None = Field(None, max_length=2048)
    is_active: bool | None = None
    scheduled_at: datetime | None = None

    @field_validator("scheduled_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    def to_changes(self) -> dict:
        """Fields sent by the client. An explicit null only clears ``scheduled_at``."""
        data = self.model_dump(exclude_unset=True)
        return {name: value for name, value in data.items() if value is not None or name == "scheduled_at"}


class ReorderLinksBody(BaseModel):
    order: list[str] = Field(..., description="Every link id, in the new display order")
