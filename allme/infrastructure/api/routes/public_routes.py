from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from allme.application.dtos.link_dto import PublicLinkItem
from allme.application.dtos.profile_dto import (
    ProfileResponse,
    PublicProfileResponse,
    UsernameCheckResponse,
)
from allme.application.use_cases.check_username import CheckUsernameUseCase
from allme.application.use_cases.public_page import GetPublicPageUseCase
from allme.infrastructure.api.dependencies import get_link_repo, get_profile_repo
from allme.infrastructure.database.repositories.link_repository import LinkRepository
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository

router = APIRouter(tags=["Public"])


@router.get(
    "/p/{username}",
    response_model=PublicProfileResponse,
    summary="Get Public Page",
    description="Profile and visible links of a public page. Inactive and not-yet-scheduled links are left out.",
    responses={404: {"description": "Not Found - No such page"}},
)
def get_public_page(
    username: str,
    profiles: ProfileRepository = Depends(get_profile_repo),
    links: LinkRepository = Depends(get_link_repo),
):
    page = GetPublicPageUseCase(profiles, links).execute(username)
    if page is None:
        raise HTTPException(status_code=404, detail="Page not found")
    profile = ProfileResponse.from_entity(page.profile)
    return PublicProfileResponse(
        username=profile.username,
        display_name=profile.display_name or profile.username,
        bio=profile.bio,
        avatar_url=profile.avatar_url,
        theme=profile.theme,
        custom_colors=profile.custom_colors,
        show_branding=page.show_branding,
        links=[
            PublicLinkItem(id=link.id, title=link.title, url=link.url, position=link.position)
            for link in page.links
        ],
    )


@router.get(
    "/usernames/check",
    response_model=UsernameCheckResponse,
    summary="Check Username Availability",
    description="Works without authentication so it can be used during sign-up.",
)
def check_username(
    username: str | None = Query(None, description="Desired username"),
    profiles: ProfileRepository = Depends(get_profile_repo),
):
    available, reason = CheckUsernameUseCase(profiles).execute(username)
    return {"available": available, "reason": reason}
