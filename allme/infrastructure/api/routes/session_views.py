from __future__ import annotations

from allme.application.dtos.link_dto import LinkItem
from allme.application.dtos.profile_dto import ProfileResponse, SessionResponse
from allme.application.profile_session import ProfileSession


def session_response(session: ProfileSession) -> SessionResponse:
    return SessionResponse(
        state=session.state.value,
        user_id=session.user_id,
        profile=ProfileResponse.from_entity(session.profile),
        links=[LinkItem.from_entity(link) for link in session.links.items],
        avatar_preview=session.avatar_preview,
        plan_limits=session.plan_limits.to_dict(),
    )
