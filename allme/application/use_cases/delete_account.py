from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from allme.infrastructure.database.repositories.link_repository import LinkRepository
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository
from allme.infrastructure.storage.avatar_storage import AvatarStorage

logger = logging.getLogger(__name__)


class DeletionStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class DeletionOutcome:
    status: DeletionStatus
    failed: list[str] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)


@dataclass
class DeleteAccountUseCase:
    """
    Remove everything a user owns: avatar, links, profile, then the session.

    Each step runs even when an earlier one failed, and the outcome names the
    steps that did not go through so the caller never reports a partial
    deletion as a success.
    """

    storage: AvatarStorage
    link_repo: LinkRepository
    profile_repo: ProfileRepository
    sign_out: Callable[[], None]

    def execute(self, user_id: str) -> DeletionOutcome:
        steps: list[tuple[str, Callable[[], object]]] = [
            ("avatar", lambda: self.storage.delete_avatar(user_id)),
            ("links", lambda: self.link_repo.delete_by_profile(user_id)),
            ("profile", lambda: self.profile_repo.delete(user_id)),
            ("session", self.sign_out),
        ]
        outcome = DeletionOutcome(status=DeletionStatus.COMPLETE)
        for name, step in steps:
            try:
                step()
                outcome.completed.append(name)
            except Exception as exc:
                logger.warning("Account deletion step %s failed for %s: %s", name, user_id, exc)
                outcome.failed.append(name)

        if outcome.failed:
            outcome.status = DeletionStatus.PARTIAL if outcome.completed else DeletionStatus.FAILED
        return outcome
