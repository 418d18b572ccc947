from __future__ import annotations

from dataclasses import dataclass

from allme.domain.services.username_policy import normalize_username, username_problem
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository


@dataclass
class CheckUsernameUseCase:
    profile_repo: ProfileRepository

    def execute(self, username: str | None, user_id: str | None = None) -> tuple[bool, str | None]:
        """Return ``(available, reason)``; reason is invalid, reserved or taken.

        A name already held by ``user_id`` counts as available to that user.
        """
        username = normalize_username(username or "")
        problem = username_problem(username)
        if problem:
            return False, problem
        holder = self.profile_repo.get_by_username(username)
        if holder is not None and holder.id != user_id:
            return False, "taken"
        return True, None
