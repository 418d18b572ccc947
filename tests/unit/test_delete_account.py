from unittest.mock import MagicMock

from allme.application.use_cases.delete_account import DeleteAccountUseCase, DeletionStatus


def make_use_case(**failures):
    storage, links, profiles, sign_out = MagicMock(), MagicMock(), MagicMock(), MagicMock()
    if "avatar" in failures:
        storage.delete_avatar.side_effect = failures["avatar"]
    if "links" in failures:
        links.delete_by_profile.side_effect = failures["links"]
    if "profile" in failures:
        profiles.delete.side_effect = failures["profile"]
    if "session" in failures:
        sign_out.side_effect = failures["session"]
    use_case = DeleteAccountUseCase(
        storage=storage, link_repo=links, profile_repo=profiles, sign_out=sign_out
    )
    return use_case, storage, links, profiles, sign_out


def test_all_steps_succeed():
    use_case, storage, links, profiles, sign_out = make_use_case()
    outcome = use_case.execute("user-1")

    assert outcome.status is DeletionStatus.COMPLETE
    assert outcome.completed == ["avatar", "links", "profile", "session"]
    storage.delete_avatar.assert_called_once_with("user-1")
    links.delete_by_profile.assert_called_once_with("user-1")
    profiles.delete.assert_called_once_with("user-1")
    sign_out.assert_called_once_with()


def test_failed_step_does_not_stop_later_ones():
    use_case, _, _, profiles, sign_out = make_use_case(links=RuntimeError("rls"))
    outcome = use_case.execute("user-1")

    assert outcome.status is DeletionStatus.PARTIAL
    assert outcome.failed == ["links"]
    profiles.delete.assert_called_once()
    sign_out.assert_called_once()


def test_everything_failing_is_reported_as_failed():
    error = RuntimeError("offline")
    use_case, *_ = make_use_case(avatar=error, links=error, profile=error, session=error)
    outcome = use_case.execute("user-1")

    assert outcome.status is DeletionStatus.FAILED
    assert outcome.completed == []
