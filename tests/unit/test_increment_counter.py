from unittest.mock import MagicMock

import pytest

from allme.application.use_cases.increment_counter import (
    CounterKind,
    IncrementCounterUseCase,
    decode_tracking_payload,
)
from allme.infrastructure.database.repositories.link_repository import LinkRepository
from allme.infrastructure.database.repositories.profile_repository import ProfileRepository


def store(current=3, read_error=None, write_error=None):
    mock = MagicMock()
    if read_error:
        mock.read_counter.side_effect = read_error
    else:
        mock.read_counter.return_value = current
    if write_error:
        mock.write_counter.side_effect = write_error
    return mock


def test_direct_path_increments_by_one():
    direct = store(current=41)
    outcome = IncrementCounterUseCase(CounterKind.CLICK, direct).execute("link-1")
    assert outcome.success and outcome.path == "direct"
    direct.write_counter.assert_called_once_with("link-1", 42)


def test_falls_back_to_privileged_store():
    direct = store(write_error=RuntimeError("rls"))
    privileged = store(current=7)
    rpc = MagicMock()

    outcome = IncrementCounterUseCase(
        CounterKind.VIEW, direct, privileged_store=privileged, rpc=rpc
    ).execute("alex")

    assert outcome.path == "privileged"
    privileged.write_counter.assert_called_once_with("alex", 8)
    rpc.increment_page_views.assert_not_called()


def test_falls_back_to_rpc_when_target_not_visible():
    direct = store(current=None)
    rpc = MagicMock()

    outcome = IncrementCounterUseCase(CounterKind.CLICK, direct, rpc=rpc).execute("link-1")

    assert outcome.path == "rpc"
    direct.write_counter.assert_not_called()
    rpc.increment_click_count.assert_called_once_with("link-1")


def test_never_raises_when_every_path_fails():
    direct = store(read_error=RuntimeError("down"))
    privileged = store(read_error=TimeoutError())
    rpc = MagicMock()
    rpc.increment_click_count.side_effect = RuntimeError("no such function")

    outcome = IncrementCounterUseCase(
        CounterKind.CLICK, direct, privileged_store=privileged, rpc=rpc
    ).execute("link-1")

    assert outcome.success is False
    assert outcome.path is None


def test_unknown_link_in_memory_mode_is_soft_failure():
    outcome = IncrementCounterUseCase(CounterKind.CLICK, LinkRepository(None)).execute("missing")
    assert outcome.success is False


def test_page_views_counted_in_memory_mode():
    profiles = ProfileRepository(None)
    profiles.upsert("user-1", {"username": "alex"})
    use_case = IncrementCounterUseCase(CounterKind.VIEW, profiles)

    use_case.execute("alex")
    use_case.execute("alex")

    assert profiles.get("user-1").page_views == 2


@pytest.mark.parametrize(
    "body, expected",
    [
        (b'{"linkId": "abc"}', {"linkId": "abc"}),
        ('{"username": "alex"}', {"username": "alex"}),
        (b'\xef\xbb\xbf{"linkId": "bom"}', {"linkId": "bom"}),
        (b'data={"linkId": "abc"}&x', {"linkId": "abc"}),
        (b'"{\\"linkId\\": \\"nested\\"}"', {"linkId": "nested"}),
        (b"", None),
        (None, None),
        (b"[1, 2]", None),
        (b"not json at all", None),
        (b'"just a string"', None),
        (b"[" * 100000, None),
        (b"{" * 100000 + b"}", None),
    ],
)
def test_decode_tracking_payload(body, expected):
    assert decode_tracking_payload(body) == expected
