"""Best-effort click and page-view counting.

Counting must never make the action being counted look failed, so
:meth:`IncrementCounterUseCase.execute` never raises. Paths are tried once
each, in order:

1. read-modify-write with the caller's client,
2. the same with the privileged (service-role) client, when configured,
3. the atomic increment RPC, when available.

Concurrent visitors may race on step 1 and 2; an approximate count is fine.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from allme.infrastructure.database.rpc_client import SupabaseRpc

logger = logging.getLogger(__name__)


class CounterKind(str, Enum):
    CLICK = "click"  # links.click_count, keyed by link id
    VIEW = "view"  # profiles.page_views, keyed by username


class CounterStore(Protocol):
    def read_counter(self, key: str) -> int | None: ...

    def write_counter(self, key: str, value: int) -> None: ...


@dataclass(frozen=True)
class CounterOutcome:
    success: bool
    path: str | None = None  # "direct", "privileged" or "rpc"


def decode_tracking_payload(body: bytes | str | None) -> dict[str, Any] | None:
    """Decode a tracking request body.

    Bodies normally arrive as JSON, but beacons fired on page unload are sent
    as ``text/plain``, sometimes with extra text around the JSON object.
    Structured decoding is tried first, then the text is searched for an
    embedded object. Returns ``None`` when nothing decodes to a dict.
    """
    if body is None:
        return None
    if isinstance(body, bytes):
        try:
            text = body.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = body.decode("latin-1")
    else:
        text = body
    text = text.strip()
    if not text:
        return None

    # deeply nested input overflows the decoder with RecursionError
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            return None
        try:
            data = json.loads(text[start : end + 1])
        except (ValueError, RecursionError):
            return None
    if isinstance(data, str):
        # JSON sent as a JSON string
        return decode_tracking_payload(data) if data.strip().startswith("{") else None
    return data if isinstance(data, dict) else None


class IncrementCounterUseCase:
    def __init__(
        self,
        kind: CounterKind,
        store: CounterStore,
        *,
        privileged_store: CounterStore | None = None,
        rpc: SupabaseRpc | None = None,
    ) -> None:
        self.kind = kind
        self.store = store
        self.privileged_store = privileged_store
        self.rpc = rpc

    def execute(self, key: str) -> CounterOutcome:
        """Add one to the counter behind ``key``; see module docstring."""
        if self._read_modify_write(self.store, key, "direct"):
            return CounterOutcome(success=True, path="direct")
        if self.privileged_store is not None and self._read_modify_write(
            self.privileged_store, key, "privileged"
        ):
            return CounterOutcome(success=True, path="privileged")
        if self.rpc is not None and self._increment_rpc(key):
            return CounterOutcome(success=True, path="rpc")
        logger.info("Could not count %s for %s", self.kind.value, key)
        return CounterOutcome(success=False)

    def _read_modify_write(self, store: CounterStore, key: str, path: str) -> bool:
        try:
            current = store.read_counter(key)
            if current is None:
                logger.debug("%s counter target %s not visible via %s path", self.kind.value, key, path)
                return False
            store.write_counter(key, current + 1)
            return True
        except Exception as exc:
            logger.warning("Counting %s via %s path failed: %s", self.kind.value, path, exc)
            return False

    def _increment_rpc(self, key: str) -> bool:
        try:
            if self.kind is CounterKind.CLICK:
                self.rpc.increment_click_count(key)
            else:
                self.rpc.increment_page_views(key)
            return True
        except Exception as exc:
            logger.warning("Counting %s via rpc failed: %s", self.kind.value, exc)
            return False
