"""Helpers for running blocking store calls from the async session layer."""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_TIMEOUT = float(os.getenv("ALLME_REMOTE_TIMEOUT", "10"))


async def call_remote(fn: Callable[..., T], *args: Any, timeout: float | None = None, **kwargs: Any) -> T:
    """Run ``fn`` in a worker thread, giving up after ``timeout`` seconds."""
    return await asyncio.wait_for(
        asyncio.to_thread(fn, *args, **kwargs),
        timeout=DEFAULT_REMOTE_TIMEOUT if timeout is None else timeout,
    )


async def best_effort(
    what: str, fn: Callable[..., T], *args: Any, timeout: float | None = None, **kwargs: Any
) -> tuple[bool, T | None]:
    """Like :func:`call_remote`, but failures are logged and reported as ``(False, None)``."""
    try:
        return True, await call_remote(fn, *args, timeout=timeout, **kwargs)
    except asyncio.TimeoutError:
        logger.warning("Failed to %s: timed out", what)
    except Exception as exc:
        logger.warning("Failed to %s: %s", what, exc)
    return False, None
