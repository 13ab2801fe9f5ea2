"""Bridge for driving async persistence from synchronous callers."""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING, Any, TypeVar

from formmapper.exceptions import AsyncExecutionError

if TYPE_CHECKING:
    from collections.abc import Coroutine

T = TypeVar("T")


def has_running_loop() -> bool:
    """Return whether the current thread is inside a running event loop."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


def _run_on_worker_thread(coro: Coroutine[Any, Any, T]) -> T:
    """Run `coro` to completion on a private loop in a worker thread.

    Args:
        coro: The coroutine to run.

    Raises:
        AsyncExecutionError: If the coroutine raises.

    Returns:
        The coroutine result.
    """
    outcome: dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["value"] = asyncio.run(coro)
        except BaseException as exc:  # noqa: BLE001
            outcome["error"] = exc

    worker = threading.Thread(target=_target, name="formmapper-async", daemon=True)
    worker.start()
    worker.join()

    if "error" in outcome:
        error = outcome["error"]
        raise AsyncExecutionError(result=error) from error
    return outcome["value"]


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion from either a sync or an async context.

    Outside an event loop the coroutine runs on a fresh loop in the calling thread.
    Inside a running loop it is handed to a worker thread so the caller's loop is
    never re-entered; failures then surface as `AsyncExecutionError`.

    Args:
        coro: The coroutine to run.

    Returns:
        The result of the coroutine.
    """
    if not has_running_loop():
        return asyncio.run(coro)
    return _run_on_worker_thread(coro)
