# reconforge/utils/async_helpers.py
"""
Async utilities for safe task management.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional

logger = logging.getLogger(__name__)


def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: Optional[str] = None,
    log_errors: bool = True
) -> asyncio.Task:
    """
    Create an asyncio task whose unhandled exception is logged instead of
    being silently dropped when nobody awaits it.

    Example:
        # Instead of: asyncio.create_task(some_coro())
        # Use: create_safe_task(some_coro(), name="relay-abc123")
    """
    task = asyncio.create_task(coro, name=name)

    def _handle_exception(t: asyncio.Task):
        if t.cancelled():
            return
        exc = t.exception()
        if exc and log_errors:
            task_name = name or t.get_name()
            logger.error(f"[AsyncTask:{task_name}] Unhandled exception: {exc}", exc_info=exc)

    task.add_done_callback(_handle_exception)
    return task


async def cancel_and_wait(task: Optional[asyncio.Task], timeout: float = 1.0) -> None:
    """Cancel a task and give it a moment to unwind; never raises."""
    if task is None or task.done():
        return
    task.cancel()
    try:
        await asyncio.wait_for(asyncio.shield(_settle(task)), timeout=timeout)
    except asyncio.TimeoutError:
        logger.debug(f"[AsyncTask:{task.get_name()}] still running {timeout}s after cancel")


async def _settle(task: asyncio.Task) -> None:
    await asyncio.gather(task, return_exceptions=True)
