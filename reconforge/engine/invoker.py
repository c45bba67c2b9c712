"""
reconforge/engine/invoker.py
Runs one external-tool invocation with a timeout.

The command is executed from an argument list (no shell). On timeout the
process is killed and reaped before ToolTimeoutError is raised. There are no
retries: one call, one attempt.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from reconforge.base.exceptions import ToolExitError, ToolNotInstalledError, ToolTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvocationResult:
    stdout: str
    stderr: str
    elapsed: float


class StageInvoker:
    """Thin async wrapper around asyncio subprocesses."""

    async def invoke(self, command: str, args: Sequence[str], timeout: Optional[float]) -> InvocationResult:
        started = time.monotonic()
        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            raise ToolNotInstalledError(command, time.monotonic() - started) from None
        except PermissionError as exc:
            raise ToolExitError(command, None, str(exc), time.monotonic() - started) from exc

        try:
            if timeout and timeout > 0:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
            else:
                stdout, stderr = await proc.communicate()
        except asyncio.TimeoutError:
            await self._kill(proc)
            elapsed = time.monotonic() - started
            logger.warning(f"[{command}] time limit {timeout}s exceeded; killed after {elapsed:.1f}s")
            raise ToolTimeoutError(command, timeout, elapsed) from None
        except asyncio.CancelledError:
            # Job cancelled: don't leave the tool running behind us
            await self._kill(proc)
            raise

        elapsed = time.monotonic() - started
        out = stdout.decode("utf-8", errors="replace") if stdout else ""
        err = stderr.decode("utf-8", errors="replace") if stderr else ""

        if proc.returncode != 0:
            raise ToolExitError(command, proc.returncode, err, elapsed)

        return InvocationResult(stdout=out, stderr=err, elapsed=elapsed)

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=2)
        except asyncio.TimeoutError:
            logger.debug(f"[invoker] pid {proc.pid} did not exit after SIGKILL")
