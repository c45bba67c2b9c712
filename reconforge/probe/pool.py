"""
reconforge/probe/pool.py
Bounded-concurrency route checker.

A fixed number of workers share one ClaimCursor. Each worker claims the next
index, performs one GET with a timeout, classifies the outcome, records it in
memory and in the sink, sleeps briefly, and claims again until the cursor is
exhausted.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Iterable, List, Optional

import httpx

from reconforge.probe.models import Classification, FetchResult, FetchTask, classify_status, summarize
from reconforge.probe.sink import ResultSink
from reconforge.toolkit.normalizer import resolve_url

logger = logging.getLogger(__name__)


class ClaimCursor:
    """
    Shared index dispenser. claim() increments and reads under one lock, so
    every index in [0, limit) is handed out exactly once.
    """

    def __init__(self, limit: int):
        self.limit = limit
        self._next = 0
        self._lock = threading.Lock()

    def claim(self) -> Optional[int]:
        with self._lock:
            index = self._next
            self._next += 1
        return index if index < self.limit else None


class FetchPool:
    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        sink: Optional[ResultSink] = None,
        delay: float = 0.05,
    ):
        self._client = client
        self.sink = sink
        self.delay = delay
        self.results: List[FetchResult] = []
        self.total = 0
        self.running = False

    async def run(
        self,
        base_url: str,
        suffixes: Iterable[str],
        concurrency: int = 10,
        timeout: float = 8.0,
    ) -> List[FetchResult]:
        """
        Probe every suffix beneath ``base_url``.

        Returns results in completion order; each carries its input index.
        Calling run() again starts a fresh run.
        """
        tasks = [FetchTask(i, s, resolve_url(base_url, s)) for i, s in enumerate(suffixes)]
        results: List[FetchResult] = []
        self.results = results
        self.total = len(tasks)
        if self.sink is not None:
            self.sink.truncate()
        if not tasks:
            return results

        cursor = ClaimCursor(len(tasks))
        workers = max(1, min(concurrency, len(tasks)))
        client = self._client or httpx.AsyncClient(follow_redirects=True)
        self.running = True
        try:
            await asyncio.gather(*(
                self._worker(client, tasks, cursor, results, timeout) for _ in range(workers)
            ))
        finally:
            self.running = False
            if self._client is None:
                await client.aclose()

        counts = summarize(results)
        logger.info(
            f"Done. Total: {counts['total']}, OK(2xx): {counts['OK']}, Redirects: {counts['REDIRECT']}"
        )
        return results

    async def _worker(
        self,
        client: httpx.AsyncClient,
        tasks: List[FetchTask],
        cursor: ClaimCursor,
        results: List[FetchResult],
        timeout: float,
    ) -> None:
        while True:
            index = cursor.claim()
            if index is None:
                return
            task = tasks[index]
            result = await self._fetch(client, task, timeout)

            results.append(result)
            if self.sink is not None:
                # fsync runs off the event loop
                await asyncio.to_thread(self.sink.append, result)
            logger.info(f"[{index + 1}/{len(tasks)}] {task.url} -> {result.describe()} ({result.elapsed_ms}ms)")

            # Politeness delay so the target isn't hammered
            if self.delay > 0:
                await asyncio.sleep(self.delay)

    async def _fetch(self, client: httpx.AsyncClient, task: FetchTask, timeout: float) -> FetchResult:
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(client.get(task.url, timeout=timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return self._error(task, started, f"TIMEOUT ({int(timeout * 1000)}ms)")
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            return self._error(task, started, str(exc) or type(exc).__name__)

        return FetchResult(
            index=task.index,
            suffix=task.suffix,
            url=task.url,
            classification=classify_status(response.status_code),
            elapsed_ms=self._elapsed_ms(started),
            status_code=response.status_code,
        )

    def _error(self, task: FetchTask, started: float, detail: str) -> FetchResult:
        return FetchResult(
            index=task.index,
            suffix=task.suffix,
            url=task.url,
            classification=Classification.ERROR,
            elapsed_ms=self._elapsed_ms(started),
            detail=detail,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
