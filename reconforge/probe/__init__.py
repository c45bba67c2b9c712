"""
Route checker: probes URL suffixes beneath a base URL with bounded concurrency.

- models.py: FetchTask / FetchResult / Classification, summary counts
- pool.py: FetchPool and its shared ClaimCursor
- sink.py: append-only JSON-lines result capture
- server.py: embedded results server + run_probe() entry point
"""

from reconforge.probe.models import Classification, FetchResult, FetchTask, summarize
from reconforge.probe.pool import ClaimCursor, FetchPool
from reconforge.probe.sink import ResultSink

__all__ = [
    "ClaimCursor",
    "Classification",
    "FetchPool",
    "FetchResult",
    "FetchTask",
    "ResultSink",
    "summarize",
]
