"""
reconforge/probe/sink.py
Durable, append-only capture of route probe results.

Every result is written as one JSON line and flushed before the worker moves
on, so a crash mid-run still leaves every completed result on disk.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Iterable, List, Union

from reconforge.errors import ErrorCode, ReconError
from reconforge.probe.models import FetchResult

logger = logging.getLogger(__name__)


class ResultSink:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.failures = 0

    def truncate(self) -> None:
        """Start a fresh file for a new run."""
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_text("", encoding="utf-8")
            except OSError as exc:
                self.failures += 1
                logger.error(f"[sink] cannot reset {self.path}: {exc}")

    def append(self, result: FetchResult) -> bool:
        line = json.dumps(result.to_dict())
        with self._lock:
            try:
                with self.path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
                    fh.flush()
                    os.fsync(fh.fileno())
                return True
            except OSError as exc:
                self.failures += 1
                logger.error(f"[sink] failed to append result #{result.index} to {self.path}: {exc}")
                return False

    def exists(self) -> bool:
        return self.path.is_file()


def write_snapshot(path: Union[str, Path], results: Iterable[FetchResult]) -> bool:
    """Write the whole result list as a JSON array (route-results.json)."""
    target = Path(path)
    try:
        target.write_text(json.dumps([r.to_dict() for r in results], indent=2), encoding="utf-8")
        return True
    except OSError as exc:
        logger.error(f"[sink] failed to write {target}: {exc}")
        return False


def load_suffixes(path: Union[str, Path]) -> List[str]:
    """Read a suffix list, ignoring blank lines and # comments."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ReconError(
            ErrorCode.PROBE_SUFFIXES_UNREADABLE,
            f"Failed to read {path}: {exc}",
            details={"path": str(path)},
        ) from exc
    lines = (line.strip() for line in raw.splitlines())
    return [line for line in lines if line and not line.startswith("#")]
