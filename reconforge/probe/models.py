from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional


class Classification(str, Enum):
    OK = "OK"
    REDIRECT = "REDIRECT"
    CLIENT_ERROR = "CLIENT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"


def classify_status(status_code: int) -> Classification:
    """2xx OK, 3xx REDIRECT, 4xx CLIENT_ERROR, 5xx SERVER_ERROR, anything else UNKNOWN."""
    if 200 <= status_code < 300:
        return Classification.OK
    if 300 <= status_code < 400:
        return Classification.REDIRECT
    if 400 <= status_code < 500:
        return Classification.CLIENT_ERROR
    if 500 <= status_code < 600:
        return Classification.SERVER_ERROR
    return Classification.UNKNOWN


@dataclass(frozen=True)
class FetchTask:
    index: int
    suffix: str
    url: str


@dataclass(frozen=True)
class FetchResult:
    index: int
    suffix: str
    url: str
    classification: Classification
    elapsed_ms: int
    status_code: Optional[int] = None
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["classification"] = self.classification.value
        return data

    def describe(self) -> str:
        if self.classification == Classification.ERROR:
            return f"ERROR: {self.detail}"
        return f"{self.status_code} {self.classification.value}"


def summarize(results: Iterable[FetchResult]) -> Dict[str, int]:
    """Counts per classification (every category present, zero if unseen) plus total."""
    counts = {c.value: 0 for c in Classification}
    total = 0
    for result in results:
        counts[result.classification.value] += 1
        total += 1
    counts["total"] = total
    return counts
