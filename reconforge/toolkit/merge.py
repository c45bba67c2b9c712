"""
reconforge/toolkit/merge.py
Merges subdomain lists produced by the discovery tools.

Done in-process (read, dedupe, sort, write) so no file path ever reaches a shell.
"""

import logging
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


def read_entries(sources: Iterable[Path]) -> List[str]:
    """
    Read line-oriented host lists and return their merged entries.

    Blank lines are dropped, entries are stripped, deduplicated and sorted
    lexicographically. Missing or unreadable sources are skipped.
    """
    entries = set()
    for source in sources:
        try:
            text = Path(source).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            logger.debug(f"[merge] {source} missing; skipping")
            continue
        except OSError as exc:
            logger.warning(f"[merge] cannot read {source}: {exc}; skipping")
            continue
        for line in text.splitlines():
            line = line.strip()
            if line:
                entries.add(line)
    return sorted(entries)


def write_entries(entries: List[str], destination: Path) -> None:
    """One entry per line; an empty list writes an empty file. Raises OSError."""
    body = "\n".join(entries)
    if entries:
        body += "\n"
    Path(destination).write_text(body, encoding="utf-8")


def merge_lists(sources: Iterable[Path], destination: Path) -> List[str]:
    """
    Merge host lists into ``destination``; with no readable source the
    destination is still written, empty.

    Returns:
        The merged entries, in the order written.
    """
    merged = read_entries(sources)
    write_entries(merged, destination)
    return merged
