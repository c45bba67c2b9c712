"""
Helpers for the recon pipeline's built-in stages and for target handling.

- normalizer.py: hostname validation, host extraction, suffix URL resolution
- merge.py: deduplicating merge of discovery tool outputs
- httpx_parser.py: httpx JSON-lines parsing and text rendering
"""

from reconforge.toolkit.httpx_parser import parse_jsonl, render_text
from reconforge.toolkit.merge import merge_lists
from reconforge.toolkit.normalizer import extract_host, resolve_url, validate_hostname

__all__ = [
    "extract_host",
    "merge_lists",
    "parse_jsonl",
    "render_text",
    "resolve_url",
    "validate_hostname",
]
