"""
reconforge/toolkit/httpx_parser.py
Parses httpx JSON-lines output into probe records and renders them as text.

Every non-empty input line yields exactly one record: either the decoded JSON
object or a parse-error record carrying the original line.
"""

import json
from typing import Any, Dict, List

PARSE_ERROR_KEY = "_parseError"


def parse_error_record(line: str) -> Dict[str, Any]:
    return {PARSE_ERROR_KEY: True, "raw": line}


def is_parse_error(record: Dict[str, Any]) -> bool:
    return bool(record.get(PARSE_ERROR_KEY))


def parse_line(line: str) -> Dict[str, Any]:
    """Decode one httpx -json line; anything that is not a JSON object is a parse error."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        return parse_error_record(line)
    if not isinstance(data, dict):
        return parse_error_record(line)
    return data


def parse_jsonl(text: str) -> List[Dict[str, Any]]:
    """Parse httpx output. Record count always equals the non-empty line count."""
    return [parse_line(line.rstrip("\r")) for line in text.split("\n") if line.strip()]


def _field(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def render_text(records: List[Dict[str, Any]]) -> str:
    """
    Human-friendly dump of probe records.

    Common fields from httpx: url, status_code, title, content_length, ip.
    """
    blocks: List[str] = []
    for record in records:
        if is_parse_error(record):
            blocks.append("PARSE_ERROR: " + _field(record.get("raw")))
            continue
        blocks.append("\n".join([
            "url: " + _field(record.get("url") or record.get("input")),
            "status: " + _field(record.get("status_code")),
            "title: " + _field(record.get("title")),
            "content_length: " + _field(record.get("content_length")),
            "ip: " + _field(record.get("ip") or record.get("host")),
            "---",
        ]))
    return "\n".join(blocks)
