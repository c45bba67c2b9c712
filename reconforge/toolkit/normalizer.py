"""Target normalization: hostname validation, host extraction and URL joining."""
import re
from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse

# Lowercase letters, digits, hyphens and dots only
HOSTNAME_CHARSET = re.compile(r"^[a-z0-9.-]+$")

ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


def validate_hostname(hostname: Optional[str]) -> bool:
    """
    Structural hostname check used before a scan job is created.

    The hostname is lowercased, must only contain [a-z0-9.-] and must
    contain at least one dot.
    """
    if not hostname:
        return False
    candidate = hostname.lower()
    return bool(HOSTNAME_CHARSET.match(candidate)) and "." in candidate


def ensure_url(target: str) -> str:
    """
    Ensure a target is a URL with a scheme (https:// is assumed).

    Example: "example.com" → "https://example.com"
    """
    target = (target or "").strip()
    if not target:
        return target

    if "://" not in target:
        target = f"https://{target}"

    parsed = urlparse(target)
    if not parsed.netloc and parsed.path:
        parsed = urlparse(f"{parsed.scheme or 'https'}://{parsed.path}")

    return urlunparse(parsed)


def extract_host(target: str) -> str:
    """
    Extract the hostname from a URL or return the input if already a hostname.

    Example: "https://www.example.com:443/path" → "www.example.com"
    Raises ValueError when the target cannot be parsed as a URL at all.
    """
    parsed = urlparse(ensure_url(target))
    host = parsed.hostname or (target or "").strip()
    return host.lower().rstrip(".")


def _naive_join(base: str, suffix: str) -> str:
    if not base.endswith("/") and not suffix.startswith("/"):
        return base + "/" + suffix
    return base + suffix


def resolve_url(base: str, suffix: str) -> str:
    """
    Resolve a route suffix against a base URL.

    - "https://other/x" style suffixes are returned verbatim
    - "?q=1" style suffixes keep the base path and replace its query
    - anything else is joined beneath the base, which is treated as a directory

    If joining fails the suffix is concatenated onto the base instead.
    """
    s = suffix.strip()
    if ABSOLUTE_URL.match(s):
        return s

    try:
        if s.startswith("?"):
            return urljoin(base, s)
        directory = base if base.endswith("/") else base + "/"
        resolved = urljoin(directory, s.lstrip("/"))
        if not urlparse(resolved).netloc:
            raise ValueError(f"cannot resolve {s!r} against {base!r}")
        return resolved
    except ValueError:
        return _naive_join(base, s)
