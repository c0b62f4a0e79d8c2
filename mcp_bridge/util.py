"""Small helpers shared across the bridge."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit


def sanitize_url_for_log(url: str) -> str:
    """
    Strip query parameters (and fragments) from a URL before logging it.

    Query strings may carry tokens or other secrets.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return "(invalid URL)"
    if not parts.scheme or not parts.netloc:
        return "(invalid URL)"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", "")).rstrip("/")
