"""Host session key parsing."""

from __future__ import annotations


def parse_user_id(session_key: str | None) -> str | None:
    """
    Extract the end-user id from a host session key.

    Expected format: agent:main:telegram:default:direct:<user_id>

    Returns None for group chats, other channels and malformed keys.
    """
    if not session_key:
        return None

    segments = session_key.split(":")
    if len(segments) < 6:
        return None

    if segments[2] != "telegram" or segments[4] != "direct":
        return None

    return segments[5] or None
