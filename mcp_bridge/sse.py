"""
Response decoding for MCP Streamable HTTP servers.

A server may answer a POST either with a bare JSON document or with an
SSE (Server-Sent Events) stream:

    event: message
    data: {"jsonrpc":"2.0","id":1,"result":{...}}

parse_sse_response() turns either shape into a string holding one JSON
document. Only the data of the last "event: message" block is kept;
multi-line data within that block is joined with newlines.
"""

from __future__ import annotations

_MESSAGE_EVENTS = ("event: message", "event:message")


def parse_sse_response(raw: str) -> str:
    """
    Extract the JSON-RPC payload from a response body.

    Plain JSON is returned as-is (trimmed). If nothing can be extracted
    the trimmed input is returned unchanged, so json.loads() reports
    the real problem to the caller.
    """
    trimmed = raw.strip()

    if trimmed.startswith("{"):
        return trimmed

    data_lines: list[str] = []
    in_message = False

    for line in trimmed.split("\n"):
        stripped = line.strip()

        if stripped in _MESSAGE_EVENTS:
            # New message block, earlier blocks are discarded
            in_message = True
            data_lines = []
            continue

        if not stripped:
            continue

        if stripped.startswith("data:"):
            # No explicit event line: servers default to "message"
            if not in_message and not data_lines:
                in_message = True
            if in_message:
                value = stripped[5:]
                if value.startswith(" "):
                    value = value[1:]
                data_lines.append(value)

    if data_lines:
        return "\n".join(data_lines)

    return trimmed
