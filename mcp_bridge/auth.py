"""
Bearer token selection for a single tool call.

Resolved on every call rather than at registration, so tokens issued,
refreshed or expired in the meantime are picked up without
re-registering tools.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from mcp_bridge.config import ServerEndpoint
from mcp_bridge.token_store import CredentialRecord


class CredentialStore(Protocol):
    """The part of TokenStore the resolver needs."""

    def get_token(self, user_id: str, service: str) -> CredentialRecord | None: ...

    def is_expired(self, record: CredentialRecord) -> bool: ...


@dataclass(frozen=True)
class TokenResolution:
    """Either a token (possibly None: call unauthenticated) or a refusal message."""
    token: str | None = None
    refusal: str | None = None


def resolve_token(
    server: ServerEndpoint,
    user_id: str | None = None,
    store: CredentialStore | None = None,
) -> TokenResolution:
    """
    Decide which bearer token to use for a call to server.

    Order: the user's stored token, then the server's static token.
    An expired user token is refused outright; it never falls back to
    the static token.
    """
    has_user_auth = user_id is not None and store is not None

    if has_user_auth:
        record = store.get_token(user_id, server.service_key)
        if record is not None:
            if store.is_expired(record):
                return TokenResolution(refusal=(
                    f"Your {server.name} authorization has expired. "
                    f"Please re-authenticate with {server.name} and try again."
                ))
            return TokenResolution(token=record.access_token)

    if server.token:
        return TokenResolution(token=server.token)

    if has_user_auth:
        return TokenResolution(refusal=(
            f"You haven't connected your {server.name} account yet. "
            f"Please authenticate with {server.name} first."
        ))

    return TokenResolution()
