"""
Subscription status lookup.

Queries the billing service for a user's subscription tier, which the
tier gate uses to decide whether certain tools may be called. Results
are cached per user for a few minutes. When the service cannot be
reached the lookup reports reachable=False and the caller fails open.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

import httpx
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 5 * 60
BILLING_TIMEOUT = 5.0  # seconds


class BillingStatus(BaseModel):
    """Response of GET /status/{user_id}."""
    is_active: bool
    status: str
    tier: str
    email: str | None = None
    gcal_gmail_status: str | None = None


@dataclass(frozen=True)
class StatusLookup:
    reachable: bool
    status: BillingStatus | None = None


class BillingClient:
    """Async client for the billing status API, with a per-user TTL cache."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        ttl: float = CACHE_TTL_SECONDS,
        timeout: float = BILLING_TIMEOUT,
    ):
        self.api_url = api_url.rstrip("/")
        self.api_key = api_key
        self.ttl = ttl
        self.timeout = timeout
        self._cache: dict[str, tuple[BillingStatus, float]] = {}

    async def get_status(self, user_id: str) -> StatusLookup:
        """
        Look up a user's billing status.

        Returns:
            StatusLookup(reachable=True, status=None) for unknown users (404),
            StatusLookup(reachable=False) when the API failed or is down.
        """
        cached = self._cache.get(user_id)
        if cached and time.monotonic() - cached[1] < self.ttl:
            return StatusLookup(reachable=True, status=cached[0])

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.api_url}/status/{user_id}",
                    headers={"X-API-Key": self.api_key, "Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.warning(f"[tier-gate] Billing API unreachable: {e!r}. Failing open.")
            return StatusLookup(reachable=False)

        if response.status_code == 404:
            # Unknown user: no subscription
            return StatusLookup(reachable=True)

        if not response.is_success:
            logger.warning(
                f"[tier-gate] Billing API returned {response.status_code} for user {user_id}"
            )
            return StatusLookup(reachable=False)

        try:
            status = BillingStatus.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"[tier-gate] Invalid billing status for user {user_id}: {e}")
            return StatusLookup(reachable=False)

        self._cache[user_id] = (status, time.monotonic())
        return StatusLookup(reachable=True, status=status)

    def invalidate(self, user_id: str) -> None:
        self._cache.pop(user_id, None)

    def clear_cache(self) -> None:
        self._cache.clear()
