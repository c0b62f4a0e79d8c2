"""
Tier-based tool gating.

Two hooks for the host:
  - before_agent_start: returns context text telling the model which
    services the user's subscription includes
  - before_tool_call: blocks Gmail/Calendar tools (called directly or
    through sessions_spawn) for users without an active Pro plan

Both fail open when the billing service cannot be reached, and both
ignore sessions that aren't direct messages.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from mcp_bridge.billing import BillingClient, BillingStatus
from mcp_bridge.session import parse_user_id

logger = logging.getLogger(__name__)

BILLING_URL = "https://ldraney.github.io/pal-e/billing"

GATED_AGENTS = frozenset({"gmail-agent", "gcal-agent"})
GATED_TOOL_PREFIXES = ("gmail_", "gcal_")


@dataclass(frozen=True)
class GateDecision:
    block: bool = False
    reason: str | None = None


ALLOWED = GateDecision()


def build_service_context(status: BillingStatus | None, fail_open: bool = False) -> str:
    """Describe the services available to a user, for the system prompt."""
    if fail_open:
        return (
            "Your available services for this user: Notion, LinkedIn, Gmail, and Calendar. "
            "All services are available (billing status could not be verified)."
        )

    if status is None or not status.is_active or status.tier == "base":
        return (
            "Your available services for this user: Notion and LinkedIn only. "
            "Do NOT offer or mention Gmail or Calendar. "
            "If the user asks about Gmail or Calendar, explain that these require "
            "the Pro subscription."
        )

    if status.tier == "pro":
        if status.gcal_gmail_status == "active":
            return (
                "Your available services for this user: Notion, LinkedIn, Gmail, and Calendar. "
                "All services are active and ready to use."
            )
        if status.gcal_gmail_status == "pending":
            return (
                "Your available services for this user: Notion and LinkedIn. "
                "Gmail and Calendar are being activated (within 24 hours). "
                "If the user asks about Gmail or Calendar, let them know activation "
                "is in progress."
            )
        return (
            "Your available services for this user: Notion and LinkedIn. "
            "Gmail and Calendar setup may be incomplete. "
            "If the user asks about Gmail or Calendar, suggest they contact support."
        )

    # Unknown tier
    return (
        "Your available services for this user: Notion and LinkedIn only. "
        "Do NOT offer or mention Gmail or Calendar."
    )


def extract_target_agent(params: dict[str, Any]) -> str | None:
    """Target agent of a sessions_spawn call ({agent}, {agentId} or {name})."""
    for key in ("agent", "agentId", "name"):
        if isinstance(params.get(key), str):
            return params[key]
    return None


class TierGate:
    """Hook handlers backed by a BillingClient."""

    def __init__(self, billing: BillingClient):
        self.billing = billing

    async def before_agent_start(self, session_key: str | None) -> str | None:
        """Return context to prepend to the system prompt, or None to skip."""
        user_id = parse_user_id(session_key)
        if not user_id:
            return None

        lookup = await self.billing.get_status(user_id)
        if not lookup.reachable:
            logger.warning(f"[tier-gate] Billing API unreachable, failing open for user {user_id}")
            return build_service_context(None, fail_open=True)

        status = lookup.status
        logger.info(
            f"[tier-gate] User {user_id}: tier={status.tier if status else 'unknown'}, "
            f"gcal_gmail={(status.gcal_gmail_status if status else None) or 'n/a'}"
        )
        return build_service_context(status)

    async def before_tool_call(
        self,
        tool_name: str,
        params: dict[str, Any],
        session_key: str | None,
    ) -> GateDecision:
        """Decide whether a tool call may proceed."""
        gated_label = None
        if tool_name == "sessions_spawn":
            target = extract_target_agent(params)
            if target in GATED_AGENTS:
                gated_label = target
        elif tool_name.startswith(GATED_TOOL_PREFIXES):
            gated_label = tool_name

        if not gated_label:
            return ALLOWED

        user_id = parse_user_id(session_key)
        if not user_id:
            return ALLOWED

        lookup = await self.billing.get_status(user_id)
        if not lookup.reachable:
            logger.warning(
                f"[tier-gate] Billing API unreachable, failing open for "
                f"{gated_label} (user {user_id})"
            )
            return ALLOWED

        status = lookup.status
        if status is None or not status.is_active or status.tier == "base":
            logger.info(
                f"[tier-gate] Blocked {gated_label} for user {user_id} "
                f"(tier: {status.tier if status else 'none'})"
            )
            return GateDecision(block=True, reason=(
                "Gmail and Calendar require the Pro subscription ($50/mo). "
                f"Upgrade at {BILLING_URL}"
            ))

        if status.tier == "pro" and status.gcal_gmail_status != "active":
            logger.info(
                f"[tier-gate] Blocked {gated_label} for user {user_id} "
                f"(gcal_gmail_status: {status.gcal_gmail_status})"
            )
            return GateDecision(block=True, reason=(
                "Gmail and Calendar are being activated. "
                "You'll receive a confirmation within 24 hours."
            ))

        return ALLOWED
