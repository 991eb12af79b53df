"""
Tiered fallback replies for turns that could not be understood.

Every generator failure (timeout, transport error, unusable output) bumps
the state's ``miss_count`` and picks a tier from it. A configuration defect
is a different thing entirely: it gets a neutral holding reply, is logged as
a system error, and does not count against the caller.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from receptionist.schemas.company_schema import FallbackTemplates
from receptionist.schemas.conversation_schema import ConversationMode, ConversationState

logger = logging.getLogger(__name__)


class FallbackTier(str, Enum):
    TIER_1 = "tier1"
    TIER_2 = "tier2"
    TIER_3 = "tier3"
    CONFIG_ERROR = "config_error"


@dataclass
class FallbackReply:
    tier: FallbackTier
    text: str


class FallbackPolicy:
    """Maps consecutive misses onto escalating fallback replies."""

    def respond(self, state: ConversationState, templates: FallbackTemplates) -> FallbackReply:
        """
        Count one more miss on ``state`` and return the matching tier.

        The third and later consecutive misses offer a human callback and move
        the call into rescue mode.
        """
        state.miss_count += 1
        if state.miss_count == 1:
            reply = FallbackReply(FallbackTier.TIER_1, templates.tier1)
        elif state.miss_count == 2:
            reply = FallbackReply(FallbackTier.TIER_2, templates.tier2)
        else:
            reply = FallbackReply(FallbackTier.TIER_3, templates.tier3)
            state.mode = ConversationMode.RESCUE

        logger.warning(
            "Fallback %s for call %s (miss_count=%d)",
            reply.tier.value, state.call_id, state.miss_count,
        )
        return reply

    def configuration_error(self, templates: FallbackTemplates, reason: str = "") -> FallbackReply:
        logger.error("Configuration defect, using holding reply: %s", reason or "unspecified")
        return FallbackReply(FallbackTier.CONFIG_ERROR, templates.config_error)
