"""
Pre-generation intent scoring against the service catalog.

Runs before the generator on every turn. A confident match on a disabled
service is answered with its decline script and the generator is never
called; admin requests get their fixed handler reply. Anything else falls
through to the turn engine, possibly carrying a triage routing hint.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from receptionist.catalog.service_catalog import ServiceCatalog
from receptionist.schemas.catalog_schema import ServiceCatalogEntry, ServiceType
from receptionist.utils import normalize_text, stem_tokens

logger = logging.getLogger(__name__)

KEYWORD_BASE_WEIGHT = 0.1
KEYWORD_PER_WORD_WEIGHT = 0.05
KEYWORD_MAX_WEIGHT = 0.3
PHRASE_WEIGHT = 0.4
MAX_CONFIDENCE = 1.0


class DetectionAction(str, Enum):
    DETERMINISTIC_DECLINE = "DETERMINISTIC_DECLINE"
    DETERMINISTIC_ADMIN = "DETERMINISTIC_ADMIN"
    PROCEED = "PROCEED"
    PROCEED_TO_MATCHING = "PROCEED_TO_MATCHING"


@dataclass
class DetectionResult:
    """Outcome of scoring one utterance against the catalog."""

    matched: bool
    action: DetectionAction
    service_key: Optional[str] = None
    confidence: float = 0.0
    enabled: Optional[bool] = None
    decline_message: Optional[str] = None
    service_type: Optional[ServiceType] = None
    reply: Optional[str] = None
    route_to: Optional[str] = None
    triage_question: Optional[str] = None

    @property
    def is_short_circuit(self) -> bool:
        return self.action in (
            DetectionAction.DETERMINISTIC_DECLINE,
            DetectionAction.DETERMINISTIC_ADMIN,
        )

    def to_dict(self) -> dict:
        return {
            "matched": self.matched,
            "action": self.action.value,
            "service_key": self.service_key,
            "confidence": round(self.confidence, 3),
            "enabled": self.enabled,
            "route_to": self.route_to,
        }


def keyword_weight(keyword: str) -> float:
    words = len(keyword.split())
    return min(KEYWORD_MAX_WEIGHT, KEYWORD_BASE_WEIGHT + KEYWORD_PER_WORD_WEIGHT * words)


def _keyword_hit(keyword_tokens: list[str], utterance_tokens: set[str]) -> bool:
    return bool(keyword_tokens) and all(t in utterance_tokens for t in keyword_tokens)


def _phrase_hit(phrase_tokens: list[str], utterance_tokens: list[str]) -> bool:
    size = len(phrase_tokens)
    if size == 0 or size > len(utterance_tokens):
        return False
    return any(
        utterance_tokens[i:i + size] == phrase_tokens
        for i in range(len(utterance_tokens) - size + 1)
    )


def score_entry(
    entry: ServiceCatalogEntry,
    normalized: str,
    tokens: list[str],
) -> Optional[float]:
    """Return the entry's confidence, or None when a negative keyword excludes it."""
    for negative in entry.negative_keywords:
        needle = normalize_text(negative)
        if needle and needle in normalized:
            return None

    token_set = set(tokens)
    confidence = 0.0
    for keyword in entry.intent_keywords:
        if _keyword_hit(stem_tokens(keyword), token_set):
            confidence += keyword_weight(normalize_text(keyword))
    for phrase in entry.intent_phrases:
        if _phrase_hit(stem_tokens(phrase), tokens):
            confidence += PHRASE_WEIGHT
    return round(min(confidence, MAX_CONFIDENCE), 6)


def detect(utterance: str, catalog: ServiceCatalog) -> DetectionResult:
    """Score ``utterance`` against every catalog entry and pick a winner."""
    normalized = normalize_text(utterance)
    tokens = stem_tokens(utterance)
    if not normalized or len(catalog) == 0:
        return DetectionResult(matched=False, action=DetectionAction.PROCEED_TO_MATCHING)

    best: Optional[ServiceCatalogEntry] = None
    best_confidence = 0.0
    for entry in catalog.entries:
        confidence = score_entry(entry, normalized, tokens)
        if confidence is None:
            logger.debug("Entry '%s' excluded by negative keyword", entry.service_key)
            continue
        if confidence < entry.min_confidence or confidence <= 0.0:
            continue
        # Strict comparison keeps the earlier entry on ties.
        if best is None or confidence > best_confidence:
            best, best_confidence = entry, confidence

    if best is None:
        return DetectionResult(matched=False, action=DetectionAction.PROCEED_TO_MATCHING)

    result = DetectionResult(
        matched=True,
        action=DetectionAction.PROCEED,
        service_key=best.service_key,
        confidence=best_confidence,
        enabled=best.enabled,
        service_type=best.service_type,
    )

    if not best.enabled:
        result.action = DetectionAction.DETERMINISTIC_DECLINE
        result.decline_message = catalog.decline_message_for(best)
        result.reply = result.decline_message
        logger.info(
            "Disabled service '%s' matched (%.2f), declining deterministically",
            best.service_key, best_confidence,
        )
        return result

    if best.service_type == ServiceType.ADMIN:
        result.action = DetectionAction.DETERMINISTIC_ADMIN
        result.reply = catalog.admin_reply_for(best)
        logger.info("Admin request '%s' matched (%.2f)", best.service_key, best_confidence)
        return result

    if best.service_type == ServiceType.SYMPTOM:
        target = catalog.resolve_symptom_route(best)
        result.route_to = target.service_key if target else None
        if best.triage_prompts:
            result.triage_question = best.triage_prompts[0].question

    logger.debug("Service '%s' matched (%.2f)", best.service_key, best_confidence)
    return result
