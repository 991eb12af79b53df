"""
Guardrails around the caller's words and the generator's words.

1. TriggerGuardrail: detects frustration/escalation and problem/booking
                   phrases from company configuration
2. ReplyGuardrail: removes forbidden phrases, persona breaks and text
                   formatting from generated acknowledgments

Only generated text passes through ReplyGuardrail. Configured questions and
scripts are spoken exactly as written and are never filtered.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from receptionist.schemas.company_schema import TriggerConfig
from receptionist.utils import normalize_text, strip_control_chars

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_FORMATTING_RE = re.compile(r"(\*\*|__|```|`|#{1,6}\s|^\s*[-*]\s|^\s*\d+\.\s)", re.MULTILINE)


@dataclass
class GuardrailResult:
    """Outcome of a single guardrail check."""
    passed: bool
    violation_type: Optional[str] = None
    message: Optional[str] = None
    matched: Optional[str] = None


def find_phrase(text: str, phrases: Iterable[str]) -> Optional[str]:
    """Return the first configured phrase contained in ``text``, if any."""
    normalized = f" {normalize_text(text)} "
    for phrase in phrases:
        needle = normalize_text(phrase)
        if needle and f" {needle} " in normalized:
            return phrase
    return None


class TriggerGuardrail:
    """Matches caller input against the company's trigger phrase lists."""

    def __init__(self, triggers: TriggerConfig) -> None:
        self._triggers = triggers

    def check_frustration(self, text: str) -> GuardrailResult:
        for kind, phrases in (
            ("caller_frustration", self._triggers.frustration),
            ("escalation_request", self._triggers.escalation),
        ):
            hit = find_phrase(text, phrases)
            if hit:
                logger.info("Rescue trigger detected (%s): '%s'", kind, hit)
                return GuardrailResult(
                    passed=False,
                    violation_type=kind,
                    message=f"Caller said '{hit}'.",
                    matched=hit,
                )
        return GuardrailResult(passed=True)

    def describes_problem(self, text: str) -> bool:
        return find_phrase(text, self._triggers.describing_problem) is not None

    def wants_booking(self, text: str) -> bool:
        return find_phrase(text, self._triggers.wants_booking) is not None


@dataclass
class CleanedReply:
    text: str
    violations: list[GuardrailResult] = field(default_factory=list)


class ReplyGuardrail:
    """Scrubs generated acknowledgment text before it is spoken."""

    PERSONA_BREAKS = [
        "as an ai", "as a language model", "i'm just a computer",
        "i am an ai", "i'm an ai",
    ]

    def __init__(self, forbidden_phrases: Iterable[str] = (), max_chars: int = 240) -> None:
        self._forbidden = [p for p in forbidden_phrases if p.strip()]
        self._max_chars = max_chars

    def clean(self, text: str) -> CleanedReply:
        violations: list[GuardrailResult] = []
        if _FORMATTING_RE.search(text):
            violations.append(GuardrailResult(
                passed=False,
                violation_type="formatting_violation",
                message="Voice reply contained text formatting.",
            ))
            text = _FORMATTING_RE.sub(" ", text)
        text = strip_control_chars(text)

        kept: list[str] = []
        for sentence in _SENTENCE_SPLIT_RE.split(text):
            hit = find_phrase(sentence, self._forbidden) or find_phrase(
                sentence, self.PERSONA_BREAKS
            )
            if hit:
                violations.append(GuardrailResult(
                    passed=False,
                    violation_type="forbidden_phrase",
                    message=f"Removed sentence containing '{hit}'.",
                    matched=hit,
                ))
                continue
            if sentence.strip():
                kept.append(sentence.strip())
        text = " ".join(kept)

        if len(text) > self._max_chars:
            cut = text[: self._max_chars]
            boundary = max(cut.rfind(". "), cut.rfind("? "), cut.rfind("! "))
            text = cut[: boundary + 1] if boundary > 0 else cut.rstrip()
            violations.append(GuardrailResult(
                passed=False,
                violation_type="too_long",
                message=f"Reply truncated to {self._max_chars} characters.",
            ))

        for v in violations:
            logger.info("Reply guardrail: %s", v.message)
        return CleanedReply(text=text.strip(), violations=violations)
