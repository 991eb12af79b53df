"""
Canned answers for common factual questions, and the service-area hint.

Both are pure in-memory lookups that run before the generator. A quick
answer ends the turn on its own; the service-area hint only adds a line
of context to the generator prompt.
"""

import logging
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Iterable, Optional

from receptionist.schemas.company_schema import QuickAnswer
from receptionist.utils import normalize_text

logger = logging.getLogger(__name__)

_QUESTION_OPENERS = (
    "what", "when", "where", "how", "who", "which", "why",
    "do you", "does", "are you", "is", "can you", "can i", "could you", "will you",
)

_SERVICE_AREA_CUES = (
    "service area", "do you service", "do you serve", "do you cover",
    "come out to", "in my area", "service my area", "work in",
)


def looks_like_question(text: str) -> bool:
    if "?" in text:
        return True
    normalized = normalize_text(text)
    return any(normalized == o or normalized.startswith(o + " ") for o in _QUESTION_OPENERS)


@dataclass
class QuickAnswerMatch:
    answer: QuickAnswer
    score: float
    matched_by: str


class QuickAnswerMatcher:
    """
    Exact / near-exact lookup over a company's pre-authored Q&A.

    A match is an exact question, a configured trigger phrase contained in
    the utterance, or a close string similarity to the question text.
    """

    def __init__(self, answers: Iterable[QuickAnswer], min_ratio: float = 0.85) -> None:
        self._answers = [
            (qa, normalize_text(qa.question), [normalize_text(t) for t in qa.triggers])
            for qa in answers
        ]
        self._min_ratio = min_ratio

    def match(self, utterance: str) -> Optional[QuickAnswerMatch]:
        if not self._answers or not looks_like_question(utterance):
            return None
        normalized = normalize_text(utterance)
        padded = f" {normalized} "

        best: Optional[QuickAnswerMatch] = None
        for qa, question, triggers in self._answers:
            if normalized == question:
                return QuickAnswerMatch(answer=qa, score=1.0, matched_by="exact")
            for trigger in triggers:
                if trigger and f" {trigger} " in padded:
                    candidate = QuickAnswerMatch(answer=qa, score=0.95, matched_by="trigger")
                    if best is None or candidate.score > best.score:
                        best = candidate
            ratio = SequenceMatcher(None, normalized, question).ratio()
            if ratio >= self._min_ratio and (best is None or ratio > best.score):
                best = QuickAnswerMatch(answer=qa, score=ratio, matched_by="similarity")

        if best:
            logger.info(
                "Quick answer matched (%s, %.2f): %s",
                best.matched_by, best.score, best.answer.category,
            )
        return best


def service_area_hint(utterance: str, service_areas: Iterable[str]) -> Optional[str]:
    """One line of prompt context when the caller asks about coverage."""
    areas = [a for a in service_areas if a.strip()]
    normalized = normalize_text(utterance)
    if not areas or not any(cue in normalized for cue in _SERVICE_AREA_CUES):
        return None
    padded = f" {normalized} "
    for area in areas:
        if f" {normalize_text(area)} " in padded:
            return f"Caller asked about {area}: it IS in our service area."
    return (
        "Caller asked about service area. We serve: "
        + ", ".join(areas)
        + ". If their town is not listed, say a team member will confirm."
    )
