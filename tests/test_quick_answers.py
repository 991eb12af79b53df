"""Tests for canned answers and the service-area hint."""

from receptionist.conversation.quick_answers import (
    QuickAnswerMatcher,
    looks_like_question,
    service_area_hint,
)
from receptionist.schemas.company_schema import QuickAnswer

HOURS = QuickAnswer(
    question="What are your hours?",
    answer="We're open eight to five.",
    triggers=["your hours", "are you open"],
    category="hours",
)
WARRANTY = QuickAnswer(
    question="Do you offer a warranty on repairs?",
    answer="All repairs carry a one-year parts and labor warranty.",
    category="warranty",
)


class TestLooksLikeQuestion:
    def test_question_mark(self):
        assert looks_like_question("Tuesday?")

    def test_question_opener(self):
        assert looks_like_question("are you open on saturday")

    def test_statement(self):
        assert not looks_like_question("my name is Jane")


class TestQuickAnswerMatcher:
    def setup_method(self):
        self.matcher = QuickAnswerMatcher([HOURS, WARRANTY], min_ratio=0.85)

    def test_exact_question(self):
        match = self.matcher.match("what are your hours")
        assert match.answer is HOURS
        assert match.matched_by == "exact"

    def test_trigger_phrase(self):
        match = self.matcher.match("Hey, are you open tomorrow?")
        assert match.answer is HOURS
        assert match.matched_by == "trigger"

    def test_near_exact_question(self):
        match = self.matcher.match("Do you offer a warranty on your repairs?")
        assert match.answer is WARRANTY
        assert match.matched_by == "similarity"

    def test_unrelated_question(self):
        assert self.matcher.match("Can you fix my furnace?") is None

    def test_statements_never_match(self):
        assert self.matcher.match("I like your hours") is None

    def test_empty_answer_list(self):
        assert QuickAnswerMatcher([]).match("what are your hours?") is None


class TestServiceAreaHint:
    AREAS = ["Naples", "Fort Myers"]

    def test_no_cue_no_hint(self):
        assert service_area_hint("my AC is broken", self.AREAS) is None

    def test_listed_town_confirmed(self):
        hint = service_area_hint("Do you service Fort Myers?", self.AREAS)
        assert "Fort Myers" in hint
        assert "IS in our service area" in hint

    def test_unlisted_town_lists_areas(self):
        hint = service_area_hint("Do you serve Tampa?", self.AREAS)
        assert "Naples, Fort Myers" in hint

    def test_no_areas_configured(self):
        assert service_area_hint("Do you service Naples?", []) is None
