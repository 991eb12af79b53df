"""Tests for the booking slot model."""

import logging

import pytest

from receptionist.conversation.slot_manager import (
    PARTIAL_FLAG,
    SlotManager,
    classify_service_type,
)
from receptionist.errors import ConfigurationError
from receptionist.schemas.company_schema import (
    BookingSlotSpec,
    ServiceTypeVocabulary,
    SlotType,
)
from receptionist.schemas.conversation_schema import ConversationState
from tests.conftest import make_company


def _state(**slots: str) -> ConversationState:
    state = ConversationState.start("CA-slots", "acme-hvac")
    state.known_slots.update(slots)
    return state


class TestOrdering:
    def test_specs_follow_list_position_by_default(self, slot_manager):
        assert slot_manager.slot_ids == ["name", "phone", "address", "time"]

    def test_explicit_order_wins(self):
        manager = SlotManager([
            BookingSlotSpec(slot_id="time", question="When?", order=3),
            BookingSlotSpec(slot_id="name", question="Name?", order=1),
            BookingSlotSpec(slot_id="phone", question="Phone?", order=2),
        ])
        assert manager.slot_ids == ["name", "phone", "time"]

    def test_ties_broken_by_position(self):
        manager = SlotManager([
            BookingSlotSpec(slot_id="b_field", question="B?", order=1),
            BookingSlotSpec(slot_id="a_field", question="A?", order=1),
        ])
        assert manager.slot_ids == ["b_field", "a_field"]

    def test_types_inferred_from_slot_id(self, slot_manager):
        assert slot_manager.get("phone").type == SlotType.PHONE
        assert slot_manager.get("time").type == SlotType.TIME
        assert BookingSlotSpec(slot_id="notes", question="Anything else?").type == SlotType.TEXT

    def test_time_segment_wins_over_service(self):
        assert BookingSlotSpec(slot_id="service_time", question="When?").type == SlotType.TIME
        assert BookingSlotSpec(slot_id="service_date", question="Which day?").type == SlotType.TIME
        assert BookingSlotSpec(slot_id="service_type", question="Repair?").type == SlotType.SERVICE_TYPE

    def test_email_address_is_email(self):
        assert BookingSlotSpec(slot_id="email_address", question="Email?").type == SlotType.EMAIL

    def test_duplicate_slot_ids_rejected(self):
        with pytest.raises(ConfigurationError, match="Duplicate slot_id"):
            SlotManager([
                BookingSlotSpec(slot_id="phone", question="Phone?"),
                BookingSlotSpec(slot_id="PHONE", question="Number?"),
            ])


class TestNextMissing:
    def test_first_required_missing(self, slot_manager):
        assert slot_manager.next_missing({}).slot_id == "name"

    def test_filled_slot_never_requested(self, slot_manager):
        assert slot_manager.next_missing({"name": "Jane Doe"}).slot_id == "phone"

    def test_blank_value_counts_as_missing(self, slot_manager):
        assert slot_manager.next_missing({"name": "   "}).slot_id == "name"

    def test_optional_slots_skipped(self):
        manager = SlotManager([
            BookingSlotSpec(slot_id="notes", question="Anything else?", required=False),
            BookingSlotSpec(slot_id="name", question="Name?"),
        ])
        assert manager.next_missing({}).slot_id == "name"
        assert [s.slot_id for s in manager.missing_optional({})] == ["notes"]

    def test_all_required_filled(self, slot_manager):
        filled = {"name": "Jane Doe", "phone": "239-555-0142", "address": "1 Main St", "time": "noon"}
        assert slot_manager.next_missing(filled) is None
        assert slot_manager.all_required_filled(filled)

    def test_no_specs_is_never_complete(self):
        assert not SlotManager([]).all_required_filled({})


class TestQuestions:
    def test_question_is_verbatim(self, slot_manager):
        spec = slot_manager.get("address")
        assert slot_manager.question_for(spec, _state()) == "What's the service address?"

    def test_caller_id_offer(self):
        manager = SlotManager([
            BookingSlotSpec(slot_id="phone", question="Best number?", offer_caller_id=True),
        ])
        state = ConversationState.start("CA-1", "acme-hvac", caller_id="+12395550142")
        assert manager.question_for(manager.get("phone"), state) == (
            "Is 239-555-0142 the best number to reach you?"
        )

    def test_caller_id_offer_needs_caller_id(self):
        manager = SlotManager([
            BookingSlotSpec(slot_id="phone", question="Best number?", offer_caller_id=True),
        ])
        assert manager.question_for(manager.get("phone"), _state()) == "Best number?"


class TestMerge:
    def test_merges_known_slots_with_normalization(self, slot_manager):
        state = _state()
        outcome = slot_manager.merge(state, {"name": "jane doe", "phone": "(239) 555-0142"})
        assert state.known_slots == {"name": "Jane Doe", "phone": "239-555-0142"}
        assert outcome.added == {"name": "Jane Doe", "phone": "239-555-0142"}

    def test_unknown_and_empty_values_ignored(self, slot_manager):
        state = _state()
        slot_manager.merge(state, {"favorite_color": "blue", "address": "  "})
        assert state.known_slots == {}

    def test_slot_ids_matched_case_insensitively(self, slot_manager):
        state = _state()
        slot_manager.merge(state, {"ADDRESS": "12 Palm St, Naples"})
        assert state.known_slots["address"] == "12 Palm St, Naples"

    def test_short_phone_rejected(self, slot_manager):
        state = _state()
        outcome = slot_manager.merge(state, {"phone": "555"})
        assert "phone" not in state.known_slots
        assert outcome.rejected == {"phone": "555"}

    def test_existing_value_never_overwritten(self, slot_manager, caplog):
        state = _state(address="12 Palm St")
        with caplog.at_level(logging.INFO):
            outcome = slot_manager.merge(state, {"address": "99 Other Rd"})
        assert state.known_slots["address"] == "12 Palm St"
        assert outcome.conflicts == {"address": "99 Other Rd"}
        assert "Keeping existing" in caplog.text

    def test_merge_is_idempotent(self, slot_manager):
        state = _state()
        extracted = {"name": "Jane Doe", "phone": "2395550142", "time": "Tuesday at 9"}
        slot_manager.merge(state, extracted)
        first = state.model_copy(deep=True)
        outcome = slot_manager.merge(state, extracted)
        assert state == first
        assert outcome.added == {}
        assert outcome.conflicts == {}

    def test_service_type_classified(self):
        manager = SlotManager([BookingSlotSpec(slot_id="service_type", question="Repair or maintenance?")])
        state = _state()
        manager.merge(state, {"service_type": "my furnace is broken"})
        assert state.known_slots["service_type"] == "repair"

    def test_service_time_value_kept(self):
        manager = SlotManager([BookingSlotSpec(slot_id="service_time", question="When works?")])
        state = _state()
        manager.merge(state, {"service_time": "Tuesday at 3pm"})
        assert state.known_slots["service_time"] == "Tuesday at 3pm"


class TestPartialNames:
    def test_single_word_name_held_for_follow_up(self, slot_manager):
        state = _state()
        outcome = slot_manager.merge(state, {"name": "maria"})
        assert "name" not in state.known_slots
        assert state.partial_name == "Maria"
        assert outcome.followup_question == "And what's your last name?"
        assert outcome.followup_slot == "name"

    def test_last_name_completes_full_name(self, slot_manager):
        state = _state()
        slot_manager.merge(state, {"name": "Maria"})
        slot_manager.merge(state, {"name": "Lopez"})
        assert state.known_slots["name"] == "Maria Lopez"
        assert state.partial_name is None

    def test_full_name_on_follow_up_replaces_partial(self, slot_manager):
        state = _state()
        slot_manager.merge(state, {"name": "Maria"})
        slot_manager.merge(state, {"name": "Maria Lopez"})
        assert state.known_slots["name"] == "Maria Lopez"
        assert "name" not in state.slot_flags

    def test_repeated_partial_merge_is_idempotent(self, slot_manager):
        state = _state()
        slot_manager.merge(state, {"name": "Maria"})
        outcome = slot_manager.merge(state, {"name": "Maria"})
        assert outcome.followup_question is None
        assert state.partial_name == "Maria"
        assert "name" not in state.known_slots

    def test_settle_accepts_partial_with_flag(self, slot_manager):
        state = _state()
        slot_manager.merge(state, {"name": "Maria"})
        assert slot_manager.settle_partial_name(state) == "Maria"
        assert state.known_slots["name"] == "Maria"
        assert state.slot_flags["name"] == PARTIAL_FLAG
        assert state.partial_name is None

    def test_full_name_not_required_when_disabled(self):
        manager = SlotManager([BookingSlotSpec(slot_id="name", question="Name?", ask_full_name=False)])
        state = _state()
        manager.merge(state, {"name": "cher"})
        assert state.known_slots["name"] == "Cher"


class TestDisplayAndConfirmation:
    def test_first_name_only_display(self, slot_manager):
        assert slot_manager.display_value(slot_manager.get("name"), "Jane Doe") == "Jane"

    def test_address_trimmed_to_street_and_city(self, slot_manager):
        value = "14 Palm Street, Naples, FL 34102"
        assert slot_manager.display_value(slot_manager.get("address"), value) == "14 Palm Street, Naples"

    def test_address_street_level(self):
        manager = SlotManager([
            BookingSlotSpec(slot_id="address", question="Address?", address_confirm_level="street"),
        ])
        assert manager.display_value(manager.get("address"), "14 Palm Street, Naples") == "14 Palm Street"

    def test_confirmation_reads_back_flagged_slots(self, slot_manager):
        summary = slot_manager.confirmation_summary(
            {"name": "Jane Doe", "phone": "239-555-0142",
             "address": "14 Palm Street, Naples, FL", "time": "Tuesday at 9"},
            "Just to confirm, I have",
            "Is all of that correct?",
        )
        assert summary == (
            "Just to confirm, I have Jane Doe, 239-555-0142, 14 Palm Street, Naples, "
            "and Tuesday at 9. Is all of that correct?"
        )

    def test_confirmation_none_without_flagged_slots(self):
        manager = SlotManager([BookingSlotSpec(slot_id="name", question="Name?")])
        assert manager.confirmation_summary({"name": "Jane Doe"}, "I have", "Right?") is None

    def test_confirm_prompt_wraps_value(self):
        manager = SlotManager([
            BookingSlotSpec(slot_id="phone", question="Phone?", confirm_back=True,
                            confirm_prompt="your number as {value}"),
        ])
        summary = manager.confirmation_summary({"phone": "2395550142"}, "I have", "Right?")
        assert summary == "I have your number as 2395550142. Right?"


class TestClassifyServiceType:
    def test_repair_wins_over_maintenance(self):
        assert classify_service_type("annual checkup, something is broken", ServiceTypeVocabulary()) == "repair"

    def test_maintenance(self):
        assert classify_service_type("I'd like a tune up", ServiceTypeVocabulary()) == "maintenance"

    def test_other(self):
        assert classify_service_type("a new thermostat", ServiceTypeVocabulary()) == "other"

    def test_company_vocabulary_used(self):
        company = make_company(service_type_vocabulary={"repair": ["no heat"], "maintenance": []})
        assert classify_service_type("there's no heat", company.service_type_vocabulary) == "repair"
