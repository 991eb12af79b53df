"""Tests for the conversation mode state machine."""

import pytest

from receptionist.conversation.state_machine import ModeStateMachine, ModeTrigger, TurnSignals
from receptionist.errors import InvalidTransitionError
from receptionist.schemas.conversation_schema import ConversationMode

FREE = ConversationMode.FREE
TRIAGE = ConversationMode.TRIAGE
BOOKING = ConversationMode.BOOKING
RESCUE = ConversationMode.RESCUE
CONFIRMATION = ConversationMode.CONFIRMATION


class TestTransitionTable:
    def test_free_to_triage_on_problem(self, state_machine):
        assert state_machine.transition(FREE, ModeTrigger.PROBLEM_DESCRIBED) == TRIAGE

    @pytest.mark.parametrize("mode", [FREE, TRIAGE, RESCUE])
    def test_need_identified_enters_booking(self, state_machine, mode):
        assert state_machine.transition(mode, ModeTrigger.NEED_IDENTIFIED) == BOOKING

    @pytest.mark.parametrize("mode", [FREE, TRIAGE, RESCUE, BOOKING])
    def test_all_filled_enters_confirmation(self, state_machine, mode):
        assert state_machine.transition(mode, ModeTrigger.ALL_REQUIRED_FILLED) == CONFIRMATION

    @pytest.mark.parametrize("mode", [FREE, TRIAGE, BOOKING, CONFIRMATION])
    def test_frustration_reaches_rescue_from_anywhere(self, state_machine, mode):
        assert state_machine.transition(mode, ModeTrigger.FRUSTRATION) == RESCUE

    def test_confirmation_back_to_booking_when_slot_missing(self, state_machine):
        assert state_machine.transition(CONFIRMATION, ModeTrigger.SLOT_MISSING) == BOOKING

    def test_invalid_transition_raises(self, state_machine):
        with pytest.raises(InvalidTransitionError, match="booking"):
            state_machine.transition(BOOKING, ModeTrigger.PROBLEM_DESCRIBED)

    def test_can_transition(self, state_machine):
        assert state_machine.can_transition(FREE, ModeTrigger.NEED_IDENTIFIED)
        assert not state_machine.can_transition(BOOKING, ModeTrigger.NEED_IDENTIFIED)

    def test_valid_triggers_from_confirmation(self, state_machine):
        triggers = set(state_machine.get_valid_triggers(CONFIRMATION))
        assert triggers == {ModeTrigger.SLOT_MISSING, ModeTrigger.FRUSTRATION}


class TestResolve:
    def test_no_signals_keeps_mode(self, state_machine):
        assert state_machine.resolve(FREE, TurnSignals()) == FREE
        assert state_machine.resolve(BOOKING, TurnSignals()) == BOOKING

    def test_frustration_takes_priority(self, state_machine):
        signals = TurnSignals(frustrated=True, all_required_filled=True)
        assert state_machine.resolve(BOOKING, signals) == RESCUE

    def test_rescue_is_a_self_transition_noop(self, state_machine):
        assert state_machine.resolve(RESCUE, TurnSignals(frustrated=True)) == RESCUE

    def test_problem_then_need_in_one_turn(self, state_machine):
        signals = TurnSignals(problem_described=True, need_identified=True)
        assert state_machine.resolve(FREE, signals) == BOOKING

    def test_problem_only_enters_triage(self, state_machine):
        assert state_machine.resolve(FREE, TurnSignals(problem_described=True)) == TRIAGE

    def test_problem_ignored_while_booking(self, state_machine):
        assert state_machine.resolve(BOOKING, TurnSignals(problem_described=True)) == BOOKING

    def test_all_filled_enters_confirmation(self, state_machine):
        assert state_machine.resolve(BOOKING, TurnSignals(all_required_filled=True)) == CONFIRMATION

    def test_confirmation_stays_while_complete(self, state_machine):
        signals = TurnSignals(all_required_filled=True)
        assert state_machine.resolve(CONFIRMATION, signals) == CONFIRMATION

    def test_confirmation_returns_to_booking_when_incomplete(self, state_machine):
        assert state_machine.resolve(CONFIRMATION, TurnSignals()) == BOOKING

    def test_rescue_left_on_identified_need(self, state_machine):
        assert state_machine.resolve(RESCUE, TurnSignals(need_identified=True)) == BOOKING
