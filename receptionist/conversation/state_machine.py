"""
Conversation mode state machine.

Five modes and an explicit transition table. The engine never assigns a
mode directly: it collects the signals of a turn, turns them into
triggers, and walks the table, so every mode change is one the table
allows.

Usage:
    machine = ModeStateMachine()
    mode = machine.transition(ConversationMode.FREE, ModeTrigger.PROBLEM_DESCRIBED)
    assert mode == ConversationMode.TRIAGE
"""

import logging
from dataclasses import dataclass
from enum import Enum

from receptionist.errors import InvalidTransitionError
from receptionist.schemas.conversation_schema import ConversationMode

logger = logging.getLogger(__name__)


class ModeTrigger(str, Enum):
    """Turn signals that cause mode transitions."""
    PROBLEM_DESCRIBED = "problem_described"
    NEED_IDENTIFIED = "need_identified"
    ALL_REQUIRED_FILLED = "all_required_filled"
    SLOT_MISSING = "slot_missing"
    FRUSTRATION = "frustration"


@dataclass(frozen=True)
class ModeTransition:
    """A single valid mode transition."""
    from_mode: ConversationMode
    to_mode: ConversationMode
    trigger: ModeTrigger


@dataclass
class TurnSignals:
    """Everything about a turn that can move the mode."""
    frustrated: bool = False
    problem_described: bool = False
    need_identified: bool = False
    all_required_filled: bool = False


_ALL_MODES = list(ConversationMode)


class ModeStateMachine:
    """
    Deterministic mode transitions for the turn engine.

    ``rescue`` is reachable from every mode. Leaving it requires a
    positive signal on a later turn (an identified need or complete slots).
    """

    TRANSITIONS: list[ModeTransition] = [
        # --- Triage ---
        ModeTransition(ConversationMode.FREE, ConversationMode.TRIAGE,
                       ModeTrigger.PROBLEM_DESCRIBED),

        # --- Booking ---
        ModeTransition(ConversationMode.FREE, ConversationMode.BOOKING,
                       ModeTrigger.NEED_IDENTIFIED),
        ModeTransition(ConversationMode.TRIAGE, ConversationMode.BOOKING,
                       ModeTrigger.NEED_IDENTIFIED),
        ModeTransition(ConversationMode.RESCUE, ConversationMode.BOOKING,
                       ModeTrigger.NEED_IDENTIFIED),

        # --- Confirmation ---
        ModeTransition(ConversationMode.BOOKING, ConversationMode.CONFIRMATION,
                       ModeTrigger.ALL_REQUIRED_FILLED),
        ModeTransition(ConversationMode.FREE, ConversationMode.CONFIRMATION,
                       ModeTrigger.ALL_REQUIRED_FILLED),
        ModeTransition(ConversationMode.TRIAGE, ConversationMode.CONFIRMATION,
                       ModeTrigger.ALL_REQUIRED_FILLED),
        ModeTransition(ConversationMode.RESCUE, ConversationMode.CONFIRMATION,
                       ModeTrigger.ALL_REQUIRED_FILLED),
        ModeTransition(ConversationMode.CONFIRMATION, ConversationMode.BOOKING,
                       ModeTrigger.SLOT_MISSING),

        # --- Rescue (from anywhere) ---
        *[
            ModeTransition(mode, ConversationMode.RESCUE, ModeTrigger.FRUSTRATION)
            for mode in _ALL_MODES
            if mode != ConversationMode.RESCUE
        ],
    ]

    def transition(self, mode: ConversationMode, trigger: ModeTrigger) -> ConversationMode:
        """
        Apply ``trigger`` to ``mode``.

        Raises:
            InvalidTransitionError: If no transition is defined.
        """
        for t in self.TRANSITIONS:
            if t.from_mode == mode and t.trigger == trigger:
                logger.debug(
                    "Mode transition: %s -> %s (trigger: %s)",
                    mode.value, t.to_mode.value, trigger.value,
                )
                return t.to_mode

        valid = [t.value for t in self.get_valid_triggers(mode)]
        raise InvalidTransitionError(
            f"No valid transition from '{mode.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def can_transition(self, mode: ConversationMode, trigger: ModeTrigger) -> bool:
        return any(t.from_mode == mode and t.trigger == trigger for t in self.TRANSITIONS)

    def get_valid_triggers(self, mode: ConversationMode) -> list[ModeTrigger]:
        """Return all triggers valid from ``mode``."""
        return [t.trigger for t in self.TRANSITIONS if t.from_mode == mode]

    def resolve(self, mode: ConversationMode, signals: TurnSignals) -> ConversationMode:
        """Compute the mode a turn ends in from its signals."""
        if signals.frustrated:
            if mode == ConversationMode.RESCUE:
                return mode
            return self.transition(mode, ModeTrigger.FRUSTRATION)

        if signals.all_required_filled:
            if mode == ConversationMode.CONFIRMATION:
                return mode
            return self.transition(mode, ModeTrigger.ALL_REQUIRED_FILLED)

        if mode == ConversationMode.CONFIRMATION:
            return self.transition(mode, ModeTrigger.SLOT_MISSING)

        if signals.problem_described and mode == ConversationMode.FREE:
            mode = self.transition(mode, ModeTrigger.PROBLEM_DESCRIBED)

        if signals.need_identified and self.can_transition(mode, ModeTrigger.NEED_IDENTIFIED):
            mode = self.transition(mode, ModeTrigger.NEED_IDENTIFIED)

        return mode
