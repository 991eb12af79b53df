"""Conversation state, turn results and diagnostic traces."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ConversationMode(str, Enum):
    FREE = "free"
    BOOKING = "booking"
    TRIAGE = "triage"
    RESCUE = "rescue"
    CONFIRMATION = "confirmation"


class Speaker(str, Enum):
    CALLER = "caller"
    AGENT = "agent"


class HistoryTurn(BaseModel):
    """A single line of the call transcript."""

    role: Speaker
    text: str


class ConversationState(BaseModel):
    """
    Everything known about one in-progress call.

    The telephony layer owns this object between turns. The engine receives
    it, returns an updated copy, and keeps nothing itself.
    """

    call_id: str
    company_id: str
    mode: ConversationMode = ConversationMode.FREE
    known_slots: dict[str, str] = Field(default_factory=dict)
    conversation_history: list[HistoryTurn] = Field(default_factory=list)
    miss_count: int = 0
    running_summary: Optional[str] = None
    caller_id: Optional[str] = None
    detected_service: Optional[str] = None
    partial_name: Optional[str] = None
    slot_flags: dict[str, str] = Field(default_factory=dict)
    turn_count: int = 0

    @classmethod
    def start(
        cls, call_id: str, company_id: str, caller_id: Optional[str] = None
    ) -> "ConversationState":
        return cls(call_id=call_id, company_id=company_id, caller_id=caller_id)

    def recent_history(self, window: int) -> list[HistoryTurn]:
        """Return at most the last ``window`` transcript lines."""
        if window <= 0:
            return []
        return list(self.conversation_history[-window:])

    def last_agent_text(self) -> Optional[str]:
        for turn in reversed(self.conversation_history):
            if turn.role == Speaker.AGENT:
                return turn.text
        return None

    def has_slot(self, slot_id: str) -> bool:
        return bool(self.known_slots.get(slot_id, "").strip())


class TurnPath(str, Enum):
    """How a turn's reply was produced."""

    DETERMINISTIC_DECLINE = "deterministic_decline"
    DETERMINISTIC_ADMIN = "deterministic_admin"
    QUICK_ANSWER = "quick_answer"
    GENERATOR = "generator"
    FALLBACK = "fallback"
    CONFIG_ERROR = "config_error"


class TurnTrace(BaseModel):
    """Append-only diagnostic record of one turn. Never read back by the engine."""

    call_id: str
    turn_index: int
    utterance: str
    mode_before: ConversationMode
    mode_after: Optional[ConversationMode] = None
    path: Optional[TurnPath] = None
    detection: Optional[dict] = None
    next_slot: Optional[str] = None
    prompt_chars: int = 0
    generator_raw: Optional[str] = None
    generator_slot: Optional[str] = None
    chosen_slot: Optional[str] = None
    fallback_tier: Optional[str] = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0
    events: list[str] = Field(default_factory=list)

    def add_event(self, event: str) -> None:
        self.events.append(event)


class TurnResult(BaseModel):
    """What the transport layer gets back for each caller utterance."""

    reply: str
    state: ConversationState
    trace: TurnTrace
