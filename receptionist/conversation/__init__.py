from receptionist.conversation.engine import TurnEngine
from receptionist.conversation.fallback import FallbackPolicy, FallbackReply, FallbackTier
from receptionist.conversation.guardrails import ReplyGuardrail, TriggerGuardrail
from receptionist.conversation.output_parser import (
    GeneratorDecision,
    keyword_already_asks,
    parse_generator_output,
)
from receptionist.conversation.quick_answers import QuickAnswerMatcher, service_area_hint
from receptionist.conversation.slot_manager import MergeOutcome, SlotManager
from receptionist.conversation.state_machine import ModeStateMachine, ModeTrigger, TurnSignals

__all__ = [
    "TurnEngine",
    "FallbackPolicy",
    "FallbackReply",
    "FallbackTier",
    "ReplyGuardrail",
    "TriggerGuardrail",
    "GeneratorDecision",
    "keyword_already_asks",
    "parse_generator_output",
    "QuickAnswerMatcher",
    "service_area_hint",
    "MergeOutcome",
    "SlotManager",
    "ModeStateMachine",
    "ModeTrigger",
    "TurnSignals",
]
