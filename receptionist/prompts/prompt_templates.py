"""Per-turn prompt construction from company configuration and call state."""

from typing import Optional

from receptionist.llm.base import Message, MessageRole
from receptionist.prompts.system_prompts import (
    COMPANY_CONTEXT_TEMPLATE,
    OUTPUT_CONTRACT,
    VOICE_STYLE_RULES,
)
from receptionist.schemas.company_schema import BookingSlotSpec, CompanyConfig, StyleConfig
from receptionist.schemas.conversation_schema import (
    ConversationMode,
    ConversationState,
    HistoryTurn,
    Speaker,
)


def build_turn_prompt(
    company: CompanyConfig,
    state: ConversationState,
    needed: list[BookingSlotSpec],
    triage_hint: Optional[str] = None,
    area_hint: Optional[str] = None,
    rescue: bool = False,
    last_said_chars: int = 100,
) -> str:
    """Build the minimal system prompt for one generator call."""
    style = company.style
    parts: list[str] = [
        COMPANY_CONTEXT_TEMPLATE.format(
            name=company.name,
            trade=company.trade,
            tone=style.tone,
            max_words=style.max_reply_words,
        )
    ]

    if state.known_slots:
        collected = ", ".join(
            f"{slot_id}:{value}" for slot_id, value in state.known_slots.items() if value
        )
        parts.append(f"COLLECTED (never ask again): {collected}")
    if needed:
        parts.append("NEEDED, in order: " + ", ".join(spec.slot_id for spec in needed))
    else:
        parts.append("NEEDED: nothing. Use slot none.")

    if state.caller_id:
        parts.append(f"Caller ID on this call: {state.caller_id}")
    if triage_hint:
        parts.append(f"TRIAGE: {triage_hint}")
    if area_hint:
        parts.append(area_hint)
    if rescue:
        parts.append(f"RESCUE: {style.rescue_directive}")
    if state.running_summary:
        parts.append(f"Call so far: {state.running_summary}")

    last_said = state.last_agent_text()
    if last_said:
        parts.append(f'You last said: "{last_said[:last_said_chars]}"')

    return "\n".join(parts) + "\n" + VOICE_STYLE_RULES + OUTPUT_CONTRACT


def build_messages(
    system_prompt: str,
    history: list[HistoryTurn],
    utterance: str,
) -> list[Message]:
    """System prompt, then the recent transcript, then the current utterance."""
    messages = [Message(role=MessageRole.SYSTEM, content=system_prompt)]
    for turn in history:
        role = MessageRole.USER if turn.role == Speaker.CALLER else MessageRole.ASSISTANT
        messages.append(Message(role=role, content=turn.text))
    messages.append(Message(role=MessageRole.USER, content=utterance))
    return messages


def build_quick_answer_reply(
    answer: str,
    mode: ConversationMode,
    style: StyleConfig,
    pending_question: Optional[str] = None,
) -> str:
    """Splice a canned answer with a bridge back to the conversation."""
    if mode == ConversationMode.BOOKING and pending_question:
        return f"{answer} {style.booking_bridge} {pending_question}"
    if mode == ConversationMode.FREE:
        return f"{answer} {style.free_mode_bridge}"
    return answer


def build_triage_hint(
    service_name: Optional[str],
    route_to: Optional[str],
    triage_question: Optional[str],
) -> str:
    hint = f"Caller described a problem ({service_name or 'unspecified'})."
    if route_to:
        hint += f" It is usually handled by our {route_to.replace('_', ' ')} service."
    if triage_question:
        hint += f' If unclear, the ack may ask: "{triage_question}"'
    return hint
