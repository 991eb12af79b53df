"""
Validation and repair of raw generator output.

The generator is asked for ``{"slot": ..., "ack": ..., "values": {...}}``
but nothing downstream trusts that it complied. Anything unparseable is
repaired into a plain acknowledgment with no slot, and any slot that is
not a configured slot id is coerced to ``"none"``.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from receptionist.conversation.slot_manager import SlotManager
from receptionist.schemas.company_schema import BookingSlotSpec, SlotType
from receptionist.utils import strip_control_chars

logger = logging.getLogger(__name__)

NO_SLOT = "none"

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_JSON_PUNCTUATION_RE = re.compile(r"[{}\[\]\"\\]")
_JSON_KEY_RE = re.compile(r'"\s*\w+\s*"\s*:')
# A truncated object still carries the ack text up to where it was cut.
_PARTIAL_ACK_RE = re.compile(r'"ack"\s*:\s*"([^"]*)')
_SLOT_DELIMITERS = "\"'`<>()[]{}:,. \t"

# Decides whether an acknowledgment already asks for the given slot.
AlreadyAsksPredicate = Callable[[str, BookingSlotSpec], bool]

_SLOT_TYPE_PATTERNS: dict[SlotType, re.Pattern] = {
    SlotType.NAME: re.compile(r"\b(your name|who am i speaking|name for)\b", re.IGNORECASE),
    SlotType.PHONE: re.compile(r"\b(phone|number to reach|call you back at|best number)\b", re.IGNORECASE),
    SlotType.ADDRESS: re.compile(r"\b(address|where are you located|street)\b", re.IGNORECASE),
    SlotType.TIME: re.compile(r"\b(what time|when would|which day|what day|works best)\b", re.IGNORECASE),
    SlotType.EMAIL: re.compile(r"\b(email|e-mail)\b", re.IGNORECASE),
    SlotType.SERVICE_TYPE: re.compile(r"\b(repair or maintenance|what kind of service|type of service)\b", re.IGNORECASE),
}


def keyword_already_asks(ack: str, spec: BookingSlotSpec) -> bool:
    """Default predicate: the ack ends with a question or names the slot's subject."""
    text = ack.strip()
    if not text:
        return False
    if text.endswith("?"):
        return True
    pattern = _SLOT_TYPE_PATTERNS.get(spec.type)
    return bool(pattern and pattern.search(text))


@dataclass
class GeneratorDecision:
    """The engine's view of one generator response after repair."""
    slot: str = NO_SLOT
    ack: str = ""
    values: dict[str, str] = field(default_factory=dict)
    repaired: bool = False


def _clean_raw_text(raw: str) -> str:
    partial = _PARTIAL_ACK_RE.search(raw)
    if partial:
        raw = partial.group(1)
    elif raw.lstrip().startswith("{"):
        return ""
    return strip_control_chars(_JSON_PUNCTUATION_RE.sub(" ", _JSON_KEY_RE.sub(" ", raw)))


def normalize_slot(value: Any, slot_manager: SlotManager) -> str:
    """Strip delimiters, keep the first token, lowercase; unknown ids become 'none'."""
    if not isinstance(value, str):
        return NO_SLOT
    token = value.strip().strip(_SLOT_DELIMITERS)
    token = token.split()[0].strip(_SLOT_DELIMITERS).lower() if token.split() else ""
    if not token or token == NO_SLOT:
        return NO_SLOT
    spec = slot_manager.find(token)
    return spec.slot_id if spec else NO_SLOT


def _load_object(raw: str) -> Optional[dict]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        match = _JSON_OBJECT_RE.search(raw)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def parse_generator_output(raw: str, slot_manager: SlotManager) -> GeneratorDecision:
    """
    Turn raw generator text into a ``GeneratorDecision``.

    ``slot`` and ``ack`` are required; ``values`` is optional. Output that
    does not meet the contract is repaired rather than rejected. A parsed
    object keeps its string ``ack`` and a missing slot becomes ``"none"``;
    an object without a usable ``ack`` yields an empty ack. Only when no
    object parses at all does the raw text (stripped of key names, control
    characters and JSON punctuation) become the ack.
    """
    raw = raw or ""
    data = _load_object(raw.strip())
    if data is None:
        logger.info("Generator output was not a JSON object, repairing")
        return GeneratorDecision(slot=NO_SLOT, ack=_clean_raw_text(raw), repaired=True)

    ack = data.get("ack")
    repaired = "slot" not in data or not isinstance(ack, str)
    if repaired:
        logger.info("Generator object broke the contract (keys: %s), repairing", sorted(data))

    values: dict[str, str] = {}
    raw_values = data.get("values")
    if isinstance(raw_values, dict):
        for key, value in raw_values.items():
            if value is None or isinstance(value, (dict, list)):
                continue
            text = str(value).strip()
            if text:
                values[str(key)] = text

    slot = normalize_slot(data.get("slot"), slot_manager)
    if slot == NO_SLOT and isinstance(data.get("slot"), str) and data["slot"].strip().lower() != NO_SLOT:
        logger.info("Generator chose unknown slot %r, coerced to none", data["slot"])

    return GeneratorDecision(
        slot=slot,
        ack=strip_control_chars(ack) if isinstance(ack, str) else "",
        values=values,
        repaired=repaired,
    )
