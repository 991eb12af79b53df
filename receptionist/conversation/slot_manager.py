"""
Booking slot model: ordered fields, exact questions, and value merging.

Slots are requested strictly in ascending ``order``. A slot that already
holds a non-empty value is never requested again, and merging generator
extractions never overwrites a value the caller already gave.

Usage:
    manager = SlotManager(company.booking_slots)
    spec = manager.next_missing(state.known_slots)
    outcome = manager.merge(state, {"phone": "239 555 0142"})
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from receptionist.errors import ConfigurationError
from receptionist.schemas.company_schema import (
    AddressConfirmLevel,
    BookingSlotSpec,
    ServiceTypeVocabulary,
    SlotType,
)
from receptionist.schemas.conversation_schema import ConversationState
from receptionist.utils import normalize_phone, normalize_text

logger = logging.getLogger(__name__)

MIN_PHONE_DIGITS = 7
PARTIAL_FLAG = "partial"

SERVICE_REPAIR = "repair"
SERVICE_MAINTENANCE = "maintenance"
SERVICE_OTHER = "other"


def classify_service_type(text: str, vocabulary: ServiceTypeVocabulary) -> str:
    """Map a free-text service request onto repair / maintenance / other."""
    normalized = normalize_text(text)
    for keyword in vocabulary.repair:
        if normalize_text(keyword) in normalized:
            return SERVICE_REPAIR
    for keyword in vocabulary.maintenance:
        if normalize_text(keyword) in normalized:
            return SERVICE_MAINTENANCE
    return SERVICE_OTHER


def _trim_address(value: str, level: AddressConfirmLevel) -> str:
    parts = [p.strip() for p in value.split(",") if p.strip()]
    if not parts:
        return value.strip()
    if level == AddressConfirmLevel.STREET:
        return parts[0]
    if level == AddressConfirmLevel.STREET_CITY:
        return ", ".join(parts[:2])
    return ", ".join(parts)


@dataclass
class MergeOutcome:
    """What happened when extracted values were merged into the state."""

    added: dict[str, str] = field(default_factory=dict)
    conflicts: dict[str, str] = field(default_factory=dict)
    rejected: dict[str, str] = field(default_factory=dict)
    followup_question: Optional[str] = None
    followup_slot: Optional[str] = None


class SlotManager:
    """
    Ordered booking slot definitions for one company.

    The manager holds configuration only; collected values live in
    ``ConversationState.known_slots`` and are passed in on every call.
    """

    def __init__(self, specs: Iterable[BookingSlotSpec]) -> None:
        indexed = list(enumerate(specs))
        indexed.sort(key=lambda pair: (pair[1].order if pair[1].order is not None else pair[0], pair[0]))
        self._specs: list[BookingSlotSpec] = [spec for _, spec in indexed]
        self._by_id: dict[str, BookingSlotSpec] = {}
        for spec in self._specs:
            if spec.slot_id.lower() in (k.lower() for k in self._by_id):
                raise ConfigurationError(f"Duplicate slot_id in booking_slots: {spec.slot_id!r}")
            self._by_id[spec.slot_id] = spec

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def ordered_specs(self) -> list[BookingSlotSpec]:
        return list(self._specs)

    @property
    def slot_ids(self) -> list[str]:
        return [s.slot_id for s in self._specs]

    def get(self, slot_id: str) -> Optional[BookingSlotSpec]:
        return self._by_id.get(slot_id)

    def find(self, slot_id: str) -> Optional[BookingSlotSpec]:
        """Case-insensitive lookup used when validating generator output."""
        lowered = slot_id.lower()
        for spec in self._specs:
            if spec.slot_id.lower() == lowered:
                return spec
        return None

    # ------------------------------------------------------------------ #
    # Ordering
    # ------------------------------------------------------------------ #

    @staticmethod
    def _is_filled(known_slots: dict[str, str], slot_id: str) -> bool:
        return bool((known_slots.get(slot_id) or "").strip())

    def next_missing(self, known_slots: dict[str, str]) -> Optional[BookingSlotSpec]:
        """First required slot, in ascending order, without a value."""
        for spec in self._specs:
            if spec.required and not self._is_filled(known_slots, spec.slot_id):
                return spec
        return None

    def missing_required(self, known_slots: dict[str, str]) -> list[BookingSlotSpec]:
        return [
            spec for spec in self._specs
            if spec.required and not self._is_filled(known_slots, spec.slot_id)
        ]

    def missing_optional(self, known_slots: dict[str, str]) -> list[BookingSlotSpec]:
        return [
            spec for spec in self._specs
            if not spec.required and not self._is_filled(known_slots, spec.slot_id)
        ]

    def all_required_filled(self, known_slots: dict[str, str]) -> bool:
        return bool(self._specs) and not self.missing_required(known_slots)

    # ------------------------------------------------------------------ #
    # Questions
    # ------------------------------------------------------------------ #

    def question_for(self, spec: BookingSlotSpec, state: ConversationState) -> str:
        """The exact text to ask for ``spec``. Never paraphrased."""
        if spec.type == SlotType.PHONE and spec.offer_caller_id and state.caller_id:
            return spec.caller_id_prompt.replace(
                "{caller_id}", normalize_phone(state.caller_id)
            )
        return spec.question

    def display_value(self, spec: BookingSlotSpec, value: str) -> str:
        """How a collected value is spoken back to the caller."""
        if spec.type == SlotType.NAME and spec.use_first_name_only:
            return value.split()[0] if value.split() else value
        if spec.type == SlotType.ADDRESS:
            return _trim_address(value, spec.address_confirm_level)
        return value

    def confirmation_summary(
        self, known_slots: dict[str, str], intro: str, question: str
    ) -> Optional[str]:
        """Read-back of the confirm-back slots, or None if none are flagged."""
        items = []
        for spec in self._specs:
            if not spec.confirm_back or not self._is_filled(known_slots, spec.slot_id):
                continue
            value = known_slots[spec.slot_id]
            # Read the full name back so spelling can be corrected.
            shown = value if spec.type == SlotType.NAME else self.display_value(spec, value)
            if spec.confirm_prompt:
                shown = spec.confirm_prompt.replace("{value}", shown)
            items.append(shown)
        if not items:
            return None
        if len(items) == 1:
            listed = items[0]
        else:
            listed = ", ".join(items[:-1]) + f", and {items[-1]}"
        return f"{intro} {listed}. {question}"

    # ------------------------------------------------------------------ #
    # Merging
    # ------------------------------------------------------------------ #

    def _normalize(
        self, spec: BookingSlotSpec, value: str, vocabulary: ServiceTypeVocabulary
    ) -> Optional[str]:
        """Apply slot-type normalization; None means the value is unusable."""
        value = " ".join(value.split())
        if not value:
            return None
        if spec.type == SlotType.PHONE:
            digits = re.sub(r"[^\d]", "", value)
            if len(digits) < MIN_PHONE_DIGITS:
                return None
            return normalize_phone(value)
        if spec.type == SlotType.NAME:
            return value.title()
        if spec.type == SlotType.SERVICE_TYPE:
            return classify_service_type(value, vocabulary)
        if spec.type == SlotType.EMAIL:
            return value.replace(" ", "").lower()
        return value

    def merge(
        self,
        state: ConversationState,
        extracted: dict[str, str],
        vocabulary: Optional[ServiceTypeVocabulary] = None,
    ) -> MergeOutcome:
        """
        Merge generator-extracted values into ``state.known_slots`` in place.

        Only non-empty values for configured slots are taken. Existing
        non-empty values are kept; a differing extraction is reported as a
        conflict. Merging the same extraction twice changes nothing.
        """
        vocabulary = vocabulary or ServiceTypeVocabulary()
        outcome = MergeOutcome()
        name_spec = next((s for s in self._specs if s.type == SlotType.NAME), None)

        for raw_id, raw_value in extracted.items():
            spec = self.find(str(raw_id))
            if spec is None or raw_value is None:
                continue
            value = self._normalize(spec, str(raw_value), vocabulary)
            if value is None:
                outcome.rejected[spec.slot_id] = str(raw_value)
                continue

            existing = state.known_slots.get(spec.slot_id, "")
            if existing.strip():
                if existing != value:
                    outcome.conflicts[spec.slot_id] = value
                    logger.info(
                        "Keeping existing '%s' value; ignoring extracted %r",
                        spec.slot_id, value,
                    )
                continue

            if spec is name_spec and spec.ask_full_name:
                followup = self._merge_name(state, spec, value, outcome)
                if followup:
                    outcome.followup_question = followup
                    outcome.followup_slot = spec.slot_id
                continue

            state.known_slots[spec.slot_id] = value
            outcome.added[spec.slot_id] = value
            logger.debug("Slot '%s' set to '%s'", spec.slot_id, value)

        return outcome

    def _merge_name(
        self,
        state: ConversationState,
        spec: BookingSlotSpec,
        value: str,
        outcome: MergeOutcome,
    ) -> Optional[str]:
        """Hold a first-name-only answer for exactly one follow-up."""
        if len(value.split()) > 1:
            state.known_slots[spec.slot_id] = value
            state.partial_name = None
            state.slot_flags.pop(spec.slot_id, None)
            outcome.added[spec.slot_id] = value
            return None

        if state.partial_name is None:
            state.partial_name = value
            logger.debug("Holding partial name %r for one follow-up", value)
            return spec.last_name_question

        if state.partial_name.lower() == value.lower():
            return None

        # A different single word after the follow-up is the last name.
        full = f"{state.partial_name} {value}"
        state.known_slots[spec.slot_id] = full
        state.partial_name = None
        outcome.added[spec.slot_id] = full
        return None

    def settle_partial_name(self, state: ConversationState) -> Optional[str]:
        """
        Accept a held first name as the slot value, flagged as partial.

        Called by the engine on the turn after the follow-up was asked, so a
        partial name costs the caller at most one extra question.
        """
        spec = next((s for s in self._specs if s.type == SlotType.NAME), None)
        if spec is None or not state.partial_name:
            return None
        accepted = state.partial_name
        state.partial_name = None
        if self._is_filled(state.known_slots, spec.slot_id):
            return None
        state.known_slots[spec.slot_id] = accepted
        state.slot_flags[spec.slot_id] = PARTIAL_FLAG
        logger.info("Accepting partial name for '%s' after one follow-up", spec.slot_id)
        return accepted
