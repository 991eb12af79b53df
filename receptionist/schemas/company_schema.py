"""
Per-company behavior configuration.

Every field has a documented default so a company document only needs to
carry what it overrides. The whole object is resolved once per call and
treated as read-only by the engine.
"""

import re
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from receptionist.schemas.catalog_schema import ServiceCatalogEntry


class SlotType(str, Enum):
    NAME = "name"
    PHONE = "phone"
    ADDRESS = "address"
    TIME = "time"
    SERVICE_TYPE = "service_type"
    EMAIL = "email"
    TEXT = "text"


class AddressConfirmLevel(str, Enum):
    STREET = "street"
    STREET_CITY = "street_city"
    FULL = "full"


# Checked in order; time/date come before service so "service_time" stays a time.
_SLOT_TYPE_HINTS: list[tuple[str, SlotType]] = [
    ("name", SlotType.NAME),
    ("phone", SlotType.PHONE),
    ("email", SlotType.EMAIL),
    ("address", SlotType.ADDRESS),
    ("time", SlotType.TIME),
    ("date", SlotType.TIME),
    ("service", SlotType.SERVICE_TYPE),
]

_SLOT_ID_SEPARATORS_RE = re.compile(r"[_\-\s.]+")


def infer_slot_type(slot_id: str) -> SlotType:
    """Infer a type from whole slot id segments first, then from fragments."""
    lowered = slot_id.lower()
    segments = set(_SLOT_ID_SEPARATORS_RE.split(lowered))
    for fragment, slot_type in _SLOT_TYPE_HINTS:
        if fragment in segments:
            return slot_type
    for fragment, slot_type in _SLOT_TYPE_HINTS:
        if fragment in lowered:
            return slot_type
    return SlotType.TEXT


class BookingSlotSpec(BaseModel):
    """One field to collect from the caller, with its verbatim question."""

    slot_id: str
    question: str
    label: Optional[str] = None
    type: Optional[SlotType] = None
    required: bool = True
    # Filled from list position by CompanyConfig when omitted.
    order: Optional[int] = None
    confirm_back: bool = False
    # Read-back wording, e.g. "your number as {value}". Plain value when None.
    confirm_prompt: Optional[str] = None

    # name
    ask_full_name: bool = True
    use_first_name_only: bool = True
    last_name_question: str = "And what's your last name?"

    # phone
    offer_caller_id: bool = False
    caller_id_prompt: str = "Is {caller_id} the best number to reach you?"

    # address
    address_confirm_level: AddressConfirmLevel = AddressConfirmLevel.STREET_CITY

    @field_validator("slot_id")
    @classmethod
    def _normalize_slot_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("slot_id must not be empty")
        return value

    @field_validator("question")
    @classmethod
    def _require_question(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("question must not be empty")
        return value

    @model_validator(mode="after")
    def _fill_type_and_label(self) -> "BookingSlotSpec":
        if self.type is None:
            self.type = infer_slot_type(self.slot_id)
        if self.label is None:
            self.label = self.slot_id.replace("_", " ")
        return self


class StyleConfig(BaseModel):
    """Conversation style and the fixed connective phrases the engine uses."""

    tone: str = "warm, calm and efficient"
    max_reply_words: int = Field(default=30, ge=5)
    default_ack: str = "Okay."
    booking_bridge: str = "Now, back to getting you scheduled."
    free_mode_bridge: str = (
        "Is there anything else I can help you with, or would you like to schedule service?"
    )
    confirmation_intro: str = "Just to confirm, I have"
    confirmation_question: str = "Is all of that correct?"
    rescue_directive: str = (
        "The caller sounds frustrated. Apologize briefly, do not argue, "
        "and offer to have a team member call them back."
    )


class TriggerConfig(BaseModel):
    """Phrase lists that drive mode changes. Matched case-insensitively."""

    frustration: list[str] = Field(default_factory=lambda: [
        "this is ridiculous", "i already told you", "you're not listening",
        "this is useless", "unacceptable",
    ])
    escalation: list[str] = Field(default_factory=lambda: [
        "speak to a person", "real person", "talk to a human",
        "manager", "supervisor",
    ])
    describing_problem: list[str] = Field(default_factory=lambda: [
        "not working", "broken", "stopped working", "leaking",
        "making a noise", "won't turn on",
    ])
    wants_booking: list[str] = Field(default_factory=lambda: [
        "schedule", "book", "appointment", "send someone", "come out",
    ])


class FallbackTemplates(BaseModel):
    """Tiered replies for turns the engine could not understand."""

    tier1: str = "I'm sorry, the line cut out for a second. Could you say that again?"
    tier2: str = (
        "I'm still having a little trouble hearing you. "
        "Could you repeat that a bit more slowly?"
    )
    tier3: str = (
        "I apologize, I'm having trouble understanding. "
        "Would you like me to have someone from our team call you back?"
    )
    config_error: str = (
        "Thanks for your patience. Let me have someone from our office "
        "get right back to you."
    )


class QuickAnswer(BaseModel):
    """A pre-authored answer to a common factual question."""

    question: str
    answer: str
    triggers: list[str] = Field(default_factory=list)
    category: str = "general"


class ServiceTypeVocabulary(BaseModel):
    """Keywords used to classify free-text service requests."""

    repair: list[str] = Field(default_factory=lambda: [
        "repair", "fix", "broken", "not working", "leak", "stopped",
        "noise", "won't", "emergency",
    ])
    maintenance: list[str] = Field(default_factory=lambda: [
        "maintenance", "tune up", "tuneup", "checkup", "check up",
        "inspection", "cleaning", "annual",
    ])


class CompanyConfig(BaseModel):
    """Everything the engine needs to know about one company."""

    company_id: str
    name: str
    trade: str = "home services"
    booking_slots: list[BookingSlotSpec] = Field(default_factory=list)
    style: StyleConfig = Field(default_factory=StyleConfig)
    forbidden_phrases: list[str] = Field(default_factory=list)
    triggers: TriggerConfig = Field(default_factory=TriggerConfig)
    fallback: FallbackTemplates = Field(default_factory=FallbackTemplates)
    service_catalog: list[ServiceCatalogEntry] = Field(default_factory=list)
    quick_answers: list[QuickAnswer] = Field(default_factory=list)
    service_areas: list[str] = Field(default_factory=list)
    service_type_vocabulary: ServiceTypeVocabulary = Field(
        default_factory=ServiceTypeVocabulary
    )

    @model_validator(mode="after")
    def _assign_slot_order(self) -> "CompanyConfig":
        for index, slot in enumerate(self.booking_slots):
            if slot.order is None:
                slot.order = index
        return self

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CompanyConfig":
        return cls.model_validate(data)

    @classmethod
    def from_json_file(cls, path: Union[str, Path]) -> "CompanyConfig":
        return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
