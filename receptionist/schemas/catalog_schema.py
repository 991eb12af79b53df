"""Service catalog data models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ServiceType(str, Enum):
    WORK = "work"
    SYMPTOM = "symptom"
    ADMIN = "admin"


class AdminAction(str, Enum):
    TRANSFER = "transfer"
    MESSAGE = "message"
    LINK = "link"


class AdminHandler(BaseModel):
    """Deterministic handler for operational requests (billing, dispatch)."""

    action: AdminAction = AdminAction.TRANSFER
    message: Optional[str] = None
    transfer_to: Optional[str] = None
    link_url: Optional[str] = None


class TriageAnswer(BaseModel):
    label: str
    route_hint: Optional[str] = None


class TriagePrompt(BaseModel):
    """A single light-triage question asked before routing a symptom."""

    question: str
    answers: list[TriageAnswer] = Field(default_factory=list)


class ServiceCatalogEntry(BaseModel):
    """
    One offerable service, symptom or admin request.

    Work entries are bookable. Symptom entries describe how callers phrase a
    problem and only route to work entries. Admin entries are answered by a
    fixed handler and never reach the generator.
    """

    service_key: str
    display_name: str
    service_type: ServiceType = ServiceType.WORK
    enabled: bool = True
    intent_keywords: list[str] = Field(default_factory=list)
    intent_phrases: list[str] = Field(default_factory=list)
    negative_keywords: list[str] = Field(default_factory=list)
    min_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    decline_message: Optional[str] = None
    alternative_services: list[str] = Field(default_factory=list)
    routes_to: list[str] = Field(default_factory=list)
    triage_prompts: list[TriagePrompt] = Field(default_factory=list)
    admin_handler: Optional[AdminHandler] = None

    @field_validator("service_key")
    @classmethod
    def _normalize_key(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("service_key must not be empty")
        return value

    @property
    def is_bookable(self) -> bool:
        return self.service_type == ServiceType.WORK
