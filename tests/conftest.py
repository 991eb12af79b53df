"""Shared test fixtures and helpers."""

import asyncio
import json
from typing import Optional, Union

import pytest

from receptionist.catalog.service_catalog import ServiceCatalog
from receptionist.config import AppConfig, EngineConfig, ModelConfig
from receptionist.conversation.slot_manager import SlotManager
from receptionist.conversation.state_machine import ModeStateMachine
from receptionist.llm.base import GeneratorRequest, GeneratorResponse, TextGenerator
from receptionist.schemas.catalog_schema import ServiceCatalogEntry
from receptionist.schemas.company_schema import CompanyConfig
from receptionist.schemas.conversation_schema import ConversationState

COMPANY_DATA: dict = {
    "company_id": "acme-hvac",
    "name": "Acme Heating and Air",
    "trade": "HVAC",
    "booking_slots": [
        {"slot_id": "name", "question": "Can I get your full name?", "confirm_back": True},
        {"slot_id": "phone", "question": "What's the best number to reach you?",
         "confirm_back": True},
        {"slot_id": "address", "question": "What's the service address?",
         "confirm_back": True},
        {"slot_id": "time", "question": "When would you like us to come out?",
         "confirm_back": True},
    ],
    "forbidden_phrases": ["guarantee"],
    "service_catalog": [
        {"service_key": "ac_repair", "display_name": "AC Repair",
         "intent_keywords": ["ac repair", "air conditioner repair"],
         "intent_phrases": ["fix my ac"],
         "negative_keywords": ["maintenance"]},
        {"service_key": "ac_maintenance", "display_name": "AC Maintenance",
         "intent_keywords": ["ac maintenance", "tune up"],
         "intent_phrases": ["need ac maintenance"],
         "negative_keywords": ["repair"]},
        {"service_key": "ac_not_cooling", "display_name": "AC not cooling",
         "service_type": "symptom", "routes_to": ["ac_repair"],
         "intent_keywords": ["not cooling", "warm air"],
         "intent_phrases": ["blowing warm air"],
         "triage_prompts": [{"question": "Is the outdoor unit running?"}]},
        {"service_key": "duct_cleaning", "display_name": "Duct Cleaning", "enabled": False,
         "intent_keywords": ["duct cleaning"],
         "intent_phrases": ["clean ducts"],
         "decline_message": "I'm sorry, we don't offer duct cleaning.",
         "alternative_services": ["ac_maintenance"]},
        {"service_key": "billing", "display_name": "Billing", "service_type": "admin",
         "intent_keywords": ["invoice", "bill", "billing"],
         "intent_phrases": ["pay my bill"],
         "admin_handler": {"action": "transfer", "transfer_to": "billing",
                           "message": "Let me transfer you to our billing team."}},
    ],
    "quick_answers": [
        {"question": "What are your hours?", "category": "hours",
         "answer": "We're open Monday through Friday, eight to five.",
         "triggers": ["your hours", "are you open"]},
    ],
    "service_areas": ["Naples", "Fort Myers"],
}


def make_company(**overrides) -> CompanyConfig:
    data = json.loads(json.dumps(COMPANY_DATA))
    data.update(overrides)
    return CompanyConfig.from_dict(data)


def make_config(timeout: float = 1.0, **engine_overrides) -> AppConfig:
    return AppConfig(
        model=ModelConfig(llm_timeout_sec=timeout),
        engine=EngineConfig(**engine_overrides),
    )


def decision(slot: str = "none", ack: str = "Okay.", **values: str) -> str:
    """Serialize a generator decision the way a compliant model would."""
    payload: dict = {"slot": slot, "ack": ack}
    if values:
        payload["values"] = values
    return json.dumps(payload)


class FakeGenerator(TextGenerator):
    """
    Scripted generator that records every request.

    Each scripted item is returned in order: a string is the raw completion,
    an exception instance is raised, and ``"SLEEP"`` blocks past any timeout.
    """

    def __init__(self, script: Optional[list[Union[str, Exception]]] = None) -> None:
        self.script = list(script or [])
        self.requests: list[GeneratorRequest] = []
        self.closed = False

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def generate(self, request: GeneratorRequest) -> GeneratorResponse:
        self.requests.append(request)
        item = self.script.pop(0) if self.script else decision()
        if isinstance(item, Exception):
            raise item
        if item == "SLEEP":
            await asyncio.sleep(10)
        return GeneratorResponse(content=item, prompt_tokens=50, completion_tokens=10, model="fake")

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def company() -> CompanyConfig:
    return make_company()


@pytest.fixture
def catalog(company) -> ServiceCatalog:
    return ServiceCatalog(company.service_catalog)


@pytest.fixture
def slot_manager(company) -> SlotManager:
    return SlotManager(company.booking_slots)


@pytest.fixture
def state_machine() -> ModeStateMachine:
    return ModeStateMachine()


@pytest.fixture
def state() -> ConversationState:
    return ConversationState.start("CA-test-001", "acme-hvac")


def entry(**fields) -> ServiceCatalogEntry:
    fields.setdefault("display_name", fields["service_key"].replace("_", " ").title())
    return ServiceCatalogEntry(**fields)
