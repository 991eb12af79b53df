"""
Offline console demo: runs real turns through the engine without any API keys.

Everything except the text generator is the production path: detector,
quick answers, slot model, guardrails, mode machine and fallback. The
generator is replaced by a small rule-based stand-in that files each caller
answer under the first slot still needed. No network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario decline
    python console_demo.py --scenario rescue
"""

import argparse
import asyncio
import json
import re
import uuid
from typing import Optional

from receptionist.config import settings
from receptionist.conversation.engine import TurnEngine
from receptionist.llm.base import GeneratorRequest, GeneratorResponse, MessageRole, TextGenerator
from receptionist.schemas.company_schema import CompanyConfig
from receptionist.schemas.conversation_schema import ConversationState, TurnResult

BLUE = "\033[94m"
GREEN = "\033[92m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

DEMO_COMPANY: dict = {
    "company_id": "gulf-coast-air",
    "name": "Gulf Coast Air",
    "trade": "heating and air conditioning",
    "booking_slots": [
        {"slot_id": "name", "question": "Can I get your full name?", "confirm_back": True},
        {"slot_id": "phone", "question": "What's the best phone number to reach you?",
         "confirm_back": True, "offer_caller_id": True},
        {"slot_id": "address", "question": "What's the address for the service?",
         "confirm_back": True},
        {"slot_id": "time", "question": "What day and time works best for you?",
         "confirm_back": True},
    ],
    "forbidden_phrases": ["guarantee", "free of charge"],
    "service_catalog": [
        {"service_key": "ac_repair", "display_name": "AC Repair",
         "intent_keywords": ["ac repair", "air conditioner"],
         "intent_phrases": ["ac is not working", "fix my ac"]},
        {"service_key": "ac_not_cooling", "display_name": "AC not cooling",
         "service_type": "symptom", "routes_to": ["ac_repair"],
         "intent_keywords": ["warm air", "not cooling"],
         "intent_phrases": ["blowing warm air"],
         "triage_prompts": [{"question": "Is the outdoor unit running?"}]},
        {"service_key": "duct_cleaning", "display_name": "Duct Cleaning", "enabled": False,
         "intent_keywords": ["duct cleaning"], "intent_phrases": ["clean ducts"],
         "decline_message": "We don't offer duct cleaning, but we can help with AC repair.",
         "alternative_services": ["ac_repair"]},
        {"service_key": "billing", "display_name": "Billing", "service_type": "admin",
         "intent_keywords": ["billing question", "invoice", "bill"],
         "intent_phrases": ["pay my bill"],
         "admin_handler": {"action": "transfer", "transfer_to": "billing"}},
    ],
    "quick_answers": [
        {"question": "What are your hours?", "category": "hours",
         "answer": "We're open Monday through Saturday, seven to six.",
         "triggers": ["your hours", "are you open"]},
    ],
    "service_areas": ["Naples", "Fort Myers", "Bonita Springs"],
}


class OfflineGenerator(TextGenerator):
    """
    Rule-based stand-in for the hosted generator.

    Reads the NEEDED line of the system prompt and treats each caller answer
    after the first turn as the value of the first needed slot.
    """

    _NEEDED_RE = re.compile(r"^NEEDED, in order: (.+)$", re.MULTILINE)
    _ACKS = ["Got it.", "Thanks.", "Perfect.", "Okay, great."]

    def __init__(self) -> None:
        self.calls = 0

    async def generate(self, request: GeneratorRequest) -> GeneratorResponse:
        self.calls += 1
        system = request.messages[0].content
        match = self._NEEDED_RE.search(system)
        needed = [s.strip() for s in match.group(1).split(",")] if match else []
        utterance = request.messages[-1].content
        answered = any(m.role == MessageRole.ASSISTANT for m in request.messages)

        values: dict[str, str] = {}
        if answered and needed:
            values[needed.pop(0)] = utterance
        payload = {
            "slot": needed[0] if needed else "none",
            "ack": self._ACKS[self.calls % len(self._ACKS)] if answered else "Sure, I can help with that.",
            "values": values,
        }
        return GeneratorResponse(content=json.dumps(payload), model="offline")


class ConsoleSession:
    """Runs a conversation against the turn engine in the terminal."""

    SCENARIOS: dict[str, list[str]] = {
        "booking": [
            "Hi, my AC is not working, can you send someone out?",
            "Maria Lopez",
            "yes that's fine, 239 555 0142",
            "14 Palm Street, Naples, FL 34102",
            "Tomorrow morning",
        ],
        "decline": [
            "Do you clean ducts?",
            "Okay, what are your hours?",
        ],
        "admin": [
            "I have a question about my invoice, I need to pay my bill",
        ],
        "rescue": [
            "I need to book an appointment",
            "This is ridiculous, I already told you, let me talk to a human",
        ],
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self, company: Optional[CompanyConfig] = None,
                 engine: Optional[TurnEngine] = None) -> None:
        self.company = company or CompanyConfig.from_dict(DEMO_COMPANY)
        self.engine = engine or TurnEngine(OfflineGenerator())
        self.state = ConversationState.start(
            call_id=f"DEMO-{uuid.uuid4().hex[:8]}",
            company_id=self.company.company_id,
            caller_id="2395550142",
        )

    def agent_say(self, text: str) -> None:
        print(f"{GREEN}{BOLD}[Agent]{RESET} {GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  FRONT DESK - {title}{RESET}")
        print(f"{BOLD}  Company: {self.company.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()
        self.agent_say(f"Thanks for calling {self.company.name}. How can I help you today?")

    def _summary(self, title: str) -> None:
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{DIM}  Mode: {self.state.mode.value}{RESET}")
        print(f"{DIM}  Slots: {self.state.known_slots}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    async def handle(self, text: str) -> TurnResult:
        result = await self.engine.process_turn(self.state, text, self.company)
        self.state = result.state
        self.agent_say(result.reply)
        trace = result.trace
        self.system_log(
            f"path={trace.path.value if trace.path else '?'} "
            f"mode={trace.mode_before.value}->{self.state.mode.value} "
            f"slot={trace.chosen_slot or '-'} {trace.latency_ms:.0f}ms"
        )
        return result

    async def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        for step in steps:
            print(f"\n{BLUE}[Caller] {RESET}{step}")
            await self.handle(step)
        self._summary(f"Scenario '{scenario}' complete.")

    async def run(self) -> None:
        self._banner("Console Demo (type 'quit' to exit)")
        while True:
            user_input = (await asyncio.to_thread(input, f"\n{BLUE}[Caller] {RESET}")).strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                break
            if len(user_input) > self.MAX_INPUT_LENGTH:
                self.agent_say("That was quite long. Could you keep it brief for me?")
                continue
            await self.handle(user_input)
        self._summary("Conversation complete.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    company = (
        CompanyConfig.from_json_file(settings.company_config_path)
        if settings.company_config_path else None
    )
    session = ConsoleSession(company=company)
    if args.scenario:
        asyncio.run(session.run_scenario(args.scenario))
    else:
        asyncio.run(session.run())


if __name__ == "__main__":
    main()
