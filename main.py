"""
Process entry point.

Builds the generator client once, injects it into the turn engine, and owns
its shutdown. Two modes:

Usage:
    Live text chat against OpenAI:  python main.py chat
    Offline console demo:           python main.py console
"""

import asyncio
import logging
import sys
import uuid

from receptionist.config import settings
from receptionist.conversation.engine import TurnEngine
from receptionist.llm.openai_generator import OpenAIGenerator
from receptionist.schemas.company_schema import CompanyConfig
from receptionist.schemas.conversation_schema import ConversationState

logger = logging.getLogger(__name__)


def _load_company() -> CompanyConfig:
    from console_demo import DEMO_COMPANY

    if settings.company_config_path:
        logger.info("Loading company config from %s", settings.company_config_path)
        return CompanyConfig.from_json_file(settings.company_config_path)
    logger.info("COMPANY_CONFIG_PATH not set, using the demo company")
    return CompanyConfig.from_dict(DEMO_COMPANY)


async def _run_chat_mode() -> None:
    """Text chat against the hosted generator (requires OPENAI_API_KEY)."""
    company = _load_company()
    generator = OpenAIGenerator(
        model=settings.model.llm_model,
        base_url=settings.model.openai_base_url,
    )
    engine = TurnEngine(generator, settings)
    state = ConversationState.start(f"CHAT-{uuid.uuid4().hex[:8]}", company.company_id)
    print(f"Thanks for calling {company.name}. How can I help you today?")
    try:
        while True:
            utterance = (await asyncio.to_thread(input, "> ")).strip()
            if utterance.lower() in ("quit", "exit", "q"):
                break
            if not utterance:
                continue
            result = await engine.process_turn(state, utterance, company)
            state = result.state
            print(result.reply)
    finally:
        await generator.aclose()


def _run_console_mode() -> None:
    """Start the offline console demo (no API keys required)."""
    from console_demo import ConsoleSession

    session = ConsoleSession(company=_load_company())
    asyncio.run(session.run())


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        asyncio.run(_run_chat_mode())
