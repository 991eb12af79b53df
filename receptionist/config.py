"""
Process-wide settings read from the environment (and a .env file if present).

Covers the generator model, its latency budget, and engine thresholds.
Company behavior (slots, catalog, scripts) is per-call data and lives in
``receptionist.schemas.company_schema`` instead.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

from receptionist.logging_context import CallContextFilter

load_dotenv()

logger = logging.getLogger(__name__)

N = TypeVar("N", int, float)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(call_id)s] %(levelname)s: %(message)s"


def _env_number(name: str, default: str, cast: Callable[[str], N]) -> N:
    """Read a numeric env var, naming the variable when it does not parse."""
    raw = os.getenv(name, default)
    try:
        return cast(raw)
    except (ValueError, TypeError):
        kind = "an integer" if cast is int else "a number"
        raise ValueError(f"{name} must be {kind}, got {raw!r}") from None


def _env_str(name: str) -> Optional[str]:
    return os.getenv(name) or None


@dataclass(frozen=True)
class ModelConfig:
    """Text generator settings. Temperature stays low and output small."""

    llm_model: str = os.getenv("LLM_MODEL", "gpt-4o-mini")
    llm_temperature: float = _env_number("LLM_TEMPERATURE", "0.2", float)
    llm_max_tokens: int = _env_number("LLM_MAX_TOKENS", "120", int)
    llm_timeout_sec: float = _env_number("LLM_TIMEOUT_SEC", "1.2", float)
    openai_base_url: Optional[str] = _env_str("OPENAI_BASE_URL")


@dataclass(frozen=True)
class EngineConfig:
    history_window: int = _env_number("HISTORY_WINDOW", "6", int)
    last_said_chars: int = _env_number("LAST_SAID_CHARS", "100", int)
    quick_answer_min_ratio: float = _env_number("QUICK_ANSWER_MIN_RATIO", "0.85", float)
    max_ack_chars: int = _env_number("MAX_ACK_CHARS", "240", int)


@dataclass(frozen=True)
class AppConfig:
    model: ModelConfig = field(default_factory=ModelConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    agent_name: str = os.getenv("AGENT_NAME", "front-desk")
    company_config_path: Optional[str] = _env_str("COMPANY_CONFIG_PATH")


def _validate_config(config: AppConfig) -> None:
    """Reject values outside the ranges the engine can work with."""
    model, engine = config.model, config.engine
    checks = [
        (0.0 <= model.llm_temperature <= 2.0,
         "LLM_TEMPERATURE must be between 0.0 and 2.0", model.llm_temperature),
        (model.llm_max_tokens >= 16, "LLM_MAX_TOKENS must be >= 16", model.llm_max_tokens),
        (model.llm_timeout_sec > 0, "LLM_TIMEOUT_SEC must be > 0", model.llm_timeout_sec),
        (engine.history_window >= 1, "HISTORY_WINDOW must be >= 1", engine.history_window),
        (engine.last_said_chars >= 1, "LAST_SAID_CHARS must be >= 1", engine.last_said_chars),
        (0.0 < engine.quick_answer_min_ratio <= 1.0,
         "QUICK_ANSWER_MIN_RATIO must be in (0.0, 1.0]", engine.quick_answer_min_ratio),
        (engine.max_ack_chars >= 20, "MAX_ACK_CHARS must be >= 20", engine.max_ack_chars),
    ]
    for ok, message, value in checks:
        if not ok:
            raise ValueError(f"{message}, got {value}")


def configure_logging(level: str) -> None:
    """Root handler whose records always carry the bound call id."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, CallContextFilter) for f in handler.filters):
            handler.addFilter(CallContextFilter())


def load_config() -> AppConfig:
    config = AppConfig()
    _validate_config(config)
    configure_logging(config.log_level)
    logger.info("Configuration loaded for agent '%s'", config.agent_name)
    return config


settings = load_config()
