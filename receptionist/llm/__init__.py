from receptionist.llm.base import (
    GeneratorRequest,
    GeneratorResponse,
    Message,
    MessageRole,
    TextGenerator,
)
from receptionist.llm.openai_generator import OpenAIGenerator

__all__ = [
    "TextGenerator",
    "GeneratorRequest",
    "GeneratorResponse",
    "Message",
    "MessageRole",
    "OpenAIGenerator",
]
