"""
Text generator interface.

The turn engine depends only on ``TextGenerator``. Concrete backends are
constructed by the process bootstrap and injected, so the engine never owns
a network client.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """One chat message sent to the generator."""
    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


@dataclass
class GeneratorRequest:
    """A single bounded generation request."""
    messages: list[Message]
    temperature: float = 0.2
    max_tokens: int = 120
    response_schema: Optional[dict[str, Any]] = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class GeneratorResponse:
    """Raw generator output plus usage accounting."""
    content: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    model: Optional[str] = None
    finish_reason: Optional[str] = None


class TextGenerator(ABC):
    """Abstract text generation backend."""

    @abstractmethod
    async def generate(self, request: GeneratorRequest) -> GeneratorResponse:
        """
        Produce one completion for ``request``.

        Raises:
            GeneratorError: On transport failures or an empty response.
        """

    async def aclose(self) -> None:
        """Release network resources. Owned by whoever built the generator."""
        return None
