# recipe_editor/app/infra/llm/base.py
"""
Abstract base class for text-generation model clients.
The edit turn loop is owned by the caller; a client only performs one
completion round at a time.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel

from recipe_editor.app.domain.models import ConversationMessage

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass(frozen=True)
class ToolSpec:
    """Declaration of a tool as shown to the model."""
    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ToolCall:
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: Optional[str] = None


@dataclass
class ToolResult:
    name: str
    output: str
    call_id: Optional[str] = None


@dataclass
class ModelReply:
    """One completion round: the tool calls the model asked for, in order."""
    tool_calls: list[ToolCall] = field(default_factory=list)
    text: Optional[str] = None
    # Provider-native content, replayed verbatim in the next round when present
    raw: Any = None


@dataclass
class ToolResultBatch:
    results: list[ToolResult] = field(default_factory=list)


TranscriptEntry = Union[ConversationMessage, ModelReply, ToolResultBatch]


class ModelClient(ABC):
    """
    Abstract interface for the text-generation model.

    Implementations:
    - GeminiModelClient: Google Gemini through google-genai
    - Scripted clients in tests
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        transcript: Sequence[TranscriptEntry],
        tools: Sequence[ToolSpec],
    ) -> ModelReply:
        """
        Run a single tool-calling round.

        Args:
            system_prompt: Instructions for the model
            transcript: Conversation so far, oldest first, including earlier
                tool calls and their results
            tools: Tools the model may call

        Returns:
            The model's reply; an empty tool_calls list means it stopped
        """
        pass

    @abstractmethod
    async def generate_text(self, prompt: str) -> str:
        """Single-shot text generation without tools."""
        pass

    @abstractmethod
    async def generate_structured(self, prompt: str, schema: Type[SchemaT]) -> SchemaT:
        """Single-shot generation constrained to a pydantic schema."""
        pass

    async def aclose(self) -> None:
        return None
