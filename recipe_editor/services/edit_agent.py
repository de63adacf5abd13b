"""
Entry point of the conversational edit flow.

One call runs one turn: build the system prompt, let the turn runner drive
the model, classify the outcome and push everything through an event
stream. Nothing here keeps state between turns; the caller supplies the
current recipe and the conversation history every time.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from recipe_editor.app.config import Settings
from recipe_editor.app.domain.models import (
    ConversationMessage,
    ErrorEvent,
    Recipe,
    TerminalEvent,
)
from recipe_editor.app.infra.llm.base import ModelClient
from recipe_editor.services.edit_events import Event, EventStream
from recipe_editor.services.edit_outcome import INTERRUPTED_MESSAGE, classify_outcome
from recipe_editor.services.edit_tools import EDIT_TOOLS, ToolRegistry
from recipe_editor.services.edit_turn import (
    DEFAULT_MAX_STEPS,
    DEFAULT_TIMEOUT_SECONDS,
    TurnOutcome,
    TurnRunner,
    TurnState,
)
from recipe_editor.services.prompts import build_edit_system_prompt

log = logging.getLogger(__name__)

EventCallback = Callable[[Event], object]

# Turns keep running after the transport detaches; hold references until they finish
_background_turns: set[asyncio.Task] = set()


class EditAgent:
    def __init__(
        self,
        client: ModelClient,
        registry: ToolRegistry = EDIT_TOOLS,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_steps: int = DEFAULT_MAX_STEPS,
        timeout_discards_partial: bool = True,
    ) -> None:
        self._runner = TurnRunner(
            client,
            registry,
            timeout_seconds=timeout_seconds,
            max_steps=max_steps,
        )
        self.timeout_discards_partial = timeout_discards_partial

    @classmethod
    def from_settings(cls, client: ModelClient, settings: Settings) -> "EditAgent":
        return cls(
            client,
            timeout_seconds=settings.EDIT_TIMEOUT_SECONDS,
            max_steps=settings.EDIT_MAX_STEPS,
            timeout_discards_partial=settings.EDIT_TIMEOUT_DISCARDS_PARTIAL,
        )

    async def run_turn(
        self,
        current_recipe: Recipe,
        history: Sequence[ConversationMessage],
        prompt: str,
        allowed_tags: Sequence[str],
        on_event: EventCallback,
    ) -> TerminalEvent:
        try:
            system_prompt = build_edit_system_prompt(current_recipe, allowed_tags)
        except Exception as exc:
            log.exception("edit.prompt_failed")
            outcome = TurnOutcome(state=TurnState.MODEL_ERROR, draft=current_recipe, error=str(exc))
        else:
            outcome = await self._runner.run(
                current_recipe,
                history,
                prompt,
                system_prompt,
                on_progress=on_event,
            )

        terminal = classify_outcome(outcome, timeout_discards_partial=self.timeout_discards_partial)
        on_event(terminal)
        return terminal

    def stream_turn(
        self,
        current_recipe: Recipe,
        history: Sequence[ConversationMessage],
        prompt: str,
        allowed_tags: Sequence[str],
    ) -> EventStream:
        """
        Start the turn in the background and return its event stream.
        Must be called from a running event loop.
        """
        stream = EventStream()
        task = asyncio.create_task(
            self.run_turn(current_recipe, history, prompt, allowed_tags, on_event=stream.emit),
            name="edit-turn",
        )
        _background_turns.add(task)
        task.add_done_callback(_background_turns.discard)
        task.add_done_callback(lambda done: _close_unterminated(done, stream))
        return stream


def _close_unterminated(task: asyncio.Task, stream: EventStream) -> None:
    # The turn ended without classifying its outcome, so the draft is unknown here
    if stream.terminated:
        return
    if task.cancelled():
        log.warning("edit.turn_interrupted reason=cancelled")
    elif task.exception() is not None:
        log.error("edit.turn_crashed error=%s", task.exception())
    stream.emit(ErrorEvent(message=INTERRUPTED_MESSAGE))


def run_edit_turn(
    client: ModelClient,
    current_recipe: Recipe,
    history: Sequence[ConversationMessage],
    prompt: str,
    allowed_tags: Sequence[str],
    *,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    max_steps: int = DEFAULT_MAX_STEPS,
    timeout_discards_partial: bool = True,
    registry: Optional[ToolRegistry] = None,
) -> EventStream:
    """Run one edit turn and expose it as an ordered stream of agent events."""
    agent = EditAgent(
        client,
        registry or EDIT_TOOLS,
        timeout_seconds=timeout_seconds,
        max_steps=max_steps,
        timeout_discards_partial=timeout_discards_partial,
    )
    return agent.stream_turn(current_recipe, history, prompt, allowed_tags)
