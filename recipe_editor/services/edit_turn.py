"""
Turn runner: drives one bounded tool-calling exchange with the model.

The runner owns the draft for the duration of the turn. Tool effects land
strictly in invocation order and each one replaces the draft only after it
produced a complete new recipe.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Sequence

from recipe_editor.app.domain.models import ConversationMessage, ProgressEvent, Recipe
from recipe_editor.app.infra.llm.base import (
    ModelClient,
    ToolResult,
    ToolResultBatch,
    TranscriptEntry,
)
from recipe_editor.services.cancellation import CancellationToken
from recipe_editor.services.edit_tools import EDIT_TOOLS, ToolKind, ToolRegistry
from recipe_editor.services.errors import TurnCancelledError

log = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_MAX_STEPS = 5

ProgressCallback = Callable[[ProgressEvent], None]


class TurnState(str, Enum):
    RUNNING = "RUNNING"
    CLARIFY_REQUESTED = "CLARIFY_REQUESTED"
    FINALIZED = "FINALIZED"
    STEP_CAP_REACHED = "STEP_CAP_REACHED"
    TIMED_OUT = "TIMED_OUT"
    MODEL_ERROR = "MODEL_ERROR"
    # Model replied without any tool call and without finalizing
    STOPPED = "STOPPED"


@dataclass
class TurnOutcome:
    """Terminal condition of a turn, as seen by the outcome classifier."""
    state: TurnState
    draft: Recipe
    mutated: bool = False
    question: Optional[str] = None
    error: Optional[str] = None
    applied_tools: list[str] = field(default_factory=list)
    steps: int = 0
    elapsed_sec: float = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.state is not TurnState.RUNNING


def _ignore_progress(event: ProgressEvent) -> None:
    return None


class TurnRunner:
    def __init__(
        self,
        client: ModelClient,
        registry: ToolRegistry = EDIT_TOOLS,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_steps: int = DEFAULT_MAX_STEPS,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self._client = client
        self._registry = registry
        self.timeout_seconds = timeout_seconds
        self.max_steps = max_steps

    async def run(
        self,
        current_recipe: Recipe,
        history: Sequence[ConversationMessage],
        prompt: str,
        system_prompt: str,
        on_progress: ProgressCallback = _ignore_progress,
        token: Optional[CancellationToken] = None,
    ) -> TurnOutcome:
        token = token or CancellationToken()
        outcome = TurnOutcome(state=TurnState.RUNNING, draft=current_recipe.model_copy(deep=True))
        transcript: list[TranscriptEntry] = [*history, ConversationMessage(role="user", content=prompt)]
        tools = self._registry.specs()
        started = time.monotonic()

        token.arm(self.timeout_seconds)
        try:
            while outcome.state is TurnState.RUNNING:
                if outcome.steps >= self.max_steps:
                    outcome.state = TurnState.STEP_CAP_REACHED
                    break

                reply = await token.guard(self._client.complete(system_prompt, transcript, tools))
                outcome.steps += 1

                if not reply.tool_calls:
                    outcome.state = TurnState.STOPPED
                    break

                transcript.append(reply)
                results = ToolResultBatch()
                for call in reply.tool_calls:
                    tool = self._registry.resolve(call.name)
                    payload = tool.parse(call.arguments)
                    outcome.draft = tool.apply(payload, outcome.draft)

                    if not tool.mutates:
                        outcome.question = payload.question
                        outcome.state = TurnState.CLARIFY_REQUESTED
                        break

                    outcome.mutated = True
                    outcome.applied_tools.append(tool.name)
                    if tool.progress_label:
                        on_progress(ProgressEvent(label=tool.progress_label))

                    if tool.kind is ToolKind.FINALIZE:
                        outcome.state = TurnState.FINALIZED
                        break

                    results.results.append(
                        ToolResult(name=tool.name, output=tool.acknowledgement, call_id=call.call_id)
                    )

                if outcome.state is TurnState.RUNNING:
                    transcript.append(results)

        except TurnCancelledError as exc:
            outcome.state = TurnState.TIMED_OUT if token.timed_out else TurnState.MODEL_ERROR
            outcome.error = str(exc)
        except Exception as exc:
            log.exception("edit.turn_failed steps=%d applied=%s", outcome.steps, outcome.applied_tools)
            outcome.state = TurnState.MODEL_ERROR
            outcome.error = str(exc)
        finally:
            token.disarm()
            outcome.elapsed_sec = time.monotonic() - started

        log.info(
            "edit.turn_done state=%s steps=%d mutated=%s applied=%s elapsed=%.2fs",
            outcome.state.value,
            outcome.steps,
            outcome.mutated,
            ",".join(outcome.applied_tools) or "-",
            outcome.elapsed_sec,
        )
        return outcome
