from __future__ import annotations

from recipe_editor.app.domain.models import (
    ClarificationEvent,
    ErrorEvent,
    ResultEvent,
    TerminalEvent,
)
from recipe_editor.services.edit_turn import TurnOutcome, TurnState

TIMEOUT_MESSAGE = "Edit timed out. Please try a simpler request."
UNPRODUCTIVE_MESSAGE = "Agent could not process this request. Please try rephrasing."
INTERRUPTED_MESSAGE = "Edit was interrupted. Please try again."


def classify_outcome(outcome: TurnOutcome, *, timeout_discards_partial: bool = True) -> TerminalEvent:
    """
    Map a finished turn to exactly one terminal event.

    Precedence: clarification, timeout, unproductive turn, result. A turn that
    mutated the draft before hitting the step cap or a model error still
    yields its draft as a best-effort result. With
    ``timeout_discards_partial=False`` a timed-out turn that already mutated
    the draft is treated the same way.
    """
    if not outcome.is_terminal:
        raise ValueError("Cannot classify a turn that is still running")

    if outcome.state is TurnState.CLARIFY_REQUESTED and outcome.question is not None:
        return ClarificationEvent(question=outcome.question)

    if outcome.state is TurnState.TIMED_OUT and (timeout_discards_partial or not outcome.mutated):
        return ErrorEvent(message=TIMEOUT_MESSAGE)

    if not outcome.mutated:
        return ErrorEvent(message=UNPRODUCTIVE_MESSAGE)

    return ResultEvent(recipe=outcome.draft)
