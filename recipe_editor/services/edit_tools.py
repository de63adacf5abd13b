"""
Edit tools the model may call during a turn.

Every tool pairs a pydantic input model with a pure effect
``(payload, draft) -> new draft``. The registry is a closed dispatch table:
the model can only reach the tools declared here, and arguments are validated
before any effect runs.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Type

from pydantic import BaseModel, Field, ValidationError

from recipe_editor.app.domain.models import EditableRecipe, Ingredient, Number, Recipe
from recipe_editor.app.infra.llm.base import ToolSpec
from recipe_editor.services.errors import ToolInputError, UnknownToolError


class ToolKind(str, Enum):
    MUTATION = "mutation"
    CLARIFICATION = "clarification"
    FINALIZE = "finalize"


class UpdateIngredientsInput(BaseModel):
    ingredients: list[Ingredient] = Field(..., description="The complete updated ingredients list")


class UpdateStepsInput(BaseModel):
    steps: list[str] = Field(..., description="The complete updated steps list in order")


class UpdateMetadataInput(BaseModel):
    title: Optional[str] = None
    servings: Optional[Number] = None
    prepTime: Optional[Number] = Field(default=None, description="Minutes")
    cookTime: Optional[Number] = Field(default=None, description="Minutes")
    cuisine: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None


class AskClarificationInput(BaseModel):
    question: str = Field(..., description="The clarification question to ask the user")


class FinalizeInput(BaseModel):
    recipe: EditableRecipe


Effect = Callable[[Any, Recipe], Recipe]


@dataclass(frozen=True)
class EditTool:
    name: str
    description: str
    input_model: Type[BaseModel]
    kind: ToolKind
    effect: Effect
    acknowledgement: str
    progress_label: Optional[str] = None

    @property
    def mutates(self) -> bool:
        return self.kind is not ToolKind.CLARIFICATION

    def spec(self) -> ToolSpec:
        return ToolSpec(
            name=self.name,
            description=self.description,
            parameters=self.input_model.model_json_schema(),
        )

    def parse(self, arguments: Mapping[str, Any]) -> BaseModel:
        try:
            return self.input_model.model_validate(dict(arguments))
        except ValidationError as err:
            raise ToolInputError(self.name, str(err)) from err

    def apply(self, payload: BaseModel, draft: Recipe) -> Recipe:
        return self.effect(payload, draft)


def _update_ingredients(payload: UpdateIngredientsInput, draft: Recipe) -> Recipe:
    return draft.model_copy(update={"ingredients": list(payload.ingredients)})


def _update_steps(payload: UpdateStepsInput, draft: Recipe) -> Recipe:
    return draft.model_copy(update={"steps": list(payload.steps)})


def _update_metadata(payload: UpdateMetadataInput, draft: Recipe) -> Recipe:
    # Patch semantics: fields the model left out (or sent as null) stay as they are
    updates = {
        field_name: getattr(payload, field_name)
        for field_name in payload.model_fields_set
        if getattr(payload, field_name) is not None
    }
    if "tags" in updates:
        updates["tags"] = list(updates["tags"])
    return draft.model_copy(update=updates)


def _ask_clarification(payload: AskClarificationInput, draft: Recipe) -> Recipe:
    return draft


def _finalize(payload: FinalizeInput, draft: Recipe) -> Recipe:
    return payload.recipe.with_provenance(draft.sourceUrl, draft.scrapedAt)


UPDATE_INGREDIENTS = EditTool(
    name="update_ingredients",
    description="Update the recipe's ingredients list",
    input_model=UpdateIngredientsInput,
    kind=ToolKind.MUTATION,
    effect=_update_ingredients,
    acknowledgement="Ingredients updated",
    progress_label="Updating ingredients...",
)

UPDATE_STEPS = EditTool(
    name="update_steps",
    description="Update the recipe's preparation steps",
    input_model=UpdateStepsInput,
    kind=ToolKind.MUTATION,
    effect=_update_steps,
    acknowledgement="Steps updated",
    progress_label="Updating steps...",
)

UPDATE_METADATA = EditTool(
    name="update_metadata",
    description="Update recipe metadata: title, servings, prep/cook times, cuisine, category, or tags",
    input_model=UpdateMetadataInput,
    kind=ToolKind.MUTATION,
    effect=_update_metadata,
    acknowledgement="Metadata updated",
    progress_label="Updating recipe details...",
)

ASK_CLARIFICATION = EditTool(
    name="ask_clarification",
    description=(
        "Ask the user for clarification when their request is too unclear to proceed. "
        "Only use this if you cannot make any reasonable assumption."
    ),
    input_model=AskClarificationInput,
    kind=ToolKind.CLARIFICATION,
    effect=_ask_clarification,
    acknowledgement="Waiting for clarification",
)

FINALIZE = EditTool(
    name="finalize",
    description=(
        "Review and finalize the complete recipe for consistency. "
        "Always call this last with the full modified recipe."
    ),
    input_model=FinalizeInput,
    kind=ToolKind.FINALIZE,
    effect=_finalize,
    acknowledgement="Recipe finalized",
    progress_label="Reviewing consistency...",
)


class ToolRegistry:
    """Read-only mapping of tool name to EditTool."""

    def __init__(self, tools: Iterable[EditTool]) -> None:
        table: dict[str, EditTool] = {}
        for tool in tools:
            if tool.name in table:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            table[tool.name] = tool
        self._tools: Mapping[str, EditTool] = MappingProxyType(table)
        self._specs = tuple(tool.spec() for tool in table.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[EditTool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def resolve(self, name: str) -> EditTool:
        tool = self._tools.get(name)
        if tool is None:
            raise UnknownToolError(name)
        return tool

    def specs(self) -> tuple[ToolSpec, ...]:
        return self._specs


EDIT_TOOLS = ToolRegistry(
    [UPDATE_INGREDIENTS, UPDATE_STEPS, UPDATE_METADATA, ASK_CLARIFICATION, FINALIZE]
)
