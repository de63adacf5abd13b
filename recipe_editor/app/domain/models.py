# recipe_editor/app/domain/models.py
"""
Domain models for recipes, versions and edit sessions.
Field names follow the camelCase JSON contract shared with the web client.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# JSON numbers; ints stay ints on the way back out.
Number = Union[int, float]


class Ingredient(BaseModel):
    """A single ingredient line. Identity for diffing is the lower-cased name."""
    name: str
    quantity: Optional[Number] = None
    unit: Optional[str] = None
    preparation: Optional[str] = None

    @property
    def key(self) -> str:
        return self.name.lower()


class EditableRecipe(BaseModel):
    """
    Recipe content the model is allowed to produce.
    Provenance fields are server-managed and live on Recipe only.
    """
    title: str
    servings: Optional[Number] = None
    prepTime: Optional[Number] = Field(default=None, description="Minutes")
    cookTime: Optional[Number] = Field(default=None, description="Minutes")
    ingredients: list[Ingredient]
    steps: list[str]
    tags: Optional[list[str]] = None
    cuisine: Optional[str] = None
    category: Optional[str] = None

    def with_provenance(self, source_url: str, scraped_at: str) -> Recipe:
        return Recipe(**self.model_dump(), sourceUrl=source_url, scrapedAt=scraped_at)


class Recipe(EditableRecipe):
    sourceUrl: str
    scrapedAt: str

    @field_validator("sourceUrl")
    @classmethod
    def _check_source_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("sourceUrl must be an http(s) URL")
        return value

    @field_validator("scrapedAt")
    @classmethod
    def _check_scraped_at(cls, value: str) -> str:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        datetime.fromisoformat(normalized)
        return value

    def to_editable(self) -> EditableRecipe:
        return EditableRecipe(**self.model_dump(exclude={"sourceUrl", "scrapedAt"}))


# =============================================================================
# Changesets
# =============================================================================

class IngredientAdded(BaseModel):
    type: Literal["added"] = "added"
    ingredient: Ingredient


class IngredientRemoved(BaseModel):
    type: Literal["removed"] = "removed"
    ingredient: Ingredient


class IngredientModified(BaseModel):
    type: Literal["modified"] = "modified"
    before: Ingredient
    after: Ingredient


IngredientDiff = Annotated[
    Union[IngredientAdded, IngredientRemoved, IngredientModified],
    Field(discriminator="type"),
]


# =============================================================================
# Versions and stored records
# =============================================================================

class RecipeVersion(BaseModel):
    """Immutable snapshot created when a draft is committed."""
    model_config = ConfigDict(frozen=True)

    id: str
    recipeId: str
    recipe: Recipe
    editPrompt: Optional[str] = None
    name: Optional[str] = None
    changeset: Optional[list[IngredientDiff]] = None
    createdAt: str


class RecipeRecord(BaseModel):
    id: str
    sourceUrl: str
    scrapedAt: str
    originalRecipe: Recipe
    defaultVersionId: Optional[str] = None
    imagePath: Optional[str] = None
    createdAt: str


class TagRecord(BaseModel):
    id: str
    name: str
    createdAt: str


# =============================================================================
# Edit sessions
# =============================================================================

class ConversationMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    label: str


class ClarificationEvent(BaseModel):
    type: Literal["clarification"] = "clarification"
    question: str


class ResultEvent(BaseModel):
    type: Literal["result"] = "result"
    recipe: Recipe


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str


TerminalEvent = Union[ClarificationEvent, ResultEvent, ErrorEvent]

AgentEvent = Annotated[
    Union[ProgressEvent, ClarificationEvent, ResultEvent, ErrorEvent],
    Field(discriminator="type"),
]


def is_terminal(event: BaseModel) -> bool:
    return isinstance(event, (ClarificationEvent, ResultEvent, ErrorEvent))
