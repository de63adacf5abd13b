from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from recipe_editor.app.domain.models import (
    ConversationMessage,
    IngredientDiff,
    Recipe,
    RecipeVersion,
)


class EditRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    currentRecipe: Recipe
    history: list[ConversationMessage] = Field(default_factory=list)


class CommitVersionRequest(BaseModel):
    recipe: Recipe
    editPrompt: Optional[str] = None
    originalRecipe: Optional[Recipe] = None


class CommitVersionResponse(BaseModel):
    versionId: str
    name: Optional[str] = None
    changeset: list[IngredientDiff] = Field(default_factory=list)


class SetDefaultRequest(BaseModel):
    versionId: str = Field(..., min_length=1)


class ImportRequest(BaseModel):
    sourceUrl: str = Field(..., min_length=1)
    markdown: str = Field(..., min_length=1)
    imagePath: Optional[str] = None


class ImportResponse(BaseModel):
    recipeId: str
    defaultVersionId: Optional[str] = None


class RecipeListItem(BaseModel):
    id: str
    title: str
    cuisine: Optional[str] = None
    imagePath: Optional[str] = None
    defaultVersionId: Optional[str] = None
    versionCount: int = 0
    createdAt: str


class RecipeDetail(BaseModel):
    id: str
    sourceUrl: str
    scrapedAt: str
    imagePath: Optional[str] = None
    defaultVersionId: Optional[str] = None
    originalRecipe: Recipe
    versions: list[RecipeVersion]


class OkResponse(BaseModel):
    ok: bool = True
