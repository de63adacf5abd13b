from __future__ import annotations

import asyncio
import itertools
from typing import Any, Optional, Sequence, Type

from recipe_editor.app.domain.errors import RecipeRepositoryError, TagConflictError
from recipe_editor.app.domain.models import (
    Ingredient,
    IngredientDiff,
    Recipe,
    RecipeRecord,
    RecipeVersion,
    TagRecord,
)
from recipe_editor.app.infra.db.base import RecipeRepository
from recipe_editor.app.infra.llm.base import (
    ModelClient,
    ModelReply,
    ToolCall,
    ToolSpec,
    TranscriptEntry,
)

HANG = "hang"
CREATED_AT = "2024-01-15T10:00:00+00:00"


class ScriptedModelClient(ModelClient):
    """
    Plays back one scripted reply per completion round.

    Entries may be a ModelReply, an exception to raise, or HANG to block
    until the call is cancelled.
    """

    def __init__(
        self,
        replies: Sequence[Any] = (),
        text: Any = None,
        structured: Any = None,
    ) -> None:
        self.replies = list(replies)
        self.text = text
        self.structured = structured
        self.transcripts: list[list[TranscriptEntry]] = []
        self.system_prompts: list[str] = []
        self.prompts: list[str] = []
        self.tool_names: list[str] = []
        self.cancelled = False
        self.closed = False

    async def _play(self, entry: Any) -> Any:
        if isinstance(entry, str) and entry == HANG:
            try:
                await asyncio.sleep(3600)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if isinstance(entry, BaseException):
            raise entry
        return entry

    async def complete(
        self,
        system_prompt: str,
        transcript: Sequence[TranscriptEntry],
        tools: Sequence[ToolSpec],
    ) -> ModelReply:
        self.system_prompts.append(system_prompt)
        self.transcripts.append(list(transcript))
        self.tool_names = [tool.name for tool in tools]
        if not self.replies:
            return ModelReply(text="All done.")
        return await self._play(self.replies.pop(0))

    async def generate_text(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return await self._play(self.text)

    async def generate_structured(self, prompt: str, schema: Type):
        self.prompts.append(prompt)
        result = await self._play(self.structured)
        if isinstance(result, dict):
            return schema.model_validate(result)
        return result

    async def aclose(self) -> None:
        self.closed = True


def call(name: str, call_id: Optional[str] = None, **arguments: Any) -> ToolCall:
    return ToolCall(name=name, arguments=arguments, call_id=call_id)


def reply(*calls: ToolCall) -> ModelReply:
    return ModelReply(tool_calls=list(calls))


def make_recipe(**overrides: Any) -> Recipe:
    data = {
        "title": "Pancakes",
        "servings": 4,
        "ingredients": [Ingredient(name="Flour", quantity=200, unit="g"), Ingredient(name="Egg", quantity=2)],
        "steps": ["Whisk", "Cook"],
        "sourceUrl": "https://example.com/pancakes",
        "scrapedAt": "2024-01-15T10:00:00.000Z",
    }
    data.update(overrides)
    return Recipe(**data)


FINAL_RECIPE = {
    "title": "Vegan Pancakes",
    "servings": 4,
    "ingredients": [{"name": "Flour", "quantity": 200, "unit": "g"}, {"name": "Flax egg", "quantity": 1}],
    "steps": ["Whisk", "Cook"],
}


class InMemoryRecipeRepository(RecipeRepository):
    def __init__(self) -> None:
        self.recipes: dict[str, RecipeRecord] = {}
        self.versions: dict[str, RecipeVersion] = {}
        self.tags: list[TagRecord] = []
        self._ids = itertools.count(1)
        self.fail_with: Optional[RecipeRepositoryError] = None

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def create_recipe(self, recipe: Recipe, image_path: Optional[str] = None) -> RecipeRecord:
        self._check()
        record = RecipeRecord(
            id=self._next_id("recipe"),
            sourceUrl=recipe.sourceUrl,
            scrapedAt=recipe.scrapedAt,
            originalRecipe=recipe,
            imagePath=image_path,
            createdAt=CREATED_AT,
        )
        self.recipes[record.id] = record
        version_id = self.insert_version(record.id, recipe)
        self.set_default_version(record.id, version_id)
        return self.recipes[record.id]

    def find_recipe_by_source_url(self, source_url: str) -> Optional[RecipeRecord]:
        self._check()
        return next((r for r in self.recipes.values() if r.sourceUrl == source_url), None)

    def get_recipe(self, recipe_id: str) -> Optional[RecipeRecord]:
        self._check()
        return self.recipes.get(recipe_id)

    def list_recipes(self) -> list[RecipeRecord]:
        self._check()
        return list(reversed(self.recipes.values()))

    def delete_recipe(self, recipe_id: str) -> bool:
        self._check()
        if self.recipes.pop(recipe_id, None) is None:
            return False
        self.versions = {key: v for key, v in self.versions.items() if v.recipeId != recipe_id}
        return True

    def list_versions(self, recipe_id: str) -> list[RecipeVersion]:
        self._check()
        return [v for v in self.versions.values() if v.recipeId == recipe_id]

    def get_version(self, recipe_id: str, version_id: str) -> Optional[RecipeVersion]:
        self._check()
        version = self.versions.get(version_id)
        if version is None or version.recipeId != recipe_id:
            return None
        return version

    def insert_version(
        self,
        recipe_id: str,
        recipe: Recipe,
        edit_prompt: Optional[str] = None,
        name: Optional[str] = None,
        changeset: Optional[Sequence[IngredientDiff]] = None,
    ) -> str:
        self._check()
        version = RecipeVersion(
            id=self._next_id("version"),
            recipeId=recipe_id,
            recipe=recipe,
            editPrompt=edit_prompt,
            name=name,
            changeset=list(changeset) if changeset is not None else None,
            createdAt=CREATED_AT,
        )
        self.versions[version.id] = version
        return version.id

    def set_default_version(self, recipe_id: str, version_id: str) -> bool:
        self._check()
        record = self.recipes.get(recipe_id)
        if record is None:
            return False
        self.recipes[recipe_id] = record.model_copy(update={"defaultVersionId": version_id})
        return True

    def list_tags(self) -> list[TagRecord]:
        self._check()
        return list(self.tags)

    def create_tag(self, name: str) -> TagRecord:
        self._check()
        if any(tag.name == name for tag in self.tags):
            raise TagConflictError(name)
        tag = TagRecord(id=self._next_id("tag"), name=name, createdAt=CREATED_AT)
        self.tags.append(tag)
        return tag

    def delete_tag(self, tag_id: str) -> bool:
        self._check()
        before = len(self.tags)
        self.tags = [tag for tag in self.tags if tag.id != tag_id]
        return len(self.tags) < before
