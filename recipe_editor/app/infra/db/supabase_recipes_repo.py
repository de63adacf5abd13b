from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional, Sequence
from uuid import uuid4

from pydantic import TypeAdapter
from supabase import Client

from recipe_editor.app.domain.errors import RecipeRepositoryError, TagConflictError
from recipe_editor.app.domain.models import (
    IngredientDiff,
    Recipe,
    RecipeRecord,
    RecipeVersion,
    TagRecord,
)
from recipe_editor.app.infra.db.base import RecipeRepository

logger = logging.getLogger(__name__)

_changeset_adapter = TypeAdapter(list[IngredientDiff])


def _now_utc() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid4())


def _load_json(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _dump_recipe(recipe: Recipe) -> dict[str, Any]:
    return recipe.model_dump(mode="json", exclude_none=True)


def _row_to_recipe(row: dict[str, Any], operation: str = "get_recipe") -> RecipeRecord:
    try:
        return RecipeRecord(
            id=str(row["id"]),
            sourceUrl=str(row["source_url"]),
            scrapedAt=str(row["scraped_at"]),
            originalRecipe=Recipe.model_validate(_load_json(row["original_json"])),
            defaultVersionId=_safe_str(row.get("default_version_id")),
            imagePath=_safe_str(row.get("image_path")),
            createdAt=str(row["created_at"]),
        )
    except (KeyError, ValueError) as error:
        logger.error("Malformed recipe row id=%s: %s", row.get("id"), error)
        raise RecipeRepositoryError(operation, f"malformed recipe row: {error}") from error


def _row_to_version(row: dict[str, Any], operation: str = "get_version") -> RecipeVersion:
    try:
        changeset = _load_json(row.get("changeset"))
        return RecipeVersion(
            id=str(row["id"]),
            recipeId=str(row["recipe_id"]),
            recipe=Recipe.model_validate(_load_json(row["recipe_json"])),
            editPrompt=_safe_str(row.get("edit_prompt")),
            name=_safe_str(row.get("name")),
            changeset=_changeset_adapter.validate_python(changeset) if changeset is not None else None,
            createdAt=str(row["created_at"]),
        )
    except (KeyError, ValueError) as error:
        logger.error("Malformed version row id=%s: %s", row.get("id"), error)
        raise RecipeRepositoryError(operation, f"malformed version row: {error}") from error


def _row_to_tag(row: dict[str, Any]) -> TagRecord:
    return TagRecord(id=str(row["id"]), name=str(row["name"]), createdAt=str(row["created_at"]))


class SupabaseRecipeRepository(RecipeRepository):
    RECIPES_TABLE = "recipes"
    VERSIONS_TABLE = "recipe_versions"
    TAGS_TABLE = "tags"

    def __init__(self, client: Client):
        self._client = client
        logger.info("SupabaseRecipeRepository initialized")

    def create_recipe(
        self,
        recipe: Recipe,
        image_path: Optional[str] = None,
    ) -> RecipeRecord:
        recipe_id = _new_id()
        created_at = _now_utc()
        row = {
            "id": recipe_id,
            "source_url": recipe.sourceUrl,
            "scraped_at": recipe.scrapedAt,
            "original_json": _dump_recipe(recipe),
            "default_version_id": None,
            "image_path": image_path,
            "created_at": created_at,
        }

        try:
            result = self._client.table(self.RECIPES_TABLE).insert(row).execute()
            if not result.data:
                raise RecipeRepositoryError("create_recipe", "insert returned no rows")
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error creating recipe: %s", error)
            raise RecipeRepositoryError("create_recipe", str(error)) from error

        version_id = self.insert_version(recipe_id, recipe)
        self.set_default_version(recipe_id, version_id)
        logger.info("Created recipe: id=%s, source=%s", recipe_id, recipe.sourceUrl)

        record = _row_to_recipe(result.data[0], "create_recipe")
        return record.model_copy(update={"defaultVersionId": version_id})

    def find_recipe_by_source_url(self, source_url: str) -> Optional[RecipeRecord]:
        return self._select_one_recipe("source_url", source_url)

    def get_recipe(self, recipe_id: str) -> Optional[RecipeRecord]:
        return self._select_one_recipe("id", recipe_id)

    def _select_one_recipe(self, column: str, value: str) -> Optional[RecipeRecord]:
        try:
            result = (
                self._client.table(self.RECIPES_TABLE)
                .select("*")
                .eq(column, value)
                .limit(1)
                .execute()
            )
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error fetching recipe %s=%s: %s", column, value, error)
            raise RecipeRepositoryError("get_recipe", str(error)) from error

        if not result.data:
            return None
        return _row_to_recipe(result.data[0])

    def list_recipes(self) -> list[RecipeRecord]:
        try:
            result = (
                self._client.table(self.RECIPES_TABLE)
                .select("*")
                .order("created_at", desc=True)
                .execute()
            )
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error listing recipes: %s", error)
            raise RecipeRepositoryError("list_recipes", str(error)) from error

        return [_row_to_recipe(row, "list_recipes") for row in result.data or []]

    def delete_recipe(self, recipe_id: str) -> bool:
        try:
            # Drop the default pointer first so versions can go before their recipe
            self._client.table(self.RECIPES_TABLE).update({"default_version_id": None}).eq("id", recipe_id).execute()
            self._client.table(self.VERSIONS_TABLE).delete().eq("recipe_id", recipe_id).execute()
            result = self._client.table(self.RECIPES_TABLE).delete().eq("id", recipe_id).execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error deleting recipe %s: %s", recipe_id, error)
            raise RecipeRepositoryError("delete_recipe", str(error)) from error

        deleted = bool(result.data)
        if deleted:
            logger.info("Deleted recipe: id=%s", recipe_id)
        return deleted

    def list_versions(self, recipe_id: str) -> list[RecipeVersion]:
        try:
            result = (
                self._client.table(self.VERSIONS_TABLE)
                .select("*")
                .eq("recipe_id", recipe_id)
                .order("created_at")
                .execute()
            )
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error listing versions: %s", error)
            raise RecipeRepositoryError("list_versions", str(error)) from error

        return [_row_to_version(row, "list_versions") for row in result.data or []]

    def get_version(self, recipe_id: str, version_id: str) -> Optional[RecipeVersion]:
        try:
            result = (
                self._client.table(self.VERSIONS_TABLE)
                .select("*")
                .eq("id", version_id)
                .eq("recipe_id", recipe_id)
                .limit(1)
                .execute()
            )
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error fetching version: %s", error)
            raise RecipeRepositoryError("get_version", str(error)) from error

        if not result.data:
            return None
        return _row_to_version(result.data[0])

    def insert_version(
        self,
        recipe_id: str,
        recipe: Recipe,
        edit_prompt: Optional[str] = None,
        name: Optional[str] = None,
        changeset: Optional[Sequence[IngredientDiff]] = None,
    ) -> str:
        version_id = _new_id()
        row = {
            "id": version_id,
            "recipe_id": recipe_id,
            "recipe_json": _dump_recipe(recipe),
            "edit_prompt": edit_prompt,
            "name": name,
            "changeset": (
                _changeset_adapter.dump_python(list(changeset), mode="json", exclude_none=True)
                if changeset is not None
                else None
            ),
            "created_at": _now_utc(),
        }

        try:
            result = self._client.table(self.VERSIONS_TABLE).insert(row).execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error inserting version: %s", error)
            raise RecipeRepositoryError("insert_version", str(error)) from error

        if not result.data:
            raise RecipeRepositoryError("insert_version", "insert returned no rows")

        logger.info("Inserted version: id=%s, recipe=%s, name=%s", version_id, recipe_id, name)
        return version_id

    def set_default_version(self, recipe_id: str, version_id: str) -> bool:
        try:
            result = (
                self._client.table(self.RECIPES_TABLE)
                .update({"default_version_id": version_id})
                .eq("id", recipe_id)
                .execute()
            )
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error setting default version: %s", error)
            raise RecipeRepositoryError("set_default_version", str(error)) from error

        return bool(result.data)

    def list_tags(self) -> list[TagRecord]:
        try:
            result = self._client.table(self.TAGS_TABLE).select("*").order("name").execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error listing tags: %s", error)
            raise RecipeRepositoryError("list_tags", str(error)) from error

        return [_row_to_tag(row) for row in result.data or []]

    def create_tag(self, name: str) -> TagRecord:
        name = name.strip()
        try:
            existing = self._client.table(self.TAGS_TABLE).select("id").eq("name", name).limit(1).execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error checking tag: %s", error)
            raise RecipeRepositoryError("create_tag", str(error)) from error
        if existing.data:
            raise TagConflictError(name)

        row = {"id": _new_id(), "name": name, "created_at": _now_utc()}
        try:
            result = self._client.table(self.TAGS_TABLE).insert(row).execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error creating tag: %s", error)
            raise RecipeRepositoryError("create_tag", str(error)) from error

        if not result.data:
            raise RecipeRepositoryError("create_tag", "insert returned no rows")
        return _row_to_tag(result.data[0])

    def delete_tag(self, tag_id: str) -> bool:
        try:
            result = self._client.table(self.TAGS_TABLE).delete().eq("id", tag_id).execute()
        except (ConnectionError, TimeoutError) as error:
            logger.error("Network error deleting tag: %s", error)
            raise RecipeRepositoryError("delete_tag", str(error)) from error

        return bool(result.data)
