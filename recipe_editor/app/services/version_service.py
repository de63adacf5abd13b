# recipe_editor/app/services/version_service.py
"""
Version management service.
Commits edited drafts as immutable versions and manages the default pointer.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

from starlette.concurrency import run_in_threadpool

from recipe_editor.app.domain.errors import (
    RecipeAlreadyImportedError,
    RecipeNotFoundError,
    VersionNotFoundError,
)
from recipe_editor.app.domain.models import (
    IngredientAdded,
    IngredientModified,
    IngredientRemoved,
    Recipe,
    RecipeRecord,
)
from recipe_editor.app.infra.db.base import RecipeRepository
from recipe_editor.app.infra.llm.base import ModelClient
from recipe_editor.app.schemas.recipes import RecipeDetail, RecipeListItem
from recipe_editor.services.changeset import compute_changeset
from recipe_editor.services.recipe_parser import parse_recipe_from_markdown
from recipe_editor.services.version_naming import generate_version_name

logger = logging.getLogger(__name__)


@dataclass
class CommitResult:
    version_id: str
    name: Optional[str] = None
    changeset: list[Union[IngredientAdded, IngredientRemoved, IngredientModified]] = field(default_factory=list)


class VersionService:
    """
    Service for the caller side of the edit flow.

    Responsibilities:
    - Commit a draft as a new version with its changeset and name
    - Switch the default version
    - Assemble recipe details and the recipe list
    - Import parsed recipes
    """

    def __init__(
        self,
        repository: RecipeRepository,
        model_client: Optional[ModelClient] = None,
    ):
        self._repo = repository
        self._client = model_client

    async def _require_recipe(self, recipe_id: str) -> RecipeRecord:
        record = await run_in_threadpool(self._repo.get_recipe, recipe_id)
        if record is None:
            raise RecipeNotFoundError(recipe_id)
        return record

    async def _default_recipe(self, record: RecipeRecord) -> Recipe:
        if record.defaultVersionId:
            version = await run_in_threadpool(self._repo.get_version, record.id, record.defaultVersionId)
            if version is not None:
                return version.recipe
        return record.originalRecipe

    async def commit_version(
        self,
        recipe_id: str,
        recipe: Recipe,
        edit_prompt: Optional[str] = None,
        original_recipe: Optional[Recipe] = None,
    ) -> CommitResult:
        """
        Save a draft as a new default version.

        Args:
            recipe_id: The recipe being edited
            recipe: The draft to save
            edit_prompt: Request that produced the draft
            original_recipe: The version being replaced; defaults to the
                current default version

        Returns:
            CommitResult with the new version id, its name and changeset
        """
        record = await self._require_recipe(recipe_id)
        before = original_recipe or await self._default_recipe(record)

        # Provenance always comes from the stored recipe
        recipe = recipe.model_copy(update={"sourceUrl": record.sourceUrl, "scrapedAt": record.scrapedAt})
        changeset = compute_changeset(before.ingredients, recipe.ingredients)

        name: Optional[str] = None
        if edit_prompt and self._client is not None:
            name = await generate_version_name(self._client, edit_prompt, before, recipe)

        version_id = await run_in_threadpool(
            self._repo.insert_version,
            recipe_id,
            recipe,
            edit_prompt,
            name,
            changeset,
        )
        await run_in_threadpool(self._repo.set_default_version, recipe_id, version_id)

        logger.info(
            "Committed version: recipe=%s, version=%s, name=%s, changes=%d",
            recipe_id,
            version_id,
            name,
            len(changeset),
        )
        return CommitResult(version_id=version_id, name=name, changeset=changeset)

    async def set_default_version(self, recipe_id: str, version_id: str) -> None:
        await self._require_recipe(recipe_id)
        version = await run_in_threadpool(self._repo.get_version, recipe_id, version_id)
        if version is None:
            raise VersionNotFoundError(version_id, recipe_id)
        await run_in_threadpool(self._repo.set_default_version, recipe_id, version_id)
        logger.info("Default version changed: recipe=%s, version=%s", recipe_id, version_id)

    async def get_recipe_detail(self, recipe_id: str) -> RecipeDetail:
        record = await self._require_recipe(recipe_id)
        versions = await run_in_threadpool(self._repo.list_versions, recipe_id)
        return RecipeDetail(
            id=record.id,
            sourceUrl=record.sourceUrl,
            scrapedAt=record.scrapedAt,
            imagePath=record.imagePath,
            defaultVersionId=record.defaultVersionId,
            originalRecipe=record.originalRecipe,
            versions=versions,
        )

    async def import_recipe(
        self,
        markdown: str,
        source_url: str,
        image_path: Optional[str] = None,
    ) -> RecipeRecord:
        """Parse scraped page markdown and store it as a new recipe."""
        if self._client is None:
            raise ValueError("A model client is required to import recipes.")

        existing = await run_in_threadpool(self._repo.find_recipe_by_source_url, source_url)
        if existing is not None:
            raise RecipeAlreadyImportedError(source_url)

        tags = await run_in_threadpool(self._repo.load_tags)
        scraped_at = datetime.now(timezone.utc).isoformat()
        recipe = await parse_recipe_from_markdown(self._client, markdown, source_url, scraped_at, tags)
        return await run_in_threadpool(self._repo.create_recipe, recipe, image_path)

    async def list_recipes(self) -> list[RecipeListItem]:
        """Summaries of every recipe, newest first, titled by their default version."""
        records = await run_in_threadpool(self._repo.list_recipes)
        items: list[RecipeListItem] = []
        for record in records:
            versions = await run_in_threadpool(self._repo.list_versions, record.id)
            current = next(
                (version.recipe for version in versions if version.id == record.defaultVersionId),
                record.originalRecipe,
            )
            items.append(
                RecipeListItem(
                    id=record.id,
                    title=current.title,
                    cuisine=current.cuisine,
                    imagePath=record.imagePath,
                    defaultVersionId=record.defaultVersionId,
                    versionCount=len(versions),
                    createdAt=record.createdAt,
                )
            )
        return items

    async def delete_recipe(self, recipe_id: str) -> None:
        deleted = await run_in_threadpool(self._repo.delete_recipe, recipe_id)
        if not deleted:
            raise RecipeNotFoundError(recipe_id)
        logger.info("Recipe deleted: recipe=%s", recipe_id)
