# recipe_editor/app/infra/db/base.py
"""
Abstract base class for recipe persistence.
The edit flow never writes; callers persist after a terminal event.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from recipe_editor.app.domain.models import (
    IngredientDiff,
    Recipe,
    RecipeRecord,
    RecipeVersion,
    TagRecord,
)


class RecipeRepository(ABC):
    """
    Abstract interface for recipes, their versions and the tag vocabulary.

    Implementations:
    - SupabaseRecipeRepository: Postgres tables through Supabase
    - In-memory stubs in tests
    """

    @abstractmethod
    def create_recipe(
        self,
        recipe: Recipe,
        image_path: Optional[str] = None,
    ) -> RecipeRecord:
        """
        Store a freshly imported recipe together with its first version,
        and make that version the default.

        Args:
            recipe: The parsed recipe, provenance included
            image_path: Optional stored image file name

        Returns:
            The created RecipeRecord
        """
        pass

    @abstractmethod
    def find_recipe_by_source_url(self, source_url: str) -> Optional[RecipeRecord]:
        pass

    @abstractmethod
    def get_recipe(self, recipe_id: str) -> Optional[RecipeRecord]:
        """
        Get a recipe by its ID.

        Returns:
            The recipe record, or None if not found
        """
        pass

    @abstractmethod
    def list_recipes(self) -> list[RecipeRecord]:
        """
        Get every recipe, newest first.
        """
        pass

    @abstractmethod
    def delete_recipe(self, recipe_id: str) -> bool:
        """
        Delete a recipe together with all of its versions.

        Returns:
            True if the recipe existed and was deleted
        """
        pass

    @abstractmethod
    def list_versions(self, recipe_id: str) -> list[RecipeVersion]:
        """
        Get every version of a recipe, oldest first.
        """
        pass

    @abstractmethod
    def get_version(self, recipe_id: str, version_id: str) -> Optional[RecipeVersion]:
        """
        Get a version, only if it belongs to the given recipe.
        """
        pass

    @abstractmethod
    def insert_version(
        self,
        recipe_id: str,
        recipe: Recipe,
        edit_prompt: Optional[str] = None,
        name: Optional[str] = None,
        changeset: Optional[Sequence[IngredientDiff]] = None,
    ) -> str:
        """
        Insert an immutable version snapshot.

        Args:
            recipe_id: Owning recipe
            recipe: Full recipe content of the version
            edit_prompt: The request that produced it, if any
            name: Short model-generated label, if any
            changeset: Ingredient diff against the version it replaces

        Returns:
            The new version ID
        """
        pass

    @abstractmethod
    def set_default_version(self, recipe_id: str, version_id: str) -> bool:
        """
        Point the recipe's default version at version_id.

        Returns:
            True if the pointer was updated
        """
        pass

    @abstractmethod
    def list_tags(self) -> list[TagRecord]:
        pass

    @abstractmethod
    def create_tag(self, name: str) -> TagRecord:
        pass

    @abstractmethod
    def delete_tag(self, tag_id: str) -> bool:
        pass

    def load_tags(self) -> list[str]:
        """Tag vocabulary handed to the model, in stored order."""
        return [tag.name for tag in self.list_tags()]
