from __future__ import annotations


class RecipeEditorError(Exception):
    pass


class RecipeNotFoundError(RecipeEditorError):
    def __init__(self, recipe_id: str):
        super().__init__(f"Recipe not found: {recipe_id}")
        self.recipe_id = recipe_id


class VersionNotFoundError(RecipeEditorError):
    def __init__(self, version_id: str, recipe_id: str | None = None):
        message = f"Version not found: {version_id}"
        if recipe_id:
            message += f" (recipe {recipe_id})"
        super().__init__(message)
        self.version_id = version_id
        self.recipe_id = recipe_id


class TagConflictError(RecipeEditorError):
    def __init__(self, name: str):
        super().__init__(f"Tag already exists: {name}")
        self.name = name


class RecipeRepositoryError(RecipeEditorError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Recipe repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class RecipeAlreadyImportedError(RecipeEditorError):
    def __init__(self, source_url: str):
        super().__init__(f"This URL has already been imported: {source_url}")
        self.source_url = source_url
