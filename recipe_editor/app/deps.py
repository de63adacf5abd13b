# recipe_editor/app/deps.py (singletons built lazily, exposed as dependencies)

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from supabase import Client, create_client

from recipe_editor.app.config import Settings, get_settings
from recipe_editor.app.infra.db.base import RecipeRepository
from recipe_editor.app.infra.db.supabase_recipes_repo import SupabaseRecipeRepository
from recipe_editor.app.infra.llm.base import ModelClient
from recipe_editor.app.infra.llm.gemini_client import GeminiModelClient
from recipe_editor.app.services.version_service import VersionService

_client: Client | None = None


def get_supabase(settings: Settings = Depends(get_settings)) -> Client:
    global _client
    if _client is None:
        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Storage is not configured",
            )
        _client = create_client(str(settings.SUPABASE_URL), settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def get_recipe_repository(supa: Client = Depends(get_supabase)) -> RecipeRepository:
    return SupabaseRecipeRepository(supa)


def build_model_client(settings: Settings) -> Optional[ModelClient]:
    """Called once by the process bootstrap; None when no API key is configured."""
    if settings.GEMINI_API_KEY is None:
        return None
    return GeminiModelClient(
        api_key=settings.GEMINI_API_KEY.get_secret_value(),
        model_name=settings.GEMINI_MODEL,
    )


def get_optional_model_client(request: Request) -> Optional[ModelClient]:
    return getattr(request.app.state, "model_client", None)


def get_model_client(
    client: Optional[ModelClient] = Depends(get_optional_model_client),
) -> ModelClient:
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Model client is not configured",
        )
    return client


def get_version_service(
    repo: RecipeRepository = Depends(get_recipe_repository),
    client: Optional[ModelClient] = Depends(get_optional_model_client),
) -> VersionService:
    return VersionService(repo, client)
