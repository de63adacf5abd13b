from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from starlette.concurrency import run_in_threadpool

from recipe_editor.app.deps import get_recipe_repository
from recipe_editor.app.domain.errors import RecipeRepositoryError, TagConflictError
from recipe_editor.app.infra.db.base import RecipeRepository
from recipe_editor.app.schemas.recipes import OkResponse
from recipe_editor.app.schemas.tags import TagCreateRequest, TagResponse

log = logging.getLogger("tags")
router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=list[TagResponse])
async def list_tags(repo: RecipeRepository = Depends(get_recipe_repository)) -> list[TagResponse]:
    try:
        tags = await run_in_threadpool(repo.list_tags)
    except RecipeRepositoryError as exc:
        log.error("tags.list_failed reason=%s", exc.reason)
        raise HTTPException(status_code=500, detail="Storage error. Please try again.")
    return [TagResponse(**tag.model_dump()) for tag in tags]


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    payload: TagCreateRequest,
    repo: RecipeRepository = Depends(get_recipe_repository),
) -> TagResponse:
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    try:
        tag = await run_in_threadpool(repo.create_tag, name)
    except TagConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except RecipeRepositoryError as exc:
        log.error("tags.create_failed reason=%s", exc.reason)
        raise HTTPException(status_code=500, detail="Storage error. Please try again.")
    return TagResponse(**tag.model_dump())


@router.delete("/{tag_id}", response_model=OkResponse)
async def delete_tag(
    tag_id: str,
    repo: RecipeRepository = Depends(get_recipe_repository),
) -> OkResponse:
    try:
        deleted = await run_in_threadpool(repo.delete_tag, tag_id)
    except RecipeRepositoryError as exc:
        log.error("tags.delete_failed reason=%s", exc.reason)
        raise HTTPException(status_code=500, detail="Storage error. Please try again.")
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Tag not found: {tag_id}")
    return OkResponse()
