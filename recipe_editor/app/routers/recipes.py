from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from recipe_editor.app.config import Settings, get_settings
from recipe_editor.app.deps import get_model_client, get_recipe_repository, get_version_service
from recipe_editor.app.domain.errors import (
    RecipeAlreadyImportedError,
    RecipeNotFoundError,
    RecipeRepositoryError,
    VersionNotFoundError,
)
from recipe_editor.app.infra.db.base import RecipeRepository
from recipe_editor.app.infra.llm.base import ModelClient
from recipe_editor.app.schemas.recipes import (
    CommitVersionRequest,
    CommitVersionResponse,
    EditRequest,
    ImportRequest,
    ImportResponse,
    OkResponse,
    RecipeDetail,
    RecipeListItem,
    SetDefaultRequest,
)
from recipe_editor.app.services.version_service import VersionService
from recipe_editor.services.edit_agent import EditAgent
from recipe_editor.services.edit_events import encode_event
from recipe_editor.services.errors import ModelCallError

log = logging.getLogger("recipes")
router = APIRouter(prefix="/recipes", tags=["recipes"])

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def _repository_failure(exc: RecipeRepositoryError) -> HTTPException:
    log.error("recipes.repository_error operation=%s reason=%s", exc.operation, exc.reason)
    return HTTPException(status_code=500, detail="Storage error. Please try again.")


@router.post(
    "/import",
    response_model=ImportResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_model_client)],
)
async def import_recipe(
    payload: ImportRequest,
    service: VersionService = Depends(get_version_service),
) -> ImportResponse:
    try:
        record = await service.import_recipe(payload.markdown, payload.sourceUrl, payload.imagePath)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except RecipeAlreadyImportedError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except ModelCallError as exc:
        log.warning("recipes.import_parse_failed url=%s error=%s", payload.sourceUrl, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    except RecipeRepositoryError as exc:
        raise _repository_failure(exc)
    return ImportResponse(recipeId=record.id, defaultVersionId=record.defaultVersionId)


@router.get("", response_model=list[RecipeListItem], response_model_exclude_none=True)
async def list_recipes(service: VersionService = Depends(get_version_service)) -> list[RecipeListItem]:
    try:
        return await service.list_recipes()
    except RecipeRepositoryError as exc:
        raise _repository_failure(exc)


@router.get("/{recipe_id}", response_model=RecipeDetail, response_model_exclude_none=True)
async def get_recipe(
    recipe_id: str,
    service: VersionService = Depends(get_version_service),
) -> RecipeDetail:
    try:
        return await service.get_recipe_detail(recipe_id)
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RecipeRepositoryError as exc:
        raise _repository_failure(exc)


@router.post("/{recipe_id}/edit")
async def edit_recipe(
    recipe_id: str,
    payload: EditRequest,
    repo: RecipeRepository = Depends(get_recipe_repository),
    client: ModelClient = Depends(get_model_client),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    try:
        record = await run_in_threadpool(repo.get_recipe, recipe_id)
        tags = await run_in_threadpool(repo.load_tags)
    except RecipeRepositoryError as exc:
        raise _repository_failure(exc)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Recipe not found: {recipe_id}")

    agent = EditAgent.from_settings(client, settings)
    stream = agent.stream_turn(payload.currentRecipe, payload.history, payload.prompt, tags)
    log.info("recipes.edit_started recipe=%s history=%d", recipe_id, len(payload.history))

    async def ndjson_lines():
        # A client disconnect stops this generator only; the turn itself runs to completion
        async for event in stream:
            yield encode_event(event)

    return StreamingResponse(
        ndjson_lines(),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/{recipe_id}/versions", response_model=CommitVersionResponse, response_model_exclude_none=True)
async def commit_version(
    recipe_id: str,
    payload: CommitVersionRequest,
    service: VersionService = Depends(get_version_service),
) -> CommitVersionResponse:
    try:
        result = await service.commit_version(
            recipe_id,
            payload.recipe,
            edit_prompt=payload.editPrompt,
            original_recipe=payload.originalRecipe,
        )
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RecipeRepositoryError as exc:
        raise _repository_failure(exc)
    return CommitVersionResponse(versionId=result.version_id, name=result.name, changeset=result.changeset)


@router.patch("/{recipe_id}/default", response_model=OkResponse)
async def set_default_version(
    recipe_id: str,
    payload: SetDefaultRequest,
    service: VersionService = Depends(get_version_service),
) -> OkResponse:
    try:
        await service.set_default_version(recipe_id, payload.versionId)
    except (RecipeNotFoundError, VersionNotFoundError) as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RecipeRepositoryError as exc:
        raise _repository_failure(exc)
    return OkResponse()


@router.delete("/{recipe_id}", response_model=OkResponse)
async def delete_recipe(
    recipe_id: str,
    service: VersionService = Depends(get_version_service),
) -> OkResponse:
    try:
        await service.delete_recipe(recipe_id)
    except RecipeNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except RecipeRepositoryError as exc:
        raise _repository_failure(exc)
    return OkResponse()
