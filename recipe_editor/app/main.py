# recipe_editor/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recipe_editor import __version__
from recipe_editor.app.config import get_settings
from recipe_editor.app.deps import build_model_client
from recipe_editor.app.routers.recipes import router as recipes_router
from recipe_editor.app.routers.tags import router as tags_router

settings = get_settings()

# Plain stdout logging, fine for dev and containers
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("main")

app = FastAPI(title="Recipe Editor API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recipes_router)
app.include_router(tags_router)

app.state.model_client = None


@app.on_event("startup")
async def startup() -> None:
    # The process owns the model client; edit turns only borrow it
    app.state.model_client = build_model_client(settings)
    if app.state.model_client is None:
        log.warning("GEMINI_API_KEY is not set; edit and import routes will return 503")


@app.on_event("shutdown")
async def shutdown() -> None:
    client = app.state.model_client
    app.state.model_client = None
    if client is not None:
        await client.aclose()


@app.get("/health")
def health():
    return {"ok": True}
