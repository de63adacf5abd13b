from __future__ import annotations

import logging
from typing import Sequence

from recipe_editor.app.domain.models import EditableRecipe, Recipe
from recipe_editor.app.infra.llm.base import ModelClient
from recipe_editor.services.prompts import build_parse_prompt

log = logging.getLogger(__name__)


async def parse_recipe_from_markdown(
    client: ModelClient,
    markdown: str,
    source_url: str,
    scraped_at: str,
    tags: Sequence[str] = (),
) -> Recipe:
    """Extract a recipe from page markdown and attach its provenance."""
    if not markdown.strip():
        raise ValueError("markdown cannot be empty.")

    prompt = build_parse_prompt(markdown, source_url, tags)
    parsed = await client.generate_structured(prompt, EditableRecipe)
    if tags and parsed.tags:
        allowed = set(tags)
        parsed = parsed.model_copy(update={"tags": [tag for tag in parsed.tags if tag in allowed]})

    log.info(
        "parse.recipe_done url=%s ingredients=%d steps=%d",
        source_url,
        len(parsed.ingredients),
        len(parsed.steps),
    )
    return parsed.with_provenance(source_url, scraped_at)
