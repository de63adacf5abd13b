from __future__ import annotations

import logging
from typing import Optional

from recipe_editor.app.domain.models import Recipe
from recipe_editor.app.infra.llm.base import ModelClient
from recipe_editor.services.prompts import build_version_name_prompt

log = logging.getLogger(__name__)

_MAX_NAME_LENGTH = 80


def clean_version_name(text: str) -> Optional[str]:
    name = text.strip().splitlines()[0].strip() if text.strip() else ""
    name = name.strip("\"'`").strip()
    if not name:
        return None
    return name[:_MAX_NAME_LENGTH]


async def generate_version_name(
    client: ModelClient,
    edit_prompt: str,
    before: Recipe,
    after: Recipe,
) -> Optional[str]:
    """
    Ask the model for a short label for a committed version.
    Never raises: a failed or empty answer degrades to None.
    """
    try:
        prompt = build_version_name_prompt(edit_prompt, before, after)
        text = await client.generate_text(prompt)
    except Exception as exc:
        log.warning("version_name.failed error=%s", exc)
        return None
    return clean_version_name(text)
