from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from string import Template
from typing import Sequence

from recipe_editor.app.domain.models import Recipe
from recipe_editor.services.errors import PromptTemplateError

PROMPTS_DIR = Path(__file__).resolve().parent.parent / "data" / "prompts"

EDIT_SYSTEM_PROMPT = "edit_system.txt"
VERSION_NAME_PROMPT = "version_name.txt"
PARSE_RECIPE_PROMPT = "parse_recipe.txt"


@lru_cache(maxsize=None)
def load_template(file_name: str) -> Template:
    file_path = PROMPTS_DIR / file_name
    try:
        return Template(file_path.read_text(encoding="utf-8"))
    except FileNotFoundError as not_found_error:
        raise PromptTemplateError(f"Prompt file not found: {file_path}") from not_found_error
    except OSError as io_error:
        raise PromptTemplateError(f"Unable to read prompt file: {io_error}") from io_error


def _render(file_name: str, **values: str) -> str:
    try:
        return load_template(file_name).substitute(**values).strip()
    except KeyError as missing:
        raise PromptTemplateError(f"Missing value {missing} for prompt {file_name}") from missing


def build_tag_instruction(tags: Sequence[str]) -> str:
    if not tags:
        return ""
    return f"- Set tags by picking only from this list: [{', '.join(tags)}]. Leave tags empty if none apply."


def _tag_rule(tags: Sequence[str]) -> str:
    instruction = build_tag_instruction(tags)
    return f"\n{instruction}" if instruction else ""


def build_edit_system_prompt(recipe: Recipe, allowed_tags: Sequence[str]) -> str:
    # Provenance is server-managed; the model never sees it
    recipe_json = json.dumps(
        recipe.to_editable().model_dump(mode="json", exclude_none=True),
        indent=2,
        ensure_ascii=False,
    )
    return _render(EDIT_SYSTEM_PROMPT, recipe_json=recipe_json, tag_rule=_tag_rule(allowed_tags))


def build_version_name_prompt(edit_prompt: str, before: Recipe, after: Recipe) -> str:
    return _render(
        VERSION_NAME_PROMPT,
        edit_prompt=edit_prompt.strip(),
        original_title=before.title,
        edited_title=after.title,
    )


def build_parse_prompt(markdown: str, source_url: str, allowed_tags: Sequence[str]) -> str:
    return _render(
        PARSE_RECIPE_PROMPT,
        source_url=source_url,
        markdown=markdown,
        tag_rule=_tag_rule(allowed_tags),
    )
