from __future__ import annotations

import pytest

from recipe_editor.app.domain.models import Ingredient, Recipe
from recipe_editor.services.edit_tools import (
    ASK_CLARIFICATION,
    EDIT_TOOLS,
    FINALIZE,
    UPDATE_INGREDIENTS,
    UPDATE_METADATA,
    UPDATE_STEPS,
    ToolKind,
    ToolRegistry,
)
from recipe_editor.services.errors import ModelCallError, ToolInputError, UnknownToolError


def make_recipe(**overrides) -> Recipe:
    data = {
        "title": "Pancakes",
        "servings": 4,
        "prepTime": 10,
        "cookTime": 15,
        "ingredients": [
            Ingredient(name="Flour", quantity=200, unit="g"),
            Ingredient(name="Egg", quantity=2),
            Ingredient(name="Milk", quantity=300, unit="ml"),
        ],
        "steps": ["Whisk everything", "Rest 10 minutes", "Cook on a hot pan"],
        "tags": ["breakfast"],
        "cuisine": "American",
        "category": "Breakfast",
        "sourceUrl": "https://example.com/pancakes",
        "scrapedAt": "2024-01-15T10:00:00.000Z",
    }
    data.update(overrides)
    return Recipe(**data)


def _run(tool, arguments: dict, draft: Recipe) -> Recipe:
    return tool.apply(tool.parse(arguments), draft)


class TestUpdateIngredients:
    def test_replaces_whole_list_even_when_shorter(self) -> None:
        draft = make_recipe()

        updated = _run(UPDATE_INGREDIENTS, {"ingredients": [{"name": "Oat flour", "quantity": 180, "unit": "g"}]}, draft)

        assert updated.ingredients == [Ingredient(name="Oat flour", quantity=180, unit="g")]
        assert updated.steps == draft.steps

    def test_does_not_touch_the_input_draft(self) -> None:
        draft = make_recipe()

        _run(UPDATE_INGREDIENTS, {"ingredients": []}, draft)

        assert len(draft.ingredients) == 3

    def test_missing_list_is_rejected(self) -> None:
        with pytest.raises(ToolInputError) as exc_info:
            UPDATE_INGREDIENTS.parse({})

        assert exc_info.value.tool_name == "update_ingredients"
        assert isinstance(exc_info.value, ModelCallError)


class TestUpdateSteps:
    def test_replaces_whole_list(self) -> None:
        updated = _run(UPDATE_STEPS, {"steps": ["Blend", "Fry"]}, make_recipe())

        assert updated.steps == ["Blend", "Fry"]


class TestUpdateMetadata:
    def test_merges_only_present_fields(self) -> None:
        draft = make_recipe()

        updated = _run(UPDATE_METADATA, {"title": "New"}, draft)

        assert updated.title == "New"
        assert updated.servings == 4
        assert updated.prepTime == 10
        assert updated.tags == ["breakfast"]
        assert updated.ingredients == draft.ingredients

    def test_null_fields_are_left_untouched(self) -> None:
        updated = _run(UPDATE_METADATA, {"servings": 2, "cuisine": None}, make_recipe())

        assert updated.servings == 2
        assert updated.cuisine == "American"

    def test_tags_are_replaced(self) -> None:
        updated = _run(UPDATE_METADATA, {"tags": ["vegan", "quick"]}, make_recipe())

        assert updated.tags == ["vegan", "quick"]

    def test_can_set_a_field_that_was_empty(self) -> None:
        updated = _run(UPDATE_METADATA, {"category": "Dessert"}, make_recipe(category=None))

        assert updated.category == "Dessert"


class TestAskClarification:
    def test_does_not_mutate(self) -> None:
        draft = make_recipe()

        payload = ASK_CLARIFICATION.parse({"question": "Which pan size?"})

        assert ASK_CLARIFICATION.apply(payload, draft) is draft
        assert payload.question == "Which pan size?"
        assert ASK_CLARIFICATION.mutates is False


class TestFinalize:
    def test_reattaches_provenance(self) -> None:
        draft = make_recipe()
        finished = {
            "title": "Vegan Pancakes",
            "ingredients": [{"name": "Flour", "quantity": 200, "unit": "g"}],
            "steps": ["Mix", "Cook"],
        }

        updated = _run(FINALIZE, {"recipe": finished}, draft)

        assert updated.title == "Vegan Pancakes"
        assert updated.servings is None
        assert updated.sourceUrl == "https://example.com/pancakes"
        assert updated.scrapedAt == "2024-01-15T10:00:00.000Z"

    def test_provenance_from_model_is_ignored(self) -> None:
        finished = {
            "title": "Pancakes",
            "ingredients": [],
            "steps": [],
            "sourceUrl": "https://evil.example.com",
            "scrapedAt": "2030-01-01T00:00:00Z",
        }

        updated = _run(FINALIZE, {"recipe": finished}, make_recipe())

        assert updated.sourceUrl == "https://example.com/pancakes"
        assert updated.scrapedAt == "2024-01-15T10:00:00.000Z"


class TestToolRegistry:
    def test_default_tools(self) -> None:
        assert EDIT_TOOLS.names == [
            "update_ingredients",
            "update_steps",
            "update_metadata",
            "ask_clarification",
            "finalize",
        ]
        assert len(EDIT_TOOLS) == 5

    def test_kinds(self) -> None:
        kinds = {tool.name: tool.kind for tool in EDIT_TOOLS}

        assert kinds["ask_clarification"] is ToolKind.CLARIFICATION
        assert kinds["finalize"] is ToolKind.FINALIZE
        assert kinds["update_steps"] is ToolKind.MUTATION

    def test_resolve_unknown_tool(self) -> None:
        with pytest.raises(UnknownToolError) as exc_info:
            EDIT_TOOLS.resolve("delete_recipe")

        assert exc_info.value.tool_name == "delete_recipe"

    def test_specs_carry_json_schema(self) -> None:
        specs = {spec.name: spec for spec in EDIT_TOOLS.specs()}

        assert specs["update_steps"].parameters["properties"]["steps"]["type"] == "array"
        assert "question" in specs["ask_clarification"].parameters["required"]
        assert "sourceUrl" not in str(specs["finalize"].parameters)

    def test_duplicate_names_rejected(self) -> None:
        with pytest.raises(ValueError):
            ToolRegistry([UPDATE_STEPS, UPDATE_STEPS])

    def test_table_is_read_only(self) -> None:
        with pytest.raises(TypeError):
            EDIT_TOOLS._tools["finalize"] = UPDATE_STEPS  # type: ignore[index]
