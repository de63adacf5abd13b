from __future__ import annotations

import pytest

from recipe_editor.app.domain.models import (
    Ingredient,
    IngredientAdded,
    IngredientModified,
    IngredientRemoved,
)
from recipe_editor.services.changeset import compute_changeset


class TestComputeChangeset:
    def test_removed_ingredient(self) -> None:
        changes = compute_changeset([Ingredient(name="egg")], [])

        assert changes == [IngredientRemoved(ingredient=Ingredient(name="egg"))]
        assert changes[0].model_dump(exclude_none=True) == {"type": "removed", "ingredient": {"name": "egg"}}

    def test_added_ingredient(self) -> None:
        changes = compute_changeset([], [Ingredient(name="egg")])

        assert changes == [IngredientAdded(ingredient=Ingredient(name="egg"))]

    def test_name_match_is_case_insensitive(self) -> None:
        before = Ingredient(name="Egg", quantity=2)
        after = Ingredient(name="egg", quantity=3)

        changes = compute_changeset([before], [after])

        assert len(changes) == 1
        assert isinstance(changes[0], IngredientModified)
        assert changes[0].before == before
        assert changes[0].after == after

    def test_only_case_differs_is_modified(self) -> None:
        changes = compute_changeset([Ingredient(name="Egg")], [Ingredient(name="egg")])

        assert [change.type for change in changes] == ["modified"]

    def test_identical_lists_produce_no_changes(self) -> None:
        ingredients = [
            Ingredient(name="Flour", quantity=200, unit="g"),
            Ingredient(name="Butter", quantity=50, unit="g", preparation="melted"),
        ]

        assert compute_changeset(ingredients, [i.model_copy() for i in ingredients]) == []

    def test_int_and_float_quantities_compare_equal(self) -> None:
        changes = compute_changeset([Ingredient(name="egg", quantity=2)], [Ingredient(name="egg", quantity=2.0)])

        assert changes == []

    @pytest.mark.parametrize(
        "after",
        [
            Ingredient(name="butter", quantity=60, unit="g", preparation="melted"),
            Ingredient(name="butter", quantity=50, unit="oz", preparation="melted"),
            Ingredient(name="butter", quantity=50, unit="g", preparation="softened"),
            Ingredient(name="butter", quantity=50, unit="g"),
        ],
    )
    def test_any_field_change_is_detected(self, after: Ingredient) -> None:
        before = Ingredient(name="butter", quantity=50, unit="g", preparation="melted")

        changes = compute_changeset([before], [after])

        assert changes == [IngredientModified(before=before, after=after)]

    def test_output_order(self) -> None:
        before = [
            Ingredient(name="flour"),
            Ingredient(name="milk", quantity=1),
            Ingredient(name="sugar"),
        ]
        after = [
            Ingredient(name="oat milk"),
            Ingredient(name="sugar"),
            Ingredient(name="milk", quantity=2),
            Ingredient(name="salt"),
        ]

        changes = compute_changeset(before, after)

        assert [(change.type, _name(change)) for change in changes] == [
            ("removed", "flour"),
            ("modified", "milk"),
            ("added", "oat milk"),
            ("added", "salt"),
        ]

    def test_duplicate_names_last_entry_wins(self) -> None:
        before = [Ingredient(name="egg", quantity=1), Ingredient(name="EGG", quantity=3)]
        after = [Ingredient(name="egg", quantity=3)]

        changes = compute_changeset(before, after)

        assert len(changes) == 1
        assert changes[0].type == "modified"
        assert changes[0].before == Ingredient(name="EGG", quantity=3)

    def test_duplicate_names_keep_first_position(self) -> None:
        before = [Ingredient(name="a"), Ingredient(name="b"), Ingredient(name="A", unit="g")]

        changes = compute_changeset(before, [])

        assert [change.ingredient for change in changes] == [
            Ingredient(name="A", unit="g"),
            Ingredient(name="b"),
        ]


def _name(change) -> str:
    if change.type == "modified":
        return change.after.name
    return change.ingredient.name
