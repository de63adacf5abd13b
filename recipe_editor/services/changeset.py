from __future__ import annotations

from typing import Iterable, Union

from recipe_editor.app.domain.models import (
    Ingredient,
    IngredientAdded,
    IngredientModified,
    IngredientRemoved,
)

Diff = Union[IngredientAdded, IngredientRemoved, IngredientModified]


def _by_name(ingredients: Iterable[Ingredient]) -> dict[str, Ingredient]:
    # Duplicate names collapse onto one slot; the later entry wins
    mapping: dict[str, Ingredient] = {}
    for ingredient in ingredients:
        mapping[ingredient.key] = ingredient
    return mapping


def compute_changeset(before: Iterable[Ingredient], after: Iterable[Ingredient]) -> list[Diff]:
    """
    Diff two ingredient lists by lower-cased name.

    Removed and modified entries come first, in the order of ``before``;
    added entries follow, in the order of ``after``.
    """
    original = _by_name(before)
    edited = _by_name(after)

    changes: list[Diff] = []
    for key, old in original.items():
        new = edited.get(key)
        if new is None:
            changes.append(IngredientRemoved(ingredient=old))
        elif old != new:
            changes.append(IngredientModified(before=old, after=new))

    for key, new in edited.items():
        if key not in original:
            changes.append(IngredientAdded(ingredient=new))

    return changes
