"""Menu engineering: validation, id factories, and AI recipe hand-off."""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from .assist import RecipeSuggestion
from .models import Category, Ingredient, MenuItem, RecipeItem, Unit, coerce_enum


def new_id() -> str:
    return uuid.uuid4().hex


def new_ingredient(
    name: str, unit: Unit | str = Unit.KG, price_per_unit: float = 0.0
) -> Ingredient:
    return Ingredient(
        id=new_id(),
        name=name,
        unit=coerce_enum(Unit, unit),
        price_per_unit=price_per_unit,
    )


def new_menu_item(
    name: str,
    price: float,
    category: Category | str = Category.MAIN,
    description: str = "",
    recipe: list[RecipeItem] | None = None,
) -> MenuItem:
    return MenuItem(
        id=new_id(),
        name=name,
        price=price,
        category=coerce_enum(Category, category),
        description=description,
        recipe=list(recipe or []),
    )


def validate_ingredient(ing: Ingredient) -> None:
    """Raise ValueError unless the ingredient has a name and a positive price."""
    if not ing.name:
        raise ValueError("Ingredient name is required")
    if not ing.price_per_unit or ing.price_per_unit < 0:
        raise ValueError(f"Ingredient {ing.name!r} needs a positive price per unit")


def validate_menu_item(item: MenuItem) -> None:
    """Raise ValueError unless the menu item has a name and a positive price."""
    if not item.name:
        raise ValueError("Menu item name is required")
    if not item.price or item.price < 0:
        raise ValueError(f"Menu item {item.name!r} needs a positive price")


def can_analyze(item: MenuItem) -> bool:
    """Profitability analysis needs both a price and a computed cost."""
    return bool(item.price) and bool(item.total_cost)


def find_matching_ingredient(
    name: str, ingredients: Iterable[Ingredient]
) -> Ingredient | None:
    """First ingredient whose name contains ``name`` or is contained in it.

    Case-insensitive. Empty names never match.
    """
    needle = name.strip().lower()
    if not needle:
        return None
    for ing in ingredients:
        existing = ing.name.strip().lower()
        if not existing:
            continue
        if needle in existing or existing in needle:
            return ing
    return None


def apply_recipe_suggestion(
    suggestion: RecipeSuggestion,
    ingredients: Iterable[Ingredient],
) -> tuple[str, list[RecipeItem], list[Ingredient]]:
    """Turn an AI suggestion into a recipe over known and new ingredients.

    Suggested ingredients that match an existing one by name reuse its id;
    the rest become new :class:`Ingredient` objects priced at the suggested
    market price. The caller is responsible for persisting those.

    Returns:
        (description, recipe, new_ingredients)
    """
    known = list(ingredients)
    recipe: list[RecipeItem] = []
    created: list[Ingredient] = []

    for suggested in suggestion.ingredients:
        match = find_matching_ingredient(suggested.name, known)
        if match is None:
            match = new_ingredient(
                suggested.name, suggested.unit, suggested.market_price
            )
            created.append(match)
            known.append(match)
        if any(r.ingredient_id == match.id for r in recipe):
            continue
        recipe.append(RecipeItem(ingredient_id=match.id, quantity=suggested.quantity))

    return suggestion.description, recipe, created
