"""Recipe cost roll-up and margin helpers."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping

from .models import Ingredient, MenuItem, RecipeItem

PriceTable = Mapping[str, Ingredient]


def price_table(ingredients: Iterable[Ingredient] | PriceTable) -> dict[str, Ingredient]:
    """Index ingredients by id. Later duplicates win, as in a snapshot."""
    if isinstance(ingredients, Mapping):
        return dict(ingredients)
    return {ing.id: ing for ing in ingredients}


def compute_total_cost(
    recipe: Iterable[RecipeItem],
    prices: Iterable[Ingredient] | PriceTable,
) -> float:
    """Sum quantity x price_per_unit over the recipe, in list order.

    Lines whose ingredient no longer exists contribute nothing. Negative
    quantities are not validated and reduce the cost.
    """
    table = price_table(prices)
    total = 0.0
    for line in recipe:
        ing = table.get(line.ingredient_id)
        if ing is None:
            continue
        total += line.quantity * ing.price_per_unit
    return total


def margin_pct(price: float, cost: float) -> float:
    """Gross margin as a percentage of price; 0 when price is not positive."""
    if price <= 0:
        return 0.0
    return (price - cost) / price * 100


def with_recomputed_cost(
    item: MenuItem, prices: Iterable[Ingredient] | PriceTable
) -> MenuItem:
    """Return a copy of ``item`` whose total_cost reflects ``prices``."""
    updated = copy.deepcopy(item)
    updated.total_cost = compute_total_cost(updated.recipe, prices)
    return updated


def add_to_recipe(
    recipe: list[RecipeItem], ingredient_id: str, quantity: float = 1.0
) -> list[RecipeItem]:
    """Append a line for ``ingredient_id`` unless the recipe already has one."""
    if any(r.ingredient_id == ingredient_id for r in recipe):
        return list(recipe)
    return [*recipe, RecipeItem(ingredient_id=ingredient_id, quantity=quantity)]


def set_recipe_quantity(
    recipe: list[RecipeItem], ingredient_id: str, quantity: float
) -> list[RecipeItem]:
    return [
        RecipeItem(ingredient_id=r.ingredient_id, quantity=quantity)
        if r.ingredient_id == ingredient_id
        else r
        for r in recipe
    ]


def remove_from_recipe(
    recipe: list[RecipeItem], ingredient_id: str
) -> list[RecipeItem]:
    return [r for r in recipe if r.ingredient_id != ingredient_id]


def ingredient_names(
    recipe: Iterable[RecipeItem], prices: Iterable[Ingredient] | PriceTable
) -> list[str]:
    """Resolve recipe lines to ingredient names; unknown ids become ""."""
    table = price_table(prices)
    names = []
    for line in recipe:
        ing = table.get(line.ingredient_id)
        names.append(ing.name if ing else "")
    return names
