"""Tests for menu engineering helpers."""

import pytest

from restaurant_os.assist import RecipeSuggestion, SuggestedIngredient
from restaurant_os.menu import (
    apply_recipe_suggestion,
    can_analyze,
    find_matching_ingredient,
    new_ingredient,
    new_menu_item,
    validate_ingredient,
    validate_menu_item,
)
from restaurant_os.models import Category, Ingredient, MenuItem, Unit


@pytest.fixture
def pantry():
    return [
        Ingredient(id="pork", name="Minced Pork", unit=Unit.KG, price_per_unit=140),
        Ingredient(id="egg", name="Egg", unit=Unit.PCS, price_per_unit=4),
    ]


class TestFactories:
    def test_new_ingredient_has_id(self):
        ing = new_ingredient("Garlic", "g", 0.1)
        assert ing.id
        assert ing.unit is Unit.G

    def test_new_menu_item(self):
        item = new_menu_item("Tea", 20, "drink")
        assert item.id
        assert item.category is Category.DRINK
        assert item.recipe == []
        assert item.total_cost == 0

    def test_ids_unique(self):
        assert new_ingredient("a").id != new_ingredient("a").id


class TestValidation:
    def test_valid_ingredient(self):
        validate_ingredient(Ingredient(id="x", name="Salt", price_per_unit=10))

    @pytest.mark.parametrize("name,price", [("", 10), ("Salt", 0), ("Salt", -1)])
    def test_invalid_ingredient(self, name, price):
        with pytest.raises(ValueError):
            validate_ingredient(Ingredient(id="x", name=name, price_per_unit=price))

    def test_valid_menu_item(self):
        validate_menu_item(MenuItem(id="m", name="Tea", price=20))

    @pytest.mark.parametrize("name,price", [("", 20), ("Tea", 0)])
    def test_invalid_menu_item(self, name, price):
        with pytest.raises(ValueError):
            validate_menu_item(MenuItem(id="m", name=name, price=price))

    def test_can_analyze(self):
        assert can_analyze(MenuItem(id="m", name="Tea", price=20, total_cost=5))
        assert not can_analyze(MenuItem(id="m", name="Tea", price=20))
        assert not can_analyze(MenuItem(id="m", name="Tea", total_cost=5))


class TestFindMatchingIngredient:
    def test_suggested_name_contained_in_existing(self, pantry):
        assert find_matching_ingredient("pork", pantry).id == "pork"

    def test_existing_name_contained_in_suggested(self, pantry):
        assert find_matching_ingredient("Fresh Egg", pantry).id == "egg"

    def test_no_match(self, pantry):
        assert find_matching_ingredient("Basil", pantry) is None

    def test_empty_name_never_matches(self, pantry):
        assert find_matching_ingredient("  ", pantry) is None


class TestApplyRecipeSuggestion:
    def test_reuses_and_creates(self, pantry):
        suggestion = RecipeSuggestion(
            description="Basil pork with fried egg",
            ingredients=[
                SuggestedIngredient("Pork", 0.15, "kg", 150),
                SuggestedIngredient("Holy Basil", 10, "g", 0.2),
                SuggestedIngredient("Egg", 1, "pcs", 5),
            ],
        )
        description, recipe, created = apply_recipe_suggestion(suggestion, pantry)

        assert description == "Basil pork with fried egg"
        assert [r.ingredient_id for r in recipe][0] == "pork"
        assert recipe[0].quantity == 0.15
        assert recipe[2].ingredient_id == "egg"
        assert len(created) == 1
        basil = created[0]
        assert basil.name == "Holy Basil"
        assert basil.unit is Unit.G
        assert basil.price_per_unit == 0.2
        assert recipe[1].ingredient_id == basil.id

    def test_existing_prices_untouched(self, pantry):
        suggestion = RecipeSuggestion("", [SuggestedIngredient("Pork", 0.2, "kg", 999)])
        apply_recipe_suggestion(suggestion, pantry)
        assert pantry[0].price_per_unit == 140

    def test_duplicate_suggestions_collapse(self, pantry):
        suggestion = RecipeSuggestion(
            "",
            [
                SuggestedIngredient("Chili", 5, "g", 0.3),
                SuggestedIngredient("Bird's eye chili", 3, "g", 0.3),
            ],
        )
        _, recipe, created = apply_recipe_suggestion(suggestion, pantry)
        assert len(created) == 1
        assert len(recipe) == 1
        assert recipe[0].quantity == 5

    def test_unknown_unit_kept(self, pantry):
        suggestion = RecipeSuggestion("", [SuggestedIngredient("Fish sauce", 1, "tbsp", 2)])
        _, _, created = apply_recipe_suggestion(suggestion, pantry)
        assert created[0].unit == "tbsp"
