"""Tests for domain model document mapping."""

import pytest

from restaurant_os.models import (
    CartItem,
    Category,
    Ingredient,
    MenuItem,
    PaymentMethod,
    RecipeItem,
    Sale,
    SalesSummary,
    Unit,
)


class TestIngredient:
    def test_to_doc_uses_stored_field_names(self):
        ing = Ingredient(id="i1", name="Pork", unit=Unit.KG, price_per_unit=120.0)
        assert ing.to_doc() == {
            "id": "i1",
            "name": "Pork",
            "unit": "kg",
            "pricePerUnit": 120.0,
        }

    def test_from_doc(self):
        ing = Ingredient.from_doc({"name": "Milk", "unit": "ml", "pricePerUnit": 0.05}, "i9")
        assert ing.id == "i9"
        assert ing.unit is Unit.ML
        assert ing.price_per_unit == 0.05

    def test_from_doc_keeps_unknown_unit(self):
        """AI-created ingredients may use units outside the enum."""
        ing = Ingredient.from_doc({"id": "i2", "name": "Fish sauce", "unit": "tbsp"})
        assert ing.unit == "tbsp"
        assert ing.price_per_unit == 0.0


class TestMenuItem:
    def test_from_doc_defaults(self):
        item = MenuItem.from_doc({"id": "m1", "name": "Som Tam"})
        assert item.recipe == []
        assert item.total_cost == 0.0
        assert item.category is Category.MAIN
        assert item.image_url is None

    def test_doc_mapping(self):
        item = MenuItem(
            id="m1",
            name="Kaprao",
            price=60,
            category=Category.MAIN,
            description="Spicy basil pork",
            recipe=[RecipeItem(ingredient_id="pork", quantity=0.15)],
            total_cost=18,
        )
        doc = item.to_doc()
        assert doc["recipe"] == [{"ingredientId": "pork", "quantity": 0.15}]
        assert doc["totalCost"] == 18
        assert "imageUrl" not in doc
        assert MenuItem.from_doc(doc) == item

    def test_image_url_kept(self):
        item = MenuItem(id="m1", name="Tea", image_url="https://example.com/tea.jpg")
        assert item.to_doc()["imageUrl"] == "https://example.com/tea.jpg"


class TestCartItem:
    def test_from_menu_item(self):
        item = MenuItem(id="m1", name="Tea", price=20, total_cost=5)
        line = CartItem.from_menu_item(item, cart_id="c1")
        assert line.id == "m1"
        assert line.qty == 1
        assert line.to_doc()["cartId"] == "c1"
        assert line.to_doc()["qty"] == 1


class TestSale:
    def test_sale_is_immutable(self):
        sale = Sale(id="s1", timestamp=0, items=(), total_amount=10,
                    total_cost=4, payment_method=PaymentMethod.CASH)
        with pytest.raises(AttributeError):
            sale.total_amount = 20

    def test_doc_mapping(self):
        line = CartItem(id="m1", name="Tea", price=20, total_cost=5, cart_id="c1", qty=3)
        sale = Sale(id="s1", timestamp=1_700_000_000_000, items=(line,),
                    total_amount=60, total_cost=15,
                    payment_method=PaymentMethod.QRCODE)
        doc = sale.to_doc()
        assert doc["paymentMethod"] == "qrcode"
        assert doc["items"][0]["qty"] == 3
        restored = Sale.from_doc(doc)
        assert restored.items[0].qty == 3
        assert restored.payment_method is PaymentMethod.QRCODE
        assert restored.profit == 45


def test_sales_summary_profit_and_margin():
    summary = SalesSummary(revenue=200, cost=50, count=3)
    assert summary.profit == 150
    assert summary.margin_pct == 75.0
