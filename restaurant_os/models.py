"""Domain model for ingredients, menu items, cart lines and sales.

Python attributes are snake_case; the stored documents keep the camelCase
field names used by the shared database (``pricePerUnit``, ``totalCost``...).
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum


class Unit(str, Enum):
    KG = "kg"
    G = "g"
    L = "l"
    ML = "ml"
    PCS = "pcs"


class Category(str, Enum):
    MAIN = "main"
    APPETIZER = "appetizer"
    DRINK = "drink"
    DESSERT = "dessert"


class PaymentMethod(str, Enum):
    CASH = "cash"
    QRCODE = "qrcode"


def coerce_enum(enum_cls, value):
    """Coerce to the enum when possible, otherwise keep the raw string.

    Documents written by other clients (or AI-created ingredients) may carry
    values outside the enum; a snapshot must never fail on them.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _value(v) -> str:
    return v.value if isinstance(v, Enum) else v


@dataclass
class Ingredient:
    id: str
    name: str
    unit: Unit | str = Unit.KG
    price_per_unit: float = 0.0  # per one `unit`

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unit": _value(self.unit),
            "pricePerUnit": self.price_per_unit,
        }

    @classmethod
    def from_doc(cls, doc: dict, doc_id: str | None = None) -> Ingredient:
        return cls(
            id=doc_id or doc.get("id", ""),
            name=doc.get("name", ""),
            unit=coerce_enum(Unit, doc.get("unit", "kg")),
            price_per_unit=float(doc.get("pricePerUnit", 0) or 0),
        )


@dataclass
class RecipeItem:
    ingredient_id: str
    quantity: float = 1.0

    def to_doc(self) -> dict:
        return {"ingredientId": self.ingredient_id, "quantity": self.quantity}

    @classmethod
    def from_doc(cls, doc: dict) -> RecipeItem:
        return cls(
            ingredient_id=doc.get("ingredientId", ""),
            quantity=float(doc.get("quantity", 0) or 0),
        )


@dataclass
class MenuItem:
    id: str
    name: str
    price: float = 0.0
    category: Category | str = Category.MAIN
    description: str = ""
    recipe: list[RecipeItem] = field(default_factory=list)
    total_cost: float = 0.0  # derived from recipe, see costing.compute_total_cost
    image_url: str | None = None

    @property
    def margin_pct(self) -> float:
        from .costing import margin_pct

        return margin_pct(self.price, self.total_cost)

    def to_doc(self) -> dict:
        doc = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": _value(self.category),
            "recipe": [r.to_doc() for r in self.recipe],
            "totalCost": self.total_cost,
        }
        if self.image_url:
            doc["imageUrl"] = self.image_url
        return doc

    @classmethod
    def from_doc(cls, doc: dict, doc_id: str | None = None) -> MenuItem:
        return cls(
            id=doc_id or doc.get("id", ""),
            name=doc.get("name", ""),
            price=float(doc.get("price", 0) or 0),
            category=coerce_enum(Category, doc.get("category", "main")),
            description=doc.get("description", "") or "",
            recipe=[RecipeItem.from_doc(r) for r in doc.get("recipe") or []],
            total_cost=float(doc.get("totalCost", 0) or 0),
            image_url=doc.get("imageUrl"),
        )


@dataclass
class CartItem(MenuItem):
    cart_id: str = ""
    qty: int = 1

    @classmethod
    def from_menu_item(cls, item: MenuItem, cart_id: str, qty: int = 1) -> CartItem:
        return cls(
            id=item.id,
            name=item.name,
            price=item.price,
            category=item.category,
            description=item.description,
            recipe=copy.deepcopy(item.recipe),
            total_cost=item.total_cost,
            image_url=item.image_url,
            cart_id=cart_id,
            qty=qty,
        )

    def to_doc(self) -> dict:
        doc = super().to_doc()
        doc["cartId"] = self.cart_id
        doc["qty"] = self.qty
        return doc

    @classmethod
    def from_doc(cls, doc: dict, doc_id: str | None = None) -> CartItem:
        base = MenuItem.from_doc(doc, doc_id)
        return cls.from_menu_item(
            base,
            cart_id=doc.get("cartId", ""),
            qty=int(doc.get("qty", 1) or 1),
        )


@dataclass(frozen=True)
class Sale:
    """A completed checkout. Immutable once created."""

    id: str
    timestamp: int  # epoch millis
    items: tuple[CartItem, ...]
    total_amount: float
    total_cost: float
    payment_method: PaymentMethod | str

    @property
    def profit(self) -> float:
        return self.total_amount - self.total_cost

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "items": [i.to_doc() for i in self.items],
            "totalAmount": self.total_amount,
            "totalCost": self.total_cost,
            "paymentMethod": _value(self.payment_method),
        }

    @classmethod
    def from_doc(cls, doc: dict, doc_id: str | None = None) -> Sale:
        return cls(
            id=doc_id or doc.get("id", ""),
            timestamp=int(doc.get("timestamp", 0) or 0),
            items=tuple(CartItem.from_doc(i) for i in doc.get("items") or []),
            total_amount=float(doc.get("totalAmount", 0) or 0),
            total_cost=float(doc.get("totalCost", 0) or 0),
            payment_method=coerce_enum(
                PaymentMethod, doc.get("paymentMethod", "cash")
            ),
        )


@dataclass
class SalesSummary:
    """Revenue/cost reduction over a set of sales."""

    revenue: float = 0.0
    cost: float = 0.0
    count: int = 0

    @property
    def profit(self) -> float:
        return self.revenue - self.cost

    @property
    def margin_pct(self) -> float:
        if not self.revenue:
            return 0.0
        return self.profit / self.revenue * 100

    def summary_dict(self) -> dict:
        return {
            "revenue": round(self.revenue, 2),
            "cost": round(self.cost, 2),
            "profit": round(self.profit, 2),
            "count": self.count,
            "margin_pct": round(self.margin_pct, 1),
        }
