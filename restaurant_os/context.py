"""In-memory mirror of the three store collections.

:class:`DataContext` owns the latest snapshot of ingredients, menu items and
sales. Each collection has exactly one update entry point (the ``set_*``
methods, fed by store subscriptions) and views register listeners instead of
polling. Writes never touch the in-memory lists; they go to the store and come
back as the next snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from .cart import Cart
from .costing import compute_total_cost, price_table, with_recomputed_cost
from .errors import StoreError, StoreErrorKind
from .models import Ingredient, MenuItem, Sale
from .sales import (
    DEFAULT_LABEL_FORMAT,
    DEFAULT_LABEL_LANGUAGE,
    DashboardSummary,
    summarize,
)
from .store import COLLECTIONS, INGREDIENTS, MENU_ITEMS, SALES, StoreBackend, Subscription

logger = logging.getLogger(__name__)

Listener = Callable[[str], None]

_INGREDIENT_FIELDS = {
    "name": "name",
    "unit": "unit",
    "price_per_unit": "pricePerUnit",
}


@dataclass
class WriteResult:
    """Outcome of a single store write."""

    ok: bool
    doc_id: str | None = None
    error: StoreError | None = None

    def __bool__(self) -> bool:
        return self.ok


class DataContext:
    """Owns the synchronized collections and routes writes to the store.

    Args:
        store: Backend providing subscriptions and writes.
        on_store_error: Called with subscription failures of any kind and
            with write failures that are permission-denied, so the
            application can switch to its blocking state.
        label_format: strftime format for dashboard trend labels; empty for
            localized short weekday labels.
        label_language: Language of those weekday labels.
    """

    def __init__(
        self,
        store: StoreBackend,
        on_store_error: Callable[[StoreError], None] | None = None,
        label_format: str = DEFAULT_LABEL_FORMAT,
        label_language: str = DEFAULT_LABEL_LANGUAGE,
    ) -> None:
        self._store = store
        self._on_store_error = on_store_error
        self._label_format = label_format
        self._label_language = label_language
        self._ingredients: list[Ingredient] = []
        self._menu_items: list[MenuItem] = []
        self._stored_costs: dict[str, float] = {}
        self._sales: list[Sale] = []
        self._loaded: set[str] = set()
        self._listeners: list[Listener] = []
        self._subscriptions: list[Subscription] = []

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Subscribe to all three collections."""
        if self._subscriptions:
            return
        handlers = {
            INGREDIENTS: self.set_ingredients,
            MENU_ITEMS: self.set_menu_items,
            SALES: self.set_sales,
        }
        for collection in COLLECTIONS:
            sub = self._store.subscribe(
                collection, handlers[collection], self._subscription_failed
            )
            self._subscriptions.append(sub)
        logger.info("Subscribed to %s", ", ".join(COLLECTIONS))

    def stop(self) -> None:
        for sub in self._subscriptions:
            sub.unsubscribe()
        self._subscriptions.clear()

    def _subscription_failed(self, err: StoreError) -> None:
        logger.error("Store subscription error: %s", err)
        if self._on_store_error is not None:
            self._on_store_error(err)

    # -- observers ---------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(collection)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self, collection: str) -> None:
        self._loaded.add(collection)
        for listener in list(self._listeners):
            listener(collection)

    # -- update entry points -----------------------------------------------

    def set_ingredients(self, docs: list[dict]) -> None:
        self._ingredients = [Ingredient.from_doc(d) for d in docs]
        self._loaded.add(INGREDIENTS)
        self._recompute_costs()
        self._changed(INGREDIENTS)

    def set_menu_items(self, docs: list[dict]) -> None:
        items = [MenuItem.from_doc(d) for d in docs]
        self._stored_costs = {m.id: m.total_cost for m in items}
        self._menu_items = items
        self._recompute_costs()
        self._changed(MENU_ITEMS)

    def set_sales(self, docs: list[dict]) -> None:
        self._sales = [Sale.from_doc(d) for d in docs]
        self._changed(SALES)

    def _recompute_costs(self) -> None:
        # Until ingredients arrive every recipe would resolve to 0, so keep
        # the stored totals.
        if INGREDIENTS not in self._loaded:
            return
        table = price_table(self._ingredients)
        for item in self._menu_items:
            item.total_cost = compute_total_cost(item.recipe, table)

    # -- reads -------------------------------------------------------------

    @property
    def ingredients(self) -> list[Ingredient]:
        return list(self._ingredients)

    @property
    def menu_items(self) -> list[MenuItem]:
        return list(self._menu_items)

    @property
    def sales(self) -> list[Sale]:
        """Sales, newest first."""
        return list(self._sales)

    @property
    def is_loaded(self) -> bool:
        """True once every collection has delivered at least one snapshot."""
        return all(c in self._loaded for c in COLLECTIONS)

    def has_loaded(self, collection: str) -> bool:
        return collection in self._loaded

    def price_table(self) -> dict[str, Ingredient]:
        return price_table(self._ingredients)

    def ingredient(self, ingredient_id: str) -> Ingredient | None:
        return next((i for i in self._ingredients if i.id == ingredient_id), None)

    def menu_item(self, menu_item_id: str) -> MenuItem | None:
        return next((m for m in self._menu_items if m.id == menu_item_id), None)

    def dashboard(self, now: datetime | None = None) -> DashboardSummary:
        return summarize(
            self._sales,
            now,
            label_format=self._label_format,
            language=self._label_language,
        )

    def new_cart(self) -> Cart:
        """A cart whose checkout persists the sale through this context."""
        return Cart(on_checkout=self.record_sale)

    # -- writes ------------------------------------------------------------

    def _write(self, action: str, fn: Callable[[], str | None]) -> WriteResult:
        try:
            doc_id = fn()
        except StoreError as err:
            if err.kind is StoreErrorKind.PERMISSION_DENIED:
                logger.error("%s rejected: %s", action, err)
                if self._on_store_error is not None:
                    self._on_store_error(err)
            else:
                logger.warning("%s failed: %s", action, err)
            return WriteResult(ok=False, error=err)
        return WriteResult(ok=True, doc_id=doc_id)

    def save_ingredient(self, ing: Ingredient) -> WriteResult:
        return self._write(
            f"save ingredient {ing.name!r}",
            lambda: self._store.upsert(INGREDIENTS, ing.to_doc(), ing.id or None),
        )

    def update_ingredient(self, ingredient_id: str, **changes) -> WriteResult:
        """Merge ``name``, ``unit`` and/or ``price_per_unit`` into an ingredient."""
        unknown = set(changes) - set(_INGREDIENT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown ingredient fields: {sorted(unknown)}")
        partial = {
            _INGREDIENT_FIELDS[k]: getattr(v, "value", v) for k, v in changes.items()
        }

        def do_update() -> str:
            self._store.update(INGREDIENTS, ingredient_id, partial)
            return ingredient_id

        return self._write(f"update ingredient {ingredient_id}", do_update)

    def delete_ingredient(self, ingredient_id: str) -> WriteResult:
        def do_delete() -> str:
            self._store.delete(INGREDIENTS, ingredient_id)
            return ingredient_id

        return self._write(f"delete ingredient {ingredient_id}", do_delete)

    def save_menu_item(self, item: MenuItem) -> WriteResult:
        """Persist a menu item with its cost recomputed from current prices."""
        if self.has_loaded(INGREDIENTS):
            item = with_recomputed_cost(item, self._ingredients)
        return self._write(
            f"save menu item {item.name!r}",
            lambda: self._store.upsert(MENU_ITEMS, item.to_doc(), item.id or None),
        )

    def delete_menu_item(self, menu_item_id: str) -> WriteResult:
        def do_delete() -> str:
            self._store.delete(MENU_ITEMS, menu_item_id)
            return menu_item_id

        return self._write(f"delete menu item {menu_item_id}", do_delete)

    def record_sale(self, sale: Sale) -> WriteResult:
        return self._write(
            f"record sale {sale.id}",
            lambda: self._store.upsert(SALES, sale.to_doc(), sale.id or None),
        )

    def sync_menu_costs(self, tolerance: float = 1e-9) -> list[WriteResult]:
        """Write back menu items whose stored cost drifted from current prices.

        Needs ingredients loaded; otherwise nothing is written.
        """
        if not self.has_loaded(INGREDIENTS):
            return []
        results = []
        for item in list(self._menu_items):
            stored = self._stored_costs.get(item.id, 0.0)
            if abs(stored - item.total_cost) <= tolerance:
                continue
            logger.info(
                "Menu item %r cost %.2f -> %.2f", item.name, stored, item.total_cost
            )

            def do_sync(item: MenuItem = item) -> str:
                self._store.update(MENU_ITEMS, item.id, {"totalCost": item.total_cost})
                return item.id

            results.append(self._write(f"sync cost of {item.name!r}", do_sync))
        return results
