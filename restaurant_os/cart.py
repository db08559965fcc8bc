"""Point-of-sale cart and checkout."""

from __future__ import annotations

import copy
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from .models import CartItem, MenuItem, PaymentMethod, Sale

if TYPE_CHECKING:
    from .context import WriteResult

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def _now_millis(now: datetime | None = None) -> int:
    if now is None:
        return int(time.time() * 1000)
    return int(now.timestamp() * 1000)


def filter_menu(menu_items: Iterable[MenuItem], category: str = "all") -> list[MenuItem]:
    """Menu items shown for a POS category tab (``"all"`` shows everything)."""
    if category == "all":
        return list(menu_items)
    # Category is a str enum, so it compares equal to its raw value.
    return [m for m in menu_items if m.category == category]


class Cart:
    """An open checkout session.

    Lines are keyed by menu item id; each line carries its own ``cart_id``.
    After :meth:`checkout` the same object is reused as the next, empty cart.

    Args:
        on_checkout: Receives the finished :class:`Sale` for persistence
            (normally ``DataContext.record_sale``).
    """

    def __init__(
        self, on_checkout: Callable[[Sale], WriteResult | None] | None = None
    ) -> None:
        self._lines: list[CartItem] = []
        self._on_checkout = on_checkout
        self.last_write: WriteResult | None = None

    @property
    def lines(self) -> list[CartItem]:
        return list(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def _find(self, menu_item_id: str) -> CartItem | None:
        for line in self._lines:
            if line.id == menu_item_id:
                return line
        return None

    def add_item(self, menu_item: MenuItem) -> CartItem:
        line = self._find(menu_item.id)
        if line is not None:
            line.qty += 1
            return line
        line = CartItem.from_menu_item(menu_item, cart_id=_new_id(), qty=1)
        self._lines.append(line)
        return line

    def change_quantity(self, menu_item_id: str, delta: int) -> None:
        """Adjust a line's quantity; it never drops below 1."""
        line = self._find(menu_item_id)
        if line is not None:
            line.qty = max(1, line.qty + delta)

    def remove_item(self, menu_item_id: str) -> None:
        self._lines = [l for l in self._lines if l.id != menu_item_id]

    def clear(self) -> None:
        self._lines = []

    def total(self) -> float:
        return sum(l.price * l.qty for l in self._lines)

    def total_cost(self) -> float:
        return sum(l.total_cost * l.qty for l in self._lines)

    def item_count(self) -> int:
        return sum(l.qty for l in self._lines)

    def checkout(
        self,
        payment_method: PaymentMethod | str,
        now: datetime | None = None,
    ) -> Sale | None:
        """Freeze the cart into a Sale and start a fresh cart.

        Returns None (and leaves the cart alone) when the cart is empty.
        The cart is cleared even when persisting the sale fails; the outcome
        is kept on :attr:`last_write`. An exception from ``on_checkout``
        propagates after the cart is cleared.
        """
        if not self._lines:
            return None

        sale = Sale(
            id=_new_id(),
            timestamp=_now_millis(now),
            items=tuple(copy.deepcopy(self._lines)),
            total_amount=self.total(),
            total_cost=self.total_cost(),
            payment_method=PaymentMethod(payment_method),
        )

        self.last_write = None
        try:
            if self._on_checkout is not None:
                self.last_write = self._on_checkout(sale)
                if self.last_write is not None and not self.last_write.ok:
                    logger.warning(
                        "Sale %s was not persisted: %s", sale.id, self.last_write.error
                    )
        finally:
            self._lines = []
        logger.info(
            "Checkout %s: %d lines, total=%.2f (%s)",
            sale.id, len(sale.items), sale.total_amount, sale.payment_method.value,
        )
        return sale
