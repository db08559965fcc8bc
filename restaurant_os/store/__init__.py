"""Document store base class, collection names, and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..errors import ConfigurationError, StoreError, StoreErrorKind

if TYPE_CHECKING:
    from ..config import AppConfig

INGREDIENTS = "ingredients"
MENU_ITEMS = "menuItems"
SALES = "sales"
COLLECTIONS = (INGREDIENTS, MENU_ITEMS, SALES)

SnapshotCallback = Callable[[list[dict]], None]
ErrorCallback = Callable[[StoreError], None]


class Subscription:
    """Handle returned by :meth:`StoreBackend.subscribe`.

    Calling it (or :meth:`unsubscribe`) stops delivery; repeated calls are
    harmless.
    """

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._cancel()

    __call__ = unsubscribe


def sort_documents(collection: str, docs: list[dict]) -> list[dict]:
    """Apply the per-collection snapshot ordering (sales newest first)."""
    if collection == SALES:
        return sorted(docs, key=lambda d: d.get("timestamp", 0), reverse=True)
    return docs


class StoreBackend(ABC):
    """Abstract base for the document store holding the three collections.

    Every document handed to ``on_snapshot`` carries its ``id`` field.
    """

    @abstractmethod
    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Deliver the full collection now and after every change."""
        ...

    @abstractmethod
    def upsert(self, collection: str, doc: dict, doc_id: str | None = None) -> str:
        """Create (generated id) or overwrite a document. Returns its id."""
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, partial: dict) -> None:
        """Merge fields into an existing document."""
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None: ...

    def close(self) -> None:
        """Release connections and stop all subscriptions."""


def create_store(config: AppConfig, loop=None) -> StoreBackend:
    """Create a store backend based on configuration.

    Raises:
        ConfigurationError: If the selected backend lacks its settings.
        ValueError: If the backend name is unknown.
    """
    store_cfg = config.store
    backend_name = store_cfg.backend

    match backend_name:
        case "sqlite":
            if not store_cfg.is_configured:
                raise ConfigurationError("store.path is not set")
            from .sqlite import SQLiteStore

            return SQLiteStore(db_path=store_cfg.path)
        case "firestore":
            if not store_cfg.is_configured:
                raise ConfigurationError(
                    "Firestore project id is not set "
                    "(store.firestore.project_id or FIRESTORE_PROJECT_ID)"
                )
            from .firestore import FirestoreStore

            return FirestoreStore(
                project_id=store_cfg.firestore.project_id,
                credentials_path=store_cfg.firestore.credentials_path,
                loop=loop,
            )
        case _:
            raise ValueError(
                f"Unknown store backend: {backend_name!r} "
                f"(choose sqlite or firestore)"
            )


__all__ = [
    "COLLECTIONS",
    "INGREDIENTS",
    "MENU_ITEMS",
    "SALES",
    "StoreBackend",
    "StoreError",
    "StoreErrorKind",
    "Subscription",
    "create_store",
    "sort_documents",
]
