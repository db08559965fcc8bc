"""SQLite-backed document store with in-process snapshot fan-out."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from itertools import count
from pathlib import Path

from . import (
    ErrorCallback,
    SnapshotCallback,
    StoreBackend,
    Subscription,
    sort_documents,
)
from ..errors import StoreError, StoreErrorKind
from .schema import ensure_schema

logger = logging.getLogger(__name__)


def _translate(exc: sqlite3.Error) -> StoreError:
    msg = str(exc)
    lowered = msg.lower()
    if "readonly" in lowered or "read-only" in lowered or "permission" in lowered:
        return StoreError(StoreErrorKind.PERMISSION_DENIED, msg)
    if "full" in lowered:
        return StoreError(StoreErrorKind.RESOURCE_EXHAUSTED, msg)
    return StoreError(StoreErrorKind.CONNECTION, msg)


class SQLiteStore(StoreBackend):
    """Stores each document as a JSON body keyed by (collection, id).

    Subscribers of a collection are notified synchronously after every
    committed write to it, on the caller's thread.
    """

    def __init__(self, db_path: str | Path = "~/.config/restaurant_os/store.db") -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._subscribers: dict[str, dict[int, tuple[SnapshotCallback, ErrorCallback | None]]] = {}
        self._tokens = count(1)

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._conn = ensure_schema(self._db_path)
            except sqlite3.Error as e:
                raise _translate(e) from e
        return self._conn

    def close(self) -> None:
        self._subscribers.clear()
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # -- reads -------------------------------------------------------------

    def get_all(self, collection: str) -> list[dict]:
        """Return every document in the collection, snapshot-ordered."""
        conn = self._get_conn()
        try:
            rows = conn.execute(
                "SELECT id, body FROM documents WHERE collection = ? ORDER BY created_at, rowid",
                (collection,),
            ).fetchall()
        except sqlite3.Error as e:
            raise _translate(e) from e
        docs = []
        for row in rows:
            doc = json.loads(row["body"])
            doc["id"] = row["id"]
            docs.append(doc)
        return sort_documents(collection, docs)

    def get(self, collection: str, doc_id: str) -> dict | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT id, body FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            ).fetchone()
        except sqlite3.Error as e:
            raise _translate(e) from e
        if row is None:
            return None
        doc = json.loads(row["body"])
        doc["id"] = row["id"]
        return doc

    # -- subscriptions -----------------------------------------------------

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        token = next(self._tokens)
        subs = self._subscribers.setdefault(collection, {})
        subs[token] = (on_snapshot, on_error)
        logger.debug("Subscribed to %s (token %d)", collection, token)

        subscription = Subscription(lambda: subs.pop(token, None))
        self._deliver(collection, {token: subs[token]})
        return subscription

    def _notify(self, collection: str) -> None:
        subs = self._subscribers.get(collection)
        if subs:
            self._deliver(collection, dict(subs))

    def _deliver(self, collection: str, targets: dict) -> None:
        try:
            docs = self.get_all(collection)
        except StoreError as err:
            logger.warning("Snapshot of %s failed: %s", collection, err)
            for _, on_error in targets.values():
                if on_error is not None:
                    on_error(err)
            return
        for on_snapshot, _ in targets.values():
            # each subscriber gets its own copies
            on_snapshot([dict(d) for d in docs])

    # -- writes ------------------------------------------------------------

    def upsert(self, collection: str, doc: dict, doc_id: str | None = None) -> str:
        doc_id = doc_id or doc.get("id") or uuid.uuid4().hex
        body = {k: v for k, v in doc.items() if k != "id"}
        conn = self._get_conn()
        try:
            conn.execute(
                """INSERT INTO documents (collection, id, body)
                   VALUES (?, ?, ?)
                   ON CONFLICT(collection, id) DO UPDATE SET
                     body=excluded.body,
                     updated_at=datetime('now', 'localtime')""",
                (collection, doc_id, json.dumps(body, ensure_ascii=False)),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise _translate(e) from e
        self._notify(collection)
        return doc_id

    def update(self, collection: str, doc_id: str, partial: dict) -> None:
        current = self.get(collection, doc_id)
        if current is None:
            raise StoreError(
                StoreErrorKind.NOT_FOUND, f"No document {collection}/{doc_id}"
            )
        current.update({k: v for k, v in partial.items() if k != "id"})
        self.upsert(collection, current, doc_id)

    def delete(self, collection: str, doc_id: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                "DELETE FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise _translate(e) from e
        self._notify(collection)
