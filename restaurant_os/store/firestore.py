"""Google Cloud Firestore document store backend."""

from __future__ import annotations

import asyncio
import logging

from . import (
    SALES,
    ErrorCallback,
    SnapshotCallback,
    StoreBackend,
    Subscription,
)
from ..errors import StoreError, StoreErrorKind

logger = logging.getLogger(__name__)

# Same value as google.cloud.firestore.Query.DESCENDING
DESCENDING = "DESCENDING"


def translate_error(exc: Exception) -> StoreError:
    """Map google.api_core exceptions onto the store error taxonomy."""
    from google.api_core import exceptions as gexc

    if isinstance(exc, (gexc.PermissionDenied, gexc.Unauthenticated)):
        return StoreError(StoreErrorKind.PERMISSION_DENIED, str(exc))
    if isinstance(exc, gexc.ResourceExhausted):
        return StoreError(StoreErrorKind.RESOURCE_EXHAUSTED, str(exc))
    if isinstance(exc, gexc.NotFound):
        return StoreError(StoreErrorKind.NOT_FOUND, str(exc))
    return StoreError(StoreErrorKind.CONNECTION, str(exc))


def _api_error(exc: BaseException) -> BaseException:
    """Wrap a raw gRPC error from the listen stream as an api_core exception."""
    from google.api_core import exceptions as gexc

    if isinstance(exc, gexc.GoogleAPICallError):
        return exc
    return gexc.from_grpc_error(exc)


class FirestoreStore(StoreBackend):
    """Real-time collections backed by Firestore ``on_snapshot`` watches.

    Watch callbacks run on the SDK's background thread. When ``loop`` is
    given they are handed to that event loop instead of being called
    directly, so state is only ever mutated on the loop's thread.
    """

    def __init__(
        self,
        project_id: str,
        credentials_path: str = "",
        loop: asyncio.AbstractEventLoop | None = None,
        client=None,
    ) -> None:
        self._project_id = project_id
        self._credentials_path = credentials_path
        self._loop = loop
        self._client = client
        self._watches: list = []

    def _get_client(self):
        if self._client is None:
            try:
                from google.cloud import firestore
            except ImportError:
                raise ImportError(
                    "google-cloud-firestore is required: "
                    "pip install 'restaurant-os[firestore]'"
                ) from None

            credentials = None
            if self._credentials_path:
                from google.oauth2 import service_account

                credentials = service_account.Credentials.from_service_account_file(
                    self._credentials_path
                )
            self._client = firestore.Client(
                project=self._project_id, credentials=credentials
            )
        return self._client

    def _dispatch(self, fn, *args) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(fn, *args)
        else:
            fn(*args)

    def _query(self, collection: str):
        client = self._get_client()
        ref = client.collection(collection)
        if collection == SALES:
            return ref.order_by("timestamp", direction=DESCENDING)
        return ref

    def subscribe(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        def handle(col_snapshot, changes, read_time) -> None:
            docs = []
            for snap in col_snapshot:
                doc = snap.to_dict() or {}
                doc["id"] = snap.id
                docs.append(doc)
            self._dispatch(on_snapshot, docs)

        def fail(err: StoreError) -> None:
            logger.warning("Subscription to %s failed: %s", collection, err)
            if on_error is not None:
                self._dispatch(on_error, err)

        # A watch has no error callback: rules and quota failures on the
        # listen stream only close it. A one-document read surfaces them.
        try:
            self._query(collection).limit(1).get()
            watch = self._query(collection).on_snapshot(handle)
        except Exception as e:
            fail(translate_error(e))
            return Subscription(lambda: None)

        def stream_closed(future) -> None:
            if watch not in self._watches:
                return
            try:
                exc = future.exception()
            except Exception:
                # cancelled calls carry no error
                exc = None
            if exc is None:
                fail(StoreError(
                    StoreErrorKind.CONNECTION,
                    f"Listen stream for {collection} closed",
                ))
            else:
                fail(translate_error(_api_error(exc)))

        self._watches.append(watch)
        logger.info("Watching Firestore collection %s", collection)
        rpc = getattr(watch, "_rpc", None)
        if rpc is not None:
            rpc.add_done_callback(stream_closed)

        def cancel() -> None:
            if watch in self._watches:
                self._watches.remove(watch)
            watch.unsubscribe()

        return Subscription(cancel)

    def upsert(self, collection: str, doc: dict, doc_id: str | None = None) -> str:
        doc_id = doc_id or doc.get("id")
        body = {k: v for k, v in doc.items() if k != "id"}
        ref = self._get_client().collection(collection)
        try:
            if doc_id:
                ref.document(doc_id).set(body)
                return doc_id
            _, new_ref = ref.add(body)
            return new_ref.id
        except Exception as e:
            raise translate_error(e) from e

    def update(self, collection: str, doc_id: str, partial: dict) -> None:
        body = {k: v for k, v in partial.items() if k != "id"}
        try:
            self._get_client().collection(collection).document(doc_id).update(body)
        except Exception as e:
            raise translate_error(e) from e

    def delete(self, collection: str, doc_id: str) -> None:
        try:
            self._get_client().collection(collection).document(doc_id).delete()
        except Exception as e:
            raise translate_error(e) from e

    def close(self) -> None:
        watches = list(self._watches)
        self._watches.clear()
        for watch in watches:
            watch.unsubscribe()
        if self._client is not None and hasattr(self._client, "close"):
            self._client.close()
        self._client = None
