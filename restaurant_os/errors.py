"""Error taxonomy shared by the store, context and app layers."""

from __future__ import annotations

from enum import Enum


class ConfigurationError(RuntimeError):
    """The document store is not set up; no data operation is attempted."""


class StoreErrorKind(str, Enum):
    PERMISSION_DENIED = "permission-denied"
    RESOURCE_EXHAUSTED = "resource-exhausted"
    CONNECTION = "connection"
    NOT_FOUND = "not-found"


class StoreError(Exception):
    """A store operation or subscription failed.

    ``kind`` lets callers pick a degraded state without inspecting
    backend-specific exception types.
    """

    def __init__(self, kind: StoreErrorKind, message: str = "") -> None:
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message or kind.value

    @property
    def retryable(self) -> bool:
        return self.kind in (
            StoreErrorKind.RESOURCE_EXHAUSTED,
            StoreErrorKind.CONNECTION,
        )

    def __repr__(self) -> str:
        return f"StoreError({self.kind.value!r}, {self.message!r})"
