"""Application wiring and the top-level status shown before any view."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from .assist import AssistBackend, create_assistant
from .config import AppConfig
from .context import DataContext
from .errors import ConfigurationError, StoreError, StoreErrorKind
from .store import StoreBackend, create_store

logger = logging.getLogger(__name__)


class AppState(str, Enum):
    UNCONFIGURED = "unconfigured"
    PERMISSION_DENIED = "permission-denied"
    ERROR = "error"
    LOADING = "loading"
    READY = "ready"


# Higher wins when two conditions hold at once.
_PRIORITY = {
    AppState.READY: 0,
    AppState.LOADING: 1,
    AppState.ERROR: 2,
    AppState.PERMISSION_DENIED: 3,
    AppState.UNCONFIGURED: 4,
}

PERMISSION_HELP = (
    "The store rejected this application. Allow read/write access for the "
    "ingredients, menuItems and sales collections in the database security "
    "rules, then restart."
)


class RestaurantApp:
    """Connects config, store, data context and AI assist.

    ``state`` is one of :class:`AppState`. Blocking states (unconfigured,
    permission-denied, error) take priority over the normal views and are
    only left through :meth:`restart`, which re-subscribes from scratch.

    Store callbacks that arrive on another thread (Firestore watches) are
    handed to ``loop``, or to the loop running when :meth:`start` is called.
    Use :meth:`wait_settled` to await the first non-loading state.
    """

    def __init__(
        self,
        config: AppConfig,
        store_factory: Callable[..., StoreBackend] = create_store,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._config = config
        self._store_factory = store_factory
        self._loop = loop
        self._store: StoreBackend | None = None
        self.context: DataContext | None = None
        self.assistant: AssistBackend = create_assistant(config)
        self.state = AppState.LOADING
        self.error_message: str | None = None
        self._state_listeners: list[Callable[[AppState], None]] = []

    def __enter__(self) -> RestaurantApp:
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def on_state_change(self, listener: Callable[[AppState], None]) -> None:
        self._state_listeners.append(listener)

    def _set_state(self, state: AppState, message: str | None = None) -> None:
        if _PRIORITY[state] < _PRIORITY[self.state] and self.state in (
            AppState.UNCONFIGURED,
            AppState.PERMISSION_DENIED,
            AppState.ERROR,
        ):
            return
        if state is self.state and message == self.error_message:
            return
        self.state = state
        self.error_message = message
        logger.info("App state: %s%s", state.value, f" ({message})" if message else "")
        for listener in list(self._state_listeners):
            listener(state)

    def _event_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is None:
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError:
                return None
        return self._loop

    async def wait_settled(self, timeout: float | None = None) -> AppState:
        """Wait until the app leaves the loading state and return the new state."""
        if self.state is not AppState.LOADING:
            return self.state
        settled = asyncio.get_running_loop().create_future()

        def on_change(state: AppState) -> None:
            if state is not AppState.LOADING and not settled.done():
                settled.set_result(state)

        self.on_state_change(on_change)
        try:
            return await asyncio.wait_for(settled, timeout)
        finally:
            self._state_listeners.remove(on_change)

    def start(self) -> None:
        """Open the store and subscribe, or enter the unconfigured state."""
        if not self._config.store.is_configured:
            self._set_state(AppState.UNCONFIGURED, "Document store is not configured")
            return
        try:
            self._store = self._store_factory(self._config, loop=self._event_loop())
        except ConfigurationError as e:
            self._set_state(AppState.UNCONFIGURED, str(e))
            return

        if not self.assistant.available:
            logger.warning("AI API key missing; assist features will use fallbacks")

        self._set_state(AppState.LOADING)
        self.context = DataContext(
            self._store,
            on_store_error=self.handle_store_error,
            label_format=self._config.shop.trend_label_format,
            label_language=self._config.shop.language,
        )
        self.context.subscribe(self._on_collection_changed)
        self.context.start()

    def _on_collection_changed(self, collection: str) -> None:
        if self.state is AppState.LOADING and self.context and self.context.is_loaded:
            self._set_state(AppState.READY)

    def handle_store_error(self, err: StoreError) -> None:
        match err.kind:
            case StoreErrorKind.PERMISSION_DENIED:
                self._set_state(AppState.PERMISSION_DENIED, PERMISSION_HELP)
            case StoreErrorKind.RESOURCE_EXHAUSTED:
                self._set_state(AppState.ERROR, f"Quota exceeded: {err.message}")
            case _:
                self._set_state(AppState.ERROR, f"Connection error: {err.message}")

    def stop(self) -> None:
        if self.context is not None:
            self.context.stop()
            self.context = None
        if self._store is not None:
            self._store.close()
            self._store = None

    def restart(self) -> None:
        """Tear everything down and resume from a fresh subscription."""
        logger.info("Restarting data subscriptions")
        self.stop()
        self.state = AppState.LOADING
        self.error_message = None
        self.start()
