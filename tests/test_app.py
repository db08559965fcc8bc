"""Tests for application state and wiring."""

import asyncio
import threading
from unittest.mock import MagicMock, patch

import pytest

from restaurant_os.app import PERMISSION_HELP, AppState, RestaurantApp
from restaurant_os.config import AppConfig, FirestoreConfig, StoreConfig
from restaurant_os.errors import ConfigurationError, StoreError, StoreErrorKind
from restaurant_os.models import MenuItem, PaymentMethod
from restaurant_os.store import Subscription
from restaurant_os.store.firestore import FirestoreStore
from restaurant_os.store.sqlite import SQLiteStore


@pytest.fixture
def config(tmp_path):
    return AppConfig(store=StoreConfig(path=str(tmp_path / "app.db")))


def _silent_store():
    store = MagicMock()
    store.subscribe.return_value = Subscription(lambda: None)
    return store


class TestStartup:
    def test_unconfigured(self):
        app = RestaurantApp(AppConfig(store=StoreConfig(backend="firestore")))
        app.start()
        assert app.state is AppState.UNCONFIGURED
        assert app.context is None

    def test_factory_configuration_error(self, config):
        def factory(cfg, loop=None):
            raise ConfigurationError("no project")

        app = RestaurantApp(config, store_factory=factory)
        app.start()
        assert app.state is AppState.UNCONFIGURED
        assert app.error_message == "no project"

    def test_ready_after_all_collections_load(self, config):
        with RestaurantApp(config) as app:
            assert app.state is AppState.READY
            assert app.context.is_loaded

    def test_loading_until_snapshots_arrive(self, config):
        app = RestaurantApp(config, store_factory=lambda cfg, loop=None: _silent_store())
        app.start()
        assert app.state is AppState.LOADING
        app.context.set_ingredients([])
        app.context.set_menu_items([])
        assert app.state is AppState.LOADING
        app.context.set_sales([])
        assert app.state is AppState.READY

    def test_state_listener(self, config):
        app = RestaurantApp(config)
        states = []
        app.on_state_change(states.append)
        app.start()
        assert states[-1] is AppState.READY
        app.stop()

    def test_missing_api_key_does_not_block(self, config):
        with RestaurantApp(config) as app:
            assert not app.assistant.available
            assert app.state is AppState.READY


class TestStoreErrors:
    def test_permission_denied(self, config):
        app = RestaurantApp(config, store_factory=lambda cfg, loop=None: _silent_store())
        app.start()
        app.handle_store_error(StoreError(StoreErrorKind.PERMISSION_DENIED, "rules"))
        assert app.state is AppState.PERMISSION_DENIED
        assert app.error_message == PERMISSION_HELP

    def test_quota(self, config):
        app = RestaurantApp(config, store_factory=lambda cfg, loop=None: _silent_store())
        app.start()
        app.handle_store_error(StoreError(StoreErrorKind.RESOURCE_EXHAUSTED, "daily"))
        assert app.state is AppState.ERROR
        assert app.error_message == "Quota exceeded: daily"

    def test_connection(self, config):
        app = RestaurantApp(config, store_factory=lambda cfg, loop=None: _silent_store())
        app.start()
        app.handle_store_error(StoreError(StoreErrorKind.CONNECTION, "offline"))
        assert app.error_message == "Connection error: offline"

    def test_blocking_state_not_replaced_by_ready(self, config):
        app = RestaurantApp(config, store_factory=lambda cfg, loop=None: _silent_store())
        app.start()
        app.handle_store_error(StoreError(StoreErrorKind.CONNECTION, "offline"))
        for setter in (app.context.set_ingredients, app.context.set_menu_items,
                       app.context.set_sales):
            setter([])
        assert app.state is AppState.ERROR

    def test_permission_outranks_error(self, config):
        app = RestaurantApp(config, store_factory=lambda cfg, loop=None: _silent_store())
        app.start()
        app.handle_store_error(StoreError(StoreErrorKind.PERMISSION_DENIED, "rules"))
        app.handle_store_error(StoreError(StoreErrorKind.CONNECTION, "offline"))
        assert app.state is AppState.PERMISSION_DENIED

    def test_denied_write_escalates(self, tmp_path, config):
        store = SQLiteStore(db_path=tmp_path / "app.db")
        app = RestaurantApp(config, store_factory=lambda cfg, loop=None: store)
        app.start()
        assert app.state is AppState.READY

        def denied(*args, **kwargs):
            raise StoreError(StoreErrorKind.PERMISSION_DENIED, "readonly")

        store.upsert = denied
        cart = app.context.new_cart()
        cart.add_item(MenuItem(id="m1", name="Tea", price=20))
        cart.checkout(PaymentMethod.CASH)
        assert app.state is AppState.PERMISSION_DENIED
        app.stop()

    def test_restart_recovers(self, config):
        app = RestaurantApp(config)
        app.start()
        app.handle_store_error(StoreError(StoreErrorKind.CONNECTION, "offline"))
        assert app.state is AppState.ERROR
        app.restart()
        assert app.state is AppState.READY
        assert app.error_message is None
        app.stop()


@pytest.fixture
def firestore_config():
    return AppConfig(
        store=StoreConfig(backend="firestore", firestore=FirestoreConfig(project_id="p"))
    )


@pytest.fixture
def firestore_client():
    client = MagicMock()
    query = client.collection.return_value
    query.order_by.return_value = query
    query.limit.return_value = query
    query.get.return_value = []
    with patch.object(FirestoreStore, "_get_client", return_value=client):
        yield client


def _watch_handles(client):
    query = client.collection.return_value
    return [c.args[0] for c in query.on_snapshot.call_args_list]


def _fire_from_watch_thread(handles):
    t = threading.Thread(
        target=lambda: [h([], [], None) for h in handles], name="firestore-watch"
    )
    t.start()
    t.join()


class TestFirestoreWiring:
    @pytest.mark.asyncio
    async def test_snapshots_applied_on_running_loop(self, firestore_config, firestore_client):
        app = RestaurantApp(firestore_config)
        transitions = []
        app.on_state_change(
            lambda s: transitions.append((s, threading.current_thread().name))
        )
        app.start()
        assert app.state is AppState.LOADING

        handles = _watch_handles(firestore_client)
        assert len(handles) == 3
        _fire_from_watch_thread(handles)

        assert await app.wait_settled(timeout=1) is AppState.READY
        assert transitions == [(AppState.READY, threading.current_thread().name)]
        app.stop()

    def test_explicit_loop_receives_callbacks(self, firestore_config, firestore_client):
        loop = MagicMock(spec=asyncio.AbstractEventLoop)
        app = RestaurantApp(firestore_config, loop=loop)
        app.start()
        _fire_from_watch_thread(_watch_handles(firestore_client))

        assert loop.call_soon_threadsafe.call_count == 3
        assert app.state is AppState.LOADING
        for c in loop.call_soon_threadsafe.call_args_list:
            fn, *args = c.args
            fn(*args)
        assert app.state is AppState.READY
        app.stop()

    @pytest.mark.asyncio
    async def test_rejected_read_reaches_permission_state(
        self, firestore_config, firestore_client
    ):
        gexc = pytest.importorskip("google.api_core.exceptions")
        firestore_client.collection.return_value.get.side_effect = gexc.PermissionDenied(
            "Missing or insufficient permissions."
        )
        app = RestaurantApp(firestore_config)
        app.start()
        assert await app.wait_settled(timeout=1) is AppState.PERMISSION_DENIED
        app.stop()


class TestWaitSettled:
    @pytest.mark.asyncio
    async def test_returns_current_state_when_settled(self, config):
        app = RestaurantApp(config)
        app.start()
        assert await app.wait_settled() is AppState.READY
        app.stop()

    @pytest.mark.asyncio
    async def test_times_out_while_loading(self, config):
        app = RestaurantApp(config, store_factory=lambda cfg, loop=None: _silent_store())
        app.start()
        with pytest.raises(asyncio.TimeoutError):
            await app.wait_settled(timeout=0.01)
        assert app._state_listeners == []
