"""Tests for finding, loading and calling controllers."""

import functools
import threading

import pytest

from oasmachine.controllers import call_handler, find_operation, load_controllers, resolve_controller
from oasmachine.exceptions import ConfigurationError
from tests import controller_fixtures

pytestmark = pytest.mark.anyio

PACKAGE = "tests.controller_fixtures"


class TestFindOperation:
    def test_mapping_controller(self):
        def handler(context):
            return None

        assert find_operation({"listPets": handler}, "listPets") is handler

    def test_object_controller(self):
        class Controller:
            value = 1

            def listPets(self, context):
                return None

        assert find_operation(Controller(), "listPets") is not None
        assert find_operation(Controller(), "value") is None
        assert find_operation(Controller(), "missing") is None

    def test_resolve_controller(self):
        controllers = {"pets": {"listPets": len}}
        assert resolve_controller(controllers, "pets", "listPets") is len
        assert resolve_controller(controllers, "toys", "listPets") is None
        assert resolve_controller(controllers, None, "listPets") is None


class TestLoadControllers:
    def test_load_all(self):
        controllers = load_controllers(PACKAGE, "[!b]*")
        assert sorted(controllers) == ["admin", "admin/__init__", "admin/users", "pets"]
        assert controllers["pets"].listPets(None) == [{"id": 1, "name": "Rex"}]

    def test_pattern(self):
        assert sorted(load_controllers(controller_fixtures, "admin/*")) == ["admin/__init__", "admin/users"]

    def test_import_failure(self):
        with pytest.raises(ConfigurationError, match="Could not load controller"):
            load_controllers(PACKAGE, "broken")

    def test_not_a_package(self):
        from tests.controller_fixtures import pets

        with pytest.raises(ConfigurationError):
            load_controllers(pets)


class TestCallHandler:
    async def test_async_handler(self):
        async def handler(context):
            return context * 2

        assert await call_handler(handler, 21) == 42

    async def test_async_partial(self):
        async def handler(prefix, context):
            return prefix + context

        assert await call_handler(functools.partial(handler, "a"), "b") == "ab"

    async def test_sync_handler_runs_in_a_worker_thread(self):
        main_thread = threading.current_thread()

        def handler(context):
            return threading.current_thread() is not main_thread

        assert await call_handler(handler, None) is True
        assert await call_handler(handler, None, run_sync_in_thread=False) is False

    async def test_sync_handler_returning_awaitable(self):
        async def later():
            return "done"

        assert await call_handler(lambda context: later(), None, run_sync_in_thread=False) == "done"
