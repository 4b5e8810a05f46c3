"""
Controllers: finding them and calling them.

A controllers table maps a controller name to the object holding its
operations: a module, any object with attributes, or a mapping. Operations are
called with the request context and may be sync or async.
"""

import fnmatch
import functools
import importlib
import inspect
import logging
import pkgutil
from types import ModuleType
from typing import Any, Callable, Dict, Mapping, Optional, Union

from anyio import to_thread

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def find_operation(controller: Any, operation_id: str) -> Optional[Callable]:
    """Return the callable named ``operation_id`` in ``controller``, if any."""
    if isinstance(controller, Mapping):
        handler = controller.get(operation_id)
    else:
        handler = getattr(controller, operation_id, None)
    return handler if callable(handler) else None


def resolve_controller(
    controllers: Mapping[str, Any],
    controller_name: Optional[str],
    operation_id: Optional[str],
) -> Optional[Callable]:
    """Look up ``controller_name#operation_id`` in a controllers table."""
    if not controller_name or not operation_id:
        return None
    controller = controllers.get(controller_name)
    if controller is None:
        return None
    return find_operation(controller, operation_id)


def _is_async_callable(func: Any) -> bool:
    while isinstance(func, functools.partial):
        func = func.func
    return inspect.iscoroutinefunction(func) or inspect.iscoroutinefunction(getattr(func, "__call__", None))


async def call_handler(func: Callable, context: Any, run_sync_in_thread: bool = True) -> Any:
    """Call a controller or authenticator with ``context``.

    Coroutine functions are awaited. Plain functions run on anyio's worker
    thread pool when ``run_sync_in_thread`` is set, so they do not block the
    event loop; an awaitable they return is awaited.
    """
    if _is_async_callable(func):
        return await func(context)

    if run_sync_in_thread:
        result = await to_thread.run_sync(func, context)
    else:
        result = func(context)

    if inspect.isawaitable(result):
        result = await result
    return result


def load_controllers(package: Union[str, ModuleType], pattern: str = "*") -> Dict[str, ModuleType]:
    """Import every module of ``package`` and return a controllers table.

    Modules are named by their path relative to the package, with ``/``
    between levels (``pets``, ``admin/users``). A sub-package is available both
    under its own name and as ``name/__init__``.

    Args:
        package: A package, or its dotted import name.
        pattern: Only load modules whose name matches this glob pattern.

    Raises:
        ConfigurationError: If a module cannot be imported.
    """
    if isinstance(package, str):
        package = importlib.import_module(package)

    search_path = getattr(package, "__path__", None)
    if search_path is None:
        raise ConfigurationError(f"{package.__name__} is not a package")

    controllers: Dict[str, ModuleType] = {}
    prefix = package.__name__ + "."

    for module_info in pkgutil.walk_packages(search_path, prefix):
        relative_name = module_info.name[len(prefix):].replace(".", "/")
        names = [relative_name]
        if module_info.ispkg:
            names.append(relative_name + "/__init__")

        matching = [name for name in names if fnmatch.fnmatchcase(name, pattern)]
        if not matching:
            continue

        try:
            module = importlib.import_module(module_info.name)
        except Exception as e:
            raise ConfigurationError(f"Could not load controller {module_info.name}: {e}") from e

        for name in matching:
            controllers[name] = module
        logger.debug(f"Loaded controller {relative_name} from {module_info.name}")

    return controllers
