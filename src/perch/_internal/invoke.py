"""Invoke helpers: call sync or async handlers uniformly.

Handlers can be ``def`` or ``async def``. Coroutine functions run on the
event loop; plain callables run on an anyio worker thread so a blocking
handler never stalls the listener.

Usage::

    from perch._internal.invoke import invoke

    result = await invoke(handler, request)
"""

import functools
import inspect
import threading
from typing import Any

import anyio.to_thread

_worker = threading.local()


def _is_async_callable(handler: Any) -> bool:
    while isinstance(handler, functools.partial):
        handler = handler.func
    return inspect.iscoroutinefunction(handler) or inspect.iscoroutinefunction(
        getattr(handler, "__call__", None)
    )


def _run_in_worker(handler: Any, *args: Any) -> Any:
    _worker.handling = True
    try:
        return handler(*args)
    finally:
        _worker.handling = False


def in_worker_handler() -> bool:
    """True on a worker thread while it runs a sync handler."""
    return getattr(_worker, "handling", False)


async def invoke(handler: Any, *args: Any) -> Any:
    """Call a handler and await the result if it's awaitable."""
    if _is_async_callable(handler):
        return await handler(*args)
    result = await anyio.to_thread.run_sync(functools.partial(_run_in_worker, handler, *args))
    if inspect.isawaitable(result):
        result = await result
    return result


def handler_name(handler: Any) -> str:
    """Human-readable identity of a handler for log lines."""
    while isinstance(handler, functools.partial):
        handler = handler.func
    module = getattr(handler, "__module__", None)
    name = getattr(handler, "__qualname__", None) or type(handler).__qualname__
    if module:
        return f"{module}.{name}"
    return name
