import asyncio
import threading
from typing import Any, Callable

_loop: asyncio.AbstractEventLoop | None = None
_loop_lock = threading.Lock()


def _ensure_loop() -> asyncio.AbstractEventLoop:
    global _loop
    with _loop_lock:
        if _loop and not _loop.is_closed():
            return _loop

        _loop = asyncio.new_event_loop()

        def _run_loop():
            asyncio.set_event_loop(_loop)
            _loop.run_forever()

        threading.Thread(target=_run_loop, daemon=True).start()
        return _loop


def run_async(func: Callable[..., Any], *args, **kwargs):
    """Run a blocking callable on a worker thread."""
    return asyncio.to_thread(func, *args, **kwargs)


def run_sync(afunc: Callable[..., Any], *args, **kwargs):
    """Run a coroutine function to completion from sync code."""
    coro = afunc(*args, **kwargs)
    future = asyncio.run_coroutine_threadsafe(coro, _ensure_loop())
    return future.result()
