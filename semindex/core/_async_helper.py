import asyncio
import threading
from typing import Any, Callable

_loop: asyncio.AbstractEventLoop | None = None
_loop_thread: threading.Thread | None = None
_loop_lock = threading.Lock()


def _background_loop() -> asyncio.AbstractEventLoop:
    global _loop, _loop_thread
    with _loop_lock:
        if _loop is not None and not _loop.is_closed():
            return _loop
        loop = asyncio.new_event_loop()

        def _serve():
            asyncio.set_event_loop(loop)
            loop.run_forever()

        _loop_thread = threading.Thread(
            target=_serve, name="semindex-loop", daemon=True
        )
        _loop_thread.start()
        _loop = loop
        return loop


def run_async(func: Callable[..., Any], *args, **kwargs):
    """Run a blocking callable on a worker thread."""
    return asyncio.to_thread(func, *args, **kwargs)


def run_sync(afunc: Callable[..., Any], *args, **kwargs):
    """Run a coroutine function to completion from sync code."""
    future = asyncio.run_coroutine_threadsafe(
        afunc(*args, **kwargs), _background_loop()
    )
    return future.result()
