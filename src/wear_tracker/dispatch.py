"""Fire-and-forget side effects (store writes, notifications).

Effects run on a background thread that owns an asyncio loop. A single worker
drains the queue in submission order, so a store never sees an older write for
a device land after a newer one. Failures are logged and dropped.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from typing import Any, Awaitable, Callable

from .errors import PersistenceError

logger = logging.getLogger("wear_tracker.dispatch")

Effect = Callable[..., Any]


class EffectDispatcher:
    def __init__(self, name: str = "wear-tracker-effects"):
        self._loop = asyncio.new_event_loop()
        self._queue: asyncio.Queue[tuple[Effect, tuple, str]] | None = None
        self._worker: asyncio.Task | None = None
        self._ready = threading.Event()
        self._closed = False
        self._thread = threading.Thread(target=self._run_loop, name=name, daemon=True)
        self._thread.start()
        self._ready.wait()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._queue = asyncio.Queue()
        self._worker = self._loop.create_task(self._drain())
        self._loop.call_soon(self._ready.set)
        self._loop.run_forever()

    async def _drain(self) -> None:
        assert self._queue is not None
        while True:
            effect, args, description = await self._queue.get()
            try:
                result = effect(*args)
                if inspect.isawaitable(result):
                    await result
            except PersistenceError as e:
                logger.error(f"Store operation failed ({description}): {e}", exc_info=True)
            except Exception:
                logger.exception(f"Side effect failed ({description})")
            finally:
                self._queue.task_done()

    # ---- Public API ----

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, effect: Effect, *args: Any, description: str = "") -> None:
        """Queue an effect (plain or async callable) and return immediately."""
        if self._closed:
            logger.warning(f"Dispatcher closed, dropping effect ({description or effect!r})")
            return
        assert self._queue is not None
        self._loop.call_soon_threadsafe(
            self._queue.put_nowait, (effect, args, description or getattr(effect, "__name__", "effect"))
        )

    def run(self, coro: Awaitable[Any], timeout: float | None = None) -> Any:
        """Run a coroutine on the effects loop and block for its result.

        Only for startup work such as loading the store; never from inside an effect.
        """
        return asyncio.run_coroutine_threadsafe(coro, self._loop).result(timeout)

    def flush(self, timeout: float | None = 10.0) -> None:
        """Block until every effect submitted so far has finished."""
        if self._closed:
            return
        assert self._queue is not None
        asyncio.run_coroutine_threadsafe(self._queue.join(), self._loop).result(timeout)

    def close(self, timeout: float | None = 10.0) -> None:
        """Flush pending effects, then stop the loop thread."""
        if self._closed:
            return
        self.flush(timeout)
        self._closed = True
        asyncio.run_coroutine_threadsafe(self._stop_worker(), self._loop).result(timeout)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        self._loop.close()

    async def _stop_worker(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
