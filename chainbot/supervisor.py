"""Fault boundaries around per-update dispatch and long-running ingestion loops."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime

import logfire
from aiogram.types import Update

from chainbot.common.utils import utcnow
from chainbot.dispatcher import Dispatcher, DispatchResult
from chainbot.errors import ConfigError, HandlerFault
from chainbot.ingest.backoff import Backoff, BackoffConfig

Sleep = Callable[[float], Awaitable[None]]


class Supervisor:
    """Runs every update in its own task and keeps ingestion loops alive.

    A dispatch task never raises: faults are logged with the update id and
    the failing chain, and the update is not retried. Ingestion loops are
    restarted after a backoff when they crash with anything other than a
    ``ConfigError``.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        *,
        max_concurrency: int = 0,
        restart_backoff: BackoffConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.dispatcher = dispatcher
        self._tasks: set[asyncio.Task] = set()
        self._semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None
        self._restart_backoff = Backoff(restart_backoff)
        self._sleep = sleep

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(
        self, update: Update, received_at: datetime | None = None
    ) -> asyncio.Task[DispatchResult | None]:
        """Hand an update off for isolated dispatch and return immediately.

        With ``max_concurrency`` the walk waits for a slot inside its task, so
        the caller is never blocked. Callers that can be slowed down should use
        ``submit_bounded`` instead.
        """
        return self._spawn(self._run(update, received_at or utcnow()), update.update_id)

    async def submit_bounded(
        self, update: Update, received_at: datetime | None = None
    ) -> asyncio.Task[DispatchResult | None]:
        """Wait for a free slot, then hand the update off.

        The slot is taken before the task exists, so at most ``max_concurrency``
        dispatch tasks are pending and a producer awaiting this call stops
        fetching while the cap is reached.
        """
        if self._semaphore is None:
            return self.submit(update, received_at)

        await self._semaphore.acquire()
        try:
            task = self._spawn(
                self._dispatch_guarded(update, received_at or utcnow()),
                update.update_id,
            )
        except BaseException:
            self._semaphore.release()
            raise
        # Released even if the task is cancelled before it starts
        task.add_done_callback(lambda _: self._semaphore.release())
        return task

    def _spawn(self, coro, update_id: int) -> asyncio.Task[DispatchResult | None]:
        task = asyncio.create_task(coro, name=f"dispatch-{update_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, update: Update, received_at: datetime) -> DispatchResult | None:
        if self._semaphore is None:
            return await self._dispatch_guarded(update, received_at)
        async with self._semaphore:
            return await self._dispatch_guarded(update, received_at)

    async def _dispatch_guarded(
        self, update: Update, received_at: datetime
    ) -> DispatchResult | None:
        try:
            return await self.dispatcher.dispatch(update, received_at)
        except HandlerFault as fault:
            logfire.error(
                "handler_fault",
                update_id=fault.update_id,
                chain=fault.chain,
                error=fault.detail,
                _exc_info=fault,
            )
        except Exception as exc:
            logfire.error(
                "dispatch_fault",
                update_id=update.update_id,
                error_type=type(exc).__name__,
                error=str(exc),
                _exc_info=exc,
            )
        return None

    async def supervise(self, name: str, loop_factory: Callable[[], Awaitable[None]]) -> None:
        """Run ``loop_factory()`` until it returns, restarting it after crashes.

        State the loop depends on (the polling cursor) must live outside the
        coroutine so a restart picks up where the crashed run stopped.
        """
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await loop_factory()
            except ConfigError:
                logfire.error("ingestion_loop_config_error", loop=name, _exc_info=True)
                raise
            except Exception as exc:
                if loop.time() - started > self._restart_backoff.config.max_delay:
                    # The loop was healthy for a while, start over with short delays
                    self._restart_backoff.reset()
                delay = self._restart_backoff.next()
                logfire.error(
                    "ingestion_loop_crashed",
                    loop=name,
                    restart_in=delay,
                    error_type=type(exc).__name__,
                    error=str(exc),
                    _exc_info=exc,
                )
                await self._sleep(delay)
            else:
                logfire.info("ingestion_loop_finished", loop=name)
                return

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for in-flight dispatch tasks; returns how many are still running."""
        if not self._tasks:
            return 0
        _, still_pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if still_pending:
            logfire.warning("drain_timeout", pending=len(still_pending), timeout=timeout)
        return len(still_pending)
