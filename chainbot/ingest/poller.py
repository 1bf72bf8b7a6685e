"""Long-polling ingestion with a resumable cursor."""

from __future__ import annotations

import asyncio

import logfire

from chainbot.common.utils import utcnow
from chainbot.errors import RateLimitError, TransportError
from chainbot.ingest.backoff import Backoff, BackoffConfig
from chainbot.ingest.cursor import Cursor, CursorStore
from chainbot.ingest.fetcher import UpdateFetcher
from chainbot.ingest.source import IngestionSource
from chainbot.supervisor import Sleep, Supervisor


class Poller(IngestionSource):
    """Fetches batches from ``getUpdates`` and hands them to the Supervisor.

    The cursor advances to ``max(update_id) + 1`` once the whole batch has
    been handed off, which is before the handlers finish. Transport failures
    retry the same offset after a backoff and never move the cursor.

    Hand-off goes through ``Supervisor.submit_bounded``: when the supervisor
    caps concurrency, the batch loop waits for a free slot, so no new batch
    is fetched while the cap is reached.
    """

    name = "poller"

    def __init__(
        self,
        fetcher: UpdateFetcher,
        supervisor: Supervisor,
        *,
        cursor: Cursor | None = None,
        store: CursorStore | None = None,
        timeout: int = 25,
        initial_cursor: int | None = None,
        skip_pending: bool = False,
        backoff: BackoffConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.fetcher = fetcher
        self.supervisor = supervisor
        self.cursor = cursor or Cursor()
        self.store = store
        self.timeout = timeout
        self.initial_cursor = initial_cursor
        self.skip_pending = skip_pending
        self._backoff = Backoff(backoff)
        self._sleep = sleep
        self._prepared = False
        self._stopped = asyncio.Event()

    async def prepare(self) -> None:
        """Restore the cursor once per process, before the first fetch."""
        if self._prepared:
            return

        if self.initial_cursor is not None:
            self.cursor.reset(self.initial_cursor)
            source = "config"
        elif self.store is not None and (stored := await self.store.load()) is not None:
            self.cursor.reset(stored)
            source = "store"
        else:
            source = "default"

        if self.skip_pending:
            await self._skip_pending()

        self._prepared = True
        logfire.info(
            "poller_prepared",
            cursor=self.cursor.value,
            cursor_source=source,
            timeout=self.timeout,
        )

    async def _skip_pending(self) -> None:
        # offset=-1 returns only the newest pending update
        updates = await self.fetcher.get_updates(offset=-1, timeout=0)
        if not updates:
            return
        last_id = max(u.update_id for u in updates)
        if self.cursor.advance(last_id + 1):
            logfire.info("pending_updates_skipped", cursor=self.cursor.value)
            await self._persist()

    async def poll_once(self) -> int:
        """Fetch one batch, hand it off and advance the cursor.

        Returns the number of updates handed to the Supervisor. Transport
        errors propagate with the cursor untouched.
        """
        offset = self.cursor.value
        updates = await self.fetcher.get_updates(offset=offset, timeout=self.timeout)
        if not updates:
            return 0

        received_at = utcnow()
        seen: set[int] = set()
        handed_off = 0
        for update in sorted(updates, key=lambda u: u.update_id):
            update_id = update.update_id
            if update_id in seen:
                logfire.warning("duplicate_update", update_id=update_id, offset=offset)
                continue
            seen.add(update_id)

            if update_id < offset:
                logfire.warning("stale_update", update_id=update_id, offset=offset)
                continue

            await self.supervisor.submit_bounded(update, received_at)
            handed_off += 1

        if self.cursor.advance(max(seen) + 1):
            await self._persist()

        logfire.debug(
            "batch_handed_off",
            fetched=len(updates),
            handed_off=handed_off,
            cursor=self.cursor.value,
        )
        return handed_off

    async def _persist(self) -> None:
        if self.store is None:
            return
        try:
            await self.store.save(self.cursor.value)
        except Exception as exc:
            logfire.warning(
                "cursor_persist_failed",
                cursor=self.cursor.value,
                error_type=type(exc).__name__,
                _exc_info=exc,
            )

    async def run(self) -> None:
        await self.prepare()

        while not self._stopped.is_set():
            try:
                await self.poll_once()
            except RateLimitError as exc:
                logfire.warning(
                    "poll_rate_limited",
                    offset=self.cursor.value,
                    retry_after=exc.retry_after,
                )
                await self._sleep(exc.retry_after)
                continue
            except TransportError as exc:
                delay = self._backoff.next()
                logfire.warning(
                    "poll_transport_error",
                    offset=self.cursor.value,
                    attempt=self._backoff.attempt,
                    retry_in=delay,
                    error=str(exc),
                )
                await self._sleep(delay)
                continue

            self._backoff.reset()

    async def stop(self) -> None:
        self._stopped.set()
