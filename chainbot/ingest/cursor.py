"""Polling cursor and the stores that persist it across restarts."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import Protocol

import logfire

from chainbot.db import DatabaseManager
from chainbot.models import IngestCursor


class Cursor:
    """Next update_id to request from the source.

    Written only by the Poller task, so no locking is needed. It only moves
    forward; ``reset`` is the explicit way back.
    """

    def __init__(self, value: int = 0) -> None:
        if value < 0:
            raise ValueError(f"Cursor cannot be negative, got {value}")
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def advance(self, to: int) -> bool:
        """Move the cursor to ``to``; returns False if that would go backwards."""
        if to <= self._value:
            return False
        self._value = to
        return True

    def reset(self, value: int = 0) -> None:
        if value < 0:
            raise ValueError(f"Cursor cannot be negative, got {value}")
        self._value = value

    def __repr__(self) -> str:
        return f"Cursor({self._value})"


class CursorStore(Protocol):
    async def load(self) -> int | None: ...

    async def save(self, value: int) -> None: ...


class MemoryCursorStore:
    """Keeps the cursor for the lifetime of the process only."""

    def __init__(self, value: int | None = None) -> None:
        self.value = value

    async def load(self) -> int | None:
        return self.value

    async def save(self, value: int) -> None:
        self.value = value


class FileCursorStore:
    """Stores the cursor as a decimal integer in a text file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def _read(self) -> int | None:
        try:
            raw = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            logfire.warning("cursor_file_corrupt", path=str(self.path), content=raw[:50])
            return None

    def _write(self, value: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(f"{value}\n", encoding="utf-8")
        os.replace(tmp, self.path)

    async def load(self) -> int | None:
        return await asyncio.to_thread(self._read)

    async def save(self, value: int) -> None:
        await asyncio.to_thread(self._write, value)


class DatabaseCursorStore:
    """Stores the cursor in the ``ingest_cursors`` table, keyed by bot id."""

    def __init__(self, db: DatabaseManager, bot_id: int) -> None:
        self.db = db
        self.bot_id = bot_id

    async def load(self) -> int | None:
        async with self.db.session() as session:
            row = await session.get(IngestCursor, self.bot_id)
            return row.next_update_id if row else None

    async def save(self, value: int) -> None:
        async with self.db.session() as session:
            row = await session.get(IngestCursor, self.bot_id)
            if row is None:
                session.add(IngestCursor(bot_id=self.bot_id, next_update_id=value))
            else:
                row.next_update_id = value
