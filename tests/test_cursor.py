"""Tests for the cursor value object and its persistence stores."""

import pytest

from chainbot.db import DatabaseManager
from chainbot.ingest.cursor import Cursor, DatabaseCursorStore, FileCursorStore, MemoryCursorStore


class TestCursor:
    def test_starts_at_zero(self):
        assert Cursor().value == 0

    def test_advances_forward_only(self):
        cursor = Cursor(10)

        assert cursor.advance(15) is True
        assert cursor.advance(12) is False
        assert cursor.advance(15) is False
        assert cursor.value == 15

    def test_reset_moves_backwards(self):
        cursor = Cursor(10)
        cursor.reset(3)

        assert cursor.value == 3

    @pytest.mark.parametrize("value", [-1, -100])
    def test_negative_rejected(self, value):
        with pytest.raises(ValueError):
            Cursor(value)
        with pytest.raises(ValueError):
            Cursor().reset(value)


class TestMemoryCursorStore:
    @pytest.mark.asyncio
    async def test_load_and_save(self):
        store = MemoryCursorStore()

        assert await store.load() is None
        await store.save(12)
        assert await store.load() == 12


class TestFileCursorStore:
    @pytest.mark.asyncio
    async def test_missing_file_loads_none(self, tmp_path):
        assert await FileCursorStore(tmp_path / "cursor").load() is None

    @pytest.mark.asyncio
    async def test_save_then_load(self, tmp_path):
        path = tmp_path / "state" / "cursor"
        store = FileCursorStore(path)

        await store.save(104)

        assert path.read_text() == "104\n"
        assert await FileCursorStore(path).load() == 104
        assert not path.with_name("cursor.tmp").exists()

    @pytest.mark.asyncio
    async def test_corrupt_file_loads_none(self, tmp_path):
        path = tmp_path / "cursor"
        path.write_text("not a number")

        assert await FileCursorStore(path).load() is None


class TestDatabaseCursorStore:
    @pytest.mark.asyncio
    async def test_roundtrip_and_update(self, tmp_path):
        db = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'cursor.db'}")
        await db.connect()
        try:
            store = DatabaseCursorStore(db, bot_id=123456)

            assert await store.load() is None
            await store.save(10)
            await store.save(25)
            assert await store.load() == 25

            other_bot = DatabaseCursorStore(db, bot_id=654321)
            assert await other_bot.load() is None
        finally:
            await db.disconnect()
