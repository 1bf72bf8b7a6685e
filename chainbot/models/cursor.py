"""Persisted polling cursor, one row per bot."""

from __future__ import annotations

from sqlalchemy import BigInteger
from sqlalchemy.orm import Mapped, mapped_column

from chainbot.models.base import Base, TimestampMixin


class IngestCursor(Base, TimestampMixin):
    __tablename__ = "ingest_cursors"

    bot_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    # Next update_id to request from getUpdates
    next_update_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<IngestCursor(bot_id={self.bot_id}, next_update_id={self.next_update_id})>"
