"""SQLAlchemy models."""

from chainbot.models.base import Base, TimestampMixin
from chainbot.models.cursor import IngestCursor

__all__ = ["Base", "IngestCursor", "TimestampMixin"]
