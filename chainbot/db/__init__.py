"""Database access with SQLAlchemy async support."""

from chainbot.db.session import DatabaseManager

__all__ = ["DatabaseManager"]
