"""Per-update record threaded through the chain walk."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from chainbot.common.utils import utcnow


@dataclass
class ChainContext:
    """Accumulates partial results between chains for a single update.

    A fresh context is created for every update and dropped when the walk
    ends. Handlers may mutate it in place or return a replacement inside
    their Outcome.
    """

    update_id: int
    received_at: datetime = field(default_factory=utcnow)
    data: dict[str, Any] = field(default_factory=dict)
    visited: list[str] = field(default_factory=list)

    def __getitem__(self, key: str) -> Any:
        return self.data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.data[key] = value

    def __contains__(self, key: str) -> bool:
        return key in self.data

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)
