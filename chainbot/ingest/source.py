"""Common interface of the ingestion variants (Poller, WebhookServer)."""

from __future__ import annotations

from abc import ABC, abstractmethod


class IngestionSource(ABC):
    """A long-running producer of updates.

    ``run`` is supervised: it may be restarted after a crash, so it must keep
    any resumable state on the instance rather than in local variables.
    """

    name: str = "source"

    @abstractmethod
    async def run(self) -> None:
        """Produce updates until ``stop`` is called."""

    @abstractmethod
    async def stop(self) -> None:
        """Ask ``run`` to return as soon as possible."""
