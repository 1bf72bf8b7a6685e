"""Error taxonomy shared by ingestion, dispatch and supervision."""

from __future__ import annotations


class ChainbotError(Exception):
    """Base class for all errors raised by chainbot."""


class ConfigError(ChainbotError, ValueError):
    """Unrecoverable configuration problem detected at boot."""


class TransportError(ChainbotError):
    """Network or HTTP failure while talking to the update source."""


class RateLimitError(TransportError):
    """The update source asked us to slow down for `retry_after` seconds."""

    def __init__(self, retry_after: float, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message or f"Rate limited, retry after {retry_after}s")


class DecodeError(ChainbotError):
    """A pushed payload could not be decoded into an update."""


class RegistryFrozenError(ChainbotError, RuntimeError):
    """Chains can only be registered at boot, before the first snapshot."""


class PredicateFault(ChainbotError):
    """A chain's match predicate raised instead of returning a bool."""

    def __init__(self, update_id: int, chain: str) -> None:
        self.update_id = update_id
        self.chain = chain
        super().__init__(f"Predicate of chain {chain!r} failed on update {update_id}")


class HandlerFault(ChainbotError):
    """A chain handler raised or returned something that is not an Outcome.

    The original exception, if any, is available as ``__cause__``.
    """

    def __init__(self, update_id: int, chain: str, detail: str) -> None:
        self.update_id = update_id
        self.chain = chain
        self.detail = detail
        super().__init__(f"Chain {chain!r} failed on update {update_id}: {detail}")
