"""Chain descriptors, outcomes and predicate builders."""

from chainbot.chains.context import ChainContext
from chainbot.chains.outcome import Outcome, OutcomeKind, done, proceed, stop
from chainbot.chains.registry import ChainDescriptor, ChainRegistry, Handler, Predicate

__all__ = [
    "ChainContext",
    "ChainDescriptor",
    "ChainRegistry",
    "Handler",
    "Outcome",
    "OutcomeKind",
    "Predicate",
    "done",
    "proceed",
    "stop",
]
