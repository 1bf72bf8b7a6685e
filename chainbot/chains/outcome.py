"""Control signals returned by chain handlers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from chainbot.chains.context import ChainContext


class OutcomeKind(str, Enum):
    CONTINUE = "continue"
    STOP = "stop"
    DONE = "done"

    @property
    def is_terminal(self) -> bool:
        return self is not OutcomeKind.CONTINUE


@dataclass(frozen=True)
class Outcome:
    """What a handler wants the dispatcher to do next.

    ``STOP`` and ``DONE`` both end the walk. ``DONE`` marks deliberate
    completion and ``STOP`` an early exit; they only differ in logs.
    """

    kind: OutcomeKind
    context: ChainContext

    def __post_init__(self) -> None:
        if not isinstance(self.kind, OutcomeKind):
            raise TypeError(f"Outcome kind must be an OutcomeKind, not {self.kind!r}")

    @property
    def is_terminal(self) -> bool:
        return self.kind.is_terminal


def proceed(context: ChainContext) -> Outcome:
    return Outcome(OutcomeKind.CONTINUE, context)


def stop(context: ChainContext) -> Outcome:
    return Outcome(OutcomeKind.STOP, context)


def done(context: ChainContext) -> Outcome:
    return Outcome(OutcomeKind.DONE, context)
