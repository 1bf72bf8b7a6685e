"""Walks a single update through the registered chains."""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import logfire
from aiogram.types import Update

from chainbot.chains.context import ChainContext
from chainbot.chains.outcome import Outcome, OutcomeKind
from chainbot.chains.registry import ChainDescriptor, ChainRegistry
from chainbot.common.tg import update_kind
from chainbot.errors import HandlerFault, PredicateFault


class WalkState(str, Enum):
    PENDING = "pending"
    MATCHING = "matching"
    HANDLING = "handling"
    CONTINUING = "continuing"
    TERMINATED = "terminated"


class ResultKind(str, Enum):
    DONE = "done"
    STOP = "stop"
    # Every chain visited, at least one handler ran, none ended the walk
    EXHAUSTED = "exhausted"
    # No predicate matched, the update was a no-op
    UNMATCHED = "unmatched"


@dataclass
class DispatchResult:
    update_id: int
    kind: ResultKind
    context: ChainContext
    matched: list[str] = field(default_factory=list)
    faults: list[PredicateFault] = field(default_factory=list)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Dispatcher:
    """Runs the chain walk for one update at a time.

    The registry is snapshotted once, at construction, so every walk sees the
    same ordered, immutable set of descriptors. ``dispatch`` may be called
    concurrently for different updates; nothing here is shared between walks
    except that snapshot.
    """

    def __init__(self, registry: ChainRegistry):
        self._chains: tuple[ChainDescriptor, ...] = registry.snapshot()

    @property
    def chains(self) -> tuple[ChainDescriptor, ...]:
        return self._chains

    async def dispatch(
        self, update: Update, received_at: datetime | None = None
    ) -> DispatchResult:
        context = ChainContext(update_id=update.update_id)
        if received_at is not None:
            context.received_at = received_at

        kind = update_kind(update)
        with logfire.span(
            "dispatch {kind} update {update_id}",
            update_id=update.update_id,
            kind=kind,
        ) as span:
            result = await self._walk(update, context)
            span.set_attribute("result", result.kind.value)
            span.set_attribute("matched", result.matched)

        return result

    async def _walk(self, update: Update, context: ChainContext) -> DispatchResult:
        state = WalkState.PENDING
        matched: list[str] = []
        faults: list[PredicateFault] = []

        for descriptor in self._chains:
            state = WalkState.MATCHING
            try:
                is_match = bool(await _resolve(descriptor.predicate(update)))
            except Exception as exc:
                fault = PredicateFault(update.update_id, descriptor.name)
                fault.__cause__ = exc
                faults.append(fault)
                logfire.warning(
                    "predicate_fault",
                    update_id=update.update_id,
                    chain=descriptor.name,
                    error_type=type(exc).__name__,
                    error=str(exc),
                    _exc_info=exc,
                )
                continue

            if not is_match:
                continue

            state = WalkState.HANDLING
            matched.append(descriptor.name)
            context.visited.append(descriptor.name)
            try:
                outcome = await _resolve(descriptor.handler(update, context))
            except Exception as exc:
                raise HandlerFault(
                    update.update_id, descriptor.name, f"{type(exc).__name__}: {exc}"
                ) from exc

            if not isinstance(outcome, Outcome) or not isinstance(outcome.kind, OutcomeKind):
                raise HandlerFault(
                    update.update_id,
                    descriptor.name,
                    f"returned {type(outcome).__name__}, expected Outcome",
                )

            context = outcome.context
            if outcome.is_terminal:
                state = WalkState.TERMINATED
                log = logfire.info if outcome.kind is OutcomeKind.DONE else logfire.debug
                log(
                    "walk_{outcome}",
                    outcome=outcome.kind.value,
                    update_id=update.update_id,
                    chain=descriptor.name,
                    state=state.value,
                )
                return DispatchResult(
                    update_id=update.update_id,
                    kind=ResultKind(outcome.kind.value),
                    context=context,
                    matched=matched,
                    faults=faults,
                )
            state = WalkState.CONTINUING

        logfire.debug(
            "walk_finished",
            update_id=update.update_id,
            last_state=state.value,
            matched=matched,
        )
        return DispatchResult(
            update_id=update.update_id,
            kind=ResultKind.EXHAUSTED if matched else ResultKind.UNMATCHED,
            context=context,
            matched=matched,
            faults=faults,
        )


__all__ = ["Dispatcher", "DispatchResult", "ResultKind", "WalkState"]
