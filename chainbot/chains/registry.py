"""Ordered collection of chain descriptors registered at boot."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import Union

from aiogram.types import Update

from chainbot.chains.context import ChainContext
from chainbot.chains.outcome import Outcome
from chainbot.errors import RegistryFrozenError

Predicate = Callable[[Update], Union[bool, Awaitable[bool]]]
Handler = Callable[[Update, ChainContext], Union[Outcome, Awaitable[Outcome]]]


@dataclass(frozen=True)
class ChainDescriptor:
    name: str
    predicate: Predicate
    handler: Handler
    order: int = 0


class ChainRegistry:
    """Chains in registration order.

    Order is the only priority: a broad predicate registered before a narrow
    one shadows it whenever the broad chain stops the walk. The registry is
    frozen by the first ``snapshot()`` and rejects registrations afterwards.
    """

    def __init__(self) -> None:
        self._chains: list[ChainDescriptor] = []
        self._snapshot: tuple[ChainDescriptor, ...] | None = None

    def register(self, descriptor: ChainDescriptor) -> ChainDescriptor:
        if self._snapshot is not None:
            raise RegistryFrozenError(
                f"Cannot register chain {descriptor.name!r} after boot"
            )
        if descriptor.name in self.names():
            raise ValueError(f"Chain {descriptor.name!r} is already registered")

        descriptor = ChainDescriptor(
            name=descriptor.name,
            predicate=descriptor.predicate,
            handler=descriptor.handler,
            order=len(self._chains),
        )
        self._chains.append(descriptor)
        return descriptor

    def add(self, name: str, predicate: Predicate, handler: Handler) -> ChainDescriptor:
        return self.register(ChainDescriptor(name, predicate, handler))

    def chain(self, name: str, predicate: Predicate) -> Callable[[Handler], Handler]:
        """Decorator form of ``add``.

        Usage:
            @registry.chain("start", command("start"))
            async def start(update, ctx):
                return done(ctx)
        """

        def decorator(handler: Handler) -> Handler:
            self.add(name, predicate, handler)
            return handler

        return decorator

    def freeze(self) -> None:
        if self._snapshot is None:
            self._snapshot = tuple(self._chains)

    @property
    def frozen(self) -> bool:
        return self._snapshot is not None

    def snapshot(self) -> tuple[ChainDescriptor, ...]:
        self.freeze()
        return self._snapshot

    def names(self) -> list[str]:
        return [d.name for d in self._chains]

    def __len__(self) -> int:
        return len(self._chains)

    def __iter__(self) -> Iterator[ChainDescriptor]:
        return iter(self._chains)
