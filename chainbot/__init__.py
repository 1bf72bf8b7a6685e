"""Ordered chain dispatch for Telegram Bot API updates."""

from chainbot.app import ChainApp, IngestionConfig
from chainbot.chains import (
    ChainContext,
    ChainDescriptor,
    ChainRegistry,
    Outcome,
    OutcomeKind,
    done,
    proceed,
    stop,
)
from chainbot.dispatcher import Dispatcher, DispatchResult, ResultKind

__all__ = [
    "ChainApp",
    "ChainContext",
    "ChainDescriptor",
    "ChainRegistry",
    "DispatchResult",
    "Dispatcher",
    "IngestionConfig",
    "Outcome",
    "OutcomeKind",
    "ResultKind",
    "done",
    "proceed",
    "stop",
]
