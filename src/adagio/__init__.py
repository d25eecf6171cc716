"""Adagio focus timer engine.

Multiple concurrent work sessions, a work log with tier-based retention,
local-first persistence and an optional cloud-synced document per account.
"""

from .clock import ManualClock, SystemClock
from .engine import Engine, EngineEvent, PendingAction, PendingLog, build_engine
from .errors import (
    AdagioError,
    ConfigError,
    DocumentNotFoundError,
    InvalidInputError,
    LogEntryNotFoundError,
    NothingPendingError,
    RemoteStoreError,
    SessionNotFoundError,
    TextGenerationError,
)
from .insights import TimeFilter
from .local_store import LocalStore
from .models import ActiveSession, IntervalKind, LogEntry, Settings, Task
from .remote_store import HttpRemoteStore, MemoryRemoteStore, RemoteStore
from .text_gen import HttpTextGenerator, Quote, TextGenerator, TextService

__all__ = [
    "ActiveSession",
    "AdagioError",
    "ConfigError",
    "DocumentNotFoundError",
    "Engine",
    "EngineEvent",
    "HttpRemoteStore",
    "HttpTextGenerator",
    "IntervalKind",
    "InvalidInputError",
    "LocalStore",
    "LogEntry",
    "LogEntryNotFoundError",
    "ManualClock",
    "MemoryRemoteStore",
    "NothingPendingError",
    "PendingAction",
    "PendingLog",
    "Quote",
    "RemoteStore",
    "RemoteStoreError",
    "SessionNotFoundError",
    "Settings",
    "SystemClock",
    "Task",
    "TextGenerationError",
    "TextGenerator",
    "TextService",
    "TimeFilter",
    "build_engine",
]
