"""Error taxonomy for the engine.

Transient remote failures never escape an engine operation; they are
logged by the sync layer. Invalid input is rejected before any mutation.
"""

from __future__ import annotations


class AdagioError(Exception):
    """Base class for all engine errors."""


class InvalidInputError(AdagioError):
    """User input rejected at the operation boundary."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SessionNotFoundError(AdagioError):
    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class LogEntryNotFoundError(AdagioError):
    def __init__(self, entry_id: str):
        super().__init__(f"Log entry not found: {entry_id}")
        self.entry_id = entry_id


class NothingPendingError(AdagioError):
    """Raised when resolving a confirmation that does not exist."""


class RemoteStoreError(AdagioError):
    """Network, auth or server failure talking to the remote store."""


class DocumentNotFoundError(RemoteStoreError):
    """merge-update against a document that does not exist yet."""


class ConfigError(AdagioError):
    pass


class TextGenerationError(AdagioError):
    """The text-generation service failed or returned an unusable reply."""
