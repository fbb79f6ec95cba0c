from __future__ import annotations


class SourceFormatError(ValueError):
    """Raised when the tabular source identifier cannot be understood."""


class SourceUnavailableError(RuntimeError):
    """Raised when the tabular source could not be downloaded."""


class GenerationFailure(RuntimeError):
    """Raised by a generation service when a call does not produce an asset."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ElevatedAccessRequired(GenerationFailure):
    """The enhanced tier was requested without access having been granted."""


class BatchNotFoundError(KeyError):
    """Raised when a batch id is not registered."""


class BatchBusyError(RuntimeError):
    """Raised when a batch already has a run in flight."""


class EditSessionNotFoundError(KeyError):
    """Raised when an edit session id is unknown or already closed."""


class EditSessionBusyError(RuntimeError):
    """Raised when an edit starts while a regeneration is still running."""


class ResultSlotNotFoundError(IndexError):
    """Raised when a (batch, tier, index) triple does not address a result."""
