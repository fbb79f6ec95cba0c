"""Application services."""

from .batches import BatchService, get_batch_service, reset_batch_state
from .editing import EditSession, EditSessionManager, get_edit_session_manager, reset_edit_sessions

__all__ = [
    "BatchService",
    "EditSession",
    "EditSessionManager",
    "get_batch_service",
    "get_edit_session_manager",
    "reset_batch_state",
    "reset_edit_sessions",
]
