"""Tracks requests for enhanced-tier access."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

logger = logging.getLogger(__name__)

GrantHandler = Callable[[str], None]


@dataclass(slots=True)
class AccessState:
    granted: bool = False
    pending: bool = False
    last_reason: str | None = None
    requested_at: str | None = None
    request_count: int = 0


class ElevatedAccessBroker:
    """Records access requests and hands granted keys to the generation client."""

    def __init__(self, grant_handler: GrantHandler | None = None, *, granted: bool = False) -> None:
        self._grant_handler = grant_handler
        self._state = AccessState(granted=granted)

    def set_grant_handler(self, handler: GrantHandler | None) -> None:
        self._grant_handler = handler

    def request_elevated_access(self, reason: str) -> None:
        self._state.granted = False
        self._state.pending = True
        self._state.last_reason = reason
        self._state.requested_at = datetime.now(timezone.utc).isoformat()
        self._state.request_count += 1
        logger.warning("Enhanced tier access requested: %s", reason)

    def grant(self, api_key: str) -> None:
        if self._grant_handler is None:
            raise RuntimeError("no generation client accepts enhanced access keys")
        self._grant_handler(api_key)
        self._state.granted = True
        self._state.pending = False
        logger.info("Enhanced tier access granted")

    def status(self) -> dict[str, object]:
        return {
            "granted": self._state.granted,
            "pending": self._state.pending,
            "last_reason": self._state.last_reason,
            "requested_at": self._state.requested_at,
            "request_count": self._state.request_count,
        }


_broker = ElevatedAccessBroker()


def configure_access_broker(broker: ElevatedAccessBroker) -> None:
    global _broker
    _broker = broker


def get_access_broker() -> ElevatedAccessBroker:
    return _broker


def reset_access_broker() -> None:
    configure_access_broker(ElevatedAccessBroker())
