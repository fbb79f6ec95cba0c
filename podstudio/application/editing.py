"""Edit sessions: non-destructive refinement of a single result slot.

A session is opened on one ``(batch, tier, index)`` result.  Regenerations
push the previously displayed asset onto the undo stack and clear the redo
stack; undo and redo write the restored asset straight back into the batch.
The history lives only as long as the session.
"""
from __future__ import annotations

import logging
import uuid
from typing import Callable

from podstudio.application.batches import get_batch_service
from podstudio.core.errors import BatchBusyError, EditSessionBusyError, EditSessionNotFoundError
from podstudio.core.rendering import render_adjustments
from podstudio.core.schema import Adjustments
from podstudio.domain import EditHistory, Tier
from podstudio.infrastructure import BatchRepository, GenerationService, get_generation_service

logger = logging.getLogger(__name__)

ServiceProvider = Callable[[], GenerationService]


class EditSession:
    def __init__(
        self,
        session_id: str,
        batch_id: str,
        tier: Tier,
        index: int,
        displayed: str,
        *,
        repository: BatchRepository,
        service_provider: ServiceProvider = get_generation_service,
        history_limit: int | None = None,
    ) -> None:
        self.session_id = session_id
        self.batch_id = batch_id
        self.tier = tier
        self.index = index
        self.history = EditHistory(displayed=displayed, limit=history_limit)
        self._repository = repository
        self._service_provider = service_provider
        self._busy = False
        self.closed = False

    @property
    def displayed(self) -> str:
        return self.history.displayed

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def can_undo(self) -> bool:
        return bool(self.history.undo_stack)

    @property
    def can_redo(self) -> bool:
        return bool(self.history.redo_stack)

    def _ensure_ready(self) -> None:
        if self.closed:
            raise EditSessionNotFoundError(self.session_id)
        if self._busy:
            raise EditSessionBusyError(f"session {self.session_id} is regenerating")
        batch = self._repository.get_batch(self.batch_id)
        if batch.status.busy:
            raise BatchBusyError(f"batch {batch.name} is generating; edits are paused")

    def _write_back(self, asset: str) -> None:
        self._repository.write_result(self.batch_id, self.tier, self.index, asset)

    async def regenerate(self, instruction: str) -> str:
        """Redesign the displayed asset following ``instruction``.

        The undo entry is recorded before the call and stays recorded if the
        call fails; the failure propagates to the caller.
        """

        if not instruction or not instruction.strip():
            return self.history.displayed
        self._ensure_ready()

        self.history.undo_stack.append(self.history.displayed)
        self.history.redo_stack.clear()
        self._busy = True
        try:
            asset = await self._service_provider().generate(
                [], instruction.strip(), self.history.displayed, self.tier
            )
        finally:
            self._busy = False

        self.history.displayed = asset
        self._write_back(asset)
        return asset

    def undo(self) -> str:
        self._ensure_ready()
        if not self.history.undo_stack:
            return self.history.displayed
        previous = self.history.undo_stack.pop()
        self.history.redo_stack.append(self.history.displayed)
        self.history.displayed = previous
        self._write_back(previous)
        return previous

    def redo(self) -> str:
        self._ensure_ready()
        if not self.history.redo_stack:
            return self.history.displayed
        following = self.history.redo_stack.pop()
        self.history.undo_stack.append(self.history.displayed)
        self.history.displayed = following
        self._write_back(following)
        return following

    def commit(self, apply_to_all: bool = False, adjustments: Adjustments | None = None) -> str:
        """Write the displayed asset, optionally rendered, into the batch.

        ``apply_to_all`` overwrites every result of the tier with the same
        value.  Neither stack is touched.
        """

        self._ensure_ready()
        # validates the slot still exists before anything is written
        self._repository.get_result(self.batch_id, self.tier, self.index)

        asset = self.history.displayed
        if adjustments is not None and not adjustments.is_identity():
            asset = render_adjustments(asset, adjustments)

        if apply_to_all:
            self._repository.fill_results(self.batch_id, self.tier, asset)
        else:
            self._write_back(asset)
        self.history.displayed = asset
        return asset


class EditSessionManager:
    """Keeps the open edit sessions of the process."""

    def __init__(
        self,
        repository: BatchRepository,
        *,
        service_provider: ServiceProvider = get_generation_service,
        history_limit: int | None = None,
    ) -> None:
        self._repository = repository
        self._service_provider = service_provider
        self._history_limit = history_limit
        self._sessions: dict[str, EditSession] = {}

    def configure(self, *, history_limit: int | None) -> None:
        self._history_limit = history_limit

    def open(self, batch_id: str, tier: Tier, index: int) -> EditSession:
        batch = self._repository.get_batch(batch_id)
        if batch.status.busy:
            raise BatchBusyError(f"batch {batch.name} is generating; edits are paused")
        displayed = self._repository.get_result(batch_id, tier, index)
        session = EditSession(
            uuid.uuid4().hex,
            batch_id,
            tier,
            index,
            displayed,
            repository=self._repository,
            service_provider=self._service_provider,
            history_limit=self._history_limit,
        )
        self._sessions[session.session_id] = session
        logger.info("Opened edit session %s on %s/%s#%d", session.session_id, batch_id, tier.value, index)
        return session

    def get(self, session_id: str) -> EditSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise EditSessionNotFoundError(session_id)
        return session

    def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise EditSessionNotFoundError(session_id)
        session.closed = True
        logger.info("Closed edit session %s", session_id)

    def regenerating(self, batch_id: str) -> bool:
        return any(s.busy for s in self._sessions.values() if s.batch_id == batch_id)

    def close_for(self, batch_id: str, tier: Tier) -> int:
        """Close the sessions opened on results a run has just replaced."""

        stale = [sid for sid, s in self._sessions.items() if s.batch_id == batch_id and s.tier is tier]
        for session_id in stale:
            self._sessions.pop(session_id).closed = True
        if stale:
            logger.info("Closed %d edit session(s) on replaced %s results of %s", len(stale), tier.value, batch_id)
        return len(stale)

    def reset(self) -> None:
        for session in self._sessions.values():
            session.closed = True
        self._sessions.clear()
        self._history_limit = None


_manager = EditSessionManager(get_batch_service().repository)


def get_edit_session_manager() -> EditSessionManager:
    return _manager


def reset_edit_sessions() -> None:
    _manager.reset()
