"""Sequential generation scheduler.

A run issues up to ``outputs_per_batch`` generation calls, one after the
other, for a single batch and tier.  Before every call the run checks the
cancellation token and the batch's own ``stopping`` status; a call already
in flight always completes.

Commit policy:

* the loop finishes, or exits because a stop was requested → everything the
  run produced replaces the tier's results and the batch is ``completed``;
* any call fails → nothing from the run is kept, the batch goes to ``error``
  with the failure message.  ``ElevatedAccessRequired`` additionally asks the
  access broker for enhanced-tier access.  A cancelled task is treated the
  same way and the cancellation propagates.

A run never starts while an edit session on the batch is regenerating, and a
committed run closes the edit sessions opened on the tier it replaced.
"""
from __future__ import annotations

import logging
from typing import Callable

from podstudio.application import EditSessionManager, get_batch_service, get_edit_session_manager
from podstudio.core.cancellation import CancellationToken
from podstudio.core.errors import BatchBusyError, ElevatedAccessRequired, GenerationFailure
from podstudio.domain import Batch, BatchStatus, Tier
from podstudio.infrastructure import (
    BatchRepository,
    ElevatedAccessBroker,
    GenerationService,
    get_access_broker,
    get_generation_service,
)

logger = logging.getLogger(__name__)


class GenerationScheduler:
    def __init__(
        self,
        repository: BatchRepository,
        *,
        service_provider: Callable[[], GenerationService] = get_generation_service,
        broker_provider: Callable[[], ElevatedAccessBroker] = get_access_broker,
        edits_provider: Callable[[], EditSessionManager] = get_edit_session_manager,
    ) -> None:
        self._repository = repository
        self._service_provider = service_provider
        self._broker_provider = broker_provider
        self._edits_provider = edits_provider
        self._run_all_token: CancellationToken | None = None

    @property
    def run_all_active(self) -> bool:
        return self._run_all_token is not None

    # ------------------------------------------------------------------
    # stop requests
    # ------------------------------------------------------------------
    def stop_batch(self, batch_id: str) -> bool:
        """Ask a running batch to stop after its in-flight call."""

        batch = self._repository.get_batch(batch_id)
        if batch.status is not BatchStatus.PROCESSING:
            return False
        batch.status = BatchStatus.STOPPING
        logger.info("Stop requested for batch %s", batch.name)
        return True

    def stop_all(self) -> bool:
        """Cancel the active run-all; batches not yet started stay idle."""

        token = self._run_all_token
        if token is None:
            return False
        token.cancel("run-all stop requested")
        logger.info("Stop requested for run-all")
        return True

    # ------------------------------------------------------------------
    # runs
    # ------------------------------------------------------------------
    async def run_batch(
        self,
        batch_id: str,
        tier: Tier,
        outputs_per_batch: int,
        token: CancellationToken | None = None,
    ) -> Batch:
        if outputs_per_batch < 1:
            raise ValueError("outputs_per_batch must be at least 1")
        batch = self._repository.get_batch(batch_id)
        if batch.status.busy:
            raise BatchBusyError(f"batch {batch.name} is already running")
        if self._edits_provider().regenerating(batch_id):
            raise BatchBusyError(f"batch {batch.name} has an edit regenerating")

        token = token or CancellationToken()
        batch.status = BatchStatus.PROCESSING
        batch.active_mode = tier
        batch.last_error = None
        logger.info("Generating %d %s output(s) for batch %s", outputs_per_batch, tier.value, batch.name)

        produced: list[str] = []
        service = self._service_provider()
        try:
            for _ in range(outputs_per_batch):
                if token.cancelled or batch.status is BatchStatus.STOPPING:
                    logger.info("Batch %s stopped after %d output(s)", batch.name, len(produced))
                    break
                asset = await service.generate(batch.references, batch.custom_prompt, None, tier)
                produced.append(asset)
        except ElevatedAccessRequired as exc:
            self._broker_provider().request_elevated_access(exc.message)
            self._fail(batch, exc.message)
        except GenerationFailure as exc:
            self._fail(batch, exc.message)
        except BaseException as exc:
            # includes task cancellation; the run is discarded either way
            self._fail(batch, str(exc) or exc.__class__.__name__)
            raise
        else:
            self._repository.replace_results(batch.batch_id, tier, produced)
            self._edits_provider().close_for(batch.batch_id, tier)
            batch.status = BatchStatus.COMPLETED
            batch.active_mode = None
            logger.info("Batch %s completed with %d %s output(s)", batch.name, len(produced), tier.value)
        return batch

    @staticmethod
    def _fail(batch: Batch, message: str) -> None:
        batch.status = BatchStatus.ERROR
        batch.active_mode = None
        batch.last_error = message
        logger.warning("Batch %s failed: %s", batch.name, message)

    async def run_all(
        self,
        tier: Tier,
        outputs_per_batch: int,
        token: CancellationToken | None = None,
    ) -> list[Batch]:
        """Run every batch in registry order until the token is cancelled."""

        if self._run_all_token is not None:
            raise BatchBusyError("a run-all is already in progress")
        token = token or CancellationToken()
        self._run_all_token = token
        processed: list[Batch] = []
        try:
            for batch in self._repository.list_batches():
                if token.cancelled:
                    logger.info("Run-all cancelled before batch %s", batch.name)
                    break
                try:
                    processed.append(await self.run_batch(batch.batch_id, tier, outputs_per_batch, token))
                except BatchBusyError:
                    logger.warning("Skipping batch %s: a run or edit is already in flight", batch.name)
                except Exception:
                    logger.exception("Batch %s failed unexpectedly; continuing with the next batch", batch.name)
                    processed.append(batch)
        finally:
            self._run_all_token = None
        return processed

    def reset(self) -> None:
        self._run_all_token = None


_scheduler: GenerationScheduler | None = None


def get_generation_scheduler() -> GenerationScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = GenerationScheduler(get_batch_service().repository)
    return _scheduler


def reset_generation_scheduler() -> None:
    if _scheduler is not None:
        _scheduler.reset()
