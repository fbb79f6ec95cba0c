"""Infrastructure layer for batch persistence."""
from __future__ import annotations

from typing import Iterable, Protocol

from podstudio.core.errors import BatchNotFoundError, ResultSlotNotFoundError
from podstudio.domain import Batch, Tier


class BatchRepository(Protocol):
    """Persistence contract for the batch registry."""

    def next_batch_id(self) -> str: ...

    def replace_all(self, batches: Iterable[Batch]) -> None: ...

    def list_batches(self) -> list[Batch]: ...

    def get_batch(self, batch_id: str) -> Batch: ...

    def replace_results(self, batch_id: str, tier: Tier, results: list[str]) -> None: ...

    def write_result(self, batch_id: str, tier: Tier, index: int, asset: str) -> None: ...

    def fill_results(self, batch_id: str, tier: Tier, asset: str) -> None: ...

    def get_result(self, batch_id: str, tier: Tier, index: int) -> str: ...

    def reset(self) -> None: ...


class InMemoryBatchRepository:
    """In-memory registry; batches keep their source order."""

    def __init__(self) -> None:
        self._batches: dict[str, Batch] = {}
        self._batch_counter = 0

    # ------------------------------------------------------------------
    # registry
    # ------------------------------------------------------------------
    def next_batch_id(self) -> str:
        self._batch_counter += 1
        return f"batch-{self._batch_counter:05d}"

    def replace_all(self, batches: Iterable[Batch]) -> None:
        self._batches = {batch.batch_id: batch for batch in batches}

    def list_batches(self) -> list[Batch]:
        return list(self._batches.values())

    def get_batch(self, batch_id: str) -> Batch:
        batch = self._batches.get(batch_id)
        if batch is None:
            raise BatchNotFoundError(batch_id)
        return batch

    # ------------------------------------------------------------------
    # result slots
    # ------------------------------------------------------------------
    def replace_results(self, batch_id: str, tier: Tier, results: list[str]) -> None:
        self.get_batch(batch_id).results[tier] = list(results)

    def _slots(self, batch_id: str, tier: Tier, index: int) -> list[str]:
        slots = self.get_batch(batch_id).results[tier]
        if not 0 <= index < len(slots):
            raise ResultSlotNotFoundError(f"{batch_id} has no {tier.value} result #{index}")
        return slots

    def get_result(self, batch_id: str, tier: Tier, index: int) -> str:
        return self._slots(batch_id, tier, index)[index]

    def write_result(self, batch_id: str, tier: Tier, index: int, asset: str) -> None:
        self._slots(batch_id, tier, index)[index] = asset

    def fill_results(self, batch_id: str, tier: Tier, asset: str) -> None:
        slots = self.get_batch(batch_id).results[tier]
        slots[:] = [asset] * len(slots)

    def reset(self) -> None:
        self._batches.clear()
        self._batch_counter = 0
