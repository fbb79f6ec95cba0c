"""Application service layer for batch ingestion and lookup."""
from __future__ import annotations

import logging
from typing import Callable, Iterable

import httpx

from podstudio.core.errors import BatchBusyError, SourceUnavailableError
from podstudio.core.sheets import build_export_url, read_workbook_rows
from podstudio.core.tabular import DEFAULT_LAYOUT, ColumnLayout, JobRow, map_rows, parse_delimited
from podstudio.domain import Batch, ReferenceAsset
from podstudio.infrastructure import BatchRepository, InMemoryBatchRepository, RemoteAssetResolver

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


class BatchService:
    """Coordinates sheet ingestion and access to the batch registry."""

    def __init__(
        self,
        repository: BatchRepository,
        *,
        layout: ColumnLayout = DEFAULT_LAYOUT,
        client_factory: ClientFactory | None = None,
        fetch_timeout: float = 30.0,
    ) -> None:
        self._repository = repository
        self._layout = layout
        self._client_factory = client_factory
        self._fetch_timeout = fetch_timeout

    @property
    def repository(self) -> BatchRepository:
        return self._repository

    def configure(
        self,
        *,
        layout: ColumnLayout | None = None,
        client_factory: ClientFactory | None = None,
        fetch_timeout: float | None = None,
    ) -> None:
        if layout is not None:
            self._layout = layout
        if client_factory is not None:
            self._client_factory = client_factory
        if fetch_timeout is not None:
            self._fetch_timeout = fetch_timeout

    def _open_client(self) -> httpx.AsyncClient:
        if self._client_factory is not None:
            return self._client_factory()
        return httpx.AsyncClient(timeout=self._fetch_timeout, follow_redirects=True)

    def _ensure_idle(self) -> None:
        busy = [batch.name for batch in self._repository.list_batches() if batch.status.busy]
        if busy:
            raise BatchBusyError(f"cannot replace batches while running: {', '.join(busy)}")

    # ------------------------------------------------------------------
    # ingestion
    # ------------------------------------------------------------------
    async def sync_from_sheet(self, sheet_url: str) -> list[Batch]:
        export_url = build_export_url(sheet_url)
        self._ensure_idle()
        logger.info("Syncing batches from %s", export_url)
        async with self._open_client() as client:
            try:
                response = await client.get(export_url)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise SourceUnavailableError(f"sheet could not be downloaded: {exc}") from exc
            rows = parse_delimited(response.text)
            return await self._ingest(client, rows)

    async def import_text(self, text: str) -> list[Batch]:
        return await self.ingest_rows(parse_delimited(text))

    async def import_workbook(self, data: bytes) -> list[Batch]:
        return await self.ingest_rows(read_workbook_rows(data))

    async def ingest_rows(self, rows: Iterable[list[str]]) -> list[Batch]:
        self._ensure_idle()
        async with self._open_client() as client:
            return await self._ingest(client, rows)

    async def _ingest(self, client: httpx.AsyncClient, rows: Iterable[list[str]]) -> list[Batch]:
        resolver = RemoteAssetResolver(client)
        batches: list[Batch] = []
        for job in map_rows(rows, self._layout):
            references = await self._resolve_references(resolver, job)
            batches.append(
                Batch(
                    batch_id=self._repository.next_batch_id(),
                    name=job.name,
                    custom_prompt=job.custom_prompt,
                    references=references,
                )
            )

        # references are awaited above, so a run may have started meanwhile
        self._ensure_idle()
        self._repository.replace_all(batches)
        logger.info("Registered %d batches", len(batches))
        return batches

    @staticmethod
    async def _resolve_references(resolver: RemoteAssetResolver, job: JobRow) -> list[ReferenceAsset | None]:
        references: list[ReferenceAsset | None] = []
        for url in job.reference_urls:
            if url is None:
                references.append(None)
                continue
            asset = await resolver.resolve(url)
            references.append(asset if asset.resolved else None)
        return references

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------
    def list_batches(self) -> list[Batch]:
        return self._repository.list_batches()

    def get_batch(self, batch_id: str) -> Batch:
        return self._repository.get_batch(batch_id)

    # ------------------------------------------------------------------
    # testing helpers
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self._repository.reset()
        self._layout = DEFAULT_LAYOUT
        self._client_factory = None


_repository = InMemoryBatchRepository()
_service = BatchService(_repository)


def get_batch_service() -> BatchService:
    """Return the singleton batch service for the process."""

    return _service


def reset_batch_state() -> None:
    """Reset the in-memory registry (used in tests)."""

    _service.reset()
