from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from podstudio.application import get_batch_service
from podstudio.exporters.archive_zip import archive_filename, build_archive

router = APIRouter(tags=["export"])


@router.get("/export")
async def export_archive() -> Response:
    batches = [batch for batch in get_batch_service().list_batches() if batch.has_results()]
    if not batches:
        raise HTTPException(status_code=404, detail="no generated results to export")
    return Response(
        content=build_archive(batches),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive_filename()}"'},
    )
