from __future__ import annotations

import time
import zipfile
from io import BytesIO
from typing import Iterable

from podstudio.core.csvio import records_to_csv_bytes
from podstudio.core.datauri import decode_data_url
from podstudio.core.naming import clean_file_name
from podstudio.domain import Batch, Tier

MANIFEST_COLUMNS = ["folder", "name", "custom_prompt", "standard_results", "pro_results"]


def archive_filename(now: float | None = None) -> str:
    stamp = int((time.time() if now is None else now) * 1000)
    return f"POD-Project-{stamp}.zip"


def _unique_folder(name: str, used: set[str]) -> str:
    folder = clean_file_name(name)
    candidate = folder
    counter = 2
    while candidate in used:
        candidate = f"{folder} {counter}"
        counter += 1
    used.add(candidate)
    return candidate


def build_archive(batches: Iterable[Batch]) -> bytes:
    """Zip every batch that has results: ``<batch>/<Standard|Pro>/<batch> <tier> <n>.png``."""

    buffer = BytesIO()
    manifest: list[dict] = []
    used: set[str] = set()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for batch in batches:
            if not batch.has_results():
                continue
            folder = _unique_folder(batch.name, used)
            for tier in Tier:
                label = tier.archive_label
                for position, asset in enumerate(batch.results[tier], start=1):
                    _, payload = decode_data_url(asset)
                    archive.writestr(f"{folder}/{label}/{folder} {label} {position}.png", payload)
            manifest.append(
                {
                    "folder": folder,
                    "name": batch.name,
                    "custom_prompt": batch.custom_prompt or "",
                    "standard_results": len(batch.results[Tier.STANDARD]),
                    "pro_results": len(batch.results[Tier.ENHANCED]),
                }
            )
        archive.writestr("manifest.csv", records_to_csv_bytes(manifest, MANIFEST_COLUMNS))
    return buffer.getvalue()
