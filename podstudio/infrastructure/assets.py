"""Fetch reference images into self-contained data URLs."""
from __future__ import annotations

import logging
from io import BytesIO

import httpx
from PIL import Image, UnidentifiedImageError

from podstudio.core.datauri import encode_data_url
from podstudio.domain import ReferenceAsset

logger = logging.getLogger(__name__)


class RemoteAssetResolver:
    """Download reference images; never raises to the caller.

    Any failure (transport error, non-2xx status, empty body, bytes that are
    not an image) yields a :class:`ReferenceAsset` without ``encoded_data``.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @staticmethod
    def _mime_type(payload: bytes, declared: str | None) -> str:
        with Image.open(BytesIO(payload)) as image:
            image.verify()
            detected = Image.MIME.get(image.format or "")
        if detected:
            return detected
        if declared and declared.startswith("image/"):
            return declared
        return "image/png"

    async def resolve(self, url: str) -> ReferenceAsset:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("Could not fetch reference image url=%s reason=%s", url, exc)
            return ReferenceAsset(source_url=url)

        payload = response.content
        if not payload:
            logger.warning("Reference image is empty url=%s", url)
            return ReferenceAsset(source_url=url)

        declared = (response.headers.get("content-type") or "").split(";")[0].strip() or None
        try:
            mime_type = self._mime_type(payload, declared)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as exc:
            logger.warning("Reference image could not be decoded url=%s reason=%s", url, exc)
            return ReferenceAsset(source_url=url)

        return ReferenceAsset(source_url=url, encoded_data=encode_data_url(payload, mime_type))
