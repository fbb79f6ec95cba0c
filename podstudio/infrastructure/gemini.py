"""Integration with the Gemini image generation REST API."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Sequence
from urllib.parse import urlparse

import httpx

from podstudio.core.datauri import split_data_url
from podstudio.core.errors import ElevatedAccessRequired, GenerationFailure
from podstudio.domain import ReferenceAsset, Tier

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTION = (
    "Redesign the supplied reference artwork into a fresh, original print-on-demand "
    "design. Keep the theme and subject, change the composition and styling, and "
    "return a single clean image on a plain background."
)
PRO_KEY_REQUIRED = "PRO_KEY_REQUIRED"


class GeminiImageClient:
    """Client for the Gemini ``generateContent`` endpoint with image output."""

    def __init__(
        self,
        api_key: str,
        *,
        enhanced_api_key: str | None = None,
        api_base: str = "https://generativelanguage.googleapis.com",
        standard_model: str = "gemini-2.5-flash-image",
        enhanced_model: str = "gemini-3-pro-image-preview",
        aspect_ratio: str = "1:1",
        timeout: float = 120.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        parsed = urlparse(api_base)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("api_base must include scheme and host")

        self._api_key = api_key
        self._enhanced_api_key = enhanced_api_key
        self._api_base = f"{parsed.scheme}://{parsed.netloc}"
        self._models = {Tier.STANDARD: standard_model, Tier.ENHANCED: enhanced_model}
        self._aspect_ratio = aspect_ratio
        self._timeout = timeout
        self._client = http_client

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    @property
    def has_enhanced_access(self) -> bool:
        return bool(self._enhanced_api_key)

    def set_enhanced_api_key(self, api_key: str) -> None:
        self._enhanced_api_key = api_key

    def _key_for(self, tier: Tier) -> str:
        if tier is Tier.ENHANCED:
            if not self._enhanced_api_key:
                raise ElevatedAccessRequired(f"{PRO_KEY_REQUIRED}: enhanced tier needs its own API key")
            return self._enhanced_api_key
        return self._api_key

    def _request_url(self, tier: Tier) -> str:
        return f"{self._api_base}/v1beta/models/{self._models[tier]}:generateContent"

    @staticmethod
    def _inline_part(asset: str) -> dict[str, Any]:
        mime_type, data = split_data_url(asset)
        return {"inline_data": {"mime_type": mime_type, "data": data}}

    def _build_payload(
        self,
        references: Sequence[ReferenceAsset | None],
        instruction: str | None,
        conditioning_asset: str | None,
    ) -> dict[str, Any]:
        parts: list[dict[str, Any]] = []
        for reference in references:
            if reference is not None and reference.encoded_data:
                parts.append(self._inline_part(reference.encoded_data))
        if conditioning_asset:
            parts.append(self._inline_part(conditioning_asset))
        parts.append({"text": (instruction or "").strip() or DEFAULT_INSTRUCTION})
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {"aspectRatio": self._aspect_ratio},
            },
        }

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return f"HTTP {response.status_code}"

    @staticmethod
    def _extract_image(body: dict[str, Any]) -> str:
        raw = body.get("candidates")
        candidates = [c for c in raw if isinstance(c, dict)] if isinstance(raw, list) else []
        for candidate in candidates:
            content = candidate.get("content")
            parts = content.get("parts") if isinstance(content, dict) else None
            for part in parts or []:
                if not isinstance(part, dict):
                    continue
                inline = part.get("inlineData") or part.get("inline_data")
                if isinstance(inline, dict) and inline.get("data"):
                    mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
                    return f"data:{mime_type};base64,{inline['data']}"
        reason = None
        if candidates:
            reason = candidates[0].get("finishReason")
        feedback = body.get("promptFeedback")
        if not reason and isinstance(feedback, dict):
            reason = feedback.get("blockReason")
        raise GenerationFailure(f"model returned no image ({reason or 'empty response'})")

    @asynccontextmanager
    async def _open_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            yield client

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def generate(
        self,
        references: Sequence[ReferenceAsset | None],
        instruction: str | None,
        conditioning_asset: str | None,
        tier: Tier,
    ) -> str:
        api_key = self._key_for(tier)
        try:
            payload = self._build_payload(references, instruction, conditioning_asset)
        except ValueError as exc:
            raise GenerationFailure(str(exc)) from exc

        try:
            async with self._open_client() as client:
                response = await client.post(
                    self._request_url(tier),
                    headers={"x-goog-api-key": api_key},
                    json=payload,
                )
        except httpx.HTTPError as exc:
            raise GenerationFailure(f"generation request failed: {exc}") from exc

        if response.status_code in (401, 403) and tier is Tier.ENHANCED:
            raise ElevatedAccessRequired(f"{PRO_KEY_REQUIRED}: {self._error_message(response)}")
        if response.is_error:
            raise GenerationFailure(self._error_message(response))

        try:
            body = response.json()
        except ValueError as exc:
            raise GenerationFailure("generation response is not JSON") from exc
        if not isinstance(body, dict):
            raise GenerationFailure("generation response has an unexpected shape")
        return self._extract_image(body)


__all__ = ["DEFAULT_INSTRUCTION", "GeminiImageClient", "PRO_KEY_REQUIRED"]
