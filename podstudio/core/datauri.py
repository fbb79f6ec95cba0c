"""Helpers for the ``data:`` URL form used for every in-memory asset."""
from __future__ import annotations

import base64
import binascii
import re

_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^;,]*)*?);base64,(?P<data>.*)$", re.DOTALL)


def encode_data_url(payload: bytes, mime_type: str = "image/png") -> str:
    encoded = base64.b64encode(payload).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_url(value: str) -> tuple[str, bytes]:
    """Split a base64 data URL into ``(mime_type, payload)``.

    Raises:
        ValueError: when ``value`` is not a base64 data URL.
    """

    match = _DATA_URL.match(value or "")
    if match is None:
        raise ValueError("asset is not a base64 data URL")
    try:
        payload = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as exc:
        raise ValueError("asset payload is not valid base64") from exc
    return match.group("mime") or "application/octet-stream", payload


def split_data_url(value: str) -> tuple[str, str]:
    """Return ``(mime_type, base64_text)`` without decoding the payload."""

    match = _DATA_URL.match(value or "")
    if match is None:
        raise ValueError("asset is not a base64 data URL")
    return match.group("mime") or "application/octet-stream", match.group("data")
