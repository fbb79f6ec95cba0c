from __future__ import annotations

import re
import unicodedata

_UNSAFE = re.compile(r"[^a-zA-Z0-9 ]")


def clean_file_name(name: str, fallback: str = "design") -> str:
    """Reduce a batch name to letters, digits and single spaces."""

    normalized = unicodedata.normalize("NFKC", name or "")
    cleaned = " ".join(_UNSAFE.sub(" ", normalized).split())
    return cleaned or fallback
