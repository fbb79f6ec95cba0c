"""Tokenizer and fixed-column mapping for the job sheet.

The sheet is an export of a spreadsheet where every data row describes one
design job.  Only a handful of columns matter:

* column 0 → job name (rows without a name are not jobs)
* column 11 → custom prompt, falling back to column 1
* columns 15-19 → up to five reference image URLs, one per slot

The tokenizer supports only what the exports contain:
comma separated fields, optionally wrapped in single or double quotes.  It is
not an RFC 4180 parser; doubled quotes are not unescaped and a quoted field
cannot span lines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable
from urllib.parse import urlparse

from podstudio.domain import REFERENCE_SLOTS

QUOTES = ("'", '"')
_LINE_BREAK = re.compile(r"\r?\n")


@dataclass(frozen=True)
class ColumnLayout:
    name: int = 0
    prompt: int = 11
    prompt_fallback: int = 1
    references: tuple[int, ...] = (15, 16, 17, 18, 19)

    def __post_init__(self) -> None:
        if len(self.references) != REFERENCE_SLOTS:
            raise ValueError(f"layout must name exactly {REFERENCE_SLOTS} reference columns")


DEFAULT_LAYOUT = ColumnLayout()


@dataclass
class JobRow:
    """A sheet row that qualifies as a job, before references are fetched."""

    name: str
    custom_prompt: str | None = None
    reference_urls: list[str | None] = field(default_factory=lambda: [None] * REFERENCE_SLOTS)
    source_row: int | None = None


def _read_field(line: str, start: int) -> tuple[str, int]:
    """Read one field starting at ``start``; return it and the index after its delimiter."""

    length = len(line)
    pos = start
    while pos < length and line[pos].isspace():
        pos += 1

    if pos < length and line[pos] in QUOTES:
        quote = line[pos]
        closing = line.find(quote, pos + 1)
        if closing != -1:
            after = closing + 1
            while after < length and line[after].isspace():
                after += 1
            if after == length or line[after] == ",":
                return line[pos + 1 : closing].strip(), after + 1

    # unquoted, or a quote that does not wrap the whole field: take it literally
    comma = line.find(",", start)
    end = length if comma == -1 else comma
    return line[start:end].strip(), end + 1


def tokenize_line(line: str) -> list[str]:
    fields: list[str] = []
    pos = 0
    length = len(line)
    while pos < length:
        if not line[pos:].strip():
            break
        value, pos = _read_field(line, pos)
        fields.append(value)
    return fields


def parse_delimited(text: str) -> list[list[str]]:
    """Split raw sheet text into rows of trimmed string fields.

    Blank lines are dropped.  A trailing delimiter does not create an extra
    empty field; callers read missing columns as ``""``.
    """

    rows: list[list[str]] = []
    for line in _LINE_BREAK.split(text or ""):
        if not line.strip():
            continue
        rows.append(tokenize_line(line))
    return rows


def cell(row: list[str], index: int) -> str:
    if 0 <= index < len(row):
        return row[index] or ""
    return ""


def is_absolute_url(value: str) -> bool:
    if not value:
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def map_rows(rows: Iterable[list[str]], layout: ColumnLayout = DEFAULT_LAYOUT) -> list[JobRow]:
    """Turn tokenised rows (header included) into job rows."""

    jobs: list[JobRow] = []
    for number, row in enumerate(rows):
        if number == 0:
            continue
        name = cell(row, layout.name)
        if not name:
            continue
        prompt = cell(row, layout.prompt) or cell(row, layout.prompt_fallback) or None
        urls: list[str | None] = []
        for column in layout.references:
            value = cell(row, column)
            urls.append(value if is_absolute_url(value) else None)
        jobs.append(JobRow(name=name, custom_prompt=prompt, reference_urls=urls, source_row=number + 1))
    return jobs
