from __future__ import annotations

from typing import Iterable

import pandas as pd


def records_to_csv_bytes(rows: Iterable[dict], columns: list[str]) -> bytes:
    df = pd.DataFrame(list(rows), columns=columns)
    return df.to_csv(index=False).encode("utf-8")
