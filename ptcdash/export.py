from __future__ import annotations

from typing import Iterable, Sequence

import pandas as pd

from ptcdash.browser import RecordBrowser
from ptcdash.columns import ColumnDescriptor, Record


def export_frame(
    records: Iterable[Record],
    columns: Sequence[ColumnDescriptor],
    rendered: bool = False,
) -> pd.DataFrame:
    """One column per descriptor, headed by the column header.

    With ``rendered=False`` the raw field values are written; list fields are
    joined so they survive CSV. Synthetic columns (no field behind the key)
    always use their renderer.
    """
    rows = []
    for record in records:
        row = {}
        for col in columns:
            if rendered or (col.key not in record and col.render is not None):
                value = col.display(record)
            else:
                value = record.get(col.key)
                if isinstance(value, (list, tuple)):
                    value = ", ".join(str(v) for v in value)
            row[col.header] = value
        rows.append(row)
    return pd.DataFrame(rows, columns=[c.header for c in columns])


def to_csv_bytes(browser: RecordBrowser, rendered: bool = False) -> bytes:
    """Every filtered and sorted record of the browser, not just the visible page."""
    df = export_frame(browser.filtered_records(), browser.columns, rendered=rendered)
    return df.to_csv(index=False).encode("utf-8")
