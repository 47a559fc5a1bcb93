from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

Record = Mapping[str, Any]


@dataclass(frozen=True)
class ColumnDescriptor:
    """How one field of a record is labeled and displayed.

    ``key`` is usually a field name but may be a synthetic id (e.g.
    ``coordinates``) when ``render`` combines several fields. Descriptors never
    change the underlying record, so search and sort still see raw values.
    """

    key: str
    header: str
    render: Optional[Callable[[Record], Any]] = None

    def display(self, record: Record) -> Any:
        if self.render is not None:
            return self.render(record)
        value = record.get(self.key)
        return "" if value is None else value


def display_rows(records: Iterable[Record], columns: Sequence[ColumnDescriptor]) -> List[Dict[str, Any]]:
    return [{c.key: c.display(r) for c in columns} for r in records]


def column_headers(columns: Sequence[ColumnDescriptor]) -> List[Dict[str, str]]:
    return [{"key": c.key, "header": c.header} for c in columns]
