"""Interactive search / sort / page view over one record collection.

One ``RecordBrowser`` is created per dataset view. The records are treated as
read-only and may be shared between browsers; the view state is owned by a
single browser.

Pipeline (in this order, each stage working on the previous stage's output):

1. filter: keep records where any field's lower-cased string form contains
   the lower-cased search term
2. sort: stable sort on ``sort_key`` (input order when no key is set)
3. slice: ``[page_index * page_size, page_index * page_size + page_size)``
"""

from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass, field, replace
from typing import Any, List, Literal, Optional, Sequence, Tuple

from ptcdash.columns import ColumnDescriptor, Record
from ptcdash.errors import InvalidPageSize

logger = logging.getLogger(__name__)

SortDirection = Literal["asc", "desc"]
SORT_DIRECTIONS: Tuple[str, ...] = ("asc", "desc")
DEFAULT_PAGE_SIZE = 10


@dataclass
class BrowserViewState:
    search_term: str = ""
    sort_key: Optional[str] = None
    sort_direction: SortDirection = "asc"
    page_index: int = 0
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True)
class BrowserView:
    visible_records: List[Record] = field(default_factory=list)
    total_filtered: int = 0
    total_pages: int = 0
    current_page: int = 0
    page_size: int = DEFAULT_PAGE_SIZE
    # 1-based "showing first_row to last_row of total_filtered"; 0 when empty.
    first_row: int = 0
    last_row: int = 0
    sort_key: Optional[str] = None
    sort_direction: SortDirection = "asc"
    search_term: str = ""


def search_text(value: Any) -> str:
    """Lower-cased string form of a field value used for matching."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ",".join(search_text(v) for v in value)
    return str(value).lower()


def sort_key_for(value: Any) -> Tuple[int, Any]:
    """Total ordering over mixed field values: numbers, strings, others, missing."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return (3, 0)
    if isinstance(value, numbers.Real):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    if isinstance(value, (list, tuple)):
        return (2, ",".join(str(v) for v in value))
    if hasattr(value, "isoformat"):
        return (2, value.isoformat())
    return (2, str(value))


def _validate_page_size(size: Any) -> int:
    if isinstance(size, bool) or not isinstance(size, numbers.Integral) or size <= 0:
        raise InvalidPageSize(size)
    return int(size)


class RecordBrowser:
    def __init__(
        self,
        records: Sequence[Record],
        columns: Sequence[ColumnDescriptor] = (),
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        searchable: bool = True,
        sortable: bool = True,
        paginated: bool = True,
    ) -> None:
        self._default_page_size = _validate_page_size(page_size)
        self.columns: Tuple[ColumnDescriptor, ...] = tuple(columns)
        self._searchable = bool(searchable)
        self._sortable = bool(sortable)
        self._paginated = bool(paginated)
        self._records: Tuple[Record, ...] = tuple(records)
        self._state = BrowserViewState(page_size=self._default_page_size)
        self._filtered_cache: Optional[Tuple[str, List[Record]]] = None
        self._sorted_cache: Optional[Tuple[Tuple[str, Optional[str], str], List[Record]]] = None

    # ------------------------------------------------------------------ state

    # Flags are fixed at construction; changing them would invalidate page_index.
    @property
    def searchable(self) -> bool:
        return self._searchable

    @property
    def sortable(self) -> bool:
        return self._sortable

    @property
    def paginated(self) -> bool:
        return self._paginated

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    @property
    def state(self) -> BrowserViewState:
        return replace(self._state)

    def replace_records(self, records: Sequence[Record]) -> None:
        """Swap in a refreshed collection and reset the view state to defaults."""
        self._records = tuple(records)
        self._state = BrowserViewState(page_size=self._default_page_size)
        self._filtered_cache = None
        self._sorted_cache = None
        logger.debug("records replaced (%d rows); view state reset", len(self._records))

    def set_search_term(self, text: Optional[str]) -> None:
        self._state.search_term = text or ""
        self._state.page_index = 0
        logger.debug("search_term=%r page_index=0", self._state.search_term)

    def set_sort(self, key: str) -> None:
        if not self.sortable:
            return
        if key == self._state.sort_key:
            self._state.sort_direction = "desc" if self._state.sort_direction == "asc" else "asc"
        else:
            self._state.sort_key = key
            self._state.sort_direction = "asc"
        logger.debug("sort_key=%r sort_direction=%s", self._state.sort_key, self._state.sort_direction)

    def sort_by(self, key: Optional[str], direction: str = "asc") -> None:
        if direction not in SORT_DIRECTIONS:
            raise ValueError(f"sort direction must be one of {SORT_DIRECTIONS}, got {direction!r}")
        if not self.sortable:
            return
        self._state.sort_key = key
        self._state.sort_direction = direction  # type: ignore[assignment]

    def set_page(self, index: int) -> None:
        target = min(max(int(index), 0), self._last_page_index())
        if target == self._state.page_index:
            return
        self._state.page_index = target
        logger.debug("page_index=%d", target)

    def set_page_size(self, size: int) -> None:
        self._state.page_size = _validate_page_size(size)
        self._state.page_index = 0
        logger.debug("page_size=%d page_index=0", self._state.page_size)

    def first_page(self) -> None:
        self.set_page(0)

    def previous_page(self) -> None:
        self.set_page(self._state.page_index - 1)

    def next_page(self) -> None:
        self.set_page(self._state.page_index + 1)

    def last_page(self) -> None:
        self.set_page(self._last_page_index())

    # ---------------------------------------------------------------- queries

    def filtered_records(self) -> List[Record]:
        """Every record passing the search, sorted, without pagination."""
        return list(self._sorted())

    def get_view(self) -> BrowserView:
        rows = self._sorted()
        total = len(rows)
        state = self._state
        if self.paginated:
            size = state.page_size
            total_pages = math.ceil(total / size)
            start = state.page_index * size
            visible = rows[start:start + size]
        else:
            total_pages = 1 if total else 0
            start = 0
            visible = list(rows)
        return BrowserView(
            visible_records=list(visible),
            total_filtered=total,
            total_pages=total_pages,
            current_page=state.page_index,
            page_size=state.page_size,
            first_row=start + 1 if visible else 0,
            last_row=start + len(visible) if visible else 0,
            sort_key=state.sort_key,
            sort_direction=state.sort_direction,
            search_term=state.search_term,
        )

    def page_window(self, width: int = 5) -> List[int]:
        """Page numbers shown by the pager, centred on the current page."""
        total_pages = self._total_pages()
        first = self._state.page_index - width // 2
        return [p for p in range(first, first + width) if 0 <= p < total_pages]

    def sort_indicator(self, key: str) -> Optional[str]:
        if self.sortable and key == self._state.sort_key:
            return self._state.sort_direction
        return None

    # -------------------------------------------------------------- internals

    def _total_pages(self) -> int:
        total = len(self._filtered())
        if not self.paginated:
            return 1 if total else 0
        return math.ceil(total / self._state.page_size)

    def _last_page_index(self) -> int:
        return max(0, self._total_pages() - 1)

    def _filtered(self) -> List[Record]:
        term = self._state.search_term.lower() if self.searchable else ""
        if self._filtered_cache is not None and self._filtered_cache[0] == term:
            return self._filtered_cache[1]
        if term:
            rows = [r for r in self._records if any(term in search_text(v) for v in r.values())]
        else:
            rows = list(self._records)
        self._filtered_cache = (term, rows)
        return rows

    def _sorted(self) -> List[Record]:
        rows = self._filtered()
        key = self._state.sort_key if self.sortable else None
        cache_key = (self._filtered_cache[0] if self._filtered_cache else "", key, self._state.sort_direction)
        if self._sorted_cache is not None and self._sorted_cache[0] == cache_key:
            return self._sorted_cache[1]
        if key is None:
            ordered = rows
        else:
            # sorted() keeps ties in input order for reverse=True as well.
            ordered = sorted(
                rows,
                key=lambda r: sort_key_for(r.get(key)),
                reverse=self._state.sort_direction == "desc",
            )
        self._sorted_cache = (cache_key, ordered)
        return ordered
