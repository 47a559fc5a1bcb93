from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from ptcdash.browser import DEFAULT_PAGE_SIZE, SORT_DIRECTIONS

PAGE_SIZE_OPTIONS = (5, 10, 25, 50, 100)
TOP_N_MAX = 48


@dataclass(frozen=True)
class Thresholds:
    ptc_target_pct: float = 95.0
    ptc_healthy_pct: float = 97.0
    init_success_target: float = 0.8


@dataclass(frozen=True)
class DashboardFilters:
    top_n: int = 10
    selected_locomotives: List[str] = field(default_factory=list)
    thresholds: Thresholds = field(default_factory=Thresholds)


@dataclass(frozen=True)
class BrowseParams:
    q: str = ""
    sort_key: Optional[str] = None
    sort_direction: str = "asc"
    page: int = 0
    page_size: int = DEFAULT_PAGE_SIZE


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def normalize_filters(raw: dict) -> DashboardFilters:
    top_n = max(1, min(TOP_N_MAX, _as_int(raw.get("top_n", 10), 10)))

    t = raw.get("thresholds") or {}
    thresholds = Thresholds(
        ptc_target_pct=float(t.get("ptc_target_pct", 95.0)),
        ptc_healthy_pct=float(t.get("ptc_healthy_pct", 97.0)),
        init_success_target=float(t.get("init_success_target", 0.8)),
    )
    return DashboardFilters(
        top_n=top_n,
        selected_locomotives=_as_str_list(raw.get("selected_locomotives")),
        thresholds=thresholds,
    )


def normalize_browse_params(raw: dict) -> BrowseParams:
    """Coerce raw request values into ``BrowseParams``.

    Unparseable numbers fall back to defaults, but a parseable non-positive
    ``page_size`` is kept so the browser can reject it.
    """
    direction = str(raw.get("sort_direction") or "asc").strip().lower()
    if direction not in SORT_DIRECTIONS:
        direction = "asc"
    sort_key = (raw.get("sort_key") or "").strip() or None
    return BrowseParams(
        q=(raw.get("q") or "").strip(),
        sort_key=sort_key,
        sort_direction=direction,
        page=max(0, _as_int(raw.get("page", 0), 0)),
        page_size=_as_int(raw.get("page_size", DEFAULT_PAGE_SIZE), DEFAULT_PAGE_SIZE),
    )
