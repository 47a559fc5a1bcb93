from __future__ import annotations

from ptcdash.filters import (
    BrowseParams,
    DashboardFilters,
    Thresholds,
    normalize_browse_params,
    normalize_filters,
)


def test_normalize_filters_defaults():
    assert normalize_filters({}) == DashboardFilters()


def test_normalize_filters_clamps_and_cleans():
    filt = normalize_filters(
        {
            "top_n": "500",
            "selected_locomotives": [" MARC 21 ", "", None, "MARC 80"],
            "thresholds": {"ptc_target_pct": "92.5"},
        }
    )
    assert filt.top_n == 48
    assert filt.selected_locomotives == ["MARC 21", "MARC 80"]
    assert filt.thresholds == Thresholds(ptc_target_pct=92.5)


def test_normalize_filters_bad_top_n_falls_back():
    assert normalize_filters({"top_n": "lots"}).top_n == 10
    assert normalize_filters({"top_n": 0}).top_n == 1


def test_normalize_browse_params():
    params = normalize_browse_params(
        {"q": "  805 ", "sort_key": " ", "sort_direction": "DESC", "page": -2, "page_size": "25"}
    )
    assert params == BrowseParams(q="805", sort_key=None, sort_direction="desc", page=0, page_size=25)


def test_normalize_browse_params_unknown_direction_and_bad_numbers():
    params = normalize_browse_params({"sort_key": "miles", "sort_direction": "up", "page": "x", "page_size": None})
    assert params.sort_key == "miles"
    assert params.sort_direction == "asc"
    assert params.page == 0
    assert params.page_size == 10


def test_normalize_browse_params_keeps_non_positive_page_size():
    assert normalize_browse_params({"page_size": 0}).page_size == 0
