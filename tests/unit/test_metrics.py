from __future__ import annotations

import pytest

from ptcdash.data import DEFAULT_SEED, generate_dashboard_data, prepare_context
from ptcdash.filters import DashboardFilters, Thresholds
from ptcdash.metrics_activity import compute_activity
from ptcdash.metrics_faults import compute_faults, fault_type
from ptcdash.metrics_overview import PTC_BIN_LABELS, RUN_COUNT_LABELS, compute_overview


@pytest.fixture(scope="module")
def data_ctx():
    return generate_dashboard_data(DEFAULT_SEED)


def _ctx(locomotives, initializations=()):
    return {
        "filtered_locomotives": list(locomotives),
        "filtered_initializations": list(initializations),
        "report_date": "2025-02-26",
    }


def test_overview_kpis_from_locomotives():
    locos = [
        {"id": "MARC 11", "runs": 2, "miles": 100.0, "ptc_active_miles": 90.0, "ptc_active_percentage": 90.0,
         "faults": 3, "enforcements": 1, "initializations": 2, "cut_out_trips": 0},
        {"id": "MARC 17", "runs": 5, "miles": 300.0, "ptc_active_miles": 297.0, "ptc_active_percentage": 99.0,
         "faults": 1, "enforcements": 0, "initializations": 1, "cut_out_trips": 2},
    ]
    inits = [{"status": "Successful"}, {"status": "Failed"}, {"status": "Successful"}, {"status": "Incomplete"}]
    payload = compute_overview(DashboardFilters(top_n=1), _ctx(locos, inits))
    kpis = payload["kpis"]
    assert kpis["total_runs"] == 7
    assert kpis["total_miles"] == 400.0
    assert kpis["total_ptc_active_miles"] == 387.0
    assert kpis["ptc_active_percentage"] == 96.75
    assert (kpis["total_enforcements"], kpis["total_faults"], kpis["total_cut_out_trips"]) == (1, 4, 2)
    assert kpis["initialization_success_rate"] == 0.5

    assert payload["rankings"]["top_by_miles"] == [{"name": "MARC 17", "value": 300.0}]
    assert payload["rankings"]["bottom_by_ptc_percentage"] == [{"name": "MARC 11", "value": 90.0}]

    ptc = {b["label"]: b["count"] for b in payload["distributions"]["ptc_percentage"]}
    assert ptc == {"<90%": 0, "90-95%": 1, "95-97%": 0, "97-99%": 0, "99-100%": 1}
    runs = {b["label"]: b["count"] for b in payload["distributions"]["run_count"]}
    assert runs["2 runs"] == 1 and runs["5+ runs"] == 1
    inits_dist = [(b["label"], b["count"]) for b in payload["distributions"]["initialization_status"]]
    assert inits_dist == [("Successful", 2), ("Failed", 1), ("Incomplete", 1)]
    assert payload["filters"]["top_n"] == 1


def test_overview_on_generated_data(data_ctx):
    filt = DashboardFilters()
    payload = compute_overview(filt, prepare_context(filt, data_ctx))
    assert len(payload["rankings"]["top_by_miles"]) == 10
    values = [e["value"] for e in payload["rankings"]["top_by_miles"]]
    assert values == sorted(values, reverse=True)
    assert [b["label"] for b in payload["distributions"]["ptc_percentage"]] == list(PTC_BIN_LABELS)
    assert [b["label"] for b in payload["distributions"]["run_count"]] == list(RUN_COUNT_LABELS)
    assert sum(b["count"] for b in payload["distributions"]["run_count"]) == 48
    assert sum(b["count"] for b in payload["distributions"]["initialization_status"]) == 162
    assert payload["kpis"]["total_faults"] == 100
    assert payload["kpis"]["total_initializations"] == 162
    assert payload["insights"]
    assert payload["charts"]["top_by_miles"]["mark"]["type"] == "bar"


def test_overview_insights_flag_low_ptc():
    locos = [{"id": "MARC 8058", "runs": 1, "miles": 100.0, "ptc_active_miles": 85.1, "ptc_active_percentage": 85.1}]
    payload = compute_overview(DashboardFilters(thresholds=Thresholds()), _ctx(locos))
    types = {i["insight_type"]: i for i in payload["insights"]}
    assert types["PTC Coverage"]["severity"] == "high"
    assert "MARC 8058" in types["Low PTC Locomotive"]["message"]


def test_overview_empty_context():
    payload = compute_overview(DashboardFilters(), _ctx([]))
    assert payload["kpis"]["total_runs"] == 0
    assert payload["kpis"]["ptc_active_percentage"] is None
    assert payload["rankings"]["top_by_runs"] == []
    assert all(b["count"] == 0 for b in payload["distributions"]["ptc_percentage"])
    assert payload["insights"] == []
    assert payload["charts"]["ptc_percentage"] is None


def test_fault_type_from_description():
    assert fault_type({"description": "GPS Signal Loss on MARC 21"}) == "GPS Signal Loss"


def test_compute_faults():
    faults = [
        {"locomotive": "MARC 21", "description": "GPS Signal Loss on MARC 21", "severity": "Critical", "resolved": False},
        {"locomotive": "MARC 80", "description": "GPS Signal Loss on MARC 80", "severity": "Low", "resolved": True},
        {"locomotive": "MARC 21", "description": "Hardware Failure on MARC 21", "severity": "Critical", "resolved": True},
    ]
    payload = compute_faults(DashboardFilters(top_n=5), {"filtered_faults": faults})
    assert payload["kpis"] == {
        "total_faults": 3,
        "open_faults": 1,
        "resolved_faults": 2,
        "critical_open": 1,
        "resolved_rate": pytest.approx(2 / 3),
    }
    severity = {b["label"]: b["count"] for b in payload["severity_distribution"]}
    assert severity == {"Low": 1, "Medium": 0, "High": 0, "Critical": 2}
    assert payload["top_locomotives_by_faults"] == [{"name": "MARC 21", "value": 2}, {"name": "MARC 80", "value": 1}]
    assert payload["top_fault_types"][0] == {"name": "GPS Signal Loss", "value": 2}


def test_compute_faults_empty():
    payload = compute_faults(DashboardFilters(), {})
    assert payload["kpis"]["total_faults"] == 0
    assert payload["top_fault_types"] == []


def test_compute_activity(data_ctx):
    filt = DashboardFilters(top_n=3)
    payload = compute_activity(filt, prepare_context(filt, data_ctx))
    assert payload["hourly_totals"]["faults"] == 100
    assert payload["hourly_totals"]["enforcements"] == 3
    assert 0 <= payload["peak_hour"] < 24
    assert len(payload["routes_by_miles"]) == 3
    ptc = [e["value"] for e in payload["routes_bottom_by_ptc_percentage"]]
    assert ptc == sorted(ptc)
    assert sum(b["count"] for b in payload["event_type_distribution"]) == 100
    assert payload["charts"]["hourly_activity"] is not None


def test_compute_activity_empty():
    payload = compute_activity(DashboardFilters(), {})
    assert payload["peak_hour"] is None
    assert payload["hourly"] == []
    assert payload["charts"]["hourly_activity"] is None


def test_compute_activity_hourly_faults_follow_selection(data_ctx):
    selected = data_ctx["faults"][0]["locomotive"]
    filt = DashboardFilters(selected_locomotives=[selected])
    ctx = prepare_context(filt, data_ctx)
    payload = compute_activity(filt, ctx)
    assert payload["hourly_totals"]["faults"] == len(ctx["filtered_faults"])
    assert payload["hourly_totals"]["faults"] < 100
