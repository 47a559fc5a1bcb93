# tests/api/test_datasets_api.py
"""Integration tests for /meta/datasets, /datasets/{name}/view and /export/{name}."""

from __future__ import annotations

import io

import pandas as pd


def test_meta_datasets(client):
    r = client.get("/meta/datasets")
    assert r.status_code == 200
    body = r.json()
    names = [d["name"] for d in body["datasets"]]
    assert names == ["locomotives", "faults", "hourly", "routes", "initializations", "geographic"]
    assert body["page_size_options"] == [5, 10, 25, 50, 100]
    loco = body["datasets"][0]
    assert {"key": "ptc_active_percentage", "header": "PTC Active %"} in loco["columns"]


def test_view_default_page(client):
    r = client.post("/datasets/locomotives/view", json={})
    assert r.status_code == 200
    body = r.json()
    view = body["view"]
    assert view["total_filtered"] == 48
    assert view["total_pages"] == 5
    assert view["current_page"] == 0
    assert len(view["visible_records"]) == 10
    assert (view["first_row"], view["last_row"]) == (1, 10)
    assert len(body["rows"]) == 10
    assert body["page_window"] == [0, 1, 2]


def test_view_search_sort_and_page(client):
    r = client.post(
        "/datasets/locomotives/view",
        json={"q": "805", "sort_key": "id", "sort_direction": "desc", "page_size": 5, "page": 1},
    )
    assert r.status_code == 200
    body = r.json()
    view = body["view"]
    assert view["total_filtered"] == 10
    assert view["current_page"] == 1
    assert [rec["id"] for rec in view["visible_records"]] == [f"MARC {n}" for n in range(8054, 8049, -1)]
    assert body["sort_indicators"]["id"] == "desc"
    assert body["sort_indicators"]["miles"] is None


def test_view_page_is_clamped(client):
    r = client.post("/datasets/hourly/view", json={"page": 50, "page_size": 10})
    assert r.status_code == 200
    assert r.json()["view"]["current_page"] == 2


def test_view_invalid_page_size_is_400(client):
    r = client.post("/datasets/faults/view", json={"page_size": 0})
    assert r.status_code == 400
    assert r.json()["type"] == "InvalidPageSize"


def test_view_unknown_dataset_is_404(client):
    r = client.post("/datasets/trains/view", json={})
    assert r.status_code == 404
    assert r.json()["type"] == "UnknownDataset"


def test_export_returns_all_filtered_rows(client):
    r = client.post("/export/faults", json={"q": "critical", "page_size": 5})
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "ptc_faults.csv" in r.headers["content-disposition"]
    df = pd.read_csv(io.BytesIO(r.content))
    assert list(df.columns) == ["Locomotive", "Time", "Fault Code", "Description", "Severity", "Status"]
    assert len(df) > 5
    assert set(df["Severity"]) == {"Critical"}


def test_export_unknown_dataset_is_404(client):
    r = client.post("/export/trains", json={})
    assert r.status_code == 404
