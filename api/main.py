from __future__ import annotations

from dataclasses import asdict
import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from api.schemas import BrowseParamsModel, DashboardFiltersModel, DatasetMeta, RefreshRequest
from ptcdash.browser import RecordBrowser
from ptcdash.columns import column_headers, display_rows
from ptcdash.data import load_dashboard_data, prepare_context, refresh_dashboard_data, DATASET_NAMES
from ptcdash.datasets import DATASETS, get_dataset, make_browser
from ptcdash.errors import UnknownDataset
from ptcdash.export import to_csv_bytes
from ptcdash.filters import PAGE_SIZE_OPTIONS, DashboardFilters, normalize_browse_params, normalize_filters
from ptcdash.metrics_activity import compute_activity
from ptcdash.metrics_faults import compute_faults
from ptcdash.metrics_overview import compute_overview


app = FastAPI(title="PTC Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    if isinstance(exc, UnknownDataset):
        status_code = 404
    elif isinstance(exc, ValueError):
        status_code = 400
    else:
        status_code = 500
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _browser_for(name: str, params: BrowseParamsModel) -> RecordBrowser:
    """Fresh browser over the cached dataset with the request's view state applied."""
    data_ctx = load_dashboard_data()
    browser = make_browser(name, data_ctx)
    browse = normalize_browse_params(params.model_dump())
    browser.set_page_size(browse.page_size)
    browser.set_search_term(browse.q)
    if browse.sort_key:
        browser.sort_by(browse.sort_key, browse.sort_direction)
    browser.set_page(browse.page)
    return browser


@app.get("/meta/datasets")
def meta_datasets():
    try:
        datasets = [
            DatasetMeta(name=spec.name, label=spec.label, columns=column_headers(spec.columns)).model_dump()
            for spec in DATASETS.values()
        ]
        return _json({"datasets": datasets, "page_size_options": list(PAGE_SIZE_OPTIONS)})
    except Exception as exc:
        logger.exception("meta_datasets failed")
        return _error(exc)


@app.post("/overview")
def overview(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        filt = _filters_from_model(filters)
        ctx = prepare_context(filt, data_ctx)
        return _json(compute_overview(filt, ctx))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/faults")
def faults(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        filt = _filters_from_model(filters)
        ctx = prepare_context(filt, data_ctx)
        return _json(compute_faults(filt, ctx))
    except Exception as exc:
        logger.exception("faults failed")
        return _error(exc)


@app.post("/activity")
def activity(filters: DashboardFiltersModel):
    try:
        data_ctx = load_dashboard_data()
        filt = _filters_from_model(filters)
        ctx = prepare_context(filt, data_ctx)
        return _json(compute_activity(filt, ctx))
    except Exception as exc:
        logger.exception("activity failed")
        return _error(exc)


@app.post("/datasets/{name}/view")
def dataset_view(name: str, params: BrowseParamsModel):
    try:
        browser = _browser_for(name, params)
        view = browser.get_view()
        spec = get_dataset(name)
        return _json(
            {
                "dataset": name,
                "label": spec.label,
                "columns": column_headers(spec.columns),
                "view": asdict(view),
                "rows": display_rows(view.visible_records, spec.columns),
                "page_window": browser.page_window(),
                "sort_indicators": {c.key: browser.sort_indicator(c.key) for c in spec.columns},
                "page_size_options": list(PAGE_SIZE_OPTIONS),
            }
        )
    except Exception as exc:
        logger.exception("dataset_view failed")
        return _error(exc)


@app.post("/export/{name}")
def export_dataset(name: str, params: BrowseParamsModel):
    try:
        browser = _browser_for(name, params)
        csv_bytes = to_csv_bytes(browser)
    except Exception as exc:
        logger.exception("export_dataset failed")
        return _error(exc)
    filename = f"ptc_{name}.csv"
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})


@app.post("/refresh")
def refresh(request: Optional[RefreshRequest] = None):
    try:
        data_ctx = refresh_dashboard_data(request.seed if request is not None else None)
        counts = {name: len(data_ctx.get(name, []) or []) for name in DATASET_NAMES}
        return _json({"seed": data_ctx.get("seed"), "report_date": data_ctx.get("report_date"), "counts": counts})
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)
