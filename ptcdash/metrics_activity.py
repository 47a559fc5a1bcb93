from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from ptcdash.aggregator import bucket_records, distribute, ranking_records, top_n
from ptcdash.charts import distribution_pie_chart, hourly_activity_chart, ranking_bar_chart
from ptcdash.columns import Record
from ptcdash.data import EVENT_TYPES
from ptcdash.filters import DashboardFilters


def compute_activity(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    hourly = pd.DataFrame(ctx.get("hourly", []) or [])
    routes: List[Record] = ctx.get("filtered_routes", []) or []
    geographic: List[Record] = ctx.get("filtered_geographic", []) or []

    totals: Dict[str, Any] = {"active_runs": 0, "total_miles": 0.0, "ptc_active_miles": 0.0, "faults": 0, "enforcements": 0}
    peak_hour = None
    if not hourly.empty:
        totals = {
            "active_runs": int(hourly["active_runs"].sum()),
            "total_miles": round(float(hourly["total_miles"].sum()), 2),
            "ptc_active_miles": round(float(hourly["ptc_active_miles"].sum()), 2),
            "faults": int(hourly["faults"].sum()),
            "enforcements": int(hourly["enforcements"].sum()),
        }
        peak_hour = int(hourly.loc[hourly["active_runs"].idxmax(), "hour"])

    def route_name(r: Record) -> str:
        return str(r.get("route_name"))

    routes_by_miles = top_n(routes, lambda r: float(r.get("total_miles") or 0), route_name, filters.top_n)
    routes_by_ptc = top_n(
        routes, lambda r: float(r.get("ptc_active_percentage") or 0), route_name, filters.top_n, "bottom"
    )
    events = distribute(geographic, lambda r: str(r.get("event_type")), EVENT_TYPES)

    return {
        "filters": asdict(filters),
        "hourly_totals": totals,
        "peak_hour": peak_hour,
        "hourly": hourly.to_dict(orient="records"),
        "routes_by_miles": ranking_records(routes_by_miles),
        "routes_bottom_by_ptc_percentage": ranking_records(routes_by_ptc),
        "event_type_distribution": bucket_records(events),
        "charts": {
            "hourly_activity": hourly_activity_chart(hourly),
            "routes_by_miles": ranking_bar_chart(routes_by_miles, value_title="Miles"),
            "routes_bottom_by_ptc_percentage": ranking_bar_chart(
                routes_by_ptc, value_title="PTC Active %", color="#ef4444"
            ),
            "event_types": distribution_pie_chart(events, title="Geographic Events"),
        },
    }
