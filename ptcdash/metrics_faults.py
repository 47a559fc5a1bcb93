from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import pandas as pd

from ptcdash.aggregator import bucket_records, distribute, ranking_records, top_n
from ptcdash.charts import distribution_pie_chart, ranking_bar_chart
from ptcdash.columns import Record
from ptcdash.data import SEVERITY_LEVELS
from ptcdash.filters import DashboardFilters


def fault_type(record: Record) -> str:
    """Fault type from a ``"<type> on <locomotive>"`` description."""
    return str(record.get("description") or "").rsplit(" on ", 1)[0]


def _counts_by(df: pd.DataFrame, column: str) -> List[Dict[str, Any]]:
    # sort=False keeps first-appearance order so ranking ties stay deterministic.
    counts = df.groupby(column, sort=False).size()
    return [{"name": str(k), "count": int(v)} for k, v in counts.items()]


def compute_faults(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    faults: List[Record] = ctx.get("filtered_faults", []) or []
    df = pd.DataFrame(faults)

    if df.empty:
        kpis = {"total_faults": 0, "open_faults": 0, "resolved_faults": 0, "critical_open": 0, "resolved_rate": None}
        by_locomotive: List[Dict[str, Any]] = []
        by_type: List[Dict[str, Any]] = []
    else:
        resolved = df["resolved"].astype(bool)
        kpis = {
            "total_faults": int(len(df)),
            "open_faults": int((~resolved).sum()),
            "resolved_faults": int(resolved.sum()),
            "critical_open": int(((df["severity"] == "Critical") & ~resolved).sum()),
            "resolved_rate": float(resolved.mean()),
        }
        by_locomotive = _counts_by(df, "locomotive")
        df = df.assign(fault_type=[fault_type(r) for r in faults])
        by_type = _counts_by(df, "fault_type")

    severity = distribute(faults, lambda r: str(r.get("severity")), SEVERITY_LEVELS)
    top_locos = top_n(by_locomotive, lambda r: r["count"], lambda r: r["name"], filters.top_n)
    top_types = top_n(by_type, lambda r: r["count"], lambda r: r["name"], filters.top_n)

    return {
        "filters": asdict(filters),
        "kpis": kpis,
        "severity_distribution": bucket_records(severity),
        "top_locomotives_by_faults": ranking_records(top_locos),
        "top_fault_types": ranking_records(top_types),
        "charts": {
            "severity": distribution_pie_chart(severity, title="Fault Severity"),
            "top_locomotives_by_faults": ranking_bar_chart(
                top_locos, value_title="Faults", color="#ef4444", value_format=","
            ),
            "top_fault_types": ranking_bar_chart(top_types, value_title="Faults", color="#f59e0b", value_format=","),
        },
    }
