from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

from ptcdash.aggregator import (
    Bucket,
    RankingEntry,
    bin_classifier,
    bucket_records,
    distribute,
    ranking_records,
    top_n,
)
from ptcdash.charts import distribution_pie_chart, ranking_bar_chart
from ptcdash.columns import Record
from ptcdash.data import INIT_STATUSES
from ptcdash.filters import DashboardFilters, Thresholds

PTC_BIN_EDGES = (90.0, 95.0, 97.0, 99.0)
PTC_BIN_LABELS = ("<90%", "90-95%", "95-97%", "97-99%", "99-100%")
RUN_COUNT_LABELS = ("1 run", "2 runs", "3 runs", "4 runs", "5+ runs")


def _num(record: Record, key: str) -> float:
    value = record.get(key)
    return float(value) if value is not None else 0.0


def _run_count_label(record: Record) -> str:
    runs = int(_num(record, "runs"))
    if runs <= 1:
        return "1 run"
    if runs >= 5:
        return "5+ runs"
    return f"{runs} runs"


ptc_percentage_bin = bin_classifier(lambda r: _num(r, "ptc_active_percentage"), PTC_BIN_EDGES, PTC_BIN_LABELS)


def _sum(records: Sequence[Record], key: str) -> float:
    return sum(_num(r, key) for r in records)


def compute_kpis(locomotives: Sequence[Record], initializations: Sequence[Record]) -> Dict[str, Any]:
    total_miles = _sum(locomotives, "miles")
    ptc_miles = _sum(locomotives, "ptc_active_miles")
    successful = sum(1 for r in initializations if r.get("status") == "Successful")
    return {
        "locomotive_count": len(locomotives),
        "total_runs": int(_sum(locomotives, "runs")),
        "total_miles": round(total_miles, 2),
        "total_ptc_active_miles": round(ptc_miles, 2),
        "ptc_active_percentage": round(ptc_miles / total_miles * 100, 2) if total_miles else None,
        "total_enforcements": int(_sum(locomotives, "enforcements")),
        "total_faults": int(_sum(locomotives, "faults")),
        "total_initializations": int(_sum(locomotives, "initializations")),
        "total_cut_out_trips": int(_sum(locomotives, "cut_out_trips")),
        "initialization_success_rate": (successful / len(initializations)) if initializations else None,
    }


def _leaders(entries: Sequence[RankingEntry]) -> List[RankingEntry]:
    if not entries:
        return []
    best = entries[0].value
    return [e for e in entries if e.value == best]


def compute_insights(
    kpis: Dict[str, Any],
    locomotives: Sequence[Record],
    rankings: Dict[str, List[RankingEntry]],
    init_buckets: Sequence[Bucket],
    thresholds: Thresholds,
) -> List[Dict[str, str]]:
    insights: List[Dict[str, str]] = []
    if not locomotives:
        return insights

    pct = kpis.get("ptc_active_percentage")
    if pct is not None:
        below = pct < thresholds.ptc_target_pct
        insights.append(
            {
                "insight_type": "PTC Coverage",
                "severity": "high" if below else "info",
                "message": f"Overall PTC system performance is {'below target' if below else 'high'} "
                f"with {pct:.2f}% PTC active miles across all runs.",
                "action": "Review cut-out trips and onboard equipment health." if below else "",
            }
        )

    bottom = rankings.get("bottom_by_ptc_percentage") or []
    if bottom and bottom[0].value < thresholds.ptc_target_pct:
        worst = bottom[0]
        insights.append(
            {
                "insight_type": "Low PTC Locomotive",
                "severity": "high",
                "message": f"{worst.name} has the lowest PTC active percentage at {worst.value:.2f}%, "
                "indicating potential issues.",
                "action": f"Inspect the PTC onboard segment on {worst.name}.",
            }
        )

    healthy = sum(1 for r in locomotives if _num(r, "ptc_active_percentage") > thresholds.ptc_healthy_pct)
    insights.append(
        {
            "insight_type": "Fleet Health",
            "severity": "info",
            "message": f"{healthy} out of {len(locomotives)} locomotives maintain PTC active percentages "
            f"above {thresholds.ptc_healthy_pct:g}%.",
            "action": "",
        }
    )

    insights.append(
        {
            "insight_type": "Enforcements",
            "severity": "medium" if kpis["total_enforcements"] else "info",
            "message": f"{kpis['total_enforcements']} enforcements occurred during this reporting period.",
            "action": "Debrief crews involved in enforcements." if kpis["total_enforcements"] else "",
        }
    )

    if kpis["total_faults"]:
        insights.append(
            {
                "insight_type": "Faults",
                "severity": "medium",
                "message": f"There were {kpis['total_faults']:,} total faults recorded, "
                "indicating areas for potential system improvements.",
                "action": "Prioritize open critical faults.",
            }
        )

    rate = kpis.get("initialization_success_rate")
    if rate is not None:
        counts = {b.label: b.count for b in init_buckets}
        low = rate < thresholds.init_success_target
        insights.append(
            {
                "insight_type": "Initializations",
                "severity": "medium" if low else "info",
                "message": f"Initialization success rate is {rate:.2%}, with {counts.get('Failed', 0)} failed "
                f"and {counts.get('Incomplete', 0)} incomplete initializations.",
                "action": "Check wayside and back-office connectivity at terminals." if low else "",
            }
        )

    runs_leaders = _leaders(rankings.get("top_by_runs") or [])
    if runs_leaders:
        names = " and ".join(e.name for e in runs_leaders)
        insights.append(
            {
                "insight_type": "Utilization",
                "severity": "info",
                "message": f"{names} had the highest number of runs ({int(runs_leaders[0].value)}).",
                "action": "",
            }
        )

    top_miles = rankings.get("top_by_miles") or []
    if top_miles:
        leader = top_miles[0]
        pct_by_id = {str(r.get("id")): _num(r, "ptc_active_percentage") for r in locomotives}
        insights.append(
            {
                "insight_type": "Mileage",
                "severity": "info",
                "message": f"{leader.name} traveled the most miles ({leader.value:.2f}) with a PTC active "
                f"percentage of {pct_by_id.get(leader.name, 0.0):.2f}%.",
                "action": "",
            }
        )
    return insights


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    locomotives: List[Record] = ctx.get("filtered_locomotives", []) or []
    initializations: List[Record] = ctx.get("filtered_initializations", []) or []
    n = filters.top_n

    def loco_id(r: Record) -> str:
        return str(r.get("id"))

    rankings = {
        "top_by_miles": top_n(locomotives, lambda r: _num(r, "miles"), loco_id, n, "top"),
        "top_by_runs": top_n(locomotives, lambda r: _num(r, "runs"), loco_id, n, "top"),
        "bottom_by_ptc_percentage": top_n(
            locomotives, lambda r: _num(r, "ptc_active_percentage"), loco_id, n, "bottom"
        ),
    }
    distributions = {
        "ptc_percentage": distribute(locomotives, ptc_percentage_bin, PTC_BIN_LABELS),
        "run_count": distribute(locomotives, _run_count_label, RUN_COUNT_LABELS),
        "initialization_status": distribute(
            initializations, lambda r: str(r.get("status")), INIT_STATUSES
        ),
    }
    kpis = compute_kpis(locomotives, initializations)
    insights = compute_insights(
        kpis, locomotives, rankings, distributions["initialization_status"], filters.thresholds
    )

    charts: Dict[str, Optional[Dict[str, Any]]] = {
        "top_by_miles": ranking_bar_chart(rankings["top_by_miles"], value_title="Miles"),
        "top_by_runs": ranking_bar_chart(
            rankings["top_by_runs"], value_title="Runs", color="#16a34a", value_format=","
        ),
        "bottom_by_ptc_percentage": ranking_bar_chart(
            rankings["bottom_by_ptc_percentage"], value_title="PTC Active %", color="#ef4444"
        ),
        "ptc_percentage": distribution_pie_chart(
            distributions["ptc_percentage"], title="PTC Active Percentage Distribution"
        ),
        "run_count": distribution_pie_chart(distributions["run_count"], title="Run Count Distribution"),
        "initialization_status": distribution_pie_chart(
            distributions["initialization_status"], title="Initialization Distribution"
        ),
    }

    return {
        "filters": asdict(filters),
        "report_date": ctx.get("report_date"),
        "kpis": kpis,
        "rankings": {k: ranking_records(v) for k, v in rankings.items()},
        "distributions": {k: bucket_records(v) for k, v in distributions.items()},
        "insights": insights,
        "charts": charts,
    }
