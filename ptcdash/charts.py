from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

import altair as alt
import pandas as pd

from ptcdash.aggregator import Bucket, RankingEntry, bucket_records, ranking_records

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def ranking_bar_chart(
    entries: Sequence[RankingEntry],
    *,
    value_title: str,
    color: str = "#2563eb",
    value_format: str = ",.2f",
) -> Optional[Dict[str, Any]]:
    if not entries:
        return None
    df = pd.DataFrame(ranking_records(entries))
    # Preserve ranking order on the axis instead of alphabetical.
    df["rank"] = range(1, len(df) + 1)
    chart = (
        alt.Chart(df)
        .mark_bar(color=color)
        .encode(
            x=alt.X("name:N", title=None, sort=alt.EncodingSortField(field="rank", order="ascending")),
            y=alt.Y("value:Q", title=value_title),
            tooltip=[alt.Tooltip("name:N", title="Name"), alt.Tooltip("value:Q", title=value_title, format=value_format)],
        )
    )
    return to_vega_spec(chart)


def distribution_pie_chart(buckets: Sequence[Bucket], *, title: str) -> Optional[Dict[str, Any]]:
    if not buckets or not any(b.count for b in buckets):
        return None
    df = pd.DataFrame(bucket_records(buckets))
    order = [b.label for b in buckets]
    chart = (
        alt.Chart(df, title=title)
        .mark_arc(innerRadius=40)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color("label:N", title=None, sort=order),
            tooltip=[
                alt.Tooltip("label:N", title="Bucket"),
                alt.Tooltip("count:Q", title="Count", format=","),
                alt.Tooltip("share:Q", title="Share", format=".1%"),
            ],
        )
    )
    return to_vega_spec(chart)


def hourly_activity_chart(hourly: pd.DataFrame) -> Optional[Dict[str, Any]]:
    if hourly.empty:
        return None
    base = alt.Chart(hourly).encode(x=alt.X("hour:O", title="Hour"))
    miles = base.transform_fold(["total_miles", "ptc_active_miles"], as_=["series", "miles"]).mark_line(point=True).encode(
        y=alt.Y("miles:Q", title="Miles"),
        color=alt.Color("series:N", title="Series"),
        tooltip=["hour", alt.Tooltip("series:N", title="Series"), alt.Tooltip("miles:Q", title="Miles", format=",.2f")],
    )
    faults = base.mark_bar(color="#ef4444", opacity=0.4).encode(
        y=alt.Y("faults:Q", title="Faults", axis=alt.Axis(orient="right")),
        tooltip=["hour", alt.Tooltip("faults:Q", title="Faults")],
    )
    return to_vega_spec(alt.layer(faults, miles).resolve_scale(y="independent"))
