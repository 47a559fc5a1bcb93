from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import pandas as pd

from ptcdash.browser import RecordBrowser
from ptcdash.columns import ColumnDescriptor, Record
from ptcdash.errors import UnknownDataset


@dataclass(frozen=True)
class DatasetSpec:
    name: str
    label: str
    columns: Tuple[ColumnDescriptor, ...]


def _fixed(key: str, digits: int = 2):
    def render(record: Record) -> str:
        value = record.get(key)
        if value is None or pd.isna(value):
            return ""
        return f"{float(value):.{digits}f}"

    return render


def _time_of_day(record: Record) -> str:
    value = record.get("timestamp")
    if not value:
        return ""
    return pd.Timestamp(value).strftime("%H:%M:%S")


def _hour_label(record: Record) -> str:
    return f"{int(record.get('hour', 0)):02d}:00"


def _duration_minutes(record: Record) -> str:
    return f"{float(record.get('duration') or 0) / 60:.1f} min"


def _joined_fault_codes(record: Record) -> str:
    return ", ".join(record.get("fault_codes") or []) or "None"


def _coordinates(record: Record) -> str:
    return f"{float(record['latitude']):.4f}, {float(record['longitude']):.4f}"


def _resolution(record: Record) -> str:
    return "Resolved" if record.get("resolved") else "Open"


def _route_locomotives(record: Record) -> str:
    return ", ".join(record.get("locomotives") or [])


DATASETS: Dict[str, DatasetSpec] = {
    spec.name: spec
    for spec in (
        DatasetSpec(
            name="locomotives",
            label="Locomotive Performance",
            columns=(
                ColumnDescriptor("id", "Locomotive"),
                ColumnDescriptor("runs", "Runs"),
                ColumnDescriptor("miles", "Miles", _fixed("miles")),
                ColumnDescriptor("ptc_active_miles", "PTC Active Miles", _fixed("ptc_active_miles")),
                ColumnDescriptor("ptc_active_percentage", "PTC Active %", _fixed("ptc_active_percentage")),
                ColumnDescriptor("faults", "Faults"),
                ColumnDescriptor("enforcements", "Enforcements"),
                ColumnDescriptor("initializations", "Initializations"),
                ColumnDescriptor("cut_out_trips", "Cut-Out Trips"),
            ),
        ),
        DatasetSpec(
            name="faults",
            label="Fault Log",
            columns=(
                ColumnDescriptor("locomotive", "Locomotive"),
                ColumnDescriptor("timestamp", "Time", _time_of_day),
                ColumnDescriptor("fault_code", "Fault Code"),
                ColumnDescriptor("description", "Description"),
                ColumnDescriptor("severity", "Severity"),
                ColumnDescriptor("resolved", "Status", _resolution),
            ),
        ),
        DatasetSpec(
            name="hourly",
            label="Hourly Activity",
            columns=(
                ColumnDescriptor("hour", "Hour", _hour_label),
                ColumnDescriptor("active_runs", "Active Runs"),
                ColumnDescriptor("total_miles", "Total Miles", _fixed("total_miles")),
                ColumnDescriptor("ptc_active_miles", "PTC Active Miles", _fixed("ptc_active_miles")),
                ColumnDescriptor("faults", "Faults"),
                ColumnDescriptor("enforcements", "Enforcements"),
            ),
        ),
        DatasetSpec(
            name="routes",
            label="Route Performance",
            columns=(
                ColumnDescriptor("route_name", "Route"),
                ColumnDescriptor("locomotives", "Locomotives", _route_locomotives),
                ColumnDescriptor("total_runs", "Total Runs"),
                ColumnDescriptor("total_miles", "Total Miles", _fixed("total_miles")),
                ColumnDescriptor("ptc_active_percentage", "PTC Active %", _fixed("ptc_active_percentage")),
                ColumnDescriptor("faults", "Faults"),
            ),
        ),
        DatasetSpec(
            name="initializations",
            label="Initialization Logs",
            columns=(
                ColumnDescriptor("locomotive", "Locomotive"),
                ColumnDescriptor("timestamp", "Time", _time_of_day),
                ColumnDescriptor("status", "Status"),
                ColumnDescriptor("duration", "Duration", _duration_minutes),
                ColumnDescriptor("fault_codes", "Fault Codes", _joined_fault_codes),
            ),
        ),
        DatasetSpec(
            name="geographic",
            label="Geographic Events",
            columns=(
                ColumnDescriptor("event_type", "Event Type"),
                ColumnDescriptor("locomotive", "Locomotive"),
                ColumnDescriptor("timestamp", "Time", _time_of_day),
                ColumnDescriptor("coordinates", "Coordinates", _coordinates),
                ColumnDescriptor("details", "Details"),
            ),
        ),
    )
}


def get_dataset(name: str) -> DatasetSpec:
    try:
        return DATASETS[name]
    except KeyError:
        raise UnknownDataset(name, DATASETS.keys()) from None


def make_browser(name: str, data_ctx: Dict[str, Any], **options: Any) -> RecordBrowser:
    """Browser over one generated dataset using the registry's columns."""
    spec = get_dataset(name)
    return RecordBrowser(data_ctx.get(name, []) or [], spec.columns, **options)
