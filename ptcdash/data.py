from __future__ import annotations

import logging
from functools import lru_cache
from threading import Lock
from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from ptcdash.columns import Record
from ptcdash.filters import DashboardFilters, normalize_filters

logger = logging.getLogger(__name__)

DEFAULT_SEED = 20250226
REPORT_DATE = "2025-02-26"

FLEET_IDS = tuple(
    f"MARC {n}"
    for n in (
        [11, 17, 21, 32, 34, 80]
        + list(range(4910, 4913))
        + list(range(7757, 7762))
        + list(range(7820, 7832))
        + list(range(7849, 7856))
        + list(range(8045, 8060))
    )
)

FAULT_TYPES = (
    "Communication Loss",
    "GPS Signal Loss",
    "Brake Interface Error",
    "Speed Sensor Fault",
    "Track Database Error",
    "Initialization Failure",
    "Hardware Failure",
    "Software Exception",
    "Power Supply Issue",
)
SEVERITY_LEVELS = ("Low", "Medium", "High", "Critical")
INIT_STATUSES = ("Successful", "Failed", "Incomplete")
INIT_STATUS_WEIGHTS = (0.75, 0.11, 0.14)
EVENT_TYPES = ("Fault", "Enforcement", "Initialization", "CutOut")
ROUTE_NAMES = (
    "Penn Line",
    "Camden Line",
    "Brunswick Line",
    "Washington-Baltimore",
    "Baltimore-Perryville",
    "Washington-Martinsburg",
)

FAULT_SAMPLE_SIZE = 100
INIT_LOG_SIZE = 162
GEO_SAMPLE_SIZE = 100
# Events are scattered around central Maryland.
BASE_LAT = 39.0
BASE_LNG = -76.8

DATASET_NAMES = ("locomotives", "faults", "hourly", "routes", "initializations", "geographic")

_active_seed = DEFAULT_SEED
# Guards the active seed and the cache so a refresh swaps both together.
_DATA_LOCK: Lock = Lock()


def _timestamp(hour: int, minute: int) -> str:
    return f"{REPORT_DATE}T{int(hour):02d}:{int(minute):02d}:00"


def _timestamps(rng: np.random.Generator, size: int) -> List[str]:
    hours = rng.integers(0, 24, size=size)
    minutes = rng.integers(0, 60, size=size)
    return [_timestamp(h, m) for h, m in zip(hours, minutes)]


def _fault_codes(rng: np.random.Generator, size: int) -> List[str]:
    return [f"F{int(c)}" for c in rng.integers(0, 1000, size=size)]


def to_records(df: pd.DataFrame) -> List[Record]:
    if df.empty:
        return []
    return df.to_dict(orient="records")


def generate_faults(rng: np.random.Generator, fleet_ids: Sequence[str], size: int = FAULT_SAMPLE_SIZE) -> pd.DataFrame:
    locos = [str(x) for x in rng.choice(list(fleet_ids), size=size)]
    fault_types = [str(x) for x in rng.choice(FAULT_TYPES, size=size)]
    return pd.DataFrame(
        {
            "id": np.arange(1, size + 1),
            "locomotive": locos,
            "timestamp": _timestamps(rng, size),
            "fault_code": _fault_codes(rng, size),
            "description": [f"{t} on {loco}" for t, loco in zip(fault_types, locos)],
            "severity": [str(x) for x in rng.choice(SEVERITY_LEVELS, size=size)],
            "resolved": rng.random(size) > 0.3,
        }
    )


def generate_initialization_logs(
    rng: np.random.Generator, fleet_ids: Sequence[str], size: int = INIT_LOG_SIZE
) -> pd.DataFrame:
    statuses = [str(x) for x in rng.choice(INIT_STATUSES, size=size, p=INIT_STATUS_WEIGHTS)]
    fault_codes = [
        [] if status == "Successful" else _fault_codes(rng, int(rng.integers(1, 4)))
        for status in statuses
    ]
    return pd.DataFrame(
        {
            "id": np.arange(1, size + 1),
            "locomotive": [str(x) for x in rng.choice(list(fleet_ids), size=size)],
            "timestamp": _timestamps(rng, size),
            "status": statuses,
            "duration": rng.uniform(60, 360, size=size).round(1),
            "fault_codes": fault_codes,
        }
    )


def generate_locomotives(
    rng: np.random.Generator,
    fleet_ids: Sequence[str],
    faults: pd.DataFrame,
    initializations: pd.DataFrame,
) -> pd.DataFrame:
    """Per-locomotive stats; fault and initialization counts come from the detail logs."""
    n = len(fleet_ids)
    miles = rng.uniform(50, 250, size=n)
    ptc_pct = rng.uniform(85, 100, size=n)
    df = pd.DataFrame(
        {
            "id": list(fleet_ids),
            "runs": rng.integers(1, 8, size=n),
            "miles": miles.round(2),
            "ptc_active_miles": (miles * ptc_pct / 100).round(2),
            "ptc_active_percentage": ptc_pct.round(2),
            "enforcements": rng.integers(0, 2, size=n),
            "cut_out_trips": rng.integers(0, 3, size=n),
        }
    )
    fault_counts = faults["locomotive"].value_counts() if not faults.empty else pd.Series(dtype=int)
    init_counts = (
        initializations["locomotive"].value_counts() if not initializations.empty else pd.Series(dtype=int)
    )
    df["faults"] = df["id"].map(fault_counts).fillna(0).astype(int)
    df["initializations"] = df["id"].map(init_counts).fillna(0).astype(int)
    return df[
        [
            "id",
            "runs",
            "miles",
            "ptc_active_miles",
            "ptc_active_percentage",
            "faults",
            "enforcements",
            "initializations",
            "cut_out_trips",
        ]
    ]


def generate_hourly_activity(rng: np.random.Generator, faults: pd.DataFrame) -> pd.DataFrame:
    total_miles = rng.uniform(100, 400, size=24)
    df = pd.DataFrame(
        {
            "hour": np.arange(24),
            "active_runs": rng.integers(5, 20, size=24),
            "total_miles": total_miles.round(2),
            "ptc_active_miles": (total_miles * rng.uniform(0.9, 1.0, size=24)).round(2),
        }
    )
    df["faults"] = hourly_fault_counts(faults, df["hour"])
    df["enforcements"] = (df["hour"] % 8 == 0).astype(int)
    return df


def hourly_fault_counts(faults: pd.DataFrame, hours: pd.Series) -> pd.Series:
    """Fault records per hour of ``hours``, from the ``HH`` part of each timestamp."""
    if faults.empty or "timestamp" not in faults.columns:
        return pd.Series(0, index=hours.index, dtype=int)
    fault_hours = faults["timestamp"].str.slice(11, 13).astype(int).value_counts()
    return hours.map(fault_hours).fillna(0).astype(int)


def generate_routes(rng: np.random.Generator, locomotives: pd.DataFrame) -> pd.DataFrame:
    """Routes with totals derived from the locomotives assigned to them."""
    by_id = locomotives.set_index("id")
    ids = locomotives["id"].to_numpy()
    rows = []
    for i, name in enumerate(ROUTE_NAMES):
        size = int(rng.integers(3, 7))
        assigned = [str(x) for x in rng.choice(ids, size=size, replace=False)]
        subset = by_id.loc[assigned]
        miles = float(subset["miles"].sum())
        ptc_miles = float(subset["ptc_active_miles"].sum())
        rows.append(
            {
                "route_id": f"R{i + 1}",
                "route_name": name,
                "locomotives": assigned,
                "total_runs": int(subset["runs"].sum()),
                "total_miles": round(miles, 2),
                "ptc_active_percentage": round(ptc_miles / miles * 100, 2) if miles else 0.0,
                "faults": int(subset["faults"].sum()),
            }
        )
    return pd.DataFrame(rows)


def generate_geographic_events(
    rng: np.random.Generator, fleet_ids: Sequence[str], size: int = GEO_SAMPLE_SIZE
) -> pd.DataFrame:
    event_types = [str(x) for x in rng.choice(EVENT_TYPES, size=size)]
    locos = [str(x) for x in rng.choice(list(fleet_ids), size=size)]
    return pd.DataFrame(
        {
            "id": np.arange(1, size + 1),
            "latitude": (BASE_LAT + (rng.random(size) - 0.5) * 2).round(6),
            "longitude": (BASE_LNG + (rng.random(size) - 0.5) * 2).round(6),
            "event_type": event_types,
            "locomotive": locos,
            "timestamp": _timestamps(rng, size),
            "details": [f"{e} event for {loco}" for e, loco in zip(event_types, locos)],
        }
    )


def generate_dashboard_data(seed: int = DEFAULT_SEED) -> Dict[str, object]:
    rng = np.random.default_rng(seed)
    fleet = list(FLEET_IDS)

    faults = generate_faults(rng, fleet)
    initializations = generate_initialization_logs(rng, fleet)
    locomotives = generate_locomotives(rng, fleet, faults, initializations)
    hourly = generate_hourly_activity(rng, faults)
    routes = generate_routes(rng, locomotives)
    geographic = generate_geographic_events(rng, fleet)

    logger.info(
        "generated dashboard data seed=%s locomotives=%d faults=%d initializations=%d geographic=%d",
        seed,
        len(locomotives),
        len(faults),
        len(initializations),
        len(geographic),
    )
    return {
        "seed": seed,
        "report_date": REPORT_DATE,
        "locomotives": to_records(locomotives),
        "faults": to_records(faults),
        "hourly": to_records(hourly),
        "routes": to_records(routes),
        "initializations": to_records(initializations),
        "geographic": to_records(geographic),
    }


# ---------------- Public API (FastAPI + tests) ----------------
@lru_cache(maxsize=4)
def _load_dashboard_data_cached(seed: int) -> Dict[str, object]:
    return generate_dashboard_data(seed)


def load_dashboard_data(seed: Optional[int] = None) -> Dict[str, object]:
    with _DATA_LOCK:
        return _load_dashboard_data_cached(_active_seed if seed is None else int(seed))


def refresh_dashboard_data(seed: Optional[int] = None) -> Dict[str, object]:
    """Replace the active dataset wholesale; without a seed, advance to the next one."""
    global _active_seed
    with _DATA_LOCK:
        _active_seed = _active_seed + 1 if seed is None else int(seed)
        _load_dashboard_data_cached.cache_clear()
        return _load_dashboard_data_cached(_active_seed)


def _filter_by_locomotive(records: Iterable[Record], selected: set, field: str = "locomotive") -> List[Record]:
    if not selected:
        return list(records)
    return [r for r in records if r.get(field) in selected]


def prepare_context(filters: dict | DashboardFilters, data_ctx: Dict[str, object]) -> Dict[str, object]:
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)
    selected = set(filt.selected_locomotives)

    routes = list(data_ctx.get("routes", []) or [])
    if selected:
        routes = [r for r in routes if selected.intersection(r.get("locomotives") or [])]

    faults = _filter_by_locomotive(data_ctx.get("faults", []) or [], selected)
    hourly = list(data_ctx.get("hourly", []) or [])
    if selected and hourly:
        hourly_df = pd.DataFrame(hourly)
        hourly_df["faults"] = hourly_fault_counts(pd.DataFrame(faults), hourly_df["hour"])
        hourly = to_records(hourly_df)

    return {
        "filters": filt,
        "seed": data_ctx.get("seed"),
        "report_date": data_ctx.get("report_date", REPORT_DATE),
        "filtered_locomotives": _filter_by_locomotive(data_ctx.get("locomotives", []) or [], selected, field="id"),
        "filtered_faults": faults,
        "filtered_initializations": _filter_by_locomotive(data_ctx.get("initializations", []) or [], selected),
        "filtered_geographic": _filter_by_locomotive(data_ctx.get("geographic", []) or [], selected),
        "filtered_routes": routes,
        "hourly": hourly,
    }
