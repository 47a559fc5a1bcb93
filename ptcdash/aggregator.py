"""Stateless aggregations turning a record collection into chart-ready summaries.

Two shapes come out of here:

- rankings (``RankingEntry``): top-N / bottom-N by a numeric projection
- distributions (``Bucket``): counts per caller-declared label, in the
  caller's order

Buckets are never discovered from the data. A classifier that produces a
label outside ``bucket_order`` is a configuration bug and raises
``UnknownBucketLabel`` instead of silently skewing the totals.
"""

from __future__ import annotations

import bisect
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Iterable, List, Sequence

import pandas as pd

from ptcdash.columns import Record
from ptcdash.errors import UnknownBucketLabel

DIRECTIONS = ("top", "bottom")


@dataclass(frozen=True)
class RankingEntry:
    name: str
    value: float


@dataclass(frozen=True)
class Bucket:
    label: str
    count: int


def top_n(
    records: Iterable[Record],
    value_of: Callable[[Record], float],
    label_of: Callable[[Record], str],
    n: int,
    direction: str = "top",
) -> List[RankingEntry]:
    """Rank records by ``value_of``; ties keep their input order.

    ``direction="top"`` orders by value descending, ``"bottom"`` ascending.
    The result has ``min(n, len(records))`` entries.
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
    rows = list(records)
    if n <= 0 or not rows:
        return []

    values = [value_of(r) for r in rows]
    order = (
        pd.Series(values, dtype=float)
        .sort_values(ascending=(direction == "bottom"), kind="stable")
        .head(n)
        .index
    )
    return [RankingEntry(name=str(label_of(rows[i])), value=values[i]) for i in order]


def distribute(
    records: Iterable[Record],
    classify: Callable[[Record], str],
    bucket_order: Sequence[str],
) -> List[Bucket]:
    order = list(bucket_order)
    if len(set(order)) != len(order):
        raise ValueError(f"bucket_order contains duplicate labels: {order}")

    labels = pd.Series([classify(r) for r in records], dtype=object)
    unknown = labels[~labels.isin(order)]
    if not unknown.empty:
        raise UnknownBucketLabel(unknown.iloc[0], order)

    counts = labels.value_counts().to_dict()
    return [Bucket(label=label, count=int(counts.get(label, 0))) for label in order]


def bin_classifier(
    value_of: Callable[[Record], float],
    edges: Sequence[float],
    labels: Sequence[str],
) -> Callable[[Record], str]:
    """Classifier for fixed numeric ranges.

    ``labels`` has one entry more than ``edges``. A value equal to an edge
    falls into the upper range, so ``edges=[90, 95]`` gives ``v < 90``,
    ``90 <= v < 95`` and ``v >= 95``. Missing or NaN values raise
    ``ValueError``.
    """
    edges = list(edges)
    labels = list(labels)
    if len(labels) != len(edges) + 1:
        raise ValueError(f"expected {len(edges) + 1} labels for {len(edges)} edges, got {len(labels)}")
    if any(b <= a for a, b in zip(edges, edges[1:])):
        raise ValueError(f"edges must be strictly increasing: {edges}")

    def classify(record: Record) -> str:
        value = value_of(record)
        if value is None or pd.isna(value):
            raise ValueError(f"cannot bin a missing value: {value!r}")
        return labels[bisect.bisect_right(edges, value)]

    return classify


def bucket_shares(buckets: Sequence[Bucket]) -> List[float]:
    total = sum(b.count for b in buckets)
    if not total:
        return [0.0 for _ in buckets]
    return [b.count / total for b in buckets]


def ranking_records(entries: Sequence[RankingEntry]) -> List[Dict[str, Any]]:
    return [asdict(e) for e in entries]


def bucket_records(buckets: Sequence[Bucket]) -> List[Dict[str, Any]]:
    shares = bucket_shares(buckets)
    return [{**asdict(b), "share": share} for b, share in zip(buckets, shares)]
