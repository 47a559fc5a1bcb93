from __future__ import annotations

from typing import Any, Sequence


class DashboardError(Exception):
    """Base class for errors raised by the dashboard engine."""


class InvalidPageSize(DashboardError, ValueError):
    def __init__(self, size: Any) -> None:
        super().__init__(f"page_size must be a positive integer, got {size!r}")
        self.size = size


class UnknownBucketLabel(DashboardError, ValueError):
    """A classifier produced a label that is not part of the declared bucket order."""

    def __init__(self, label: Any, bucket_order: Sequence[str]) -> None:
        super().__init__(f"label {label!r} is not in bucket order {list(bucket_order)}")
        self.label = label
        self.bucket_order = list(bucket_order)


class UnknownDataset(DashboardError, LookupError):
    def __init__(self, name: str, available: Sequence[str]) -> None:
        super().__init__(f"unknown dataset {name!r}; available: {sorted(available)}")
        self.name = name
