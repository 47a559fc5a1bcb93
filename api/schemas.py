from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ThresholdsModel(BaseModel):
    ptc_target_pct: float = 95.0
    ptc_healthy_pct: float = 97.0
    init_success_target: float = 0.8


class DashboardFiltersModel(BaseModel):
    top_n: int = 10
    selected_locomotives: List[str] = Field(default_factory=list)
    thresholds: ThresholdsModel = Field(default_factory=ThresholdsModel)


class BrowseParamsModel(BaseModel):
    q: str = ""
    sort_key: Optional[str] = None
    sort_direction: Literal["asc", "desc"] = "asc"
    page: int = 0
    # Not constrained here; the browser rejects non-positive sizes itself.
    page_size: int = 10


class RefreshRequest(BaseModel):
    seed: Optional[int] = None


class DatasetMeta(BaseModel):
    name: str
    label: str
    columns: List[dict]
