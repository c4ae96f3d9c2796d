"""Pydantic response models for the Afval API.

Row-level models come from the aggregation engine; this module adds the
per-endpoint envelopes.
"""

from __future__ import annotations

from pydantic import BaseModel

from pipeline.models import (
    AreaScore,
    BacklogRow,
    Container,
    FeedItem,
    FractionWeight,
    NeighbourhoodWeight,
    RecentWeging,
    Trends,
    WeightTrend,
)


class FilterOptions(BaseModel):
    time_ranges: list[str]
    statuses: list[str]
    fractions: list[str]
    area_levels: list[str]


class ActiveFilters(BaseModel):
    time_range: str = "24h"
    status: str = "all"
    show_containers: bool = False
    categories: list[str] = []


class FeedResponse(BaseModel):
    label: str
    count: int
    items: list[FeedItem]


class FractionResponse(BaseModel):
    total_weight: float
    fractions: list[FractionWeight]


class WeightResponse(BaseModel):
    trend: WeightTrend
    recent: list[RecentWeging]
    neighbourhoods: list[NeighbourhoodWeight]


class Snapshot(BaseModel):
    filters: ActiveFilters
    generated_at: str
    feed: FeedResponse
    hotspots: list[AreaScore]
    backlog: list[BacklogRow]
    fractions: FractionResponse
    weight: WeightResponse
    trends: Trends
    containers: list[Container]
