"""Group-and-reduce aggregations behind the hotspot, backlog and weight panels.

Every panel draws from the same two primitives: :func:`group_by` buckets
records by a key function (first-seen order, ``Onbekend`` dropped) and
:func:`rank` sorts rows descending and truncates. Ranking always sorts the
full row set before slicing.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from .models import (
    UNKNOWN,
    AreaScore,
    BacklogRow,
    FractionWeight,
    Melding,
    NeighbourhoodWeight,
    Point,
    Weging,
)

T = TypeVar("T")
R = TypeVar("R")

CLOSED_WEIGHT = 0.25

FRACTION_COLORS: dict[str, str] = {
    "Rest": "#6b7280",
    "Papier": "#3b82f6",
    "Glas": "#10b981",
    "Textiel": "#8b5cf6",
    "Plastic": "#f59e0b",
}
FALLBACK_COLOR = "#9ca3af"


# ── helpers ──────────────────────────────────────────────────────────────

def round_half_up(value: float, digits: int = 0) -> float:
    """Round .5 towards +inf, like the panels' JavaScript ancestors did."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def pct(part: float, whole: float) -> int:
    """Whole-number percentage; 0 when ``whole`` is 0."""
    if not whole:
        return 0
    return int(round_half_up(100 * part / whole))


def lower_median(values: Iterable[float]) -> float | None:
    """Element at index n // 2 of the ascending list (lower-middle for even n)."""
    ordered = sorted(values)
    if not ordered:
        return None
    return ordered[len(ordered) // 2]


def centroid(points: Sequence[Point]) -> Point | None:
    """Unweighted mean of lon and lat."""
    if not points:
        return None
    n = len(points)
    return (sum(p[0] for p in points) / n, sum(p[1] for p in points) / n)


def group_by(records: Iterable[T], key: Callable[[T], str | None]) -> dict[str, list[T]]:
    """Bucket records by ``key`` in first-seen order, dropping unknown names."""
    groups: dict[str, list[T]] = {}
    for r in records:
        name = key(r) or UNKNOWN
        if name == UNKNOWN:
            continue
        groups.setdefault(name, []).append(r)
    return groups


def rank(rows: Iterable[R], sort_key: Callable[[R], Any], limit: int | None = None) -> list[R]:
    """Stable descending sort, truncated to ``limit`` after sorting."""
    ordered = sorted(rows, key=sort_key, reverse=True)
    return ordered if limit is None else ordered[:limit]


# ── report areas ─────────────────────────────────────────────────────────

def by_buurt(m: Melding) -> str | None:
    return m.buurt_naam


def by_wijk(m: Melding) -> str | None:
    return m.wijk_naam


def by_stadsdeel(m: Melding) -> str | None:
    return m.stadsdeel_naam


AREA_KEYS: dict[str, Callable[[Melding], str | None]] = {
    "buurt": by_buurt,
    "wijk": by_wijk,
    "stadsdeel": by_stadsdeel,
}


def score_area(name: str, records: Sequence[Melding]) -> AreaScore:
    open_count = sum(1 for m in records if m.is_open)
    closed_count = len(records) - open_count

    # Durations only from closed reports that carry a positive value
    durations = [
        m.doorlooptijd_dagen for m in records
        if not m.is_open and m.doorlooptijd_dagen is not None and m.doorlooptijd_dagen > 0
    ]
    avg = round_half_up(sum(durations) / len(durations), 1) if durations else None

    return AreaScore(
        name=name,
        open_count=open_count,
        closed_count=closed_count,
        total=len(records),
        score=round_half_up(open_count + CLOSED_WEIGHT * closed_count, 1),
        resolution_rate=pct(closed_count, len(records)),
        avg_duration_days=avg,
        median_duration_days=lower_median(durations),
        center=centroid([m.location for m in records if m.location is not None]),
    )


def area_scores(
    records: Iterable[Melding],
    key: Callable[[Melding], str | None] = by_buurt,
) -> list[AreaScore]:
    """One score row per area, in first-seen order."""
    return [score_area(name, group) for name, group in group_by(records, key).items()]


def hotspots(
    records: Iterable[Melding],
    key: Callable[[Melding], str | None] = by_buurt,
    limit: int = 20,
) -> list[AreaScore]:
    """Areas ranked by pressure score. Areas with nothing to place on the map are left out."""
    rows = [row for row in area_scores(records, key) if row.center is not None]
    return rank(rows, lambda row: row.score, limit)


def days_open(m: Melding, now: datetime) -> int | None:
    if m.datum_melding is None:
        return None
    reported = datetime.combine(m.datum_melding, datetime.min.time())
    return (now - reported).days


def backlog(
    records: Iterable[Melding],
    now: datetime,
    key: Callable[[Melding], str | None] = by_stadsdeel,
    threshold_days: int = 5,
) -> list[BacklogRow]:
    """Open reports per area with the share older than ``threshold_days``."""
    rows = []
    for name, group in group_by((m for m in records if m.is_open), key).items():
        ages = [d for d in (days_open(m, now) for m in group) if d is not None]
        over = sum(1 for d in ages if d > threshold_days)
        median = lower_median(ages)
        rows.append(BacklogRow(
            name=name,
            open_count=len(group),
            over_time_count=over,
            over_time_pct=pct(over, len(group)),
            median_days_open=0 if median is None else int(median),
        ))
    return rank(rows, lambda row: row.open_count)


# ── weighings ────────────────────────────────────────────────────────────

def fraction_weights(records: Iterable[Weging]) -> list[FractionWeight]:
    """Weight, pickups and share of the total per material fraction.

    Weighings without a fraction are kept under ``Onbekend`` so the shares
    add up to the full total.
    """
    sums: dict[str, list[float]] = {}
    total = 0.0
    for w in records:
        entry = sums.setdefault(w.fractie or UNKNOWN, [0.0, 0])
        entry[0] += w.weight_kg
        entry[1] += 1
        total += w.weight_kg

    rows = [
        FractionWeight(
            fractie=name,
            total_weight=round_half_up(weight, 1),
            count=int(count),
            percentage=pct(weight, total),
            color=FRACTION_COLORS.get(name, FALLBACK_COLOR),
        )
        for name, (weight, count) in sums.items()
    ]
    return rank(rows, lambda row: row.total_weight)


def neighbourhood_weights(records: Iterable[Weging], limit: int | None = 15) -> list[NeighbourhoodWeight]:
    """Heaviest neighbourhoods by collected weight, placeable weighings only."""
    placeable = (w for w in records if w.location is not None)
    rows = []
    for name, group in group_by(placeable, lambda w: w.buurt_naam).items():
        rows.append(NeighbourhoodWeight(
            buurt_naam=name,
            total_weight=round_half_up(sum(w.weight_kg for w in group), 1),
            count=len(group),
            center=centroid([w.location for w in group]),
        ))
    return rank(rows, lambda row: row.total_weight, limit)
