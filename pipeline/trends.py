"""Monthly, hourly and weight trends.

The monthly histogram issues one count request per month. The twelve
requests run concurrently and are joined by position, so completion order
never reorders the months; a month whose request fails counts as 0.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from datetime import datetime, timedelta

from .aggregate import pct, rank, round_half_up
from .ingest import FetchError
from .models import (
    UNKNOWN,
    Heatmap,
    HeatmapCell,
    Melding,
    MonthlyCount,
    Peak,
    RecentWeging,
    Trends,
    Weging,
    WeightTrend,
    YearSummary,
)
from .window import MonthRange, Window, month_ranges

logger = logging.getLogger(__name__)

DAY_LABELS = ["Zo", "Ma", "Di", "Wo", "Do", "Vr", "Za"]
DISPLAY_HOURS = range(6, 23)

CountMonth = Callable[[MonthRange], Awaitable[int]]


# ── monthly histogram ────────────────────────────────────────────────────

async def _count_or_zero(count_month: CountMonth, month: MonthRange) -> MonthlyCount:
    try:
        count = await count_month(month)
    except FetchError as e:
        logger.warning("month %s count failed, using 0: %s", month.key, e)
        count = 0
    return MonthlyCount(month=month.key, label=month.label, count=count, year=month.year)


async def monthly_counts(count_month: CountMonth, now: datetime, months: int = 12) -> list[MonthlyCount]:
    """Report counts for the trailing months, oldest first, always ``months`` long."""
    ranges = month_ranges(now, months)
    return list(await asyncio.gather(*(_count_or_zero(count_month, m) for m in ranges)))


def year_summary(monthly: Sequence[MonthlyCount], now: datetime) -> YearSummary:
    """Current-year total against the previous year's months in the same list.

    A previous-year total of 0 reports a change of 0, which also covers "no
    prior data".
    """
    current = sum(m.count for m in monthly if m.year == now.year)
    previous = sum(m.count for m in monthly if m.year == now.year - 1)
    return YearSummary(
        year_total=current,
        previous_year_total=previous,
        year_change_pct=pct(current - previous, previous),
    )


# ── weekday x hour heatmap ───────────────────────────────────────────────

def weekday(ts: datetime) -> int:
    """Day of week with Sunday as 0."""
    return (ts.weekday() + 1) % 7


def heatmap(records: Iterable[Melding], hours: Iterable[int] = DISPLAY_HOURS) -> Heatmap:
    """Occurrence counts per (weekday, hour) for the display band of hours.

    Intensity is relative to the busiest bucket over all hours. The peak is
    the first bucket, in first-seen order, to reach that maximum; it can sit
    outside the display band.
    """
    counts: dict[tuple[int, int], int] = {}
    for m in records:
        # Without a time-of-day there is no hour to put the report in
        if m.datum_melding is None or m.tijdstip_melding is None:
            continue
        ts = m.reported_at
        key = (weekday(ts), ts.hour)
        counts[key] = counts.get(key, 0) + 1

    max_count = 0
    peak_key = None
    for key, count in counts.items():
        if count > max_count:
            max_count = count
            peak_key = key

    cells = [
        HeatmapCell(
            day=day,
            hour=hour,
            count=counts.get((day, hour), 0),
            intensity=counts.get((day, hour), 0) / max_count if max_count else 0.0,
        )
        for hour in hours
        for day in range(7)
    ]
    peak = None
    if peak_key is not None:
        peak = Peak(day=DAY_LABELS[peak_key[0]], hour=f"{peak_key[1]}:00")
    return Heatmap(cells=cells, peak=peak)


async def collect_trends(
    count_month: CountMonth,
    fetch_sample: Callable[[], Awaitable[list[Melding]]],
    now: datetime,
) -> Trends:
    """Run the monthly histogram and the heatmap sample concurrently."""
    monthly, sample = await asyncio.gather(
        monthly_counts(count_month, now),
        fetch_sample(),
    )
    return Trends(monthly=monthly, heatmap=heatmap(sample), summary=year_summary(monthly, now))


# ── collected weight ─────────────────────────────────────────────────────

def weight_trend(records: Iterable[Weging], window: Window) -> WeightTrend:
    """Weight collected in ``[cutoff, now]`` against ``[previous, cutoff)``."""
    current = previous = 0.0
    for w in records:
        ts = w.weighed_at
        if window.current(ts):
            current += w.weight_kg
        elif window.prior(ts):
            previous += w.weight_kg
    return WeightTrend(
        current_total=int(round_half_up(current)),
        previous_total=int(round_half_up(previous)),
        percentage_change=pct(current - previous, previous),
    )


def recent_activity(
    records: Iterable[Weging],
    now: datetime,
    minutes: int = 60,
    limit: int = 10,
) -> list[RecentWeging]:
    """Placeable weighings from the last ``minutes`` before now, newest first.

    Measured from the true current instant, whatever range the filters select.
    """
    since = now - timedelta(minutes=minutes)
    recent = [
        w for w in records
        if w.location is not None and since <= w.weighed_at <= now
    ]
    recent = rank(recent, lambda w: w.weighed_at, limit)
    return [
        RecentWeging(
            id=w.id,
            time=w.tijdstip_weging.strftime("%H:%M") if w.tijdstip_weging else "",
            kenteken=w.kenteken or UNKNOWN,
            weight=w.weight_kg,
            location=w.buurt_naam or UNKNOWN,
            coordinates=w.location,
            fractie=w.fractie or UNKNOWN,
        )
        for w in recent
    ]
