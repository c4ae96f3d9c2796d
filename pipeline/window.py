"""Time-range resolution for the dashboard filters.

All functions take "now" from an injected :data:`Clock` so that callers (and
tests) control the instant every window is measured from.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from .config import settings

Clock = Callable[[], datetime]

RANGES: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_RANGE = "24h"

RANGE_LABELS = {
    "1h": "laatste uur",
    "24h": "laatste 24 uur",
    "7d": "laatste 7 dagen",
    "30d": "laatste 30 dagen",
}

MONTH_LABELS = ["Jan", "Feb", "Mrt", "Apr", "Mei", "Jun", "Jul", "Aug", "Sep", "Okt", "Nov", "Dec"]


def local_now() -> datetime:
    """Wall clock in the city's timezone, as a naive datetime.

    Source timestamps are naive local times, so comparisons stay naive.
    """
    return datetime.now(ZoneInfo(settings.timezone)).replace(tzinfo=None)


@dataclass(frozen=True)
class Window:
    now: datetime
    cutoff: datetime
    previous: datetime

    def current(self, ts: datetime) -> bool:
        return self.cutoff <= ts <= self.now

    def prior(self, ts: datetime) -> bool:
        return self.previous <= ts < self.cutoff


def range_duration(time_range: str) -> timedelta:
    return RANGES.get(time_range, RANGES[DEFAULT_RANGE])


def range_label(time_range: str) -> str:
    return RANGE_LABELS.get(time_range, RANGE_LABELS[DEFAULT_RANGE])


def resolve_window(time_range: str, clock: Clock = local_now) -> Window:
    """Resolve a range token to ``now``, the cutoff and the previous period start.

    ``[previous, cutoff)`` is exactly as wide as ``[cutoff, now]``. Unknown
    tokens fall back to 24 hours.
    """
    now = clock()
    span = range_duration(time_range)
    return Window(now=now, cutoff=now - span, previous=now - 2 * span)


@dataclass(frozen=True)
class MonthRange:
    start: date
    end: date
    label: str

    @property
    def key(self) -> str:
        return self.start.strftime("%Y-%m")

    @property
    def year(self) -> int:
        return self.start.year


def month_ranges(now: datetime, count: int = 12) -> list[MonthRange]:
    """Trailing calendar months, oldest first, including the current one."""
    months = []
    for back in range(count - 1, -1, -1):
        index = now.year * 12 + (now.month - 1) - back
        year, month = divmod(index, 12)
        last_day = calendar.monthrange(year, month + 1)[1]
        months.append(MonthRange(
            start=date(year, month + 1, 1),
            end=date(year, month + 1, last_day),
            label=MONTH_LABELS[month],
        ))
    return months


def relative_age(ts: datetime | None, now: datetime) -> str:
    """Short Dutch age label for feed items."""
    if ts is None:
        return ""
    hours = int((now - ts).total_seconds() // 3600)
    if hours > 0:
        return f"{hours}u geleden"
    return "zojuist"
