"""Filter configuration and record filtering for the time-windowed views."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from .models import FeedItem, Melding, Weging
from .window import RANGES, Window, range_label, relative_age

STATUSES = ("all", "open", "closed")
STATUS_ALIASES = {"afgesloten": "closed"}


@dataclass(frozen=True)
class FilterConfig:
    time_range: str = "24h"
    status: str = "all"
    show_containers: bool = False
    categories: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        time_range: str = "24h",
        status: str = "all",
        show_containers: bool = False,
        categories: Iterable[str] | None = None,
    ) -> FilterConfig:
        """Normalise loose input: unknown ranges become 24h, unknown statuses ``all``."""
        status = STATUS_ALIASES.get(status, status)
        return cls(
            time_range=time_range if time_range in RANGES else "24h",
            status=status if status in STATUSES else "all",
            show_containers=bool(show_containers),
            categories=tuple(c for c in (categories or ()) if c),
        )

    def status_matches(self, melding: Melding) -> bool:
        if self.status == "open":
            return melding.is_open
        if self.status == "closed":
            return not melding.is_open
        return True

    def category_matches(self, melding: Melding) -> bool:
        return not self.categories or melding.subcategorie in self.categories


def filter_meldingen(
    records: Iterable[Melding],
    config: FilterConfig,
    window: Window,
    *,
    require_location: bool = False,
) -> list[Melding]:
    """Reports matching status, categories and the current window, newest first.

    Reports without a report date cannot be time-filtered and are dropped. A
    missing time-of-day counts as midnight, which puts such reports on the
    day boundary.
    """
    out = []
    for m in records:
        ts = m.reported_at
        if ts is None or ts < window.cutoff:
            continue
        if not config.status_matches(m) or not config.category_matches(m):
            continue
        if require_location and m.location is None:
            continue
        out.append(m)
    out.sort(key=lambda m: m.reported_at, reverse=True)
    return out


def filter_wegingen(
    records: Iterable[Weging],
    since: datetime,
    until: datetime | None = None,
) -> list[Weging]:
    """Weighings in ``[since, until]``, newest first."""
    out = [
        w for w in records
        if w.weighed_at >= since and (until is None or w.weighed_at <= until)
    ]
    out.sort(key=lambda w: w.weighed_at, reverse=True)
    return out


def build_feed(records: Iterable[Melding], config: FilterConfig, window: Window) -> dict:
    """Live report feed: map-placeable reports in the window, newest first."""
    items = [
        FeedItem(melding=m, age=relative_age(m.reported_at, window.now))
        for m in filter_meldingen(records, config, window, require_location=True)
    ]
    return {
        "label": range_label(config.time_range),
        "count": len(items),
        "items": items,
    }
