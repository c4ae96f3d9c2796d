"""Shared query layer: every fetch-and-aggregate pass lives here.

The ``get_*`` coroutines fetch and return ``dict`` or ``list``; the
``*_from`` functions build one panel from records that were already fetched.
A fresh HTTP client is opened per call unless the caller passes one in.
Fetch failures degrade to empty or zero results inside the fetch layer, so
none of these raise for network trouble.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

import httpx

from pipeline import aggregate, ingest, trends
from pipeline.aggregate import AREA_KEYS, FRACTION_COLORS
from pipeline.config import settings
from pipeline.filters import STATUSES, FilterConfig, build_feed, filter_meldingen, filter_wegingen
from pipeline.models import Melding, Weging
from pipeline.window import RANGES, Window, local_now, resolve_window


# ── helpers ──────────────────────────────────────────────────────────────

@asynccontextmanager
async def _client(client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    """Use the caller's client, or open (and close) a fresh one."""
    if client is not None:
        yield client
        return
    async with ingest.make_client() as fresh:
        yield fresh


def _window(config: FilterConfig) -> Window:
    return resolve_window(config.time_range, local_now)


# ── query functions ──────────────────────────────────────────────────────

def get_filter_options() -> dict:
    """Valid values for every filter parameter."""
    return {
        "time_ranges": list(RANGES),
        "statuses": list(STATUSES),
        "fractions": list(FRACTION_COLORS),
        "area_levels": list(AREA_KEYS),
    }


async def get_meldingen(config: FilterConfig, client: httpx.AsyncClient | None = None) -> list[Melding]:
    async with _client(client) as c:
        return await ingest.fetch_meldingen(c, time_range=config.time_range, status=config.status)


async def get_wegingen(config: FilterConfig, client: httpx.AsyncClient | None = None) -> list[Weging]:
    async with _client(client) as c:
        return await ingest.fetch_wegingen(c, time_range=config.time_range)


# ── panels over already-fetched records ──────────────────────────────────

def feed_from(meldingen: list[Melding], config: FilterConfig, window: Window) -> dict:
    feed = build_feed(meldingen, config, window)
    feed["items"] = [item.model_dump(mode="json") for item in feed["items"]]
    return feed


def hotspots_from(
    meldingen: list[Melding],
    config: FilterConfig,
    window: Window,
    level: str = "buurt",
    limit: int | None = None,
) -> list[dict]:
    rows = aggregate.hotspots(
        filter_meldingen(meldingen, config, window),
        key=AREA_KEYS.get(level, aggregate.by_buurt),
        limit=limit or settings.hotspot_limit,
    )
    return [r.model_dump() for r in rows]


def backlog_from(open_sample: list[Melding], now: datetime, level: str = "stadsdeel") -> list[dict]:
    rows = aggregate.backlog(
        open_sample,
        now,
        key=AREA_KEYS.get(level, aggregate.by_stadsdeel),
        threshold_days=settings.over_time_days,
    )
    return [r.model_dump() for r in rows]


def fractions_from(wegingen: list[Weging], window: Window) -> dict:
    current = filter_wegingen(wegingen, window.cutoff, window.now)
    return {
        "total_weight": aggregate.round_half_up(sum(w.weight_kg for w in current), 1),
        "fractions": [r.model_dump() for r in aggregate.fraction_weights(current)],
    }


def weight_from(wegingen: list[Weging], window: Window) -> dict:
    current = filter_wegingen(wegingen, window.cutoff, window.now)
    return {
        "trend": trends.weight_trend(wegingen, window).model_dump(),
        "recent": [
            r.model_dump()
            for r in trends.recent_activity(wegingen, window.now, limit=settings.recent_limit)
        ],
        "neighbourhoods": [
            r.model_dump()
            for r in aggregate.neighbourhood_weights(current, settings.neighbourhood_weight_limit)
        ],
    }


# ── query functions ──────────────────────────────────────────────────────

async def get_feed(config: FilterConfig, client: httpx.AsyncClient | None = None) -> dict:
    """Live report feed for the selected filters."""
    return feed_from(await get_meldingen(config, client), config, _window(config))


async def get_hotspots(
    config: FilterConfig,
    level: str = "buurt",
    limit: int | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[dict]:
    """Areas ranked by pressure score within the selected window."""
    return hotspots_from(await get_meldingen(config, client), config, _window(config), level, limit)


async def get_area_scores(
    config: FilterConfig,
    level: str = "stadsdeel",
    client: httpx.AsyncClient | None = None,
) -> list[dict]:
    """Full score rows per area, ranked by open count."""
    meldingen = filter_meldingen(await get_meldingen(config, client), config, _window(config))
    rows = aggregate.area_scores(meldingen, AREA_KEYS.get(level, aggregate.by_stadsdeel))
    return [r.model_dump() for r in aggregate.rank(rows, lambda r: r.open_count)]


async def get_open_sample(client: httpx.AsyncClient | None = None) -> list[Melding]:
    async with _client(client) as c:
        return await ingest.fetch_open_sample(c)


async def get_backlog(level: str = "stadsdeel", client: httpx.AsyncClient | None = None) -> list[dict]:
    """Open-report backlog per area, independent of the time filter."""
    return backlog_from(await get_open_sample(client), local_now(), level)


async def get_fractions(config: FilterConfig, client: httpx.AsyncClient | None = None) -> dict:
    """Weight per material fraction within the selected window."""
    return fractions_from(await get_wegingen(config, client), _window(config))


async def get_weight(config: FilterConfig, client: httpx.AsyncClient | None = None) -> dict:
    """Weight trend against the previous period, live activity and top neighbourhoods."""
    return weight_from(await get_wegingen(config, client), _window(config))


async def get_trends(client: httpx.AsyncClient | None = None, now: datetime | None = None) -> dict:
    """Twelve-month histogram, weekday/hour heatmap and year-over-year change."""
    now = now or local_now()
    async with _client(client) as c:
        result = await trends.collect_trends(
            lambda month: ingest.count_meldingen(c, month.start, month.end),
            lambda: ingest.fetch_heatmap_sample(c, (now - timedelta(days=ingest.HEATMAP_DAYS)).date()),
            now,
        )
    return result.model_dump()


async def get_containers(client: httpx.AsyncClient | None = None) -> list[dict]:
    async with _client(client) as c:
        containers = await ingest.fetch_containers(c)
    return [r.model_dump() for r in containers]


async def _no_containers() -> list[dict]:
    return []


async def build_snapshot(config: FilterConfig, client: httpx.AsyncClient | None = None) -> dict:
    """Every panel for one filter configuration.

    Each source is polled once and every panel is measured from the same
    window, so panels that share a source agree with each other.
    """
    window = _window(config)
    async with _client(client) as c:
        meldingen, wegingen, open_sample, trend_data, containers = await asyncio.gather(
            get_meldingen(config, c),
            get_wegingen(config, c),
            get_open_sample(c),
            get_trends(c, window.now),
            get_containers(c) if config.show_containers else _no_containers(),
        )
    return {
        "filters": {
            "time_range": config.time_range,
            "status": config.status,
            "show_containers": config.show_containers,
            "categories": list(config.categories),
        },
        "generated_at": window.now.isoformat(timespec="seconds"),
        "feed": feed_from(meldingen, config, window),
        "hotspots": hotspots_from(meldingen, config, window),
        "backlog": backlog_from(open_sample, window.now),
        "fractions": fractions_from(wegingen, window),
        "weight": weight_from(wegingen, window),
        "trends": trend_data,
        "containers": containers,
    }
