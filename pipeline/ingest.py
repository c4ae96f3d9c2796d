"""Fetch waste reports, weighings and containers from api.data.amsterdam.nl."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

import httpx

from .config import settings
from .models import Container, Melding, Weging
from .transform import parse_containers, parse_meldingen, parse_wegingen

logger = logging.getLogger(__name__)

MELDINGEN = "meldingen/meldingen"
WEGING = "huishoudelijkafval/weging"
CONTAINER = "huishoudelijkafval/container"

STATUS_VALUES = {"open": "Open", "closed": "Afgesloten", "afgesloten": "Afgesloten"}

# Larger ranges need a deeper page to cover the window
PAGE_SIZES = {"30d": 1000, "7d": 500}
DEFAULT_PAGE_SIZE = 200
HEATMAP_DAYS = 30


class FetchError(RuntimeError):
    """A single request to the open-data API failed or returned garbage."""


def page_size_for(time_range: str) -> int:
    return PAGE_SIZES.get(time_range, DEFAULT_PAGE_SIZE)


def build_params(
    *,
    category: str | None = None,
    status: str | None = None,
    page_size: int | None = None,
    sort: str | None = None,
    date_field: str = "datumMelding",
    date_gte: date | None = None,
    date_lte: date | None = None,
    count_only: bool = False,
    fmt: str = "json",
) -> dict[str, str]:
    """Build the query string for a list or count request.

    ``status`` takes a filter token (``all``/``open``/``closed``); ``all`` and
    None add no predicate. The date bounds are inclusive.
    """
    params: dict[str, str] = {"_format": fmt}
    if category:
        params["hoofdcategorie"] = category
    if status and status != "all":
        params["externeStatus"] = STATUS_VALUES.get(status, status)
    if count_only:
        params["_count"] = "true"
        params["_pageSize"] = "1"
    elif page_size is not None:
        params["_pageSize"] = str(int(page_size))
    if sort:
        params["_sort"] = sort
    if date_gte is not None:
        params[f"{date_field}[gte]"] = date_gte.isoformat()
    if date_lte is not None:
        params[f"{date_field}[lte]"] = date_lte.isoformat()
    return params


def make_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Async client bound to the configured API base URL."""
    return httpx.AsyncClient(
        base_url=settings.api_base_url,
        timeout=settings.http_timeout_s,
        follow_redirects=True,
        transport=transport,
    )


async def _get_json(client: httpx.AsyncClient, path: str, params: dict[str, str]) -> Any:
    try:
        r = await client.get(path, params=params)
        r.raise_for_status()
        return r.json()
    except (httpx.HTTPError, ValueError) as e:
        raise FetchError(f"{path}: {e}") from e


def _embedded(payload: Any, name: str) -> list:
    """Row list from a HAL (``_embedded``) or GeoJSON payload; [] for any other shape."""
    if not isinstance(payload, dict):
        return []
    if "features" in payload:
        rows = payload.get("features")
    else:
        embedded = payload.get("_embedded")
        rows = embedded.get(name) if isinstance(embedded, dict) else None
    return rows if isinstance(rows, list) else []


async def fetch_meldingen(
    client: httpx.AsyncClient,
    *,
    time_range: str = "24h",
    status: str = "all",
    page_size: int | None = None,
) -> list[Melding]:
    """Newest waste reports for a range. Failures are logged and yield []."""
    params = build_params(
        category=settings.category,
        status=status,
        page_size=page_size or page_size_for(time_range),
        sort="-datumMelding",
    )
    try:
        payload = await _get_json(client, MELDINGEN, params)
    except FetchError as e:
        logger.warning("fetch meldingen failed: %s", e)
        return []
    return parse_meldingen(_embedded(payload, "meldingen"))


async def fetch_open_sample(client: httpx.AsyncClient, page_size: int = 500) -> list[Melding]:
    """Unsorted sample of open reports, so old backlog is represented."""
    params = build_params(category=settings.category, status="open", page_size=page_size)
    try:
        payload = await _get_json(client, MELDINGEN, params)
    except FetchError as e:
        logger.warning("fetch open meldingen failed: %s", e)
        return []
    return parse_meldingen(_embedded(payload, "meldingen"))


async def fetch_wegingen(
    client: httpx.AsyncClient,
    *,
    time_range: str = "24h",
    page_size: int | None = None,
) -> list[Weging]:
    """Newest weighings. Failures are logged and yield []."""
    params = build_params(
        page_size=page_size or page_size_for(time_range),
        sort="-datumWeging,-tijdstipWeging",
    )
    try:
        payload = await _get_json(client, WEGING, params)
    except FetchError as e:
        logger.warning("fetch weging failed: %s", e)
        return []
    return parse_wegingen(_embedded(payload, "weging"))


async def fetch_containers(client: httpx.AsyncClient, page_size: int = 1000) -> list[Container]:
    params = build_params(page_size=page_size, fmt="geojson")
    try:
        payload = await _get_json(client, CONTAINER, params)
    except FetchError as e:
        logger.warning("fetch containers failed: %s", e)
        return []
    return parse_containers(_embedded(payload, "container"))


async def count_meldingen(client: httpx.AsyncClient, start: date, end: date) -> int:
    """Total reports dated within ``[start, end]``.

    Raises FetchError; callers decide how to degrade.
    """
    params = build_params(
        category=settings.category, date_gte=start, date_lte=end, count_only=True,
    )
    payload = await _get_json(client, MELDINGEN, params)
    try:
        return int(payload["page"]["totalElements"])
    except (KeyError, TypeError, ValueError) as e:
        raise FetchError(f"{MELDINGEN}: no totalElements in count response") from e


async def fetch_heatmap_sample(
    client: httpx.AsyncClient,
    since: date,
    page_size: int | None = None,
) -> list[Melding]:
    """Bounded sample of reports from ``since`` onward, newest first."""
    params = build_params(
        category=settings.category,
        page_size=page_size or settings.heatmap_sample,
        sort="-datumMelding",
        date_gte=since,
    )
    try:
        payload = await _get_json(client, MELDINGEN, params)
    except FetchError as e:
        logger.warning("fetch heatmap sample failed: %s", e)
        return []
    return parse_meldingen(_embedded(payload, "meldingen"))


# ── snapshot CLI ─────────────────────────────────────────────────────────

async def _snapshot(raw_dir: Path, time_range: str) -> list[Path]:
    async with make_client() as client:
        meldingen, wegingen = await asyncio.gather(
            fetch_meldingen(client, time_range=time_range),
            fetch_wegingen(client, time_range=time_range),
        )
    stamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    paths = []
    for name, records in (("meldingen", meldingen), ("weging", wegingen)):
        dest = raw_dir / f"{name}_{stamp}.json"
        dest.write_text(json.dumps([r.model_dump(mode="json") for r in records], indent=1))
        print(f"  [done] {name} -> {len(records):,} records, {dest.stat().st_size:,} bytes")
        paths.append(dest)
    return paths


def ingest(time_range: str = "30d") -> list[Path]:
    """Fetch a fresh snapshot and write it to the raw data dir."""
    raw_dir = Path(settings.raw_dir)
    raw_dir.mkdir(parents=True, exist_ok=True)
    print(f"  [download] meldingen + weging ({time_range}) ...")
    return asyncio.run(_snapshot(raw_dir, time_range))


if __name__ == "__main__":
    ingest()
