"""FastAPI REST app for Amsterdam waste reports and weighings."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query

from pipeline.config import settings
from pipeline.filters import FilterConfig
from pipeline.refresh import RefreshLoop

from . import queries as q
from .models import (
    ActiveFilters,
    AreaScore,
    BacklogRow,
    Container,
    FeedResponse,
    FilterOptions,
    FractionResponse,
    Snapshot,
    Trends,
    WeightResponse,
)

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

refresher: RefreshLoop[dict] = RefreshLoop(q.build_snapshot)
_pending: set[asyncio.Task] = set()


async def cancel_pending() -> None:
    """Cancel filter requests still waiting out their quiet period."""
    for task in list(_pending):
        task.cancel()
    await asyncio.gather(*_pending, return_exceptions=True)
    _pending.clear()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.refresh_on_startup:
        logger.info("starting snapshot refresh every %ss", refresher.interval_s)
        refresher.start()
    yield
    await cancel_pending()
    await refresher.stop()


app = FastAPI(
    title="Amsterdam Afval Monitor API",
    description=(
        "Live aggregates over the City of Amsterdam open data for waste "
        "reports (meldingen, main category Afval) and collection-vehicle "
        "weighings: hotspots, backlog per district, material fractions, "
        "weight trends and monthly/hourly report patterns."
    ),
    version="0.1.0",
    lifespan=lifespan,
)


def filter_params(
    time_range: str = Query("24h", description="1h, 24h, 7d or 30d"),
    status: str = Query("all", description="all, open or closed"),
    category: list[str] | None = Query(None, description="Subcategory allow-list"),
    show_containers: bool = Query(False, description="Include waste containers"),
) -> FilterConfig:
    return FilterConfig.create(time_range, status, show_containers, category)


@app.get("/")
def root():
    """List available endpoints."""
    return {
        "endpoints": [
            {"path": "/health", "description": "Health check and refresh loop state"},
            {"path": "/filters", "description": "Valid filter values"},
            {"path": "/feed", "description": "Live report feed"},
            {"path": "/hotspots", "description": "Areas ranked by pressure score"},
            {"path": "/areas", "description": "Score rows per area"},
            {"path": "/backlog", "description": "Open-report backlog per district"},
            {"path": "/fractions", "description": "Collected weight per material fraction"},
            {"path": "/weight", "description": "Weight trend and live vehicle activity"},
            {"path": "/trends", "description": "Monthly counts and weekday/hour heatmap"},
            {"path": "/containers", "description": "Waste container locations"},
            {"path": "/snapshot", "description": "All panels, refreshed every 30s"},
        ]
    }


@app.get("/health")
def health():
    """Health check with refresh loop state."""
    return {
        "status": "ok",
        "snapshot": refresher.snapshot is not None,
        "generation": refresher.generation,
    }


@app.get("/filters", response_model=FilterOptions)
def filters():
    """Return valid values for all filter parameters."""
    return q.get_filter_options()


@app.get("/feed", response_model=FeedResponse)
async def feed(config: FilterConfig = Depends(filter_params)):
    """Map-placeable reports in the selected window, newest first."""
    return await q.get_feed(config)


@app.get("/hotspots", response_model=list[AreaScore])
async def hotspots(
    config: FilterConfig = Depends(filter_params),
    level: str = Query("buurt", description="buurt, wijk or stadsdeel"),
    limit: int = Query(20, ge=1, le=100, description="Max results"),
):
    """Areas ranked by pressure score (open + 0.25 x closed)."""
    return await q.get_hotspots(config, level=level, limit=limit)


@app.get("/areas", response_model=list[AreaScore])
async def areas(
    config: FilterConfig = Depends(filter_params),
    level: str = Query("stadsdeel", description="buurt, wijk or stadsdeel"),
):
    """Counts, resolution rate and durations per area, by open count."""
    return await q.get_area_scores(config, level=level)


@app.get("/backlog", response_model=list[BacklogRow])
async def backlog(level: str = Query("stadsdeel", description="buurt, wijk or stadsdeel")):
    """Open reports per area with the share open longer than the threshold."""
    return await q.get_backlog(level=level)


@app.get("/fractions", response_model=FractionResponse)
async def fractions(config: FilterConfig = Depends(filter_params)):
    """Collected weight per material fraction."""
    return await q.get_fractions(config)


@app.get("/weight", response_model=WeightResponse)
async def weight(config: FilterConfig = Depends(filter_params)):
    """Weight against the previous period, last-hour activity, top neighbourhoods."""
    return await q.get_weight(config)


@app.get("/trends", response_model=Trends)
async def trends():
    """Twelve-month report counts and the weekday/hour heatmap."""
    return await q.get_trends()


@app.get("/containers", response_model=list[Container])
async def containers():
    """Waste container locations."""
    return await q.get_containers()


@app.get("/snapshot", response_model=Snapshot)
def snapshot():
    """Latest published snapshot of every panel."""
    if refresher.snapshot is None:
        raise HTTPException(status_code=503, detail="Snapshot not ready yet")
    return refresher.snapshot


@app.put("/snapshot/filters", response_model=ActiveFilters, status_code=202)
async def set_snapshot_filters(body: ActiveFilters):
    """Switch the refreshed snapshot to new filters (debounced, last request wins)."""
    config = FilterConfig.create(body.time_range, body.status, body.show_containers, body.categories)
    task = asyncio.create_task(refresher.request(config))
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    return ActiveFilters(
        time_range=config.time_range,
        status=config.status,
        show_containers=config.show_containers,
        categories=list(config.categories),
    )
