"""FastMCP server exposing Amsterdam waste data aggregates as tools."""

from __future__ import annotations

from fastmcp import FastMCP

from pipeline.filters import FilterConfig

from . import queries as q

mcp = FastMCP(
    "Amsterdam Afval Monitor",
    instructions=(
        "Live City of Amsterdam open data on waste reports (meldingen, main "
        "category Afval) and collection-vehicle weighings. "
        "Call get_filter_options first to see valid time ranges, statuses, "
        "material fractions and area levels. "
        "Weights are in kilograms, durations in days, times are local "
        "Amsterdam time."
    ),
)


@mcp.tool()
def get_filter_options() -> dict:
    """Return valid filter values: time_ranges, statuses, fractions, area_levels.

    Call this first to discover what values you can pass to other tools.
    """
    return q.get_filter_options()


@mcp.tool()
async def get_feed(time_range: str = "24h", status: str = "all") -> dict:
    """Latest map-placeable waste reports in the time range, newest first.

    Returns: label, count, items (each with melding and a relative age).
    """
    return await q.get_feed(FilterConfig.create(time_range, status))


@mcp.tool()
async def get_hotspots(
    time_range: str = "24h",
    status: str = "all",
    level: str = "buurt",
    limit: int = 20,
) -> list[dict]:
    """Areas ranked by pressure score (open + 0.25 x closed reports).

    Returns: name, open_count, closed_count, total, score, resolution_rate,
    avg_duration_days, median_duration_days, center (lon, lat).
    level is buurt, wijk or stadsdeel.
    """
    return await q.get_hotspots(FilterConfig.create(time_range, status), level=level, limit=limit)


@mcp.tool()
async def get_backlog(level: str = "stadsdeel") -> list[dict]:
    """Open-report backlog per area.

    Returns: name, open_count, over_time_count (open > 5 days),
    over_time_pct, median_days_open. Sorted by open_count.
    """
    return await q.get_backlog(level=level)


@mcp.tool()
async def get_fractions(time_range: str = "24h") -> dict:
    """Collected weight per material fraction (Rest, Papier, Glas, Textiel, Plastic).

    Returns: total_weight (kg) and fractions with total_weight, count,
    percentage of the total and display color.
    """
    return await q.get_fractions(FilterConfig.create(time_range))


@mcp.tool()
async def get_weight(time_range: str = "24h") -> dict:
    """Collected weight against the previous period of equal length.

    Returns: trend (current_total, previous_total, percentage_change),
    recent (weighings in the last hour) and the heaviest neighbourhoods.
    """
    return await q.get_weight(FilterConfig.create(time_range))


@mcp.tool()
async def get_trends() -> dict:
    """Report counts for the last 12 months plus a weekday/hour heatmap.

    Returns: monthly (month, label, count, year), heatmap (cells with
    day 0=Sun..6=Sat, hour 6-22, count, intensity; peak) and summary
    (year_total, previous_year_total, year_change_pct).
    """
    return await q.get_trends()


def main():
    mcp.run()


if __name__ == "__main__":
    main()
