"""Clean and parse raw open-data payloads into report, weighing and container records."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from .models import Container, Melding, Point, Weging, parse_date, parse_float, parse_time

logger = logging.getLogger(__name__)

GRAMS_PER_KG = 1000


def _point(geometry: Any) -> Point | None:
    """(lon, lat) from a GeoJSON point, or None."""
    if not isinstance(geometry, dict):
        return None
    coords = geometry.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None
    lon, lat = parse_float(coords[0]), parse_float(coords[1])
    if lon is None or lat is None:
        return None
    return (lon, lat)


def _flatten_feature(raw: dict) -> dict:
    """Turn a GeoJSON feature into the flat shape the JSON endpoints return."""
    if "properties" not in raw:
        return raw
    props = raw.get("properties")
    flat = dict(props) if isinstance(props, dict) else {}
    point = _point(raw.get("geometry"))
    if point is not None:
        flat.setdefault("longitudeVisualisatie", point[0])
        flat.setdefault("latitudeVisualisatie", point[1])
    return flat


def parse_meldingen(rows: Iterable[Any]) -> list[Melding]:
    """Parse report rows; rows that are not usable objects are skipped."""
    out = []
    skipped = 0
    for raw in rows:
        if not isinstance(raw, dict):
            skipped += 1
            continue
        try:
            out.append(Melding.model_validate(_flatten_feature(raw)))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning("skipped %d malformed melding rows", skipped)
    return out


def parse_weging(raw: dict) -> Weging | None:
    """Parse one weighing row. Rows without a date or a weight yield None."""
    day = parse_date(raw.get("datumWeging"))
    grams = parse_float(raw.get("nettoGewicht"))
    if day is None or not grams:
        return None
    return Weging(
        id=str(raw.get("id", "")),
        datum_weging=day,
        tijdstip_weging=parse_time(raw.get("tijdstipWeging")),
        weight_kg=grams / GRAMS_PER_KG,
        fractie=raw.get("fractieOmschrijving") or None,
        buurt_naam=raw.get("gbdBuurtNaam") or None,
        kenteken=raw.get("wegingKenteken") or None,
        location=_point(raw.get("geometrie")),
    )


def parse_wegingen(rows: Iterable[Any]) -> list[Weging]:
    """Parse weighing rows; malformed rows are skipped, unweighed ones dropped."""
    out = []
    skipped = 0
    for raw in rows:
        if not isinstance(raw, dict):
            skipped += 1
            continue
        try:
            weging = parse_weging(raw)
        except ValidationError:
            skipped += 1
            continue
        if weging is not None:
            out.append(weging)
    if skipped:
        logger.warning("skipped %d malformed weging rows", skipped)
    return out


def parse_containers(features: Iterable[Any]) -> list[Container]:
    """Containers from GeoJSON features; unplaceable ones are dropped."""
    out = []
    skipped = 0
    for feature in features:
        if not isinstance(feature, dict):
            skipped += 1
            continue
        point = _point(feature.get("geometry"))
        if point is None:
            continue
        props = feature.get("properties")
        if not isinstance(props, dict):
            props = {}
        try:
            out.append(Container(
                id=str(props.get("id", feature.get("id", ""))),
                fractie=props.get("fractieOmschrijving"),
                status=None if props.get("status") is None else str(props.get("status")),
                location=point,
            ))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.warning("skipped %d malformed container features", skipped)
    return out
