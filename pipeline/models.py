"""Record and aggregate models for waste reports and weighings.

Input records are parsed from the open-data API's flat JSON objects using the
source-native field names as aliases. Fields that cannot be parsed become
``None`` so that a single bad value never sinks a whole batch.

Aggregate rows are plain pydantic models; they are rebuilt on every pass.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

UNKNOWN = "Onbekend"

Point = tuple[float, float]  # (lon, lat)


def parse_date(v: Any) -> date | None:
    if v in (None, ""):
        return None
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v
    try:
        return date.fromisoformat(str(v)[:10])
    except ValueError:
        return None


def parse_time(v: Any) -> time | None:
    if v in (None, ""):
        return None
    if isinstance(v, time):
        return v
    try:
        return time.fromisoformat(str(v))
    except ValueError:
        return None


def parse_float(v: Any) -> float | None:
    if v in (None, ""):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def combine(d: date | None, t: time | None) -> datetime | None:
    """Date plus time-of-day; a missing time counts as midnight."""
    if d is None:
        return None
    return datetime.combine(d, t or time(0, 0, 0))


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


# ── input records ────────────────────────────────────────────────────────

class Melding(_Record):
    id: str
    hoofdcategorie: str | None = None
    subcategorie: str | None = None
    datum_melding: date | None = Field(None, alias="datumMelding")
    tijdstip_melding: time | None = Field(None, alias="tijdstipMelding")
    datum_overlast: date | None = Field(None, alias="datumOverlast")
    tijdstip_overlast: time | None = Field(None, alias="tijdstipOverlast")
    datum_afgesloten: date | None = Field(None, alias="datumAfgesloten")
    tijdstip_afgesloten: time | None = Field(None, alias="tijdstipAfgesloten")
    externe_status: str | None = Field(None, alias="externeStatus")
    interne_status: str | None = Field(None, alias="status")
    doorlooptijd_dagen: float | None = Field(None, alias="doorlooptijdDagen")
    doorlooptijd_kalenderdagen: float | None = Field(None, alias="doorlooptijdKalenderdagen")
    afhandeltermijn: date | None = Field(None, alias="afhandeltermijn")
    doorlooptijd_termijn: float | None = Field(None, alias="doorlooptijdTermijn")
    buurt_naam: str | None = Field(None, alias="gbdBuurtNaam")
    wijk_naam: str | None = Field(None, alias="gbdWijkNaam")
    stadsdeel_naam: str | None = Field(None, alias="gbdStadsdeelNaam")
    longitude: float | None = Field(None, alias="longitudeVisualisatie")
    latitude: float | None = Field(None, alias="latitudeVisualisatie")
    feedback_tevreden: str | None = Field(None, alias="feedbackTevreden")
    feedback_toelichting: str | None = Field(None, alias="feedbackToelichting")

    @field_validator(
        "datum_melding", "datum_overlast", "datum_afgesloten", "afhandeltermijn", mode="before"
    )
    @classmethod
    def parse_dates(cls, v: Any) -> date | None:
        return parse_date(v)

    @field_validator(
        "tijdstip_melding", "tijdstip_overlast", "tijdstip_afgesloten", mode="before"
    )
    @classmethod
    def parse_times(cls, v: Any) -> time | None:
        return parse_time(v)

    @field_validator(
        "doorlooptijd_dagen", "doorlooptijd_kalenderdagen", "doorlooptijd_termijn",
        "longitude", "latitude", mode="before",
    )
    @classmethod
    def parse_numbers(cls, v: Any) -> float | None:
        return parse_float(v)

    @field_validator("id", "hoofdcategorie", "subcategorie", "externe_status", "interne_status",
                     "buurt_naam", "wijk_naam", "stadsdeel_naam",
                     "feedback_tevreden", "feedback_toelichting", mode="before")
    @classmethod
    def as_str(cls, v: Any) -> str | None:
        if v is None:
            return None
        return str(v)

    @property
    def reported_at(self) -> datetime | None:
        return combine(self.datum_melding, self.tijdstip_melding)

    @property
    def closed_at(self) -> datetime | None:
        return combine(self.datum_afgesloten, self.tijdstip_afgesloten)

    @property
    def location(self) -> Point | None:
        # The source uses 0/empty for "no visualisation coordinates"
        if not self.longitude or not self.latitude:
            return None
        return (self.longitude, self.latitude)

    @property
    def is_open(self) -> bool:
        return self.externe_status == "Open"


class Weging(_Record):
    id: str
    datum_weging: date = Field(alias="datumWeging")
    tijdstip_weging: time | None = Field(None, alias="tijdstipWeging")
    weight_kg: float
    fractie: str | None = Field(None, alias="fractieOmschrijving")
    buurt_naam: str | None = Field(None, alias="gbdBuurtNaam")
    kenteken: str | None = Field(None, alias="wegingKenteken")
    location: Point | None = None

    @property
    def weighed_at(self) -> datetime:
        return combine(self.datum_weging, self.tijdstip_weging)


class Container(_Record):
    id: str
    fractie: str | None = None
    status: str | None = None
    location: Point


# ── aggregate rows ───────────────────────────────────────────────────────

class AreaScore(BaseModel):
    name: str
    open_count: int
    closed_count: int
    total: int
    score: float
    resolution_rate: int
    avg_duration_days: float | None
    median_duration_days: float | None
    center: Point | None


class BacklogRow(BaseModel):
    name: str
    open_count: int
    over_time_count: int
    over_time_pct: int
    median_days_open: int


class FractionWeight(BaseModel):
    fractie: str
    total_weight: float
    count: int
    percentage: int
    color: str


class NeighbourhoodWeight(BaseModel):
    buurt_naam: str
    total_weight: float
    count: int
    center: Point


class MonthlyCount(BaseModel):
    month: str  # "2025-01"
    label: str  # "Jan"
    count: int
    year: int


class HeatmapCell(BaseModel):
    day: int  # 0 = Sunday
    hour: int
    count: int
    intensity: float


class Peak(BaseModel):
    day: str
    hour: str


class Heatmap(BaseModel):
    cells: list[HeatmapCell]
    peak: Peak | None


class YearSummary(BaseModel):
    year_total: int
    previous_year_total: int
    year_change_pct: int


class Trends(BaseModel):
    monthly: list[MonthlyCount]
    heatmap: Heatmap
    summary: YearSummary


class WeightTrend(BaseModel):
    current_total: int
    previous_total: int
    percentage_change: int


class RecentWeging(BaseModel):
    id: str
    time: str
    kenteken: str
    weight: float
    location: str
    coordinates: Point
    fractie: str


class FeedItem(BaseModel):
    melding: Melding
    age: str
