from __future__ import annotations

import itertools
from datetime import date, datetime, time, timedelta

import pytest

from pipeline.models import Melding, Weging

# A Sunday, midday
NOW = datetime(2026, 3, 15, 12, 0, 0)

_ids = itertools.count(1)


def make_melding(at: datetime | None = None, *, time_known: bool = True, **kw) -> Melding:
    fields = {"id": str(next(_ids)), "hoofdcategorie": "Afval", "externe_status": "Open"}
    if at is not None:
        fields["datum_melding"] = at.date()
        if time_known:
            fields["tijdstip_melding"] = at.time()
    fields.update(kw)
    return Melding(**fields)


def make_weging(at: datetime, weight_kg: float = 100.0, **kw) -> Weging:
    fields = {
        "id": str(next(_ids)),
        "datum_weging": at.date(),
        "tijdstip_weging": at.time(),
        "weight_kg": weight_kg,
        "location": (4.9, 52.37),
    }
    fields.update(kw)
    return Weging(**fields)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def mixed_meldingen() -> list[Melding]:
    """Reports spread over the last 40 days, with and without location/time."""
    out = []
    for hours in (0.5, 2, 20, 30, 24 * 5, 24 * 10, 24 * 29, 24 * 40):
        at = NOW - timedelta(hours=hours)
        out.append(make_melding(at, externe_status="Open", longitude=4.9, latitude=52.37))
        out.append(make_melding(at, externe_status="Afgesloten"))
    out.append(make_melding(None))
    out.append(Melding(id="no-time", datum_melding=date(2026, 3, 15), tijdstip_melding=None))
    out.append(Melding(id="early", datum_melding=date(2026, 3, 15), tijdstip_melding=time(1, 0)))
    return out
