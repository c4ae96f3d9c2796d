from __future__ import annotations

import json
from datetime import date

import duckdb

from pipeline import validate as v
from pipeline.models import Melding


def _clean(i, **kw):
    fields = {
        "id": str(i),
        "subcategorie": "Grof afval",
        "externe_status": "Afgesloten",
        "stadsdeel_naam": "Centrum",
        "buurt_naam": "Jordaan",
        "datum_melding": date(2026, 3, 1),
        "datum_afgesloten": date(2026, 3, 3),
        "doorlooptijd_dagen": 2,
        "longitude": 4.88,
        "latitude": 52.37,
    }
    fields.update(kw)
    return Melding(**fields)


def test_clean_snapshot_passes(capsys):
    assert v.validate([_clean(1), _clean(2)]) == 0
    out = capsys.readouterr().out
    assert "ALL CHECKS PASSED" in out
    assert "Snapshot: 2 rows" in out


def test_flags_each_problem(capsys):
    records = [
        _clean(1, doorlooptijd_dagen=-1),
        _clean(2, longitude=3.5),
        _clean(3, datum_afgesloten=None),
        _clean(4, doorlooptijd_dagen=1000),
        _clean(5),
        _clean(5),
    ]
    flagged = v.validate(records)
    out = capsys.readouterr().out
    assert "FAIL  1 records" in out
    assert "outside" in out
    assert "1 closed records without a closing date" in out
    assert "WARN  1 records (max: 1,000d)" in out
    assert "FAIL  2 rows share an id" in out
    assert flagged == 1 + 1 + 1 + 1 + 2


def test_empty_snapshot(capsys):
    assert v.validate([]) == 0
    assert "Nothing to check" in capsys.readouterr().out


def test_load_creates_table():
    con = duckdb.connect()
    v.load(con, [_clean(1), _clean(2, externe_status="Open", datum_afgesloten=None)])
    rows = con.execute(
        "SELECT externe_status, COUNT(*) FROM meldingen GROUP BY 1 ORDER BY 1"
    ).fetchall()
    assert rows == [("Afgesloten", 1), ("Open", 1)]
    con.close()


def test_reads_latest_snapshot_file(tmp_path):
    (tmp_path / "meldingen_20260101T000000.json").write_text("[]")
    latest = tmp_path / "meldingen_20260315T120000.json"
    latest.write_text(json.dumps([_clean(9).model_dump(mode="json")]))
    assert v.latest_snapshot(tmp_path) == latest
    [m] = v.load_snapshot(latest)
    assert m.id == "9"
    assert m.datum_melding == date(2026, 3, 1)


def test_missing_snapshot_dir(tmp_path):
    assert v.latest_snapshot(tmp_path) is None
