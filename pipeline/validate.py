"""Validate a fetched waste-report snapshot and print a quality report.

Flags suspicious data but never cleans it: extreme durations, for instance,
stay in the aggregates as valid values.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import duckdb

from .config import settings
from .models import Melding

# Amsterdam bounding box
AMS_LAT_MIN, AMS_LAT_MAX = 52.27, 52.45
AMS_LNG_MIN, AMS_LNG_MAX = 4.72, 5.08

EXTREME_DAYS = 730

COLUMNS = [
    ("id", "VARCHAR"),
    ("subcategorie", "VARCHAR"),
    ("externe_status", "VARCHAR"),
    ("stadsdeel_naam", "VARCHAR"),
    ("buurt_naam", "VARCHAR"),
    ("datum_melding", "DATE"),
    ("datum_afgesloten", "DATE"),
    ("doorlooptijd_dagen", "DOUBLE"),
    ("longitude", "DOUBLE"),
    ("latitude", "DOUBLE"),
]


def latest_snapshot(raw_dir: Path | None = None) -> Path | None:
    files = sorted(Path(raw_dir or settings.raw_dir).glob("meldingen_*.json"))
    return files[-1] if files else None


def load_snapshot(path: Path) -> list[Melding]:
    return [Melding.model_validate(row) for row in json.loads(path.read_text())]


def load(con: duckdb.DuckDBPyConnection, records: list[Melding]) -> None:
    """Create the ``meldingen`` table from parsed records."""
    cols = ", ".join(f"{name} {kind}" for name, kind in COLUMNS)
    con.execute(f"CREATE OR REPLACE TABLE meldingen ({cols})")
    if not records:
        return
    marks = ", ".join("?" for _ in COLUMNS)
    con.executemany(
        f"INSERT INTO meldingen VALUES ({marks})",
        [[getattr(m, name) for name, _ in COLUMNS] for m in records],
    )


def _scalar(con: duckdb.DuckDBPyConnection, sql: str):
    rows = con.execute(sql).fetchall()
    return rows[0][0] if rows else None


def validate(records: list[Melding] | None = None) -> int:
    """Run all checks, print report. Returns count of records flagged."""
    if records is None:
        path = latest_snapshot()
        if path is None:
            print(f"ERROR: no meldingen snapshot in {settings.raw_dir}. Run pipeline.ingest first.")
            return -1
        records = load_snapshot(path)

    con = duckdb.connect()
    try:
        load(con, records)
        return _report(con)
    finally:
        con.close()


def _report(con: duckdb.DuckDBPyConnection) -> int:
    issues = 0
    total = _scalar(con, "SELECT COUNT(*) FROM meldingen")
    print("=" * 64)
    print("  Amsterdam Afval meldingen: Data Validation Report")
    print("=" * 64)
    print(f"\nSnapshot: {total:,} rows")
    if not total:
        print("  Nothing to check")
        return 0

    lo, hi = con.execute("SELECT MIN(datum_melding), MAX(datum_melding) FROM meldingen").fetchone()
    print(f"Date range: {lo} to {hi}")

    # ── 1. Negative durations ────────────────────────────────────
    neg = _scalar(con, "SELECT COUNT(*) FROM meldingen WHERE doorlooptijd_dagen < 0")
    print(f"\n{'─' * 64}")
    print("1. Negative durations")
    if neg:
        issues += neg
        print(f"   FAIL  {neg:,} records")
    else:
        print("   PASS  No negative durations")

    # ── 2. Geographic outliers ───────────────────────────────────
    geo = _scalar(con, f"""
        SELECT COUNT(*) FROM meldingen
        WHERE latitude IS NOT NULL AND longitude IS NOT NULL
          AND (latitude < {AMS_LAT_MIN} OR latitude > {AMS_LAT_MAX}
               OR longitude < {AMS_LNG_MIN} OR longitude > {AMS_LNG_MAX})
    """)
    print(f"\n{'─' * 64}")
    print("2. Geographic outliers (outside Amsterdam bounds)")
    if geo:
        issues += geo
        print(f"   FAIL  {geo:,} records outside [{AMS_LAT_MIN}-{AMS_LAT_MAX}] lat, [{AMS_LNG_MIN}-{AMS_LNG_MAX}] lng")
    else:
        print("   PASS  All coordinates within Amsterdam bounds")

    # ── 3. Closed without closing date ───────────────────────────
    closed_no_date = _scalar(con, """
        SELECT COUNT(*) FROM meldingen
        WHERE externe_status <> 'Open' AND datum_afgesloten IS NULL
    """)
    print(f"\n{'─' * 64}")
    print("3. Status/date consistency (closed but no datum_afgesloten)")
    if closed_no_date:
        issues += closed_no_date
        print(f"   FAIL  {closed_no_date:,} closed records without a closing date")
    else:
        print("   PASS  All closed records have a closing date")

    # ── 4. Extreme durations ─────────────────────────────────────
    extreme = _scalar(con, f"SELECT COUNT(*) FROM meldingen WHERE doorlooptijd_dagen > {EXTREME_DAYS}")
    print(f"\n{'─' * 64}")
    print(f"4. Extreme durations (> {EXTREME_DAYS} days, kept in aggregates)")
    if extreme:
        issues += extreme
        longest = _scalar(con, "SELECT MAX(doorlooptijd_dagen) FROM meldingen")
        print(f"   WARN  {extreme:,} records (max: {longest:,.0f}d)")
    else:
        print("   PASS  No extreme durations")

    # ── 5. Missing critical fields ───────────────────────────────
    print(f"\n{'─' * 64}")
    print("5. Missing critical fields")
    fields = [
        ("datum_melding", "datum_melding IS NULL"),
        ("externe_status", "externe_status IS NULL OR externe_status = ''"),
        ("stadsdeel_naam", "stadsdeel_naam IS NULL OR stadsdeel_naam = ''"),
        ("buurt_naam", "buurt_naam IS NULL OR buurt_naam = ''"),
        ("lat/lng", "latitude IS NULL OR longitude IS NULL"),
    ]
    any_missing = False
    for name, condition in fields:
        cnt = _scalar(con, f"SELECT COUNT(*) FROM meldingen WHERE {condition}")
        pct = cnt / total * 100
        marker = "WARN" if pct > 1 else "INFO" if cnt > 0 else "PASS"
        if cnt:
            any_missing = True
            issues += cnt
        print(f"   {marker}  {name}: {cnt:,} missing ({pct:.1f}%)")
    if not any_missing:
        print("   PASS  No missing critical fields")

    # ── 6. Duplicate ids ─────────────────────────────────────────
    dupes = _scalar(con, """
        SELECT COALESCE(SUM(cnt), 0) FROM (
            SELECT COUNT(*) AS cnt FROM meldingen
            GROUP BY id HAVING COUNT(*) > 1
        )
    """)
    print(f"\n{'─' * 64}")
    print("6. Duplicate ids")
    if dupes:
        issues += int(dupes)
        print(f"   FAIL  {int(dupes):,} rows share an id")
    else:
        print("   PASS  No duplicate ids")

    # ── 7. Status distribution ───────────────────────────────────
    print(f"\n{'─' * 64}")
    print("7. Status distribution")
    statuses = con.execute("""
        SELECT externe_status, COUNT(*) AS cnt,
               ROUND(COUNT(*) * 100.0 / SUM(COUNT(*)) OVER(), 1) AS pct
        FROM meldingen
        GROUP BY externe_status
        ORDER BY cnt DESC
    """).fetchall()
    for status, cnt, pct in statuses:
        print(f"         {status or '(NULL)'}: {cnt:,} ({pct}%)")

    print(f"\n{'=' * 64}")
    if issues == 0:
        print("  ALL CHECKS PASSED")
    else:
        print(f"  {issues:,} total records flagged across all checks")
    print("=" * 64)
    return issues


if __name__ == "__main__":
    result = validate()
    sys.exit(1 if result > 0 else 0)
