from __future__ import annotations

from datetime import timedelta

import pytest

from pipeline.aggregate import (
    FALLBACK_COLOR,
    area_scores,
    backlog,
    by_stadsdeel,
    centroid,
    fraction_weights,
    group_by,
    hotspots,
    lower_median,
    neighbourhood_weights,
    pct,
    rank,
    round_half_up,
    score_area,
)
from pipeline.models import Melding

from conftest import NOW, make_melding, make_weging


def _closed(duration=None, **kw):
    return Melding(id="c", externe_status="Afgesloten", doorlooptijd_dagen=duration, **kw)


def _open(**kw):
    return Melding(id="o", externe_status="Open", **kw)


def test_district_scenario():
    records = [
        _open(stadsdeel_naam="A"),
        _open(stadsdeel_naam="A"),
        _closed(4, stadsdeel_naam="A"),
    ]
    [row] = area_scores(records, by_stadsdeel)
    assert row.name == "A"
    assert (row.open_count, row.closed_count, row.total) == (2, 1, 3)
    # 2.25 rounds half up to one decimal
    assert row.score == 2.3
    assert row.resolution_rate == 33
    assert row.median_duration_days == 4
    assert row.avg_duration_days == 4
    assert row.center is None


def test_counts_add_up_and_score_formula():
    for n_open, n_closed in [(0, 0), (1, 0), (0, 3), (5, 7), (3, 2)]:
        records = [_open()] * n_open + [_closed()] * n_closed
        row = score_area("x", records)
        assert row.open_count + row.closed_count == row.total == len(records)
        assert row.score == round_half_up(10 * (n_open + 0.25 * n_closed)) / 10


def test_empty_group_has_zero_rate():
    row = score_area("x", [])
    assert row.resolution_rate == 0
    assert row.median_duration_days is None


def test_median_duration():
    assert score_area("x", [_closed(d) for d in (3, 1, 2)]).median_duration_days == 2
    assert score_area("x", [_closed(d) for d in (4, 1, 2, 3)]).median_duration_days == 3
    assert lower_median([]) is None


def test_durations_only_from_closed_positive_values():
    records = [
        _closed(10),
        _closed(0),
        _closed(-2),
        _closed(None),
        _open(doorlooptijd_dagen=99),
    ]
    row = score_area("x", records)
    assert row.median_duration_days == 10
    assert row.avg_duration_days == 10


def test_extreme_durations_are_kept():
    row = score_area("x", [_closed(2), _closed(3), _closed(2000)])
    assert row.avg_duration_days == 668.3
    assert row.median_duration_days == 3


def test_centroid_is_mean_of_points():
    records = [
        _open(longitude=4.0, latitude=52.0),
        _open(longitude=5.0, latitude=53.0),
        _open(),
    ]
    assert score_area("x", records).center == (4.5, 52.5)
    assert centroid([]) is None


def test_group_by_drops_unknown_and_keeps_first_seen_order():
    records = [
        _open(buurt_naam="B"),
        _open(buurt_naam="Onbekend"),
        _open(buurt_naam=None),
        _open(buurt_naam="A"),
        _open(buurt_naam="B"),
    ]
    groups = group_by(records, lambda m: m.buurt_naam)
    assert list(groups) == ["B", "A"]
    assert len(groups["B"]) == 2


def test_rank_is_stable_and_truncates_after_sorting():
    rows = [("a", 1), ("b", 3), ("c", 3), ("d", 2)]
    assert rank(rows, lambda r: r[1]) == [("b", 3), ("c", 3), ("d", 2), ("a", 1)]
    assert rank(rows, lambda r: r[1], limit=2) == [("b", 3), ("c", 3)]


def test_hotspots_top_twenty_of_twenty_five():
    records = []
    for i in range(25):
        # Area i gets (i * 7) % 25 open reports, so sizes are shuffled
        for _ in range((i * 7) % 25 + 1):
            records.append(_open(buurt_naam=f"buurt-{i}", longitude=4.9, latitude=52.37))
    top = hotspots(records, limit=20)
    assert len(top) == 20
    scores = [r.score for r in top]
    assert scores == sorted(scores, reverse=True)
    everything = rank(area_scores(records), lambda r: r.score)
    assert top == everything[:20]


def test_hotspot_ties_keep_insertion_order():
    records = [
        _open(buurt_naam="first", longitude=4.9, latitude=52.37),
        _open(buurt_naam="second", longitude=4.9, latitude=52.37),
    ]
    assert [r.name for r in hotspots(records)] == ["first", "second"]


def test_hotspots_skip_areas_without_location():
    records = [
        _open(buurt_naam="placed", longitude=4.9, latitude=52.37),
        _open(buurt_naam="nowhere"),
        _open(buurt_naam="nowhere"),
    ]
    assert [r.name for r in hotspots(records)] == ["placed"]


def test_backlog():
    records = [
        make_melding(NOW - timedelta(days=1), stadsdeel_naam="Noord"),
        make_melding(NOW - timedelta(days=10), stadsdeel_naam="Noord"),
        make_melding(NOW - timedelta(days=20), stadsdeel_naam="Noord"),
        make_melding(NOW - timedelta(days=6), stadsdeel_naam="Oost"),
        make_melding(NOW - timedelta(days=2), stadsdeel_naam="Oost", externe_status="Afgesloten"),
        make_melding(NOW - timedelta(days=30), stadsdeel_naam=None),
    ]
    rows = backlog(records, NOW)
    assert [r.name for r in rows] == ["Noord", "Oost"]
    noord, oost = rows
    assert (noord.open_count, noord.over_time_count, noord.over_time_pct) == (3, 2, 67)
    assert noord.median_days_open == 10
    assert (oost.open_count, oost.over_time_count, oost.over_time_pct) == (1, 1, 100)


def test_backlog_threshold_is_exclusive():
    rows = backlog([make_melding(NOW - timedelta(days=5), stadsdeel_naam="West")], NOW)
    assert rows[0].over_time_count == 0


def test_fraction_scenario():
    rows = fraction_weights([
        make_weging(NOW, 10, fractie="Rest"),
        make_weging(NOW, 30, fractie="Glas"),
    ])
    assert [(r.fractie, r.total_weight, r.percentage) for r in rows] == [
        ("Glas", 30, 75),
        ("Rest", 10, 25),
    ]
    assert rows[0].color == "#10b981"


def test_unknown_fraction_keeps_fallback_color():
    rows = fraction_weights([
        make_weging(NOW, 50, fractie="GFT"),
        make_weging(NOW, 25, fractie=None),
        make_weging(NOW, 25, fractie="Papier"),
    ])
    by_name = {r.fractie: r for r in rows}
    assert by_name["GFT"].color == FALLBACK_COLOR
    assert by_name["GFT"].percentage == 50
    assert by_name["Onbekend"].percentage == 25
    assert sum(r.count for r in rows) == 3


def test_fraction_percentages_sum_to_about_100():
    rows = fraction_weights([
        make_weging(NOW, 1, fractie="Rest"),
        make_weging(NOW, 1, fractie="Glas"),
        make_weging(NOW, 1, fractie="Papier"),
    ])
    assert abs(sum(r.percentage for r in rows) - 100) <= len(rows)


def test_fraction_percentages_zero_without_weight():
    rows = fraction_weights([make_weging(NOW, 0.0, fractie="Rest")])
    assert [r.percentage for r in rows] == [0]
    assert fraction_weights([]) == []


def test_neighbourhood_weights():
    records = [
        make_weging(NOW, 100, buurt_naam="Jordaan", location=(4.88, 52.37)),
        make_weging(NOW, 50, buurt_naam="Jordaan", location=(4.90, 52.39)),
        make_weging(NOW, 500, buurt_naam="Pijp", location=None),
        make_weging(NOW, 20, buurt_naam="Oost", location=(4.93, 52.36)),
    ]
    rows = neighbourhood_weights(records, limit=15)
    assert [r.buurt_naam for r in rows] == ["Jordaan", "Oost"]
    assert rows[0].total_weight == 150
    assert rows[0].count == 2
    assert rows[0].center == pytest.approx((4.89, 52.38))


def test_rounding_helpers():
    assert round_half_up(2.25, 1) == 2.3
    assert round_half_up(-2.5) == -2
    assert pct(1, 0) == 0
    assert pct(1, 3) == 33
