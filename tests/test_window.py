from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from pipeline.window import RANGES, month_ranges, range_label, relative_age, resolve_window

from conftest import NOW


@pytest.mark.parametrize("token,span", [
    ("1h", timedelta(hours=1)),
    ("24h", timedelta(hours=24)),
    ("7d", timedelta(days=7)),
    ("30d", timedelta(days=30)),
])
def test_cutoffs(clock, token, span):
    w = resolve_window(token, clock)
    assert w.now == NOW
    assert w.cutoff == NOW - span
    assert w.previous == NOW - 2 * span


@pytest.mark.parametrize("token", list(RANGES) + ["bogus", ""])
def test_previous_period_is_as_wide_as_current(clock, token):
    w = resolve_window(token, clock)
    assert w.cutoff - w.previous == w.now - w.cutoff


def test_unknown_range_defaults_to_24h(clock):
    w = resolve_window("2w", clock)
    assert w.cutoff == NOW - timedelta(hours=24)
    assert range_label("2w") == "laatste 24 uur"


def test_window_membership(clock):
    w = resolve_window("1h", clock)
    assert w.current(w.cutoff)
    assert w.current(w.now)
    assert not w.current(w.now + timedelta(seconds=1))
    assert w.prior(w.previous)
    assert not w.prior(w.cutoff)


def test_month_ranges_trailing_twelve():
    months = month_ranges(NOW)
    assert len(months) == 12
    assert months[0].start == date(2025, 4, 1)
    assert months[0].end == date(2025, 4, 30)
    assert months[0].label == "Apr"
    assert months[-1].key == "2026-03"
    assert months[-1].label == "Mrt"
    assert months[-1].end == date(2026, 3, 31)
    feb = months[-2]
    assert (feb.start, feb.end, feb.year) == (date(2026, 2, 1), date(2026, 2, 28), 2026)


def test_month_ranges_in_january():
    months = month_ranges(datetime(2026, 1, 10))
    assert months[0].key == "2025-02"
    assert months[-1].key == "2026-01"
    assert [m.year for m in months].count(2025) == 11


def test_relative_age():
    assert relative_age(NOW - timedelta(hours=3, minutes=10), NOW) == "3u geleden"
    assert relative_age(NOW - timedelta(minutes=30), NOW) == "zojuist"
    assert relative_age(None, NOW) == ""
