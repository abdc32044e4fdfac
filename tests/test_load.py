import math
from datetime import timedelta

import pytest

from bodyanalyze.load import (
    daily_training_load, epoc_coefficient, epoc_for_workout, epoc_per_day,
    trimp, trimp_constants, trimp_for_workout, trimp_per_day,
)


# ─────────────────────────────────────────────────────────────────────────────
# EPOC
# ─────────────────────────────────────────────────────────────────────────────

def test_epoc_coefficient_bands():
    assert epoc_coefficient(0.5, 0.3) == pytest.approx(0.2)
    assert epoc_coefficient(0.65, 0.1) == pytest.approx(0.72)
    assert epoc_coefficient(0.95, 0.1) == pytest.approx(4.15)


def test_epoc_needs_two_samples(make_workout, morning):
    assert epoc_for_workout(make_workout(morning, [150]), 190) == 0.0
    assert epoc_for_workout(make_workout(morning, []), 190) == 0.0


def test_epoc_steady_state(make_workout, morning):
    # 150/190 ≈ 0.79 → base 1.5, no variation, 1 min
    w = make_workout(morning, [150, 150])
    assert epoc_for_workout(w, 190) == pytest.approx(1.5)


def test_epoc_recovery_decay(make_workout, morning):
    # below 60 % of max: 0.2 × 1 min, then × 0.9
    w = make_workout(morning, [100, 100])
    assert epoc_for_workout(w, 190) == pytest.approx(0.18)


def test_epoc_sample_order_does_not_matter(make_workout, morning):
    w = make_workout(morning, [120, 160, 175, 140, 110])
    shuffled = type(w)(w.start, w.end, w.activity_type, None, tuple(reversed(w.heart_rate)))
    assert epoc_for_workout(shuffled, 190) == pytest.approx(epoc_for_workout(w, 190))


def test_epoc_non_negative(make_workout, morning):
    w = make_workout(morning, [60, 80, 70, 90, 65, 60])
    assert epoc_for_workout(w, 190) >= 0.0


def test_epoc_per_day_groups_by_start_day(make_workout, morning):
    a = make_workout(morning, [150, 150])
    b = make_workout(morning + timedelta(hours=6), [150, 150])
    c = make_workout(morning + timedelta(days=1), [150, 150])
    daily = epoc_per_day([a, b, c], 190)
    assert daily[morning.date()] == pytest.approx(3.0)
    assert daily[morning.date() + timedelta(days=1)] == pytest.approx(1.5)
    assert len(daily) == 2


def test_epoc_per_day_empty():
    assert epoc_per_day([], 190) == {}


# ─────────────────────────────────────────────────────────────────────────────
# TRIMP
# ─────────────────────────────────────────────────────────────────────────────

def test_trimp_constants_by_sex():
    assert trimp_constants("Homme") == (0.64, 1.92)
    assert trimp_constants("Femme") == (0.86, 1.67)
    assert trimp_constants(None) == (0.64, 1.92)


def test_trimp_formula():
    r = 90 / 130
    expected = 60 * r * 0.64 * math.exp(1.92 * r)
    assert trimp(60, 150, 60, 190, "Homme") == pytest.approx(expected)


def test_trimp_guards():
    assert trimp(60, 150, 190, 190) == 0.0
    assert trimp(60, 50, 60, 190) == 0.0
    assert trimp(0, 150, 60, 190) == 0.0


def test_trimp_increases_with_average_hr():
    values = [trimp(45, hr, 60, 190, "Homme") for hr in range(61, 191, 5)]
    assert all(b > a for a, b in zip(values, values[1:]))


@pytest.mark.parametrize("sex", ["Homme", "Femme"])
def test_trimp_zero_at_resting_hr(sex):
    assert trimp(90, 60, 60, 190, sex) == 0.0


def test_trimp_for_workout_uses_mean_hr(make_workout, morning):
    w = make_workout(morning, [140, 160], interval_s=1800)
    expected = trimp(30, 150, 60, 190, "Femme")
    assert trimp_for_workout(w, 60, 190, "Femme") == pytest.approx(expected)


def test_trimp_without_samples_is_zero(make_workout, morning):
    w = make_workout(morning, [], duration_s=3600)
    assert trimp_for_workout(w, 60, 190) == 0.0
    assert trimp_per_day([w], 60, 190) == {morning.date(): 0.0}


def test_daily_training_load_union(today):
    epoc = {today: 10.0}
    tr = {today: 5.0, today - timedelta(days=1): 7.0}
    load = daily_training_load(epoc, tr)
    assert load == {today: 15.0, today - timedelta(days=1): 7.0}
