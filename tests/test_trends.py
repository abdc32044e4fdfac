from dataclasses import replace
from datetime import date, datetime, timedelta

import pytest

from bodyanalyze.models import (
    FormStatus, NeatStatus, RestingHREntry, RestingHRStatus, StepDirection, TrainingDayType,
)
from bodyanalyze.trends import (
    acute_training_load, average_resting_hr, average_steps, average_weekly_epoc,
    chronic_training_load, classify_training_days, daily_series, day_elapsed_ratio,
    discipline_distribution, exponential_average, form_status, neat_trend,
    resting_hr_trend, step_streak, step_trend, weekly_epoc_total, weekly_training_load,
    window_total,
    average_weekly_distance, calendar_weeks, is_running, week_start, weekly_calories,
    weekly_running_distances, weekly_totals, weekly_workout_minutes,
)


def _days(today, n, value, offset=0):
    return {today - timedelta(days=offset + i): value for i in range(n)}


# ─────────────────────────────────────────────────────────────────────────────
# HELPERS / WEEKLY LOAD
# ─────────────────────────────────────────────────────────────────────────────

def test_daily_series_fills_gaps(today):
    s = daily_series({today: 3.0}, today - timedelta(days=2), today)
    assert list(s) == [0.0, 0.0, 3.0]


def test_window_total_bounds(today):
    values = {today: 1.0, today - timedelta(days=6): 2.0, today - timedelta(days=7): 100.0}
    assert window_total(values, today) == 3.0


def test_weekly_training_load(today):
    epoc = {today: 10.0, today - timedelta(days=3): 5.0}
    tr = {today - timedelta(days=1): 20.0, today - timedelta(days=10): 99.0}
    assert weekly_training_load(epoc, tr, today) == 35.0


# ─────────────────────────────────────────────────────────────────────────────
# ATL / CTL / TSB
# ─────────────────────────────────────────────────────────────────────────────

def test_exponential_average_constant_load(today):
    load = _days(today, 42, 100.0)
    assert acute_training_load(load, today) == pytest.approx(100.0)
    assert chronic_training_load(load, today) == pytest.approx(100.0)


def test_exponential_average_empty(today):
    assert acute_training_load({}, today) == 0.0
    assert exponential_average({today: 5.0}, today, 0, 0.9) == 0.0


def test_exponential_average_weights_newest_most(today):
    total_weight = sum(0.9 ** i for i in range(7))
    assert acute_training_load({today: 100.0}, today) == pytest.approx(100.0 / total_weight)
    oldest = today - timedelta(days=6)
    assert acute_training_load({oldest: 100.0}, today) == pytest.approx(100.0 * 0.9 ** 6 / total_weight)


def test_load_outside_window_ignored(today):
    assert acute_training_load({today - timedelta(days=7): 500.0}, today) == 0.0


@pytest.mark.parametrize("atl, ctl, status", [
    (20.0, 40.0, FormStatus.fresh),
    (50.0, 30.0, FormStatus.fatigued),
    (30.0, 35.0, FormStatus.balanced),
])
def test_form_status(atl, ctl, status):
    tsb, form = form_status(atl, ctl)
    assert tsb == pytest.approx(ctl - atl)
    assert form is status


# ─────────────────────────────────────────────────────────────────────────────
# EPOC WEEKS
# ─────────────────────────────────────────────────────────────────────────────

def test_weekly_epoc(today):
    epoc = {today: 60.0, today - timedelta(days=8): 30.0}
    assert weekly_epoc_total(epoc, today) == 60.0
    assert average_weekly_epoc(epoc, today) == pytest.approx(15.0)


# ─────────────────────────────────────────────────────────────────────────────
# NEAT
# ─────────────────────────────────────────────────────────────────────────────

def test_day_elapsed_ratio():
    assert day_elapsed_ratio(datetime(2024, 5, 15, 12, 0)) == pytest.approx(0.5)
    assert day_elapsed_ratio(datetime(2024, 5, 15)) == 0.0


def test_neat_stable_with_extrapolation(today):
    kcal = _days(today, 28, 500.0, offset=1)
    kcal[today] = 250.0
    trend = neat_trend(kcal, today, 0.5)
    assert trend.baseline_28_days == pytest.approx(500.0)
    assert trend.average_last_2_days == pytest.approx(500.0)
    assert trend.status is NeatStatus.stable


def test_neat_less_active(today):
    kcal = _days(today, 28, 500.0, offset=1)
    kcal[today - timedelta(days=1)] = 300.0
    kcal[today] = 100.0
    trend = neat_trend(kcal, today, 0.5)
    # baseline includes the lowered yesterday: (27 × 500 + 300) / 28
    baseline = (27 * 500.0 + 300.0) / 28
    assert trend.baseline_28_days == pytest.approx(baseline)
    assert trend.average_last_2_days == pytest.approx(250.0)
    assert trend.status is NeatStatus.less_active


def test_neat_more_active(today):
    kcal = _days(today, 28, 500.0, offset=1)
    kcal[today] = 1000.0
    trend = neat_trend(kcal, today, 1.0)
    assert trend.variation_percentage == pytest.approx(50.0)
    assert trend.status is NeatStatus.more_active


def test_neat_zero_elapsed_ratio(today):
    kcal = _days(today, 28, 500.0, offset=1)
    kcal[today] = 300.0
    trend = neat_trend(kcal, today, 0.0)
    assert trend.average_last_2_days == pytest.approx(250.0)


def test_neat_no_baseline(today):
    assert neat_trend({today: 400.0}, today, 0.5) is None
    assert neat_trend({}, today, 0.5) is None


# ─────────────────────────────────────────────────────────────────────────────
# RESTING HR
# ─────────────────────────────────────────────────────────────────────────────

def _rhr(today, recent):
    entries = [RestingHREntry(today - timedelta(days=i), 60.0) for i in range(2, 7)]
    entries += [RestingHREntry(today - timedelta(days=i), recent) for i in range(2)]
    return entries


@pytest.mark.parametrize("recent, status", [
    (64.0, RestingHRStatus.stable_variation),
    (66.0, RestingHRStatus.fatigue_possible),
    (56.0, RestingHRStatus.improving),
])
def test_resting_hr_trend(today, recent, status):
    trend = resting_hr_trend(_rhr(today, recent), today)
    assert trend.average_48h == pytest.approx(recent)
    assert trend.average_7d == pytest.approx((5 * 60.0 + 2 * recent) / 7)
    assert trend.status is status


def test_resting_hr_trend_empty(today):
    assert resting_hr_trend([], today) is None
    old = [RestingHREntry(today - timedelta(days=10), 55.0)]
    assert resting_hr_trend(old, today) is None


def test_resting_hr_trend_without_recent_days(today):
    entries = [RestingHREntry(today - timedelta(days=4), 58.0)]
    trend = resting_hr_trend(entries, today)
    assert trend.delta == 0.0
    assert trend.status is RestingHRStatus.stable_variation


def test_average_resting_hr_window(today):
    entries = [RestingHREntry(today, 50.0), RestingHREntry(today - timedelta(days=1), 54.0)]
    assert average_resting_hr(entries, today, 1) == 50.0
    assert average_resting_hr(entries, today, 2) == 52.0


# ─────────────────────────────────────────────────────────────────────────────
# STEPS
# ─────────────────────────────────────────────────────────────────────────────

def test_step_trend_up(today):
    steps = {**_days(today, 7, 10000.0), **_days(today, 7, 8000.0, offset=7)}
    trend = step_trend(steps, today)
    assert trend.this_week_total == 70000
    assert trend.last_week_total == 56000
    assert trend.percentage_change == pytest.approx(25.0)
    assert trend.direction is StepDirection.up


def test_step_trend_flat_within_tolerance(today):
    steps = {**_days(today, 7, 10200.0), **_days(today, 7, 10000.0, offset=7)}
    assert step_trend(steps, today).direction is StepDirection.flat


def test_step_trend_no_previous_week(today):
    trend = step_trend(_days(today, 7, 5000.0), today)
    assert trend.percentage_change is None
    assert trend.direction is StepDirection.flat


def test_step_streak_counts_today(today):
    steps = {today: 9000, today - timedelta(days=1): 9000, today - timedelta(days=2): 5000}
    assert step_streak(steps, today, 8000) == 2


def test_step_streak_starts_yesterday_when_today_pending(today):
    steps = {
        today: 3000,
        today - timedelta(days=1): 9000,
        today - timedelta(days=2): 9000,
        today - timedelta(days=3): 1000,
    }
    assert step_streak(steps, today, 8000) == 2


def test_step_streak_bounded_by_history(today):
    assert step_streak(_days(today, 5, 12000), today, 8000) == 5
    assert step_streak({}, today, 8000) == 0
    assert step_streak({today: 12000}, today, 0) == 0


def test_average_steps():
    assert average_steps({date(2024, 1, 1): 4000, date(2024, 1, 2): 6000}) == 5000.0
    assert average_steps({}) == 0.0


# ─────────────────────────────────────────────────────────────────────────────
# TRAINING DAYS & DISCIPLINES
# ─────────────────────────────────────────────────────────────────────────────

def test_classify_training_days(make_workout, morning):
    heavy = make_workout(morning, [140] * 46)                             # 45 min
    light = make_workout(morning - timedelta(days=2), [130] * 21)         # 20 min
    days = classify_training_days([heavy, light])
    d = morning.date()
    assert days[d] is TrainingDayType.heavy
    assert days[d - timedelta(days=2)] is TrainingDayType.light
    assert days[d - timedelta(days=1)] is TrainingDayType.rest
    assert len(days) == 30


def test_classify_training_days_empty():
    assert classify_training_days([]) == {}


def test_discipline_distribution(make_workout, morning, today):
    ws = [
        make_workout(morning, [120, 130], activity="running"),
        make_workout(morning - timedelta(days=3), [120, 130], activity="running"),
        make_workout(morning - timedelta(days=5), [120, 130], activity="cycling"),
        make_workout(morning - timedelta(days=60), [120, 130], activity="swimming"),
    ]
    assert discipline_distribution(ws, today) == {"running": 2, "cycling": 1}


def test_discipline_distribution_uses_calendar_month(make_workout):
    end_of_march = date(2024, 3, 31)
    ws = [
        make_workout(datetime(2024, 2, 28, 8), [120, 130], activity="swimming"),
        make_workout(datetime(2024, 2, 29, 8), [120, 130], activity="cycling"),
        make_workout(datetime(2024, 3, 30, 8), [120, 130], activity="running"),
    ]
    assert discipline_distribution(ws, end_of_march) == {"cycling": 1, "running": 1}


# ─────────────────────────────────────────────────────────────────────────────
# CALENDAR WEEKS
# ─────────────────────────────────────────────────────────────────────────────

def test_week_start_is_monday(today):
    assert week_start(today) == date(2024, 5, 13)
    assert week_start(date(2024, 5, 13)) == date(2024, 5, 13)
    assert week_start(date(2024, 5, 19)) == date(2024, 5, 13)


def test_calendar_weeks_end_at_today(today):
    weeks = calendar_weeks(today, 3)
    assert weeks == [
        (date(2024, 4, 29), date(2024, 5, 5)),
        (date(2024, 5, 6), date(2024, 5, 12)),
        (date(2024, 5, 13), today),
    ]
    assert len(calendar_weeks(today)) == 6


def test_weekly_totals(today):
    values = {date(2024, 5, 6): 2.0, date(2024, 5, 12): 3.0, date(2024, 5, 14): 4.0,
              date(2024, 4, 1): 99.0, date(2024, 5, 16): 99.0}
    assert weekly_totals(values, today, 2) == [(date(2024, 5, 6), 5.0), (date(2024, 5, 13), 4.0)]
    assert weekly_totals(values, today, 0) == []


def test_weekly_calories_add_active_and_basal(today):
    active = {date(2024, 5, 13): 500.0, date(2024, 5, 14): 300.0}
    basal = {date(2024, 5, 14): 1600.0, date(2024, 5, 8): 1700.0}
    assert weekly_calories(active, basal, today, 2) == [
        (date(2024, 5, 6), 1700.0), (date(2024, 5, 13), 2400.0),
    ]


def test_is_running():
    assert is_running("running")
    assert is_running(" Run ")
    assert not is_running("cycling")


def test_weekly_running_distances(make_workout, morning, today):
    ws = [
        replace(make_workout(morning, [140, 150]), total_distance=10.0),
        replace(make_workout(morning - timedelta(days=1), [140, 150], activity="run"),
                total_distance=5.5),
        replace(make_workout(morning - timedelta(days=3), [140, 150], activity="cycling"),
                total_distance=40.0),
        replace(make_workout(morning - timedelta(days=7), [140, 150]), total_distance=8.0),
        make_workout(morning - timedelta(days=8), [140, 150]),
    ]
    distances = weekly_running_distances(ws, today)
    assert len(distances) == 6
    assert distances[-1] == (date(2024, 5, 13), pytest.approx(15.5))
    assert distances[-2] == (date(2024, 5, 6), pytest.approx(8.0))
    assert sum(km for _, km in distances[:-2]) == 0.0
    assert average_weekly_distance(distances) == pytest.approx(23.5 / 6)


def test_average_weekly_distance_empty():
    assert average_weekly_distance([]) == 0.0


def test_weekly_workout_minutes_last_seven_days(make_workout, morning):
    now = morning + timedelta(hours=4)
    ws = [
        make_workout(morning, [140], duration_s=45 * 60 + 59),
        make_workout(morning - timedelta(days=6), [140], duration_s=30 * 60),
        make_workout(morning - timedelta(days=7, hours=1), [140], duration_s=60 * 60),
        make_workout(now + timedelta(hours=1), [140], duration_s=20 * 60),
    ]
    assert weekly_workout_minutes(ws, now) == 75
    assert weekly_workout_minutes([], now) == 0
