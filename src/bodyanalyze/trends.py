"""
trends.py – Trend aggregators
=============================
Windowed aggregations over per-day maps produced by the load scorers and
the health-data provider.

Moduly
------
A. Weekly load total (EPOC + TRIMP, trailing 7 days)
B. ATL / CTL – decay-weighted averages (7 d × 0.9, 42 d × 0.975) + TSB form
C. Weekly EPOC total & multi-week EPOC average
D. NEAT trend – last 48 h active kcal vs 28-day baseline
E. Resting-HR trend – 48 h vs 7 d average
F. Steps – week-over-week trend, goal streak, average
G. Training-day classification & discipline distribution
H. Calendar weeks – running distance, calories, workout minutes
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from bodyanalyze.models import (
    Workout, RestingHREntry,
    NeatTrend, NeatStatus,
    RestingHRTrend, RestingHRStatus,
    StepTrend, StepDirection,
    FormStatus, TrainingDayType,
)
from bodyanalyze.settings import (
    ATL_DAYS, ATL_DECAY, CTL_DAYS, CTL_DECAY, WEEK_DAYS, EPOC_AVG_WEEKS,
    TSB_FRESH, TSB_FATIGUED,
    NEAT_BASELINE_DAYS, NEAT_LESS_ACTIVE_PCT, NEAT_MORE_ACTIVE_PCT,
    RHR_SHORT_DAYS, RHR_LONG_DAYS, RHR_IMPROVING_DELTA, RHR_FATIGUE_DELTA,
    STEP_TREND_TOLERANCE,
    HEAVY_DAY_MINUTES, REST_LOOKBACK_DAYS, DISCIPLINE_LOOKBACK_MONTHS,
    RUNNING_ACTIVITY_TYPES, WEEKLY_HISTORY_WEEKS, WORKOUT_WINDOW_DAYS,
)

log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════════════
def daily_series(values: dict[date, float], start: date, end: date) -> pd.Series:
    """Per-day map → Series over every day of [start, end], gaps filled with 0."""
    full_range = pd.date_range(start, end, freq="D")
    if not values:
        return pd.Series(0.0, index=full_range)
    s = pd.Series(list(values.values()), index=pd.to_datetime(list(values.keys())), dtype=float)
    s = s.groupby(level=0).sum()
    return s.reindex(full_range, fill_value=0.0)


def window_total(values: dict[date, float], today: date, days: int = WEEK_DAYS) -> float:
    """Sum over the trailing window [today − days + 1, today]."""
    if days <= 0:
        return 0.0
    start = today - timedelta(days=days - 1)
    return float(sum(v for d, v in values.items() if start <= d <= today))


# ═══════════════════════════════════════════════════════════════════════════════
# A – WEEKLY LOAD
# ═══════════════════════════════════════════════════════════════════════════════
def weekly_training_load(
    epoc: dict[date, float], trimp_map: dict[date, float], today: date
) -> float:
    return window_total(epoc, today) + window_total(trimp_map, today)


# ═══════════════════════════════════════════════════════════════════════════════
# B – ATL / CTL / TSB
# ═══════════════════════════════════════════════════════════════════════════════
def exponential_average(
    daily_load: dict[date, float], ref_day: date, days: int, decay: float
) -> float:
    """
    Decay-weighted average of the ``days`` days ending at ``ref_day``::

        w_i = decay^i   (i = 0 → ref_day)
        avg = Σ load_i · w_i / Σ w_i

    Days without load count as 0. Returns 0 for an empty window.
    """
    if days <= 0:
        return 0.0
    start = ref_day - timedelta(days=days - 1)
    # oldest → newest, so weights run decay^(days-1) … decay^0
    loads = daily_series(daily_load, start, ref_day).to_numpy()
    weights = decay ** np.arange(days - 1, -1, -1, dtype=float)
    total_weight = weights.sum()
    if total_weight <= 0:
        return 0.0
    return max(0.0, float(np.dot(loads, weights) / total_weight))


def acute_training_load(daily_load: dict[date, float], ref_day: date) -> float:
    return exponential_average(daily_load, ref_day, ATL_DAYS, ATL_DECAY)


def chronic_training_load(daily_load: dict[date, float], ref_day: date) -> float:
    return exponential_average(daily_load, ref_day, CTL_DAYS, CTL_DECAY)


def form_status(atl: float, ctl: float) -> tuple[float, FormStatus]:
    """TSB = CTL − ATL; > 10 fresh, < −10 fatigued, otherwise balanced."""
    tsb = ctl - atl
    if tsb > TSB_FRESH:
        return tsb, FormStatus.fresh
    if tsb < TSB_FATIGUED:
        return tsb, FormStatus.fatigued
    return tsb, FormStatus.balanced


# ═══════════════════════════════════════════════════════════════════════════════
# C – EPOC WEEKS
# ═══════════════════════════════════════════════════════════════════════════════
def weekly_epoc_total(epoc: dict[date, float], today: date) -> float:
    return window_total(epoc, today)


def average_weekly_epoc(
    epoc: dict[date, float], today: date, weeks: int = EPOC_AVG_WEEKS
) -> float:
    """Mean of the last ``weeks`` rolling 7-day EPOC totals (empty weeks count as 0)."""
    if weeks <= 0:
        return 0.0
    totals = [
        window_total(epoc, today - timedelta(days=WEEK_DAYS * i))
        for i in range(weeks)
    ]
    return float(sum(totals) / weeks)


# ═══════════════════════════════════════════════════════════════════════════════
# D – NEAT TREND
# ═══════════════════════════════════════════════════════════════════════════════
def day_elapsed_ratio(now: datetime) -> float:
    """Fraction of the calendar day elapsed at ``now`` (0 at midnight)."""
    midnight = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    return (now - midnight).total_seconds() / 86400.0


def neat_trend(
    active_kcal: dict[date, float], today: date, elapsed_ratio: float
) -> Optional[NeatTrend]:
    """
    Compare the last 48 h of active calories with the 28-day baseline.

    Today's value is extrapolated to a full day (``raw / elapsed_ratio``);
    a zero ratio yields a zero estimate. None when the baseline is empty.
    """
    baseline_start = today - timedelta(days=NEAT_BASELINE_DAYS)
    baseline_values = [
        v for d, v in active_kcal.items() if baseline_start <= d < today
    ]
    if not baseline_values:
        log.debug("NEAT: no baseline data before %s", today)
        return None
    baseline = float(np.mean(baseline_values))
    if baseline <= 0:
        return None

    today_raw = active_kcal.get(today, 0.0)
    today_estimated = today_raw / elapsed_ratio if elapsed_ratio > 0 else 0.0
    yesterday = active_kcal.get(today - timedelta(days=1), 0.0)
    avg2 = (yesterday + today_estimated) / 2.0

    variation = (avg2 - baseline) / baseline * 100.0
    if variation < NEAT_LESS_ACTIVE_PCT:
        status = NeatStatus.less_active
    elif variation >= NEAT_MORE_ACTIVE_PCT:
        status = NeatStatus.more_active
    else:
        status = NeatStatus.stable
    return NeatTrend(
        average_last_2_days=avg2,
        baseline_28_days=baseline,
        variation_percentage=variation,
        status=status,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# E – RESTING HR TREND
# ═══════════════════════════════════════════════════════════════════════════════
def average_resting_hr(entries: Iterable[RestingHREntry], today: date, days: int) -> Optional[float]:
    start = today - timedelta(days=days - 1)
    values = [e.bpm for e in entries if start <= e.day <= today]
    return float(np.mean(values)) if values else None


def resting_hr_trend(entries: Iterable[RestingHREntry], today: date) -> Optional[RestingHRTrend]:
    """48 h vs 7 d resting-HR delta: ≤ −2 improving, ≥ 3 possible fatigue."""
    entries = list(entries)
    avg_long = average_resting_hr(entries, today, RHR_LONG_DAYS)
    if avg_long is None:
        return None
    avg_short = average_resting_hr(entries, today, RHR_SHORT_DAYS)
    if avg_short is None:
        avg_short = avg_long
    delta = avg_short - avg_long
    if delta <= RHR_IMPROVING_DELTA:
        status = RestingHRStatus.improving
    elif delta >= RHR_FATIGUE_DELTA:
        status = RestingHRStatus.fatigue_possible
    else:
        status = RestingHRStatus.stable_variation
    return RestingHRTrend(average_48h=avg_short, average_7d=avg_long, delta=delta, status=status)


# ═══════════════════════════════════════════════════════════════════════════════
# F – STEPS
# ═══════════════════════════════════════════════════════════════════════════════
def step_trend(steps: dict[date, float], today: date) -> StepTrend:
    """Last 7 days (today included) vs the 7 days before, 5 % tolerance."""
    this_week = int(window_total(steps, today))
    last_week = int(window_total(steps, today - timedelta(days=WEEK_DAYS)))

    if last_week <= 0:
        return StepTrend(this_week, last_week, None, StepDirection.flat)

    rel = (this_week - last_week) / last_week
    if rel > STEP_TREND_TOLERANCE:
        direction = StepDirection.up
    elif rel < -STEP_TREND_TOLERANCE:
        direction = StepDirection.down
    else:
        direction = StepDirection.flat
    return StepTrend(this_week, last_week, rel * 100.0, direction)


def step_streak(steps: dict[date, float], today: date, goal: int) -> int:
    """
    Consecutive days meeting ``goal``, counted back from today – or from
    yesterday when today's goal is not reached yet.
    """
    if goal <= 0 or not steps:
        return 0
    earliest = min(steps)
    current = today
    if steps.get(today, 0) < goal:
        current = today - timedelta(days=1)

    streak = 0
    while current >= earliest and steps.get(current, 0) >= goal:
        streak += 1
        current -= timedelta(days=1)
    return streak


def average_steps(steps: dict[date, float]) -> float:
    return float(np.mean(list(steps.values()))) if steps else 0.0


# ═══════════════════════════════════════════════════════════════════════════════
# G – TRAINING DAYS & DISCIPLINES
# ═══════════════════════════════════════════════════════════════════════════════
def classify_training_days(workouts: Iterable[Workout]) -> dict[date, TrainingDayType]:
    """
    heavy (> 30 min of workouts) / light per training day; the 30 days up to
    the latest training day that carry no workout are marked rest.
    """
    minutes: dict[date, float] = {}
    for w in workouts:
        minutes[w.day] = minutes.get(w.day, 0.0) + w.duration / 60.0
    if not minutes:
        return {}

    days = {
        d: TrainingDayType.heavy if m > HEAVY_DAY_MINUTES else TrainingDayType.light
        for d, m in minutes.items()
    }
    last = max(minutes)
    for offset in range(REST_LOOKBACK_DAYS):
        days.setdefault(last - timedelta(days=offset), TrainingDayType.rest)
    return days


def discipline_distribution(workouts: Iterable[Workout], today: date) -> dict[str, int]:
    """Number of workouts per activity type started since the same day last month."""
    since = (pd.Timestamp(today) - pd.DateOffset(months=DISCIPLINE_LOOKBACK_MONTHS)).date()
    return dict(Counter(w.activity_type for w in workouts if w.day >= since))


# ═══════════════════════════════════════════════════════════════════════════════
# H – CALENDAR WEEKS
# ═══════════════════════════════════════════════════════════════════════════════
def week_start(day: date) -> date:
    """Monday of the calendar week containing ``day``."""
    return day - timedelta(days=day.weekday())


def calendar_weeks(today: date, weeks: int = WEEKLY_HISTORY_WEEKS) -> list[tuple[date, date]]:
    """
    [(monday, last_day), ...] oldest → newest for the last ``weeks`` calendar
    weeks; the current week ends at ``today``.
    """
    current = week_start(today)
    out = []
    for i in range(weeks - 1, -1, -1):
        start = current - timedelta(weeks=i)
        end = today if i == 0 else start + timedelta(days=6)
        out.append((start, end))
    return out


def weekly_totals(
    values: dict[date, float], today: date, weeks: int = WEEKLY_HISTORY_WEEKS
) -> list[tuple[date, float]]:
    """Per-day map summed per calendar week, keyed by the week's Monday."""
    if weeks <= 0:
        return []
    spans = calendar_weeks(today, weeks)
    s = daily_series(values, spans[0][0], today)
    return [
        (start, float(s.loc[pd.Timestamp(start):pd.Timestamp(end)].sum()))
        for start, end in spans
    ]


def weekly_calories(
    active_kcal: dict[date, float],
    basal_kcal: dict[date, float],
    today: date,
    weeks: int = WEEKLY_HISTORY_WEEKS,
) -> list[tuple[date, float]]:
    """Active + basal kcal per calendar week."""
    total = {d: active_kcal.get(d, 0.0) + basal_kcal.get(d, 0.0)
             for d in set(active_kcal) | set(basal_kcal)}
    return weekly_totals(total, today, weeks)


def is_running(activity_type: str) -> bool:
    return activity_type.strip().lower() in RUNNING_ACTIVITY_TYPES


def weekly_running_distances(
    workouts: Iterable[Workout], today: date, weeks: int = WEEKLY_HISTORY_WEEKS
) -> list[tuple[date, float]]:
    """Running km per calendar week (workouts without a distance count 0)."""
    km: dict[date, float] = {}
    for w in workouts:
        if is_running(w.activity_type) and w.total_distance:
            km[w.day] = km.get(w.day, 0.0) + w.total_distance
    return weekly_totals(km, today, weeks)


def average_weekly_distance(distances: list[tuple[date, float]]) -> float:
    if not distances:
        return 0.0
    return float(np.mean([km for _, km in distances]))


def weekly_workout_minutes(
    workouts: Iterable[Workout], now: datetime, days: int = WORKOUT_WINDOW_DAYS
) -> int:
    """Whole minutes of the workouts started in the last ``days`` × 24 h."""
    since = now - timedelta(days=days)
    return sum(int(w.duration // 60) for w in workouts if since <= w.start <= now)
