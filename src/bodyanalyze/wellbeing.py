"""
wellbeing.py – Composite wellbeing score
========================================
Four sub-scores on 0–10, combined with equal weight into a 0–100 score:

* HRV            – linear SDNN map (10 ms → 0, 100 ms → 10)
* Resting HR     – stepped thresholds (≥80 → 0 … <50 → 10)
* Activity       – steps vs goal (×4) + NEAT bonus + daylight bonus, cap 10
* Training load  – 7-day EPOC + TRIMP, non-monotonic (overtraining scores low)

Also hosts the body-battery placeholder.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from bodyanalyze.models import ColorBand, NeatStatus, NeatTrend, WellbeingScore
from bodyanalyze.settings import (
    DAILY_STEP_GOAL, NEUTRAL_SUBSCORE,
    LIGHT_LONG_MIN, LIGHT_SHORT_MIN,
    BODY_BATTERY_RANGE,
)
from bodyanalyze.zones import hrv_score

log = logging.getLogger(__name__)

# (lower bpm bound, score) – first match wins
RESTING_HR_STEPS: list[tuple[float, float]] = [
    (80.0, 0.0),
    (70.0, 3.0),
    (60.0, 6.0),
    (50.0, 8.0),
]
RESTING_HR_BEST = 10.0

# (upper 7-day load bound, score)
TRAINING_LOAD_STEPS: list[tuple[float, float]] = [
    (100.0, 2.0),
    (250.0, 5.0),
    (500.0, 8.0),
    (700.0, 6.0),
]
TRAINING_LOAD_OVERREACH = 3.0

NEAT_BONUS: dict[NeatStatus, float] = {
    NeatStatus.more_active: 3.5,
    NeatStatus.stable: 2.5,
    NeatStatus.less_active: 1.0,
}
NEAT_BONUS_UNAVAILABLE = 2.0

# (upper global score bound, band)
COLOR_BANDS: list[tuple[float, ColorBand]] = [
    (40.0, ColorBand.red),
    (55.0, ColorBand.orange),
    (70.0, ColorBand.yellow),
    (85.0, ColorBand.green),
    (95.0, ColorBand.blue),
]


# ═══════════════════════════════════════════════════════════════════════════════
# SUB-SCORES
# ═══════════════════════════════════════════════════════════════════════════════
def resting_hr_score(bpm: float) -> float:
    for lower, score in RESTING_HR_STEPS:
        if bpm >= lower:
            return score
    return RESTING_HR_BEST


def activity_score(
    steps: float,
    step_goal: Optional[int] = None,
    neat: Optional[NeatTrend] = None,
    light_minutes: float = 0.0,
) -> float:
    goal = step_goal if step_goal and step_goal > 0 else DAILY_STEP_GOAL
    score = min(max(steps, 0.0) / goal, 1.0) * 4.0

    score += NEAT_BONUS[neat.status] if neat is not None else NEAT_BONUS_UNAVAILABLE

    if light_minutes >= LIGHT_LONG_MIN:
        score += 2.5
    elif light_minutes >= LIGHT_SHORT_MIN:
        score += 1.5
    else:
        score += 0.5
    return min(score, 10.0)


def training_load_score(weekly_load: float) -> float:
    for upper, score in TRAINING_LOAD_STEPS:
        if weekly_load < upper:
            return score
    return TRAINING_LOAD_OVERREACH


# ═══════════════════════════════════════════════════════════════════════════════
# GLOBAL SCORE
# ═══════════════════════════════════════════════════════════════════════════════
def global_score(hrv: float, rhr: float, activity: float, training: float) -> float:
    raw = (hrv + rhr + activity + training) / 40.0 * 100.0
    return min(max(raw, 0.0), 100.0)


def color_band(score: float) -> ColorBand:
    for upper, band in COLOR_BANDS:
        if score < upper:
            return band
    return ColorBand.white


def wellbeing_score(
    sdnn_ms: Optional[float],
    resting_hr: Optional[float],
    steps_today: float,
    weekly_load: float,
    step_goal: Optional[int] = None,
    neat: Optional[NeatTrend] = None,
    light_minutes: float = 0.0,
    vo2max: Optional[float] = None,
) -> WellbeingScore:
    """
    Combine current sub-metrics into a WellbeingScore.

    A missing HRV or resting-HR reading contributes a neutral 5.0 instead of
    failing the whole score.
    """
    hrv = hrv_score(sdnn_ms) if sdnn_ms is not None else NEUTRAL_SUBSCORE
    rhr = resting_hr_score(resting_hr) if resting_hr is not None else NEUTRAL_SUBSCORE
    activity = activity_score(steps_today, step_goal, neat, light_minutes)
    training = training_load_score(weekly_load)
    score = global_score(hrv, rhr, activity, training)
    return WellbeingScore(
        hrv_sub=hrv,
        rhr_sub=rhr,
        activity_sub=activity,
        training_sub=training,
        global_score=score,
        color=color_band(score),
        vo2max=vo2max,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# BODY BATTERY (placeholder)
# ═══════════════════════════════════════════════════════════════════════════════
def estimate_body_battery(rng: Optional[np.random.Generator] = None) -> float:
    """
    STUB: there is no body-battery estimator yet. Returns a uniform draw in
    [4.0, 8.5] so the presentation layer has something to show. Pass a
    seeded generator for reproducible output.
    """
    rng = rng if rng is not None else np.random.default_rng()
    lo, hi = BODY_BATTERY_RANGE
    return float(rng.uniform(lo, hi))


def body_battery_band(score: float) -> ColorBand:
    if score < 3:
        return ColorBand.red
    if score < 7:
        return ColorBand.orange
    return ColorBand.green
