"""
load.py – EPOC & TRIMP load scoring
===================================
Per-workout load scores computed from heart-rate samples, aggregated per
calendar day (the start day of the workout).

EPOC (dynamic coefficient model)
--------------------------------
For each pair of consecutive samples::

    bpm_pct   = bpm_i / MaxHR
    variation = |bpm_i − bpm_{i−1}| / max(bpm_{i−1}, 1)
    score    += coefficient(bpm_pct, variation) × dt_min

Below 60 % of MaxHR the running score decays by 10 % on that step
(recovery).

TRIMP (Banister)
----------------
    TRIMP = t_min × r × k1 × e^(k2 × r),   r = (avgHR − RHR) / (MaxHR − RHR)

k1=0.64, k2=1.92 for men; k1=0.86, k2=1.67 for women.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

import numpy as np

from bodyanalyze.models import Workout, is_female
from bodyanalyze.settings import (
    TRIMP_MALE, TRIMP_FEMALE,
    EPOC_RECOVERY_PCT, EPOC_RECOVERY_DECAY,
)

log = logging.getLogger(__name__)

# (upper bpm_pct bound, base coefficient, variation gain)
EPOC_COEFFICIENTS: list[tuple[float, float, float]] = [
    (0.60, 0.2, 0.0),
    (0.70, 0.7, 0.2),
    (0.80, 1.5, 0.5),
    (0.90, 2.5, 1.0),
    (math.inf, 4.0, 1.5),
]


# ═══════════════════════════════════════════════════════════════════════════════
# EPOC
# ═══════════════════════════════════════════════════════════════════════════════
def epoc_coefficient(bpm_pct: float, variation: float) -> float:
    for upper, base, gain in EPOC_COEFFICIENTS:
        if bpm_pct < upper:
            return base + variation * gain
    return EPOC_COEFFICIENTS[-1][1] + variation * EPOC_COEFFICIENTS[-1][2]


def epoc_for_workout(workout: Workout, max_hr: float) -> float:
    """Accumulated EPOC score of one workout (0 with fewer than two samples)."""
    samples = workout.sorted_samples()
    if len(samples) < 2 or max_hr <= 0:
        return 0.0

    score = 0.0
    for prev, curr in zip(samples, samples[1:]):
        dt_min = (curr.timestamp - prev.timestamp).total_seconds() / 60.0
        if dt_min <= 0:
            continue
        bpm_pct = curr.bpm / max_hr
        variation = abs(curr.bpm - prev.bpm) / max(prev.bpm, 1.0)
        score = max(0.0, score + epoc_coefficient(bpm_pct, variation) * dt_min)
        if bpm_pct < EPOC_RECOVERY_PCT:
            score *= EPOC_RECOVERY_DECAY
    return score


def epoc_per_day(workouts: Iterable[Workout], max_hr: float) -> dict[date, float]:
    """EPOC summed per workout start day; days without workouts are absent."""
    daily: dict[date, float] = defaultdict(float)
    for w in workouts:
        daily[w.day] += epoc_for_workout(w, max_hr)
    return dict(daily)


# ═══════════════════════════════════════════════════════════════════════════════
# TRIMP
# ═══════════════════════════════════════════════════════════════════════════════
def trimp_constants(sex: Optional[str]) -> tuple[float, float]:
    return TRIMP_FEMALE if is_female(sex) else TRIMP_MALE


def trimp(
    duration_min: float,
    avg_hr: float,
    resting_hr: float,
    max_hr: float,
    sex: Optional[str] = None,
) -> float:
    """Banister TRIMP for a session of ``duration_min`` at ``avg_hr``."""
    hrr = max_hr - resting_hr
    if hrr <= 0 or duration_min <= 0:
        return 0.0
    r = max(0.0, (avg_hr - resting_hr) / hrr)
    k1, k2 = trimp_constants(sex)
    return duration_min * r * k1 * math.exp(k2 * r)


def trimp_for_workout(
    workout: Workout, resting_hr: float, max_hr: float, sex: Optional[str] = None
) -> float:
    if not workout.heart_rate:
        return 0.0
    avg_hr = float(np.mean([s.bpm for s in workout.heart_rate]))
    return trimp(workout.duration / 60.0, avg_hr, resting_hr, max_hr, sex)


def trimp_per_day(
    workouts: Iterable[Workout],
    resting_hr: float,
    max_hr: float,
    sex: Optional[str] = None,
) -> dict[date, float]:
    """TRIMP summed per workout start day; days without workouts are absent."""
    daily: dict[date, float] = defaultdict(float)
    for w in workouts:
        daily[w.day] += trimp_for_workout(w, resting_hr, max_hr, sex)
    return dict(daily)


def daily_training_load(
    epoc: dict[date, float], trimp_map: dict[date, float]
) -> dict[date, float]:
    """EPOC + TRIMP per day over the union of both maps."""
    return {d: epoc.get(d, 0.0) + trimp_map.get(d, 0.0) for d in set(epoc) | set(trimp_map)}
