"""
zones.py – Heart-rate zones & HRV normalisation
===============================================
Karvonen-style zone classification on the heart-rate reserve (HRR) and
time-in-zone accounting over workout heart-rate samples.

Zone boundaries (fraction of HRR)
---------------------------------
Z1 < 60 %  ·  Z2 < 70 %  ·  Z3 < 80 %  ·  Z4 < 90 %  ·  Z5 ≥ 90 %
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Optional

from bodyanalyze.models import Workout
from bodyanalyze.settings import (
    ZONE_PCTS,
    HRV_UNHEALTHY_MS, HRV_HEALTHY_MS,
    MAX_HR_AGE_BASE, MAX_HR_FLOOR, MAX_HR_CEILING, MAX_HR_FALLBACK,
)

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# KARVONEN ZONES
# ─────────────────────────────────────────────────────────────────────────────

def zone_for_heart_rate(bpm: float, resting_hr: float, max_hr: float) -> int:
    """Return the cardio zone (1–5) of ``bpm``; zone 1 when HRR is degenerate."""
    reserve = max_hr - resting_hr
    if reserve <= 0:
        return 1
    pct = (bpm - resting_hr) / reserve
    for zone, upper in enumerate(ZONE_PCTS, start=1):
        if pct < upper:
            return zone
    return len(ZONE_PCTS) + 1


def zone_bounds(resting_hr: float, max_hr: float) -> list[tuple[int, int, str]]:
    """[(lo_bpm, hi_bpm, label), ...] for Z1–Z5, for display."""
    hrr = max_hr - resting_hr
    edges = [0.0] + list(ZONE_PCTS) + [1.0]
    bounds = []
    for i in range(len(edges) - 1):
        lo = round(edges[i] * hrr + resting_hr)
        hi = round(edges[i + 1] * hrr + resting_hr)
        bounds.append((lo, hi, f"Z{i + 1}"))
    return bounds


def zone_durations(
    workouts: Iterable[Workout], resting_hr: float, max_hr: float
) -> dict[int, float]:
    """
    Seconds spent in each zone across ``workouts``.

    Samples are walked in chronological order and the gap between two
    consecutive samples is credited to the zone of the earlier one.
    Zones never reached are absent from the result.
    """
    zones: dict[int, float] = defaultdict(float)
    for workout in workouts:
        samples = workout.sorted_samples()
        for prev, curr in zip(samples, samples[1:]):
            dt = (curr.timestamp - prev.timestamp).total_seconds()
            if dt <= 0:
                continue
            zones[zone_for_heart_rate(prev.bpm, resting_hr, max_hr)] += dt
    return dict(zones)


# ─────────────────────────────────────────────────────────────────────────────
# HRV SCORE & MAX HR
# ─────────────────────────────────────────────────────────────────────────────

def hrv_score(sdnn_ms: float) -> float:
    """
    Linear HRV score on 0–10:
      10 ms (unhealthy floor) → 0,  100 ms (healthy ceiling) → 10.
    """
    raw = (sdnn_ms - HRV_UNHEALTHY_MS) / (HRV_HEALTHY_MS - HRV_UNHEALTHY_MS) * 10.0
    return min(10.0, max(0.0, raw))


def default_max_heart_rate(age: Optional[int]) -> float:
    """220 − age, clamped to [100, 220]; fallback 190 bpm when age is unknown."""
    if age is None:
        log.debug("Age unknown – using fallback max HR %.0f bpm", MAX_HR_FALLBACK)
        return MAX_HR_FALLBACK
    return float(max(MAX_HR_FLOOR, min(MAX_HR_CEILING, MAX_HR_AGE_BASE - age)))
