"""
glycogen.py – Glycogen depletion simulator
==========================================
Discrete 100-step model of the carbohydrate reserve during an endurance
session.

    reserve_max  = weight × 15 g/kg × load_level × sex_modifier
    kcal/h       = rate(activity, zone) × weight
    used/step    = kcal/h × dt × glucose_ratio × env_coeffs / 4 kcal·g⁻¹
    ingest/step  = carbs/h × dt × 0.6          (only when eating)

Environment coefficients
------------------------
* altitude   : +15 % per 2500 m above 2500 m
* cold       : +2 % per °C below 5 °C
* elevation  : +15 % per 1000 m D+, capped at +30 %
* distance   : +1.5 % per km beyond 20 km

Feeding events: ~90 g of carbs (a 600 kcal meal at 60 % absorption)
taken progressively within ±15 min of the midpoint, and a 150 kcal snack
every 2 h.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

from bodyanalyze.models import (
    ActivityType, IntensityZone,
    GlycogenEstimationInputs, GlycogenEstimationResult,
    is_female,
)
from bodyanalyze.settings import (
    GLYCOGEN_G_PER_KG, FEMALE_RESERVE_MODIFIER, KCAL_PER_G_CARB,
    CARB_ABSORPTION, SIMULATION_STEPS,
    ALTITUDE_THRESHOLD_M, ALTITUDE_GAIN,
    COLD_THRESHOLD_C, COLD_GAIN_PER_DEGREE,
    ELEVATION_GAIN_PER_KM, ELEVATION_COEFF_CAP,
    LONG_DISTANCE_KM, DISTANCE_GAIN_PER_KM,
    MEAL_KCAL, MEAL_WINDOW_H, MEAL_PORTIONS, SNACK_KCAL, SNACK_INTERVAL_H,
    HALF_RESERVE_RATIO, CRITICAL_RESERVE_RATIO,
)

log = logging.getLogger(__name__)

DEFAULT_ACTIVITY = ActivityType.run

# kcal · kg⁻¹ · h⁻¹ by activity and zone
KCAL_PER_KG_HOUR: dict[ActivityType, dict[IntensityZone, float]] = {
    ActivityType.run: {
        IntensityZone.Z1: 8.0, IntensityZone.Z2: 10.0, IntensityZone.Z3: 12.5,
        IntensityZone.Z4: 14.5, IntensityZone.Z5: 16.5,
    },
    ActivityType.trail: {
        IntensityZone.Z1: 7.5, IntensityZone.Z2: 9.5, IntensityZone.Z3: 11.5,
        IntensityZone.Z4: 13.5, IntensityZone.Z5: 15.5,
    },
    ActivityType.hike: {
        IntensityZone.Z1: 6.0, IntensityZone.Z2: 8.0, IntensityZone.Z3: 10.0,
        IntensityZone.Z4: 12.0, IntensityZone.Z5: 13.0,
    },
    ActivityType.bike: {
        IntensityZone.Z1: 5.5, IntensityZone.Z2: 7.5, IntensityZone.Z3: 9.0,
        IntensityZone.Z4: 11.0, IntensityZone.Z5: 13.0,
    },
    ActivityType.ski: {
        IntensityZone.Z1: 7.0, IntensityZone.Z2: 9.0, IntensityZone.Z3: 11.0,
        IntensityZone.Z4: 13.0, IntensityZone.Z5: 15.0,
    },
}

# Rate used when the zone is not recognised
DEFAULT_KCAL_PER_KG_HOUR: dict[ActivityType, float] = {
    ActivityType.run: 10.0,
    ActivityType.trail: 9.0,
    ActivityType.hike: 7.0,
    ActivityType.bike: 7.0,
    ActivityType.ski: 9.0,
}

# Share of energy drawn from glycogen
GLUCOSE_RATIO: dict[IntensityZone, float] = {
    IntensityZone.Z1: 0.40,
    IntensityZone.Z2: 0.55,
    IntensityZone.Z3: 0.70,
    IntensityZone.Z4: 0.85,
    IntensityZone.Z5: 0.95,
}
DEFAULT_GLUCOSE_RATIO = 0.55


# ═══════════════════════════════════════════════════════════════════════════════
# COEFFICIENTS
# ═══════════════════════════════════════════════════════════════════════════════
def reserve_max(weight_kg: float, sex: Optional[str], load_fill: float) -> float:
    modifier = FEMALE_RESERVE_MODIFIER if is_female(sex) else 1.0
    return weight_kg * GLYCOGEN_G_PER_KG * load_fill * modifier


def resolve_activity(value) -> ActivityType:
    activity = ActivityType.parse(value)
    if activity is None:
        log.warning("Unknown activity type %r – using %s", value, DEFAULT_ACTIVITY.name)
        return DEFAULT_ACTIVITY
    return activity


def kcal_per_kg_hour(activity, zone) -> float:
    activity = resolve_activity(activity)
    z = IntensityZone.parse(zone)
    if z is None:
        return DEFAULT_KCAL_PER_KG_HOUR[activity]
    return KCAL_PER_KG_HOUR[activity][z]


def glucose_ratio(zone) -> float:
    z = IntensityZone.parse(zone)
    return GLUCOSE_RATIO.get(z, DEFAULT_GLUCOSE_RATIO) if z is not None else DEFAULT_GLUCOSE_RATIO


def altitude_coefficient(altitude_m: float) -> float:
    return 1.0 + max(0.0, altitude_m - ALTITUDE_THRESHOLD_M) / ALTITUDE_THRESHOLD_M * ALTITUDE_GAIN


def temperature_coefficient(temperature_c: float) -> float:
    return 1.0 + max(0.0, COLD_THRESHOLD_C - temperature_c) * COLD_GAIN_PER_DEGREE


def elevation_coefficient(elevation_gain_m: float) -> float:
    return 1.0 + min(max(0.0, elevation_gain_m) / 1000.0 * ELEVATION_GAIN_PER_KM, ELEVATION_COEFF_CAP)


def distance_coefficient(distance_km: Optional[float]) -> float:
    if distance_km is None or distance_km <= LONG_DISTANCE_KM:
        return 1.0
    return 1.0 + (distance_km - LONG_DISTANCE_KM) * DISTANCE_GAIN_PER_KM


def total_coefficient(inputs: GlycogenEstimationInputs) -> float:
    return (
        glucose_ratio(inputs.intensity_zone)
        * altitude_coefficient(inputs.altitude_m)
        * temperature_coefficient(inputs.temperature_c)
        * elevation_coefficient(inputs.elevation_gain_m)
        * distance_coefficient(inputs.distance_km)
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SIMULATION
# ═══════════════════════════════════════════════════════════════════════════════
def estimate_glycogen_usage(inputs: GlycogenEstimationInputs) -> GlycogenEstimationResult:
    """Run the deterministic 100-step simulation for ``inputs``."""
    r_max = reserve_max(inputs.weight_kg, inputs.sex, inputs.glycogen_load_level.percentage_of_max)
    kcal_per_hour = kcal_per_kg_hour(inputs.activity_type, inputs.intensity_zone) * inputs.weight_kg
    coeff = total_coefficient(inputs)

    duration = inputs.duration_h
    dt = duration / SIMULATION_STEPS
    midpoint = duration / 2.0
    meal_portion = (MEAL_KCAL * CARB_ABSORPTION / KCAL_PER_G_CARB) / MEAL_PORTIONS
    snack = SNACK_KCAL * CARB_ABSORPTION / KCAL_PER_G_CARB
    used = kcal_per_hour * dt * coeff / KCAL_PER_G_CARB
    ingest = inputs.carbs_per_hour_g * dt * CARB_ABSORPTION if inputs.eating_during else 0.0

    log.debug(
        "Glycogen sim: reserve=%.1f g  kcal/h=%.0f  coeff=%.3f  used/step=%.2f g",
        r_max, kcal_per_hour, coeff, used,
    )

    current = r_max
    meal_portions_taken = 0
    snacks_taken = 0
    values: list[float] = []
    for i in range(SIMULATION_STEPS):
        t = dt * i
        if inputs.eating_during:
            if abs(t - midpoint) <= MEAL_WINDOW_H and meal_portions_taken < MEAL_PORTIONS:
                current += meal_portion
                meal_portions_taken += 1
            # 1e-9 absorbs float drift so t = 2.0 h counts as the 2 h mark
            due = math.floor(t / SNACK_INTERVAL_H + 1e-9)
            if t > 0 and due > snacks_taken:
                current += snack
                snacks_taken = due

        current = min(r_max, max(0.0, current - used + ingest))
        values.append(current)

    remaining = values[-1]
    half_t, critical_t = crossing_times(values, r_max, duration)
    return GlycogenEstimationResult(
        reserve_max_g=r_max,
        glycogen_used_g=r_max - remaining,
        remaining_g=remaining,
        percentage_remaining=remaining / r_max * 100.0,
        time_series=tuple(values),
        duration_h=duration,
        half_time_h=half_t,
        critical_time_h=critical_t,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# THRESHOLD CROSSING
# ═══════════════════════════════════════════════════════════════════════════════
def first_crossing_time(
    series: Sequence[float], reserve_max_g: float, duration_h: float, ratio: float
) -> Optional[float]:
    """Elapsed hours at the first step where the reserve falls below ``ratio``."""
    if reserve_max_g <= 0 or not series:
        return None
    n = len(series)
    for i, value in enumerate(series):
        if value / reserve_max_g < ratio:
            return i / n * duration_h
    return None


def crossing_times(
    series: Sequence[float], reserve_max_g: float, duration_h: float
) -> tuple[Optional[float], Optional[float]]:
    """(half-reserve time, critical-reserve time) in hours."""
    return (
        first_crossing_time(series, reserve_max_g, duration_h, HALF_RESERVE_RATIO),
        first_crossing_time(series, reserve_max_g, duration_h, CRITICAL_RESERVE_RATIO),
    )
