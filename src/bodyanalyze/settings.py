"""
BodyAnalyze – Centralized Configuration
=======================================
All athlete defaults, file paths, and model thresholds in one place.
Athlete defaults can be overridden from the environment (or a ``.env``
file) with ``BODYANALYZE_*`` variables – never hardcode values in
individual modules.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_float(key: str, default: float) -> float:
    """Read an optional float override; fail with a readable error if malformed."""
    raw = os.environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise EnvironmentError(
            f"Environment variable '{key}' must be a number, got {raw!r}. Check your .env file."
        )


def _env_str(key: str, default: str) -> str:
    raw = os.environ.get(key, "").strip()
    return raw or default


# ============================================================
# PROJECT PATHS (relative to project root)
# ============================================================
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent

DATA_DIR        = Path(_env_str("BODYANALYZE_DATA_DIR", str(PROJECT_ROOT / "data")))
FIT_SUBDIR      = "fit"
LOGS_DIR        = PROJECT_ROOT / "logs"

# ============================================================
# ATHLETE PROFILE (defaults when the provider has nothing better)
# ============================================================
MAX_HR          = _env_float("BODYANALYZE_MAX_HR", 0.0) or None  # bpm; None → 220 − age
RESTING_HR      = _env_float("BODYANALYZE_RESTING_HR", 60.0)    # bpm
SEX             = _env_str("BODYANALYZE_SEX", "Homme")
DAILY_STEP_GOAL = int(_env_float("BODYANALYZE_STEP_GOAL", 8000))

# 220 - age, clamped
MAX_HR_AGE_BASE     = 220
MAX_HR_FLOOR        = 100
MAX_HR_CEILING      = 220
MAX_HR_FALLBACK     = 190.0

FEMALE_LABELS       = ("female", "femme", "f")

# ============================================================
# HEART-RATE ZONES (fraction of heart-rate reserve)
# ============================================================
# Z1 < 60 %, Z2 < 70 %, Z3 < 80 %, Z4 < 90 %, Z5 otherwise
ZONE_PCTS       = [0.60, 0.70, 0.80, 0.90]

# HRV (SDNN) linear normalisation to 0–10
HRV_UNHEALTHY_MS = 10.0
HRV_HEALTHY_MS   = 100.0

# ============================================================
# TRAINING LOAD MODEL
# ============================================================
# TRIMP constants (Banister): (k1, k2)
TRIMP_MALE      = (0.64, 1.92)
TRIMP_FEMALE    = (0.86, 1.67)

# EPOC recovery decay applied when HR drops below 60 % of max
EPOC_RECOVERY_PCT   = 0.60
EPOC_RECOVERY_DECAY = 0.90

ATL_DAYS        = 7
ATL_DECAY       = 0.9
CTL_DAYS        = 42
CTL_DECAY       = 0.975
WEEK_DAYS       = 7
EPOC_AVG_WEEKS  = 6

# TSB = CTL - ATL
TSB_FRESH       = 10.0
TSB_FATIGUED    = -10.0

# Training day: > 30 workout minutes = heavy
HEAVY_DAY_MINUTES   = 30.0
REST_LOOKBACK_DAYS  = 30
DISCIPLINE_LOOKBACK_MONTHS = 1

# Running workouts (distance totals)
RUNNING_ACTIVITY_TYPES = ("running", "run", "course")
WEEKLY_HISTORY_WEEKS   = 6
WORKOUT_WINDOW_DAYS    = 7

# CSV + FIT workouts starting within ±30 min are the same session
WORKOUT_DEDUP_MIN      = 30

# History fetched per refresh (covers the CTL window and 6 EPOC weeks)
REFRESH_LOOKBACK_DAYS = 42
REFRESH_WORKERS       = 4

# ============================================================
# TRENDS
# ============================================================
NEAT_BASELINE_DAYS      = 28
NEAT_LESS_ACTIVE_PCT    = -15.0
NEAT_MORE_ACTIVE_PCT    = 15.0

RHR_SHORT_DAYS          = 2
RHR_LONG_DAYS           = 7
RHR_IMPROVING_DELTA     = -2.0
RHR_FATIGUE_DELTA       = 3.0

STEP_TREND_TOLERANCE    = 0.05

# ============================================================
# GLYCOGEN MODEL
# ============================================================
GLYCOGEN_G_PER_KG       = 15.0
FEMALE_RESERVE_MODIFIER = 0.85
KCAL_PER_G_CARB         = 4.0
CARB_ABSORPTION         = 0.60       # share of ingested carbs usable
SIMULATION_STEPS        = 100

ALTITUDE_THRESHOLD_M    = 2500.0
ALTITUDE_GAIN           = 0.15
COLD_THRESHOLD_C        = 5.0
COLD_GAIN_PER_DEGREE    = 0.02
ELEVATION_GAIN_PER_KM   = 0.15
ELEVATION_COEFF_CAP     = 0.30
LONG_DISTANCE_KM        = 20.0
DISTANCE_GAIN_PER_KM    = 0.015

MEAL_KCAL               = 600.0      # ~90 g carbs around the midpoint
MEAL_WINDOW_H           = 0.25
MEAL_PORTIONS           = 10
SNACK_KCAL              = 150.0
SNACK_INTERVAL_H        = 2.0

HALF_RESERVE_RATIO      = 0.5
CRITICAL_RESERVE_RATIO  = 0.3

# ============================================================
# WELLBEING SCORE
# ============================================================
NEUTRAL_SUBSCORE        = 5.0
LIGHT_LONG_MIN          = 30.0
LIGHT_SHORT_MIN         = 10.0

BODY_BATTERY_RANGE      = (4.0, 8.5)
