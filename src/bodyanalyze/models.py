"""
Data models for the BodyAnalyze estimation engine.

This module defines the immutable data structures exchanged between the
provider boundary, the numeric core and the report layer:
- HeartRateSample / HRVSample / Workout: raw inputs
- GlycogenEstimationInputs / GlycogenEstimationResult: fuel-reserve model
- NeatTrend / RestingHRTrend / StepTrend: trend objects
- WellbeingScore: composite score breakdown
- enums used as lookup-table keys
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, IntEnum
from typing import Optional, Union

from bodyanalyze.settings import FEMALE_LABELS

log = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════
class IntensityZone(IntEnum):
    """Training intensity zone as entered by the user (Z1–Z5)."""

    Z1 = 1
    Z2 = 2
    Z3 = 3
    Z4 = 4
    Z5 = 5

    @classmethod
    def parse(cls, value: Union[str, int, "IntensityZone", None]) -> Optional["IntensityZone"]:
        """Accept ``"Z3"``, ``"z3"``, ``"3"`` or ``3``; None when unrecognised."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        text = str(value).strip().upper().lstrip("Z")
        try:
            return cls(int(text))
        except ValueError:
            return None

    @property
    def label(self) -> str:
        return f"Z{self.value}"


class ActivityType(Enum):
    hike = "Randonnée"
    trail = "Trail"
    run = "Course"
    bike = "Vélo"
    ski = "Ski de rando"

    @classmethod
    def parse(cls, value: Union[str, "ActivityType", None]) -> Optional["ActivityType"]:
        """Accept the member name (``"run"``) or its French label (``"Course"``)."""
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        text = str(value).strip()
        for member in cls:
            if text.lower() in (member.name, member.value.lower()):
                return member
        return None


class GlycogenLoadLevel(Enum):
    """Glycogen reload declared by the user before the session."""

    low = "Basse"
    normal = "Normale"
    high = "Élevée"
    full = "Totale"

    @property
    def percentage_of_max(self) -> float:
        return _LOAD_LEVEL_FILL[self]

    @classmethod
    def parse(cls, value: Union[str, "GlycogenLoadLevel", None]) -> Optional["GlycogenLoadLevel"]:
        if isinstance(value, cls):
            return value
        if value is None:
            return None
        text = str(value).strip()
        for member in cls:
            if text.lower() in (member.name, member.value.lower()):
                return member
        return None


_LOAD_LEVEL_FILL = {
    GlycogenLoadLevel.low: 0.5,
    GlycogenLoadLevel.normal: 0.7,
    GlycogenLoadLevel.high: 0.9,
    GlycogenLoadLevel.full: 1.0,
}
DEFAULT_LOAD_LEVEL = GlycogenLoadLevel.normal


class NeatStatus(Enum):
    less_active = "lessActive"
    stable = "stable"
    more_active = "moreActive"


class RestingHRStatus(Enum):
    improving = "improving"
    stable_variation = "stableVariation"
    fatigue_possible = "fatiguePossible"


class FormStatus(Enum):
    fresh = "fresh"
    balanced = "balanced"
    fatigued = "fatigued"


class StepDirection(Enum):
    up = "up"
    down = "down"
    flat = "flat"


class TrainingDayType(Enum):
    heavy = "heavy"
    light = "light"
    rest = "rest"


class ColorBand(Enum):
    red = "red"
    orange = "orange"
    yellow = "yellow"
    green = "green"
    blue = "blue"
    white = "white"


def is_female(sex: Optional[str]) -> bool:
    return bool(sex) and sex.strip().lower() in FEMALE_LABELS


# ═══════════════════════════════════════════════════════════════════════════════
# RAW INPUTS
# ═══════════════════════════════════════════════════════════════════════════════
@dataclass(frozen=True)
class HeartRateSample:
    timestamp: datetime
    bpm: float


@dataclass(frozen=True)
class HRVSample:
    timestamp: datetime
    sdnn_ms: float


@dataclass(frozen=True)
class RestingHREntry:
    day: date
    bpm: float


@dataclass(frozen=True)
class Workout:
    """A recorded workout and the heart-rate samples captured during it."""

    start: datetime
    end: datetime
    activity_type: str = "other"
    total_distance: Optional[float] = None  # km
    heart_rate: tuple[HeartRateSample, ...] = ()

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return max(0.0, (self.end - self.start).total_seconds())

    @property
    def day(self) -> date:
        return self.start.date()

    def sorted_samples(self) -> list[HeartRateSample]:
        return sorted(self.heart_rate, key=lambda s: s.timestamp)


@dataclass(frozen=True)
class UserProfile:
    sex: Optional[str] = None
    age: Optional[int] = None
    weight_kg: Optional[float] = None


# ═══════════════════════════════════════════════════════════════════════════════
# GLYCOGEN MODEL
# ═══════════════════════════════════════════════════════════════════════════════
@dataclass(frozen=True)
class GlycogenEstimationInputs:
    weight_kg: float = 70.0
    sex: str = "Homme"
    duration_h: float = 1.5
    intensity_zone: Union[str, int, IntensityZone, None] = "Z2"
    altitude_m: float = 0.0
    temperature_c: float = 20.0
    glycogen_load_level: GlycogenLoadLevel = GlycogenLoadLevel.normal
    activity_type: Union[str, ActivityType] = ActivityType.run
    eating_during: bool = False
    carbs_per_hour_g: float = 30.0
    elevation_gain_m: float = 0.0
    distance_km: Optional[float] = None

    def __post_init__(self):
        if self.weight_kg <= 0:
            raise ValueError(f"weight_kg must be positive, got {self.weight_kg!r}")
        if self.duration_h < 0:
            log.warning("Negative duration %r h – simulating 0 h", self.duration_h)
            object.__setattr__(self, "duration_h", 0.0)
        level = GlycogenLoadLevel.parse(self.glycogen_load_level)
        if level is None:
            log.warning("Unknown glycogen load level %r – using %s",
                        self.glycogen_load_level, DEFAULT_LOAD_LEVEL.name)
            level = DEFAULT_LOAD_LEVEL
        object.__setattr__(self, "glycogen_load_level", level)

    @classmethod
    def from_profile(cls, profile: UserProfile, **overrides) -> "GlycogenEstimationInputs":
        """Prefill sex and weight from the health profile; explicit overrides win."""
        prefill = {}
        if profile.sex:
            prefill["sex"] = profile.sex
        if profile.weight_kg:
            prefill["weight_kg"] = profile.weight_kg
        prefill.update(overrides)
        return cls(**prefill)


@dataclass(frozen=True)
class GlycogenEstimationResult:
    reserve_max_g: float
    glycogen_used_g: float
    remaining_g: float
    percentage_remaining: float
    time_series: tuple[float, ...]
    duration_h: float
    half_time_h: Optional[float] = None
    critical_time_h: Optional[float] = None


# ═══════════════════════════════════════════════════════════════════════════════
# TRENDS & SCORES
# ═══════════════════════════════════════════════════════════════════════════════
@dataclass(frozen=True)
class NeatTrend:
    average_last_2_days: float
    baseline_28_days: float
    variation_percentage: float
    status: NeatStatus


@dataclass(frozen=True)
class RestingHRTrend:
    average_48h: float
    average_7d: float
    delta: float
    status: RestingHRStatus


@dataclass(frozen=True)
class StepTrend:
    this_week_total: int
    last_week_total: int
    percentage_change: Optional[float]
    direction: StepDirection


@dataclass(frozen=True)
class WellbeingScore:
    hrv_sub: float
    rhr_sub: float
    activity_sub: float
    training_sub: float
    global_score: float
    color: ColorBand
    vo2max: Optional[float] = None


@dataclass(frozen=True)
class HealthSnapshot:
    """Everything one refresh produces; owned by the caller."""

    today: date
    zone_durations: dict = field(default_factory=dict)
    epoc_per_day: dict = field(default_factory=dict)
    trimp_per_day: dict = field(default_factory=dict)
    weekly_load: float = 0.0
    weekly_epoc: float = 0.0
    average_weekly_epoc: float = 0.0
    atl: float = 0.0
    ctl: float = 0.0
    tsb: float = 0.0
    form: FormStatus = FormStatus.balanced
    neat_trend: Optional[NeatTrend] = None
    resting_hr_trend: Optional[RestingHRTrend] = None
    step_trend: Optional[StepTrend] = None
    step_streak: int = 0
    average_steps: float = 0.0
    average_running_steps: float = 0.0
    weekly_running_distances: list = field(default_factory=list)
    weekly_running_distance: float = 0.0
    average_weekly_distance: float = 0.0
    weekly_workout_minutes: int = 0
    weekly_calories: list = field(default_factory=list)
    training_days: dict = field(default_factory=dict)
    discipline_distribution: dict = field(default_factory=dict)
    wellbeing: Optional[WellbeingScore] = None
    body_battery: Optional[float] = None
    max_hr: float = 0.0
    resting_hr: float = 0.0
    workout_count: int = 0
    last_updated: Optional[datetime] = None
