"""
refresh.py – Refresh coordinator
================================
One refresh = fan-out / fan-in over the health-data provider:

  1. FETCH   – one task per data kind on a thread pool (I/O bound)
  2. PUBLISH – each completed task overwrites its stream (last-write-wins)
  3. BUILD   – after the barrier, the pure core turns the streams into an
               immutable HealthSnapshot

A fetch that raises is logged; its stream keeps the previous value (or the
empty default) and the refresh still completes.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta
from multiprocessing.pool import ThreadPool
from typing import Any, Callable, Optional

import numpy as np

from bodyanalyze.load import daily_training_load, epoc_per_day, trimp_per_day
from bodyanalyze.models import HealthSnapshot, UserProfile
from bodyanalyze.providers import HealthDataProvider
from bodyanalyze.settings import (
    MAX_HR, RESTING_HR, SEX, DAILY_STEP_GOAL,
    REFRESH_LOOKBACK_DAYS, REFRESH_WORKERS,
)
from bodyanalyze.trends import (
    weekly_training_load, acute_training_load, chronic_training_load, form_status,
    weekly_epoc_total, average_weekly_epoc, day_elapsed_ratio, neat_trend, resting_hr_trend,
    step_trend, step_streak, average_steps,
    classify_training_days, discipline_distribution,
    weekly_running_distances, average_weekly_distance,
    weekly_workout_minutes, weekly_calories,
)
from bodyanalyze.wellbeing import estimate_body_battery, wellbeing_score
from bodyanalyze.zones import default_max_heart_rate, zone_durations

log = logging.getLogger(__name__)

# stream name → empty default
STREAM_DEFAULTS: dict[str, Callable[[], Any]] = {
    "hrv": list,
    "resting_hr": list,
    "workouts": list,
    "active_kcal": dict,
    "steps": dict,
    "running_steps": dict,
    "basal_kcal": dict,
    "light_minutes": dict,
    "vo2max": lambda: None,
    "profile": UserProfile,
}


# ═══════════════════════════════════════════════════════════════════════════════
# STREAM STORE
# ═══════════════════════════════════════════════════════════════════════════════
class MetricStreams:
    """Thread-safe holder of the latest completed value per stream."""

    def __init__(self):
        self._lock = threading.Lock()
        self._values: dict[str, Any] = {k: make() for k, make in STREAM_DEFAULTS.items()}
        self._completed_at: dict[str, datetime] = {}

    def publish(self, stream: str, value: Any, completed_at: Optional[datetime] = None) -> None:
        if stream not in STREAM_DEFAULTS:
            raise KeyError(f"Unknown stream {stream!r}")
        with self._lock:
            self._values[stream] = value
            self._completed_at[stream] = completed_at or datetime.now()

    def get(self, stream: str) -> Any:
        with self._lock:
            return self._values[stream]

    def completed_at(self, stream: str) -> Optional[datetime]:
        with self._lock:
            return self._completed_at.get(stream)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._values)


# ═══════════════════════════════════════════════════════════════════════════════
# COORDINATOR
# ═══════════════════════════════════════════════════════════════════════════════
class RefreshCoordinator:
    """
    Fetches every stream concurrently from ``provider`` and builds a snapshot.

    ``max_hr`` / ``resting_hr`` / ``sex`` / ``step_goal`` override what the
    provider reports; left as None they fall back to the provider profile and
    then to ``settings``.
    """

    def __init__(
        self,
        provider: HealthDataProvider,
        streams: Optional[MetricStreams] = None,
        max_hr: Optional[float] = MAX_HR,
        resting_hr: Optional[float] = None,
        sex: Optional[str] = None,
        step_goal: int = DAILY_STEP_GOAL,
        lookback_days: int = REFRESH_LOOKBACK_DAYS,
        workers: int = REFRESH_WORKERS,
    ):
        self.provider = provider
        self.streams = streams if streams is not None else MetricStreams()
        self.max_hr = max_hr
        self.resting_hr = resting_hr
        self.sex = sex
        self.step_goal = step_goal
        self.lookback_days = lookback_days
        self.workers = max(1, workers)

    def _tasks(self, start: datetime, end: datetime) -> dict[str, Callable[[], Any]]:
        p = self.provider
        return {
            "hrv": lambda: p.hrv(start, end),
            "resting_hr": lambda: p.resting_hr(start, end),
            "workouts": lambda: p.workouts(start, end),
            "active_kcal": lambda: p.daily("active_kcal", start, end),
            "steps": lambda: p.daily("steps", start, end),
            "running_steps": lambda: p.daily("running_steps", start, end),
            "basal_kcal": lambda: p.daily("basal_kcal", start, end),
            "light_minutes": lambda: p.daily("light_minutes", start, end),
            "vo2max": p.vo2max,
            "profile": p.profile,
        }

    def _run(self, stream: str, task: Callable[[], Any]) -> bool:
        try:
            value = task()
        except Exception as exc:
            log.warning("Fetch '%s' failed: %s – keeping previous value", stream, exc)
            return False
        self.streams.publish(stream, value)
        return True

    def fetch_all(self, now: datetime) -> dict[str, bool]:
        """Fan out one task per stream and wait for all of them. Returns stream → success."""
        start = datetime.combine(now.date() - timedelta(days=self.lookback_days), time.min)
        tasks = self._tasks(start, now)
        log.info("Refreshing %d streams (%s → %s, %d workers)",
                 len(tasks), start.date(), now.date(), self.workers)

        with ThreadPool(processes=self.workers) as pool:
            pending = {
                name: pool.apply_async(self._run, (name, task))
                for name, task in tasks.items()
            }
            results = {name: res.get() for name, res in pending.items()}

        failed = [name for name, ok in results.items() if not ok]
        if failed:
            log.warning("Streams not refreshed: %s", ", ".join(failed))
        return results

    def refresh(
        self,
        now: Optional[datetime] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> HealthSnapshot:
        now = now or datetime.now()
        self.fetch_all(now)
        return build_snapshot(
            self.streams.snapshot(),
            now=now,
            max_hr=self.max_hr,
            resting_hr=self.resting_hr,
            sex=self.sex,
            step_goal=self.step_goal,
            rng=rng,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════════════
def _latest_resting_hr(entries) -> Optional[float]:
    if not entries:
        return None
    return max(entries, key=lambda e: e.day).bpm


def _latest_sdnn(samples) -> Optional[float]:
    if not samples:
        return None
    return max(samples, key=lambda s: s.timestamp).sdnn_ms


def build_snapshot(
    data: dict[str, Any],
    now: datetime,
    max_hr: Optional[float] = None,
    resting_hr: Optional[float] = None,
    sex: Optional[str] = None,
    step_goal: int = DAILY_STEP_GOAL,
    rng: Optional[np.random.Generator] = None,
) -> HealthSnapshot:
    """
    Pure aggregation of fetched streams into a HealthSnapshot.

    ``data`` is keyed like ``STREAM_DEFAULTS``; missing keys take their
    empty default. Body battery is the only random component; pass a seeded
    ``rng`` for reproducible output.
    """
    streams = {k: data.get(k, make()) for k, make in STREAM_DEFAULTS.items()}
    profile: UserProfile = streams["profile"] or UserProfile()
    workouts = streams["workouts"]
    today: date = now.date()

    if max_hr is None:
        max_hr = default_max_heart_rate(profile.age)
    if resting_hr is None:
        resting_hr = _latest_resting_hr(streams["resting_hr"])
    measured_rhr = resting_hr
    if resting_hr is None:
        resting_hr = RESTING_HR
    sex = sex or profile.sex or SEX

    epoc = epoc_per_day(workouts, max_hr)
    trimp_map = trimp_per_day(workouts, resting_hr, max_hr, sex)
    daily_load = daily_training_load(epoc, trimp_map)

    weekly_load = weekly_training_load(epoc, trimp_map, today)
    atl = acute_training_load(daily_load, today)
    ctl = chronic_training_load(daily_load, today)
    tsb, form = form_status(atl, ctl)

    steps = streams["steps"]
    distances = weekly_running_distances(workouts, today)
    neat = neat_trend(streams["active_kcal"], today, day_elapsed_ratio(now))

    wellbeing = wellbeing_score(
        sdnn_ms=_latest_sdnn(streams["hrv"]),
        resting_hr=measured_rhr,
        steps_today=steps.get(today, 0.0),
        weekly_load=weekly_load,
        step_goal=step_goal,
        neat=neat,
        light_minutes=streams["light_minutes"].get(today, 0.0),
        vo2max=streams["vo2max"],
    )

    return HealthSnapshot(
        today=today,
        zone_durations=zone_durations(workouts, resting_hr, max_hr),
        epoc_per_day=epoc,
        trimp_per_day=trimp_map,
        weekly_load=weekly_load,
        weekly_epoc=weekly_epoc_total(epoc, today),
        average_weekly_epoc=average_weekly_epoc(epoc, today),
        atl=atl,
        ctl=ctl,
        tsb=tsb,
        form=form,
        neat_trend=neat,
        resting_hr_trend=resting_hr_trend(streams["resting_hr"], today),
        step_trend=step_trend(steps, today),
        step_streak=step_streak(steps, today, step_goal),
        average_steps=average_steps(steps),
        average_running_steps=average_steps(streams["running_steps"]),
        weekly_running_distances=distances,
        weekly_running_distance=distances[-1][1] if distances else 0.0,
        average_weekly_distance=average_weekly_distance(distances),
        weekly_workout_minutes=weekly_workout_minutes(workouts, now),
        weekly_calories=weekly_calories(streams["active_kcal"], streams["basal_kcal"], today),
        training_days=classify_training_days(workouts),
        discipline_distribution=discipline_distribution(workouts, today),
        wellbeing=wellbeing,
        body_battery=estimate_body_battery(rng),
        max_hr=max_hr,
        resting_hr=resting_hr,
        workout_count=len(workouts),
        last_updated=now,
    )
