"""
providers.py – Health-data provider boundary
============================================
The numeric core never fetches anything itself; a provider hands it raw
series for a time window.

* ``HealthDataProvider``    – abstract interface, one method per data kind
* ``CsvHealthDataProvider`` – reads an export directory of CSV files
* ``read_fit_workout``      – imports a .fit activity (session + HR records)

CSV layout (all files optional – a missing file is an empty series)
-------------------------------------------------------------------
* heart_rate.csv   timestamp, bpm
* hrv.csv          timestamp, sdnn_ms
* resting_hr.csv   date, bpm
* workouts.csv     start, end, activity_type, distance_km
* daily.csv        date, active_kcal, basal_kcal, steps, running_steps, light_minutes
* vo2max.csv       date, value
* profile.csv      sex, age, weight_kg
* fit/*.fit        workouts with their own HR records

Timestamps may carry a UTC offset; rows keep their local wall-clock time.
A session found both in workouts.csv and fit/ is kept once.
"""

from __future__ import annotations

import glob
import logging
import math
import os
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import Optional, Union

import pandas as pd
from fitparse import FitFile

from bodyanalyze.models import (
    HeartRateSample, HRVSample, RestingHREntry, Workout, UserProfile,
)
from bodyanalyze.settings import FIT_SUBDIR, WORKOUT_DEDUP_MIN

log = logging.getLogger(__name__)

# trailing UTC offset: "+0200", "+02:00", "Z"
_UTC_OFFSET = r"\s*(?:Z|[+-]\d{2}:?\d{2})$"

DAILY_COLUMNS = ("active_kcal", "basal_kcal", "steps", "running_steps", "light_minutes")

CSV_HEART_RATE  = "heart_rate.csv"
CSV_HRV         = "hrv.csv"
CSV_RESTING_HR  = "resting_hr.csv"
CSV_WORKOUTS    = "workouts.csv"
CSV_DAILY       = "daily.csv"
CSV_VO2_MAX     = "vo2max.csv"
CSV_PROFILE     = "profile.csv"


# ═══════════════════════════════════════════════════════════════════════════════
# INTERFACE
# ═══════════════════════════════════════════════════════════════════════════════
class HealthDataProvider(ABC):
    """Supplies raw per-sample / per-day series for a [start, end] window."""

    @abstractmethod
    def heart_rate(self, start: datetime, end: datetime) -> list[HeartRateSample]:
        ...

    @abstractmethod
    def hrv(self, start: datetime, end: datetime) -> list[HRVSample]:
        ...

    @abstractmethod
    def resting_hr(self, start: datetime, end: datetime) -> list[RestingHREntry]:
        ...

    @abstractmethod
    def workouts(self, start: datetime, end: datetime) -> list[Workout]:
        """Workouts started in the window, each with its heart-rate samples."""

    @abstractmethod
    def daily(self, kind: str, start: datetime, end: datetime) -> dict[date, float]:
        """Per-day values of ``kind`` (one of ``DAILY_COLUMNS``)."""

    @abstractmethod
    def vo2max(self) -> Optional[float]:
        ...

    @abstractmethod
    def profile(self) -> UserProfile:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# CSV EXPORT DIRECTORY
# ═══════════════════════════════════════════════════════════════════════════════
def load_csv(path: str) -> pd.DataFrame:
    """CSV loader with existence check; unreadable files degrade to empty frames."""
    if not os.path.exists(path):
        return pd.DataFrame()
    try:
        return pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        log.warning("Cannot read %s: %s", path, exc)
        return pd.DataFrame()


def parse_timestamps(values: pd.Series) -> pd.Series:
    """
    Parse a timestamp column to naive local wall-clock time.

    Health exports carry a UTC offset per row ("2024-05-10 07:00:00 +0200")
    that may change across DST; the offset is dropped so every row keeps
    its local time and calendar day. Unparseable cells become NaT.
    """
    text = values.astype(str).str.strip().str.replace(_UTC_OFFSET, "", regex=True)
    return pd.to_datetime(text, errors="coerce", format="mixed")


def _has_columns(df: pd.DataFrame, *cols: str) -> bool:
    return not df.empty and all(c in df.columns for c in cols)


def _text(v) -> Optional[str]:
    if v is None or pd.isna(v):
        return None
    text = str(v).strip()
    return text or None


class CsvHealthDataProvider(HealthDataProvider):
    def __init__(self, directory: Union[str, os.PathLike]):
        self.directory = str(directory)

    def _path(self, name: str) -> str:
        return os.path.join(self.directory, name)

    def _timed_frame(self, name: str, ts_col: str, value_col: str,
                     start: datetime, end: datetime) -> pd.DataFrame:
        df = load_csv(self._path(name))
        if not _has_columns(df, ts_col, value_col):
            return pd.DataFrame(columns=[ts_col, value_col])
        df = df.assign(**{
            ts_col: parse_timestamps(df[ts_col]),
            value_col: pd.to_numeric(df[value_col], errors="coerce"),
        }).dropna(subset=[ts_col, value_col])
        mask = (df[ts_col] >= pd.Timestamp(start)) & (df[ts_col] <= pd.Timestamp(end))
        return df.loc[mask].sort_values(ts_col)

    def heart_rate(self, start, end):
        df = self._timed_frame(CSV_HEART_RATE, "timestamp", "bpm", start, end)
        return [
            HeartRateSample(ts.to_pydatetime(), float(bpm))
            for ts, bpm in zip(df["timestamp"], df["bpm"])
        ]

    def hrv(self, start, end):
        df = self._timed_frame(CSV_HRV, "timestamp", "sdnn_ms", start, end)
        return [
            HRVSample(ts.to_pydatetime(), float(v))
            for ts, v in zip(df["timestamp"], df["sdnn_ms"])
        ]

    def resting_hr(self, start, end):
        df = self._timed_frame(CSV_RESTING_HR, "date", "bpm", start, end)
        return [
            RestingHREntry(ts.date(), float(bpm))
            for ts, bpm in zip(df["date"], df["bpm"])
        ]

    def workouts(self, start, end):
        samples = self.heart_rate(start, end)
        result: list[Workout] = []

        df = load_csv(self._path(CSV_WORKOUTS))
        if _has_columns(df, "start", "end"):
            df = df.assign(
                start=parse_timestamps(df["start"]),
                end=parse_timestamps(df["end"]),
            ).dropna(subset=["start", "end"])
            df = df.loc[(df["start"] >= pd.Timestamp(start)) & (df["start"] <= pd.Timestamp(end))]
            for row in df.sort_values("start").itertuples(index=False):
                w_start = row.start.to_pydatetime()
                w_end = row.end.to_pydatetime()
                distance = getattr(row, "distance_km", None)
                result.append(Workout(
                    start=w_start,
                    end=w_end,
                    activity_type=_text(getattr(row, "activity_type", None)) or "other",
                    total_distance=None if pd.isna(distance) else float(distance),
                    heart_rate=tuple(s for s in samples if w_start <= s.timestamp <= w_end),
                ))

        for path in sorted(glob.glob(os.path.join(self.directory, FIT_SUBDIR, "*.fit"))):
            workout = read_fit_workout(path)
            if workout is not None and start <= workout.start <= end:
                result.append(workout)

        result.sort(key=lambda w: w.start)
        return deduplicate_workouts(result)

    def daily(self, kind, start, end):
        if kind not in DAILY_COLUMNS:
            raise ValueError(f"Unknown daily series {kind!r}; expected one of {DAILY_COLUMNS}")
        df = self._timed_frame(CSV_DAILY, "date", kind, start, end)
        out: dict[date, float] = {}
        for ts, v in zip(df["date"], df[kind]):
            out[ts.date()] = out.get(ts.date(), 0.0) + float(v)
        return out

    def vo2max(self):
        df = load_csv(self._path(CSV_VO2_MAX))
        if not _has_columns(df, "date", "value"):
            return None
        df = df.assign(
            date=parse_timestamps(df["date"]),
            value=pd.to_numeric(df["value"], errors="coerce"),
        ).dropna(subset=["date", "value"])
        if df.empty:
            return None
        return float(df.sort_values("date")["value"].iloc[-1])

    def profile(self):
        df = load_csv(self._path(CSV_PROFILE))
        if df.empty:
            return UserProfile()
        row = df.iloc[0]
        age = _safe_float(row.get("age"))
        weight = _safe_float(row.get("weight_kg"))
        return UserProfile(
            sex=_text(row.get("sex")),
            age=None if age is None or math.isnan(age) else int(age),
            weight_kg=None if weight is None or math.isnan(weight) else weight,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# DEDUPLICATION
# ═══════════════════════════════════════════════════════════════════════════════
def deduplicate_workouts(
    workouts: list[Workout], window_min: float = WORKOUT_DEDUP_MIN
) -> list[Workout]:
    """
    Collapse workouts starting within ±``window_min`` of the last kept one
    (the same session exported to workouts.csv and as a .fit file).

    Winner: more heart-rate samples, then the one with a distance, then the
    earlier entry. ``workouts`` must be sorted by start.
    """
    if not workouts:
        return []

    window = timedelta(minutes=window_min)
    kept: list[Workout] = [workouts[0]]
    duplicates = 0
    for candidate in workouts[1:]:
        last = kept[-1]
        if abs(candidate.start - last.start) > window:
            kept.append(candidate)
            continue
        duplicates += 1
        if _workout_rank(candidate) > _workout_rank(last):
            kept[-1] = candidate
        log.debug("Duplicate workout at %s (%s / %s)",
                  candidate.start, last.activity_type, candidate.activity_type)

    if duplicates:
        log.info("Deduplication: %d duplicate workouts, %d unique.", duplicates, len(kept))
    return kept


def _workout_rank(w: Workout) -> tuple[int, int]:
    return len(w.heart_rate), int(w.total_distance is not None)


# ═══════════════════════════════════════════════════════════════════════════════
# FIT IMPORT
# ═══════════════════════════════════════════════════════════════════════════════
def _safe_float(v) -> Optional[float]:
    try:
        return float(v) if v is not None else None
    except (TypeError, ValueError):
        return None


def read_fit_workout(file_path: str) -> Optional[Workout]:
    """
    Read one .fit activity into a Workout: sport, start/end and distance from
    the 'session' message, heart-rate samples from 'record' messages.
    Returns None when the file cannot be parsed or has no timestamps.
    """
    try:
        fitfile = FitFile(file_path)
        records = [m.get_values() for m in fitfile.get_messages("record")]
        sessions = [m.get_values() for m in fitfile.get_messages("session")]
    except Exception as exc:
        log.error("Cannot open %s: %s", file_path, exc)
        return None

    samples = []
    for raw in records:
        ts = raw.get("timestamp")
        hr = _safe_float(raw.get("heart_rate"))
        if isinstance(ts, datetime) and hr is not None and hr > 0:
            samples.append(HeartRateSample(ts, hr))

    sport = "other"
    start: Optional[datetime] = None
    elapsed: Optional[float] = None
    distance_km: Optional[float] = None
    if sessions:
        vals = sessions[0]
        if vals.get("sport"):
            sport = str(vals["sport"])
        if isinstance(vals.get("start_time"), datetime):
            start = vals["start_time"]
        elapsed = _safe_float(vals.get("total_elapsed_time"))
        meters = _safe_float(vals.get("total_distance"))
        distance_km = meters / 1000.0 if meters is not None else None

    timestamps = [r.get("timestamp") for r in records if isinstance(r.get("timestamp"), datetime)]
    if start is None:
        if not timestamps:
            log.warning("[%s] No timestamps – skipping.", os.path.basename(file_path))
            return None
        start = min(timestamps)
    if elapsed is not None:
        end = start + timedelta(seconds=elapsed)
    else:
        end = max(timestamps) if timestamps else start

    log.debug("[%s] %s  %d HR samples", os.path.basename(file_path), sport, len(samples))
    return Workout(
        start=start,
        end=end,
        activity_type=sport,
        total_distance=distance_km,
        heart_rate=tuple(sorted(samples, key=lambda s: s.timestamp)),
    )
