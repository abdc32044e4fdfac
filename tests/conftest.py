from datetime import date, datetime, timedelta

import pytest

from bodyanalyze.models import HeartRateSample, Workout


@pytest.fixture
def today():
    return date(2024, 5, 15)


@pytest.fixture
def make_workout():
    """Workout factory: one HR sample every ``interval_s`` seconds."""

    def _make(start, bpms, interval_s=60, activity="running", duration_s=None):
        samples = tuple(
            HeartRateSample(start + timedelta(seconds=i * interval_s), float(b))
            for i, b in enumerate(bpms)
        )
        if duration_s is None:
            duration_s = max(len(bpms) - 1, 0) * interval_s
        return Workout(
            start=start,
            end=start + timedelta(seconds=duration_s),
            activity_type=activity,
            heart_rate=samples,
        )

    return _make


@pytest.fixture
def morning(today):
    return datetime.combine(today, datetime.min.time()).replace(hour=8)
