"""
report.py – Console report
==========================
Print-based summary of a HealthSnapshot and of a glycogen simulation, with
a few range self-checks (✓ / ✗) on the computed values.
"""

from __future__ import annotations

from typing import Optional

from bodyanalyze.models import (
    GlycogenEstimationInputs, GlycogenEstimationResult, HealthSnapshot,
    TrainingDayType,
)
from bodyanalyze.wellbeing import body_battery_band
from bodyanalyze.zones import zone_bounds

WIDTH = 64


def _header(title: str) -> None:
    print()
    print("=" * WIDTH)
    print(f"  {title}")
    print("=" * WIDTH)


def _section(title: str) -> None:
    print()
    print(f"  ── {title} " + "─" * max(0, WIDTH - len(title) - 6))


def _fmt_hours(h: Optional[float]) -> str:
    if h is None:
        return "not reached"
    return f"{int(h)} h {round((h - int(h)) * 60):02d} min"


def _fmt_minutes(minutes: int) -> str:
    if minutes >= 60:
        return f"{minutes // 60}h{minutes % 60:02d}"
    return f"{minutes} min"


def _check(ok: bool) -> str:
    return "✓" if ok else "✗"


# ═══════════════════════════════════════════════════════════════════════════════
# HEALTH SNAPSHOT
# ═══════════════════════════════════════════════════════════════════════════════
def print_snapshot(snap: HealthSnapshot) -> None:
    _header(f"BODYANALYZE  –  {snap.today}")
    print(f"  Workouts loaded: {snap.workout_count}  |  "
          f"MaxHR={snap.max_hr:.0f}  RHR={snap.resting_hr:.0f}")

    # Karvonen zones + time in zone
    _section(f"KARVONEN ZONES  (HRR={snap.max_hr - snap.resting_hr:.0f})")
    total = sum(snap.zone_durations.values())
    for zone, (lo, hi, label) in enumerate(zone_bounds(snap.resting_hr, snap.max_hr), start=1):
        secs = snap.zone_durations.get(zone, 0.0)
        share = secs / total if total > 0 else 0.0
        bar = "■" * int(share * 30)
        print(f"    {label}: {lo:3d}–{hi:3d} bpm  {secs / 60:7.1f} min  [{bar}]")

    _section("TRAINING LOAD")
    print(f"  Weekly load (EPOC + TRIMP): {snap.weekly_load:.1f}")
    print(f"  Weekly EPOC: {snap.weekly_epoc:.1f}  |  6-week average: {snap.average_weekly_epoc:.1f}")
    print(f"  Fitness (CTL): {snap.ctl:.1f}  │  Fatigue (ATL): {snap.atl:.1f}  │  "
          f"Form (TSB): {snap.tsb:+.1f}  [{snap.form.value}]")
    print(f"  Workouts (7 d): {_fmt_minutes(snap.weekly_workout_minutes)}  |  "
          f"Running: {snap.weekly_running_distance:.1f} km this week, "
          f"{snap.average_weekly_distance:.1f} km/week (6 wk)")
    if snap.training_days:
        counts = {t: 0 for t in TrainingDayType}
        for t in snap.training_days.values():
            counts[t] += 1
        print(f"  Days: {counts[TrainingDayType.heavy]} heavy / "
              f"{counts[TrainingDayType.light]} light / {counts[TrainingDayType.rest]} rest")
    if snap.discipline_distribution:
        parts = ", ".join(f"{k} ×{v}" for k, v in sorted(
            snap.discipline_distribution.items(), key=lambda kv: -kv[1]))
        print(f"  Disciplines (1 month): {parts}")

    _section("TRENDS")
    neat = snap.neat_trend
    if neat is not None:
        print(f"  NEAT: {neat.average_last_2_days:.0f} kcal (48 h) vs "
              f"{neat.baseline_28_days:.0f} kcal baseline  "
              f"{neat.variation_percentage:+.1f} %  [{neat.status.value}]")
    else:
        print("  ⚠ NEAT: no 28-day baseline")

    rhr = snap.resting_hr_trend
    if rhr is not None:
        print(f"  Resting HR: {rhr.average_48h:.1f} (48 h) vs {rhr.average_7d:.1f} (7 d)  "
              f"Δ {rhr.delta:+.1f} bpm  [{rhr.status.value}]")
    else:
        print("  ⚠ Resting HR: no data in the last 7 days")

    st = snap.step_trend
    if st is not None:
        pct = f"{st.percentage_change:+.1f} %" if st.percentage_change is not None else "n/a"
        print(f"  Steps: {st.this_week_total} this week vs {st.last_week_total}  "
              f"({pct}, {st.direction.value})")
    print(f"  Step streak: {snap.step_streak} d  |  Average: {snap.average_steps:.0f} steps/day")
    print(f"  Running steps: {snap.average_running_steps:.0f} /day")
    if snap.weekly_calories:
        weeks = "  ".join(f"{start:%d.%m}: {kcal:.0f}" for start, kcal in snap.weekly_calories)
        print(f"  Weekly kcal (active + basal): {weeks}")

    _section("WELLBEING")
    wb = snap.wellbeing
    if wb is not None:
        print(f"  HRV {wb.hrv_sub:.1f}  |  RHR {wb.rhr_sub:.1f}  |  "
              f"Activity {wb.activity_sub:.1f}  |  Training {wb.training_sub:.1f}")
        ok = 0.0 <= wb.global_score <= 100.0
        print(f"  {_check(ok)} Wellbeing score: {wb.global_score:.1f} / 100  [{wb.color.value}]")
        if wb.vo2max is not None:
            print(f"  VO2max: {wb.vo2max:.1f}")
    if snap.body_battery is not None:
        print(f"  Body battery (estimate): {snap.body_battery:.1f} / 10  "
              f"[{body_battery_band(snap.body_battery).value}]")
    if snap.last_updated is not None:
        print(f"\n  Updated: {snap.last_updated:%Y-%m-%d %H:%M}")


# ═══════════════════════════════════════════════════════════════════════════════
# GLYCOGEN
# ═══════════════════════════════════════════════════════════════════════════════
def print_glycogen(inputs: GlycogenEstimationInputs, result: GlycogenEstimationResult) -> None:
    _header("GLYCOGEN ESTIMATE")
    print(f"  {inputs.weight_kg:.0f} kg  |  {inputs.sex}  |  {inputs.duration_h:.2f} h  |  "
          f"zone {inputs.intensity_zone}  |  load {inputs.glycogen_load_level.value}")

    ok = 0.0 <= result.remaining_g <= result.reserve_max_g
    print()
    print(f"  Reserve max:  {result.reserve_max_g:7.1f} g")
    print(f"  Used:         {result.glycogen_used_g:7.1f} g")
    print(f"  {_check(ok)} Remaining: {result.remaining_g:7.1f} g  ({result.percentage_remaining:.1f} %)")

    _section("THRESHOLDS")
    print(f"  50 % reserve: {_fmt_hours(result.half_time_h)}")
    print(f"  30 % reserve: {_fmt_hours(result.critical_time_h)}")
    if result.critical_time_h is not None:
        print("  ⚠ Critical reserve reached – plan carbohydrate intake.")
