#!/usr/bin/env python3
"""
main.py – BodyAnalyze · Central Entry Point
===========================================
  1. ANALYZE  – refresh every stream from a CSV export directory and print
                zones, load, trends and the wellbeing score  (refresh)
  2. GLYCOGEN – run the glycogen depletion simulator  (glycogen)

Usage
-----
    python main.py analyze                          # settings.DATA_DIR
    python main.py analyze --data exports/ --today 2024-05-01
    python main.py glycogen --weight 70 --duration 2 --zone Z3
    python main.py glycogen --weight 58 --sex Femme --duration 5 --zone Z2 \\
        --activity trail --eating --carbs-per-hour 40 --elevation-gain 1800
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from datetime import datetime

# ── Project root on sys.path ─────────────────────────────────────────────────
PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))
SRC_DIR = os.path.join(PROJECT_ROOT, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

import numpy as np

from bodyanalyze.glycogen import estimate_glycogen_usage
from bodyanalyze.models import ActivityType, GlycogenEstimationInputs, GlycogenLoadLevel
from bodyanalyze.providers import CsvHealthDataProvider
from bodyanalyze.refresh import RefreshCoordinator
from bodyanalyze.report import print_glycogen, print_snapshot
from bodyanalyze.settings import DATA_DIR, LOGS_DIR, SEX

# ── Logging ──────────────────────────────────────────────────────────────────
LOGS_DIR.mkdir(parents=True, exist_ok=True)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(LOGS_DIR / "main.log", encoding="utf-8"),
    ],
)
log = logging.getLogger("main")


# ═══════════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════════

def cmd_analyze(args: argparse.Namespace) -> int:
    """Refresh from the export directory and print the health report."""
    data_dir = args.data or str(DATA_DIR)
    if not os.path.isdir(data_dir):
        log.error("Data directory not found: %s", data_dir)
        return 1

    if args.today:
        day = datetime.strptime(args.today, "%Y-%m-%d")
        now = day.replace(hour=23, minute=59, second=59)
    else:
        now = datetime.now()

    log.info("=" * 60)
    log.info("ANALYZE – %s  (as of %s)", data_dir, now.date())
    log.info("=" * 60)

    coordinator = RefreshCoordinator(CsvHealthDataProvider(data_dir))
    rng = np.random.default_rng(args.seed) if args.seed is not None else None
    snapshot = coordinator.refresh(now=now, rng=rng)
    print_snapshot(snapshot)
    return 0


def cmd_glycogen(args: argparse.Namespace) -> int:
    """Run the glycogen simulator with the CLI parameters."""
    try:
        inputs = GlycogenEstimationInputs(
            weight_kg=args.weight,
            sex=args.sex,
            duration_h=args.duration,
            intensity_zone=args.zone,
            altitude_m=args.altitude,
            temperature_c=args.temperature,
            glycogen_load_level=args.load,
            activity_type=args.activity,
            eating_during=args.eating,
            carbs_per_hour_g=args.carbs_per_hour,
            elevation_gain_m=args.elevation_gain,
            distance_km=args.distance,
        )
    except ValueError as exc:
        log.error("Invalid glycogen inputs: %s", exc)
        return 2

    print_glycogen(inputs, estimate_glycogen_usage(inputs))
    return 0


# ═══════════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BodyAnalyze – physiological estimation engine",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_an = sub.add_parser("analyze", help="Refresh from a CSV export and print the report")
    p_an.add_argument("--data", help=f"Export directory (default: {DATA_DIR})")
    p_an.add_argument("--today", help="Reference day YYYY-MM-DD (default: now)")
    p_an.add_argument("--seed", type=int, help="Seed for the body-battery estimate")
    p_an.set_defaults(func=cmd_analyze)

    p_gl = sub.add_parser("glycogen", help="Estimate glycogen depletion for a session")
    p_gl.add_argument("--weight", type=float, required=True, help="Body weight in kg")
    p_gl.add_argument("--duration", type=float, required=True, help="Session duration in hours")
    p_gl.add_argument("--zone", default="Z2", help="Intensity zone Z1–Z5 (default: Z2)")
    p_gl.add_argument("--sex", default=SEX)
    p_gl.add_argument("--altitude", type=float, default=0.0, help="Altitude in m")
    p_gl.add_argument("--temperature", type=float, default=20.0, help="Temperature in °C")
    p_gl.add_argument("--load", default=GlycogenLoadLevel.normal.name,
                      choices=[lvl.name for lvl in GlycogenLoadLevel],
                      help="Glycogen load level before the session")
    p_gl.add_argument("--activity", default=ActivityType.run.name,
                      help=f"One of {', '.join(a.name for a in ActivityType)}")
    p_gl.add_argument("--eating", action="store_true", help="Eat during the session")
    p_gl.add_argument("--carbs-per-hour", type=float, default=30.0, help="Carb intake g/h")
    p_gl.add_argument("--elevation-gain", type=float, default=0.0, help="D+ in m")
    p_gl.add_argument("--distance", type=float, help="Distance in km")
    p_gl.set_defaults(func=cmd_glycogen)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    log.info("BodyAnalyze  ·  %s", args.command)

    t0 = time.time()
    code = args.func(args)
    log.info("Finished in %.1f s", time.time() - t0)
    return code


if __name__ == "__main__":
    sys.exit(main())
