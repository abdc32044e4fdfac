"""
BodyAnalyze – physiological estimation engine.

Heart-rate zones, EPOC / TRIMP load, ATL / CTL, NEAT and resting-HR trends,
glycogen depletion and a composite wellbeing score, computed from raw
health-data series.
"""

__version__ = "0.1.0"
