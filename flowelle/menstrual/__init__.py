"""Menstrual cycle calculations for Flowelle.

Pure functions and small calculators with no database access, so they can
be reused by the API and tested in isolation.

Modules:
    config_loader: Prediction constants and symptom catalog (YAML)
    cycle_stats:   Average period/cycle length, next period prediction
    fertility:     Ovulation estimate, fertile window, calendar day tags
"""

from flowelle.menstrual.cycle_stats import CycleRecord, CycleStatistics, CycleStatsCalculator
from flowelle.menstrual.fertility import (
    DayClassification,
    FertileWindow,
    classify_day,
    classify_month,
    estimate_ovulation,
    fertile_window,
)

__all__ = [
    "CycleRecord",
    "CycleStatistics",
    "CycleStatsCalculator",
    "DayClassification",
    "FertileWindow",
    "classify_day",
    "classify_month",
    "estimate_ovulation",
    "fertile_window",
]
