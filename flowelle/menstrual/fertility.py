"""Ovulation and fertile window estimates plus per-day calendar tags.

The estimate is a simplified calendar rule and is not medically
authoritative: ovulation is assumed a fixed number of days after the cycle
starts (14 by default) and the fertile window covers the days strictly
before it (5 by default).

A day can be both a period day and a fertile/ovulation day.  Fertile and
ovulation are exclusive: the ovulation day itself is never tagged fertile.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from flowelle.menstrual.config_loader import CycleConfig, get_cycle_config
from flowelle.menstrual.cycle_stats import CycleRecord


@dataclass(frozen=True)
class FertileWindow:
    """Fertile days around one cycle's estimated ovulation.

    ``start``..``end`` are the fertile days (inclusive); ``ovulation`` is the
    day after ``end``.
    """

    start: date
    end: date
    ovulation: date

    def is_fertile(self, day: date) -> bool:
        return self.start <= day <= self.end

    def is_ovulation(self, day: date) -> bool:
        return day == self.ovulation


@dataclass
class DayClassification:
    """Calendar tags for a single day."""

    date: date
    is_period: bool = False
    is_fertile: bool = False
    is_ovulation: bool = False
    cycle_id: int | None = None

    @property
    def active(self) -> bool:
        return self.is_period or self.is_fertile or self.is_ovulation


def estimate_ovulation(start_date: date, config: CycleConfig | None = None) -> date:
    cfg = config or get_cycle_config()
    return start_date + timedelta(days=cfg.prediction.ovulation_offset_days)


def fertile_window(start_date: date, config: CycleConfig | None = None) -> FertileWindow:
    cfg = config or get_cycle_config()
    ovulation = estimate_ovulation(start_date, cfg)
    return FertileWindow(
        start=ovulation - timedelta(days=cfg.prediction.fertile_window_days),
        end=ovulation - timedelta(days=1),
        ovulation=ovulation,
    )


def classify_day(
    day: date,
    cycles: Iterable[CycleRecord],
    config: CycleConfig | None = None,
) -> DayClassification:
    """Tag ``day`` against every cycle.

    ``cycle_id`` points at the cycle whose period covers the day when there
    is one, otherwise at the first cycle whose fertile window or ovulation
    day matched.
    """
    cfg = config or get_cycle_config()
    result = DayClassification(date=day)
    period_cycle: int | None = None
    window_cycle: int | None = None

    for cycle in cycles:
        if cycle.start_date <= day <= cycle.end_date:
            result.is_period = True
            if period_cycle is None:
                period_cycle = cycle.cycle_id

        window = fertile_window(cycle.start_date, cfg)
        if window.is_ovulation(day):
            result.is_ovulation = True
        elif window.is_fertile(day):
            result.is_fertile = True
        else:
            continue
        if window_cycle is None:
            window_cycle = cycle.cycle_id

    if result.is_ovulation:
        result.is_fertile = False
    result.cycle_id = period_cycle if period_cycle is not None else window_cycle
    return result


def classify_month(
    year: int,
    month: int,
    cycles: Iterable[CycleRecord],
    config: CycleConfig | None = None,
) -> list[DayClassification]:
    """Classify every day of a calendar month.

    Raises:
        ValueError: If ``month`` is not 1–12 or ``year`` is outside 1–9999.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    if not 1 <= year <= 9999:
        raise ValueError(f"year must be between 1 and 9999, got {year}")

    cfg = config or get_cycle_config()
    cycles = list(cycles)
    _, days_in_month = calendar.monthrange(year, month)
    first = date(year, month, 1)
    return [
        classify_day(first + timedelta(days=offset), cycles, cfg)
        for offset in range(days_in_month)
    ]
