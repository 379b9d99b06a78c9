"""Cycle history statistics.

Derives from a user's recorded cycles:
- Average period length (mean inclusive duration)
- Average cycle length (mean gap between consecutive start dates)
- Next period start (most recent start + average cycle length)

Gaps outside the configured plausibility bounds (by default ``<= 0`` or
``>= 60`` days) are treated as missing data and excluded from the average.
Averages round half up, so a mean of 4.5 days reports as 5.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from flowelle.menstrual.config_loader import CycleConfig, get_cycle_config

logger = logging.getLogger("flowelle.menstrual.cycle_stats")


@dataclass
class CycleRecord:
    """A recorded period.

    Attributes:
        cycle_id:   Database id, or None for an unsaved cycle.
        start_date: First day of bleeding.
        end_date:   Last day of bleeding (inclusive).
    """

    cycle_id: int | None
    start_date: date
    end_date: date

    @property
    def duration(self) -> int:
        """Period length in days, counting both endpoints."""
        return period_duration(self.start_date, self.end_date)


@dataclass
class CycleStatistics:
    """Summary statistics for one user's cycle history.

    Attributes:
        cycle_count:           Number of cycles considered.
        average_period_length: Rounded mean duration, None without cycles.
        average_cycle_length:  Rounded mean start-to-start gap, None when
                               fewer than two cycles or every gap is an outlier.
        next_period_date:      Predicted next start, None without an average.
        cycle_gaps:            Gaps (days) that went into the average.
        excluded_gaps:         Gaps discarded as outliers.
    """

    cycle_count: int = 0
    average_period_length: int | None = None
    average_cycle_length: int | None = None
    next_period_date: date | None = None
    cycle_gaps: list[int] = field(default_factory=list)
    excluded_gaps: list[int] = field(default_factory=list)


def period_duration(start_date: date, end_date: date) -> int:
    return (end_date - start_date).days + 1


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class CycleStatsCalculator:
    """Compute averages and the next-period prediction from cycle history.

    Usage::

        calc = CycleStatsCalculator()
        stats = calc.summarize(cycles)
        print(stats.average_cycle_length, stats.next_period_date)
    """

    def __init__(self, config: CycleConfig | None = None) -> None:
        self._config = config or get_cycle_config()

    def average_period_length(self, cycles: Iterable[CycleRecord]) -> int | None:
        durations = [c.duration for c in cycles]
        if not durations:
            return None
        return round_half_up(sum(durations) / len(durations))

    def start_gaps(self, cycles: Iterable[CycleRecord]) -> tuple[list[int], list[int]]:
        """Split start-to-start gaps into (kept, excluded).

        Cycles are sorted by start date ascending first, so callers may pass
        them in any order.
        """
        ordered = sorted(cycles, key=lambda c: c.start_date)
        kept: list[int] = []
        excluded: list[int] = []
        for prev, curr in zip(ordered, ordered[1:]):
            gap = (curr.start_date - prev.start_date).days
            if self._config.prediction.gap_is_plausible(gap):
                kept.append(gap)
            else:
                excluded.append(gap)
        return kept, excluded

    def average_cycle_length(self, cycles: Iterable[CycleRecord]) -> int | None:
        kept, _ = self.start_gaps(cycles)
        if not kept:
            return None
        return round_half_up(sum(kept) / len(kept))

    def predict_next_period(
        self,
        cycles: Iterable[CycleRecord],
        average_cycle_length: int | None = None,
    ) -> date | None:
        """Most recent start date plus the average cycle length.

        Args:
            cycles:               Cycle history in any order.
            average_cycle_length: Precomputed average; derived when omitted.

        Returns None when the prediction would fall past ``date.max``.
        """
        cycles = list(cycles)
        avg = average_cycle_length
        if avg is None:
            avg = self.average_cycle_length(cycles)
        if avg is None or not cycles:
            return None
        latest = max(c.start_date for c in cycles)
        try:
            return latest + timedelta(days=avg)
        except OverflowError:
            # Past the last representable date
            return None

    def summarize(self, cycles: Iterable[CycleRecord]) -> CycleStatistics:
        cycles = list(cycles)
        stats = CycleStatistics(cycle_count=len(cycles))
        if not cycles:
            return stats

        stats.average_period_length = self.average_period_length(cycles)
        stats.cycle_gaps, stats.excluded_gaps = self.start_gaps(cycles)
        if stats.cycle_gaps:
            stats.average_cycle_length = round_half_up(
                sum(stats.cycle_gaps) / len(stats.cycle_gaps)
            )
            stats.next_period_date = self.predict_next_period(
                cycles, stats.average_cycle_length
            )
        if stats.excluded_gaps:
            logger.debug("Excluded outlier cycle gaps: %s", stats.excluded_gaps)
        return stats
