"""Pydantic models for period cycles, the symptom catalog, cycle symptoms,
statistics and the calendar month view."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import Field, computed_field

from flowelle.models.base import FlowelleBase, utc_now


# ---------- Symptom catalog ----------

class SymptomRead(FlowelleBase):
    symptom_id: int
    name: str
    icon: str | None = None


# ---------- Cycle symptoms ----------

class CycleSymptomInput(FlowelleBase):
    """A symptom observation submitted together with a cycle.

    Intensity bounds are checked by the service so that an unknown symptom
    is reported before an out-of-range intensity.
    """

    symptom_id: int
    intensity: int
    date: date


class CycleSymptomCreate(CycleSymptomInput):
    cycle_id: int


class CycleSymptomUpdate(FlowelleBase):
    intensity: int
    date: date


class CycleSymptomRead(FlowelleBase):
    cycle_symptom_id: int
    cycle_id: int
    symptom_id: int
    intensity: int
    date: date
    name: str | None = None
    icon: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


# ---------- Cycles ----------

class CycleBase(FlowelleBase):
    user_id: int
    start_date: date
    end_date: date
    notes: str | None = Field(default=None, max_length=2000)


class CycleCreate(CycleBase):
    symptoms: list[CycleSymptomInput] = Field(default_factory=list)


class CycleUpdate(CycleBase):
    cycle_id: int | None = None
    symptoms: list[CycleSymptomInput] = Field(default_factory=list)


class CycleRead(CycleBase):
    cycle_id: int
    created_at: datetime = Field(default_factory=utc_now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def duration(self) -> int:
        return (self.end_date - self.start_date).days + 1


class CycleWithSymptoms(CycleRead):
    symptoms: list[CycleSymptomRead] = Field(default_factory=list)
    ovulation_date: date | None = None
    fertile_window_start: date | None = None
    fertile_window_end: date | None = None


# ---------- Statistics / calendar ----------

class CycleStatsRead(FlowelleBase):
    user_id: int
    cycle_count: int
    average_period_length: int | None = None
    average_cycle_length: int | None = None
    next_period_date: date | None = None


class CalendarDayRead(FlowelleBase):
    date: date
    is_period: bool = False
    is_fertile: bool = False
    is_ovulation: bool = False
    cycle_id: int | None = None


class CalendarMonthRead(FlowelleBase):
    user_id: int
    year: int
    month: int
    days: list[CalendarDayRead]
