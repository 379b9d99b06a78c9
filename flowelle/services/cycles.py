"""Period cycle and cycle-symptom operations.

Every operation checks ownership and validates its input before the first
write, so a rejected call leaves the store untouched.  Multi-row writes
run inside the request transaction opened by ``get_repository``.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import TYPE_CHECKING, Iterable

from flowelle.errors import NotFoundError, ValidationError
from flowelle.menstrual.config_loader import CycleConfig, get_cycle_config
from flowelle.menstrual.cycle_stats import CycleRecord, CycleStatsCalculator
from flowelle.menstrual.fertility import classify_month, fertile_window
from flowelle.models.cycles import (
    CalendarDayRead,
    CalendarMonthRead,
    CycleCreate,
    CycleRead,
    CycleStatsRead,
    CycleSymptomCreate,
    CycleSymptomInput,
    CycleSymptomRead,
    CycleSymptomUpdate,
    CycleUpdate,
    CycleWithSymptoms,
    SymptomRead,
)
from flowelle.services.access import ensure_owner
from flowelle.services.repository import Repository

if TYPE_CHECKING:
    from flowelle.dependencies import AuthContext

logger = logging.getLogger("flowelle.cycles")


# ---------- Validation ----------

def validate_date_range(
    start_date: date, end_date: date, config: CycleConfig | None = None
) -> None:
    """Check the cycle bounds and that predictions from ``start_date`` fit in a date.

    Ovulation and the next-period estimate are computed forward from the
    start, so a start too close to ``date.max`` is rejected up front.
    """
    if end_date < start_date:
        raise ValidationError("End date must be on or after start date")
    cfg = config or get_cycle_config()
    horizon = max(
        cfg.prediction.ovulation_offset_days,
        cfg.prediction.max_gap_exclusive_days,
    )
    try:
        start_date + timedelta(days=horizon)
    except OverflowError:
        raise ValidationError(
            f"Start date must be at least {horizon} days before {date.max.isoformat()}"
        ) from None


async def validate_cycle_symptom(
    repo: Repository,
    start_date: date,
    end_date: date,
    symptom_id: int,
    intensity: int,
    on: date,
    config: CycleConfig | None = None,
) -> SymptomRead:
    """Check one symptom observation against its cycle.

    Order: symptom exists (404), intensity in range (400), date inside the
    cycle (400).  Only the first failure is reported.
    """
    cfg = config or get_cycle_config()
    symptom = await repo.get_symptom(symptom_id)
    if symptom is None:
        raise NotFoundError(f"Symptom with ID {symptom_id} not found")
    if not cfg.intensity_in_range(intensity):
        raise ValidationError(
            f"Intensity must be between {cfg.intensity_min} and {cfg.intensity_max}"
        )
    if not start_date <= on <= end_date:
        raise ValidationError(
            f"Symptom date must be within cycle range ({start_date} to {end_date})"
        )
    return symptom


async def _validate_symptoms(
    repo: Repository,
    start_date: date,
    end_date: date,
    symptoms: Iterable[CycleSymptomInput],
) -> None:
    for s in symptoms:
        await validate_cycle_symptom(repo, start_date, end_date, s.symptom_id, s.intensity, s.date)


# ---------- Helpers ----------

def _with_symptoms(
    cycle: CycleRead,
    symptoms: list[CycleSymptomRead],
    config: CycleConfig | None = None,
) -> CycleWithSymptoms:
    window = fertile_window(cycle.start_date, config)
    return CycleWithSymptoms(
        **cycle.model_dump(exclude={"duration"}),
        symptoms=symptoms,
        ovulation_date=window.ovulation,
        fertile_window_start=window.start,
        fertile_window_end=window.end,
    )


def _records(cycles: Iterable[CycleRead]) -> list[CycleRecord]:
    return [CycleRecord(c.cycle_id, c.start_date, c.end_date) for c in cycles]


async def _get_owned_cycle(repo: Repository, auth: AuthContext, cycle_id: int) -> CycleRead:
    cycle = await repo.get_cycle(cycle_id)
    if cycle is None:
        raise NotFoundError(f"Cycle with ID {cycle_id} not found")
    ensure_owner(auth, cycle.user_id, "You can only access your own cycles")
    return cycle


async def _require_user(repo: Repository, user_id: int) -> None:
    if await repo.get_user_by_id(user_id) is None:
        raise NotFoundError(f"User with ID {user_id} not found")


# ---------- Cycles ----------

async def list_cycles(repo: Repository, auth: AuthContext, user_id: int) -> list[CycleWithSymptoms]:
    """All of the user's cycles with symptoms, most recent first."""
    ensure_owner(auth, user_id, "You can only access your own cycles")
    await _require_user(repo, user_id)

    cycles = await repo.list_cycles(user_id)
    cycles.sort(key=lambda c: c.start_date, reverse=True)
    return [
        _with_symptoms(c, await repo.list_cycle_symptoms(c.cycle_id))
        for c in cycles
    ]


async def get_cycle(repo: Repository, auth: AuthContext, cycle_id: int) -> CycleWithSymptoms:
    cycle = await _get_owned_cycle(repo, auth, cycle_id)
    return _with_symptoms(cycle, await repo.list_cycle_symptoms(cycle_id))


async def create_cycle(repo: Repository, auth: AuthContext, body: CycleCreate) -> CycleWithSymptoms:
    ensure_owner(auth, body.user_id, "You can only create cycles for yourself")
    validate_date_range(body.start_date, body.end_date)
    await _validate_symptoms(repo, body.start_date, body.end_date, body.symptoms)

    cycle = await repo.insert_cycle(body.user_id, body.start_date, body.end_date, body.notes)
    symptoms = [
        await repo.insert_cycle_symptom(cycle.cycle_id, s.symptom_id, s.intensity, s.date)
        for s in body.symptoms
    ]
    logger.info(
        "Created cycle %s for user %s with %d symptoms",
        cycle.cycle_id, body.user_id, len(symptoms),
    )
    symptoms.sort(key=lambda s: s.date)
    return _with_symptoms(cycle, symptoms)


async def update_cycle(
    repo: Repository, auth: AuthContext, cycle_id: int, body: CycleUpdate
) -> CycleWithSymptoms:
    """Replace a cycle's dates, notes and full symptom set."""
    existing = await _get_owned_cycle(repo, auth, cycle_id)
    ensure_owner(auth, body.user_id, "You can only update your own cycles")
    if body.cycle_id is not None and body.cycle_id != cycle_id:
        raise ValidationError("Cycle ID in URL must match the ID in the request body")
    validate_date_range(body.start_date, body.end_date)
    await _validate_symptoms(repo, body.start_date, body.end_date, body.symptoms)

    cycle = await repo.update_cycle(existing.cycle_id, body.start_date, body.end_date, body.notes)
    if cycle is None:
        raise NotFoundError(f"Cycle with ID {cycle_id} not found")

    await repo.delete_cycle_symptoms_for_cycle(cycle_id)
    symptoms = [
        await repo.insert_cycle_symptom(cycle_id, s.symptom_id, s.intensity, s.date)
        for s in body.symptoms
    ]
    symptoms.sort(key=lambda s: s.date)
    return _with_symptoms(cycle, symptoms)


async def delete_cycle(repo: Repository, auth: AuthContext, cycle_id: int, user_id: int) -> None:
    """Delete a cycle after removing its dependent symptom rows."""
    existing = await repo.get_cycle(cycle_id)
    if existing is None:
        raise NotFoundError(f"Cycle with ID {cycle_id} not found")
    ensure_owner(auth, user_id, "Cannot delete others' cycles")
    ensure_owner(auth, existing.user_id, "Cannot delete others' cycles")

    removed = await repo.delete_cycle_symptoms_for_cycle(cycle_id)
    await repo.delete_cycle(cycle_id)
    logger.info("Deleted cycle %s (%d symptoms)", cycle_id, removed)


# ---------- Statistics / calendar ----------

async def cycle_statistics(repo: Repository, auth: AuthContext, user_id: int) -> CycleStatsRead:
    ensure_owner(auth, user_id, "You can only access your own cycles")
    await _require_user(repo, user_id)

    stats = CycleStatsCalculator().summarize(_records(await repo.list_cycles(user_id)))
    return CycleStatsRead(
        user_id=user_id,
        cycle_count=stats.cycle_count,
        average_period_length=stats.average_period_length,
        average_cycle_length=stats.average_cycle_length,
        next_period_date=stats.next_period_date,
    )


async def calendar_month(
    repo: Repository, auth: AuthContext, user_id: int, year: int, month: int
) -> CalendarMonthRead:
    ensure_owner(auth, user_id, "You can only access your own cycles")
    await _require_user(repo, user_id)

    records = _records(await repo.list_cycles(user_id))
    try:
        days = classify_month(year, month, records)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    return CalendarMonthRead(
        user_id=user_id,
        year=year,
        month=month,
        days=[
            CalendarDayRead(
                date=d.date,
                is_period=d.is_period,
                is_fertile=d.is_fertile,
                is_ovulation=d.is_ovulation,
                cycle_id=d.cycle_id,
            )
            for d in days
        ],
    )


# ---------- Cycle symptoms ----------

async def list_cycle_symptoms(
    repo: Repository, auth: AuthContext, cycle_id: int
) -> list[CycleSymptomRead]:
    await _get_owned_cycle(repo, auth, cycle_id)
    return await repo.list_cycle_symptoms(cycle_id)


async def add_cycle_symptom(
    repo: Repository, auth: AuthContext, body: CycleSymptomCreate
) -> CycleSymptomRead:
    cycle = await _get_owned_cycle(repo, auth, body.cycle_id)
    await validate_cycle_symptom(
        repo, cycle.start_date, cycle.end_date, body.symptom_id, body.intensity, body.date
    )
    return await repo.insert_cycle_symptom(cycle.cycle_id, body.symptom_id, body.intensity, body.date)


async def update_cycle_symptom(
    repo: Repository, auth: AuthContext, cycle_symptom_id: int, body: CycleSymptomUpdate
) -> CycleSymptomRead:
    existing = await repo.get_cycle_symptom(cycle_symptom_id)
    if existing is None:
        raise NotFoundError(f"Cycle symptom with ID {cycle_symptom_id} not found")
    cycle = await _get_owned_cycle(repo, auth, existing.cycle_id)
    await validate_cycle_symptom(
        repo, cycle.start_date, cycle.end_date, existing.symptom_id, body.intensity, body.date
    )
    updated = await repo.update_cycle_symptom(cycle_symptom_id, body.intensity, body.date)
    if updated is None:
        raise NotFoundError(f"Cycle symptom with ID {cycle_symptom_id} not found")
    return updated


async def delete_cycle_symptom(repo: Repository, auth: AuthContext, cycle_symptom_id: int) -> None:
    existing = await repo.get_cycle_symptom(cycle_symptom_id)
    if existing is None:
        raise NotFoundError(f"Cycle symptom with ID {cycle_symptom_id} not found")
    await _get_owned_cycle(repo, auth, existing.cycle_id)
    await repo.delete_cycle_symptom(cycle_symptom_id)
