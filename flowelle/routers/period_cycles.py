"""CRUD endpoints for period cycles, plus statistics and the calendar view."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from flowelle.dependencies import CurrentUser, Repo
from flowelle.models.cycles import (
    CalendarMonthRead,
    CycleCreate,
    CycleStatsRead,
    CycleUpdate,
    CycleWithSymptoms,
)
from flowelle.services import cycles

router = APIRouter(prefix="/periodcycle", tags=["period cycles"])


@router.get("/user/{user_id}", response_model=list[CycleWithSymptoms])
async def list_cycles(user_id: int, user: CurrentUser, repo: Repo) -> Any:
    """All of the caller's cycles, most recent start date first."""
    return await cycles.list_cycles(repo, user, user_id)


@router.get("/user/{user_id}/stats", response_model=CycleStatsRead)
async def cycle_stats(user_id: int, user: CurrentUser, repo: Repo) -> Any:
    return await cycles.cycle_statistics(repo, user, user_id)


@router.get("/user/{user_id}/calendar", response_model=CalendarMonthRead)
async def calendar_month(
    user_id: int,
    user: CurrentUser,
    repo: Repo,
    year: int = Query(),
    month: int = Query(),
) -> Any:
    """Period / fertile / ovulation tags for every day of one month."""
    return await cycles.calendar_month(repo, user, user_id, year, month)


@router.get("/{cycle_id}", response_model=CycleWithSymptoms)
async def get_cycle(cycle_id: int, user: CurrentUser, repo: Repo) -> Any:
    return await cycles.get_cycle(repo, user, cycle_id)


@router.post("", response_model=CycleWithSymptoms, status_code=201)
async def create_cycle(body: CycleCreate, user: CurrentUser, repo: Repo) -> Any:
    return await cycles.create_cycle(repo, user, body)


@router.put("/{cycle_id}", response_model=CycleWithSymptoms)
async def update_cycle(cycle_id: int, body: CycleUpdate, user: CurrentUser, repo: Repo) -> Any:
    """Replace dates, notes and the whole symptom list."""
    return await cycles.update_cycle(repo, user, cycle_id, body)


@router.delete("/{cycle_id}/user/{user_id}", status_code=204)
async def delete_cycle(cycle_id: int, user_id: int, user: CurrentUser, repo: Repo) -> None:
    await cycles.delete_cycle(repo, user, cycle_id, user_id)
