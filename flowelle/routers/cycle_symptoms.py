"""CRUD endpoints for symptoms recorded against a cycle."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from flowelle.dependencies import CurrentUser, Repo
from flowelle.models.cycles import CycleSymptomCreate, CycleSymptomRead, CycleSymptomUpdate
from flowelle.services import cycles

router = APIRouter(prefix="/cyclesymptom", tags=["cycle symptoms"])


@router.get("/cycle/{cycle_id}", response_model=list[CycleSymptomRead])
async def list_for_cycle(cycle_id: int, user: CurrentUser, repo: Repo) -> Any:
    return await cycles.list_cycle_symptoms(repo, user, cycle_id)


@router.post("", response_model=CycleSymptomRead, status_code=201)
async def create_cycle_symptom(body: CycleSymptomCreate, user: CurrentUser, repo: Repo) -> Any:
    return await cycles.add_cycle_symptom(repo, user, body)


@router.put("/{cycle_symptom_id}", response_model=CycleSymptomRead)
async def update_cycle_symptom(
    cycle_symptom_id: int, body: CycleSymptomUpdate, user: CurrentUser, repo: Repo
) -> Any:
    return await cycles.update_cycle_symptom(repo, user, cycle_symptom_id, body)


@router.delete("/{cycle_symptom_id}", status_code=204)
async def delete_cycle_symptom(cycle_symptom_id: int, user: CurrentUser, repo: Repo) -> None:
    await cycles.delete_cycle_symptom(repo, user, cycle_symptom_id)
