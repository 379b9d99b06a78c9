"""Read-only symptom catalog. Shared reference data, no ownership."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from flowelle.dependencies import CurrentUser, Repo
from flowelle.errors import NotFoundError
from flowelle.models.cycles import SymptomRead

router = APIRouter(prefix="/symptom", tags=["symptoms"])


@router.get("", response_model=list[SymptomRead])
async def list_symptoms(user: CurrentUser, repo: Repo) -> Any:
    return await repo.list_symptoms()


@router.get("/{symptom_id}", response_model=SymptomRead)
async def get_symptom(symptom_id: int, user: CurrentUser, repo: Repo) -> Any:
    symptom = await repo.get_symptom(symptom_id)
    if symptom is None:
        raise NotFoundError(f"Symptom with ID {symptom_id} not found")
    return symptom
