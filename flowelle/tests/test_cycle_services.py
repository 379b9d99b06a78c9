"""Service-level tests for cycle and cycle-symptom operations.

These call the service functions directly against the in-memory store, so
validation order and write ordering can be checked without HTTP.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, call

import pytest

from flowelle.dependencies import AuthContext
from flowelle.errors import AuthorizationError, NotFoundError, ValidationError
from flowelle.models.cycles import (
    CycleCreate,
    CycleRead,
    CycleSymptomInput,
    CycleSymptomRead,
    CycleSymptomUpdate,
    CycleUpdate,
)
from flowelle.services import cycles
from flowelle.services.repository import Repository

START = date(2024, 1, 1)
END = date(2024, 1, 5)


def new_cycle(user_id: int, symptoms: list[CycleSymptomInput] | None = None) -> CycleCreate:
    return CycleCreate(
        user_id=user_id,
        start_date=START,
        end_date=END,
        notes="heavy first day",
        symptoms=symptoms or [],
    )


# ---------------------------------------------------------------------------
# Symptom validation order
# ---------------------------------------------------------------------------


class TestValidateCycleSymptom:
    @pytest.mark.asyncio
    async def test_unknown_symptom_reported_first(self, repo) -> None:
        with pytest.raises(NotFoundError, match="Symptom with ID 999"):
            await cycles.validate_cycle_symptom(repo, START, END, 999, 42, date(2030, 1, 1))

    @pytest.mark.asyncio
    async def test_intensity_before_date(self, repo) -> None:
        with pytest.raises(ValidationError, match="Intensity"):
            await cycles.validate_cycle_symptom(repo, START, END, 1, 6, date(2030, 1, 1))

    @pytest.mark.asyncio
    async def test_date_outside_cycle(self, repo) -> None:
        with pytest.raises(ValidationError, match="within cycle range"):
            await cycles.validate_cycle_symptom(repo, START, END, 1, 3, date(2024, 1, 6))

    @pytest.mark.asyncio
    async def test_boundary_dates_accepted(self, repo) -> None:
        first = await cycles.validate_cycle_symptom(repo, START, END, 1, 1, START)
        last = await cycles.validate_cycle_symptom(repo, START, END, 1, 5, END)
        assert first.name == last.name == "Cramps"


def test_end_before_start_rejected() -> None:
    with pytest.raises(ValidationError):
        cycles.validate_date_range(date(2024, 1, 5), date(2024, 1, 4))
    cycles.validate_date_range(START, START)


class TestLatestStartDate:
    def test_start_near_date_max_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Start date must be at least 60 days"):
            cycles.validate_date_range(date(9999, 12, 25), date(9999, 12, 31))

    def test_last_start_with_room_for_predictions(self) -> None:
        cycles.validate_date_range(date(9999, 11, 1), date(9999, 11, 5))
        with pytest.raises(ValidationError):
            cycles.validate_date_range(date(9999, 11, 2), date(9999, 11, 5))

    @pytest.mark.asyncio
    async def test_update_to_late_start_leaves_cycle_untouched(self, repo, ana, ana_ctx) -> None:
        created = await cycles.create_cycle(repo, ana_ctx, new_cycle(ana.user_id))
        body = CycleUpdate(
            cycle_id=created.cycle_id,
            user_id=ana.user_id,
            start_date=date(9999, 12, 30),
            end_date=date(9999, 12, 31),
        )
        with pytest.raises(ValidationError):
            await cycles.update_cycle(repo, ana_ctx, created.cycle_id, body)
        assert (await repo.get_cycle(created.cycle_id)).start_date == START


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------


class TestCreateCycle:
    @pytest.mark.asyncio
    async def test_creates_cycle_with_symptoms(self, repo, ana_ctx: AuthContext) -> None:
        body = new_cycle(
            ana_ctx.user_id,
            [
                CycleSymptomInput(symptom_id=2, intensity=2, date=date(2024, 1, 3)),
                CycleSymptomInput(symptom_id=1, intensity=4, date=date(2024, 1, 1)),
            ],
        )
        created = await cycles.create_cycle(repo, ana_ctx, body)
        assert created.duration == 5
        assert created.ovulation_date == date(2024, 1, 15)
        assert created.fertile_window_start == date(2024, 1, 10)
        assert created.fertile_window_end == date(2024, 1, 14)
        assert [s.name for s in created.symptoms] == ["Cramps", "Headache"]
        assert len(repo.cycle_symptoms) == 2

    @pytest.mark.asyncio
    async def test_bad_symptom_persists_nothing(self, repo, ana_ctx: AuthContext) -> None:
        body = new_cycle(
            ana_ctx.user_id,
            [
                CycleSymptomInput(symptom_id=1, intensity=3, date=START),
                CycleSymptomInput(symptom_id=1, intensity=3, date=date(2024, 2, 1)),
            ],
        )
        with pytest.raises(ValidationError):
            await cycles.create_cycle(repo, ana_ctx, body)
        assert repo.cycles == {}
        assert repo.cycle_symptoms == {}

    @pytest.mark.asyncio
    async def test_cannot_create_for_someone_else(
        self, repo, ana_ctx: AuthContext, bea_ctx: AuthContext
    ) -> None:
        with pytest.raises(AuthorizationError):
            await cycles.create_cycle(repo, ana_ctx, new_cycle(bea_ctx.user_id))
        assert repo.cycles == {}


class TestUpdateCycle:
    @pytest.mark.asyncio
    async def test_replaces_symptom_set(self, repo, ana_ctx: AuthContext) -> None:
        created = await cycles.create_cycle(
            repo,
            ana_ctx,
            new_cycle(ana_ctx.user_id, [CycleSymptomInput(symptom_id=1, intensity=3, date=START)]),
        )
        body = CycleUpdate(
            cycle_id=created.cycle_id,
            user_id=ana_ctx.user_id,
            start_date=START,
            end_date=date(2024, 1, 6),
            notes=None,
            symptoms=[CycleSymptomInput(symptom_id=3, intensity=1, date=date(2024, 1, 6))],
        )
        updated = await cycles.update_cycle(repo, ana_ctx, created.cycle_id, body)
        assert updated.duration == 6
        assert updated.notes is None
        assert [s.symptom_id for s in updated.symptoms] == [3]
        assert [r["symptom_id"] for r in repo.cycle_symptoms.values()] == [3]

    @pytest.mark.asyncio
    async def test_id_mismatch(self, repo, ana_ctx: AuthContext) -> None:
        created = await cycles.create_cycle(repo, ana_ctx, new_cycle(ana_ctx.user_id))
        body = CycleUpdate(
            cycle_id=created.cycle_id + 1,
            user_id=ana_ctx.user_id,
            start_date=START,
            end_date=END,
        )
        with pytest.raises(ValidationError, match="must match"):
            await cycles.update_cycle(repo, ana_ctx, created.cycle_id, body)

    @pytest.mark.asyncio
    async def test_other_users_cycle_left_untouched(
        self, repo, ana_ctx: AuthContext, bea_ctx: AuthContext
    ) -> None:
        created = await cycles.create_cycle(repo, ana_ctx, new_cycle(ana_ctx.user_id))
        body = CycleUpdate(
            cycle_id=created.cycle_id,
            user_id=bea_ctx.user_id,
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 2),
        )
        with pytest.raises(AuthorizationError):
            await cycles.update_cycle(repo, bea_ctx, created.cycle_id, body)
        assert repo.cycles[created.cycle_id].start_date == START

    @pytest.mark.asyncio
    async def test_missing_cycle(self, repo, ana_ctx: AuthContext) -> None:
        body = CycleUpdate(user_id=ana_ctx.user_id, start_date=START, end_date=END)
        with pytest.raises(NotFoundError):
            await cycles.update_cycle(repo, ana_ctx, 404, body)


# ---------------------------------------------------------------------------
# Delete ordering (mocked repository)
# ---------------------------------------------------------------------------


class TestDeleteCycle:
    @pytest.mark.asyncio
    async def test_symptoms_removed_before_cycle(self) -> None:
        auth = AuthContext(user_id=7, email="ana@flowelle.app")
        repo = AsyncMock(spec=Repository)
        repo.get_cycle.return_value = CycleRead(
            cycle_id=3, user_id=7, start_date=START, end_date=END
        )
        repo.delete_cycle_symptoms_for_cycle.return_value = 2
        repo.delete_cycle.return_value = True

        await cycles.delete_cycle(repo, auth, 3, 7)

        writes = [c for c in repo.mock_calls if c[0].startswith("delete_")]
        assert writes == [call.delete_cycle_symptoms_for_cycle(3), call.delete_cycle(3)]

    @pytest.mark.asyncio
    async def test_path_user_must_be_caller(self) -> None:
        auth = AuthContext(user_id=7, email="ana@flowelle.app")
        repo = AsyncMock(spec=Repository)
        repo.get_cycle.return_value = CycleRead(
            cycle_id=3, user_id=7, start_date=START, end_date=END
        )

        with pytest.raises(AuthorizationError):
            await cycles.delete_cycle(repo, auth, 3, 8)
        repo.delete_cycle.assert_not_called()
        repo.delete_cycle_symptoms_for_cycle.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_cycle(self) -> None:
        repo = AsyncMock(spec=Repository)
        repo.get_cycle.return_value = None
        with pytest.raises(NotFoundError):
            await cycles.delete_cycle(repo, AuthContext(user_id=7, email="a@flowelle.app"), 3, 7)


# ---------------------------------------------------------------------------
# Cycle symptoms
# ---------------------------------------------------------------------------


class TestUpdateCycleSymptom:
    @pytest.mark.asyncio
    async def test_keeps_existing_symptom_id(self, repo, ana_ctx: AuthContext) -> None:
        created = await cycles.create_cycle(
            repo,
            ana_ctx,
            new_cycle(ana_ctx.user_id, [CycleSymptomInput(symptom_id=4, intensity=2, date=START)]),
        )
        row: CycleSymptomRead = created.symptoms[0]
        updated = await cycles.update_cycle_symptom(
            repo, ana_ctx, row.cycle_symptom_id, CycleSymptomUpdate(intensity=5, date=END)
        )
        assert updated.symptom_id == 4
        assert updated.intensity == 5
        assert updated.date == END
