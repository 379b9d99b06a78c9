"""Shared fixtures: an in-memory store, an app wired to it, and helpers for
registering users and building auth headers."""

from __future__ import annotations

import os

# Cheap hashes for tests; must be set before settings are first read
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("APPLY_SCHEMA_ON_STARTUP", "false")

from datetime import date, datetime, timezone
from typing import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from flowelle.config import Settings
from flowelle.dependencies import AuthContext, get_repository
from flowelle.errors import ConflictError
from flowelle.main import create_app
from flowelle.menstrual.config_loader import CycleConfig, load_cycle_config
from flowelle.models.cycles import CycleRead, CycleSymptomRead, SymptomRead
from flowelle.models.users import UserInDB
from flowelle.services.basic_auth import encode_basic_credentials
from flowelle.services.passwords import hash_password
from flowelle.services.repository import Repository

TEST_PASSWORD = "VerySecret!"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryRepository(Repository):
    """Dict-backed Repository with the same ordering and uniqueness rules as
    the PostgreSQL implementation."""

    def __init__(self, catalog: list[tuple[str, str | None]] | None = None) -> None:
        self.users: dict[int, UserInDB] = {}
        self.cycles: dict[int, CycleRead] = {}
        self.symptoms: dict[int, SymptomRead] = {}
        self.cycle_symptoms: dict[int, dict] = {}
        self._ids = {"user": 0, "cycle": 0, "symptom": 0, "cycle_symptom": 0}
        for name, icon in catalog or []:
            sid = self._next("symptom")
            self.symptoms[sid] = SymptomRead(symptom_id=sid, name=name, icon=icon)

    def _next(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    # ---------- Users ----------

    async def get_user_by_id(self, user_id: int) -> UserInDB | None:
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> UserInDB | None:
        for user in self.users.values():
            if user.email.lower() == email.lower():
                return user
        return None

    async def insert_user(self, name: str, email: str, password_hash: str) -> UserInDB:
        if await self.get_user_by_email(email):
            raise ConflictError(f"Email '{email}' already exists")
        uid = self._next("user")
        user = UserInDB(
            user_id=uid, name=name, email=email, password_hash=password_hash, created_at=_now()
        )
        self.users[uid] = user
        return user

    async def update_user(self, user_id: int, name: str, email: str) -> UserInDB | None:
        existing = self.users.get(user_id)
        if existing is None:
            return None
        other = await self.get_user_by_email(email)
        if other is not None and other.user_id != user_id:
            raise ConflictError(f"Email '{email}' is already taken")
        updated = existing.model_copy(update={"name": name, "email": email})
        self.users[user_id] = updated
        return updated

    async def update_user_password(self, user_id: int, password_hash: str) -> bool:
        existing = self.users.get(user_id)
        if existing is None:
            return False
        self.users[user_id] = existing.model_copy(update={"password_hash": password_hash})
        return True

    async def delete_user(self, user_id: int) -> bool:
        return self.users.pop(user_id, None) is not None

    # ---------- Cycles ----------

    async def get_cycle(self, cycle_id: int) -> CycleRead | None:
        return self.cycles.get(cycle_id)

    async def list_cycles(self, user_id: int) -> list[CycleRead]:
        owned = [c for c in self.cycles.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: (c.start_date, c.cycle_id), reverse=True)

    async def insert_cycle(
        self, user_id: int, start_date: date, end_date: date, notes: str | None
    ) -> CycleRead:
        cid = self._next("cycle")
        cycle = CycleRead(
            cycle_id=cid,
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            notes=notes,
            created_at=_now(),
        )
        self.cycles[cid] = cycle
        return cycle

    async def update_cycle(
        self, cycle_id: int, start_date: date, end_date: date, notes: str | None
    ) -> CycleRead | None:
        existing = self.cycles.get(cycle_id)
        if existing is None:
            return None
        updated = existing.model_copy(
            update={"start_date": start_date, "end_date": end_date, "notes": notes}
        )
        self.cycles[cycle_id] = updated
        return updated

    async def delete_cycle(self, cycle_id: int) -> bool:
        if any(r["cycle_id"] == cycle_id for r in self.cycle_symptoms.values()):
            raise AssertionError("cycle deleted while cycle_symptoms still reference it")
        return self.cycles.pop(cycle_id, None) is not None

    async def delete_cycles_for_user(self, user_id: int) -> int:
        ids = [cid for cid, c in self.cycles.items() if c.user_id == user_id]
        for cid in ids:
            await self.delete_cycle(cid)
        return len(ids)

    # ---------- Symptom catalog ----------

    async def list_symptoms(self) -> list[SymptomRead]:
        return sorted(self.symptoms.values(), key=lambda s: s.name)

    async def get_symptom(self, symptom_id: int) -> SymptomRead | None:
        return self.symptoms.get(symptom_id)

    # ---------- Cycle symptoms ----------

    def _read(self, row: dict) -> CycleSymptomRead:
        symptom = self.symptoms[row["symptom_id"]]
        return CycleSymptomRead(**row, name=symptom.name, icon=symptom.icon)

    async def get_cycle_symptom(self, cycle_symptom_id: int) -> CycleSymptomRead | None:
        row = self.cycle_symptoms.get(cycle_symptom_id)
        return self._read(row) if row else None

    async def list_cycle_symptoms(self, cycle_id: int) -> list[CycleSymptomRead]:
        rows = [r for r in self.cycle_symptoms.values() if r["cycle_id"] == cycle_id]
        rows.sort(key=lambda r: (r["date"], r["cycle_symptom_id"]))
        return [self._read(r) for r in rows]

    async def insert_cycle_symptom(
        self, cycle_id: int, symptom_id: int, intensity: int, on: date
    ) -> CycleSymptomRead:
        csid = self._next("cycle_symptom")
        self.cycle_symptoms[csid] = {
            "cycle_symptom_id": csid,
            "cycle_id": cycle_id,
            "symptom_id": symptom_id,
            "intensity": intensity,
            "date": on,
            "created_at": _now(),
        }
        return self._read(self.cycle_symptoms[csid])

    async def update_cycle_symptom(
        self, cycle_symptom_id: int, intensity: int, on: date
    ) -> CycleSymptomRead | None:
        row = self.cycle_symptoms.get(cycle_symptom_id)
        if row is None:
            return None
        row.update(intensity=intensity, date=on)
        return self._read(row)

    async def delete_cycle_symptom(self, cycle_symptom_id: int) -> bool:
        return self.cycle_symptoms.pop(cycle_symptom_id, None) is not None

    async def delete_cycle_symptoms_for_cycle(self, cycle_id: int) -> int:
        ids = [k for k, r in self.cycle_symptoms.items() if r["cycle_id"] == cycle_id]
        for k in ids:
            del self.cycle_symptoms[k]
        return len(ids)

    async def delete_cycle_symptoms_for_user(self, user_id: int) -> int:
        owned = {cid for cid, c in self.cycles.items() if c.user_id == user_id}
        ids = [k for k, r in self.cycle_symptoms.items() if r["cycle_id"] in owned]
        for k in ids:
            del self.cycle_symptoms[k]
        return len(ids)


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_config() -> CycleConfig:
    """Load the bundled cycle config."""
    return load_cycle_config()


# ---------------------------------------------------------------------------
# Store / app fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repo(cycle_config: CycleConfig) -> MemoryRepository:
    return MemoryRepository([(s.name, s.icon) for s in cycle_config.symptom_catalog])


@pytest.fixture
def settings() -> Settings:
    return Settings(bcrypt_rounds=4, auth_rate_limit_per_minute=1000)


@pytest.fixture
def app(repo: MemoryRepository, settings: Settings) -> FastAPI:
    application = create_app(settings)

    async def _memory_repository():
        yield repo

    application.dependency_overrides[get_repository] = _memory_repository
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


# ---------------------------------------------------------------------------
# User helpers
# ---------------------------------------------------------------------------


def auth_headers(email: str, password: str = TEST_PASSWORD) -> dict[str, str]:
    return {"Authorization": encode_basic_credentials(email, password)}


@pytest.fixture
def make_user(repo: MemoryRepository) -> Callable[..., UserInDB]:
    """Insert a user straight into the store and return it."""
    hashed = hash_password(TEST_PASSWORD)

    def _make(name: str = "Ana", email: str = "ana@flowelle.app") -> UserInDB:
        uid = repo._next("user")
        user = UserInDB(
            user_id=uid, name=name, email=email, password_hash=hashed, created_at=_now()
        )
        repo.users[uid] = user
        return user

    return _make


@pytest.fixture
def ana(make_user: Callable[..., UserInDB]) -> UserInDB:
    return make_user("Ana", "ana@flowelle.app")


@pytest.fixture
def bea(make_user: Callable[..., UserInDB]) -> UserInDB:
    return make_user("Bea", "bea@flowelle.app")


@pytest.fixture
def ana_ctx(ana: UserInDB) -> AuthContext:
    return AuthContext(user_id=ana.user_id, email=ana.email, name=ana.name)


@pytest.fixture
def bea_ctx(bea: UserInDB) -> AuthContext:
    return AuthContext(user_id=bea.user_id, email=bea.email, name=bea.name)
