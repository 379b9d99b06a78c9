"""Storage interface for users, cycles, symptoms and cycle symptoms.

``Repository`` is the contract the service layer codes against.
``PostgresRepository`` implements it on top of one asyncpg connection that
already holds the request's transaction (see ``get_connection``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

import asyncpg

from flowelle.errors import ConflictError
from flowelle.models.cycles import CycleRead, CycleSymptomRead, SymptomRead
from flowelle.models.users import UserInDB


class Repository(ABC):
    """Persistence operations used by the services.

    Every method is a single statement; callers compose them inside the
    surrounding transaction.
    """

    # ---------- Users ----------

    @abstractmethod
    async def get_user_by_id(self, user_id: int) -> UserInDB | None: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> UserInDB | None:
        """Case-insensitive lookup."""

    @abstractmethod
    async def insert_user(self, name: str, email: str, password_hash: str) -> UserInDB:
        """Raises ConflictError if the email is taken."""

    @abstractmethod
    async def update_user(self, user_id: int, name: str, email: str) -> UserInDB | None:
        """Raises ConflictError if the email is taken."""

    @abstractmethod
    async def update_user_password(self, user_id: int, password_hash: str) -> bool: ...

    @abstractmethod
    async def delete_user(self, user_id: int) -> bool: ...

    # ---------- Cycles ----------

    @abstractmethod
    async def get_cycle(self, cycle_id: int) -> CycleRead | None: ...

    @abstractmethod
    async def list_cycles(self, user_id: int) -> list[CycleRead]:
        """All of a user's cycles, most recent start date first."""

    @abstractmethod
    async def insert_cycle(
        self, user_id: int, start_date: date, end_date: date, notes: str | None
    ) -> CycleRead: ...

    @abstractmethod
    async def update_cycle(
        self, cycle_id: int, start_date: date, end_date: date, notes: str | None
    ) -> CycleRead | None: ...

    @abstractmethod
    async def delete_cycle(self, cycle_id: int) -> bool: ...

    @abstractmethod
    async def delete_cycles_for_user(self, user_id: int) -> int: ...

    # ---------- Symptom catalog ----------

    @abstractmethod
    async def list_symptoms(self) -> list[SymptomRead]: ...

    @abstractmethod
    async def get_symptom(self, symptom_id: int) -> SymptomRead | None: ...

    # ---------- Cycle symptoms ----------

    @abstractmethod
    async def get_cycle_symptom(self, cycle_symptom_id: int) -> CycleSymptomRead | None: ...

    @abstractmethod
    async def list_cycle_symptoms(self, cycle_id: int) -> list[CycleSymptomRead]:
        """A cycle's symptoms joined with catalog name/icon, ordered by date."""

    @abstractmethod
    async def insert_cycle_symptom(
        self, cycle_id: int, symptom_id: int, intensity: int, on: date
    ) -> CycleSymptomRead: ...

    @abstractmethod
    async def update_cycle_symptom(
        self, cycle_symptom_id: int, intensity: int, on: date
    ) -> CycleSymptomRead | None: ...

    @abstractmethod
    async def delete_cycle_symptom(self, cycle_symptom_id: int) -> bool: ...

    @abstractmethod
    async def delete_cycle_symptoms_for_cycle(self, cycle_id: int) -> int: ...

    @abstractmethod
    async def delete_cycle_symptoms_for_user(self, user_id: int) -> int: ...


def _affected(status: str) -> int:
    """Row count from an asyncpg command tag such as ``DELETE 3``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


_CYCLE_SYMPTOM_SELECT = """
    SELECT cs.cycle_symptom_id, cs.cycle_id, cs.symptom_id, cs.intensity,
           cs.date, cs.created_at, s.name, s.icon
    FROM cycle_symptoms cs
    JOIN symptoms s ON s.symptom_id = cs.symptom_id
"""


class PostgresRepository(Repository):
    """asyncpg implementation bound to one connection."""

    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    # ---------- Users ----------

    async def get_user_by_id(self, user_id: int) -> UserInDB | None:
        row = await self._conn.fetchrow("SELECT * FROM users WHERE user_id = $1", user_id)
        return UserInDB.model_validate(dict(row)) if row else None

    async def get_user_by_email(self, email: str) -> UserInDB | None:
        row = await self._conn.fetchrow(
            "SELECT * FROM users WHERE lower(email) = lower($1)", email
        )
        return UserInDB.model_validate(dict(row)) if row else None

    async def insert_user(self, name: str, email: str, password_hash: str) -> UserInDB:
        try:
            row = await self._conn.fetchrow(
                """
                INSERT INTO users (name, email, password_hash)
                VALUES ($1, $2, $3)
                RETURNING *
                """,
                name, email, password_hash,
            )
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(f"Email '{email}' already exists") from exc
        return UserInDB.model_validate(dict(row))

    async def update_user(self, user_id: int, name: str, email: str) -> UserInDB | None:
        try:
            row = await self._conn.fetchrow(
                "UPDATE users SET name = $2, email = $3 WHERE user_id = $1 RETURNING *",
                user_id, name, email,
            )
        except asyncpg.UniqueViolationError as exc:
            raise ConflictError(f"Email '{email}' is already taken") from exc
        return UserInDB.model_validate(dict(row)) if row else None

    async def update_user_password(self, user_id: int, password_hash: str) -> bool:
        status = await self._conn.execute(
            "UPDATE users SET password_hash = $2 WHERE user_id = $1",
            user_id, password_hash,
        )
        return _affected(status) > 0

    async def delete_user(self, user_id: int) -> bool:
        status = await self._conn.execute("DELETE FROM users WHERE user_id = $1", user_id)
        return _affected(status) > 0

    # ---------- Cycles ----------

    async def get_cycle(self, cycle_id: int) -> CycleRead | None:
        row = await self._conn.fetchrow(
            "SELECT * FROM period_cycles WHERE cycle_id = $1", cycle_id
        )
        return CycleRead.model_validate(dict(row)) if row else None

    async def list_cycles(self, user_id: int) -> list[CycleRead]:
        rows = await self._conn.fetch(
            """
            SELECT * FROM period_cycles
            WHERE user_id = $1
            ORDER BY start_date DESC, cycle_id DESC
            """,
            user_id,
        )
        return [CycleRead.model_validate(dict(r)) for r in rows]

    async def insert_cycle(
        self, user_id: int, start_date: date, end_date: date, notes: str | None
    ) -> CycleRead:
        row = await self._conn.fetchrow(
            """
            INSERT INTO period_cycles (user_id, start_date, end_date, notes)
            VALUES ($1, $2, $3, $4)
            RETURNING *
            """,
            user_id, start_date, end_date, notes,
        )
        return CycleRead.model_validate(dict(row))

    async def update_cycle(
        self, cycle_id: int, start_date: date, end_date: date, notes: str | None
    ) -> CycleRead | None:
        row = await self._conn.fetchrow(
            """
            UPDATE period_cycles SET start_date = $2, end_date = $3, notes = $4
            WHERE cycle_id = $1
            RETURNING *
            """,
            cycle_id, start_date, end_date, notes,
        )
        return CycleRead.model_validate(dict(row)) if row else None

    async def delete_cycle(self, cycle_id: int) -> bool:
        status = await self._conn.execute(
            "DELETE FROM period_cycles WHERE cycle_id = $1", cycle_id
        )
        return _affected(status) > 0

    async def delete_cycles_for_user(self, user_id: int) -> int:
        status = await self._conn.execute(
            "DELETE FROM period_cycles WHERE user_id = $1", user_id
        )
        return _affected(status)

    # ---------- Symptom catalog ----------

    async def list_symptoms(self) -> list[SymptomRead]:
        rows = await self._conn.fetch("SELECT * FROM symptoms ORDER BY name")
        return [SymptomRead.model_validate(dict(r)) for r in rows]

    async def get_symptom(self, symptom_id: int) -> SymptomRead | None:
        row = await self._conn.fetchrow(
            "SELECT * FROM symptoms WHERE symptom_id = $1", symptom_id
        )
        return SymptomRead.model_validate(dict(row)) if row else None

    # ---------- Cycle symptoms ----------

    async def get_cycle_symptom(self, cycle_symptom_id: int) -> CycleSymptomRead | None:
        row = await self._conn.fetchrow(
            _CYCLE_SYMPTOM_SELECT + " WHERE cs.cycle_symptom_id = $1",
            cycle_symptom_id,
        )
        return CycleSymptomRead.model_validate(dict(row)) if row else None

    async def list_cycle_symptoms(self, cycle_id: int) -> list[CycleSymptomRead]:
        rows = await self._conn.fetch(
            _CYCLE_SYMPTOM_SELECT + " WHERE cs.cycle_id = $1 ORDER BY cs.date, cs.cycle_symptom_id",
            cycle_id,
        )
        return [CycleSymptomRead.model_validate(dict(r)) for r in rows]

    async def insert_cycle_symptom(
        self, cycle_id: int, symptom_id: int, intensity: int, on: date
    ) -> CycleSymptomRead:
        row = await self._conn.fetchrow(
            """
            WITH ins AS (
                INSERT INTO cycle_symptoms (cycle_id, symptom_id, intensity, date)
                VALUES ($1, $2, $3, $4)
                RETURNING *
            )
            SELECT ins.*, s.name, s.icon
            FROM ins JOIN symptoms s ON s.symptom_id = ins.symptom_id
            """,
            cycle_id, symptom_id, intensity, on,
        )
        return CycleSymptomRead.model_validate(dict(row))

    async def update_cycle_symptom(
        self, cycle_symptom_id: int, intensity: int, on: date
    ) -> CycleSymptomRead | None:
        row = await self._conn.fetchrow(
            """
            WITH upd AS (
                UPDATE cycle_symptoms SET intensity = $2, date = $3
                WHERE cycle_symptom_id = $1
                RETURNING *
            )
            SELECT upd.*, s.name, s.icon
            FROM upd JOIN symptoms s ON s.symptom_id = upd.symptom_id
            """,
            cycle_symptom_id, intensity, on,
        )
        return CycleSymptomRead.model_validate(dict(row)) if row else None

    async def delete_cycle_symptom(self, cycle_symptom_id: int) -> bool:
        status = await self._conn.execute(
            "DELETE FROM cycle_symptoms WHERE cycle_symptom_id = $1", cycle_symptom_id
        )
        return _affected(status) > 0

    async def delete_cycle_symptoms_for_cycle(self, cycle_id: int) -> int:
        status = await self._conn.execute(
            "DELETE FROM cycle_symptoms WHERE cycle_id = $1", cycle_id
        )
        return _affected(status)

    async def delete_cycle_symptoms_for_user(self, user_id: int) -> int:
        status = await self._conn.execute(
            """
            DELETE FROM cycle_symptoms
            WHERE cycle_id IN (SELECT cycle_id FROM period_cycles WHERE user_id = $1)
            """,
            user_id,
        )
        return _affected(status)
