"""Account operations: registration, login, profile and password changes,
account deletion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flowelle.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from flowelle.models.users import (
    PasswordUpdate,
    RegisterRequest,
    UserInDB,
    UserRead,
    UserUpdate,
)
from flowelle.services.access import ensure_owner, ensure_same_email
from flowelle.services.passwords import hash_password_async, verify_password_async
from flowelle.services.repository import Repository

if TYPE_CHECKING:
    from flowelle.dependencies import AuthContext

logger = logging.getLogger("flowelle.accounts")


def _public(user: UserInDB) -> UserRead:
    return UserRead.model_validate(user.model_dump(exclude={"password_hash"}))


async def authenticate(repo: Repository, email: str, password: str) -> UserInDB:
    """Return the user for valid credentials, else raise AuthenticationError.

    Unknown email and wrong password produce the same error.
    """
    if not email or not password:
        raise AuthenticationError("Invalid email or password")
    user = await repo.get_user_by_email(email.strip())
    if user is None or not await verify_password_async(password, user.password_hash):
        logger.warning("Failed authentication for %s", email)
        raise AuthenticationError("Invalid email or password")
    return user


async def register(repo: Repository, body: RegisterRequest) -> UserRead:
    if not body.name or not body.email or not body.password:
        raise ValidationError("Name, email and password are required")

    if await repo.get_user_by_email(body.email) is not None:
        raise ConflictError(f"Email '{body.email}' already exists")

    user = await repo.insert_user(
        body.name, body.email, await hash_password_async(body.password)
    )
    logger.info("Registered user %s", user.user_id)
    return _public(user)


async def login(repo: Repository, email: str, password: str) -> UserRead:
    if not email.strip() or not password:
        raise ValidationError("Email and password are required")
    return _public(await authenticate(repo, email, password))


async def get_by_email(repo: Repository, auth: AuthContext, email: str) -> UserRead:
    ensure_same_email(auth, email, "You can only access your own information")
    user = await repo.get_user_by_email(email.strip())
    if user is None:
        raise NotFoundError(f"User with email '{email}' not found")
    return _public(user)


async def update_profile(repo: Repository, auth: AuthContext, body: UserUpdate) -> UserRead:
    ensure_owner(auth, body.user_id, "You can only update your own profile")
    existing = await repo.get_user_by_id(body.user_id)
    if existing is None:
        raise NotFoundError(f"User with ID {body.user_id} not found")

    if existing.email.casefold() != body.email.casefold():
        other = await repo.get_user_by_email(body.email)
        if other is not None and other.user_id != body.user_id:
            raise ConflictError(f"Email '{body.email}' is already taken")

    updated = await repo.update_user(body.user_id, body.name, body.email)
    if updated is None:
        raise NotFoundError(f"User with ID {body.user_id} not found")
    return _public(updated)


async def change_password(repo: Repository, auth: AuthContext, body: PasswordUpdate) -> None:
    ensure_owner(auth, body.user_id, "You can only change your own password")
    if await repo.get_user_by_id(body.user_id) is None:
        raise NotFoundError(f"User with ID {body.user_id} not found")
    await repo.update_user_password(
        body.user_id, await hash_password_async(body.password)
    )
    logger.info("Password changed for user %s", body.user_id)


async def delete_account(repo: Repository, auth: AuthContext, user_id: int) -> None:
    """Delete the account together with its cycles and their symptoms."""
    ensure_owner(auth, user_id, "You can only delete your own account")
    if await repo.get_user_by_id(user_id) is None:
        raise NotFoundError(f"User with ID {user_id} not found")

    symptoms = await repo.delete_cycle_symptoms_for_user(user_id)
    cycles = await repo.delete_cycles_for_user(user_id)
    await repo.delete_user(user_id)
    logger.info(
        "Deleted user %s (%d cycles, %d cycle symptoms)", user_id, cycles, symptoms
    )
