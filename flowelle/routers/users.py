"""User profile endpoints. Callers can only see and change their own account."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from flowelle.dependencies import CurrentUser, Repo
from flowelle.models.users import PasswordUpdate, UserRead, UserUpdate
from flowelle.services import accounts

router = APIRouter(prefix="/user", tags=["users"])


@router.get("/byemail/{email}", response_model=UserRead)
async def get_user_by_email(email: str, user: CurrentUser, repo: Repo) -> Any:
    return await accounts.get_by_email(repo, user, email)


@router.put("", response_model=UserRead)
async def update_user(body: UserUpdate, user: CurrentUser, repo: Repo) -> Any:
    """Update name and email. Email uniqueness is case-insensitive."""
    return await accounts.update_profile(repo, user, body)


@router.put("/password")
async def update_password(body: PasswordUpdate, user: CurrentUser, repo: Repo) -> dict:
    await accounts.change_password(repo, user, body)
    return {"detail": "Password updated successfully"}


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: int, user: CurrentUser, repo: Repo) -> None:
    """Delete the account and every cycle it owns."""
    await accounts.delete_account(repo, user, user_id)
