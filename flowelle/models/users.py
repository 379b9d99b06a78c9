"""Pydantic models for user accounts and credentials."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import EmailStr, Field, StringConstraints

from flowelle.models.base import FlowelleBase, utc_now

# Passwords are compared byte for byte, so surrounding spaces are kept.
Password = Annotated[str, StringConstraints(strip_whitespace=False)]


# ---------- Auth ----------

class LoginRequest(FlowelleBase):
    email: str = ""
    password: Password = ""


class RegisterRequest(FlowelleBase):
    name: str = ""
    email: EmailStr
    password: Password = Field(default="", max_length=72)  # bcrypt input limit


# ---------- Users ----------

class UserBase(FlowelleBase):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr


class UserUpdate(UserBase):
    user_id: int


class PasswordUpdate(FlowelleBase):
    user_id: int
    password: Password = Field(min_length=1, max_length=72)


class UserRead(UserBase):
    user_id: int
    created_at: datetime = Field(default_factory=utc_now)


class UserInDB(UserRead):
    """Stored user row. Never returned from a route."""

    password_hash: str
