"""Login and registration. The only API routes that accept anonymous callers."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Response

from flowelle.dependencies import Repo
from flowelle.models.users import LoginRequest, RegisterRequest, UserRead
from flowelle.services import accounts
from flowelle.services.basic_auth import encode_basic_credentials

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=UserRead)
async def login(body: LoginRequest, response: Response, repo: Repo) -> Any:
    """Verify credentials and hand back the Basic header the client should re-send."""
    user = await accounts.login(repo, body.email, body.password)
    response.headers["Authorization"] = encode_basic_credentials(body.email.strip(), body.password)
    return user


@router.post("/register", response_model=UserRead, status_code=201)
async def register(body: RegisterRequest, repo: Repo) -> Any:
    return await accounts.register(repo, body)
