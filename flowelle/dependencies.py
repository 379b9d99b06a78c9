"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header

from flowelle.errors import AuthenticationError
from flowelle.services.accounts import authenticate
from flowelle.services.basic_auth import InvalidAuthorizationHeader, decode_basic_credentials
from flowelle.services.database import get_connection
from flowelle.services.repository import PostgresRepository, Repository


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller, resolved once per request."""

    user_id: int
    email: str
    name: str | None = None


async def get_repository() -> AsyncGenerator[Repository, None]:
    """One pooled connection and one transaction per request."""
    async with get_connection() as conn:
        yield PostgresRepository(conn)


Repo = Annotated[Repository, Depends(get_repository)]


async def get_current_user(
    repo: Repo,
    authorization: Annotated[str | None, Header()] = None,
) -> AuthContext:
    """Verify the Basic credentials against the stored password hash."""
    try:
        email, password = decode_basic_credentials(authorization)
    except InvalidAuthorizationHeader as exc:
        raise AuthenticationError(str(exc)) from exc

    user = await authenticate(repo, email, password)
    return AuthContext(user_id=user.user_id, email=user.email, name=user.name)


# Annotated shortcuts for route signatures
CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
