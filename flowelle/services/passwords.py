"""Salted password hashing (bcrypt via passlib).

bcrypt is CPU bound, so request handlers use the ``*_async`` variants, which
run the hash in Starlette's threadpool and leave the event loop free.
"""

from __future__ import annotations

from functools import lru_cache

from passlib.context import CryptContext
from starlette.concurrency import run_in_threadpool

from flowelle.config import get_settings


@lru_cache
def get_password_context() -> CryptContext:
    settings = get_settings()
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.bcrypt_rounds,
    )


def hash_password(password: str) -> str:
    return get_password_context().hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return get_password_context().verify(password, hashed)
    except ValueError:
        # Unrecognised or corrupt hash
        return False


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, password, hashed)
