"""HTTP Basic credential encoding.

Login returns ``Authorization: Basic base64(email:password)`` and the client
re-sends it on every request.  The header is parsed here and verified
against the stored bcrypt hash by ``flowelle.dependencies.get_current_user``.
"""

from __future__ import annotations

import base64
import binascii

SCHEME = "Basic"


class InvalidAuthorizationHeader(ValueError):
    """Raised when an Authorization header is not well-formed Basic auth."""


def encode_basic_credentials(username: str, password: str) -> str:
    """Build a ``Basic <token>`` header value."""
    token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"{SCHEME} {token}"


def decode_basic_credentials(header: str | None) -> tuple[str, str]:
    """Parse a ``Basic <token>`` header into ``(username, password)``.

    The password may itself contain ``:``; only the first colon splits.

    Raises:
        InvalidAuthorizationHeader: If the header is missing, uses another
            scheme, is not valid base64/UTF-8, or has no ``:`` separator.
    """
    if not header or not header.startswith(f"{SCHEME} "):
        raise InvalidAuthorizationHeader("Authorization header missing or invalid")

    token = header[len(SCHEME) + 1:].strip()
    if not token:
        raise InvalidAuthorizationHeader("Authorization header missing or invalid")

    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise InvalidAuthorizationHeader("Invalid Basic authorization header") from exc

    username, sep, password = decoded.partition(":")
    if not sep:
        raise InvalidAuthorizationHeader("Invalid Basic authorization header format")
    return username, password
