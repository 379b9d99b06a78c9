"""Error taxonomy and the FastAPI handlers that render it.

Service functions raise these instead of ``HTTPException`` so the same
rules can be exercised without an HTTP request in flight.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger("flowelle.errors")


class FlowelleError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(FlowelleError):
    """Malformed input: bad date range, intensity out of bounds, etc."""

    status_code = 400


class AuthenticationError(FlowelleError):
    """Missing or invalid credentials."""

    status_code = 401


class AuthorizationError(FlowelleError):
    """Valid identity, but not the owner of the target resource."""

    status_code = 403


class NotFoundError(FlowelleError):
    status_code = 404


class ConflictError(FlowelleError):
    """Duplicate email."""

    status_code = 409


async def _flowelle_error_handler(request: Request, exc: FlowelleError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Same status as the service-layer ValidationError
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(status_code=400, content={"detail": "; ".join(messages)})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FlowelleError, _flowelle_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)
