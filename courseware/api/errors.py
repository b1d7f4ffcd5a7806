"""Gestion standardisée des erreurs API (enveloppe `{code, message, trace_id, details}`).

Les erreurs du noyau remontant jusqu'à l'API sont traduites ici:
- `NotFound` -> 404
- `TransientFailure` -> 503 (le client peut réessayer)
- `ShapeViolation` -> 422 (entrée utilisateur non conforme)
- autres `CoursewareError` -> 400
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from courseware.domain.errors import (
    CoursewareError,
    NotFound,
    ShapeViolation,
    TransientFailure,
)

log = structlog.get_logger(__name__).bind(component="api_errors")

_STATUS_BY_ERROR: tuple[tuple[type[CoursewareError], int], ...] = (
    (NotFound, 404),
    (TransientFailure, 503),
    (ShapeViolation, 422),
)

HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}


@dataclass
class ErrorEnvelope:
    """Enveloppe d'erreur standard des réponses API."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "trace_id": self.trace_id,
        }
        if self.details:
            body["details"] = self.details
        return body


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Construit une réponse JSON d'erreur standardisée."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
    return JSONResponse(status_code=status_code, content=envelope.to_dict())


def extract_trace_id(request: Request) -> str | None:
    """Identifiant de trace: en-tête X-Trace-ID, sinon X-Request-ID."""
    return request.headers.get("X-Trace-ID") or request.headers.get("X-Request-ID")


def status_for(exc: CoursewareError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 400


async def handle_courseware_error(request: Request, exc: CoursewareError) -> JSONResponse:
    """Traduit une erreur du noyau en enveloppe HTTP."""
    status = status_for(exc)
    trace_id = extract_trace_id(request)
    log.warning(
        "api_error",
        code=exc.code,
        status_code=status,
        error_message=exc.message,
        trace_id=trace_id,
    )
    return create_error_response(status, exc.code, exc.message, trace_id, exc.details)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    """Enveloppe standard pour les HTTPException FastAPI."""
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    return create_error_response(
        exc.status_code, code, str(exc.detail), extract_trace_id(request)
    )


def register_error_handlers(app: FastAPI) -> None:
    """Branche les gestionnaires d'erreurs sur l'application."""
    app.add_exception_handler(CoursewareError, handle_courseware_error)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, handle_http_exception)  # type: ignore[arg-type]
