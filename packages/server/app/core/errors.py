"""
Error taxonomy for the project core and its HTTP rendering.

Services raise these; the exception handler registered in ``app.main`` turns
them into ``{"error": {"code", "message", "details"}}`` responses.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = structlog.get_logger()


class AppError(Exception):
    """Base class for every error the core reports to its callers."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


# ---------------------------------------------------------------------------
# Validation (malformed payloads, never retried)
# ---------------------------------------------------------------------------


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class InvalidModelConfig(ValidationError):
    code = "INVALID_MODEL_CONFIG"


class InvalidDeploymentConfig(ValidationError):
    code = "INVALID_DEPLOYMENT_CONFIG"


class InvalidRevenueConfig(ValidationError):
    code = "INVALID_REVENUE_CONFIG"


class InvalidPageContent(ValidationError):
    code = "INVALID_PAGE_CONTENT"


# ---------------------------------------------------------------------------
# State and persistence
# ---------------------------------------------------------------------------


class InvalidTransition(AppError):
    status_code = 409
    code = "INVALID_TRANSITION"


class ConcurrentModification(AppError):
    status_code = 409
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, message: str = "Project was modified concurrently; reload and retry", details: Optional[Any] = None):
        super().__init__(message, details)


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str = "Resource", details: Optional[Any] = None):
        super().__init__(f"{resource} not found", details)


class Conflict(AppError):
    status_code = 409
    code = "CONFLICT"


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_FAILED"


# ---------------------------------------------------------------------------
# External providers (transient, caller may retry)
# ---------------------------------------------------------------------------


class AdapterError(AppError):
    status_code = 502
    code = "ADAPTER_ERROR"

    def __init__(self, provider: str, reason: str, details: Optional[Any] = None):
        super().__init__(f"{provider}: {reason}", details)
        self.provider = provider
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["provider"] = self.provider
        return data


# ---------------------------------------------------------------------------
# FastAPI wiring
# ---------------------------------------------------------------------------


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        log.warning("request.failed", path=request.url.path, code=exc.code, error=exc.message)
    else:
        log.info("request.rejected", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
