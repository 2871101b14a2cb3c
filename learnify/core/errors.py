"""
Error taxonomy, service results and global exception handlers
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition_failed"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal_error"


STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFLICT: 400,
    ErrorKind.PRECONDITION_FAILED: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INTERNAL: 500,
}


class ServiceResult(BaseModel):
    """
    Outcome of a service operation.

    Expected failures (missing entity, wrong owner, duplicate) come back as a
    failed result instead of an exception; the router decides the HTTP shape.
    """
    success: bool
    message: str = ""
    data: Any = None
    error_kind: Optional[ErrorKind] = None
    created: bool = False

    @classmethod
    def ok(cls, data: Any = None, message: str = "", created: bool = False) -> "ServiceResult":
        return cls(success=True, message=message, data=data, created=created)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "ServiceResult":
        return cls(success=False, message=message, error_kind=kind)

    @property
    def status_code(self) -> int:
        if self.success:
            return 201 if self.created else 200
        return STATUS_BY_KIND[self.error_kind]


class AppException(HTTPException):
    """HTTPException carrying a stable application error code."""

    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "error_code": error_code,
                "message": message,
                "details": self.details,
            },
            headers=headers,
        )


def raise_for_result(result: ServiceResult) -> ServiceResult:
    """Turn a failed service result into an AppException; pass successes through."""
    if result.success:
        return result

    headers = None
    if result.error_kind == ErrorKind.UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    raise AppException(
        status_code=STATUS_BY_KIND[result.error_kind],
        error_code=result.error_kind.value,
        message=result.message,
        headers=headers,
    )


def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: dict = None,
    path: str = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content = {
        "success": False,
        "error": {
            "code": error_code,
            "message": message,
            "details": details or {},
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if path:
        content["path"] = path

    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Register the application-wide exception handlers."""

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        logger.warning(
            f"{exc.error_code}: {exc.message}",
            extra={"path": request.url.path, "method": request.method, "error_code": exc.error_code},
        )
        return create_error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
            path=request.url.path,
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return create_error_response(
            status_code=exc.status_code,
            error_code="http_error",
            message=str(exc.detail),
            path=request.url.path,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(part) for part in err.get("loc", []) if part != "body"),
                "message": err.get("msg"),
            }
            for err in exc.errors()
        ]
        return create_error_response(
            status_code=400,
            error_code="validation_error",
            message="Validation failed",
            details={"errors": errors},
            path=request.url.path,
        )

    @app.exception_handler(DuplicateKeyError)
    async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
        logger.warning("Duplicate key rejected by store", extra={"path": request.url.path})
        return create_error_response(
            status_code=STATUS_BY_KIND[ErrorKind.CONFLICT],
            error_code=ErrorKind.CONFLICT.value,
            message="Resource already exists",
            path=request.url.path,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(
            "Unhandled error", extra={"path": request.url.path, "method": request.method}
        )
        return create_error_response(
            status_code=500,
            error_code=ErrorKind.INTERNAL.value,
            message="Server error",
            path=request.url.path,
        )
