"""
Unified error envelope.

Every error response carries ``message``, ``code`` and ``details`` next to
the problem-style ``type``/``title``/``status``/``instance`` fields, so a
409 from the admission controller reads::

    {"status": 409, "code": "RESERVATION_CONFLICT", "message": "...",
     "details": {"reason": "RESERVED", "date": "...", "start_time": "...", ...}}
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import DomainException, RepositoryException, StoreUnavailableException

logger = logging.getLogger(__name__)


def _title_from_status(status_code: int) -> str:
    mapping = {
        400: "Bad Request",
        401: "Unauthorized",
        403: "Forbidden",
        404: "Not Found",
        409: "Conflict",
        422: "Unprocessable Entity",
        500: "Internal Server Error",
        503: "Service Unavailable",
    }
    return mapping.get(status_code, "Error")


def _problem(
    *,
    status: int,
    message: Optional[str] = None,
    instance: Optional[str] = None,
    code: Optional[str] = None,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    return {
        "type": "about:blank",
        "title": _title_from_status(status),
        "status": status,
        "message": message or "",
        "code": code or "",
        "details": details if details is not None else {},
        "instance": instance or "",
    }


def _parse_detail(detail: Any) -> tuple[Optional[str], Optional[str], Optional[Any]]:
    if isinstance(detail, dict):
        code = detail.get("code") if isinstance(detail.get("code"), str) else None
        message = detail.get("message") or detail.get("detail")
        detail_text = message if isinstance(message, str) else None
        details = detail.get("details") or detail.get("errors")
        return detail_text, code, details
    if isinstance(detail, str):
        return detail, None, None
    if detail is None:
        return None, None, None
    return str(detail), None, None


def _http_problem(request: Request, status_code: int, detail: Any, headers: Any) -> JSONResponse:
    message, code, details = _parse_detail(detail)
    problem = _problem(
        status=status_code,
        message=message,
        instance=request.url.path,
        code=code,
        details=jsonable_encoder(details) if details is not None else None,
    )
    return JSONResponse(problem, status_code=status_code, headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        return _http_problem(request, exc.status_code, exc.detail, exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def starlette_http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _http_problem(request, exc.status_code, exc.detail, exc.headers)

    @app.exception_handler(DomainException)
    async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
        return domain_problem(request, exc)

    @app.exception_handler(RepositoryException)
    async def repository_exception_handler(
        request: Request, exc: RepositoryException
    ) -> JSONResponse:
        logger.error(f"Repository failure on {request.url.path}: {exc}")
        return domain_problem(request, StoreUnavailableException())

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.info(f"Constraint rejection on {request.url.path}: {exc.orig}")
        problem = _problem(
            status=409,
            message="The request conflicts with existing data",
            instance=request.url.path,
            code="INTEGRITY_CONFLICT",
        )
        return JSONResponse(problem, status_code=409)

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        problem = _problem(
            status=422,
            message="Request validation failed",
            instance=request.url.path,
            code="VALIDATION_ERROR",
            details={"errors": jsonable_encoder(exc.errors())},
        )
        return JSONResponse(problem, status_code=422)


def domain_problem(request: Request, exc: DomainException) -> JSONResponse:
    http_exc = exc.to_http_exception()
    return _http_problem(request, http_exc.status_code, http_exc.detail, None)
