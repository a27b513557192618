"""Problem+JSON utilities and global exception handlers.

Defines the RFC 7807 media type and handler callables that render domain
errors, FastAPI HTTP errors, request validation failures and unexpected
exceptions as application/problem+json responses.
"""

from __future__ import annotations

import logging
from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from encsurvey.logic.errors import SurveyError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


async def handle_survey_error(request: Request, exc: SurveyError) -> JSONResponse:  # noqa: D401
    problem = exc.to_problem()
    logger.info(
        "error_handler.handle code=%s status=%s path=%s",
        exc.code,
        exc.status,
        request.url.path,
    )
    return JSONResponse(problem, status_code=exc.status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(exc.status_code or 500)
    if isinstance(exc.detail, dict):
        problem = dict(exc.detail)
    else:
        problem = {"title": "Error", "status": status_code, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(problem, status_code=status_code, media_type=PROBLEM_MEDIA_TYPE, headers=headers or None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "code": "REQUEST_VALIDATION_FAILED",
        # Pydantic error contexts may hold exception objects; keep only the JSON-safe parts
        "errors": [
            {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", "")), "type": str(e.get("type", ""))}
            for e in exc.errors()
        ],
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "handle_survey_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
