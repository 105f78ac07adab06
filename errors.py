"""
Error envelope: every failure is returned as {"error": str, "details"?: str}.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from schemas import ErrorResponse

logger = logging.getLogger(__name__)

# OpenAPI documentation for the error envelope, shared by all routers
ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse}
    for status_code in (400, 401, 403, 404, 409, 500)
}

# Path ids whose validation failures get a specific message
PATH_IDS = {
    "institution_id": "institution",
    "cycle_id": "admission cycle",
    "saved_id": "saved school",
}


class ApiError(HTTPException):
    def __init__(self, status_code: int, error: str, details: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=error, headers=headers)
        self.details = details


def bad_request(error: str = "Invalid request", details: Optional[str] = None) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, error, details)


def not_found(what: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, f"{what} not found")


def conflict(error: str) -> ApiError:
    return ApiError(status.HTTP_409_CONFLICT, error)


def error_body(error: str, details: Optional[str] = None) -> dict:
    body = {"error": error}
    if details:
        body["details"] = details
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    details = getattr(exc, "details", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), details),
        headers=getattr(exc, "headers", None),
    )


def _path_error(errors) -> Optional[str]:
    for error in errors:
        loc = error.get("loc", ())
        if len(loc) >= 2 and loc[0] == "path" and loc[1] in PATH_IDS:
            return f"Invalid {PATH_IDS[loc[1]]} ID"
    return None


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Convert 422 to 400 for frontend compatibility."""
    errors = exc.errors()
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(_path_error(errors) or "Invalid request", str(errors)),
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", str(exc)),
    )
