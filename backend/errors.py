"""API error type and the JSON error envelope returned to clients."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Report error codes
INVALID_RANGE = "INVALID_RANGE"
UNKNOWN_JURISDICTION = "UNKNOWN_JURISDICTION"
NOT_FOUND = "NOT_FOUND"


class ApiError(Exception):
    """An error with an HTTP status and a stable machine-readable code."""

    def __init__(self, status_code: int, code: str, message: str, details=None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return {"error": body}


def bad_request(message: str, details=None) -> ApiError:
    return ApiError(400, "BAD_REQUEST", message, details)


def unauthorized(message: str = "Unauthorized") -> ApiError:
    return ApiError(401, "UNAUTHORIZED", message)


def forbidden(message: str = "Forbidden") -> ApiError:
    return ApiError(403, "FORBIDDEN", message)


def not_found(resource: str = "Resource") -> ApiError:
    return ApiError(404, NOT_FOUND, f"{resource} not found")


def invalid_range(message: str = "dateTo must be after dateFrom") -> ApiError:
    return ApiError(400, INVALID_RANGE, message)


def unknown_jurisdiction(code: str) -> ApiError:
    return ApiError(400, UNKNOWN_JURISDICTION, f"Unknown jurisdiction: {code}")


def internal_error(message: str = "Internal server error") -> ApiError:
    return ApiError(500, "INTERNAL_ERROR", message)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
