"""Dashboard error taxonomy.

Codes follow the dashboard catalogue: ``<CATEGORY>-<NNN>``.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from dashboard import config

logger = logging.getLogger("agile-dashboard.errors")


class DashboardError(Exception):
    """Base error carrying the HTTP status and catalogue code to report."""

    status_code = 500
    code = "SYS-001"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(DashboardError):
    status_code = 400
    code = "VAL-001"


class NotFoundError(DashboardError):
    status_code = 404
    code = "API-404"


class StoreError(DashboardError):
    """A JSON document exists but could not be parsed or written."""

    status_code = 500
    code = "FS-005"


async def dashboard_error_handler(request: Request, exc: DashboardError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Dashboard error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        {
            "error": "Internal server error",
            "message": str(exc) if config.debug_enabled() else "Something went wrong",
        },
        status_code=500,
    )
