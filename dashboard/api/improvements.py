"""Improvement backlog endpoints."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dashboard import improvements
from dashboard.errors import DashboardError
from dashboard.models import ImprovementStatusUpdate, MoveToBacklogRequest

logger = logging.getLogger("agile-dashboard.api.improvements")

router = APIRouter()


def _error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, DashboardError) and exc.status_code < 500:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)
    logger.error(f"Improvement request failed: {exc}", exc_info=True)
    return JSONResponse({"error": str(exc)}, status_code=500)


@router.get("/backlog")
def get_backlog():
    try:
        return improvements.get_backlog()
    except Exception as e:
        # A corrupt backlog reads as an empty one on the dashboard.
        logger.warning(f"Backlog unreadable, serving empty backlog: {e}")
        return improvements.EMPTY_BACKLOG


@router.get("/deferred")
def get_deferred():
    try:
        return improvements.get_deferred()
    except Exception as e:
        logger.warning(f"Deferred list unreadable, serving empty list: {e}")
        return improvements.EMPTY_DEFERRED


@router.post("/status")
def update_status(body: ImprovementStatusUpdate):
    try:
        item = improvements.update_status(body.id, body.status)
        return {"success": True, "item": item}
    except Exception as e:
        return _error_response(e)


@router.post("/move-to-backlog")
def move_to_backlog(body: MoveToBacklogRequest):
    try:
        item = improvements.move_to_backlog(body.id)
        return {"success": True, "item": item}
    except Exception as e:
        return _error_response(e)


@router.get("/statistics")
def get_statistics():
    try:
        return improvements.get_statistics()
    except Exception as e:
        return _error_response(e)
