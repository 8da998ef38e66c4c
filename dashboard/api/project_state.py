"""Project state endpoints (read-only)."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dashboard import project_state
from dashboard.models import WorkflowsResponse

logger = logging.getLogger("agile-dashboard.api.project_state")

router = APIRouter()


def _failed(message: str, exc: Exception) -> JSONResponse:
    logger.error(f"{message}: {exc}", exc_info=True)
    return JSONResponse({"error": message}, status_code=500)


@router.get("")
def get_project_state():
    try:
        return project_state.get_project_state()
    except Exception as e:
        return _failed("Failed to read project state", e)


@router.get("/workflow", response_model=WorkflowsResponse)
def get_workflow():
    try:
        return project_state.get_workflows()
    except Exception as e:
        return _failed("Failed to read workflow state", e)


@router.get("/decisions")
def get_decisions():
    try:
        return {"decisions": project_state.get_decisions()}
    except Exception as e:
        return _failed("Failed to read decisions", e)


@router.get("/tasks")
def get_tasks():
    try:
        return {"tasks": project_state.get_tasks()}
    except Exception as e:
        return _failed("Failed to read tasks", e)


@router.get("/info")
def get_info():
    try:
        return project_state.get_project_info()
    except Exception as e:
        return _failed("Failed to read project info", e)


@router.get("/contributions")
def get_contributions():
    try:
        return project_state.get_contribution_state()
    except Exception as e:
        return _failed("Failed to read contribution state", e)
