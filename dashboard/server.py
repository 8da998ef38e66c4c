"""FastAPI application for the AgileAiAgents project dashboard."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dashboard import config, project_state, store
from dashboard.api import hooks, improvements
from dashboard.api import project_state as project_state_api
from dashboard.auth import require_auth
from dashboard.errors import DashboardError, dashboard_error_handler, unhandled_error_handler
from dashboard.models import HealthResponse, ProjectConfigUpdate

logger = logging.getLogger("agile-dashboard.server")

DEFAULT_PROJECT_NAME = "My AgileAI Project"

_started_at = time.monotonic()


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _uptime() -> float:
    return round(time.monotonic() - _started_at, 3)


def default_project_config() -> dict:
    now = _now()
    return {
        "projectName": DEFAULT_PROJECT_NAME,
        "projectDescription": "",
        "createdAt": now,
        "lastUpdated": now,
    }


def ensure_project_config() -> dict:
    """Load the project configuration, creating the default file on first start."""
    path = config.project_config_path()
    with store.locked(path):
        if path.exists():
            project_config = store.read_json(path)
            logger.info(f"Loaded project: {project_config.get('projectName')}")
            return project_config

        project_config = default_project_config()
        store.write_json(path, project_config)
    logger.info("Created default project configuration")
    return project_config


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        ensure_project_config()
    except Exception as e:
        logger.error(f"Failed to load project config: {e}", exc_info=True)
    logger.info(f"Dashboard serving workspace {config.workspace_root()}")
    yield
    logger.info("Dashboard stopped")


app = FastAPI(title="AgileAiAgents Project Dashboard", version=config.DEFAULT_VERSION, lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

_api_auth = [Depends(require_auth)]
app.include_router(hooks.router, prefix="/api/hooks", tags=["hooks"], dependencies=_api_auth)
app.include_router(improvements.router, prefix="/api/improvements", tags=["improvements"], dependencies=_api_auth)
app.include_router(
    project_state_api.router, prefix="/api/project-state", tags=["project-state"], dependencies=_api_auth
)

app.add_exception_handler(DashboardError, dashboard_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse({"error": "Not found"}, status_code=404)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


# --- Health ---


@app.get("/health", response_model=HealthResponse)
async def health():
    return {"status": "healthy", "uptime": _uptime(), "timestamp": _now()}


# --- Version / status ---


def _version_info() -> dict | None:
    return store.read_json_or_default(config.version_path(), None)


@app.get("/api/version", dependencies=_api_auth)
def version():
    try:
        info = _version_info()
    except Exception as e:
        logger.error(f"Failed to load version information: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to load version information"}, status_code=500)
    if info is not None:
        return info
    return {
        "version": config.DEFAULT_VERSION,
        "releaseDate": _now(),
        "releaseName": "Development Build",
        "description": "AgileAiAgents development version",
    }


@app.get("/api/status", dependencies=_api_auth)
def status():
    try:
        info = _version_info() or {}
    except Exception as e:
        logger.warning(f"Unreadable version.json: {e}")
        info = {}

    return {
        "status": "active",
        "version": info.get("version", config.DEFAULT_VERSION),
        "versionInfo": info,
        "port": config.server_port(),
        "projectPath": str(config.project_docs_path()),
        "uptime": _uptime(),
        "timestamp": _now(),
    }


# --- Project configuration ---


@app.get("/api/project-config", dependencies=_api_auth)
def get_project_config():
    return store.read_json_or_default(config.project_config_path(), default_project_config())


@app.post("/api/project-config", dependencies=_api_auth)
def update_project_config(body: ProjectConfigUpdate):
    if not body.projectName:
        return JSONResponse({"error": "Project name is required"}, status_code=400)

    try:

        def _apply(current: dict) -> None:
            current["projectName"] = body.projectName
            current["projectDescription"] = body.projectDescription or current.get("projectDescription", "")
            current["lastUpdated"] = _now()

        updated = store.update_json(config.project_config_path(), _apply, default=default_project_config())
    except Exception as e:
        logger.error(f"Failed to update project config: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to update project configuration"}, status_code=500)

    logger.info(f"Project config updated: {updated['projectName']}")
    return {"success": True, "config": updated}


# --- Workflow ---


@app.get("/api/workflow/status", dependencies=_api_auth)
def workflow_status():
    return {"status": "success", "workflow": project_state.get_workflow_status(), "timestamp": _now()}
