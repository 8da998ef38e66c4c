"""Hook system endpoints: configuration, registry, metrics, test runs and live events."""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

from fastapi import APIRouter, Body, Query, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sse_starlette.sse import EventSourceResponse

from dashboard import config, store
from dashboard.claude_settings import ClaudeHookBridge
from dashboard.errors import ValidationError
from dashboard.hook_manager import HookManager, get_hook_manager, reload_hook_manager
from dashboard.models import HOOK_PROFILES, ClaudeSettingsUpdate, HookConfig, HookToggleRequest
from dashboard.performance import empty_metrics, generate_performance_report

logger = logging.getLogger("agile-dashboard.api.hooks")

router = APIRouter()

EVENT_POLL_SECONDS = 15.0

DEFAULT_AGENT_DEFAULTS = {
    "profiles": {profile: {"enabledByDefault": []} for profile in HOOK_PROFILES},
    "hooks": {},
}

DEFAULT_PERFORMANCE = {
    "summary": {"totalExecutions": 0, "avgTime": 0},
    "hooks": {},
    "topSlowest": [],
    "topFastest": [],
}


def validate_config(cfg: dict[str, Any]) -> bool:
    try:
        HookConfig.model_validate(cfg)
    except PydanticValidationError:
        return False
    return True


# --- Configuration ---


@router.get("/config")
def get_config():
    try:
        return store.read_json(config.hook_config_path())
    except Exception as e:
        logger.error(f"Failed to load hook configuration: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to load configuration"}, status_code=500)


@router.put("/config")
def update_config(body: dict[str, Any] = Body(...)):
    def _merge(current: dict[str, Any]) -> dict[str, Any]:
        updated = {**current, **body}
        if not validate_config(updated):
            raise ValidationError("Invalid configuration")
        return updated

    try:
        updated = store.update_json(config.hook_config_path(), _merge)
        reload_hook_manager()
        return updated
    except ValidationError as e:
        return JSONResponse({"error": e.message}, status_code=400)
    except Exception as e:
        logger.error(f"Failed to update hook configuration: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to update configuration"}, status_code=500)


@router.get("/registry")
def get_registry():
    try:
        return store.read_json(config.hook_registry_path())
    except Exception as e:
        logger.error(f"Failed to load hook registry: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to load registry"}, status_code=500)


@router.get("/agent-defaults")
def get_agent_defaults():
    try:
        return store.read_json_or_default(config.agent_defaults_path(), DEFAULT_AGENT_DEFAULTS)
    except Exception as e:
        logger.error(f"Failed to load agent defaults: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to load agent defaults"}, status_code=500)


# --- Performance ---


@router.get("/performance")
def get_performance():
    try:
        path = config.performance_path()
        if not path.exists():
            return DEFAULT_PERFORMANCE
        return generate_performance_report(store.read_json(path))
    except Exception as e:
        logger.error(f"Failed to load performance metrics: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to load performance metrics"}, status_code=500)


@router.post("/performance/reset")
def reset_performance():
    try:
        store.write_json(config.performance_path(), empty_metrics())
        get_hook_manager().monitor.metrics = empty_metrics()
        return {"success": True}
    except Exception as e:
        logger.error(f"Failed to reset performance metrics: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to reset metrics"}, status_code=500)


# --- Execution ---


@router.post("/test/{hook_name}")
async def test_hook(hook_name: str, request: Request):
    try:
        raw = await request.body()
        test_data = json.loads(raw) if raw else {}
        return await get_hook_manager().execute_hook(hook_name, test_data)
    except Exception as e:
        logger.error(f"Failed to test hook: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to test hook", "details": str(e)}, status_code=500)


@router.patch("/hooks/{hook_name}")
def toggle_hook(hook_name: str, body: HookToggleRequest):
    try:

        def _set(cfg: dict[str, Any]) -> None:
            hooks = cfg.setdefault("hooks", {})
            hooks.setdefault(hook_name, {})["enabled"] = body.enabled

        store.update_json(config.hook_config_path(), _set)
        reload_hook_manager()
        return {"success": True, "hookName": hook_name, "enabled": body.enabled}
    except Exception as e:
        logger.error(f"Failed to update hook status: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to update hook status"}, status_code=500)


@router.get("/history")
def get_history(limit: int = Query(default=100, ge=0), hookName: str | None = None):
    try:
        logs = store.read_json_lines(config.logs_dir() / "hooks.log")
        if hookName:
            logs = [entry for entry in logs if (entry.get("data") or {}).get("hookName") == hookName]
        if limit:
            logs = logs[-limit:]
        return {"history": list(reversed(logs))}
    except Exception as e:
        logger.error(f"Failed to load hook history: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to load history"}, status_code=500)


# --- Live events (SSE) ---


async def hook_event_stream(
    manager: HookManager,
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_seconds: float = EVENT_POLL_SECONDS,
) -> AsyncGenerator[dict, None]:
    """Yield SSE messages: a ``connected`` greeting, then every hook lifecycle event."""
    queue = manager.subscribe()
    try:
        yield {"data": json.dumps({"type": "connected"})}
        while not await is_disconnected():
            try:
                event = await asyncio.wait_for(queue.get(), timeout=poll_seconds)
            except TimeoutError:
                continue
            yield {"data": json.dumps(event, default=str)}
    finally:
        manager.unsubscribe(queue)


@router.get("/events")
async def hook_events(request: Request):
    return EventSourceResponse(
        hook_event_stream(get_hook_manager(), request.is_disconnected),
        headers={"Cache-Control": "no-cache"},
    )


# --- Claude settings ---


@router.get("/claude-settings")
def get_claude_settings():
    try:
        bridge = ClaudeHookBridge()
        return {"settings": bridge.load_settings(), "status": bridge.get_status()}
    except Exception as e:
        logger.error(f"Failed to load Claude settings: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to load Claude settings"}, status_code=500)


@router.put("/claude-settings")
def update_claude_settings(body: ClaudeSettingsUpdate):
    try:
        bridge = ClaudeHookBridge()
        if body.enabled is not None:
            bridge.set_hooks_enabled(body.enabled)
        if body.syncEnabled is not None:
            bridge.set_sync_enabled(body.syncEnabled)
        if body.profile:
            bridge.set_profile(body.profile)

        reload_hook_manager()
        return {"success": True, "status": bridge.get_status()}
    except Exception as e:
        logger.error(f"Failed to update Claude settings: {e}", exc_info=True)
        return JSONResponse({"error": "Failed to update Claude settings"}, status_code=500)
