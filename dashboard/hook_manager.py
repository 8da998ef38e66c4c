"""
Hook manager for the AgileAiAgents dashboard.
Loads hooks from the registry, executes them as subprocesses with timeouts,
retries critical hooks, tracks per-hook metrics and publishes lifecycle
events to any number of subscribers (the SSE endpoint is one).
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import re
import shlex
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from dashboard import config, store
from dashboard.claude_settings import ClaudeHookBridge
from dashboard.errors import StoreError
from dashboard.performance import PerformanceMonitor
from dashboard.telemetry import get_tracer

logger = logging.getLogger("agile-dashboard.hooks")
tracer = get_tracer("agile-dashboard.hooks")


# =============================================================================
# ENUMS AND TYPES
# =============================================================================


class HookStatus(Enum):
    """Outcome of a single ``execute_hook`` call."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    DISABLED = "disabled"  # Hooks are switched off globally
    ERROR = "error"  # The hook could not be resolved


class HookEventType(Enum):
    """Lifecycle events published to subscribers."""

    START = "hook:start"
    COMPLETE = "hook:complete"
    FAILURE = "hook:failure"


DEFAULT_CONFIG: dict[str, Any] = {
    "enabled": True,
    "profile": "standard",
    "performance": {
        "timeout": 5000,
        "warningThreshold": 1000,
        "maxRetries": 3,
    },
    "logging": {
        "level": "info",
        "file": "hooks.log",
    },
}

# A hook averaging more than this share of the timeout gets switched off.
SLOW_HOOK_RATIO = 0.8
SLOW_HOOK_MIN_EXECUTIONS = 5
SUBSCRIBER_QUEUE_SIZE = 1000
MAX_BACKOFF_SECONDS = 30


class HookExecutionError(Exception):
    """A hook process failed, timed out or could not be started."""


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class RegisteredHook:
    """A hook loaded from the registry or a profile, plus its runtime metrics."""

    name: str
    handler: str | None = None  # Script path relative to the hooks directory
    command: str | None = None  # Legacy command line
    priority: str | None = None
    conditions: dict[str, Any] = field(default_factory=dict)
    settings: dict[str, Any] = field(default_factory=dict)
    executions: int = 0
    failures: int = 0
    total_time: float = 0
    avg_time: int = 0
    disabled: bool = False

    @classmethod
    def from_config(cls, name: str, hook_config: dict[str, Any]) -> RegisteredHook:
        return cls(
            name=name,
            handler=hook_config.get("handler"),
            command=hook_config.get("command"),
            priority=hook_config.get("priority"),
            conditions=hook_config.get("conditions") or {},
            settings=dict(hook_config),
        )

    @property
    def is_critical(self) -> bool:
        return self.priority == "critical"

    def matches(self, context: dict[str, Any], active_agent: str | None = None) -> bool:
        """Check the registry conditions against an execution context."""
        agents = self.conditions.get("if_agent")
        if agents and context.get("activeAgent", active_agent) not in agents:
            return False

        file_pattern = self.conditions.get("if_file_matches")
        file_path = context.get("filePath")
        if file_pattern and file_path and not re.search(file_pattern, file_path):
            return False

        sprint_phase = self.conditions.get("if_sprint_phase")
        if sprint_phase and sprint_phase != context.get("sprintPhase"):
            return False

        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.settings,
            "executions": self.executions,
            "failures": self.failures,
            "totalTime": self.total_time,
            "avgTime": self.avg_time,
            "disabled": self.disabled,
        }


# =============================================================================
# HOOK MANAGER
# =============================================================================


class HookManager:
    """
    Central orchestrator for AgileAiAgents hooks.

    Features:
    - Registry/profile driven hook registration
    - Condition checks (agent, file pattern, sprint phase)
    - Subprocess execution with timeout protection
    - Retries with exponential backoff for critical hooks, then a failure queue
    - Per-hook metrics with auto-disable for persistently slow hooks
    - Lifecycle events fanned out to subscriber queues
    """

    def __init__(self, monitor: PerformanceMonitor | None = None, retry_backoff_base: float = 1.0):
        self.hooks: dict[str, RegisteredHook] = {}
        self.failure_queue: list[dict[str, Any]] = []
        self.active_agent: str | None = None
        self.workflow_state: dict[str, Any] | None = None
        self.monitor = monitor or PerformanceMonitor()
        self.retry_backoff_base = retry_backoff_base
        self._subscribers: set[asyncio.Queue] = set()
        self._metrics_lock = threading.Lock()
        self.config = self.load_config()
        self.initialize_hooks()

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def load_config(self) -> dict[str, Any]:
        """Merge the configuration file over the defaults.

        Claude settings act as a master switch: ``hookSettings.enabled == false``
        disables every hook regardless of the configuration file.
        """
        cfg = copy.deepcopy(DEFAULT_CONFIG)
        try:
            cfg.update(store.read_json(config.hook_config_path()))
        except FileNotFoundError:
            pass
        except StoreError as e:
            logger.error(f"Ignoring unreadable hook configuration: {e}")

        try:
            settings = ClaudeHookBridge().load_settings()
        except StoreError as e:
            logger.debug(f"Claude settings unavailable: {e}")
        else:
            if settings.get("hookSettings", {}).get("enabled") is False:
                cfg["enabled"] = False
                logger.info("Hooks disabled by Claude settings")

        return cfg

    def initialize_hooks(self) -> None:
        """Register every hook listed in the hook registry."""
        try:
            registry = store.read_json(config.hook_registry_path())
        except FileNotFoundError:
            logger.debug("No hook registry found; starting with no hooks")
            return
        except StoreError as e:
            self.log("error", "Failed to auto-initialize hooks", {"error": str(e)})
            return

        hooks = registry.get("hooks", {})
        for name, hook_config in hooks.items():
            self.register_hook(name, hook_config)
        logger.debug(f"Auto-initialized {len(hooks)} hooks from registry")

    def reload(self) -> None:
        """Re-read configuration and registry, keeping subscribers and the failure queue."""
        self.hooks = {}
        self.config = self.load_config()
        self.initialize_hooks()
        logger.info("Hook manager reloaded with new configuration")

    def register_hook(self, name: str, hook_config: dict[str, Any]) -> RegisteredHook:
        hook = RegisteredHook.from_config(name, hook_config)
        self.hooks[name] = hook
        return hook

    def _performance(self, key: str) -> Any:
        default = DEFAULT_CONFIG["performance"][key]
        value = (self.config.get("performance") or {}).get(key, default)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning(f"Ignoring non-numeric performance.{key}: {value!r}")
            return default
        return value

    def _hook_enabled_in_config(self, name: str) -> bool:
        overrides = self.config.get("hooks") or {}
        return (overrides.get(name) or {}).get("enabled", True) is not False

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def subscribe(self) -> asyncio.Queue:
        """Return a queue that receives every event emitted from now on."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=SUBSCRIBER_QUEUE_SIZE)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def emit(self, event_type: HookEventType | str, payload: dict[str, Any]) -> None:
        event_name = event_type.value if isinstance(event_type, HookEventType) else event_type
        event = {"type": event_name, "timestamp": datetime.now(UTC).isoformat(), **payload}
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Dropping {event_name} event for a slow subscriber")

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def execute_hook(
        self, hook_name: str, context: dict[str, Any] | None = None, retry: bool = True
    ) -> dict[str, Any]:
        """
        Execute a hook with full error handling and monitoring.

        Args:
            hook_name: Registry name of the hook
            context: Execution context (activeAgent, filePath, sprintPhase, ...)
            retry: Apply the critical-hook backoff and failure queue

        Returns:
            Status document; never raises for hook failures.
        """
        context = context or {}

        if not self.config.get("enabled", True):
            return {"status": HookStatus.DISABLED.value}

        hook = self.hooks.get(hook_name)
        if hook is None:
            await self.alog("error", f"Unknown hook: {hook_name}", {"hookName": hook_name})
            return {"status": HookStatus.ERROR.value, "error": "Unknown hook"}

        if hook.disabled or not self._hook_enabled_in_config(hook_name):
            return {"status": HookStatus.SKIPPED.value, "reason": "Hook disabled"}

        if not hook.matches(context, self.active_agent):
            return {"status": HookStatus.SKIPPED.value, "reason": "Conditions not met"}

        critical_retry = retry and hook.is_critical
        attempts = max(0, int(self._performance("maxRetries"))) + 1 if critical_retry else 1
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            # base * 2, base * 4, ... seconds between attempts
            wait=wait_exponential(multiplier=self.retry_backoff_base * 2, max=MAX_BACKOFF_SECONDS),
            retry=retry_if_exception_type(HookExecutionError),
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    retry_number = attempt.retry_state.attempt_number - 1
                    if retry_number:
                        await self.alog(
                            "info",
                            f"Retrying critical hook: {hook.name} (attempt {retry_number})",
                            {"hookName": hook.name},
                        )
                    return await self._run_attempt(hook, context)
        except HookExecutionError as e:
            if critical_retry:
                await asyncio.to_thread(self.queue_failed_hook, hook.name, context)
            return {"status": HookStatus.FAILED.value, "error": str(e)}

    async def _run_attempt(self, hook: RegisteredHook, context: dict[str, Any]) -> dict[str, Any]:
        """One execution: events, metrics and log lines. Failures surface as HookExecutionError."""
        start = time.monotonic()
        execution_id = f"{hook.name}-{int(time.time() * 1000)}"
        try:
            await self.alog("debug", f"Executing hook: {hook.name}", {"hookName": hook.name, "context": context})
            self.emit(HookEventType.START, {"hookName": hook.name, "context": context, "executionId": execution_id})

            result = await self._run_hook_command(hook, context, self._performance("timeout"))
        except Exception as e:
            duration = int((time.monotonic() - start) * 1000)
            await asyncio.to_thread(self.update_metrics, hook, duration, False)
            await self.alog("error", f"Hook failed: {hook.name}", {"hookName": hook.name, "error": str(e)})
            self.emit(HookEventType.FAILURE, {"hookName": hook.name, "context": context, "error": str(e)})
            if isinstance(e, HookExecutionError):
                raise
            raise HookExecutionError(str(e)) from e

        duration = int((time.monotonic() - start) * 1000)
        await asyncio.to_thread(self.update_metrics, hook, duration, True)

        if duration > self._performance("warningThreshold"):
            await self.alog("warn", f"Slow hook execution: {hook.name} took {duration}ms", {"hookName": hook.name})

        self.emit(
            HookEventType.COMPLETE,
            {
                "hookName": hook.name,
                "context": context,
                "executionId": execution_id,
                "duration": duration,
                "result": result,
            },
        )
        return {"status": HookStatus.SUCCESS.value, "result": result, "duration": duration}

    async def _run_hook_command(self, hook: RegisteredHook, context: dict[str, Any], timeout_ms: float) -> dict:
        """Run the hook's handler script or command and capture its output."""
        if hook.handler:
            argv = ["node", str(config.hooks_dir() / hook.handler)]
        elif hook.command:
            argv = shlex.split(hook.command)
        else:
            raise HookExecutionError("Hook has no handler or command defined")

        env = {
            **os.environ,
            "HOOK_CONTEXT": json.dumps(context),
            "ACTIVE_AGENT": context.get("activeAgent") or "",
            "FILE_PATH": context.get("filePath") or "",
            "WORKFLOW_STATE": json.dumps(self.workflow_state or {}),
            "AGILE_AI_AGENTS_PATH": str(config.workspace_root()),
        }

        with tracer.start_as_current_span("hook.execute", attributes={"hook.name": hook.name}) as span:
            try:
                proc = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    env=env,
                )
            except OSError as e:
                raise HookExecutionError(f"Failed to start hook '{hook.name}': {e}") from e

            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout_ms / 1000)
            except TimeoutError:
                proc.kill()
                await proc.wait()
                span.set_attribute("hook.timeout", True)
                raise HookExecutionError(f"Hook timeout after {timeout_ms:g}ms")

            span.set_attribute("hook.exit_code", proc.returncode)
            out = stdout.decode(errors="replace")
            err = stderr.decode(errors="replace")
            if proc.returncode != 0:
                raise HookExecutionError(f"Hook failed with code {proc.returncode}: {err}")

            return {"stdout": out, "stderr": err, "code": proc.returncode}

    # -------------------------------------------------------------------------
    # Failure queue
    # -------------------------------------------------------------------------

    def queue_failed_hook(self, hook_name: str, context: dict[str, Any]) -> None:
        self.failure_queue.append(
            {"hookName": hook_name, "context": context, "timestamp": time.time(), "retries": 0}
        )
        self.log("info", f"Queued failed hook: {hook_name}", {"hookName": hook_name})

    async def process_failure_queue(self) -> None:
        """Retry queued hooks once each; items still failing are re-queued until maxRetries."""
        queue, self.failure_queue = self.failure_queue, []

        for item in queue:
            if item["retries"] >= self._performance("maxRetries"):
                await self.alog(
                    "error",
                    f"Giving up on hook after max retries: {item['hookName']}",
                    {"hookName": item["hookName"]},
                )
                continue

            item["retries"] += 1
            result = await self.execute_hook(item["hookName"], item["context"], retry=False)
            if result["status"] == HookStatus.FAILED.value:
                self.failure_queue.append(item)

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def update_metrics(self, hook: RegisteredHook, duration: int, success: bool) -> None:
        """Fold one execution into the hook's counters and the persistent monitor.

        ``hook`` need not still be in ``self.hooks``; a reload during the
        execution leaves the old object detached but still counted.
        """
        with self._metrics_lock:
            hook.executions += 1
            hook.total_time += duration
            if not success:
                hook.failures += 1
            hook.avg_time = int(hook.total_time / hook.executions + 0.5)

            self.monitor.record(hook.name, duration, success)

            slow_limit = self._performance("timeout") * SLOW_HOOK_RATIO
            if hook.avg_time > slow_limit and hook.executions > SLOW_HOOK_MIN_EXECUTIONS and not hook.disabled:
                hook.disabled = True
                self.log(
                    "warn", f"Disabling slow hook: {hook.name} (avg {hook.avg_time}ms)", {"hookName": hook.name}
                )

    def get_performance_report(self) -> dict[str, Any]:
        """In-memory report for the hooks loaded in this process."""
        total_executions = sum(h.executions for h in self.hooks.values())
        total_failures = sum(h.failures for h in self.hooks.values())
        total_time = sum(h.total_time for h in self.hooks.values())

        report = {
            "summary": {
                "totalHooks": len(self.hooks),
                "totalExecutions": total_executions,
                "totalFailures": total_failures,
                "avgExecutionTime": int(total_time / total_executions + 0.5) if total_executions else 0,
            },
            "hooks": {},
        }

        for name, hook in self.hooks.items():
            report["hooks"][name] = {
                "executions": hook.executions,
                "failures": hook.failures,
                "avgTime": hook.avg_time,
                "successRate": (
                    f"{(hook.executions - hook.failures) / hook.executions * 100:.2f}%"
                    if hook.executions
                    else "N/A"
                ),
            }

        return report

    # -------------------------------------------------------------------------
    # Context and switches
    # -------------------------------------------------------------------------

    def set_active_agent(self, agent_name: str | None) -> None:
        self.active_agent = agent_name
        self.emit("context:agent", {"agent": agent_name})

    def update_workflow_state(self, state: dict[str, Any] | None) -> None:
        self.workflow_state = state
        self.emit("context:workflow", {"state": state})

    def set_enabled(self, enabled: bool) -> None:
        self.config["enabled"] = enabled
        self.log("info", f"Hooks {'enabled' if enabled else 'disabled'} globally")

    def set_profile(self, profile_name: str) -> None:
        self.config["profile"] = profile_name
        self.log("info", f"Hook profile set to: {profile_name}")
        self.load_profile_hooks(profile_name)

    def load_profile_hooks(self, profile_name: str) -> bool:
        """Replace the loaded hooks with a profile's hooks, if the profile file exists."""
        try:
            profile = store.read_json(config.profile_path(profile_name))
        except FileNotFoundError:
            logger.debug(f"No profile file for '{profile_name}'; keeping current hooks")
            return False

        self.hooks = {}
        for name, hook_config in profile.get("hooks", {}).items():
            self.register_hook(name, hook_config)
        return True

    def list_hooks(self) -> dict[str, dict[str, Any]]:
        return {name: hook.to_dict() for name, hook in self.hooks.items()}

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    def log(self, level: str, message: str, data: dict[str, Any] | None = None) -> None:
        """Log to the application logger and append a JSON line to the hook log file."""
        entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": level,
            "message": message,
            "data": data or {},
        }

        py_level = logging.getLevelName(level.upper())
        logger.log(py_level if isinstance(py_level, int) else logging.INFO, f"[Hook Manager] {message}")

        log_file = (self.config.get("logging") or {}).get("file")
        if log_file:
            try:
                store.append_json_line(config.logs_dir() / log_file, entry)
            except OSError as e:
                logger.warning(f"Could not write hook log: {e}")

    async def alog(self, level: str, message: str, data: dict[str, Any] | None = None) -> None:
        """``log`` off the event loop, for the execution path."""
        await asyncio.to_thread(self.log, level, message, data)


# =============================================================================
# DEFAULT INSTANCE
# =============================================================================

_manager: HookManager | None = None


def get_hook_manager() -> HookManager:
    """Process-wide hook manager, created on first use."""
    global _manager
    if _manager is None:
        _manager = HookManager()
    return _manager


def reload_hook_manager() -> None:
    """Pick up configuration changes. Failures are logged, never raised to the caller."""
    try:
        get_hook_manager().reload()
    except Exception as e:
        logger.error(f"Failed to reload hook manager: {e}", exc_info=True)


def reset_hook_manager() -> None:
    """Drop the process-wide instance (tests, workspace switch)."""
    global _manager
    _manager = None


__all__ = [
    "HookStatus",
    "HookEventType",
    "HookExecutionError",
    "RegisteredHook",
    "HookManager",
    "DEFAULT_CONFIG",
    "get_hook_manager",
    "reload_hook_manager",
    "reset_hook_manager",
]
