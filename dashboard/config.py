"""Runtime configuration for the project dashboard.

Everything is read from the environment at call time, so a test (or a second
workspace) can repoint the service by changing ``AGILE_AI_AGENTS_ROOT``.
"""

import os
from pathlib import Path

DEFAULT_PORT = 3001
DEFAULT_VERSION = "4.2.0"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).lower() == "true"


def workspace_root() -> Path:
    """The ``agile-ai-agents`` directory holding hooks/, project-state/ and logs/."""
    return Path(os.environ.get("AGILE_AI_AGENTS_ROOT", os.getcwd())).resolve()


# --- Hook system ---


def hooks_dir() -> Path:
    return workspace_root() / "hooks"


def hook_config_path() -> Path:
    return hooks_dir() / "config" / "hook-config.json"


def hook_registry_path() -> Path:
    return hooks_dir() / "registry" / "hook-registry.json"


def agent_defaults_path() -> Path:
    return hooks_dir() / "config" / "agent-hooks" / "agent-defaults.json"


def profile_path(profile: str) -> Path:
    return hooks_dir() / "config" / f"profile-{profile}.json"


def performance_path() -> Path:
    return hooks_dir() / "metrics" / "performance.json"


def performance_alerts_path() -> Path:
    return hooks_dir() / "metrics" / "performance-alerts.log"


def logs_dir() -> Path:
    return workspace_root() / "logs"


# --- Project state ---


def project_state_dir() -> Path:
    return workspace_root() / "project-state"


def runtime_state_path() -> Path:
    return project_state_dir() / "runtime.json"


def learning_workflow_path() -> Path:
    return project_state_dir() / "learning-workflow" / "current-runtime.json"


def improvements_dir() -> Path:
    return project_state_dir() / "improvements"


def backlog_path() -> Path:
    return improvements_dir() / "improvement-backlog.json"


def deferred_path() -> Path:
    return improvements_dir() / "deferred-improvements.json"


def project_config_path() -> Path:
    return workspace_root() / "project-config.json"


def project_docs_path() -> Path:
    return workspace_root() / "project-documents"


def version_path() -> Path:
    return workspace_root() / "version.json"


# --- Server ---


def server_host() -> str:
    return os.environ.get("DASHBOARD_HOST", "0.0.0.0")


def server_port() -> int:
    return int(os.environ.get("DASHBOARD_PORT") or os.environ.get("PORT") or DEFAULT_PORT)


def debug_enabled() -> bool:
    return _env_flag("DASHBOARD_DEBUG")


def auth_enabled() -> bool:
    return _env_flag("DASHBOARD_AUTH_ENABLED")


def auth_credentials() -> tuple[str, str]:
    return (
        os.environ.get("DASHBOARD_USERNAME", "admin"),
        os.environ.get("DASHBOARD_PASSWORD", "changeme"),
    )


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").upper()
