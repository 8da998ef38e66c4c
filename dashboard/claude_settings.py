"""Bridge between AgileAiAgents hook settings and Claude Code's own settings.

Settings live in ``.claude/settings.local.json``; Claude Code hooks live in
``.claude/settings.json``. In workspace mode (the workspace root's parent
contains the ``agile-ai-agents`` checkout) both files sit in the parent
directory instead of the repository.
"""

import logging
from pathlib import Path
from typing import Any

from dashboard import config, store
from dashboard.errors import StoreError

logger = logging.getLogger("agile-dashboard.claude_settings")

DEFAULT_SETTINGS = {
    "hookSettings": {
        "enabled": True,
        "syncEnabled": True,
        "agileHooksProfile": "standard",
        "autoSyncToParent": True,
    }
}


class ClaudeHookBridge:
    """Unified switchboard for AgileAiAgents hooks and Claude Code hooks."""

    def __init__(self, repo_root: Path | None = None):
        self.repo_root = Path(repo_root) if repo_root else config.workspace_root()
        self.workspace_root = self.repo_root.parent

    def is_workspace_mode(self) -> bool:
        return (self.workspace_root / "agile-ai-agents").is_dir()

    def _claude_dir(self) -> Path:
        base = self.workspace_root if self.is_workspace_mode() else self.repo_root
        return base / ".claude"

    def settings_path(self) -> Path:
        return self._claude_dir() / "settings.local.json"

    def claude_settings_path(self) -> Path:
        return self._claude_dir() / "settings.json"

    def _hook_config_path(self) -> Path:
        return self.repo_root / "hooks" / "config" / "hook-config.json"

    def load_settings(self) -> dict[str, Any]:
        settings = store.read_json_or_default(self.settings_path(), DEFAULT_SETTINGS)
        settings.setdefault("hookSettings", dict(DEFAULT_SETTINGS["hookSettings"]))
        return settings

    def _update_hook_settings(self, **values: Any) -> None:
        def _set(settings: dict[str, Any]) -> None:
            settings.setdefault("hookSettings", dict(DEFAULT_SETTINGS["hookSettings"])).update(values)

        store.update_json(self.settings_path(), _set, default=DEFAULT_SETTINGS)

    def _update_hook_config(self, key: str, value: Any) -> None:
        path = self._hook_config_path()
        if not path.exists():
            logger.warning(f"No hook configuration at {path}; '{key}' not propagated")
            return

        def _set(current: dict) -> None:
            current[key] = value

        store.update_json(path, _set)

    def set_hooks_enabled(self, enabled: bool) -> None:
        self._update_hook_settings(enabled=enabled)
        self._update_hook_config("enabled", enabled)
        self._update_claude_hooks(enabled)
        logger.info(f"All hooks {'enabled' if enabled else 'disabled'}")

    def _update_claude_hooks(self, enabled: bool) -> None:
        """Restore Claude Code hooks from the template, or clear them."""
        hooks: dict[str, Any] | None = {}
        if enabled:
            hooks = None
            template_path = self.repo_root / ".claude" / "settings.json.template"
            if template_path.exists():
                hooks = store.read_json(template_path).get("hooks", {})
                if self.is_workspace_mode():
                    self._adjust_hook_paths(hooks)

        def _set(claude_settings: dict[str, Any]) -> None:
            if hooks is not None:
                claude_settings["hooks"] = hooks

        store.update_json(self.claude_settings_path(), _set, default={})

    @staticmethod
    def _adjust_hook_paths(hooks: dict[str, Any]) -> None:
        # Workspace mode runs from the parent directory.
        for hook_list in hooks.values():
            if not isinstance(hook_list, list):
                continue
            for hook_config in hook_list:
                for hook in hook_config.get("hooks", []):
                    command = hook.get("command")
                    if isinstance(command, list):
                        hook["command"] = [c.replace("$CLAUDE_PROJECT_DIR", ".") for c in command]
                    elif isinstance(command, str):
                        hook["command"] = command.replace("$CLAUDE_PROJECT_DIR", ".")

    def set_sync_enabled(self, enabled: bool) -> None:
        self._update_hook_settings(syncEnabled=enabled, autoSyncToParent=enabled)
        logger.info(f"Auto-sync {'enabled' if enabled else 'disabled'}")

    def set_profile(self, profile: str) -> None:
        self._update_hook_settings(agileHooksProfile=profile)
        self._update_hook_config("profile", profile)
        logger.info(f"Hook profile set to: {profile}")

    def get_status(self) -> dict[str, Any]:
        hook_settings = self.load_settings()["hookSettings"]

        agile_enabled = False
        try:
            agile_enabled = bool(store.read_json(self._hook_config_path()).get("enabled", False))
        except (FileNotFoundError, StoreError):
            pass

        claude_enabled = False
        try:
            claude_enabled = bool(store.read_json(self.claude_settings_path()).get("hooks"))
        except (FileNotFoundError, StoreError):
            pass

        return {
            "masterEnabled": hook_settings.get("enabled", True),
            "agileHooksEnabled": agile_enabled,
            "claudeHooksEnabled": claude_enabled,
            "syncEnabled": hook_settings.get("syncEnabled", True),
            "profile": hook_settings.get("agileHooksProfile", "standard"),
            "executionContext": "workspace" if self.is_workspace_mode() else "repository",
        }
