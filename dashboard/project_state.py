"""Read-only views over the project runtime state.

``project-state/runtime.json`` holds the current project state (project info,
workflow state, decisions, tasks, contribution prompts); the learning
workflow keeps its own runtime file.
"""

from typing import Any

from dashboard import config, store
from dashboard.errors import StoreError

DEFAULT_PROJECT_INFO = {
    "name": "Untitled Project",
    "version": "0.0.1",
    "created_at": None,
    "last_updated": None,
}

DEFAULT_CONTRIBUTION_STATE = {
    "last_prompt": None,
    "pending_prompt": None,
    "skip_until": None,
    "contribution_history": [],
}


def _runtime_state() -> dict[str, Any] | None:
    return store.read_json_or_default(config.runtime_state_path(), None)


def _learning_workflow() -> dict[str, Any] | None:
    return store.read_json_or_default(config.learning_workflow_path(), None)


def get_project_state() -> dict[str, Any]:
    result = {
        "hasState": False,
        "currentState": None,
        "workflowState": None,
        "learningWorkflow": None,
        "lastUpdated": None,
    }

    current = _runtime_state()
    if current is not None:
        result["currentState"] = current
        # runtime.json carries the workflow state as well
        result["workflowState"] = current
        result["hasState"] = True
        result["lastUpdated"] = (current.get("project_info") or {}).get("last_updated")

    result["learningWorkflow"] = _learning_workflow()
    return result


def _main_workflow(state: dict[str, Any]) -> dict[str, Any] | None:
    nested = state.get("workflow_state") or {}
    source = nested if nested.get("active_workflow") else state
    if not source.get("active_workflow"):
        return None
    return {
        "type": source["active_workflow"],
        "phase": source.get("workflow_phase"),
        "startedAt": source.get("started_at"),
        "initiatedBy": source.get("initiated_by"),
    }


def get_workflows() -> dict[str, Any]:
    """Main workflow (nested ``workflow_state`` first, then top level) and learning workflow."""
    workflows: dict[str, Any] = {"main": None, "learning": None}

    current = _runtime_state()
    if current is not None:
        workflows["main"] = _main_workflow(current)

    learning = _learning_workflow()
    if learning and learning.get("workflow_id"):
        workflows["learning"] = {
            "id": learning["workflow_id"],
            "phase": learning.get("current_phase"),
            "startedAt": learning.get("started_at"),
            "phasesCompleted": learning.get("phases_completed") or [],
        }

    return workflows


def get_decisions() -> list[Any]:
    current = _runtime_state() or {}
    return list(current.get("recent_decisions") or [])


def get_tasks() -> list[Any]:
    current = _runtime_state() or {}
    return list(current.get("active_tasks") or [])


def get_project_info() -> dict[str, Any]:
    current = _runtime_state() or {}
    return current.get("project_info") or dict(DEFAULT_PROJECT_INFO)


def get_contribution_state() -> dict[str, Any]:
    current = _runtime_state() or {}
    return current.get("contribution_state") or dict(DEFAULT_CONTRIBUTION_STATE, contribution_history=[])


def get_workflow_status() -> dict[str, Any] | None:
    """``workflow_state`` from runtime.json; unreadable state counts as no workflow."""
    try:
        current = _runtime_state()
    except (OSError, StoreError):
        return None
    return (current or {}).get("workflow_state")
