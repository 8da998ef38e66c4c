"""AgileAiAgents Dashboard — Shared Test Fixtures.

Every test gets its own workspace root under ``tmp_path``. Fixtures seed the
JSON documents the routes read; no fixture touches the real checkout.
"""

import json

import pytest

from dashboard.hook_manager import reset_hook_manager

# ---------------------------------------------------------------------------
# Environment Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def set_test_env(monkeypatch, tmp_path):
    """Point the dashboard at an empty workspace for every test."""
    monkeypatch.setenv("AGILE_AI_AGENTS_ROOT", str(tmp_path))
    monkeypatch.setenv("DASHBOARD_AUTH_ENABLED", "false")
    monkeypatch.delenv("DASHBOARD_DEBUG", raising=False)
    monkeypatch.delenv("DASHBOARD_PORT", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    reset_hook_manager()
    yield
    reset_hook_manager()


@pytest.fixture
def workspace(tmp_path):
    """The workspace root the dashboard is serving."""
    return tmp_path


@pytest.fixture
def write_doc(workspace):
    """Write a JSON document relative to the workspace root."""

    def _write(relative: str, data):
        path = workspace / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2))
        return path

    return _write


@pytest.fixture
def read_doc(workspace):
    """Read a JSON document relative to the workspace root."""

    def _read(relative: str):
        return json.loads((workspace / relative).read_text())

    return _read


# ---------------------------------------------------------------------------
# FastAPI Test Client
# ---------------------------------------------------------------------------


@pytest.fixture
def client():
    """FastAPI TestClient for the dashboard app."""
    from fastapi.testclient import TestClient

    from dashboard.server import app

    return TestClient(app)


# ---------------------------------------------------------------------------
# Hook System Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def hook_config(write_doc):
    """A valid hook configuration with a short timeout."""
    cfg = {
        "enabled": True,
        "profile": "standard",
        "performance": {"timeout": 2000, "warningThreshold": 1000, "maxRetries": 2},
        "logging": {"level": "info", "file": "hooks.log"},
        "hooks": {},
    }
    write_doc("hooks/config/hook-config.json", cfg)
    return cfg


@pytest.fixture
def hook_registry(write_doc):
    """Registry with one hook per execution outcome."""
    registry = {
        "version": "1.0.0",
        "hooks": {
            "greet": {"command": "sh -c 'echo hello'", "priority": "normal"},
            "agent-echo": {"command": "sh -c 'echo $ACTIVE_AGENT'", "priority": "normal"},
            "broken": {"command": "false", "priority": "normal"},
            "critical-broken": {"command": "false", "priority": "critical"},
            "sleepy": {"command": "sleep 5", "priority": "normal"},
            "dev-only": {
                "command": "true",
                "conditions": {"if_agent": ["coder"], "if_file_matches": r"\.py$"},
            },
        },
    }
    write_doc("hooks/registry/hook-registry.json", registry)
    return registry


# ---------------------------------------------------------------------------
# Improvement Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backlog(write_doc):
    """Backlog with one nearly-full sprint."""
    doc = {
        "items": [
            {"id": "IMP-001", "title": "Cache builds", "category": "performance", "status": "todo"},
            {"id": "IMP-002", "title": "Rotate keys", "category": "critical_security", "status": "completed"},
        ],
        "sprints": [
            {
                "id": "sprint-improvement-1",
                "name": "Improvement Sprint 1",
                "items": ["IMP-001", "IMP-002"],
                "estimated_hours": 72,
                "status": "planned",
            }
        ],
        "metadata": {"total_items": 2, "estimated_sprints": 1},
    }
    write_doc("project-state/improvements/improvement-backlog.json", doc)
    return doc


@pytest.fixture
def deferred(write_doc):
    """Two deferred improvements, one of them security critical."""
    doc = {
        "deferred_improvements": [
            {"id": "DEF-001", "title": "Split monolith", "description": "Extract billing", "category": "architecture"},
            {"id": "DEF-002", "title": "Pin deps", "description": "Lock versions", "category": "critical_security"},
        ],
        "metadata": {"last_reviewed": None, "total_deferred": 2, "next_review": None},
    }
    write_doc("project-state/improvements/deferred-improvements.json", doc)
    return doc


# ---------------------------------------------------------------------------
# Project State Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runtime_state(write_doc):
    """A project mid-sprint with decisions and tasks."""
    doc = {
        "project_info": {
            "name": "Shop",
            "version": "1.2.0",
            "created_at": "2025-01-01T00:00:00Z",
            "last_updated": "2025-02-01T12:00:00Z",
        },
        "workflow_state": {
            "active_workflow": "new-project",
            "workflow_phase": "implementation",
            "started_at": "2025-01-02T00:00:00Z",
            "initiated_by": "user",
        },
        "recent_decisions": [{"id": "D-1", "decision": "Use PostgreSQL"}],
        "active_tasks": [{"id": "T-1", "title": "Checkout page"}],
        "contribution_state": {
            "last_prompt": "2025-01-20",
            "pending_prompt": None,
            "skip_until": None,
            "contribution_history": ["2025-01-20"],
        },
    }
    write_doc("project-state/runtime.json", doc)
    return doc
