"""Integration tests for the /api/project-state endpoints."""

RUNTIME = "project-state/runtime.json"
LEARNING = "project-state/learning-workflow/current-runtime.json"


class TestProjectState:
    """GET /api/project-state."""

    def test_no_state(self, client):
        assert client.get("/api/project-state").json() == {
            "hasState": False,
            "currentState": None,
            "workflowState": None,
            "learningWorkflow": None,
            "lastUpdated": None,
        }

    def test_with_state(self, client, runtime_state):
        data = client.get("/api/project-state").json()
        assert data["hasState"] is True
        assert data["currentState"] == runtime_state
        assert data["workflowState"] == runtime_state
        assert data["lastUpdated"] == "2025-02-01T12:00:00Z"

    def test_includes_learning_workflow(self, client, write_doc):
        write_doc(LEARNING, {"workflow_id": "learn-1"})
        assert client.get("/api/project-state").json()["learningWorkflow"] == {"workflow_id": "learn-1"}

    def test_corrupt_state(self, client, workspace):
        path = workspace / RUNTIME
        path.parent.mkdir(parents=True)
        path.write_text("[oops")

        response = client.get("/api/project-state")
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to read project state"}


class TestWorkflow:
    """GET /api/project-state/workflow."""

    def test_nested_workflow_state(self, client, runtime_state):
        data = client.get("/api/project-state/workflow").json()
        assert data["main"] == {
            "type": "new-project",
            "phase": "implementation",
            "startedAt": "2025-01-02T00:00:00Z",
            "initiatedBy": "user",
        }
        assert data["learning"] is None

    def test_top_level_workflow_fallback(self, client, write_doc):
        write_doc(RUNTIME, {"active_workflow": "existing-project", "workflow_phase": "analysis"})
        main = client.get("/api/project-state/workflow").json()["main"]
        assert main["type"] == "existing-project"
        assert main["phase"] == "analysis"

    def test_no_active_workflow(self, client, write_doc):
        write_doc(RUNTIME, {"workflow_state": {}})
        assert client.get("/api/project-state/workflow").json() == {"main": None, "learning": None}

    def test_learning_workflow(self, client, write_doc):
        write_doc(
            LEARNING,
            {"workflow_id": "learn-7", "current_phase": "collect", "started_at": "2025-03-01", "phases_completed": ["a"]},
        )
        learning = client.get("/api/project-state/workflow").json()["learning"]
        assert learning == {"id": "learn-7", "phase": "collect", "startedAt": "2025-03-01", "phasesCompleted": ["a"]}


class TestSections:
    """Decisions, tasks, project info and contributions."""

    def test_decisions(self, client, runtime_state):
        assert client.get("/api/project-state/decisions").json() == {"decisions": runtime_state["recent_decisions"]}

    def test_tasks(self, client, runtime_state):
        assert client.get("/api/project-state/tasks").json() == {"tasks": runtime_state["active_tasks"]}

    def test_empty_sections(self, client):
        assert client.get("/api/project-state/decisions").json() == {"decisions": []}
        assert client.get("/api/project-state/tasks").json() == {"tasks": []}

    def test_info(self, client, runtime_state):
        assert client.get("/api/project-state/info").json() == runtime_state["project_info"]

    def test_default_info(self, client):
        assert client.get("/api/project-state/info").json() == {
            "name": "Untitled Project",
            "version": "0.0.1",
            "created_at": None,
            "last_updated": None,
        }

    def test_contributions(self, client, runtime_state):
        assert client.get("/api/project-state/contributions").json() == runtime_state["contribution_state"]

    def test_default_contributions(self, client):
        assert client.get("/api/project-state/contributions").json() == {
            "last_prompt": None,
            "pending_prompt": None,
            "skip_until": None,
            "contribution_history": [],
        }

    def test_corrupt_state_messages(self, client, workspace):
        path = workspace / RUNTIME
        path.parent.mkdir(parents=True)
        path.write_text("{")

        assert client.get("/api/project-state/tasks").json() == {"error": "Failed to read tasks"}
        assert client.get("/api/project-state/info").json() == {"error": "Failed to read project info"}
