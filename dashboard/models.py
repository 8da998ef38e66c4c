"""Pydantic request/response models for the dashboard API."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

HOOK_PROFILES = ("minimal", "standard", "advanced", "custom")

HookProfile = Literal["minimal", "standard", "advanced", "custom"]


# --- hook configuration (hooks/config/hook-config.json) ---
class HookPerformanceSettings(BaseModel):
    model_config = ConfigDict(extra="allow")

    timeout: float = Field(..., strict=True, description="Hook execution timeout in milliseconds")


class HookConfig(BaseModel):
    """Shape a hook configuration must keep after every update. Unknown keys are preserved."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = Field(..., strict=True)
    profile: HookProfile
    performance: HookPerformanceSettings


# --- PATCH /api/hooks/hooks/{hookName} ---
class HookToggleRequest(BaseModel):
    enabled: bool = Field(..., description="Whether the hook should run")


# --- PUT /api/hooks/claude-settings ---
class ClaudeSettingsUpdate(BaseModel):
    enabled: bool | None = Field(default=None, description="Master switch for all hooks")
    syncEnabled: bool | None = Field(default=None, description="Sync hook settings to the parent workspace")
    profile: str | None = Field(default=None, description="AgileAiAgents hook profile")


# --- POST /api/improvements/status ---
class ImprovementStatusUpdate(BaseModel):
    id: str | None = None
    status: str | None = None


# --- POST /api/improvements/move-to-backlog ---
class MoveToBacklogRequest(BaseModel):
    id: str | None = None


# --- POST /api/project-config ---
class ProjectConfigUpdate(BaseModel):
    projectName: str | None = None
    projectDescription: str | None = None


# --- GET /api/project-state/workflow ---
class MainWorkflow(BaseModel):
    type: str
    phase: str | None = None
    startedAt: str | None = None
    initiatedBy: str | None = None


class LearningWorkflow(BaseModel):
    id: str
    phase: str | None = None
    startedAt: str | None = None
    phasesCompleted: list[Any] = Field(default_factory=list)


class WorkflowsResponse(BaseModel):
    main: MainWorkflow | None = None
    learning: LearningWorkflow | None = None


# --- GET /health ---
class HealthResponse(BaseModel):
    status: str
    uptime: float
    timestamp: str
