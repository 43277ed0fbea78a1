"""
Workflow state — the operator's journey from search to rollout.

    searching → configuring → deploying → succeeded
                     ↑            │
                     └────────────┘  (gate closed, or a stage failed)

``reset`` goes back to searching from anywhere. A snapshot is
immutable: every transition produces a new one.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from pkgbridge.core.models.deployment import DeploymentConfig, DeploymentLogEvent
from pkgbridge.core.models.package import PackageRecord


class WorkflowState(str, Enum):
    SEARCHING = "searching"
    CONFIGURING = "configuring"
    DEPLOYING = "deploying"
    SUCCEEDED = "succeeded"


class WorkflowSnapshot(BaseModel):
    """Observable state of one workflow at a point in time."""

    model_config = ConfigDict(frozen=True)

    state: WorkflowState = WorkflowState.SEARCHING

    results: tuple[PackageRecord, ...] = ()
    selected: PackageRecord | None = None
    config: DeploymentConfig | None = None
    script: str = ""

    logs: tuple[DeploymentLogEvent, ...] = ()

    # ── Current / last deployment attempt ────────────────────────
    stages: tuple[str, ...] = ()
    completed_stages: tuple[str, ...] = ()
    progress: float = 0.0            # fraction, 0.0 – 1.0
    failed_stage: str | None = None

    @property
    def progress_percent(self) -> int:
        return round(self.progress * 100)

    @property
    def failed(self) -> bool:
        """True after a stage failure rolled the workflow back."""
        return self.failed_stage is not None

    @property
    def next_stage(self) -> str | None:
        """The stage expected to run next, or None when all are done."""
        index = len(self.completed_stages)
        if index < len(self.stages):
            return self.stages[index]
        return None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "results": [r.model_dump(mode="json") for r in self.results],
            "selected": self.selected.model_dump(mode="json") if self.selected else None,
            "config": self.config.model_dump(mode="json") if self.config else None,
            "logs": [e.model_dump(mode="json") for e in self.logs],
            "stages": list(self.stages),
            "completed_stages": list(self.completed_stages),
            "progress": self.progress,
            "failed_stage": self.failed_stage,
        }
