"""
Workflow engine — pure transitions between workflow snapshots.

``transition(snapshot, event)`` is the single place where the state
machine lives. It takes the current immutable snapshot and one event
and returns the next snapshot plus the log events it appended:

    SearchSucceeded / SearchFailed    searching
    PackageSelected                   searching   → configuring
    ConfigUpdated                     configuring
    DeployRequested                   configuring → deploying  (gate open)
                                      configuring              (gate closed)
    StageCompleted                    deploying   → succeeded  (last stage)
    StageFailed                       deploying   → configuring
    Reset                             any         → searching

An event that is not allowed in the current state raises
``TransitionError`` and leaves the caller's snapshot untouched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from pkgbridge.core.models.deployment import (
    DeploymentConfig,
    DeploymentLogEvent,
    Severity,
)
from pkgbridge.core.models.package import PackageRecord
from pkgbridge.core.models.workflow import WorkflowSnapshot, WorkflowState
from pkgbridge.core.services.generators.install_script import synthesize

logger = logging.getLogger(__name__)


class TransitionError(Exception):
    """Raised when an event is not allowed in the current state."""


# ── Stage catalogue ─────────────────────────────────────────────


@dataclass(frozen=True)
class Stage:
    """One step of an Intune rollout."""

    name: str
    label: str
    done_message: str
    duration: float          # seconds, for the simulated back end


STAGES: tuple[Stage, ...] = (
    Stage("authenticate", "Authentication", "Connected to Microsoft Graph", 1.5),
    Stage("package", "Packaging", "Created .intunewin package", 2.0),
    Stage("generate_script", "Script generation", "Install script generated", 1.0),
    Stage("upload", "Upload", "Package uploaded to Intune", 2.5),
    Stage("configure_detection", "Detection rules", "Detection rules configured", 1.5),
    Stage("configure_targeting", "Targeting", "Target groups configured", 1.5),
    Stage("assign", "Assignment", "Application assigned to groups", 2.0),
    Stage("finish", "Finalization", "Deployment completed successfully", 1.0),
)

STAGE_NAMES: tuple[str, ...] = tuple(s.name for s in STAGES)
_BY_NAME = {s.name: s for s in STAGES}


def get_stage(name: str) -> Stage:
    """Look up a stage by name, falling back to a generic description."""
    stage = _BY_NAME.get(name)
    if stage is None:
        label = name.replace("_", " ").capitalize()
        stage = Stage(name, label, f"{label} completed", 1.0)
    return stage


# ═══════════════════════════════════════════════════════════════════
#  Events
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class SearchSucceeded:
    results: Sequence[PackageRecord]
    query: str = ""


@dataclass(frozen=True)
class SearchFailed:
    reason: str


@dataclass(frozen=True)
class PackageSelected:
    """Operator picked one of the search results.

    ``config`` and ``script`` default to what the record implies;
    callers with site settings pass them precomputed.
    """

    record: PackageRecord
    config: DeploymentConfig | None = None
    script: str = ""


@dataclass(frozen=True)
class ConfigUpdated:
    config: DeploymentConfig


@dataclass(frozen=True)
class DeployRequested:
    gate_ready: bool
    stages: Sequence[str] = STAGE_NAMES


@dataclass(frozen=True)
class StageCompleted:
    stage: str
    message: str | None = None


@dataclass(frozen=True)
class StageFailed:
    stage: str
    reason: str


@dataclass(frozen=True)
class Reset:
    pass


Event = (
    SearchSucceeded | SearchFailed | PackageSelected | ConfigUpdated
    | DeployRequested | StageCompleted | StageFailed | Reset
)

GATE_CLOSED_MESSAGE = (
    "Enterprise credentials required: configure Tenant ID, Client ID "
    "and Client secret before deploying"
)


@dataclass
class TransitionResult:
    """Next snapshot plus the log events appended to reach it."""

    snapshot: WorkflowSnapshot
    events: list[DeploymentLogEvent] = field(default_factory=list)

    def __iter__(self):
        return iter((self.snapshot, self.events))


# ── Handlers ────────────────────────────────────────────────────


def _require(snapshot: WorkflowSnapshot, event: object, *allowed: WorkflowState) -> None:
    if snapshot.state not in allowed:
        raise TransitionError(
            f"{type(event).__name__} is not allowed while {snapshot.state.value}"
        )


def _log(
    snapshot: WorkflowSnapshot,
    message: str,
    severity: Severity = Severity.INFO,
    **changes,
) -> TransitionResult:
    event = DeploymentLogEvent(severity=severity, message=message)
    updated = snapshot.model_copy(update={**changes, "logs": snapshot.logs + (event,)})
    return TransitionResult(updated, [event])


def _on_search_succeeded(s: WorkflowSnapshot, e: SearchSucceeded) -> TransitionResult:
    _require(s, e, WorkflowState.SEARCHING)
    results = tuple(e.results)
    suffix = f" for '{e.query}'" if e.query else ""
    return _log(
        s, f"Found {len(results)} package(s){suffix}", Severity.SUCCESS,
        results=results,
    )


def _on_search_failed(s: WorkflowSnapshot, e: SearchFailed) -> TransitionResult:
    _require(s, e, WorkflowState.SEARCHING)
    return _log(s, f"Search failed: {e.reason}", Severity.ERROR, results=())


def _on_package_selected(s: WorkflowSnapshot, e: PackageSelected) -> TransitionResult:
    _require(s, e, WorkflowState.SEARCHING)
    if all(r.key != e.record.key for r in s.results):
        raise TransitionError(
            f"Package {e.record.id!r} ({e.record.source.value}) is not in the search results"
        )
    return _log(
        s,
        f"Selected {e.record.name} ({e.record.source.value})",
        state=WorkflowState.CONFIGURING,
        selected=e.record,
        config=e.config or DeploymentConfig.from_record(e.record),
        script=e.script or synthesize(e.record),
        stages=(),
        completed_stages=(),
        progress=0.0,
        failed_stage=None,
    )


def _on_config_updated(s: WorkflowSnapshot, e: ConfigUpdated) -> TransitionResult:
    _require(s, e, WorkflowState.CONFIGURING)
    return TransitionResult(s.model_copy(update={"config": e.config}))


def _on_deploy_requested(s: WorkflowSnapshot, e: DeployRequested) -> TransitionResult:
    _require(s, e, WorkflowState.CONFIGURING)
    if s.selected is None or s.config is None:
        raise TransitionError("No package selected")
    if not e.gate_ready:
        return _log(s, GATE_CLOSED_MESSAGE, Severity.ERROR)

    stages = tuple(e.stages)
    if not stages:
        raise TransitionError("A deployment needs at least one stage")
    return TransitionResult(s.model_copy(update={
        "state": WorkflowState.DEPLOYING,
        "stages": stages,
        "completed_stages": (),
        "progress": 0.0,
        "failed_stage": None,
    }))


def _require_next_stage(s: WorkflowSnapshot, e: StageCompleted | StageFailed) -> None:
    _require(s, e, WorkflowState.DEPLOYING)
    if e.stage != s.next_stage:
        raise TransitionError(
            f"Stage {e.stage!r} reported out of order (expected {s.next_stage!r})"
        )


def _on_stage_completed(s: WorkflowSnapshot, e: StageCompleted) -> TransitionResult:
    _require_next_stage(s, e)
    completed = s.completed_stages + (e.stage,)
    last = len(completed) == len(s.stages)
    return _log(
        s,
        e.message or get_stage(e.stage).done_message,
        Severity.SUCCESS if last else Severity.INFO,
        state=WorkflowState.SUCCEEDED if last else WorkflowState.DEPLOYING,
        completed_stages=completed,
        progress=len(completed) / len(s.stages),
    )


def _on_stage_failed(s: WorkflowSnapshot, e: StageFailed) -> TransitionResult:
    _require_next_stage(s, e)
    return _log(
        s,
        f"{get_stage(e.stage).label} failed: {e.reason}",
        Severity.ERROR,
        state=WorkflowState.CONFIGURING,
        failed_stage=e.stage,
    )


def _on_reset(s: WorkflowSnapshot, e: Reset) -> TransitionResult:
    return TransitionResult(WorkflowSnapshot())


_HANDLERS: dict[type, Callable[[WorkflowSnapshot, object], TransitionResult]] = {
    SearchSucceeded: _on_search_succeeded,
    SearchFailed: _on_search_failed,
    PackageSelected: _on_package_selected,
    ConfigUpdated: _on_config_updated,
    DeployRequested: _on_deploy_requested,
    StageCompleted: _on_stage_completed,
    StageFailed: _on_stage_failed,
    Reset: _on_reset,
}


def transition(snapshot: WorkflowSnapshot, event: Event) -> TransitionResult:
    """Apply one event to a snapshot.

    Args:
        snapshot: The current state. Never modified.
        event: What happened.

    Returns:
        TransitionResult with the next snapshot and the appended log
        events. Unpacks as ``(snapshot, events)``.

    Raises:
        TransitionError: If the event is not allowed in this state.
    """
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TransitionError(f"Unknown workflow event: {type(event).__name__}")

    result = handler(snapshot, event)
    if result.snapshot.state is not snapshot.state:
        logger.debug(
            "Workflow %s → %s on %s",
            snapshot.state.value, result.snapshot.state.value, type(event).__name__,
        )
    return result
