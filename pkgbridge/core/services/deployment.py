"""
Deployment orchestrator — drive a rollout through its stages.

    authenticate → package → generate_script → upload
        → configure_detection → configure_targeting → assign → finish

Stages run strictly in order, one at a time. After each one the
orchestrator yields the new snapshot, so callers can render progress
and the log while the rollout is still running. The first failing
stage ends the attempt and rolls the workflow back to configuring.

The back end does the real work. ``SimulatedIntuneBackend`` stands in
for Microsoft Intune: it sleeps for each stage and can be told to
fail at one of them.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator, Sequence

from pkgbridge.core.models.action import Receipt
from pkgbridge.core.models.deployment import Credentials, DeploymentRequest
from pkgbridge.core.models.settings import ScriptPaths
from pkgbridge.core.models.workflow import WorkflowSnapshot, WorkflowState
from pkgbridge.core.persistence.audit import AuditWriter, DeploymentAuditEntry
from pkgbridge.core.services.credential_gate import CredentialGate
from pkgbridge.core.services.generators.install_script import synthesize
from pkgbridge.core.services.workflow import (
    STAGE_NAMES,
    DeployRequested,
    StageCompleted,
    StageFailed,
    get_stage,
    transition,
)

logger = logging.getLogger(__name__)


# ── Back ends ───────────────────────────────────────────────────


class DeploymentBackend(ABC):
    """The enterprise device-management service.

    ``execute`` runs one stage and reports the outcome in a Receipt.
    A failure's ``error`` is shown to the operator verbatim.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Back-end identifier, used as the receipt adapter name."""

    @abstractmethod
    def execute(self, stage: str, request: DeploymentRequest) -> Receipt:
        """Run one stage for the given request."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class SimulatedIntuneBackend(DeploymentBackend):
    """Timed stand-in for Intune.

    Args:
        delay_scale: Multiplier on each stage's nominal duration
            (0 runs instantly).
        fail_stage: Stage at which to report a failure, if any.
        failure_reason: Error carried by that failure.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        delay_scale: float = 1.0,
        fail_stage: str | None = None,
        failure_reason: str = "Simulated failure",
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._delay_scale = max(delay_scale, 0.0)
        self._fail_stage = fail_stage
        self._failure_reason = failure_reason
        self._sleep = sleep
        self.executed: list[str] = []

    @property
    def name(self) -> str:
        return "intune-sim"

    def execute(self, stage: str, request: DeploymentRequest) -> Receipt:
        delay = get_stage(stage).duration * self._delay_scale
        if delay > 0:
            self._sleep(delay)
        self.executed.append(stage)

        action_id = f"{stage}:{request.record.id}"
        if stage == self._fail_stage:
            return Receipt.failure(
                adapter=self.name,
                action_id=action_id,
                error=self._failure_reason,
                metadata={"simulated": True},
            )
        return Receipt.success(
            adapter=self.name,
            action_id=action_id,
            output=get_stage(stage).done_message,
            metadata={"simulated": True},
        )


# ═══════════════════════════════════════════════════════════════════
#  Orchestrator
# ═══════════════════════════════════════════════════════════════════


class DeploymentOrchestrator:
    """Runs deployment attempts against a back end.

    The credential gate is consulted once, at the start of each
    attempt. Script generation happens locally (the back end still
    gets a chance to record it); every other stage is delegated.
    """

    def __init__(
        self,
        backend: DeploymentBackend,
        gate: CredentialGate,
        stages: Sequence[str] = STAGE_NAMES,
        script_paths: ScriptPaths | None = None,
        history: AuditWriter | None = None,
    ):
        self._backend = backend
        self._gate = gate
        self._stages = tuple(stages)
        self._script_paths = script_paths
        self._history = history

    @property
    def stages(self) -> tuple[str, ...]:
        return self._stages

    @property
    def gate(self) -> CredentialGate:
        return self._gate

    def run(self, snapshot: WorkflowSnapshot) -> Iterator[WorkflowSnapshot]:
        """Run one attempt, yielding the snapshot after every step.

        The first yield is the result of the deploy request itself:
        still configuring (with one error log) when the gate is
        closed, otherwise deploying at 0%. Then one yield per stage.

        Raises:
            TransitionError: If ``snapshot`` is not configuring.
        """
        snapshot, _ = transition(
            snapshot,
            DeployRequested(gate_ready=self._gate.is_ready(), stages=self._stages),
        )
        yield snapshot
        if snapshot.state is not WorkflowState.DEPLOYING:
            logger.info("Deployment rejected: credential gate closed")
            return

        request = DeploymentRequest(
            record=snapshot.selected,
            config=snapshot.config,
            script=snapshot.script,
            credentials=self._gate.credentials or Credentials(),
        )
        logger.info(
            "Deploying %s (%s) via %s",
            request.record.id, request.source.value, self._backend.name,
        )

        started = time.monotonic()
        error: str | None = None
        for stage in self._stages:
            receipt = self._run_stage(stage, request)
            if receipt.ok:
                snapshot, _ = transition(snapshot, StageCompleted(stage))
            else:
                error = receipt.error or f"{stage} failed"
                logger.warning("Stage %s failed: %s", stage, error)
                snapshot, _ = transition(snapshot, StageFailed(stage, error))

            if stage == "generate_script" and receipt.ok:
                request = request.model_copy(update={"script": receipt.output})
            yield snapshot
            if snapshot.state is not WorkflowState.DEPLOYING:
                break

        self._record(snapshot, error, int((time.monotonic() - started) * 1000))

    def _run_stage(self, stage: str, request: DeploymentRequest) -> Receipt:
        try:
            if stage == "generate_script":
                return self._generate_script(request)
            return self._backend.execute(stage, request)
        except Exception as e:
            logger.exception("Stage %s raised", stage)
            return Receipt.failure(
                adapter=self._backend.name,
                action_id=f"{stage}:{request.record.id}",
                error=f"Unexpected error: {e}",
            )

    def _generate_script(self, request: DeploymentRequest) -> Receipt:
        script = synthesize(request.record, self._script_paths)
        receipt = self._backend.execute("generate_script", request.model_copy(
            update={"script": script},
        ))
        if not receipt.ok:
            return receipt
        return receipt.model_copy(update={"output": script})

    def _record(self, snapshot: WorkflowSnapshot, error: str | None, duration_ms: int) -> None:
        if self._history is None or snapshot.selected is None:
            return
        record = snapshot.selected
        self._history.write(DeploymentAuditEntry(
            package_name=record.name,
            package_id=record.id,
            version=record.version,
            source=record.source.value,
            target_groups=sorted(snapshot.config.target_groups) if snapshot.config else [],
            status="succeeded" if snapshot.state is WorkflowState.SUCCEEDED else "failed",
            stages_total=len(snapshot.stages),
            stages_completed=list(snapshot.completed_stages),
            failed_stage=snapshot.failed_stage,
            error=error,
            duration_ms=duration_ms,
        ))
