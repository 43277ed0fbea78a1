"""
Deploy use case — search, select, configure and roll out one package.

The full vertical slice behind ``pkgbridge deploy``: every snapshot
produced along the way is handed to ``on_progress`` so the caller can
stream the log while stages are still running.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from pkgbridge.core.models.package import PackageSource
from pkgbridge.core.models.workflow import WorkflowSnapshot, WorkflowState
from pkgbridge.core.services.session import WorkflowSession
from pkgbridge.core.services.workflow import TransitionError
from pkgbridge.core.use_cases.runtime import Runtime
from pkgbridge.core.use_cases.search import search_and_select

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[WorkflowSnapshot], None]


@dataclass
class DeployResult:
    """Result of one deployment attempt."""

    snapshot: WorkflowSnapshot | None = None
    error: str | None = None
    code: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.snapshot is not None
            and self.snapshot.state is WorkflowState.SUCCEEDED
        )

    def to_dict(self) -> dict:
        result: dict = {"ok": self.ok, "error": self.error, "code": self.code}
        if self.snapshot is not None:
            result["workflow"] = self.snapshot.to_dict()
        return result


def run_deployment(
    session: WorkflowSession,
    on_progress: ProgressCallback | None = None,
) -> DeployResult:
    """Deploy whatever the session has selected and configured.

    A rejection by the credential gate never reaches the deploying
    state; that is what tells it apart from a stage failure.
    """
    started = False
    try:
        for snapshot in session.iter_deploy():
            started = started or snapshot.state is WorkflowState.DEPLOYING
            if on_progress is not None:
                on_progress(snapshot)
    except TransitionError as e:
        return DeployResult(snapshot=session.snapshot, error=str(e), code="conflict")

    snapshot = session.snapshot
    if snapshot.state is WorkflowState.SUCCEEDED:
        return DeployResult(snapshot=snapshot)

    error = snapshot.logs[-1].message if snapshot.logs else "Deployment failed"
    code = "deploy_failed" if started else "gate_closed"
    return DeployResult(snapshot=snapshot, error=error, code=code)


def deploy_package(
    runtime: Runtime,
    package_id: str,
    query: str | None = None,
    source: PackageSource | None = None,
    target_groups: Iterable[str] | None = None,
    on_progress: ProgressCallback | None = None,
    **config: Any,
) -> DeployResult:
    """Find a package and deploy it.

    Args:
        runtime: Wired collaborators.
        package_id: Exact package id (case-insensitive).
        query: Search text, defaults to the id.
        source: Only consider this catalog.
        target_groups: Replace the configured target groups.
        on_progress: Called with every intermediate snapshot.
        **config: Other DeploymentConfig fields to override.

    Returns:
        DeployResult with the final snapshot.
    """
    session = runtime.new_session()

    selected = search_and_select(session, package_id, query=query, source=source)
    if not selected.ok:
        return DeployResult(snapshot=session.snapshot, error=selected.error, code=selected.code)

    changes = {k: v for k, v in config.items() if v is not None}
    if target_groups is not None:
        changes["target_groups"] = list(target_groups)
    if changes:
        configured = session.configure(**changes)
        if not configured.ok:
            return DeployResult(
                snapshot=session.snapshot, error=configured.error, code=configured.code,
            )

    return run_deployment(session, on_progress=on_progress)
