"""
Workflow session — the stateful facade the CLI and web API drive.

A session owns the current WorkflowSnapshot and turns operator
actions into workflow events. Input problems (blank query, nothing
selected, unknown result) come back as a ``SessionResult`` error and
leave the snapshot as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from pkgbridge.core.models.deployment import DeploymentConfig
from pkgbridge.core.models.package import PackageRecord, PackageSource
from pkgbridge.core.models.settings import Settings
from pkgbridge.core.models.workflow import WorkflowSnapshot, WorkflowState
from pkgbridge.core.services.catalog import Invoker, SearchOutcome, search_catalogs
from pkgbridge.core.services.deployment import DeploymentOrchestrator
from pkgbridge.core.services.generators.install_script import synthesize
from pkgbridge.core.services.workflow import (
    ConfigUpdated,
    PackageSelected,
    Reset,
    SearchFailed,
    SearchSucceeded,
    TransitionError,
    transition,
)

logger = logging.getLogger(__name__)


@dataclass
class SessionResult:
    """Outcome of one operator action."""

    ok: bool = True
    error: str | None = None
    code: str | None = None        # invalid, not_found, search_failed, conflict, gate_closed, deploy_failed

    @classmethod
    def fail(cls, error: str, code: str = "invalid") -> SessionResult:
        return cls(ok=False, error=error, code=code)

    def to_dict(self) -> dict:
        return {"ok": self.ok, "error": self.error, "code": self.code}


class WorkflowSession:
    """One operator's pass through search → configure → deploy."""

    def __init__(
        self,
        invoker: Invoker,
        orchestrator: DeploymentOrchestrator,
        settings: Settings | None = None,
    ):
        self._invoker = invoker
        self._orchestrator = orchestrator
        self._settings = settings or Settings()
        self._snapshot = WorkflowSnapshot()
        self.last_search: SearchOutcome | None = None

    @property
    def snapshot(self) -> WorkflowSnapshot:
        return self._snapshot

    @property
    def state(self) -> WorkflowState:
        return self._snapshot.state

    def _apply(self, event: Any) -> SessionResult:
        try:
            self._snapshot, _ = transition(self._snapshot, event)
        except TransitionError as e:
            return SessionResult.fail(str(e), code="conflict")
        return SessionResult()

    # ── Search ───────────────────────────────────────────────────

    def search(
        self,
        query: str,
        sources: Iterable[PackageSource] | None = None,
        apply_filter: bool = False,
    ) -> SessionResult:
        """Query the catalogs and replace the result list.

        A failed search is still a completed action: the snapshot
        gets an error log and an empty result list.
        """
        if not (query or "").strip():
            return SessionResult.fail("Search query must not be empty")
        if self._snapshot.state is not WorkflowState.SEARCHING:
            return SessionResult.fail(
                "Reset the workflow before starting a new search", code="conflict",
            )

        outcome = search_catalogs(
            query,
            self._invoker,
            sources=sources if sources is not None else self._settings.search.sources,
            timeout=self._settings.search.timeout,
            apply_filter=apply_filter,
        )
        self.last_search = outcome
        if not outcome.ok:
            self._apply(SearchFailed(outcome.error or "search failed"))
            return SessionResult.fail(outcome.error or "search failed", code="search_failed")
        return self._apply(SearchSucceeded(outcome.results, query=outcome.query))

    # ── Selection / configuration ────────────────────────────────

    def find(self, package_id: str, source: PackageSource | None = None) -> PackageRecord | None:
        """Find a result by id (case-insensitive), optionally per source."""
        wanted = package_id.strip().lower()
        for record in self._snapshot.results:
            if record.id.lower() == wanted and (source is None or record.source is source):
                return record
        return None

    def select(self, choice: PackageRecord | int) -> SessionResult:
        """Select a result, by record or by position in the result list."""
        if isinstance(choice, int):
            results = self._snapshot.results
            if not 0 <= choice < len(results):
                return SessionResult.fail(
                    f"No search result at position {choice} ({len(results)} available)"
                )
            record = results[choice]
        else:
            record = choice

        deploy = self._settings.deployment
        config = DeploymentConfig.from_record(
            record,
            target_groups=set(deploy.default_groups),
            requirements=deploy.requirements,
        )
        script = synthesize(record, self._settings.scripts)
        return self._apply(PackageSelected(record, config=config, script=script))

    def configure(self, **changes: Any) -> SessionResult:
        """Update deployment configuration fields of the selected package."""
        current = self._snapshot.config
        if self._snapshot.selected is None or current is None:
            return SessionResult.fail("No package selected")

        unknown = sorted(set(changes) - set(DeploymentConfig.model_fields))
        if unknown:
            return SessionResult.fail(f"Unknown configuration field(s): {', '.join(unknown)}")

        if "target_groups" in changes:
            changes["target_groups"] = {
                g.strip() for g in changes["target_groups"] if g and g.strip()
            }
        try:
            config = DeploymentConfig.model_validate({**current.model_dump(), **changes})
        except ValueError as e:
            return SessionResult.fail(f"Invalid configuration: {e}")
        return self._apply(ConfigUpdated(config))

    # ── Deployment ───────────────────────────────────────────────

    def iter_deploy(self) -> Iterator[WorkflowSnapshot]:
        """Deploy the selected package, yielding progress as it happens.

        Raises:
            TransitionError: If the workflow is not configuring.
        """
        for snapshot in self._orchestrator.run(self._snapshot):
            self._snapshot = snapshot
            yield snapshot

    def deploy(self) -> SessionResult:
        """Deploy to completion (or first failure)."""
        started = False
        try:
            for snapshot in self.iter_deploy():
                started = started or snapshot.state is WorkflowState.DEPLOYING
        except TransitionError as e:
            return SessionResult.fail(str(e), code="conflict")

        snapshot = self._snapshot
        if snapshot.state is WorkflowState.SUCCEEDED:
            return SessionResult()
        last = snapshot.logs[-1].message if snapshot.logs else "Deployment failed"
        return SessionResult.fail(last, code="deploy_failed" if started else "gate_closed")

    def reset(self) -> SessionResult:
        return self._apply(Reset())
