"""
Runtime wiring — build the collaborators every entry point needs.

Loads settings, then assembles the adapter registry, keystore,
credential gate, deployment history and back end from them. Tests
and the web app inject their own pieces; anything left out is
built from settings.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pkgbridge.adapters.registry import AdapterRegistry
from pkgbridge.core.config.loader import find_config_file, load_settings, resolve_path
from pkgbridge.core.models.settings import Settings
from pkgbridge.core.persistence.audit import AuditWriter
from pkgbridge.core.persistence.keystore import FileKeystore, Keystore
from pkgbridge.core.services.credential_gate import CredentialGate
from pkgbridge.core.services.deployment import (
    DeploymentBackend,
    DeploymentOrchestrator,
    SimulatedIntuneBackend,
)
from pkgbridge.core.services.session import WorkflowSession

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Everything needed to run searches and deployments."""

    settings: Settings
    base_dir: Path
    registry: AdapterRegistry
    gate: CredentialGate
    history: AuditWriter
    backend: DeploymentBackend

    def orchestrator(self) -> DeploymentOrchestrator:
        return DeploymentOrchestrator(
            self.backend,
            self.gate,
            script_paths=self.settings.scripts,
            history=self.history,
        )

    def new_session(self) -> WorkflowSession:
        """A fresh workflow, starting in the searching state."""
        return WorkflowSession(
            self.registry.invoke_search,
            self.orchestrator(),
            settings=self.settings,
        )


def build_runtime(
    config_path: Path | None = None,
    mock_mode: bool = False,
    settings: Settings | None = None,
    registry: AdapterRegistry | None = None,
    keystore: Keystore | None = None,
    backend: DeploymentBackend | None = None,
    sleep: Callable[[float], None] | None = None,
) -> Runtime:
    """Load settings and assemble a Runtime.

    Relative paths in settings (``state_dir``, ``keystore.path``) are
    anchored at the directory holding pkgbridge.yml, or the current
    directory when there is none.

    Raises:
        ConfigError: If the config file is missing or invalid.
    """
    if settings is None:
        settings = load_settings(config_path)
        found = config_path or find_config_file()
        base_dir = found.parent.resolve() if found else Path.cwd()
    else:
        base_dir = config_path.parent.resolve() if config_path else Path.cwd()

    if registry is None:
        registry = AdapterRegistry.default(mock_mode=mock_mode)
    elif mock_mode:
        registry.set_mock_mode(True)

    if keystore is None:
        keystore = FileKeystore(resolve_path(settings.keystore.path, base_dir))

    if backend is None:
        deploy = settings.deployment
        kwargs = {"sleep": sleep} if sleep is not None else {}
        backend = SimulatedIntuneBackend(
            delay_scale=deploy.stage_delay_scale,
            fail_stage=deploy.fail_stage,
            **kwargs,
        )

    history = AuditWriter(state_dir=resolve_path(settings.state_dir, base_dir))
    logger.debug("Runtime ready (base=%s, mock=%s)", base_dir, registry.mock_mode)

    return Runtime(
        settings=settings,
        base_dir=base_dir,
        registry=registry,
        gate=CredentialGate(keystore),
        history=history,
        backend=backend,
    )
