"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from pkgbridge.adapters.registry import AdapterRegistry
from pkgbridge.core.models.deployment import Credentials
from pkgbridge.core.models.package import PackageRecord, PackageSource
from pkgbridge.core.models.settings import Settings
from pkgbridge.core.persistence.keystore import MemoryKeystore
from pkgbridge.core.services.deployment import SimulatedIntuneBackend
from pkgbridge.core.use_cases.runtime import Runtime, build_runtime


@pytest.fixture
def winget_record() -> PackageRecord:
    return PackageRecord(
        name="Visual Studio Code",
        id="Microsoft.VisualStudioCode",
        version="1.95.3",
        source=PackageSource.WINGET,
        description="Package Visual Studio Code",
        publisher="Microsoft",
    )


@pytest.fixture
def choco_record() -> PackageRecord:
    return PackageRecord(
        name="vscode",
        id="vscode",
        version="1.95.3",
        source=PackageSource.CHOCOLATEY,
        description="Package vscode",
        publisher="vscode",
    )


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(tenant_id="tenant-1", client_id="client-1", client_secret="s3cret")


@pytest.fixture
def sleeps() -> list[float]:
    """Collects simulated stage delays instead of sleeping."""
    return []


@pytest.fixture
def runtime(tmp_path: Path, sleeps: list[float]) -> Runtime:
    """Mock-mode runtime with an in-memory keystore and no real delays."""
    return build_runtime(
        config_path=tmp_path / "pkgbridge.yml",
        settings=Settings(state_dir=str(tmp_path / "state")),
        registry=AdapterRegistry.default(mock_mode=True),
        keystore=MemoryKeystore(),
        backend=SimulatedIntuneBackend(sleep=sleeps.append),
    )


@pytest.fixture
def ready_runtime(runtime: Runtime, credentials: Credentials) -> Runtime:
    """Runtime whose credential gate is already open."""
    assert runtime.gate.set(credentials).ok
    return runtime


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A pkgbridge.yml for CLI tests: instant stages, files under tmp_path."""
    config = tmp_path / "pkgbridge.yml"
    config.write_text(textwrap.dedent("""\
        deployment:
          stage_delay_scale: 0
          default_groups: [All Devices]
        keystore:
          path: secrets/credentials.json
        state_dir: state
    """))
    return config
