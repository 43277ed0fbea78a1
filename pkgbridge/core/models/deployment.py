"""
Deployment models — rollout configuration, credentials and log events.

DeploymentConfig is created from the selected PackageRecord, edited
by the operator, then consumed read-only by script generation and
the deployment orchestrator.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pkgbridge.core.models.package import PackageRecord, PackageSource

DEFAULT_REQUIREMENTS = "Windows 10 1809+"


def _now_clock() -> str:
    """Local wall-clock time, as shown in the operator console."""
    return datetime.now().strftime("%H:%M:%S")


class Severity(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class DeploymentLogEvent(BaseModel):
    """One line of the operator-facing deployment log.

    Events are appended, never edited or reordered.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: str = Field(default_factory=_now_clock)
    severity: Severity = Severity.INFO
    message: str

    def format(self) -> str:
        return f"{self.timestamp} [{self.severity.value.upper()}] {self.message}"


class DeploymentConfig(BaseModel):
    """Operator-adjustable rollout parameters for one package."""

    silent_install: bool = True
    auto_update: bool = False
    target_groups: set[str] = Field(default_factory=set)
    requirements: str = DEFAULT_REQUIREMENTS

    # ── Defaulted from the selected record ───────────────────────
    display_name: str = ""
    publisher: str = ""
    version: str = ""
    install_command: str = ""
    uninstall_command: str = ""
    install_as_system: bool = True

    @classmethod
    def from_record(
        cls,
        record: PackageRecord,
        target_groups: set[str] | None = None,
        requirements: str = DEFAULT_REQUIREMENTS,
    ) -> DeploymentConfig:
        """Build the default configuration for a freshly selected package."""
        from pkgbridge.core.services.generators.install_script import (
            install_command,
            uninstall_command,
        )

        return cls(
            target_groups=set(target_groups or ()),
            requirements=requirements,
            display_name=record.name,
            publisher=record.publisher or "",
            version=record.version,
            install_command=install_command(record),
            uninstall_command=uninstall_command(record),
        )


class Credentials(BaseModel):
    """Enterprise (Microsoft Graph) application credentials.

    The secret is opaque and kept out of repr output.
    """

    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = Field(default="", repr=False)

    def missing_fields(self) -> list[str]:
        """Names of fields that are empty or whitespace only."""
        return [
            name
            for name in ("tenant_id", "client_id", "client_secret")
            if not getattr(self, name).strip()
        ]

    @property
    def is_complete(self) -> bool:
        return not self.missing_fields()


class DeploymentRequest(BaseModel):
    """Everything a deployment back end receives for one stage."""

    record: PackageRecord
    config: DeploymentConfig
    script: str = ""
    credentials: Credentials = Field(default_factory=Credentials)

    @property
    def source(self) -> PackageSource:
        return self.record.source
