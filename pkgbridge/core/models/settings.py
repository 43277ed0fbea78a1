"""
Settings model — the contents of pkgbridge.yml.

Every key is optional: a missing file or an empty mapping yields the
defaults below, which match the stock Autopilot device layout.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pkgbridge.core.models.deployment import DEFAULT_REQUIREMENTS
from pkgbridge.core.models.package import SOURCE_ORDER, PackageSource


class SearchSettings(BaseModel):
    """How catalog searches are run."""

    timeout: int = Field(default=30, gt=0)
    sources: list[PackageSource] = Field(default_factory=lambda: list(SOURCE_ORDER))

    @field_validator("sources", mode="before")
    @classmethod
    def _parse_sources(cls, value):
        if isinstance(value, str):
            value = [value]
        return [PackageSource.parse(v) if isinstance(v, str) else v for v in value]


class ScriptPaths(BaseModel):
    """Fixed locations on the managed device."""

    model_config = ConfigDict(frozen=True)

    log_dir: str = r"C:\ProgramData\Autopilot-Setup"
    winget_install_script: str = (
        r"C:\Program Files\Winget-Autoupdate-aaS\Winget-AutoUpdate\Winget-Install.ps1"
    )
    choco_exe: str = r"C:\ProgramData\chocolatey\choco.exe"


class DeploymentSettings(BaseModel):
    """Rollout defaults and simulated back-end knobs."""

    stage_delay_scale: float = Field(default=1.0, ge=0.0)
    fail_stage: str | None = None
    default_groups: list[str] = Field(default_factory=list)
    requirements: str = DEFAULT_REQUIREMENTS


class KeystoreSettings(BaseModel):
    path: str = "~/.config/pkgbridge/credentials.json"


class Settings(BaseModel):
    """Root settings, loaded from pkgbridge.yml."""

    search: SearchSettings = Field(default_factory=SearchSettings)
    scripts: ScriptPaths = Field(default_factory=ScriptPaths)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    keystore: KeystoreSettings = Field(default_factory=KeystoreSettings)
    state_dir: str = ".state"
