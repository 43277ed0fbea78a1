"""
Config check use case — validate pkgbridge.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pkgbridge.core.config.loader import ConfigError, find_config_file, load_settings
from pkgbridge.core.models.settings import Settings
from pkgbridge.core.services.workflow import STAGE_NAMES


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    settings: Settings | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "settings": self.settings.model_dump(mode="json") if self.settings else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate settings and report issues.

    A missing pkgbridge.yml is valid (defaults apply) but warned about.
    """
    result = ConfigCheckResult(config_path=config_path or find_config_file())

    if result.config_path is None:
        result.warnings.append("No pkgbridge.yml found; using built-in defaults.")

    try:
        settings = load_settings(result.config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result
    result.settings = settings

    if not settings.search.sources:
        result.errors.append("search.sources is empty: no catalog would be queried.")

    fail_stage = settings.deployment.fail_stage
    if fail_stage and fail_stage not in STAGE_NAMES:
        result.warnings.append(
            f"deployment.fail_stage '{fail_stage}' is not a known stage "
            f"({', '.join(STAGE_NAMES)}); it will never trigger."
        )
    elif fail_stage:
        result.warnings.append(f"Deployments are set to fail at stage '{fail_stage}'.")

    result.valid = not result.errors
    return result
