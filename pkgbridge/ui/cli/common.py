"""
Shared CLI helpers — runtime loading and output formatting.
"""

from __future__ import annotations

import sys

import click

from pkgbridge.core.models.deployment import DeploymentLogEvent, Severity
from pkgbridge.core.models.package import PackageSource

_SEVERITY_STYLE = {
    Severity.INFO: ("•", "white"),
    Severity.SUCCESS: ("✅", "green"),
    Severity.ERROR: ("❌", "red"),
}

SOURCE_CHOICE = click.Choice(["winget", "chocolatey", "choco"], case_sensitive=False)


def load_runtime(ctx: click.Context):  # type: ignore[no-untyped-def]
    """Build the Runtime for this invocation, exiting on config errors."""
    from pkgbridge.core.config.loader import ConfigError
    from pkgbridge.core.use_cases.runtime import build_runtime

    obj = ctx.find_root().obj or {}
    try:
        return build_runtime(
            config_path=obj.get("config_path"),
            mock_mode=obj.get("mock", False),
        )
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def parse_source(value: str | None) -> PackageSource | None:
    return PackageSource.parse(value) if value else None


def echo_log_event(event: DeploymentLogEvent) -> None:
    icon, color = _SEVERITY_STYLE[event.severity]
    click.secho(f"   {event.timestamp}  {icon} {event.message}", fg=color)
