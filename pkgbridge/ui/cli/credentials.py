"""
CLI commands for the enterprise credential gate.

Thin wrappers over ``pkgbridge.core.services.credential_gate``.
Deployments are refused until ``credentials set`` has succeeded.
"""

from __future__ import annotations

import json
import sys

import click

from pkgbridge.ui.cli.common import load_runtime


@click.group()
def credentials() -> None:
    """Microsoft Graph app credentials used for deployments."""


@credentials.command("set")
@click.option("--tenant-id", prompt="Tenant ID", help="Azure AD tenant id.")
@click.option("--client-id", prompt="Client ID", help="App registration client id.")
@click.option(
    "--client-secret",
    prompt="Client secret",
    hide_input=True,
    help="App registration client secret.",
)
@click.pass_context
def set_credentials(ctx: click.Context, tenant_id: str, client_id: str, client_secret: str) -> None:
    """Store credentials and open the deployment gate."""
    from pkgbridge.core.models.deployment import Credentials

    runtime = load_runtime(ctx)
    result = runtime.gate.set(Credentials(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
    ))

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    click.secho("✅ Credentials saved: deployments enabled", fg="green", bold=True)
    click.echo(f"   Tenant: {tenant_id.strip()}")


@credentials.command("status")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def credentials_status(ctx: click.Context, as_json: bool) -> None:
    """Show whether credentials are on file."""
    runtime = load_runtime(ctx)
    status = runtime.gate.status()

    if as_json:
        click.echo(json.dumps(status, indent=2))
        return

    if status["ready"]:
        click.secho("🔓 Credentials on file", fg="green", bold=True)
        click.echo(f"   Tenant: {status['tenant_id']}")
        click.echo(f"   Client: {status['client_id']}")
    else:
        click.secho("🔒 No credentials: deployments are blocked", fg="yellow")
        click.echo("   Run: pkgbridge credentials set")


@credentials.command("clear")
@click.confirmation_option(prompt="Remove stored credentials?")
@click.pass_context
def clear_credentials(ctx: click.Context) -> None:
    """Remove stored credentials and close the gate."""
    runtime = load_runtime(ctx)
    runtime.gate.clear()
    click.secho("✅ Credentials removed", fg="green")
