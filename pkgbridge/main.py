"""
pkgbridge — CLI entrypoint.

Usage:
    pkgbridge --help
    pkgbridge search "visual studio code"
    pkgbridge script Microsoft.VisualStudioCode --query code -o scripts/
    pkgbridge deploy Google.Chrome --query chrome --group "All Devices"
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from pkgbridge import __version__
from pkgbridge.core.observability.logging_config import setup_from_flags
from pkgbridge.ui.cli.common import SOURCE_CHOICE, echo_log_event, load_runtime, parse_source


@click.group()
@click.version_option(version=__version__, prog_name="pkgbridge")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to pkgbridge.yml (default: auto-detect).",
)
@click.option("--mock", is_flag=True, help="Use the built-in demo catalog instead of winget/choco.")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    mock: bool,
) -> None:
    """pkgbridge — find packages in winget/chocolatey and roll them out with Intune."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["mock"] = mock

    # ── Logging setup (once, at process start) ──────────────────
    setup_from_flags(debug=debug, verbose=verbose, quiet=quiet)


# ── Search ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("query")
@click.option(
    "--source", "-s", "sources", multiple=True, type=SOURCE_CHOICE,
    help="Catalog to search (repeatable; default: all configured).",
)
@click.option("--filter", "apply_filter", is_flag=True, help="Keep only rows whose name or id contains QUERY.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def search(
    ctx: click.Context,
    query: str,
    sources: tuple[str, ...],
    apply_filter: bool,
    as_json: bool,
) -> None:
    """Search winget and chocolatey for QUERY."""
    from pkgbridge.core.use_cases.search import search_packages

    runtime = load_runtime(ctx)
    selected = [parse_source(s) for s in sources] or None
    outcome = search_packages(runtime, query, sources=selected, apply_filter=apply_filter)

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
        sys.exit(0 if outcome.ok else 1)

    if not outcome.ok:
        click.secho(f"❌ {outcome.error}", fg="red")
        sys.exit(1)

    if not outcome.results:
        click.secho(f"No package found for '{outcome.query}'", fg="yellow")
        return

    click.secho(f"\n🔎 {len(outcome.results)} package(s) for '{outcome.query}'", fg="cyan", bold=True)
    for index, record in enumerate(outcome.results):
        color = "green" if record.source.is_primary else "blue"
        click.echo(f"   {index:>2}. ", nl=False)
        click.secho(f"[{record.source.value}]", fg=color, nl=False)
        click.echo(f" {record.name}  ({record.id})  v{record.version}")
        if ctx.obj.get("verbose") and record.publisher:
            click.echo(f"       publisher: {record.publisher}")
    click.echo()


# ── Script ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("package_id")
@click.option("--query", "-q", default=None, help="Search text (default: PACKAGE_ID).")
@click.option("--source", "-s", type=SOURCE_CHOICE, default=None, help="Only consider this catalog.")
@click.option(
    "--output", "-o", type=click.Path(), default=None,
    help="File or directory to save the script to (default: print it).",
)
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def script(
    ctx: click.Context,
    package_id: str,
    query: str | None,
    source: str | None,
    output: str | None,
    force: bool,
    as_json: bool,
) -> None:
    """Generate the Intune install script for PACKAGE_ID."""
    from pkgbridge.core.use_cases.script import build_script

    runtime = load_runtime(ctx)
    result = build_script(
        runtime,
        package_id,
        query=query,
        source=parse_source(source),
        output=Path(output) if output else None,
        overwrite=force,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    assert result.generated is not None  # guaranteed when ok
    if result.saved is None:
        click.echo(result.generated.content, nl=False)
        return

    if result.saved.cancelled:
        click.secho("⚠️  File exists, not overwritten (use --force)", fg="yellow")
        sys.exit(1)
    click.secho(f"✅ Script saved: {result.saved.path}", fg="green", bold=True)


# ── Deploy ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("package_id")
@click.option("--query", "-q", default=None, help="Search text (default: PACKAGE_ID).")
@click.option("--source", "-s", type=SOURCE_CHOICE, default=None, help="Only consider this catalog.")
@click.option("--group", "-g", "groups", multiple=True, help="Target group (repeatable).")
@click.option("--silent/--interactive", default=None, help="Silent install (default: silent).")
@click.option("--auto-update/--no-auto-update", default=None, help="Keep the app updated.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def deploy(
    ctx: click.Context,
    package_id: str,
    query: str | None,
    source: str | None,
    groups: tuple[str, ...],
    silent: bool | None,
    auto_update: bool | None,
    as_json: bool,
) -> None:
    """Deploy PACKAGE_ID to Intune."""
    from pkgbridge.core.use_cases.deploy import deploy_package

    runtime = load_runtime(ctx)
    shown = 0

    def _progress(snapshot) -> None:  # type: ignore[no-untyped-def]
        nonlocal shown
        if as_json:
            return
        for event in snapshot.logs[shown:]:
            echo_log_event(event)
        shown = len(snapshot.logs)
        if snapshot.stages and not ctx.obj.get("quiet"):
            click.echo(f"   [{snapshot.progress_percent:>3}%]", err=True)

    if not as_json:
        click.secho(f"\n🚀 Deploying {package_id}", fg="cyan", bold=True)

    result = deploy_package(
        runtime,
        package_id,
        query=query,
        source=parse_source(source),
        target_groups=groups or None,
        on_progress=_progress,
        silent_install=silent,
        auto_update=auto_update,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    # logs emitted before the deploy stage (search, selection)
    if result.snapshot is not None:
        for event in result.snapshot.logs[shown:]:
            echo_log_event(event)

    if not result.ok:
        click.secho(f"\n❌ Deployment failed: {result.error}", fg="red", bold=True)
        sys.exit(1)

    click.secho("\n✅ Deployment succeeded", fg="green", bold=True)
    click.echo()


# ── History ─────────────────────────────────────────────────────────


@cli.command()
@click.option("-n", "count", default=20, type=int, help="Number of entries to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent deployment attempts."""
    runtime = load_runtime(ctx)
    entries = runtime.history.read_recent(count)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo("No deployments recorded yet.")
        return

    click.secho(f"\n📜 Last {len(entries)} deployment(s)", fg="cyan", bold=True)
    for entry in entries:
        color = "green" if entry.status == "succeeded" else "red"
        click.echo(f"   {entry.timestamp[:19]}  ", nl=False)
        click.secho(f"{entry.status:<9}", fg=color, nl=False)
        click.echo(f"  {entry.package_id} ({entry.source}) {entry.version}")
        if entry.error:
            click.echo(f"      {entry.failed_stage}: {entry.error}")
    click.echo()


# ── Config ──────────────────────────────────────────────────────────


@cli.group()
def config() -> None:
    """Configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate pkgbridge.yml."""
    from pkgbridge.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        if result.config_path:
            click.echo(f"   File: {result.config_path}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        sys.exit(1)


# ── Web API ─────────────────────────────────────────────────────────


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address.")
@click.option("--port", "-p", default=8000, type=int, help="Port number.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Start the JSON API server."""
    from pkgbridge.ui.web.server import create_app, run_server

    runtime = load_runtime(ctx)
    app = create_app(runtime=runtime)

    click.echo()
    click.secho("⚡ pkgbridge API", bold=True)
    click.echo(f"   Listening: http://{host}:{port}/api")
    if runtime.registry.mock_mode:
        click.secho("   Catalogs: mock (demo catalog)", fg="yellow")
    click.echo()

    run_server(app, host=host, port=port, debug=ctx.obj.get("debug", False))


# ── Register sub-command groups from pkgbridge/ui/cli/ ──────────────

from pkgbridge.ui.cli.credentials import credentials  # noqa: E402

cli.add_command(credentials)


if __name__ == "__main__":
    cli()
