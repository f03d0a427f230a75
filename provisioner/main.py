"""
masmide provisioner — CLI entrypoint.

Usage:
    masmide-provision --help
    masmide-provision install --tag v0.2.0
    masmide-provision install --source-dir ./masmide-v0.2.0-linux-x86_64
    masmide-provision verify
    masmide-provision uninstall
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from provisioner import __version__
from provisioner.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="masmide-provision")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--settings",
    "-s",
    "settings_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to provision.yml (default: $MASMIDE_PROVISION_CONFIG or the user config dir).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    settings_path: str | None,
) -> None:
    """Install, verify and remove masmide and its MASM toolchain."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["settings_path"] = Path(settings_path) if settings_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("MASMIDE_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("MASMIDE_LOG_FILE"),
        log_file_level=os.environ.get("MASMIDE_LOG_FILE_LEVEL"),
    )


# ── Shared helpers ──────────────────────────────────────────────


def load_settings_or_exit(ctx: click.Context):
    """Load installer settings, or print the error and exit 1."""
    from provisioner.core.config.loader import load_settings
    from provisioner.core.errors import ConfigError

    try:
        return load_settings(ctx.obj.get("settings_path"))
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)


def _fail(error: Exception) -> None:
    click.secho(f"\n❌ {error}", fg="red", bold=True)
    sys.exit(1)


def _print_warnings(warnings) -> None:
    if not warnings:
        return
    click.echo()
    click.secho(f"⚠️  Completed with {len(warnings)} warning(s):", fg="yellow", bold=True)
    for warn in warnings:
        click.echo(f"   • {warn}")
        if warn.command:
            click.echo(f"     $ {warn.command}")
        if warn.output:
            for line in warn.output.strip().splitlines()[-5:]:
                click.echo(f"     │ {line}")


def _print_report(report) -> None:
    click.secho("   Toolchain:", fg="white", bold=True)
    for name, status in report.capabilities.items():
        mark = click.style("✓", fg="green") if status.present else click.style("✗", fg="red")
        click.echo(f"     {mark} {name:<18} {status.detail}")
    if report.artifacts:
        click.secho("   Installed files:", fg="white", bold=True)
        for name, status in report.artifacts.items():
            mark = click.style("✓", fg="green") if status.present else click.style("·", fg="yellow")
            click.echo(f"     {mark} {name:<18} {status.detail}")


# ── Commands ────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--source-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Install from a local release directory or source checkout.",
)
@click.option("--release", "from_release", is_flag=True, help="Download the release (default).")
@click.option("--tag", "version", default=None, help="Release tag to install (default: latest).")
@click.option(
    "--allow-source-fallback",
    is_flag=True,
    help="Build dependencies from source when packages fail or are unavailable.",
)
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print the run summary as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    source_dir: Path | None,
    from_release: bool,
    version: str | None,
    allow_source_fallback: bool,
    as_json: bool,
) -> None:
    """Install masmide, its toolchain and the Irvine32 libraries."""
    from provisioner.core.errors import ProvisionError
    from provisioner.core.services.provision import (
        InstallRequest,
        InteractiveConfirmer,
        run_install,
    )

    if source_dir is not None and from_release:
        click.secho("❌ --source-dir and --release are mutually exclusive", fg="red")
        sys.exit(1)

    settings = load_settings_or_exit(ctx)
    quiet = ctx.obj.get("quiet", False) or as_json

    def on_step(message: str) -> None:
        if not quiet:
            click.secho(f"==> {message}", fg="cyan")

    request = InstallRequest(
        source_dir=source_dir,
        version=version,
        allow_source_fallback=True if allow_source_fallback else None,
    )
    try:
        outcome = run_install(
            request,
            settings=settings,
            confirmer=InteractiveConfirmer(),
            on_step=on_step,
        )
    except ProvisionError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
        return

    if outcome.cancelled:
        click.secho("Installation cancelled.", fg="yellow")
        return

    click.echo()
    if outcome.config is not None:
        if outcome.config.written:
            click.echo(f"   📝 Config written to {outcome.config.path}")
        else:
            click.echo(f"   📝 Existing config kept at {outcome.config.path}")
    if outcome.report is not None:
        _print_report(outcome.report)
    _print_warnings(outcome.warnings)

    click.echo()
    if outcome.report is not None and outcome.report.all_satisfied:
        click.secho("✅ masmide installed", fg="green", bold=True)
    else:
        click.secho("✅ masmide installed (toolchain incomplete, see warnings)", fg="yellow", bold=True)
    click.echo("   Run 'masmide' to start the IDE.")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print the removal summary as JSON.")
@click.pass_context
def uninstall(ctx: click.Context, as_json: bool) -> None:
    """Remove masmide. System packages are never removed."""
    from provisioner.core.errors import ProvisionError
    from provisioner.core.services.provision import InteractiveConfirmer, run_uninstall

    settings = load_settings_or_exit(ctx)
    try:
        outcome = run_uninstall(settings=settings, confirmer=InteractiveConfirmer())
    except ProvisionError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2))
        return

    if not outcome.steps:
        click.echo("Nothing to remove: masmide is not installed.")
    elif outcome.cancelled:
        click.secho("Uninstallation cancelled.", fg="yellow")
        return
    elif outcome.result is not None:
        for path in outcome.result.removed:
            click.echo(f"   🗑  {path}")
        _print_warnings(outcome.result.warnings)
        click.secho("✅ masmide removed", fg="green", bold=True)

    if outcome.hints:
        click.echo()
        click.echo("System packages were left in place. To remove them manually:")
        for hint in outcome.hints:
            click.echo(f"   {hint}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def verify(ctx: click.Context, as_json: bool) -> None:
    """Check the toolchain and installed files. Exit 1 if anything is missing."""
    from provisioner.core.services.provision import audit, toolchain_capabilities

    settings = load_settings_or_exit(ctx)
    caps = toolchain_capabilities(
        assembler_repo=settings.assembler_repo,
        assembler_ref=settings.assembler_ref,
    )
    report = audit(caps, settings=settings, timeout=settings.probe_timeout)

    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json"), indent=2))
        sys.exit(0 if report.all_satisfied else 1)
        return

    _print_report(report)
    click.echo()
    if report.all_satisfied:
        click.secho("✅ All toolchain components present", fg="green", bold=True)
    else:
        click.secho(f"❌ Missing: {', '.join(report.missing)}", fg="red", bold=True)
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def detect(as_json: bool) -> None:
    """Show the detected distribution and architecture."""
    from provisioner.core.errors import ProvisionError
    from provisioner.core.services.provision import probe_environment

    try:
        profile = probe_environment()
    except ProvisionError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(profile.model_dump(), indent=2))
        return

    click.secho(f"🐧 {profile.name}", fg="cyan", bold=True)
    click.echo(f"   ID:              {profile.id}")
    click.echo(f"   Family:          {profile.family}")
    click.echo(f"   Package manager: {profile.package_manager}")
    click.echo(f"   Architecture:    {profile.arch}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--allow-source-fallback", is_flag=True, help="Plan opt-in source builds.")
@click.pass_context
def plan(ctx: click.Context, as_json: bool, allow_source_fallback: bool) -> None:
    """Show what install would do for missing dependencies, without doing it."""
    from provisioner.core.errors import ProvisionError
    from provisioner.core.services.provision import (
        probe_all,
        probe_environment,
        resolve,
        toolchain_capabilities,
    )

    settings = load_settings_or_exit(ctx)
    allow_source_fallback = allow_source_fallback or settings.allow_source_fallback

    try:
        profile = probe_environment()
    except ProvisionError as e:
        _fail(e)
        return

    caps = toolchain_capabilities(
        assembler_repo=settings.assembler_repo,
        assembler_ref=settings.assembler_ref,
    )
    statuses = probe_all(caps, timeout=settings.probe_timeout)
    missing = [c for c in caps if not statuses[c.name].present]
    install_plan = resolve(missing, profile, allow_source_fallback=allow_source_fallback)

    if as_json:
        click.echo(json.dumps(install_plan.model_dump(mode="json"), indent=2))
        return

    if install_plan.empty and not install_plan.unresolved:
        click.secho("✅ Nothing to do: all dependencies present", fg="green")
        return

    click.secho(f"📋 Plan for {profile.name} ({profile.family})", fg="cyan", bold=True)
    for i, action in enumerate(install_plan.actions, 1):
        sudo = " [sudo]" if action.needs_sudo else ""
        click.echo(f"   {i}. {action.label}{sudo}")
        if action.command:
            click.echo(f"      $ {' '.join(action.command)}")
    builds = install_plan.source_builds
    if builds:
        click.echo(f"   ℹ️  {len(builds)} source build(s): these need git, make and gcc")
    for item in install_plan.unresolved:
        click.secho(f"   ⚠️  {item.name}: manual — unresolved ({item.reason})", fg="yellow")
        if item.manual_hint:
            click.echo(f"      {item.manual_hint}")


# ── Register sub-groups ─────────────────────────────────────────

from provisioner.ui.cli.config import config  # noqa: E402

cli.add_command(config)


if __name__ == "__main__":
    cli()
