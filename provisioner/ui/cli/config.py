"""
CLI commands for the editor configuration file.

Thin wrappers over ``provisioner.core.services.provision.execution.config_materializer``.

Usage::

    masmide-provision config path
    masmide-provision config show
    masmide-provision config show --json
"""

from __future__ import annotations

import json
import sys
import tomllib

import click


@click.group()
def config() -> None:
    """Editor configuration (config.toml)."""


@config.command("path")
@click.pass_context
def config_path(ctx: click.Context) -> None:
    """Print where config.toml lives."""
    from provisioner.main import load_settings_or_exit

    settings = load_settings_or_exit(ctx)
    click.echo(str(settings.config_file))


@config.command("show")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_show(ctx: click.Context, as_json: bool) -> None:
    """Show the current configuration (defaults included)."""
    from provisioner.core.services.provision.execution.config_materializer import load_config
    from provisioner.main import load_settings_or_exit

    settings = load_settings_or_exit(ctx)
    path = settings.config_file

    if not path.is_file():
        click.secho(f"❌ No config at {path}. Run 'masmide-provision install' first.", fg="red")
        sys.exit(1)

    try:
        document = load_config(path)
    except tomllib.TOMLDecodeError as e:
        click.secho(f"❌ Invalid TOML in {path}: {e}", fg="red")
        sys.exit(1)

    data = document.to_toml_dict()
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.secho(f"📝 {path}", fg="cyan", bold=True)
    click.echo(f"   theme_name = {data.get('theme_name')}")
    for section, values in data.items():
        if not isinstance(values, dict):
            continue
        click.secho(f"   [{section}]", fg="white", bold=True)
        for key, value in values.items():
            click.echo(f"     {key} = {value}")
