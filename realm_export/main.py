"""
Keycloak Realm Exporter — CLI Entry Point

Usage:
    realm-export export realmNames=acme,demo keycloakApiUri=https://kc/auth ...
    realm-export export --dry-run realmName=acme ...
    realm-export check-config [KEY=VALUE ...]
    realm-export properties

Properties are read from files in the secrets directory, then environment
variables, then ``key=value`` arguments, later sources winning.
"""

from __future__ import annotations

# Load .env file FIRST, before anything reads the environment
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import json
import logging
import sys
from typing import Tuple

import click

from .adapters.memory import InMemorySecretStore
from .config.loader import create_config, resolve_properties
from .config.properties import SECRETS_PATH, ConfigurationProperty
from .config.validator import ConfigValidator
from .engine.orchestrator import build_orchestrator
from .errors import ConfigError
from .logging_config import setup_logging

logger = logging.getLogger(__name__)

setup_logging()


def print_help(secrets_path: str) -> None:
    """Print where properties come from and the property catalogue."""
    click.echo("")
    click.echo("Keycloak realm cluster exporter")
    click.echo("Properties loaded from: ")
    click.echo(f" - files located in path: {secrets_path}")
    click.echo(" - env variables")
    click.echo(" - key=value run arguments")
    click.echo("")
    click.echo("Available configuration properties:")
    click.echo("")
    for prop in ConfigurationProperty:
        click.echo(f"{prop.property_name}: \t{prop.description}")


secrets_path_option = click.option(
    "--secrets-path",
    default=SECRETS_PATH,
    show_default=True,
    type=click.Path(file_okay=False, path_type=str),
    help="Directory of mounted property files",
)


@click.group()
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Keycloak Realm Exporter — publish realm exports as Kubernetes secrets."""
    ctx.ensure_object(dict)


@cli.command("export")
@click.argument("properties", nargs=-1, type=click.UNPROCESSED)
@secrets_path_option
@click.option("--dry-run", is_flag=True, help="Keep secrets in memory instead of writing to the cluster")
@click.pass_context
def export_realms(
    ctx: click.Context,
    properties: Tuple[str, ...],
    secrets_path: str,
    dry_run: bool,
) -> None:
    """Export the configured realms and publish them as secrets."""
    resolved = resolve_properties(properties, secrets_path=Path(secrets_path))
    if ConfigurationProperty.HELP.property_name in resolved:
        print_help(secrets_path)
        ctx.exit(0)

    try:
        config = create_config(resolved)
    except ConfigError as e:
        click.secho(f"✗ {e.message}", fg="red", err=True)
        ctx.exit(1)

    setup_logging(debug=config.debug)
    logger.debug(f"Config: {config!r}")

    store = InMemorySecretStore() if dry_run else None
    try:
        orchestrator = build_orchestrator(config, store=store)
    except ConfigError as e:
        click.secho(f"✗ {e.message}", fg="red", err=True)
        ctx.exit(1)

    with orchestrator:
        result = orchestrator.run()

    click.echo("")
    click.echo(f"  Run ID:    {result.run_id}")
    click.echo(f"  Exported:  {', '.join(result.succeeded) or '-'}")
    if result.failed:
        click.secho(f"  Failed:    {', '.join(result.failed_realms)}", fg="red", bold=True)
    else:
        click.secho("✓ All realms exported", fg="green")
    if dry_run:
        click.secho("\n(Dry run — nothing written to the cluster)", fg="cyan")

    ctx.exit(result.exit_code)


@cli.command("properties")
@secrets_path_option
def properties_cmd(secrets_path: str) -> None:
    """List the recognised configuration properties."""
    print_help(secrets_path)


@cli.command("check-config")
@click.argument("properties", nargs=-1, type=click.UNPROCESSED)
@secrets_path_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def check_config(
    ctx: click.Context,
    properties: Tuple[str, ...],
    secrets_path: str,
    as_json: bool,
) -> None:
    """Resolve and validate the configuration without network calls."""
    resolved = resolve_properties(properties, secrets_path=Path(secrets_path))
    status = ConfigValidator(resolved).validate()

    if as_json:
        click.echo(json.dumps(status.to_dict(), indent=2))
        ctx.exit(0 if status.valid else 1)

    click.echo("\n📋 Resolved properties\n")
    for name, value in status.present.items():
        click.echo(f"  {name} = {value}")
    if not status.present:
        click.echo("  (none)")

    if status.missing:
        click.echo("")
        for name in status.missing:
            click.secho(f"  ✗ missing: {name}", fg="red")

    click.echo("")
    if status.valid:
        realms = ", ".join(status.config.realm_names)
        click.secho(f"✓ Configuration valid — realms: {realms}", fg="green", bold=True)
        ctx.exit(0)

    click.secho(f"✗ {status.error}", fg="red", bold=True)
    ctx.exit(1)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    sys.exit(main())
