"""Command dispatcher for admin-revoker.

Each command loads the --config file, builds the application, runs one
orchestrator operation and resolves it:

  serial-revoke / reg-revoke  inside one store transaction (commit or rollback)
  auth-revoke                 no transaction
  list-reasons                no configuration, store or network access

Any failure prints ``<context>: <ERROR_CODE>: <message>`` to stderr and
exits with status 1.

The application is built by ``build_application`` unless ``ctx.obj`` carries
an ``app_factory`` with the same signature. Embedding callers, and the unit
tests, use it to run the commands against their own collaborators while
keeping config loading and exit-code handling intact.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import click

from admin_revoker import __version__
from admin_revoker.config import AppSettings, load_settings
from admin_revoker.domain.reasons import all_reasons
from admin_revoker.main import Application, build_application, configure_structlog
from admin_revoker.railway import Result

AppFactory = Callable[[AppSettings], Result[Application]]

config_option = click.option(
    "--config",
    "config_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File path to the configuration file for this service.",
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="admin-revoker")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Revoke certificates and authorizations on operator command."""
    ctx.ensure_object(dict)


def _exit_on_failure(result: Result[Any], context: str) -> None:
    if result.is_failure():
        click.echo(f"{context}: {result.error()}", err=True)
        raise click.exceptions.Exit(1)


@contextmanager
def _application(ctx: click.Context, config_path: Path) -> Iterator[Application]:
    settings_result = load_settings(config_path)
    _exit_on_failure(settings_result, "Reading config file into config structure")
    settings = settings_result.value()
    configure_structlog(settings.log_level, settings.log_format)

    factory: AppFactory = ctx.obj.get("app_factory", build_application)
    app_result = factory(settings)
    _exit_on_failure(app_result, "Couldn't set up revoker")
    app = app_result.value()
    try:
        yield app
    finally:
        app.close()


@cli.command("serial-revoke")
@config_option
@click.argument("serial")
@click.argument("reason_code", type=int)
@click.pass_context
def serial_revoke(ctx: click.Context, config_path: Path, serial: str, reason_code: int) -> None:
    """Revoke a single certificate by the hex serial number."""
    with _application(ctx, config_path) as app:
        result = app.transactions.execute(
            lambda tx: app.orchestrator.revoke_by_serial(
                serial, reason_code, app.admin_identity, tx
            )
        )
        _exit_on_failure(result, "Couldn't revoke certificate")
        revoked = result.value()
        click.echo(f"Revoked certificate {revoked.serial} with reason '{revoked.reason.label}'")


@cli.command("reg-revoke")
@config_option
@click.argument("registration_id", type=int)
@click.argument("reason_code", type=int)
@click.pass_context
def reg_revoke(
    ctx: click.Context, config_path: Path, registration_id: int, reason_code: int
) -> None:
    """Revoke all certificates associated with a registration ID."""
    with _application(ctx, config_path) as app:
        result = app.transactions.execute(
            lambda tx: app.orchestrator.revoke_by_registration(
                registration_id, reason_code, app.admin_identity, tx
            )
        )
        _exit_on_failure(result, "Couldn't revoke certificate")
        outcome = result.value()
        click.echo(
            f"Revoked {len(outcome.revoked_serials)} certificates "
            f"for registration {outcome.registration_id}"
        )


@cli.command("list-reasons")
@config_option
def list_reasons(config_path: Path) -> None:
    """List all revocation reason codes."""
    click.echo("Revocation reason codes\n-----------------------\n")
    for code, label in all_reasons():
        click.echo(f"{code}: {label}")


@cli.command("auth-revoke")
@config_option
@click.argument("domain")
@click.pass_context
def auth_revoke(ctx: click.Context, config_path: Path, domain: str) -> None:
    """Revoke all pending/valid authorizations for a domain."""
    with _application(ctx, config_path) as app:
        result = app.orchestrator.revoke_authorizations_by_domain(domain)
        _exit_on_failure(result, f"Failed to revoke authorizations for {domain}")
        counts = result.value()
        click.echo(
            f"Revoked {counts.pending} pending authorizations "
            f"and {counts.valid} final authorizations"
        )
