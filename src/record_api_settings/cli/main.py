"""CLI entry point for record-api-settings.

Invoked as::

    recapi [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m record_api_settings.cli.main

Commands
--------
- init        Write an empty configuration document
- list        List every Record API in the document
- show        Show the Record API for one table or view
- enable      Enable or update the Record API for a table or view
- disable     Remove every Record API for a table or view
- check-rule  Validate an access rule expression
- version     Show version information
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from record_api_settings.config.document import find_record_api, list_record_apis_for
from record_api_settings.config.loader import ConfigLoader
from record_api_settings.config.models import (
    Config,
    ConflictResolutionStrategy,
    RecordApiConfig,
    conflict_strategy_label,
)
from record_api_settings.config.store import YamlConfigStore
from record_api_settings.errors import ConfigStoreError, RecordApiError
from record_api_settings.permissions.flags import (
    PermissionFlag,
    Resource,
    ResourceKind,
)
from record_api_settings.rules.validator import (
    AccessRuleKind,
    AccessRuleValidator,
    access_rules_for,
)
from record_api_settings.session.edit_session import EditSession

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("config.yaml")

_FLAG_CHOICE = click.Choice([f.value for f in PermissionFlag], case_sensitive=False)
_KIND_CHOICE = click.Choice([k.value for k in ResourceKind], case_sensitive=False)

_config_option = click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to the configuration document.",
)


def _format_flags(flags: frozenset[PermissionFlag]) -> str:
    return ", ".join(f.value for f in PermissionFlag if f in flags) or "-"


def _read_document(config_path: str) -> Config | None:
    try:
        return YamlConfigStore(config_path).get()
    except ConfigStoreError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="record-api-settings")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """Record API settings CLI: permissions, access rules and conflict handling."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from record_api_settings import __version__

    console.print(
        Panel(
            f"[bold]record-api-settings[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Access-control configuration for Record APIs.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# init
# ---------------------------------------------------------------------------


@cli.command(name="init")
@_config_option
@click.option("--force", is_flag=True, help="Overwrite an existing document.")
def init_command(config_path: str, force: bool) -> None:
    """Write an empty configuration document."""
    path = Path(config_path)
    if path.exists() and not force:
        err_console.print(f"[yellow]{path} already exists;[/yellow] use --force to overwrite.")
        sys.exit(1)

    try:
        YamlConfigStore(path).set(ConfigLoader().defaults())
    except ConfigStoreError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    console.print(f"[green]Initialised[/green] configuration document: [bold]{path}[/bold]")


# ---------------------------------------------------------------------------
# list / show
# ---------------------------------------------------------------------------


@cli.command(name="list")
@_config_option
def list_command(config_path: str) -> None:
    """List every Record API in the document."""
    document = _read_document(config_path)
    if document is None or not document.record_apis:
        console.print("[yellow]No record APIs configured.[/yellow]")
        return

    table = Table(title="Record APIs", box=box.SIMPLE)
    table.add_column("Name", style="cyan")
    table.add_column("Table", style="magenta")
    table.add_column("World")
    table.add_column("Authenticated")
    table.add_column("Conflict")
    table.add_column("Autofill")

    for api in document.record_apis:
        table.add_row(
            api.name,
            api.table_name,
            _format_flags(api.acl_world),
            _format_flags(api.acl_authenticated),
            conflict_strategy_label(api.conflict_resolution),
            "yes" if api.autofill_missing_user_id_columns else "no",
        )
    console.print(table)

    seen: dict[str, int] = {}
    for api in document.record_apis:
        seen[api.table_name] = seen.get(api.table_name, 0) + 1
    for table_name, count in seen.items():
        if count > 1:
            console.print(
                f"[yellow]Warning:[/yellow] {count} record APIs target "
                f"[bold]{table_name}[/bold]; lookups use the first."
            )


@cli.command(name="show")
@click.argument("table_name")
@_config_option
def show_command(table_name: str, config_path: str) -> None:
    """Show the Record API for TABLE_NAME."""
    document = _read_document(config_path)
    api = find_record_api(document, table_name)
    if api is None:
        console.print(f"[yellow]Record API not enabled for {table_name}.[/yellow]")
        sys.exit(1)

    lines = [
        f"Name: [cyan]{api.name}[/cyan]",
        f"Table: [magenta]{api.table_name}[/magenta]",
        f"World: {_format_flags(api.acl_world)}",
        f"Authenticated: {_format_flags(api.acl_authenticated)}",
        f"Conflict resolution: {conflict_strategy_label(api.conflict_resolution)}",
        f"Autofill missing user ids: {'yes' if api.autofill_missing_user_id_columns else 'no'}",
    ]
    for rule, expression in api.rules.items():
        if expression is not None:
            lines.append(f"{rule.value.capitalize()} access: {expression}")
    console.print(Panel("\n".join(lines), title="Record API", border_style="blue"))

    others = len(list_record_apis_for(document, table_name)) - 1
    if others > 0:
        console.print(f"[yellow]Warning:[/yellow] {others} more record API(s) target {table_name}.")


# ---------------------------------------------------------------------------
# enable / disable
# ---------------------------------------------------------------------------


def _parse_rules(raw_rules: tuple[str, ...]) -> dict[str, str]:
    parsed: dict[str, str] = {}
    for raw in raw_rules:
        kind, sep, expression = raw.partition("=")
        if not sep:
            raise click.BadParameter(f"expected KIND=EXPR, got {raw!r}", param_hint="--rule")
        try:
            rule = AccessRuleKind(kind.strip().lower())
        except ValueError:
            raise click.BadParameter(
                f"unknown rule kind {kind!r}", param_hint="--rule"
            ) from None
        parsed[rule.field_name] = expression.strip()
    return parsed


@cli.command(name="enable")
@click.argument("table_name")
@click.option("--kind", "-k", type=_KIND_CHOICE, default="table", show_default=True)
@click.option("--name", "-n", "api_name", default=None, help="API name (defaults to the table name).")
@click.option("--world", "-w", multiple=True, type=_FLAG_CHOICE, help="Flag for anonymous callers.")
@click.option("--authenticated", "-a", multiple=True, type=_FLAG_CHOICE, help="Flag for signed-in callers.")
@click.option("--rule", "-r", "raw_rules", multiple=True, help="Access rule as KIND=EXPR.")
@click.option(
    "--conflict",
    type=click.Choice(["undefined"] + [s.value for s in ConflictResolutionStrategy], case_sensitive=False),
    default=None,
    help="Conflict resolution strategy (tables only).",
)
@click.option("--autofill/--no-autofill", default=None, help="Autofill missing user id columns.")
@_config_option
def enable_command(
    table_name: str,
    kind: str,
    api_name: str | None,
    world: tuple[str, ...],
    authenticated: tuple[str, ...],
    raw_rules: tuple[str, ...],
    conflict: str | None,
    autofill: bool | None,
    config_path: str,
) -> None:
    """Enable or update the Record API for TABLE_NAME."""
    resource = Resource(table_name, ResourceKind.parse(kind))
    store = YamlConfigStore(config_path)

    changes: dict[str, object] = _parse_rules(raw_rules)
    if api_name is not None:
        changes["name"] = api_name
    if world:
        changes["acl_world"] = {PermissionFlag(f.lower()) for f in world}
    if authenticated:
        changes["acl_authenticated"] = {PermissionFlag(f.lower()) for f in authenticated}
    if conflict is not None:
        changes["conflict_resolution"] = conflict
    if autofill is not None:
        changes["autofill_missing_user_id_columns"] = autofill

    try:
        session = EditSession.open(resource, store)
        session.begin_edit()
        session.update(**changes)
    except RecordApiError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    for field_name, diagnostic in session.field_errors.items():
        err_console.print(f"[red]{field_name}:[/red] {diagnostic}")

    outcome = session.submit()
    if not outcome.ok:
        err_console.print(f"[red]Not saved:[/red] {outcome.error}")
        sys.exit(1)

    entry: RecordApiConfig | None = session.persisted
    assert entry is not None
    console.print(
        f"[green]Enabled[/green] record API [bold]{entry.name}[/bold] for {resource.kind.value} "
        f"[bold]{resource.name}[/bold]"
    )


@cli.command(name="disable")
@click.argument("table_name")
@click.option("--kind", "-k", type=_KIND_CHOICE, default="table", show_default=True)
@_config_option
def disable_command(table_name: str, kind: str, config_path: str) -> None:
    """Remove every Record API for TABLE_NAME."""
    resource = Resource(table_name, ResourceKind.parse(kind))
    try:
        session = EditSession.open(resource, YamlConfigStore(config_path))
    except RecordApiError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if session.persisted is None:
        console.print(f"[yellow]Record API not enabled for {table_name}.[/yellow]")
        sys.exit(1)

    outcome = session.disable()
    if not outcome.ok:
        err_console.print(f"[red]Not saved:[/red] {outcome.error}")
        sys.exit(1)
    console.print(f"[green]Disabled[/green] record API for [bold]{table_name}[/bold]")


# ---------------------------------------------------------------------------
# check-rule
# ---------------------------------------------------------------------------


@cli.command(name="check-rule")
@click.argument("rule_kind", type=click.Choice([k.value for k in AccessRuleKind], case_sensitive=False))
@click.argument("expression")
@click.option("--kind", "-k", type=_KIND_CHOICE, default="table", show_default=True)
def check_rule_command(rule_kind: str, expression: str, kind: str) -> None:
    """Validate EXPRESSION as a RULE_KIND access rule."""
    rule = AccessRuleKind(rule_kind.lower())
    resource_kind = ResourceKind.parse(kind)
    if rule not in access_rules_for(resource_kind):
        err_console.print(f"[red]INVALID[/red] {rule.value} rules do not apply to a {resource_kind.value}")
        sys.exit(1)

    result = AccessRuleValidator().validate(rule, expression)
    if result.valid:
        console.print(f"[green]VALID[/green] {rule.value} access rule")
        return
    err_console.print(f"[red]INVALID[/red] {result.diagnostic}")
    sys.exit(1)


if __name__ == "__main__":
    cli()
