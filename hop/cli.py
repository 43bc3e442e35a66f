from __future__ import annotations

import contextlib
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import typer
from InquirerPy import inquirer
from InquirerPy.base.control import Choice
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .errors import DuplicateAliasError, DuplicateNameError, HopError, InvalidEntryError, NotFoundError
from .models import Server, ServerPatch, describe_validation_error
from .registry import Registry
from .ssh import DEFAULT_PROGRAM, build_command, check_server_availability, launch
from .storage import ConfigStore, default_config_path, read_servers, write_servers


class OrderCommands(typer.core.TyperGroup):
    """Custom group to sort commands alphabetically in help."""

    def list_commands(self, ctx):
        return sorted(super().list_commands(ctx))


app = typer.Typer(
    help="hop: bookmark SSH servers and connect to them by name or alias.",
    cls=OrderCommands,
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()
err_console = Console(stderr=True)


@dataclass
class Runtime:
    store: ConfigStore
    ssh_program: str = DEFAULT_PROGRAM


@app.callback()
def root(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None, "--config", envvar="HOP_CONFIG", help="Path to servers file", show_default=False
    ),
    ssh_program: str = typer.Option(DEFAULT_PROGRAM, "--ssh-program", envvar="HOP_SSH", help="SSH client to run"),
):
    """Resolve the config location once for every command."""
    ctx.obj = Runtime(store=ConfigStore(config or default_config_path()), ssh_program=ssh_program)


def _runtime(ctx: typer.Context) -> Runtime:
    return ctx.obj


@contextlib.contextmanager
def _reported_errors() -> Iterator[None]:
    """Print domain errors and exit with their code."""
    try:
        yield
    except HopError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code)


def _resolve(registry: Registry, identifier: str) -> Server:
    try:
        return registry.resolve(identifier)
    except NotFoundError:
        candidates = registry.suggest(identifier)
        if candidates:
            names = ", ".join(s.name for s in candidates)
            err_console.print(f"[dim]Did you mean: {escape(names)}?[/dim]")
        raise


def _select_server(registry: Registry, message: str) -> Server:
    """Let the user pick a server interactively."""
    if not len(registry):
        console.print("[yellow]No servers found. Add one: hop add[/yellow]")
        raise typer.Exit(1)
    try:
        name = inquirer.select(
            message=message,
            choices=[Choice(value=s.name, name=s.display()) for s in registry],
            cycle=True,
            vi_mode=False,
            instruction="↑↓ navigate",
        ).execute()
    except KeyboardInterrupt:
        console.print("\n[dim]Cancelled.[/dim]")
        raise typer.Exit(0)
    return registry.resolve(name)


def _print_servers(servers: tuple[Server, ...], verbose: bool = False, program: str = DEFAULT_PROGRAM) -> None:
    """Print servers table."""
    table = Table(title="Servers")
    table.add_column("Name", style="bold")
    table.add_column("Alias", style="cyan")
    table.add_column("Connection")
    if verbose:
        table.add_column("Command", style="dim")

    for s in servers:
        row = [escape(s.name), escape(s.alias or "-"), escape(f"{s.destination()}:{s.port}")]
        if verbose:
            row.append(escape(str(build_command(s, program))))
        table.add_row(*row)

    console.print(table)


@app.command("list", help="Show list of servers. Alias: ls")
@app.command("ls", hidden=True)
def list_servers(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show the ssh command for each server"),
) -> None:
    """Show list of servers."""
    rt = _runtime(ctx)
    with _reported_errors():
        servers = rt.store.load().list()
    if not servers:
        console.print("[yellow]No servers found. Add one: hop add[/yellow]")
        return
    _print_servers(servers, verbose=verbose, program=rt.ssh_program)


@app.command("add", help="Add a new server. Alias: a")
@app.command("a", hidden=True)
def add_server(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Unique server name"),
    user: str = typer.Option(..., "--user", "-u", prompt=True, help="Login user"),
    host: str = typer.Option(..., "--host", "-H", prompt=True, help="Hostname or IP address"),
    port: int = typer.Option(22, "--port", "-p", help="SSH port"),
    alias: str | None = typer.Option(None, "--alias", "-a", help="Short alias"),
):
    """Add a new server."""
    with _reported_errors():
        try:
            server = Server(name=name, alias=alias, user=user, host=host, port=port)
        except ValidationError as e:
            raise InvalidEntryError(describe_validation_error(e)) from e
        registry = _runtime(ctx).store.load()
        registry.add(server)
    console.print(f"[green]Added:[/green] {escape(server.display())}")


@app.command("remove", help="Remove a server. Alias: rm")
@app.command("rm", hidden=True)
def remove(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Server name or alias"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Remove a server."""
    with _reported_errors():
        registry = _runtime(ctx).store.load()
        srv = _resolve(registry, identifier)

        try:
            if not yes and not typer.confirm(f"Remove '{srv.name}' ({srv.destination()}:{srv.port})?"):
                raise typer.Exit(1)
        except (KeyboardInterrupt, typer.Abort):
            console.print("\n[dim]Cancelled.[/dim]")
            raise typer.Exit(0)

        registry.remove(srv.name)
    console.print(f"[green]Removed:[/green] {escape(srv.display())}")


@app.command("edit", help="Edit a server. Alias: e")
@app.command("e", hidden=True)
def edit(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Server name or alias"),
    name: str | None = typer.Option(None, "--name", help="New name"),
    alias: str | None = typer.Option(None, "--alias", "-a", help="New alias"),
    no_alias: bool = typer.Option(False, "--no-alias", help="Remove the alias"),
    user: str | None = typer.Option(None, "--user", "-u", help="New login user"),
    host: str | None = typer.Option(None, "--host", "-H", help="New hostname or IP address"),
    port: int | None = typer.Option(None, "--port", "-p", help="New SSH port"),
):
    """Edit a server. Only the given fields change."""
    if alias is not None and no_alias:
        raise typer.BadParameter("--alias and --no-alias are mutually exclusive")

    fields = {"name": name, "alias": alias, "user": user, "host": host, "port": port}
    changes = {k: v for k, v in fields.items() if v is not None}
    if no_alias:
        changes["alias"] = None
    if not changes:
        console.print("[yellow]No changes specified. Use --name, --alias, --user, --host or --port.[/yellow]")
        return

    with _reported_errors():
        registry = _runtime(ctx).store.load()
        _resolve(registry, identifier)
        srv = registry.edit(identifier, ServerPatch(**changes))
    console.print(f"[green]Saved:[/green] {escape(srv.display())}")


@app.command("connect", help="Connect to a server. Alias: c")
@app.command("c", hidden=True)
def connect_cmd(
    ctx: typer.Context,
    identifier: str | None = typer.Argument(None, help="Server name or alias (optional)"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Print the ssh command without running it"),
):
    """Connect to a server."""
    rt = _runtime(ctx)
    with _reported_errors():
        registry = rt.store.load()
        if identifier is None:
            srv = _select_server(registry, "Select server to connect:")
        else:
            srv = _resolve(registry, identifier)

        spec = build_command(srv, rt.ssh_program)
        if dry_run:
            console.print(str(spec), markup=False, highlight=False, soft_wrap=True)
            return
        console.print(f"[cyan]SSH: {escape(str(spec))}[/cyan]")
        rc = launch(spec)
    raise typer.Exit(rc)


@app.command("ping", help="Check server availability. Alias: p")
@app.command("p", hidden=True)
def ping_server(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="Server name or alias"),
    timeout: float = typer.Option(3.0, "--timeout", "-t", help="Timeout in seconds"),
):
    """Check if server is reachable on its SSH port."""
    with _reported_errors():
        srv = _resolve(_runtime(ctx).store.load(), identifier)

    console.print(f"Checking [bold]{escape(srv.name)}[/bold] ({escape(srv.host)}:{srv.port})...")
    is_available, message, response_time = check_server_availability(srv, timeout=timeout)

    connection = escape(f"{srv.destination()}:{srv.port}")
    if is_available:
        console.print(f"{connection} - [green]{message}[/green] [dim]({response_time:.0f}ms)[/dim]")
    else:
        console.print(f"{connection} - [red]{escape(message)}[/red] [dim]({response_time:.0f}ms)[/dim]")
        raise typer.Exit(1)


@app.command("config")
def config_cmd(
    ctx: typer.Context,
    path: bool = typer.Option(False, "--path", help="Only print the config file path"),
    init: bool = typer.Option(False, "--init", help="Create an empty config file if missing"),
):
    """Show or initialize the configuration file."""
    store = _runtime(ctx).store
    with _reported_errors():
        if init:
            if store.init():
                console.print(f"[green]Created:[/green] {escape(str(store.path))}")
            else:
                console.print(f"[yellow]Already exists:[/yellow] {escape(str(store.path))}")
        if path:
            console.print(str(store.path), markup=False, highlight=False, soft_wrap=True)
            return
        if init:
            return

        console.print(f"Configuration file: {escape(str(store.path))}", highlight=False, soft_wrap=True)
        if store.exists():
            console.print(f"Servers configured: {len(store.load())}")
        else:
            console.print("[yellow]Configuration file does not exist. Use --init to create it.[/yellow]")


@app.command("export", help="Export servers to JSON file. Alias: ex")
@app.command("ex", hidden=True)
def export_servers(
    ctx: typer.Context,
    output: Path = typer.Argument(..., help="Output file path (e.g., backup.json)"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Overwrite without asking"),
):
    """Export servers configuration to JSON file."""
    with _reported_errors():
        servers = _runtime(ctx).store.load().list()

    if not servers:
        console.print("[yellow]No servers to export.[/yellow]")
        raise typer.Exit(1)

    if output.exists() and not yes:
        try:
            if not typer.confirm(f"File '{output}' already exists. Overwrite?", default=False):
                console.print("[dim]Cancelled.[/dim]")
                raise typer.Exit(0)
        except (KeyboardInterrupt, typer.Abort):
            console.print("\n[dim]Cancelled.[/dim]")
            raise typer.Exit(0)

    with _reported_errors():
        write_servers(output, servers, exported_from="hop")
    console.print(f"[green]✓ Exported {len(servers)} server(s) to:[/green] {escape(str(output.absolute()))}")


@app.command("import", help="Import servers from JSON file. Alias: im")
@app.command("im", hidden=True)
def import_servers(
    ctx: typer.Context,
    input_file: Path = typer.Argument(..., help="Input file path (e.g., backup.json)"),
    merge: bool = typer.Option(False, "--merge", "-m", help="Keep existing servers and add new ones"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
):
    """Import servers configuration from JSON file."""
    if not input_file.is_file():
        err_console.print(f"[red]File not found:[/red] {escape(str(input_file))}")
        raise typer.Exit(1)

    store = _runtime(ctx).store
    with _reported_errors():
        imported = read_servers(input_file)
        if not imported:
            console.print("[yellow]No servers found in import file.[/yellow]")
            raise typer.Exit(1)

        console.print(f"\n[bold]Found {len(imported)} server(s) to import:[/bold]")
        for srv in imported:
            console.print(f"  • {escape(srv.display())}")

        existing = store.load()
        if merge:
            console.print("\n[cyan]Merge mode:[/cyan] Existing servers will be kept.\n")
        elif len(existing):
            console.print(f"\n[red]Replace mode:[/red] {len(existing)} existing server(s) will be deleted!\n")

        try:
            if not yes and not typer.confirm("Continue with import?", default=False):
                console.print("[dim]Cancelled.[/dim]")
                raise typer.Exit(0)
        except (KeyboardInterrupt, typer.Abort):
            console.print("\n[dim]Cancelled.[/dim]")
            raise typer.Exit(0)

        result = Registry(existing.list()) if merge else Registry()
        added = 0
        for srv in imported:
            try:
                result.add(srv)
                added += 1
            except (DuplicateNameError, DuplicateAliasError) as e:
                console.print(f"[yellow]Skipped:[/yellow] {escape(str(e))}")

        store.save(result)
    console.print(f"[green]✓ Imported {added} server(s).[/green] Total servers: {len(result)}")


def main():
    app()


if __name__ == "__main__":
    main()
