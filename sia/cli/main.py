"""sia CLI - keep files in password-protected safes."""

from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from ..utils.logging import console

app = typer.Typer(
    name="sia",
    help="Encrypt files into named, password-protected safes.",
    no_args_is_help=True,
)


@app.callback()
def main_options(
    ctx: typer.Context,
    name: str = typer.Option(
        "default",
        "--name", "-n",
        envvar="SIA_SAFE",
        help="Name of the safe",
    ),
    password: Optional[str] = typer.Option(
        None,
        "--password", "-p",
        envvar="SIA_PASSWORD",
        help="Safe password (prompted for if omitted)",
    ),
    root_dir: Optional[Path] = typer.Option(
        None,
        "--root-dir",
        help="Directory holding the safes",
    ),
    in_place: Optional[bool] = typer.Option(
        None,
        "--in-place/--relocate",
        help="Close files next to the original instead of in the safe directory",
    ),
    portable: Optional[bool] = typer.Option(
        None,
        "--portable/--not-portable",
        help="Only accept files inside the safe directory",
    ),
    extension: Optional[str] = typer.Option(
        None,
        "--extension",
        help="Extension for files closed in place",
    ),
    iterations: Optional[int] = typer.Option(
        None,
        "--iterations",
        help="Key derivation iterations",
    ),
    buffer_bytes: Optional[int] = typer.Option(
        None,
        "--buffer-bytes",
        help="Buffer size for reading and writing files",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show what is being done",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Also write a detailed log to this file",
    ),
):
    """
    Options shared by all safe commands.

    Options that configure a safe only apply when the safe is created.
    """
    from ..utils.logging import setup_logging

    setup_logging("INFO" if verbose else "WARNING", log_file)

    options = {
        "root_dir": root_dir,
        "in_place": in_place,
        "portable": portable,
        "extension": extension,
        "digest_iterations": iterations,
        "buffer_bytes": buffer_bytes,
    }
    ctx.obj = {
        "name": name,
        "password": password,
        "options": {k: v for k, v in options.items() if v is not None},
    }


def _open_safe(ctx: typer.Context):
    """Build the Safe selected by the shared options, exiting on errors."""
    from ..exceptions import SiaError
    from ..safe import Safe

    password = ctx.obj["password"]
    if password is None:
        password = typer.prompt("Password", hide_input=True)

    try:
        return Safe(ctx.obj["name"], password, **ctx.obj["options"])
    except SiaError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _run(action, *args):
    """Run a safe operation, turning sia and file errors into exit code 1."""
    from ..exceptions import SiaError

    try:
        return action(*args)
    except (SiaError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def close(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., help="Files to close"),
):
    """
    Encrypt files into the safe.
    """
    safe = _open_safe(ctx)
    for file in files:
        _run(safe.close, file)
        console.print(f"[green]Closed[/green] {file}")


@app.command("open")
def open_files(
    ctx: typer.Context,
    files: list[Path] = typer.Argument(..., help="Files to open, as they were before closing"),
):
    """
    Restore files from the safe.
    """
    safe = _open_safe(ctx)
    for file in files:
        _run(safe.open, file)
        console.print(f"[green]Opened[/green] {file}")


@app.command()
def empty(ctx: typer.Context):
    """
    Open every closed file in the safe.
    """
    safe = _open_safe(ctx)
    opened = _run(safe.empty)
    console.print(f"Opened {len(opened)} file(s)")


@app.command()
def fill(ctx: typer.Context):
    """
    Close every open file in the safe.
    """
    safe = _open_safe(ctx)
    closed = _run(safe.fill)
    console.print(f"Closed {len(closed)} file(s)")


@app.command("list")
def list_files(ctx: typer.Context):
    """
    Show the files tracked by the safe.
    """
    safe = _open_safe(ctx)
    files = _run(lambda: safe.files)

    if not files:
        console.print(f"Safe '{safe.name}' has no files")
        return

    table = Table(title=f"Safe: {safe.name}")
    table.add_column("File")
    table.add_column("State")
    table.add_column("Last closed")
    table.add_column("Last opened")

    def when(value):
        return value.strftime("%Y-%m-%d %H:%M") if value else "-"

    for path, entry in sorted(files.items()):
        state = "[red]closed[/red]" if entry.safe else "[green]open[/green]"
        table.add_row(path, state, when(entry.last_closed), when(entry.last_opened))

    console.print(table)


@app.command()
def delete(
    ctx: typer.Context,
    yes: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Do not ask for confirmation",
    ),
):
    """
    Delete the safe. Closed files are lost, open files are kept.
    """
    safe = _open_safe(ctx)
    closed = len(_run(lambda: safe.index.secured()))

    if closed and not yes:
        typer.confirm(
            f"{closed} closed file(s) in safe '{safe.name}' will be lost. Continue?",
            abort=True,
        )

    if _run(safe.delete):
        console.print(f"Deleted safe '{safe.name}'")
    else:
        console.print(f"Safe '{safe.name}' does not exist")


@app.command()
def version():
    """Show version information."""
    from .. import __version__

    console.print(f"sia v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
