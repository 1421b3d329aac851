"""
Command-line interface for localfs.

Runs adapter operations against one root directory, configured with
``--root``, ``--config`` or the ``LOCALFS_ROOT`` environment variable.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from localfs import __version__
from localfs.adapter import LocalAdapter
from localfs.config import LocalAdapterConfig
from localfs.exceptions import LocalFSError
from localfs.models import EntryType, LinkHandling, Visibility
from localfs.results import Result

console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool = False) -> None:
    """Setup rich logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
    )


def _build_adapter(
    root: Optional[str], config_file: Optional[str], skip_links: bool
) -> LocalAdapter:
    if config_file:
        config = LocalAdapterConfig.from_file(config_file)
        if root:
            config = config.model_copy(update={"root": Path(root)})
    elif root:
        config = LocalAdapterConfig(root=root)
    else:
        config = LocalAdapterConfig.from_env()

    if skip_links:
        config = config.model_copy(update={"link_handling": LinkHandling.SKIP})
    return LocalAdapter.from_config(config)


def _adapter(ctx: click.Context) -> LocalAdapter:
    options = ctx.obj
    if "adapter" not in options:
        options["adapter"] = _build_adapter(
            options["root"], options["config"], options["skip_links"]
        )
    return options["adapter"]


def _check(result: Result) -> None:
    """Exit with status 1 when ``result`` is a failure."""
    if not result:
        err_console.print(f"[bold red]Failed:[/bold red] {result}")
        sys.exit(1)


class AdapterGroup(click.Group):
    """Turns adapter exceptions into a clean exit."""

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except LocalFSError as e:
            err_console.print(f"[bold red]Error:[/bold red] {e}")
            sys.exit(2)


@click.group(cls=AdapterGroup)
@click.version_option(version=__version__)
@click.option(
    "--root",
    "-r",
    envvar="LOCALFS_ROOT",
    default=None,
    help="Root directory (default: $LOCALFS_ROOT)",
)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML or JSON adapter configuration file",
)
@click.option(
    "--skip-links",
    is_flag=True,
    default=False,
    help="Skip symbolic links instead of failing on them",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, root, config_file, skip_links, verbose):
    """localfs - file operations confined to a root directory."""
    load_dotenv()
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj.update(root=root, config=config_file, skip_links=skip_links)


@cli.command("ls")
@click.argument("directory", default="")
@click.option("--recursive", "-R", is_flag=True, help="List every descendant")
@click.pass_context
def list_command(ctx, directory: str, recursive: bool):
    """List DIRECTORY (default: the root)."""
    entries = _adapter(ctx).list_contents(directory, recursive=recursive)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Type")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for entry in sorted(entries, key=lambda e: e.path):
        table.add_row(
            entry.type.value,
            entry.path + ("/" if entry.type == EntryType.DIR else ""),
            "" if entry.size is None else str(entry.size),
            datetime.fromtimestamp(entry.timestamp).strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)
    console.print(f"[dim]{len(entries)} entries[/dim]")


@cli.command("cat")
@click.argument("path")
@click.pass_context
def cat_command(ctx, path: str):
    """Print the contents of PATH."""
    result = _adapter(ctx).read(path)
    _check(result)
    stdout = click.get_binary_stream("stdout")
    stdout.write(result.value.contents)
    stdout.flush()


@cli.command("put")
@click.argument("path")
@click.argument("source", default="-")
@click.option(
    "--visibility",
    type=click.Choice([v.value for v in Visibility]),
    default=None,
    help="Visibility of the written file",
)
@click.pass_context
def put_command(ctx, path: str, source: str, visibility: Optional[str]):
    """Write SOURCE (a local file, or '-' for stdin) to PATH."""
    options = {"visibility": visibility} if visibility else None
    adapter = _adapter(ctx)
    if source == "-":
        result = adapter.write_stream(path, click.get_binary_stream("stdin"), options)
    else:
        with open(source, "rb") as f:
            result = adapter.write_stream(path, f, options)
    _check(result)
    console.print(f"[green]Wrote[/green] {result.value.path}")


@cli.command("rm")
@click.argument("path")
@click.pass_context
def remove_command(ctx, path: str):
    """Delete the file PATH."""
    _check(_adapter(ctx).delete(path))
    console.print(f"[green]Deleted[/green] {path}")


@cli.command("mkdir")
@click.argument("path")
@click.option(
    "--visibility",
    type=click.Choice([v.value for v in Visibility]),
    default=None,
    help="Visibility of the created directory",
)
@click.pass_context
def mkdir_command(ctx, path: str, visibility: Optional[str]):
    """Create the directory PATH and any missing parents."""
    options = {"visibility": visibility} if visibility else None
    _check(_adapter(ctx).create_dir(path, options))
    console.print(f"[green]Created[/green] {path}/")


@cli.command("rmdir")
@click.argument("path")
@click.pass_context
def rmdir_command(ctx, path: str):
    """Delete the directory PATH and everything in it."""
    _check(_adapter(ctx).delete_dir(path))
    console.print(f"[green]Deleted[/green] {path}/")


@cli.command("mv")
@click.argument("source")
@click.argument("destination")
@click.pass_context
def move_command(ctx, source: str, destination: str):
    """Move SOURCE to DESTINATION."""
    _check(_adapter(ctx).rename(source, destination))
    console.print(f"[green]Moved[/green] {source} -> {destination}")


@cli.command("cp")
@click.argument("source")
@click.argument("destination")
@click.pass_context
def copy_command(ctx, source: str, destination: str):
    """Copy the file SOURCE to DESTINATION."""
    _check(_adapter(ctx).copy(source, destination))
    console.print(f"[green]Copied[/green] {source} -> {destination}")


@cli.command("stat")
@click.argument("path")
@click.pass_context
def stat_command(ctx, path: str):
    """Show metadata, visibility and mime type of PATH."""
    adapter = _adapter(ctx)
    result = adapter.get_metadata(path)
    _check(result)
    metadata = result.value

    visibility = adapter.get_visibility(path)
    if visibility:
        metadata.visibility = visibility.value.visibility
    if metadata.type == EntryType.FILE:
        mimetype = adapter.get_mimetype(path)
        if mimetype:
            metadata.mimetype = mimetype.value.mimetype

    table = Table(show_header=False, box=None)
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in metadata.as_dict().items():
        table.add_row(key, str(value))
    console.print(table)


@cli.command("chmod")
@click.argument("path")
@click.argument("visibility", type=click.Choice([v.value for v in Visibility]))
@click.pass_context
def chmod_command(ctx, path: str, visibility: str):
    """Set the visibility of PATH."""
    _check(_adapter(ctx).set_visibility(path, visibility))
    console.print(f"[green]{path}[/green] is now {visibility}")


if __name__ == "__main__":
    cli()
