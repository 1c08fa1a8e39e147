#!/usr/bin/env python3
"""
Momentum Journal CLI
--------------------

Command-line interface over the storage coordinator.

This module provides the main CLI group and the shared context setup
for all commands.

Command Structure:
    - Setup & Maintenance (init, check, repair)
    - Entries (new, show, edit, delete, list, search)
    - History (versions, version, restore)

Usage:
    # Get general help
    momentum --help

    # Write an entry from a file
    momentum new --file today.md

    # Show the history of an entry
    momentum versions <entry-id>
"""
import click
import logging
from pathlib import Path

from momentum.core.config import StorageConfig, load_config
from momentum.core.exceptions import MirrorWriteError
from momentum.core.logging_manager import MomentumLogger
from momentum.storage import StorageCoordinator


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding the database, mirrored files and logs",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML configuration file",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Show detailed errors and tracebacks",
)
@click.pass_context
def cli(ctx, data_dir, config_path, verbose):
    """Momentum journal storage CLI"""

    # Suppress Alembic INFO logging by default
    logging.getLogger("alembic").setLevel(logging.WARNING)

    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = Path(data_dir) if data_dir else None
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["verbose"] = verbose


def get_config(ctx) -> StorageConfig:
    """Load configuration once per invocation."""
    if "config" not in ctx.obj:
        ctx.obj["config"] = load_config(
            ctx.obj.get("config_path"), data_dir=ctx.obj.get("data_dir")
        )
    return ctx.obj["config"]


def get_storage(ctx) -> StorageCoordinator:
    """Get or create the coordinator for this invocation."""
    if "storage" not in ctx.obj:
        config = get_config(ctx)

        logger = None
        if config.log_dir is not None:
            logger = MomentumLogger(config.log_dir, component_name="cli")
            ctx.obj["logger"] = logger

        def warn_mirror(error: MirrorWriteError) -> None:
            click.echo(f"⚠️  {error}", err=True)

        storage = StorageCoordinator.from_config(
            config, logger=logger, on_mirror_error=warn_mirror
        )
        ctx.obj["storage"] = storage

        root = ctx.find_root()
        root.call_on_close(storage.close)
        if logger is not None:
            root.call_on_close(logger.close)
    return ctx.obj["storage"]


# Import and register command modules
# These imports must come after CLI group definition
from .setup import init, check, repair  # noqa: E402
from .entries import new, show, edit, delete, list_entries, search  # noqa: E402
from .history import versions, version, restore  # noqa: E402

cli.add_command(init)
cli.add_command(check)
cli.add_command(repair)

cli.add_command(new)
cli.add_command(show)
cli.add_command(edit)
cli.add_command(delete)
cli.add_command(list_entries)
cli.add_command(search)

cli.add_command(versions)
cli.add_command(version)
cli.add_command(restore)


if __name__ == "__main__":
    cli(obj={})
