"""
Setup & Maintenance Commands
----------------------------

Storage initialization and mirror maintenance.

Commands:
    - init: Create the database schema and storage directories
    - check: List entries whose mirrored file is missing or stale
    - repair: Rewrite mirrored files from the index
"""
import click

from momentum.core.logging_manager import handle_cli_error
from momentum.core.exceptions import MomentumError
from . import get_storage


@click.command()
@click.pass_context
def init(ctx):
    """Initialize the database schema and storage directories."""
    try:
        click.echo("🚀 Initializing Momentum storage...")
        storage = get_storage(ctx)
        storage.content.root.mkdir(parents=True, exist_ok=True)

        history = storage.index.get_migration_history()
        click.echo(f"🗄️  Database: {storage.index.db_path}")
        click.echo(f"📁 Mirror:   {storage.content.root}")
        click.echo(
            f"🔖 Schema:   {history['current_revision']} ({history['status']})"
        )
        click.echo("✅ Storage ready!")

    except MomentumError as e:
        handle_cli_error(ctx, e, "init")


@click.command()
@click.pass_context
def check(ctx):
    """List entries whose mirrored file is missing or stale."""
    try:
        storage = get_storage(ctx)
        stale = storage.check_mirrors()

        if not stale:
            click.echo("✅ All mirrors are up to date")
            return

        click.echo(f"⚠️  {len(stale)} stale mirror(s):\n")
        for entry_id in stale:
            click.echo(f"  • {entry_id}")
        click.echo("\n💡 Run 'momentum repair' to rewrite them")

    except MomentumError as e:
        handle_cli_error(ctx, e, "check")


@click.command()
@click.argument("entry_ids", nargs=-1)
@click.pass_context
def repair(ctx, entry_ids):
    """Rewrite mirrored files from the index (all stale ones by default)."""
    try:
        storage = get_storage(ctx)
        repaired = storage.repair_mirrors(list(entry_ids) or None)

        for entry_id in repaired:
            click.echo(f"  🔧 {entry_id}")
        click.echo(f"✅ Repaired {len(repaired)} mirror(s)")

    except MomentumError as e:
        handle_cli_error(
            ctx, e, "repair", additional_context={"entry_ids": list(entry_ids)}
        )
