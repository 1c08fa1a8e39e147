"""
History Commands
----------------

Browse and restore entry versions.

Commands:
    - versions: List the versions of an entry
    - version: Display one version
    - restore: Make a past version current again
"""
import click

from momentum.core.logging_manager import handle_cli_error
from momentum.core.exceptions import MomentumError
from . import get_storage


@click.command()
@click.argument("entry_id")
@click.option("--oldest-first", is_flag=True, help="Ascending order")
@click.pass_context
def versions(ctx, entry_id, oldest_first):
    """List the versions of an entry, newest first."""
    try:
        storage = get_storage(ctx)
        # Raises NotFoundError for unknown entries
        storage.get_entry(entry_id)
        history = storage.get_versions(entry_id, order="asc" if oldest_first else "desc")

        click.echo(f"\n📚 Versions of {entry_id}:\n")
        for record in history:
            stamp = record.timestamp.strftime("%Y-%m-%d %H:%M:%S")
            click.echo(
                f"  {record.sequence:3d}  {stamp}  {record.change_type.value:6s}  {record.id}"
            )
        click.echo(f"\nTotal: {len(history)} versions")

    except MomentumError as e:
        handle_cli_error(ctx, e, "versions", additional_context={"entry_id": entry_id})


@click.command()
@click.argument("version_id")
@click.option("--diff", "show_diff", is_flag=True, help="Show the recorded change")
@click.pass_context
def version(ctx, version_id, show_diff):
    """Display one version."""
    try:
        storage = get_storage(ctx)
        record = storage.get_version(version_id)

        click.echo(f"\n🔖 Version {record.sequence} of {record.entry_id}")
        click.echo(f"🕒 {record.timestamp.isoformat()} ({record.change_type.value})")

        if show_diff:
            changes = storage.get_diff(version_id)
            click.echo(f"\n{record.diff or 'No recorded change'}")
            click.echo(f"({len(changes)} operation(s))")
        else:
            click.echo("")
            click.echo(record.content)

    except MomentumError as e:
        handle_cli_error(ctx, e, "version", additional_context={"version_id": version_id})


@click.command()
@click.argument("version_id")
@click.pass_context
def restore(ctx, version_id):
    """Make a past version's content current (as a new version)."""
    try:
        storage = get_storage(ctx)
        record = storage.get_version(version_id)
        storage.restore_version(version_id)
        click.echo(f"✅ Restored version {record.sequence} of {record.entry_id}")

    except MomentumError as e:
        handle_cli_error(ctx, e, "restore", additional_context={"version_id": version_id})
