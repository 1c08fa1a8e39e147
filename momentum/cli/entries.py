"""
Entry Commands
--------------

Create, read, update, delete, list and search journal entries.

Commands:
    - new: Create an entry from --content, --file or stdin
    - show: Display an entry with its metadata
    - edit: Replace the content of an entry
    - delete: Delete an entry with its history
    - list: List entries, most recently updated first
    - search: Substring search over entry content
"""
import json
from typing import List, Optional

import click

from momentum.core.logging_manager import handle_cli_error
from momentum.core.exceptions import MomentumError
from momentum.database.records import EntrySummary
from . import get_storage


def _read_content(content: Optional[str], source) -> str:
    """Content from --content, else from the --file stream (stdin by default)."""
    if content is not None:
        return content
    return source.read()


def _echo_summaries(summaries: List[EntrySummary], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps([s.to_dict() for s in summaries], default=str, indent=2))
        return

    if not summaries:
        click.echo("No entries found")
        return

    for summary in summaries:
        updated = summary.updated_at.strftime("%Y-%m-%d %H:%M")
        click.echo(
            f"{summary.id}  {updated}  {summary.word_count:5d} words  {summary.title}"
        )
    click.echo(f"\nTotal: {len(summaries)} entries")


@click.command()
@click.option("--content", "-c", default=None, help="Entry text")
@click.option(
    "--file",
    "source",
    type=click.File("r", encoding="utf-8"),
    default="-",
    help="Read entry text from a file (default: stdin)",
)
@click.pass_context
def new(ctx, content, source):
    """Create an entry and print its id."""
    try:
        storage = get_storage(ctx)
        entry_id = storage.create_entry(_read_content(content, source))
        click.echo(entry_id)

    except MomentumError as e:
        handle_cli_error(ctx, e, "new")


@click.command()
@click.argument("entry_id")
@click.option("--raw", is_flag=True, help="Print only the entry body")
@click.pass_context
def show(ctx, entry_id, raw):
    """Display an entry with its metadata."""
    try:
        storage = get_storage(ctx)
        body = storage.get_entry_body(entry_id)

        if raw:
            click.echo(body, nl=False)
            return

        entry = storage.get_entry(entry_id)
        metadata = storage.get_metadata(entry_id)

        click.echo(f"\n📝 {storage.extract_title(body)}")
        click.echo(f"🆔 {entry.id}")
        click.echo(f"📄 {entry.file_path}")
        click.echo(
            f"🕒 created {entry.created_at.isoformat()}, "
            f"updated {entry.updated_at.isoformat()}"
        )
        click.echo(
            f"📊 {metadata.word_count} words, {metadata.reading_time:.1f} min read"
        )
        if metadata.tags:
            click.echo(f"🏷️  Tags: {', '.join(metadata.tags)}")
        click.echo("")
        click.echo(body)

    except MomentumError as e:
        handle_cli_error(ctx, e, "show", additional_context={"entry_id": entry_id})


@click.command()
@click.argument("entry_id")
@click.option("--content", "-c", default=None, help="New entry text")
@click.option(
    "--file",
    "source",
    type=click.File("r", encoding="utf-8"),
    default="-",
    help="Read new entry text from a file (default: stdin)",
)
@click.pass_context
def edit(ctx, entry_id, content, source):
    """Replace the content of an entry (appends a new version)."""
    try:
        storage = get_storage(ctx)
        storage.update_entry(entry_id, _read_content(content, source))
        click.echo(f"✅ Updated {entry_id}")

    except MomentumError as e:
        handle_cli_error(ctx, e, "edit", additional_context={"entry_id": entry_id})


@click.command()
@click.argument("entry_id")
@click.confirmation_option(prompt="⚠️  Delete this entry and all of its versions?")
@click.pass_context
def delete(ctx, entry_id):
    """Delete an entry, its history and its mirrored file."""
    try:
        storage = get_storage(ctx)
        storage.delete_entry(entry_id)
        click.echo(f"🗑️  Deleted {entry_id}")

    except MomentumError as e:
        handle_cli_error(ctx, e, "delete", additional_context={"entry_id": entry_id})


@click.command("list")
@click.option("--limit", "-n", type=int, default=None, help="Show at most N entries")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def list_entries(ctx, limit, as_json):
    """List entries, most recently updated first."""
    try:
        storage = get_storage(ctx)
        summaries = storage.list_entries()
        if limit is not None:
            summaries = summaries[: max(limit, 0)]
        _echo_summaries(summaries, as_json)

    except MomentumError as e:
        handle_cli_error(ctx, e, "list")


@click.command()
@click.argument("query")
@click.option("--case-sensitive", is_flag=True, help="Match case exactly")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def search(ctx, query, case_sensitive, as_json):
    """Find entries whose content contains QUERY."""
    try:
        storage = get_storage(ctx)
        summaries = storage.search_entries(query, case_sensitive=case_sensitive or None)
        _echo_summaries(summaries, as_json)

    except MomentumError as e:
        handle_cli_error(ctx, e, "search", additional_context={"query": query})
