"""CLI entry point for convo-catalog."""

import logging
import os
from pathlib import Path

import click
import uvicorn

from .cache import MetadataCache
from .errors import AmbiguousSessionIdError, PrefixTooShortError
from .format import format_datetime, format_duration, format_size, format_tokens
from .resolver import filter_projects, find_conversation, summarize_tokens, validate_prefix
from .scanner import scan_projects


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.option(
    "--projects-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="CONVO_CATALOG_PROJECTS_PATH",
    default=None,
    help="Claude Code projects directory.",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, projects_dir: Path | None):
    """Browse the catalog of Claude Code conversations."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"projects_dir": projects_dir}


def _scan(ctx: click.Context):
    try:
        return scan_projects(ctx.obj["projects_dir"], MetadataCache())
    except OSError as e:
        raise click.ClickException(f"Failed to scan conversations: {e}")


@main.command("list")
@click.option("-p", "--project", default=None, help="Filter by project name or path.")
@click.option("--limit", default=10, show_default=True, help="Conversations shown per project.")
@click.pass_context
def list_projects(ctx: click.Context, project: str | None, limit: int):
    """List projects and their most recent conversations."""
    result = _scan(ctx)
    if not result.projects:
        click.echo("No conversations found.")
        return

    projects = filter_projects(project, result)
    if not projects:
        click.echo(f'No projects matching "{project}"')
        return

    total = sum(p.total_conversations for p in projects)
    size = sum(p.total_size_bytes for p in projects)
    click.echo(f"Found {total} conversations in {len(projects)} projects ({format_size(size)})")

    for proj in projects:
        click.echo("")
        suffix = " [deleted]" if proj.is_deleted else ""
        click.echo(f"{proj.display_name}{suffix}")
        click.echo(f"  {proj.original_path}")
        click.echo(f"  {proj.total_conversations} conversations, {format_size(proj.total_size_bytes)}")
        for conv in proj.conversations[:limit]:
            preview = conv.first_user_message_preview or conv.slug or "-"
            click.echo(
                f"  {conv.session_id}  {format_datetime(conv.start_time)}  "
                f"{conv.message_count:>5} msgs  {format_duration(conv.duration_ms):>7}  {preview[:60]}"
            )
        if proj.total_conversations > limit:
            click.echo(f"  ... and {proj.total_conversations - limit} more conversations")


@main.command()
@click.argument("session_prefix")
@click.pass_context
def find(ctx: click.Context, session_prefix: str):
    """Resolve a full or partial session ID."""
    try:
        validate_prefix(session_prefix)
    except PrefixTooShortError as e:
        raise click.ClickException(str(e))

    result = _scan(ctx)
    try:
        found = find_conversation(session_prefix, result)
    except AmbiguousSessionIdError as e:
        raise click.ClickException(str(e))

    if found is None:
        raise click.ClickException(f"Conversation not found: {session_prefix}")

    project, conv = found
    click.echo(f"Session:   {conv.session_id}")
    click.echo(f"Project:   {project.display_name} ({project.original_path})")
    click.echo(f"File:      {conv.file_path}")
    click.echo(f"Started:   {format_datetime(conv.start_time)}")
    click.echo(f"Duration:  {format_duration(conv.duration_ms)}")
    click.echo(f"Messages:  {conv.message_count}")
    click.echo(f"Tokens:    {format_tokens(conv.total_tokens.total)}")
    click.echo(f"Size:      {format_size(conv.file_size_bytes)}")
    if conv.has_subagents:
        click.echo("Subagents: yes")


@main.command()
@click.option("-p", "--project", default=None, help="Filter by project name or path.")
@click.pass_context
def stats(ctx: click.Context, project: str | None):
    """Show conversation statistics."""
    result = _scan(ctx)
    projects = filter_projects(project, result)
    messages, tokens = summarize_tokens(projects)

    click.echo(f"Projects:       {len(projects)}")
    click.echo(f"Conversations:  {sum(p.total_conversations for p in projects)}")
    click.echo(f"Messages:       {messages}")
    click.echo(f"Input tokens:   {format_tokens(tokens.input_tokens)}")
    click.echo(f"Output tokens:  {format_tokens(tokens.output_tokens)}")
    click.echo(f"Total size:     {format_size(sum(p.total_size_bytes for p in projects))}")


@main.command()
@click.option("--port", default=8080, help="Port to serve on.")
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.pass_context
def serve(ctx: click.Context, port: int, host: str):
    """Start the catalog HTTP API."""
    if ctx.obj["projects_dir"] is not None:
        # The app reads its projects directory from the environment.
        os.environ["CONVO_CATALOG_PROJECTS_PATH"] = str(ctx.obj["projects_dir"])
    click.echo(f"Starting convo-catalog on http://{host}:{port}")
    uvicorn.run("convo_catalog.server:app", host=host, port=port, reload=False)
