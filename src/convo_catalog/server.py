"""FastAPI web server exposing the conversation catalog."""

import logging

from fastapi import FastAPI, HTTPException, Query

from . import __version__
from .cache import MetadataCache
from .core import ConversationSummary, Project, ScanResult
from .errors import AmbiguousSessionIdError, PrefixTooShortError
from .resolver import filter_projects, find_conversation, find_project_by_path, validate_prefix
from .scanner import ProjectScanner

logger = logging.getLogger(__name__)

app = FastAPI(title="convo-catalog", version=__version__)


def _make_scanner() -> ProjectScanner:
    """A fresh scanner per request; the on-disk cache keeps repeat scans cheap."""
    return ProjectScanner(cache=MetadataCache())


async def _scan() -> ScanResult:
    try:
        return await _make_scanner().scan()
    except OSError as e:
        logger.error("Failed to scan conversations: %s", e)
        raise HTTPException(status_code=500, detail="Failed to scan conversations")


def _conversation_to_dict(conv: ConversationSummary) -> dict:
    """Convert a ConversationSummary to a JSON-serializable dict."""
    return {
        "session_id": conv.session_id,
        "slug": conv.slug,
        "file_path": conv.file_path,
        "start_time": conv.start_time.isoformat(),
        "end_time": conv.end_time.isoformat(),
        "duration_ms": conv.duration_ms,
        "message_count": conv.message_count,
        "file_size_bytes": conv.file_size_bytes,
        "has_subagents": conv.has_subagents,
        "total_tokens": conv.total_tokens.to_dict(),
        "first_user_message_preview": conv.first_user_message_preview,
    }


def _project_to_dict(project: Project, include_conversations: bool = True) -> dict:
    """Convert a Project to a JSON-serializable dict."""
    data = {
        "display_name": project.display_name,
        "encoded_path": project.encoded_path,
        "original_path": project.original_path,
        "directory_path": project.directory_path,
        "total_conversations": project.total_conversations,
        "total_size_bytes": project.total_size_bytes,
        "is_deleted": project.is_deleted,
    }
    if include_conversations:
        data["conversations"] = [_conversation_to_dict(c) for c in project.conversations]
    return data


# ── Routes ───────────────────────────────────────────────────────


@app.get("/api/projects")
async def get_projects(
    project: str | None = Query(None, description="Filter by project name or path"),
):
    """Return every project with its conversations."""
    result = await _scan()
    projects = filter_projects(project, result)

    return {
        "total_conversations": sum(p.total_conversations for p in projects),
        "total_size_bytes": sum(p.total_size_bytes for p in projects),
        "projects": [_project_to_dict(p) for p in projects],
    }


@app.get("/api/projects/current")
async def get_current_project(cwd: str = Query(..., description="Working directory to match")):
    """Return the project recorded for a working directory or one of its parents."""
    result = await _scan()
    project = find_project_by_path(cwd, result)
    if project is None:
        raise HTTPException(status_code=404, detail=f"No project found for {cwd}")
    return _project_to_dict(project)


@app.get("/api/conversations/{prefix}")
async def get_conversation(prefix: str):
    """Resolve a full or partial session ID to one conversation."""
    try:
        validate_prefix(prefix)
    except PrefixTooShortError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await _scan()
    try:
        found = find_conversation(prefix, result)
    except AmbiguousSessionIdError as e:
        raise HTTPException(
            status_code=409,
            detail={
                "message": f"Session ID prefix '{e.prefix}' is ambiguous",
                "matches": [
                    {
                        "session_id": m.session_id,
                        "project_name": m.project_name,
                        "start_time": m.start_time.isoformat(),
                    }
                    for m in e.matches
                ],
            },
        )

    if found is None:
        raise HTTPException(status_code=404, detail="Conversation not found")

    project, conversation = found
    return {
        "project": _project_to_dict(project, include_conversations=False),
        "conversation": _conversation_to_dict(conversation),
    }
