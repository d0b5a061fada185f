"""Look up projects and conversations in a completed scan."""

import logging
import os
from functools import reduce

from .config import MIN_PREFIX_LENGTH
from .core import ConversationSummary, Project, ScanResult, SessionMatch, TokenUsage
from .errors import AmbiguousSessionIdError, PrefixTooShortError

logger = logging.getLogger(__name__)


def validate_prefix(prefix: str, min_length: int = MIN_PREFIX_LENGTH) -> str:
    """Reject prefixes too short to identify a session. Run this before scanning."""
    prefix = prefix.strip()
    if len(prefix) < min_length:
        raise PrefixTooShortError(prefix, min_length)
    return prefix


def find_conversation(
    id_or_prefix: str,
    scan_result: ScanResult,
    min_length: int = MIN_PREFIX_LENGTH,
) -> tuple[Project, ConversationSummary] | None:
    """Find the single conversation whose session ID starts with ``id_or_prefix``.

    Returns None when nothing matches. Raises PrefixTooShortError for short
    input and AmbiguousSessionIdError when several sessions match.
    """
    prefix = validate_prefix(id_or_prefix, min_length).lower()

    matches = [
        (project, conversation)
        for project in scan_result.projects
        for conversation in project.conversations
        if conversation.session_id.lower().startswith(prefix)
    ]

    if not matches:
        return None
    if len(matches) == 1:
        return matches[0]

    logger.debug("Prefix %s matches %d sessions", prefix, len(matches))
    raise AmbiguousSessionIdError(
        id_or_prefix,
        [
            SessionMatch(
                session_id=conversation.session_id,
                project_name=project.display_name,
                start_time=conversation.start_time,
            )
            for project, conversation in matches
        ],
    )


def find_project_by_path(cwd: str, scan_result: ScanResult) -> Project | None:
    """Return the project whose original path is ``cwd`` or an ancestor of it.

    Matches whole path segments, so ``/dev/app`` does not claim
    ``/dev/app-old``. When several projects qualify the deepest one wins.
    """
    target = _normalize(cwd)
    best = None

    for project in scan_result.projects:
        root = _normalize(project.original_path)
        if not root:
            continue
        if target == root or target.startswith(root.rstrip(os.sep) + os.sep):
            if best is None or len(root) > len(_normalize(best.original_path)):
                best = project

    return best


def find_project(name: str, scan_result: ScanResult) -> Project | None:
    """Return the first project whose name or original path contains ``name``."""
    matches = filter_projects(name, scan_result)
    return matches[0] if matches else None


def filter_projects(name: str | None, scan_result: ScanResult) -> list[Project]:
    """Case-insensitive substring filter on display name or original path."""
    if not name:
        return list(scan_result.projects)
    needle = name.lower()
    return [
        p for p in scan_result.projects
        if needle in p.display_name.lower() or needle in p.original_path.lower()
    ]


def summarize_tokens(projects: list[Project]) -> tuple[int, TokenUsage]:
    """Total message count and token usage across the given projects."""
    conversations = [c for p in projects for c in p.conversations]
    messages = sum(c.message_count for c in conversations)
    tokens = reduce(lambda acc, c: acc + c.total_tokens, conversations, TokenUsage())
    return messages, tokens


def _normalize(path: str) -> str:
    """Strip trailing separators, keeping a bare root intact."""
    if not path:
        return ""
    stripped = path.rstrip(os.sep)
    return stripped or os.sep
