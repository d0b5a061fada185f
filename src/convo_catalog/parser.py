"""Listing metadata extraction from Claude Code JSONL conversation logs.

Each line of a session log is one JSON record. The record kinds that matter
for listings:
- "user": a user turn. Carries the session slug and, unless it is a tool
  result or injected noise, the text used as the conversation preview.
- "assistant": a model turn. ``message.usage`` holds the token counts.
- "summary": compaction summary. Counted, otherwise ignored.
- "file-history-snapshot": Counted, otherwise ignored.

Anything else still counts as a message but yields no record.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from .config import PREVIEW_LENGTH
from .core import ConversationMeta, TokenUsage
from .noise import clean_user_input, extract_user_text, is_real_user_input

logger = logging.getLogger(__name__)


@dataclass
class UserRecord:
    timestamp: Optional[datetime]
    content: Any = ""
    slug: Optional[str] = None
    session_id: Optional[str] = None
    cwd: Optional[str] = None


@dataclass
class AssistantRecord:
    timestamp: Optional[datetime]
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: Optional[str] = None


@dataclass
class SummaryRecord:
    summary: str
    leaf_uuid: Optional[str] = None


@dataclass
class SnapshotRecord:
    message_id: Optional[str] = None


LogRecord = Union[UserRecord, AssistantRecord, SummaryRecord, SnapshotRecord]


def parse_record(entry: dict) -> LogRecord | None:
    """Convert one decoded JSONL entry into its typed record."""
    entry_type = entry.get("type", "")

    if entry_type in ("user", "human"):
        msg_data = entry.get("message") or {}
        return UserRecord(
            timestamp=_parse_iso(entry.get("timestamp")),
            content=msg_data.get("content", "") if isinstance(msg_data, dict) else "",
            slug=entry.get("slug") or None,
            session_id=entry.get("sessionId") or None,
            cwd=entry.get("cwd") or None,
        )

    if entry_type == "assistant":
        msg_data = entry.get("message") or {}
        if not isinstance(msg_data, dict):
            msg_data = {}
        usage = msg_data.get("usage")
        return AssistantRecord(
            timestamp=_parse_iso(entry.get("timestamp")),
            usage=TokenUsage.from_dict(usage) if isinstance(usage, dict) else TokenUsage(),
            model=msg_data.get("model"),
        )

    if entry_type == "summary":
        return SummaryRecord(summary=str(entry.get("summary", "")), leaf_uuid=entry.get("leafUuid"))

    if entry_type == "file-history-snapshot":
        return SnapshotRecord(message_id=entry.get("messageId"))

    return None


def parse_conversation_meta(path: str | Path) -> ConversationMeta:
    """Stream a session log and summarise it for listings.

    Blank lines and lines that are not JSON objects are skipped; every other
    line counts as one message. Raises OSError if the file can't be read.
    """
    path = Path(path)
    slug = None
    start_time = None
    end_time = None
    message_count = 0
    preview = None
    tokens = TokenUsage()

    with path.open(encoding="utf-8", errors="replace") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                logger.debug("Bad JSON at %s:%d: %s", path, line_num, e)
                continue
            if not isinstance(entry, dict):
                continue

            message_count += 1
            try:
                record = parse_record(entry)
            except (TypeError, ValueError) as e:
                logger.debug("Malformed record at %s:%d: %s", path, line_num, e)
                continue

            if isinstance(record, (UserRecord, AssistantRecord)) and record.timestamp is not None:
                if start_time is None or record.timestamp < start_time:
                    start_time = record.timestamp
                if end_time is None or record.timestamp > end_time:
                    end_time = record.timestamp

            if isinstance(record, UserRecord):
                if slug is None and record.slug:
                    slug = record.slug
                if preview is None:
                    try:
                        preview = _extract_preview(record.content)
                    except (TypeError, ValueError) as e:
                        logger.debug("Unreadable user content at %s:%d: %s", path, line_num, e)

            elif isinstance(record, AssistantRecord):
                tokens = tokens + record.usage

    now = datetime.now(timezone.utc)
    return ConversationMeta(
        start_time=start_time or now,
        end_time=end_time or now,
        message_count=message_count,
        total_tokens=tokens,
        slug=slug,
        first_user_message_preview=preview,
    )


def _extract_preview(content) -> str | None:
    if not is_real_user_input(content):
        return None
    cleaned = clean_user_input(extract_user_text(content))
    return _truncate(cleaned, PREVIEW_LENGTH) if cleaned else None


def _truncate(text: str, length: int) -> str:
    return text[:length] + "..." if len(text) > length else text


def _parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string, assuming UTC when no zone is given."""
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
