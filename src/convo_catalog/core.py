"""Core data models for convo-catalog."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class TokenUsage:
    """Token totals summed over a conversation's assistant turns."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0

    @property
    def total(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_creation_input_tokens
            + self.cache_read_input_tokens
        )

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cache_creation_input_tokens=self.cache_creation_input_tokens + other.cache_creation_input_tokens,
            cache_read_input_tokens=self.cache_read_input_tokens + other.cache_read_input_tokens,
        )

    def to_dict(self) -> dict:
        return {
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "cache_creation_input_tokens": self.cache_creation_input_tokens,
            "cache_read_input_tokens": self.cache_read_input_tokens,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TokenUsage":
        return cls(
            input_tokens=int(data.get("input_tokens") or 0),
            output_tokens=int(data.get("output_tokens") or 0),
            cache_creation_input_tokens=int(data.get("cache_creation_input_tokens") or 0),
            cache_read_input_tokens=int(data.get("cache_read_input_tokens") or 0),
        )


@dataclass
class DecodedPath:
    """Result of reconstructing a project's original directory."""

    path: str
    exists: bool  # False when only the lossy fallback could be produced


@dataclass
class ConversationMeta:
    """Listing metadata extracted from one conversation log."""

    start_time: datetime
    end_time: datetime
    message_count: int
    total_tokens: TokenUsage = field(default_factory=TokenUsage)
    slug: Optional[str] = None
    first_user_message_preview: Optional[str] = None


@dataclass
class CacheEntry:
    """Cached metadata for a log file, valid only while its mtime is unchanged."""

    mtime_ms: int
    start_time: datetime
    end_time: datetime
    message_count: int
    total_tokens: TokenUsage = field(default_factory=TokenUsage)
    slug: Optional[str] = None
    first_user_message_preview: Optional[str] = None

    @classmethod
    def from_meta(cls, mtime_ms: int, meta: ConversationMeta) -> "CacheEntry":
        return cls(
            mtime_ms=mtime_ms,
            start_time=meta.start_time,
            end_time=meta.end_time,
            message_count=meta.message_count,
            total_tokens=meta.total_tokens,
            slug=meta.slug,
            first_user_message_preview=meta.first_user_message_preview,
        )

    def to_meta(self) -> ConversationMeta:
        return ConversationMeta(
            start_time=self.start_time,
            end_time=self.end_time,
            message_count=self.message_count,
            total_tokens=self.total_tokens,
            slug=self.slug,
            first_user_message_preview=self.first_user_message_preview,
        )

    def to_dict(self) -> dict:
        return {
            "mtime_ms": self.mtime_ms,
            "slug": self.slug,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "message_count": self.message_count,
            "total_tokens": self.total_tokens.to_dict(),
            "first_user_message_preview": self.first_user_message_preview,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        """Rebuild an entry from its JSON form.

        Raises KeyError, TypeError or ValueError when the data is malformed.
        """
        return cls(
            mtime_ms=int(data["mtime_ms"]),
            start_time=datetime.fromisoformat(data["start_time"]),
            end_time=datetime.fromisoformat(data["end_time"]),
            message_count=int(data["message_count"]),
            total_tokens=TokenUsage.from_dict(data.get("total_tokens") or {}),
            slug=data.get("slug"),
            first_user_message_preview=data.get("first_user_message_preview"),
        )


@dataclass
class ConversationSummary:
    """A single conversation session as shown in listings."""

    session_id: str
    file_path: str
    start_time: datetime
    end_time: datetime
    message_count: int
    file_size_bytes: int
    has_subagents: bool = False
    total_tokens: TokenUsage = field(default_factory=TokenUsage)
    slug: Optional[str] = None
    first_user_message_preview: Optional[str] = None

    @property
    def duration_ms(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() * 1000)


@dataclass
class Project:
    """A project directory and the conversations recorded in it."""

    display_name: str
    encoded_path: str  # e.g. "-Users-alice-dev-my-app"
    original_path: str  # e.g. "/Users/alice/dev/my-app"
    directory_path: str
    conversations: list[ConversationSummary] = field(default_factory=list)
    is_deleted: bool = False

    @property
    def total_conversations(self) -> int:
        return len(self.conversations)

    @property
    def total_size_bytes(self) -> int:
        return sum(c.file_size_bytes for c in self.conversations)


@dataclass
class ScanResult:
    """Every non-empty project found under the base directory."""

    projects: list[Project] = field(default_factory=list)

    @property
    def total_conversations(self) -> int:
        return sum(p.total_conversations for p in self.projects)

    @property
    def total_size_bytes(self) -> int:
        return sum(p.total_size_bytes for p in self.projects)


@dataclass
class SessionMatch:
    """One candidate in an ambiguous session-prefix lookup."""

    session_id: str
    project_name: str
    start_time: datetime
