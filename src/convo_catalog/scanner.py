"""Scan the Claude Code projects directory into a catalog of conversations.

Layout under the base path:

    <base>/<encoded project path>/<session uuid>.jsonl
    <base>/<encoded project path>/<session uuid>/subagents/   (optional)

Projects and files are scanned concurrently on the event loop, with blocking
filesystem calls pushed to worker threads. Per-file metadata comes from the
MetadataCache when the file's mtime is unchanged, otherwise from the log
parser.
"""

import asyncio
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .cache import MetadataCache
from .config import FILE_CONCURRENCY, PROJECT_CONCURRENCY, SUBAGENTS_DIR, get_projects_path
from .core import CacheEntry, ConversationMeta, ConversationSummary, Project, ScanResult
from .executor import bounded_map
from .parser import parse_conversation_meta
from .paths import PathResolver, extract_session_id, get_leaf_name, is_log_file

logger = logging.getLogger(__name__)


@dataclass
class _DirEntry:
    name: str
    path: str
    is_dir: bool
    is_file: bool


def _list_dir(path: str) -> list[_DirEntry]:
    """List a directory, sorted by name. A missing directory lists as empty."""
    try:
        with os.scandir(path) as it:
            entries = [
                _DirEntry(name=e.name, path=e.path, is_dir=e.is_dir(), is_file=e.is_file())
                for e in it
            ]
    except FileNotFoundError:
        logger.debug("Directory not found, treating as empty: %s", path)
        return []
    entries.sort(key=lambda e: e.name)
    return entries


class ProjectScanner:
    """Builds a ScanResult from the projects directory.

    Create one scanner per scan: it owns the path resolver's probe memo and
    the metadata cache, which is loaded at the start of ``scan`` and saved
    once at the end.
    """

    def __init__(
        self,
        base_path: str | Path | None = None,
        cache: MetadataCache | None = None,
        parse_meta: Callable[[str], ConversationMeta] = parse_conversation_meta,
        resolver: PathResolver | None = None,
        project_limit: int = PROJECT_CONCURRENCY,
        file_limit: int = FILE_CONCURRENCY,
    ):
        self.base_path = os.path.abspath(base_path if base_path is not None else get_projects_path())
        self.cache = cache if cache is not None else MetadataCache()
        self.parse_meta = parse_meta
        self.resolver = resolver if resolver is not None else PathResolver()
        self.project_limit = project_limit
        self.file_limit = file_limit
        self.cache_hits = 0
        self.cache_misses = 0

    async def scan(self) -> ScanResult:
        """Scan every project directory under the base path."""
        await asyncio.to_thread(self.cache.load)

        entries = await asyncio.to_thread(_list_dir, self.base_path)
        project_dirs = [e for e in entries if e.is_dir]

        projects = await bounded_map(
            project_dirs,
            self.project_limit,
            lambda e: self.scan_project(e.path, e.name),
        )
        projects = [p for p in projects if p.total_conversations > 0]
        projects.sort(key=lambda p: (p.display_name.lower(), p.display_name, p.encoded_path))

        await asyncio.to_thread(self.cache.save)

        result = ScanResult(projects=projects)
        logger.info(
            "Scanned %d conversations in %d projects (%d cached, %d parsed)",
            result.total_conversations, len(projects), self.cache_hits, self.cache_misses,
        )
        return result

    async def scan_project(self, directory_path: str, encoded_name: str) -> Project:
        """Scan one project directory into a Project."""
        entries = await asyncio.to_thread(_list_dir, directory_path)
        log_files = [e for e in entries if e.is_file and is_log_file(e.name)]

        summaries = await bounded_map(
            log_files,
            self.file_limit,
            lambda e: self._scan_file(directory_path, e.name),
        )
        conversations = [s for s in summaries if s is not None]
        conversations.sort(key=lambda c: c.start_time, reverse=True)

        decoded = await asyncio.to_thread(self.resolver.decode_exact, encoded_name)
        if not decoded.exists:
            logger.debug("Original directory for %s not found, using %s", encoded_name, decoded.path)

        return Project(
            display_name=get_leaf_name(decoded.path, encoded_name),
            encoded_path=encoded_name,
            original_path=decoded.path,
            directory_path=directory_path,
            conversations=conversations,
            is_deleted=not decoded.exists,
        )

    async def _scan_file(self, directory_path: str, filename: str) -> ConversationSummary | None:
        session_id = extract_session_id(filename)
        if session_id is None:
            return None

        file_path = os.path.join(directory_path, filename)
        try:
            st = await asyncio.to_thread(os.stat, file_path)
        except FileNotFoundError:
            # Removed between listing and stat.
            return None
        mtime_ms = st.st_mtime_ns // 1_000_000

        entry = self.cache.get(file_path, mtime_ms)
        if entry is not None:
            self.cache_hits += 1
        else:
            self.cache_misses += 1
            try:
                meta = await asyncio.to_thread(self.parse_meta, file_path)
            except FileNotFoundError:
                return None
            entry = CacheEntry.from_meta(mtime_ms, meta)
            self.cache.set(file_path, entry)

        subagents_dir = os.path.join(directory_path, session_id, SUBAGENTS_DIR)
        has_subagents = await asyncio.to_thread(os.path.isdir, subagents_dir)

        return ConversationSummary(
            session_id=session_id,
            file_path=file_path,
            start_time=entry.start_time,
            end_time=entry.end_time,
            message_count=entry.message_count,
            file_size_bytes=st.st_size,
            has_subagents=has_subagents,
            total_tokens=entry.total_tokens,
            slug=entry.slug,
            first_user_message_preview=entry.first_user_message_preview,
        )


async def scan(base_path: str | Path | None = None, cache: MetadataCache | None = None) -> ScanResult:
    return await ProjectScanner(base_path=base_path, cache=cache).scan()


def scan_projects(base_path: str | Path | None = None, cache: MetadataCache | None = None) -> ScanResult:
    """Blocking wrapper around ``scan`` for synchronous callers."""
    return asyncio.run(scan(base_path, cache))
