"""Persistent per-file metadata cache keyed by modification time.

The cache is a single JSON document:

    {"version": 2, "entries": {"/abs/path/<uuid>.jsonl": {...CacheEntry...}}}

An entry is only served while its ``mtime_ms`` matches the file's current
modification time. A file written under another version is discarded
wholesale on load. Losing the cache is never fatal: unreadable files start
empty and failed writes are logged and dropped.
"""

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path

from .config import CACHE_VERSION, get_cache_file
from .core import CacheEntry

logger = logging.getLogger(__name__)


class MetadataCache:
    """In-memory view of the cache file, loaded once and saved once per scan."""

    def __init__(self, path: Path | None = None, version: int = CACHE_VERSION):
        self.path = Path(path) if path is not None else get_cache_file()
        self.version = version
        self._entries: dict[str, CacheEntry] = {}
        self._loaded = False
        self._dirty = False

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> None:
        """Read the cache file. A no-op once loaded."""
        if self._loaded:
            return
        self._loaded = True
        self._entries = {}

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", self.path, e)
            return

        if not isinstance(data, dict) or data.get("version") != self.version:
            logger.debug(
                "Cache version mismatch in %s (found %r, want %d); starting fresh",
                self.path, data.get("version") if isinstance(data, dict) else None, self.version,
            )
            # Rewrite the stale file on the next save.
            self._dirty = True
            return

        entries = data.get("entries")
        if not isinstance(entries, dict):
            return

        for file_path, raw in entries.items():
            if not isinstance(raw, dict):
                continue
            try:
                self._entries[file_path] = CacheEntry.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("Dropping malformed cache entry for %s: %s", file_path, e)

    def save(self) -> None:
        """Write the cache back if anything changed since load."""
        if not self._dirty:
            return

        payload = {
            "version": self.version,
            "entries": {path: entry.to_dict() for path, entry in self._entries.items()},
        }
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Unique name per save so overlapping scans never share a temp file.
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_path = tmp.name
                json.dump(payload, tmp, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning("Failed to save metadata cache to %s: %s", self.path, e)
            if tmp_path is not None:
                with contextlib.suppress(FileNotFoundError):
                    os.unlink(tmp_path)
            return
        self._dirty = False

    def get(self, file_path: str, mtime_ms: int) -> CacheEntry | None:
        """Return the entry for ``file_path`` if it was recorded at ``mtime_ms``."""
        entry = self._entries.get(file_path)
        if entry is not None and entry.mtime_ms == mtime_ms:
            return entry
        return None

    def set(self, file_path: str, entry: CacheEntry) -> None:
        self._entries[file_path] = entry
        self._dirty = True
