"""Encoding and decoding of Claude Code project directory names.

Claude Code names each project directory after the working directory it was
started in, with every path separator replaced by a dash:

    /Users/alice/dev/my-app  ->  -Users-alice-dev-my-app

The encoding is lossy, since a dash in the name may be a separator or a
literal dash. ``PathResolver`` recovers the real path by probing the
filesystem; ``decode_fast`` is the cheap fallback that assumes every dash was
a separator.
"""

import logging
import os
import re
from collections.abc import Callable

from .config import LOG_EXTENSION, MAX_PROBES, PATH_DELIMITER
from .core import DecodedPath

logger = logging.getLogger(__name__)

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def encode_path(path: str, delimiter: str = PATH_DELIMITER) -> str:
    """Encode an absolute path into a project directory name."""
    return path.replace(os.sep, delimiter)


def decode_fast(encoded: str, delimiter: str = PATH_DELIMITER) -> str:
    """Decode by turning every delimiter into a separator.

    Always succeeds, but is wrong whenever the original path contained the
    delimiter character.
    """
    return encoded.replace(delimiter, os.sep)


def get_leaf_name(decoded: str, encoded: str = "") -> str:
    """Return the last non-empty segment of a decoded path."""
    parts = [p for p in decoded.split(os.sep) if p]
    return parts[-1] if parts else encoded


def is_log_file(filename: str) -> bool:
    return filename.endswith(LOG_EXTENSION)


def is_uuid(text: str) -> bool:
    return bool(_UUID_RE.match(text))


def extract_session_id(filename: str) -> str | None:
    """Return the session UUID from a log file name, or None if it isn't one."""
    if not is_log_file(filename):
        return None
    stem = filename[: -len(LOG_EXTENSION)]
    return stem if is_uuid(stem) else None


class _ProbeBudgetExhausted(Exception):
    pass


class PathResolver:
    """Reconstruct original paths from encoded names by existence probing.

    Probe results are memoized for the lifetime of the resolver, since the
    same candidate is reached from several backtracking branches. A resolver
    is meant to live for a single scan so the memo never outlasts the
    filesystem state it describes.
    """

    def __init__(
        self,
        exists: Callable[[str], bool] = os.path.isdir,
        delimiter: str = PATH_DELIMITER,
        max_probes: int = MAX_PROBES,
    ):
        self._exists = exists
        self.delimiter = delimiter
        self.max_probes = max_probes
        self._probe_cache: dict[str, bool] = {}

    def probe(self, candidate: str) -> bool:
        """Memoized existence check."""
        cached = self._probe_cache.get(candidate)
        if cached is None:
            cached = self._probe_cache[candidate] = bool(self._exists(candidate))
        return cached

    def decode_exact(self, encoded: str) -> DecodedPath:
        """Find the real directory an encoded name stands for.

        Depth-first search over the delimiter-separated tokens: at each
        position try the shortest segment first, descend when the candidate
        exists, and backtrack to a longer segment when the rest can't be
        matched. Falls back to ``decode_fast`` with ``exists=False`` when no
        existing path is found or the probe budget runs out.
        """
        tokens = encoded.split(self.delimiter)
        # A leading delimiter stands for the filesystem root.
        if tokens and tokens[0] == "":
            tokens = tokens[1:]
        if not any(tokens):
            if not encoded:
                return DecodedPath(path="", exists=False)
            # Nothing but delimiters: the project was the root directory.
            return DecodedPath(path=os.sep, exists=self.probe(os.sep))

        budget = [self.max_probes]
        try:
            found = self._try_decode(tokens, 0, "", budget)
        except _ProbeBudgetExhausted:
            logger.warning("Probe budget of %d exhausted decoding %s", self.max_probes, encoded)
            found = None

        if found is not None:
            return DecodedPath(path=found, exists=True)
        return DecodedPath(path=decode_fast(encoded, self.delimiter), exists=False)

    def _try_decode(self, tokens: list[str], start: int, path_so_far: str, budget: list[int]) -> str | None:
        if start == len(tokens):
            return path_so_far

        for i in range(start, len(tokens)):
            segment = self.delimiter.join(tokens[start : i + 1])
            if not segment:
                continue
            candidate = path_so_far + os.sep + segment
            budget[0] -= 1
            if budget[0] < 0:
                raise _ProbeBudgetExhausted()
            if not self.probe(candidate):
                continue
            if i == len(tokens) - 1:
                return candidate
            found = self._try_decode(tokens, i + 1, candidate, budget)
            if found is not None:
                return found

        return None


def decode_exact(encoded: str, exists: Callable[[str], bool] = os.path.isdir) -> DecodedPath:
    """One-off exact decode with a fresh resolver."""
    return PathResolver(exists=exists).decode_exact(encoded)
