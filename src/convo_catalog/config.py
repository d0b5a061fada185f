"""Platform-aware paths and tuning constants for the catalog."""

import os
from pathlib import Path

# Character that replaces the path separator in project directory names.
PATH_DELIMITER = "-"
LOG_EXTENSION = ".jsonl"
SUBAGENTS_DIR = "subagents"

# Bump when CacheEntry changes shape; older cache files are discarded on load.
CACHE_VERSION = 2

PROJECT_CONCURRENCY = 10
FILE_CONCURRENCY = 20

MIN_PREFIX_LENGTH = 4
PREVIEW_LENGTH = 100

# Upper bound on existence probes for a single exact decode.
MAX_PROBES = 10000


def get_projects_path() -> Path:
    """Return the path to Claude Code's projects directory."""
    env = os.environ.get("CONVO_CATALOG_PROJECTS_PATH")
    if env:
        return Path(env)

    return Path.home() / ".claude" / "projects"


def get_cache_dir() -> Path:
    """Return the per-user directory holding the metadata cache."""
    env = os.environ.get("CONVO_CATALOG_CACHE_DIR")
    if env:
        return Path(env)

    return Path.home() / ".convo-catalog"


def get_cache_file() -> Path:
    return get_cache_dir() / "cache.json"
