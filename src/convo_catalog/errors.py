"""
Exceptions raised by convo-catalog.

Exception Hierarchy:
    CatalogError (base)
    └── SessionResolutionError (lookup/resolution failures)
        ├── PrefixTooShortError (prefix below the minimum length)
        └── AmbiguousSessionIdError (prefix matches multiple sessions)

Missing directories are not errors; OSError other than FileNotFoundError
propagates unchanged from the scanner.
"""

from __future__ import annotations

from .core import SessionMatch


class CatalogError(Exception):
    """Base exception for all convo-catalog errors."""


class SessionResolutionError(CatalogError):
    """Base exception for session lookup failures."""


class PrefixTooShortError(SessionResolutionError):
    """Raised when a session ID prefix is too short to look up."""

    def __init__(self, prefix: str, min_length: int) -> None:
        self.prefix = prefix
        self.min_length = min_length
        super().__init__(
            f"Session ID prefix '{prefix}' is too short. "
            f"Please provide at least {min_length} characters."
        )


class AmbiguousSessionIdError(SessionResolutionError):
    """Raised when a session ID prefix matches multiple sessions."""

    def __init__(self, prefix: str, matches: list[SessionMatch]) -> None:
        self.prefix = prefix
        self.matches = matches
        lines = [f"{m.session_id} ({m.project_name})" for m in matches[:10]]
        matches_str = "\n  ".join(lines)
        if len(matches) > 10:
            matches_str += f"\n  ... and {len(matches) - 10} more"
        super().__init__(
            f"Session ID prefix '{prefix}' is ambiguous. Matches {len(matches)} sessions:\n  {matches_str}\n\n"
            f"Please provide a more specific session ID prefix."
        )
