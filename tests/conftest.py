"""Shared test fixtures for convo-catalog."""

import json
from dataclasses import dataclass
from pathlib import Path

import pytest

from convo_catalog.paths import encode_path


class SessionLogs:
    """Builds Claude Code JSONL records and session files."""

    @staticmethod
    def user(text, timestamp, slug=None, content=None, **extra):
        entry = {
            "type": "user",
            "message": {"role": "user", "content": content if content is not None else [{"type": "text", "text": text}]},
            "timestamp": timestamp,
            "sessionId": "ignored",
            **extra,
        }
        if slug:
            entry["slug"] = slug
        return json.dumps(entry)

    @staticmethod
    def assistant(text, timestamp, input_tokens=0, output_tokens=0, cache_read=0, cache_creation=0):
        return json.dumps({
            "type": "assistant",
            "message": {
                "role": "assistant",
                "content": [{"type": "text", "text": text}],
                "usage": {
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                    "cache_read_input_tokens": cache_read,
                    "cache_creation_input_tokens": cache_creation,
                },
            },
            "timestamp": timestamp,
        })

    @staticmethod
    def tool_result(timestamp):
        return json.dumps({
            "type": "user",
            "message": {"role": "user", "content": [
                {"type": "tool_result", "tool_use_id": "toolu_001", "content": "File edited successfully"},
            ]},
            "timestamp": timestamp,
        })

    @staticmethod
    def write(project_dir: Path, session_id: str, lines: list[str]) -> Path:
        path = project_dir / f"{session_id}.jsonl"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path


@dataclass
class CatalogTree:
    projects: Path
    cache_file: Path
    app_path: Path
    api_path: Path
    gone_path: Path
    app_dir: Path
    api_dir: Path
    gone_dir: Path
    session_a: str = "abc12340-0000-4000-8000-000000000001"
    session_b: str = "abc12341-0000-4000-8000-000000000002"
    session_c: str = "def45678-0000-4000-8000-000000000003"
    session_d: str = "0f1e2d3c-0000-4000-8000-000000000004"


@pytest.fixture
def logs():
    return SessionLogs()


@pytest.fixture
def session_lines(logs):
    """A realistic session: noise, a tool result, a real prompt and two assistant turns."""
    return [
        logs.user("<system-reminder>Remember the rules</system-reminder>", "2025-01-20T10:00:00Z"),
        logs.user("Help me refactor the auth module", "2025-01-20T10:00:05Z", slug="brave-auth-refactor"),
        logs.assistant("Sure, reading it now.", "2025-01-20T10:00:30Z", input_tokens=100, output_tokens=50, cache_read=10),
        logs.tool_result("2025-01-20T10:00:31Z"),
        json.dumps({"type": "file-history-snapshot", "messageId": "m1", "snapshot": {}}),
        "{not valid json",
        "",
        logs.assistant("Done refactoring.", "2025-01-20T10:30:00Z", input_tokens=200, output_tokens=25, cache_creation=5),
        json.dumps({"type": "summary", "summary": "Refactored auth", "leafUuid": "u9"}),
    ]


@pytest.fixture
def catalog_tree(tmp_path, logs, session_lines):
    """Create a synthetic Claude Code projects directory.

    Includes:
    - my-app: two sessions sharing the "abc1234" prefix, one with subagents,
      plus a non-UUID log and a non-log file that must be ignored
    - api: one session
    - gone-project: one session whose original directory was never created
    - an empty project directory, which is filtered out
    """
    work = tmp_path / "work"
    app_path = work / "my-app"
    api_path = work / "api"
    gone_path = work / "gone-project"
    (app_path / "src").mkdir(parents=True)
    api_path.mkdir(parents=True)

    projects = tmp_path / "projects"
    tree = CatalogTree(
        projects=projects,
        cache_file=tmp_path / "cache" / "cache.json",
        app_path=app_path,
        api_path=api_path,
        gone_path=gone_path,
        app_dir=projects / encode_path(str(app_path)),
        api_dir=projects / encode_path(str(api_path)),
        gone_dir=projects / encode_path(str(gone_path)),
    )
    for d in (tree.app_dir, tree.api_dir, tree.gone_dir, projects / encode_path(str(work / "empty"))):
        d.mkdir(parents=True)

    logs.write(tree.app_dir, tree.session_a, session_lines)
    (tree.app_dir / tree.session_a / "subagents").mkdir(parents=True)
    logs.write(tree.app_dir, tree.session_b, [
        logs.user("Write tests for the API", "2025-01-21T09:00:00Z"),
        logs.assistant("Here are the tests.", "2025-01-21T09:45:00Z", input_tokens=10, output_tokens=20),
    ])
    logs.write(tree.app_dir, "not-a-uuid", [logs.user("ignored", "2025-01-22T09:00:00Z")])
    (tree.app_dir / "notes.txt").write_text("not a log", encoding="utf-8")

    logs.write(tree.api_dir, tree.session_c, [
        logs.user("Why is /api/users returning 500?", "2025-01-22T08:00:00Z"),
        logs.assistant("The query is wrong.", "2025-01-22T08:05:00Z", input_tokens=5, output_tokens=5),
    ])

    logs.write(tree.gone_dir, tree.session_d, [
        logs.user("Old work", "2025-01-19T08:00:00Z"),
    ])

    return tree


@pytest.fixture
def catalog_env(catalog_tree, monkeypatch):
    """Point the configured projects and cache paths at the synthetic tree."""
    monkeypatch.setenv("CONVO_CATALOG_PROJECTS_PATH", str(catalog_tree.projects))
    monkeypatch.setenv("CONVO_CATALOG_CACHE_DIR", str(catalog_tree.cache_file.parent))
    return catalog_tree
