"""Tests for the project scanner."""

import os

import pytest

from convo_catalog import scanner as scanner_module
from convo_catalog.cache import MetadataCache
from convo_catalog.parser import parse_conversation_meta
from convo_catalog.scanner import ProjectScanner, scan_projects


class CountingParser:
    """Wraps the real parser and records which files it was asked to parse."""

    def __init__(self):
        self.calls = []

    def __call__(self, path):
        self.calls.append(path)
        return parse_conversation_meta(path)


def make_scanner(tree, parser=None, **kwargs):
    return ProjectScanner(
        base_path=tree.projects,
        cache=MetadataCache(tree.cache_file),
        parse_meta=parser or parse_conversation_meta,
        **kwargs,
    )


class TestScan:
    @pytest.mark.asyncio
    async def test_projects_sorted_and_empty_ones_dropped(self, catalog_tree):
        result = await make_scanner(catalog_tree).scan()

        names = [p.display_name for p in result.projects]
        assert names == ["api", "my-app", "project"]
        assert result.total_conversations == 4
        assert result.total_size_bytes == sum(p.total_size_bytes for p in result.projects)

    @pytest.mark.asyncio
    async def test_original_paths_are_reconstructed(self, catalog_tree):
        result = await make_scanner(catalog_tree).scan()
        app = next(p for p in result.projects if p.display_name == "my-app")

        assert app.original_path == str(catalog_tree.app_path)
        assert app.directory_path == str(catalog_tree.app_dir)
        assert app.is_deleted is False

    @pytest.mark.asyncio
    async def test_deleted_project_keeps_conversations(self, catalog_tree):
        result = await make_scanner(catalog_tree).scan()
        gone = next(p for p in result.projects if p.encoded_path == catalog_tree.gone_dir.name)

        assert gone.is_deleted is True
        assert [c.session_id for c in gone.conversations] == [catalog_tree.session_d]
        assert gone.conversations[0].first_user_message_preview == "Old work"

    @pytest.mark.asyncio
    async def test_conversations_newest_first_and_non_uuid_ignored(self, catalog_tree):
        result = await make_scanner(catalog_tree).scan()
        app = next(p for p in result.projects if p.display_name == "my-app")

        assert [c.session_id for c in app.conversations] == [catalog_tree.session_b, catalog_tree.session_a]
        assert app.total_conversations == 2

    @pytest.mark.asyncio
    async def test_summary_fields(self, catalog_tree):
        result = await make_scanner(catalog_tree).scan()
        app = next(p for p in result.projects if p.display_name == "my-app")
        conv = next(c for c in app.conversations if c.session_id == catalog_tree.session_a)

        path = catalog_tree.app_dir / f"{catalog_tree.session_a}.jsonl"
        assert conv.file_path == str(path)
        assert conv.file_size_bytes == path.stat().st_size
        assert conv.message_count == 7
        assert conv.duration_ms == 30 * 60 * 1000
        assert conv.total_tokens.input_tokens == 300
        assert conv.slug == "brave-auth-refactor"
        assert conv.has_subagents is True

        other = next(c for c in app.conversations if c.session_id == catalog_tree.session_b)
        assert other.has_subagents is False

    @pytest.mark.asyncio
    async def test_missing_base_path_is_empty(self, tmp_path):
        scanner = ProjectScanner(
            base_path=tmp_path / "nope",
            cache=MetadataCache(tmp_path / "cache.json"),
        )
        result = await scanner.scan()

        assert result.projects == []
        assert result.total_conversations == 0
        assert result.total_size_bytes == 0


class TestCaching:
    @pytest.mark.asyncio
    async def test_second_scan_reuses_cache(self, catalog_tree):
        first = CountingParser()
        await make_scanner(catalog_tree, first).scan()
        assert len(first.calls) == 4
        assert catalog_tree.cache_file.exists()

        second = CountingParser()
        scanner = make_scanner(catalog_tree, second)
        result = await scanner.scan()

        assert second.calls == []
        assert scanner.cache_hits == 4
        assert result.total_conversations == 4

    @pytest.mark.asyncio
    async def test_modified_file_is_reparsed(self, catalog_tree, logs):
        await make_scanner(catalog_tree).scan()

        path = catalog_tree.api_dir / f"{catalog_tree.session_c}.jsonl"
        logs.write(catalog_tree.api_dir, catalog_tree.session_c, [
            logs.user("Rewritten prompt", "2025-02-01T08:00:00Z"),
        ])
        st = path.stat()
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))

        parser = CountingParser()
        result = await make_scanner(catalog_tree, parser).scan()

        assert parser.calls == [str(path)]
        api = next(p for p in result.projects if p.display_name == "api")
        assert api.conversations[0].first_user_message_preview == "Rewritten prompt"

    @pytest.mark.asyncio
    async def test_cache_entries_keyed_by_absolute_path(self, catalog_tree):
        cache = MetadataCache(catalog_tree.cache_file)
        await ProjectScanner(base_path=catalog_tree.projects, cache=cache).scan()

        path = catalog_tree.app_dir / f"{catalog_tree.session_a}.jsonl"
        mtime_ms = path.stat().st_mtime_ns // 1_000_000
        assert cache.get(str(path), mtime_ms) is not None


class TestErrors:
    @pytest.mark.asyncio
    async def test_unexpected_io_error_propagates(self, catalog_tree):
        def failing_parser(path):
            raise PermissionError(f"denied: {path}")

        with pytest.raises(PermissionError):
            await make_scanner(catalog_tree, failing_parser).scan()

    @pytest.mark.asyncio
    async def test_unreadable_project_directory_propagates(self, catalog_tree, monkeypatch):
        real_list_dir = scanner_module._list_dir

        def guarded_list_dir(path):
            if path == str(catalog_tree.api_dir):
                raise PermissionError(f"denied: {path}")
            return real_list_dir(path)

        monkeypatch.setattr(scanner_module, "_list_dir", guarded_list_dir)

        with pytest.raises(PermissionError):
            await make_scanner(catalog_tree).scan()

    @pytest.mark.asyncio
    async def test_malformed_text_block_does_not_abort_scan(self, tmp_path, logs):
        projects = tmp_path / "projects"
        project_dir = projects / "-nowhere-in-particular"
        project_dir.mkdir(parents=True)
        session_id = "9a8b7c6d-0000-4000-8000-000000000005"
        logs.write(project_dir, session_id, [
            logs.user(None, "2025-01-20T10:00:00Z", content=[{"type": "text", "text": None}]),
            logs.user("The real question", "2025-01-20T10:01:00Z"),
        ])

        scanner = ProjectScanner(base_path=projects, cache=MetadataCache(tmp_path / "cache.json"))
        result = await scanner.scan()

        assert result.total_conversations == 1
        conv = result.projects[0].conversations[0]
        assert conv.session_id == session_id
        assert conv.message_count == 2
        assert conv.first_user_message_preview == "The real question"

    @pytest.mark.asyncio
    async def test_file_vanishing_mid_scan_is_skipped(self, catalog_tree):
        def vanishing_parser(path):
            if catalog_tree.session_c in path:
                raise FileNotFoundError(path)
            return parse_conversation_meta(path)

        result = await make_scanner(catalog_tree, vanishing_parser).scan()

        assert "api" not in [p.display_name for p in result.projects]
        assert result.total_conversations == 3

    @pytest.mark.asyncio
    async def test_small_limits_give_same_result(self, catalog_tree):
        wide = await make_scanner(catalog_tree).scan()
        narrow = await make_scanner(catalog_tree, project_limit=1, file_limit=1).scan()

        assert [p.display_name for p in narrow.projects] == [p.display_name for p in wide.projects]
        assert [
            [c.session_id for c in p.conversations] for p in narrow.projects
        ] == [
            [c.session_id for c in p.conversations] for p in wide.projects
        ]


def test_scan_projects_sync_wrapper(catalog_tree):
    result = scan_projects(catalog_tree.projects, MetadataCache(catalog_tree.cache_file))
    assert result.total_conversations == 4
