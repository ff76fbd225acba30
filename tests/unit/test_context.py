"""Tests for ollamachat.chat.context."""

from pathlib import Path

from ollamachat.chat.context import WorkspaceContext, build_workspace_context


class TestBuildWorkspaceContext:
    def test_relative_paths_and_content(self, tmp_path: Path):
        (tmp_path / "src").mkdir()
        f = tmp_path / "src" / "app.py"
        f.write_text("print('hi')", encoding="utf-8")

        ctx = build_workspace_context(tmp_path, [f])
        assert ctx == "File: src/app.py\nContent:\nprint('hi')\n"

    def test_multiple_files_joined(self, tmp_path: Path):
        a = tmp_path / "a.txt"
        b = tmp_path / "b.txt"
        a.write_text("A", encoding="utf-8")
        b.write_text("B", encoding="utf-8")

        ctx = build_workspace_context(tmp_path, [a, b])
        assert ctx == "File: a.txt\nContent:\nA\n\nFile: b.txt\nContent:\nB\n"

    def test_files_outside_workspace_skipped(self, tmp_path: Path):
        root = tmp_path / "project"
        root.mkdir()
        outside = tmp_path / "secret.txt"
        outside.write_text("nope", encoding="utf-8")

        assert build_workspace_context(root, [outside]) == ""

    def test_unreadable_file_skipped(self, tmp_path: Path):
        missing = tmp_path / "gone.py"
        assert build_workspace_context(tmp_path, [missing]) == ""

    def test_no_workspace(self, tmp_path: Path):
        f = tmp_path / "a.txt"
        f.write_text("A", encoding="utf-8")
        assert build_workspace_context(None, [f]) == ""


class TestWorkspaceContext:
    def test_reads_files_on_each_call(self, tmp_path: Path):
        f = tmp_path / "notes.md"
        f.write_text("v1", encoding="utf-8")
        provider = WorkspaceContext(tmp_path, [f])
        assert "v1" in provider()

        f.write_text("v2", encoding="utf-8")
        assert "v2" in provider()
