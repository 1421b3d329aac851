"""Tests for the localfs command-line interface."""

import json
import os
import stat
import tempfile
from pathlib import Path

import pytest
from click.testing import CliRunner

from localfs.cli import cli


@pytest.fixture
def root():
    """Create a temporary root directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(os.path.realpath(tmpdir))


@pytest.fixture
def runner(monkeypatch):
    """Create a CLI runner without an ambient root."""
    monkeypatch.delenv("LOCALFS_ROOT", raising=False)
    return CliRunner()


def invoke(runner, root, *args, **kwargs):
    return runner.invoke(cli, ["--root", str(root), *args], **kwargs)


class TestCommands:
    """Tests for the individual commands."""

    def test_put_from_stdin_and_cat(self, runner, root):
        """Test writing from stdin and reading it back."""
        result = invoke(runner, root, "put", "notes/a.txt", input=b"hello")
        assert result.exit_code == 0
        assert (root / "notes" / "a.txt").read_bytes() == b"hello"

        result = invoke(runner, root, "cat", "notes/a.txt")
        assert result.exit_code == 0
        assert result.stdout_bytes == b"hello"

    def test_put_from_file(self, runner, root):
        """Test writing a local file with a visibility."""
        with tempfile.NamedTemporaryFile(delete=False) as source:
            source.write(b"from file")
        try:
            result = invoke(
                runner, root, "put", "b.txt", source.name, "--visibility", "private"
            )
        finally:
            os.unlink(source.name)

        assert result.exit_code == 0
        assert (root / "b.txt").read_bytes() == b"from file"
        if os.name != "nt":
            assert stat.S_IMODE((root / "b.txt").stat().st_mode) == 0o600

    def test_ls(self, runner, root):
        """Test listing the root."""
        (root / "dir").mkdir()
        (root / "dir" / "x.txt").write_text("x")
        (root / "top.txt").write_text("top")

        result = invoke(runner, root, "ls")
        assert result.exit_code == 0
        assert "top.txt" in result.stdout
        assert "2 entries" in result.stdout

        result = invoke(runner, root, "ls", "-R")
        assert "3 entries" in result.stdout

    def test_stat(self, runner, root):
        """Test showing metadata of a file."""
        (root / "file.txt").write_text("contents")
        result = invoke(runner, root, "stat", "file.txt")
        assert result.exit_code == 0
        assert "text/plain" in result.stdout
        assert "size" in result.stdout

    def test_mkdir_mv_cp_rm_rmdir(self, runner, root):
        """Test a sequence of tree changes."""
        assert invoke(runner, root, "mkdir", "dir").exit_code == 0
        (root / "dir" / "a.txt").write_text("a")

        assert invoke(runner, root, "cp", "dir/a.txt", "dir/b.txt").exit_code == 0
        assert invoke(runner, root, "mv", "dir/b.txt", "other/c.txt").exit_code == 0
        assert (root / "other" / "c.txt").read_text() == "a"

        assert invoke(runner, root, "rm", "other/c.txt").exit_code == 0
        assert invoke(runner, root, "rmdir", "dir").exit_code == 0
        assert not (root / "dir").exists()

    @pytest.mark.skipif(os.name == "nt", reason="Visibility not supported on Windows")
    def test_chmod(self, runner, root):
        """Test changing the visibility of a file."""
        (root / "file.txt").write_text("contents")
        result = invoke(runner, root, "chmod", "file.txt", "private")
        assert result.exit_code == 0
        assert stat.S_IMODE((root / "file.txt").stat().st_mode) == 0o600


class TestExitCodes:
    """Tests for failure reporting."""

    def test_failure_exits_with_one(self, runner, root):
        """Test that a failed operation exits with status 1."""
        result = invoke(runner, root, "cat", "missing.txt")
        assert result.exit_code == 1

    def test_traversal_exits_with_two(self, runner, root):
        """Test that an escaping path is an error."""
        result = invoke(runner, root, "cat", "../outside.txt")
        assert result.exit_code == 2

    def test_missing_root_exits_with_two(self, runner):
        """Test that running without a root is an error."""
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["ls"])
        assert result.exit_code == 2

    def test_root_from_environment(self, runner, root):
        """Test reading the root from LOCALFS_ROOT."""
        (root / "file.txt").write_text("contents")
        result = runner.invoke(cli, ["ls"], env={"LOCALFS_ROOT": str(root)})
        assert result.exit_code == 0
        assert "file.txt" in result.stdout

    def test_config_file(self, runner, root):
        """Test reading the root from a configuration file."""
        (root / "file.txt").write_text("contents")
        with runner.isolated_filesystem():
            Path("localfs.json").write_text(json.dumps({"root": str(root)}))
            result = runner.invoke(cli, ["--config", "localfs.json", "ls"])
        assert result.exit_code == 0
        assert "file.txt" in result.stdout
