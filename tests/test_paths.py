"""Tests for path prefix handling."""

import os
import tempfile
from pathlib import Path

import pytest

from localfs import (
    ConfigurationError,
    NativeFileSystem,
    PathResolver,
    PathTraversalError,
    normalize_relative_path,
)


class FailingMkdirFileSystem(NativeFileSystem):
    """Refuses to create directories."""

    def mkdir(self, path, mode):
        raise PermissionError(13, "Permission denied", path)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestPathResolver:
    """Tests for PathResolver."""

    def test_prefix_gets_single_trailing_separator(self):
        """Test that the prefix ends with exactly one separator."""
        resolver = PathResolver("/srv/files", separator="/")
        assert resolver.prefix == "/srv/files/"

        resolver.set_prefix("/srv/files///")
        assert resolver.prefix == "/srv/files/"

    def test_apply_and_remove(self):
        """Test applying and removing the prefix."""
        resolver = PathResolver("/srv/files", separator="/")
        assert resolver.apply("a/b.txt") == "/srv/files/a/b.txt"
        assert resolver.apply("/a/b.txt") == "/srv/files/a/b.txt"
        assert resolver.remove("/srv/files/a/b.txt") == "a/b.txt"

    def test_apply_empty_path_returns_prefix(self):
        """Test that an empty relative path maps to the prefix itself."""
        resolver = PathResolver("/srv/files", separator="/")
        assert resolver.apply("") == "/srv/files/"

    def test_empty_prefix_is_identity(self):
        """Test that an empty prefix leaves paths untouched."""
        resolver = PathResolver("/srv/files")
        resolver.set_prefix("")
        path = "some" + os.sep + "path.ext"

        assert resolver.prefix == ""
        assert resolver.apply(path) == path
        assert resolver.remove(path) == path
        assert resolver.apply("") == ""

    def test_drive_letter_prefix(self):
        """Test a drive letter root."""
        resolver = PathResolver(separator="/")
        resolver.set_prefix("c:/")
        path = "some/path.ext"

        prefixed = resolver.apply(path)
        assert prefixed == "c:/some/path.ext"
        assert resolver.remove(prefixed) == path

    def test_mixed_separator_prefix(self):
        """Test a Windows style prefix on a '/' platform."""
        resolver = PathResolver(separator="/")
        resolver.set_prefix("c:\\\\some\\dir\\")
        path = "some/path.ext"

        prefixed = resolver.apply(path)
        assert prefixed == "c:\\\\some\\dir/some/path.ext"
        assert resolver.remove(prefixed) == path

    def test_backslash_platform_separator(self):
        """Test that '/' is translated to a backslash separator."""
        resolver = PathResolver("c:\\data", separator="\\")
        prefixed = resolver.apply("some/path.ext")

        assert prefixed == "c:\\data\\some\\path.ext"
        assert resolver.remove(prefixed) == "some\\path.ext"
        assert resolver.relative(prefixed) == "some/path.ext"

    @pytest.mark.parametrize("prefix", ["", "/srv/files", "c:/", "c:\\\\some\\dir\\"])
    @pytest.mark.parametrize("path", ["file.txt", "a/b/c.txt", "0"])
    def test_prefix_round_trip(self, prefix, path):
        """Test that remove undoes apply and apply undoes remove."""
        resolver = PathResolver(prefix, separator="/")
        assert resolver.remove(resolver.apply(path)) == path
        absolute = resolver.apply(path)
        assert resolver.apply(resolver.remove(absolute)) == absolute

    def test_relative_strips_separators(self):
        """Test that relative paths come back '/' separated."""
        resolver = PathResolver("/srv/files", separator="/")
        assert resolver.relative("/srv/files/dir/") == "dir"


class TestNormalizeRelativePath:
    """Tests for normalize_relative_path."""

    def test_collapses_dots(self):
        """Test collapsing '.' and '..' segments."""
        assert normalize_relative_path("a/./b/../c.txt") == "a/c.txt"
        assert normalize_relative_path("/a//b/") == "a/b"
        assert normalize_relative_path("a\\b\\c.txt") == "a/b/c.txt"

    def test_keeps_zero_segment(self):
        """Test that a segment named '0' survives."""
        assert normalize_relative_path("0") == "0"
        assert normalize_relative_path("0/0") == "0/0"

    def test_empty_path(self):
        """Test that the root is the empty path."""
        assert normalize_relative_path("") == ""
        assert normalize_relative_path("./") == ""

    def test_escape_is_rejected(self):
        """Test that '..' may not climb above the root."""
        with pytest.raises(PathTraversalError):
            normalize_relative_path("../outside.txt")
        with pytest.raises(PathTraversalError):
            normalize_relative_path("a/../../outside.txt")


class TestResolveRoot:
    """Tests for PathResolver.resolve_root."""

    def test_existing_root(self, temp_dir):
        """Test resolving an existing directory."""
        resolved = PathResolver.resolve_root(str(temp_dir), NativeFileSystem())
        assert resolved == os.path.realpath(temp_dir)

    def test_relative_segments_are_resolved(self, temp_dir):
        """Test a root containing '..'."""
        (temp_dir / "files").mkdir()
        root = str(temp_dir / "files" / ".." / "files")

        resolved = PathResolver.resolve_root(root, NativeFileSystem())
        assert resolved == os.path.realpath(temp_dir / "files")

    def test_file_scheme_is_accepted(self, temp_dir):
        """Test a file:// URL root."""
        resolved = PathResolver.resolve_root(f"file://{temp_dir}", NativeFileSystem())
        assert resolved == os.path.realpath(temp_dir)

    @pytest.mark.skipif(os.name == "nt", reason="Symbolic links need privileges on Windows")
    def test_symlinked_root_is_resolved(self, temp_dir):
        """Test that a root given as a link resolves to its target."""
        target = temp_dir / "target"
        target.mkdir()
        link = temp_dir / "link"
        link.symlink_to(target)

        resolved = PathResolver.resolve_root(str(link), NativeFileSystem())
        assert resolved == os.path.realpath(target)

    def test_missing_root_is_created(self, temp_dir):
        """Test creating a missing root with the given mode."""
        root = temp_dir / "new" / "root"
        resolved = PathResolver.resolve_root(str(root), NativeFileSystem(), mode=0o755)

        assert root.is_dir()
        assert resolved == os.path.realpath(root)

    def test_missing_root_without_create(self, temp_dir):
        """Test that a missing root fails when creation is disabled."""
        with pytest.raises(ConfigurationError):
            PathResolver.resolve_root(
                str(temp_dir / "missing"), NativeFileSystem(), create=False
            )

    def test_root_creation_failure(self, temp_dir):
        """Test that a failed root creation is a configuration error."""
        with pytest.raises(ConfigurationError) as exc_info:
            PathResolver.resolve_root(str(temp_dir / "fail"), FailingMkdirFileSystem())
        assert "Impossible to create the root directory" in str(exc_info.value)

    def test_root_is_a_file(self, temp_dir):
        """Test that a file cannot be a root."""
        file_root = temp_dir / "file.txt"
        file_root.write_text("contents")

        with pytest.raises(ConfigurationError):
            PathResolver.resolve_root(str(file_root), NativeFileSystem())

    @pytest.mark.skipif(
        os.name == "nt" or os.geteuid() == 0,
        reason="Permission bits are not enforced for this user",
    )
    def test_not_writable_root(self, temp_dir):
        """Test that a root without write permission is rejected."""
        root = temp_dir / "not-writable"
        root.mkdir(mode=0o500)
        try:
            with pytest.raises(ConfigurationError):
                PathResolver.resolve_root(str(root), NativeFileSystem())
        finally:
            root.chmod(0o700)
