"""
Path prefix handling.

The resolver turns caller supplied relative paths into absolute
locations under the adapter root and back again.
"""

import logging
import os
from typing import Optional

from localfs.exceptions import ConfigurationError, LocalFSError
from localfs.native import FileSystemCapability

logger = logging.getLogger(__name__)


class PathTraversalError(LocalFSError):
    """Raised when a relative path would leave the root."""

    pass


def strip_file_scheme(root: str) -> str:
    """Turn a ``file://`` URL into a plain path."""
    if root.startswith("file://"):
        return root[len("file://"):]
    return root


def normalize_relative_path(path: str) -> str:
    """
    Collapse ``.`` and ``..`` segments of a relative path.

    Both separators are accepted; the result is ``/`` separated with no
    leading or trailing separator.

    Raises:
        PathTraversalError: If ``..`` would climb above the root
    """
    parts: list[str] = []
    for segment in path.replace("\\", "/").split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not parts:
                raise PathTraversalError("Path is outside of the defined root", path=path)
            parts.pop()
            continue
        parts.append(segment)
    return "/".join(parts)


class PathResolver:
    """
    Applies and removes the root prefix.

    Usage:
        resolver = PathResolver("/srv/uploads")
        resolver.apply("a/b.txt")            # "/srv/uploads/a/b.txt"
        resolver.remove("/srv/uploads/a/b.txt")  # "a/b.txt"
    """

    def __init__(self, prefix: str = "", separator: str = os.sep):
        self.separator = separator
        self._prefix: Optional[str] = None
        self.set_prefix(prefix)

    @property
    def prefix(self) -> str:
        """The normalized prefix, or an empty string when none is set."""
        return self._prefix or ""

    def set_prefix(self, prefix: str) -> None:
        """Store ``prefix`` terminated by exactly one separator."""
        prefix = str(prefix)
        if prefix == "":
            self._prefix = None
            return
        self._prefix = prefix.rstrip("\\/") + self.separator

    def apply(self, path: str) -> str:
        """Prefix a relative path, using the platform separator for ``/``."""
        prefixed = self.prefix + path.lstrip("\\/")
        return prefixed.replace("/", self.separator)

    def remove(self, path: str) -> str:
        """Strip the prefix from an absolute location."""
        return path[len(self.prefix):]

    def relative(self, location: str) -> str:
        """Relative, ``/`` separated path of an absolute location."""
        return self.remove(location).replace("\\", "/").strip("/")

    @staticmethod
    def resolve_root(
        root: str,
        fs: FileSystemCapability,
        *,
        create: bool = True,
        mode: int = 0o755,
    ) -> str:
        """
        Resolve and validate an adapter root.

        Symbolic links and relative segments are resolved to a real
        absolute path. A missing root is created when ``create`` is set.

        Args:
            root: Root directory as given by the caller
            fs: Filesystem capability used to create the root
            create: Create the root when it does not exist
            mode: Permission bits for a created root

        Returns:
            The real absolute root path

        Raises:
            ConfigurationError: If the root cannot be created or is not a
                readable, writable directory
        """
        resolved = os.path.realpath(os.path.expanduser(strip_file_scheme(str(root))))

        if not os.path.isdir(resolved):
            if not create:
                raise ConfigurationError("Root directory does not exist", path=resolved)
            try:
                fs.mkdir(resolved, mode)
            except OSError as e:
                logger.error(f"Failed to create root directory {resolved}: {e}")
                raise ConfigurationError(
                    f"Impossible to create the root directory: {e.strerror or e}",
                    path=resolved,
                )
            if not os.path.isdir(resolved):
                raise ConfigurationError(
                    "Impossible to create the root directory", path=resolved
                )

        if not os.access(resolved, os.R_OK):
            raise ConfigurationError("The root path is not readable", path=resolved)
        if not os.access(resolved, os.W_OK):
            raise ConfigurationError("The root path is not writable", path=resolved)

        logger.debug(f"Resolved adapter root: {resolved}")
        return resolved
