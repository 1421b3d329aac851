"""Native filesystem capability.

The adapter performs every mutating syscall through a
``FileSystemCapability`` so tests can substitute an implementation that
fails on demand. ``NativeFileSystem`` wraps the ``os`` and ``shutil``
calls and satisfies the protocol structurally.
"""

from __future__ import annotations

import os
import shutil
from typing import BinaryIO, Protocol, runtime_checkable

try:
    import fcntl
except ImportError:  # Windows
    fcntl = None


@runtime_checkable
class FileSystemCapability(Protocol):
    """Syscalls used by the adapter. Failures raise ``OSError``."""

    def open(self, path: str, mode: str) -> BinaryIO:
        """Open a binary handle."""
        ...

    def close(self, handle: BinaryIO) -> None:
        """Flush and release a handle."""
        ...

    def lock(self, handle: BinaryIO) -> None:
        """Take an exclusive advisory lock on an open handle."""
        ...

    def chmod(self, path: str, mode: int) -> None:
        """Change permission bits."""
        ...

    def mkdir(self, path: str, mode: int) -> None:
        """Create a directory and any missing parents."""
        ...

    def unlink(self, path: str) -> None:
        """Remove a file or a symbolic link."""
        ...

    def rmdir(self, path: str) -> None:
        """Remove an empty directory."""
        ...

    def rename(self, src: str, dst: str) -> None:
        """Move a file or directory."""
        ...

    def copy(self, src: str, dst: str) -> None:
        """Copy file contents."""
        ...


class NativeFileSystem:
    """Production implementation backed by ``os`` and ``shutil``."""

    def open(self, path: str, mode: str) -> BinaryIO:
        return open(path, mode)

    def close(self, handle: BinaryIO) -> None:
        handle.close()

    def lock(self, handle: BinaryIO) -> None:
        if fcntl is not None:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(path, mode)

    def mkdir(self, path: str, mode: int) -> None:
        os.makedirs(path, mode, exist_ok=True)
        # makedirs applies the umask
        os.chmod(path, mode)

    def unlink(self, path: str) -> None:
        os.unlink(path)

    def rmdir(self, path: str) -> None:
        os.rmdir(path)

    def rename(self, src: str, dst: str) -> None:
        os.replace(src, dst)

    def copy(self, src: str, dst: str) -> None:
        shutil.copyfile(src, dst)
