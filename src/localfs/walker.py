"""
Directory traversal.

Walks directories under the adapter root, maps what it finds to
``Entry`` values and applies the symbolic link policy.
"""

import logging
import os
import stat
from dataclasses import dataclass
from typing import Iterator, Optional

from localfs.exceptions import NotSupportedError, UnreadableFileError
from localfs.models import Entry, EntryType, LinkHandling
from localfs.native import FileSystemCapability, NativeFileSystem
from localfs.paths import PathResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EntryDescriptor:
    """
    What the readability guard knows about an entry.

    Attributes:
        path: Location as found during traversal
        real_path: Resolved location, None when it cannot be resolved
        readable: Whether the current process may read the entry
    """

    path: str
    real_path: Optional[str]
    readable: bool

    @classmethod
    def describe(cls, location: str) -> "EntryDescriptor":
        try:
            real_path: Optional[str] = os.path.realpath(location, strict=True)
        except OSError:
            real_path = None
        return cls(
            path=location,
            real_path=real_path,
            readable=os.access(location, os.R_OK),
        )


def is_readable_entry(entry: EntryDescriptor) -> bool:
    """True when the entry resolves to a real path and is readable."""
    return entry.real_path is not None and entry.readable


def guard_readable(entry: EntryDescriptor) -> None:
    """
    Raises:
        UnreadableFileError: If ``is_readable_entry`` rejects the entry
    """
    if not is_readable_entry(entry):
        logger.error(f"Unreadable entry: {entry.path}")
        raise UnreadableFileError.for_entry(entry.path)


@dataclass(frozen=True)
class _Found:
    location: str
    is_link: bool
    is_dir: bool


class TreeWalker:
    """
    Lists and removes directory trees below the root.

    Symbolic links either abort the traversal (``LinkHandling.DISALLOW``)
    or are left out of listings and unlinked on deletion
    (``LinkHandling.SKIP``). Entries that cannot be read abort the
    traversal with ``UnreadableFileError``.
    """

    def __init__(
        self,
        resolver: PathResolver,
        link_handling: LinkHandling = LinkHandling.DISALLOW,
        fs: Optional[FileSystemCapability] = None,
    ):
        self.resolver = resolver
        self.link_handling = LinkHandling(link_handling)
        self.fs = fs or NativeFileSystem()

    def list(self, directory: str = "", recursive: bool = False) -> list[Entry]:
        """
        List the entries of a directory.

        Args:
            directory: Directory relative to the root ('' for the root)
            recursive: Include every descendant instead of direct children

        Returns:
            Entries of the directory; empty if it does not exist

        Raises:
            NotSupportedError: If a link is found under the disallow policy
            UnreadableFileError: If an entry cannot be read
        """
        location = self.resolver.apply(directory)
        if not os.path.isdir(location):
            return []

        entries = [self._map(found) for found in self.iter_entries(location, recursive)]
        logger.debug(f"Listed {len(entries)} entries in {location}")
        return entries

    def iter_entries(self, location: str, recursive: bool) -> Iterator[_Found]:
        """
        Yield guarded entries below ``location``, parents before children.

        Links are dropped under the skip policy.
        """
        for found in self._scan(location, recursive):
            if self._check(found):
                yield found

    def delete_tree(self, location: str) -> None:
        """
        Remove a directory and everything below it, children first.

        The whole tree is checked before anything is removed, so a
        disallowed link or an unreadable entry leaves it untouched.

        Raises:
            OSError: If a removal fails
            NotSupportedError: If a link is found under the disallow policy
            UnreadableFileError: If an entry cannot be read
        """
        found = list(self._scan(location, recursive=True))
        for item in found:
            self._check(item)

        for item in reversed(found):
            if item.is_dir and not item.is_link:
                self.fs.rmdir(item.location)
            else:
                # links are removed themselves, never their target
                self.fs.unlink(item.location)
        self.fs.rmdir(location)
        logger.debug(f"Deleted {len(found)} entries below {location}")

    def _check(self, found: _Found) -> bool:
        """Apply the link policy and the readability guard."""
        if found.is_link:
            if self.link_handling == LinkHandling.SKIP:
                return False
            logger.error(f"Symbolic link encountered: {found.location}")
            raise NotSupportedError.for_link(found.location)
        guard_readable(EntryDescriptor.describe(found.location))
        return True

    def _scan(self, location: str, recursive: bool) -> Iterator[_Found]:
        try:
            with os.scandir(location) as it:
                children = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.error(f"Cannot read directory {location}: {e}")
            raise UnreadableFileError.for_entry(location)

        for child in children:
            is_link = child.is_symlink()
            is_dir = child.is_dir(follow_symlinks=False)
            yield _Found(location=child.path, is_link=is_link, is_dir=is_dir)
            if recursive and is_dir and not is_link:
                yield from self._scan(child.path, recursive)

    def _map(self, found: _Found) -> Entry:
        info = os.lstat(found.location)
        kind = EntryType.DIR if stat.S_ISDIR(info.st_mode) else EntryType.FILE
        return Entry(
            type=kind,
            path=self.resolver.relative(found.location),
            timestamp=int(info.st_mtime),
            size=info.st_size if kind == EntryType.FILE else None,
        )
