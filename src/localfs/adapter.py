"""
Local filesystem adapter.

Confines every operation to a root directory and reports routine
failures as ``Failure`` results instead of raising.
"""

import logging
import os
import shutil
import stat
import tempfile
from collections.abc import Mapping
from typing import Any, BinaryIO, Callable, Optional, Union

from pydantic import ValidationError

from localfs.config import LocalAdapterConfig, PermissionMap, WriteOptions
from localfs.exceptions import ConfigurationError
from localfs.mime import SNIFF_BYTES, detect_mimetype
from localfs.models import (
    Entry,
    EntryType,
    LinkHandling,
    LockMode,
    StorageAttributes,
    Visibility,
)
from localfs.native import FileSystemCapability, NativeFileSystem
from localfs.paths import PathResolver, normalize_relative_path
from localfs.results import Failure, FailureKind, Result, Success
from localfs.visibility import VisibilityMapper
from localfs.walker import TreeWalker

logger = logging.getLogger(__name__)

# Stream sources larger than this are buffered on disk
SPOOL_MAX_SIZE = 8 * 1024 * 1024

Options = Union[WriteOptions, Mapping[str, Any], None]


class LocalAdapter:
    """
    Filesystem operations confined to a root directory.

    Usage:
        adapter = LocalAdapter("/srv/uploads", link_handling=LinkHandling.SKIP)

        adapter.write("reports/q1.txt", b"...", {"visibility": "private"})
        result = adapter.read("reports/q1.txt")
        if result:
            print(result.value.contents)
        else:
            print(f"read failed: {result}")

        for entry in adapter.list_contents("reports", recursive=True):
            print(entry.type.value, entry.path)
    """

    def __init__(
        self,
        root: Union[str, os.PathLike],
        lock_mode: LockMode = LockMode.EXCLUSIVE,
        link_handling: LinkHandling = LinkHandling.DISALLOW,
        permissions: Union[PermissionMap, Mapping[str, Any], None] = None,
        *,
        default_visibility: Visibility = Visibility.PUBLIC,
        unknown_visibility: Visibility = Visibility.PUBLIC,
        create_root: bool = True,
        fs: Optional[FileSystemCapability] = None,
    ):
        """
        Initialize the adapter.

        Args:
            root: Root directory; symbolic links are resolved
            lock_mode: Lock applied to write handles
            link_handling: Whether listings fail on or skip symbolic links
            permissions: Overrides for the visibility permission table
            default_visibility: Visibility used when a call gives none
            unknown_visibility: Reported for bits missing from the table
            create_root: Create a missing root directory
            fs: Filesystem capability (defaults to ``NativeFileSystem``)

        Raises:
            ConfigurationError: If the root cannot be created or is not a
                readable, writable directory, or the permission table is invalid
        """
        self.fs = fs or NativeFileSystem()
        if not isinstance(permissions, PermissionMap):
            try:
                permissions = PermissionMap.model_validate(dict(permissions or {}))
            except ValidationError as e:
                raise ConfigurationError(f"Invalid permission table: {e}") from e
        self.lock_mode = LockMode(lock_mode)
        self.link_handling = LinkHandling(link_handling)
        self.default_visibility = Visibility(default_visibility)
        self.visibility = VisibilityMapper(
            permissions, self.fs, Visibility(unknown_visibility)
        )

        resolved = PathResolver.resolve_root(
            str(root),
            self.fs,
            create=create_root,
            mode=self.visibility.permissions_for(EntryType.DIR, self.default_visibility),
        )
        self.resolver = PathResolver(resolved)
        self.walker = TreeWalker(self.resolver, self.link_handling, self.fs)
        logger.debug(
            f"Local adapter ready at {resolved} "
            f"(lock={self.lock_mode.value}, links={self.link_handling.value})"
        )

    @classmethod
    def from_config(
        cls, config: LocalAdapterConfig, fs: Optional[FileSystemCapability] = None
    ) -> "LocalAdapter":
        return cls(
            config.root,
            config.lock_mode,
            config.link_handling,
            config.permissions,
            default_visibility=config.default_visibility,
            unknown_visibility=config.unknown_visibility,
            create_root=config.create_root,
            fs=fs,
        )

    # Path prefix

    @property
    def path_prefix(self) -> str:
        return self.resolver.prefix

    def set_path_prefix(self, prefix: str) -> None:
        self.resolver.set_prefix(prefix)

    def apply_path_prefix(self, path: str) -> str:
        return self.resolver.apply(path)

    def remove_path_prefix(self, path: str) -> str:
        return self.resolver.remove(path)

    # Writing

    def write(self, path: str, contents: Union[bytes, str], options: Options = None) -> Result:
        """
        Write ``contents`` to a file, creating parent directories.

        Returns:
            Success with ``path``, ``type``, ``size`` and ``contents``
            (and ``visibility`` when one was given), or Failure
        """
        return self._write_bytes(path, contents, options, "wb")

    def update(self, path: str, contents: Union[bytes, str], options: Options = None) -> Result:
        """Overwrite a file; behaves exactly like ``write``."""
        return self.write(path, contents, options)

    def append(self, path: str, contents: Union[bytes, str], options: Options = None) -> Result:
        """Append ``contents`` to a file, creating it when missing."""
        return self._write_bytes(path, contents, options, "ab")

    def write_stream(self, path: str, source: BinaryIO, options: Options = None) -> Result:
        """
        Copy a readable binary handle into a file.

        ``source`` is read from its current position and is not closed.
        It is read completely before the destination is opened, so a
        failing source leaves an existing file unchanged.
        """
        options = WriteOptions.coerce(options)
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)

        if not callable(getattr(source, "read", None)):
            return self._failure(FailureKind.READ_FAILED, relative, "Source is not readable")

        with tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE) as spool:
            try:
                shutil.copyfileobj(source, spool)
            except (OSError, ValueError, TypeError) as e:
                return self._os_failure(FailureKind.READ_FAILED, relative, e)
            spool.seek(0)

            failure = self._ensure_directory(relative, os.path.dirname(location))
            if failure is not None:
                return failure

            failure = self._with_write_handle(
                relative, location, "wb", lambda handle: shutil.copyfileobj(spool, handle)
            )
            if failure is not None:
                return failure

        attrs = StorageAttributes(path=relative, type=EntryType.FILE)
        return self._apply_write_visibility(relative, location, attrs, options)

    def update_stream(self, path: str, source: BinaryIO, options: Options = None) -> Result:
        """Overwrite a file from a stream; behaves exactly like ``write_stream``."""
        return self.write_stream(path, source, options)

    # Reading

    def read(self, path: str) -> Result:
        """Read a whole file."""
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)

        try:
            handle = self.fs.open(location, "rb")
        except OSError as e:
            return self._os_failure(FailureKind.OPEN_FAILED, relative, e)

        contents = b""
        read_error: Optional[Exception] = None
        try:
            contents = handle.read()
        except OSError as e:
            read_error = e
        finally:
            close_error = self._close(handle)

        if read_error is not None:
            return self._os_failure(FailureKind.READ_FAILED, relative, read_error)
        if close_error is not None:
            return self._os_failure(FailureKind.CLOSE_FAILED, relative, close_error)

        logger.debug(f"Read {len(contents)} bytes from {location}")
        return Success(
            StorageAttributes(
                path=relative, type=EntryType.FILE, contents=contents, size=len(contents)
            )
        )

    def read_stream(self, path: str) -> Result:
        """
        Open a file for reading.

        The caller owns ``value.stream`` and must close it.
        """
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)

        try:
            handle = self.fs.open(location, "rb")
        except OSError as e:
            return self._os_failure(FailureKind.OPEN_FAILED, relative, e)

        return Success(StorageAttributes(path=relative, type=EntryType.FILE, stream=handle))

    def has(self, path: str) -> bool:
        """True when the path exists as a file or a directory."""
        return os.path.exists(self._location(path))

    def list_contents(self, directory: str = "", recursive: bool = False) -> list[Entry]:
        """
        List a directory below the root.

        Raises:
            NotSupportedError: If a link is found under the disallow policy
            UnreadableFileError: If an entry cannot be read
        """
        return self.walker.list(normalize_relative_path(directory), recursive)

    # Deleting, copying, moving

    def delete(self, path: str) -> Result:
        """Remove a file."""
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)
        try:
            self.fs.unlink(location)
        except OSError as e:
            return self._os_failure(FailureKind.DELETE_FAILED, relative, e)
        logger.debug(f"Deleted {location}")
        return Success(StorageAttributes(path=relative, type=EntryType.FILE))

    def delete_dir(self, path: str) -> Result:
        """
        Remove a directory and all of its contents, children first.

        Raises:
            NotSupportedError: If a link is found under the disallow policy
            UnreadableFileError: If an entry cannot be read
        """
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)

        if relative == "":
            return self._failure(
                FailureKind.DELETE_FAILED, relative, "Refusing to delete the root directory"
            )
        if not os.path.isdir(location) or os.path.islink(location):
            return self._failure(FailureKind.NOT_FOUND, relative, "Directory not found")

        try:
            self.walker.delete_tree(location)
        except OSError as e:
            return self._os_failure(FailureKind.DELETE_FAILED, relative, e)
        return Success(StorageAttributes(path=relative, type=EntryType.DIR))

    def create_dir(self, path: str, options: Options = None) -> Result:
        """
        Create a directory and any missing parents.

        An explicit visibility is also applied to an existing directory.
        """
        options = WriteOptions.coerce(options)
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)
        visibility = options.visibility or self.default_visibility

        if not os.path.isdir(location):
            mode = self.visibility.permissions_for(EntryType.DIR, visibility)
            try:
                self.fs.mkdir(location, mode)
            except OSError as e:
                return self._os_failure(FailureKind.MKDIR_FAILED, relative, e)
            if not os.path.isdir(location):
                return self._failure(FailureKind.MKDIR_FAILED, relative, "Directory was not created")
            logger.debug(f"Created directory {location} ({mode:04o})")
        elif options.visibility is not None:
            if not self.visibility.apply(location, EntryType.DIR, options.visibility):
                return self._failure(
                    FailureKind.CHMOD_FAILED,
                    relative,
                    f"Could not set visibility to {options.visibility.value}",
                )

        return Success(StorageAttributes(path=relative, type=EntryType.DIR))

    def copy(self, path: str, newpath: str) -> Result:
        """Duplicate a file, creating the destination's parent directory."""
        relative = normalize_relative_path(path)
        destination_relative = normalize_relative_path(newpath)
        location = self.resolver.apply(relative)
        destination = self.resolver.apply(destination_relative)

        if not os.path.lexists(location):
            return self._failure(FailureKind.NOT_FOUND, relative, "Source not found")

        failure = self._ensure_directory(destination_relative, os.path.dirname(destination))
        if failure is not None:
            return failure

        try:
            self.fs.copy(location, destination)
        except OSError as e:
            return self._os_failure(FailureKind.COPY_FAILED, relative, e)
        logger.debug(f"Copied {location} to {destination}")
        return Success(StorageAttributes(path=destination_relative, type=EntryType.FILE))

    def rename(self, path: str, newpath: str) -> Result:
        """Move a file or directory, creating the destination's parent directory."""
        relative = normalize_relative_path(path)
        destination_relative = normalize_relative_path(newpath)
        location = self.resolver.apply(relative)
        destination = self.resolver.apply(destination_relative)
        kind = EntryType.DIR if os.path.isdir(location) else EntryType.FILE

        if not os.path.lexists(location):
            return self._failure(FailureKind.NOT_FOUND, relative, "Source not found")

        failure = self._ensure_directory(destination_relative, os.path.dirname(destination))
        if failure is not None:
            return failure

        try:
            self.fs.rename(location, destination)
        except OSError as e:
            return self._os_failure(FailureKind.RENAME_FAILED, relative, e)
        logger.debug(f"Renamed {location} to {destination}")
        return Success(StorageAttributes(path=destination_relative, type=kind))

    # Metadata

    def get_metadata(self, path: str) -> Result:
        """Type, size (files only) and timestamp of a path."""
        relative = normalize_relative_path(path)
        try:
            info = os.stat(self.resolver.apply(relative))
        except OSError as e:
            return self._os_failure(FailureKind.READ_FAILED, relative, e)

        kind = EntryType.DIR if stat.S_ISDIR(info.st_mode) else EntryType.FILE
        return Success(
            StorageAttributes(
                path=relative,
                type=kind,
                timestamp=int(info.st_mtime),
                size=info.st_size if kind == EntryType.FILE else None,
            )
        )

    def get_size(self, path: str) -> Result:
        return self._metadata_field(path, "size")

    def get_timestamp(self, path: str) -> Result:
        return self._metadata_field(path, "timestamp")

    def get_mimetype(self, path: str) -> Result:
        """Mime type by content, falling back to the file extension."""
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)

        if os.path.isdir(location):
            return self._failure(FailureKind.READ_FAILED, relative, "Path is a directory")

        try:
            with open(location, "rb") as f:
                head = f.read(SNIFF_BYTES)
        except OSError as e:
            return self._os_failure(FailureKind.READ_FAILED, relative, e)

        return Success(
            StorageAttributes(
                path=relative,
                type=EntryType.FILE,
                mimetype=detect_mimetype(location, head),
            )
        )

    def get_visibility(self, path: str) -> Result:
        relative = normalize_relative_path(path)
        try:
            info = os.stat(self.resolver.apply(relative))
        except OSError as e:
            return self._os_failure(FailureKind.READ_FAILED, relative, e)

        kind = EntryType.DIR if stat.S_ISDIR(info.st_mode) else EntryType.FILE
        return Success(
            StorageAttributes(
                path=relative,
                type=kind,
                visibility=self.visibility.visibility_for(kind, info.st_mode),
            )
        )

    def set_visibility(self, path: str, visibility: Union[Visibility, str]) -> Result:
        """Apply the permission bits mapped to ``visibility``."""
        visibility = Visibility(visibility)
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)
        kind = EntryType.DIR if os.path.isdir(location) else EntryType.FILE

        if not self.visibility.apply(location, kind, visibility):
            if not os.path.lexists(location):
                return self._failure(FailureKind.NOT_FOUND, relative, "Path not found")
            return self._failure(
                FailureKind.CHMOD_FAILED,
                relative,
                f"Could not set visibility to {visibility.value}",
            )

        return Success(StorageAttributes(path=relative, type=kind, visibility=visibility))

    # Helpers

    def _location(self, path: str) -> str:
        return self.resolver.apply(normalize_relative_path(path))

    def _metadata_field(self, path: str, field: str) -> Result:
        result = self.get_metadata(path)
        if not result:
            return result
        attrs = result.value
        return Success(
            StorageAttributes(path=attrs.path, type=attrs.type, **{field: getattr(attrs, field)})
        )

    def _write_bytes(
        self, path: str, contents: Union[bytes, str], options: Options, mode: str
    ) -> Result:
        options = WriteOptions.coerce(options)
        relative = normalize_relative_path(path)
        location = self.resolver.apply(relative)
        if isinstance(contents, str):
            contents = contents.encode("utf-8")

        failure = self._ensure_directory(relative, os.path.dirname(location))
        if failure is not None:
            return failure

        failure = self._with_write_handle(
            relative, location, mode, lambda handle: handle.write(contents)
        )
        if failure is not None:
            return failure

        size = len(contents) if mode == "wb" else os.path.getsize(location)
        logger.debug(f"Wrote {len(contents)} bytes to {location}")
        attrs = StorageAttributes(
            path=relative, type=EntryType.FILE, size=size, contents=contents
        )
        return self._apply_write_visibility(relative, location, attrs, options)

    def _with_write_handle(
        self,
        relative: str,
        location: str,
        mode: str,
        writer: Callable[[BinaryIO], Any],
    ) -> Optional[Failure]:
        """
        Open ``location``, run ``writer`` on the handle and close it.

        The handle is closed on every path. A failing close fails the
        whole write even when the bytes were written.
        """
        try:
            handle = self.fs.open(location, mode)
        except OSError as e:
            return self._os_failure(FailureKind.OPEN_FAILED, relative, e)

        write_error: Optional[Exception] = None
        try:
            if self.lock_mode == LockMode.EXCLUSIVE:
                self.fs.lock(handle)
            writer(handle)
        except (OSError, ValueError, TypeError) as e:
            write_error = e
        finally:
            close_error = self._close(handle)

        if write_error is not None:
            return self._os_failure(FailureKind.WRITE_FAILED, relative, write_error)
        if close_error is not None:
            return self._os_failure(FailureKind.CLOSE_FAILED, relative, close_error)
        return None

    def _close(self, handle: BinaryIO) -> Optional[OSError]:
        try:
            self.fs.close(handle)
        except OSError as e:
            return e
        return None

    def _apply_write_visibility(
        self,
        relative: str,
        location: str,
        attrs: StorageAttributes,
        options: WriteOptions,
    ) -> Result:
        if options.visibility is not None:
            if not self.visibility.apply(location, EntryType.FILE, options.visibility):
                return self._failure(
                    FailureKind.CHMOD_FAILED,
                    relative,
                    f"Could not set visibility to {options.visibility.value}",
                )
            attrs.visibility = options.visibility
        else:
            # best effort
            self.visibility.apply(location, EntryType.FILE, self.default_visibility)
        return Success(attrs)

    def _ensure_directory(self, relative: str, directory: str) -> Optional[Failure]:
        if os.path.isdir(directory):
            return None
        mode = self.visibility.permissions_for(EntryType.DIR, self.default_visibility)
        try:
            self.fs.mkdir(directory, mode)
        except OSError as e:
            return self._os_failure(FailureKind.MKDIR_FAILED, relative, e)
        return None

    def _failure(self, kind: FailureKind, relative: str, detail: str) -> Failure:
        failure = Failure(kind=kind, path=relative, detail=detail)
        logger.warning(f"Operation failed: {failure}")
        return failure

    def _os_failure(self, kind: FailureKind, relative: str, error: Exception) -> Failure:
        """Map an OS error to a failure, reporting missing paths as NOT_FOUND."""
        if isinstance(error, FileNotFoundError):
            kind = FailureKind.NOT_FOUND
        detail = getattr(error, "strerror", None) or str(error)
        return self._failure(kind, relative, detail)
