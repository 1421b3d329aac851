"""
localfs - a local filesystem adapter.

This package provides uniform file and directory operations confined to
a root directory, with visibility to permission mapping, symbolic link
policies and explicit success/failure results.
"""

__version__ = "0.1.0"

from localfs.adapter import LocalAdapter

from localfs.config import (
    LocalAdapterConfig,
    LocalFSSettings,
    PermissionMap,
    VisibilityPermissions,
    WriteOptions,
)

from localfs.exceptions import (
    ConfigurationError,
    LocalFSError,
    NotSupportedError,
    OperationFailedError,
    UnreadableFileError,
)

from localfs.models import (
    Entry,
    EntryType,
    LinkHandling,
    LockMode,
    StorageAttributes,
    Visibility,
)

from localfs.mime import detect_mimetype
from localfs.native import FileSystemCapability, NativeFileSystem
from localfs.paths import PathResolver, PathTraversalError, normalize_relative_path
from localfs.results import Failure, FailureKind, Result, Success
from localfs.visibility import VisibilityMapper
from localfs.walker import EntryDescriptor, TreeWalker, guard_readable, is_readable_entry

__all__ = [
    # Version
    "__version__",
    # Adapter
    "LocalAdapter",
    # Configuration
    "LocalAdapterConfig",
    "LocalFSSettings",
    "PermissionMap",
    "VisibilityPermissions",
    "WriteOptions",
    # Exceptions
    "LocalFSError",
    "ConfigurationError",
    "NotSupportedError",
    "UnreadableFileError",
    "OperationFailedError",
    "PathTraversalError",
    # Models
    "Entry",
    "EntryType",
    "LinkHandling",
    "LockMode",
    "StorageAttributes",
    "Visibility",
    # Results
    "Result",
    "Success",
    "Failure",
    "FailureKind",
    # Components
    "PathResolver",
    "normalize_relative_path",
    "VisibilityMapper",
    "TreeWalker",
    "EntryDescriptor",
    "is_readable_entry",
    "guard_readable",
    "FileSystemCapability",
    "NativeFileSystem",
    "detect_mimetype",
]
