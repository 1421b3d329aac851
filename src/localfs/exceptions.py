"""
Exceptions for local filesystem adapter operations.

Routine per-call failures are returned as ``Failure`` results; only
construction problems and traversal faults are raised.
"""

from typing import Optional


class LocalFSError(Exception):
    """Base exception for all adapter errors."""

    def __init__(self, message: str, *, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.message} path='{self.path}'"
        return self.message


class ConfigurationError(LocalFSError):
    """Raised when the adapter root is missing, uncreatable or not writable."""

    pass


class NotSupportedError(LocalFSError):
    """Raised when a traversal meets a symbolic link it may not follow."""

    @classmethod
    def for_link(cls, path: str) -> "NotSupportedError":
        return cls("Links are not supported, encountered link", path=path)


class UnreadableFileError(LocalFSError):
    """Raised when an entry's readability cannot be confirmed."""

    @classmethod
    def for_entry(cls, path: str) -> "UnreadableFileError":
        return cls("Unreadable file encountered", path=path)


class OperationFailedError(LocalFSError):
    """Raised when a failed result is unwrapped."""

    def __init__(self, message: str, *, kind: str, path: Optional[str] = None):
        super().__init__(message, path=path)
        self.kind = kind
