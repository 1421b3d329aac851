"""
Adapter data models.

This module defines the enums and Pydantic models shared by the path
resolver, the tree walker and the adapter.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Visibility(str, Enum):
    """Symbolic permission setting of a file or directory."""

    PUBLIC = "public"
    PRIVATE = "private"


class EntryType(str, Enum):
    """Kind of filesystem object."""

    FILE = "file"
    DIR = "dir"


class LockMode(str, Enum):
    """Locking applied to write handles."""

    NONE = "none"
    EXCLUSIVE = "exclusive"


class LinkHandling(str, Enum):
    """What a traversal does when it meets a symbolic link."""

    DISALLOW = "disallow"
    SKIP = "skip"


class Entry(BaseModel):
    """A single file or directory discovered while listing."""

    model_config = ConfigDict(frozen=True)

    type: EntryType = Field(description="Whether the entry is a file or a directory")
    path: str = Field(description="Path relative to the root, '/' separated")
    timestamp: int = Field(description="Modification time in whole seconds")
    size: Optional[int] = Field(
        default=None, description="Size in bytes (files only)"
    )

    def as_dict(self) -> dict[str, Any]:
        """Return the entry as a metadata map without unset keys."""
        return self.model_dump(mode="json", exclude_none=True)

    def __str__(self) -> str:
        if self.type == EntryType.FILE:
            return f"file {self.path} ({self.size} bytes)"
        return f"dir  {self.path}/"


class StorageAttributes(BaseModel):
    """
    Metadata returned by adapter operations.

    Always carries ``path`` and ``type``; every other field is only
    populated by the operations that report it.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: str = Field(description="Path relative to the root")
    type: EntryType = Field(description="Whether the path is a file or a directory")
    size: Optional[int] = Field(default=None, description="Size in bytes")
    timestamp: Optional[int] = Field(default=None, description="Modification time")
    visibility: Optional[Visibility] = Field(default=None, description="Visibility")
    mimetype: Optional[str] = Field(default=None, description="Detected mime type")
    contents: Optional[bytes] = Field(
        default=None, repr=False, description="File contents (read/write only)"
    )
    stream: Optional[Any] = Field(
        default=None,
        repr=False,
        exclude=True,
        description="Open binary handle (read_stream only, owned by the caller)",
    )

    @classmethod
    def from_entry(cls, entry: Entry) -> "StorageAttributes":
        return cls(
            path=entry.path,
            type=entry.type,
            size=entry.size,
            timestamp=entry.timestamp,
        )

    def as_dict(self) -> dict[str, Any]:
        """Return the populated keys, plus ``stream`` when one is attached."""
        data = self.model_dump(exclude_none=True)
        data["type"] = self.type.value
        if self.visibility is not None:
            data["visibility"] = self.visibility.value
        if self.stream is not None:
            data["stream"] = self.stream
        return data
