"""
Operation outcomes.

Adapter operations return either ``Success`` wrapping their payload or
``Failure`` describing what went wrong. ``Success`` is truthy and
``Failure`` is falsy, so ``if adapter.delete(path):`` reads naturally.

Example:
    ```python
    match adapter.read("notes.txt"):
        case Success(value=attrs):
            print(attrs.contents)
        case Failure(kind=kind, detail=detail):
            print(f"read failed ({kind.value}): {detail}")
    ```
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

from localfs.exceptions import OperationFailedError

T = TypeVar("T")


class FailureKind(str, Enum):
    """Why an operation failed."""

    NOT_FOUND = "not_found"
    OPEN_FAILED = "open_failed"
    WRITE_FAILED = "write_failed"
    CLOSE_FAILED = "close_failed"
    READ_FAILED = "read_failed"
    CHMOD_FAILED = "chmod_failed"
    MKDIR_FAILED = "mkdir_failed"
    COPY_FAILED = "copy_failed"
    RENAME_FAILED = "rename_failed"
    DELETE_FAILED = "delete_failed"


@dataclass(frozen=True)
class Success(Generic[T]):
    """A completed operation and its payload."""

    value: T

    ok = True

    def __bool__(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Failure:
    """
    A routine, expected failure.

    Attributes:
        kind: Category of the failure
        path: Relative path the operation was working on
        detail: Human readable reason (usually the OS error text)
    """

    kind: FailureKind
    path: str
    detail: Optional[str] = None

    ok = False

    def __bool__(self) -> bool:
        return False

    def unwrap(self):
        raise OperationFailedError(
            self.detail or f"Operation failed: {self.kind.value}",
            kind=self.kind.value,
            path=self.path,
        )

    def __str__(self) -> str:
        if self.detail:
            return f"{self.kind.value}: {self.path} ({self.detail})"
        return f"{self.kind.value}: {self.path}"


Result = Union[Success[T], Failure]
