"""Remote store interface used by the deploy engine."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Protocol


class ResultStatus(str, Enum):
    """Outcome of a single remote call."""

    SUCCESS = "success"
    """The call did what was asked"""

    NOT_FOUND = "not_found"
    """The target path does not exist"""

    OTHER = "other"
    """Any other outcome (server error, transport failure, ...)"""


@dataclass(frozen=True)
class RemoteResult:
    """Tagged result of a remote call.

    ``OTHER`` results are never coerced into success or not-found; callers
    decide per operation which statuses they accept.
    """

    status: ResultStatus
    detail: Any = None
    """Raw diagnostic information (HTTP status and body, error text)"""

    content: Optional[bytes] = None
    """Response body for successful fetches"""

    @classmethod
    def success(cls, content: Optional[bytes] = None) -> "RemoteResult":
        return cls(ResultStatus.SUCCESS, content=content)

    @classmethod
    def not_found(cls, detail: Any = None) -> "RemoteResult":
        return cls(ResultStatus.NOT_FOUND, detail=detail)

    @classmethod
    def other(cls, detail: Any = None) -> "RemoteResult":
        return cls(ResultStatus.OTHER, detail=detail)

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.SUCCESS

    @property
    def missing(self) -> bool:
        return self.status == ResultStatus.NOT_FOUND

    def __str__(self) -> str:
        if self.detail is None:
            return self.status.value
        return f"{self.status.value}: {self.detail}"


class RemoteStore(Protocol):
    """Capability the deploy engine needs from an object store.

    Paths are POSIX paths relative to the bucket root.
    """

    def get_file(self, path: str) -> RemoteResult:
        """Fetch a file; the body is in ``RemoteResult.content``."""
        ...

    def delete_file(self, path: str) -> RemoteResult:
        """Delete a file or an empty directory."""
        ...

    def make_dir(self, path: str) -> RemoteResult:
        """Create a directory."""
        ...

    def put_file(
        self, path: str, content: bytes, content_type: Optional[str] = None
    ) -> RemoteResult:
        """Upload a file, optionally forcing its content type."""
        ...
