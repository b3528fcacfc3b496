"""Exception classes for pyupyun."""

from typing import Any, Optional


class UpyunError(Exception):
    """Base exception for all pyupyun errors."""


class UpyunConfigError(UpyunError):
    """Required configuration (bucket, operator, password) is missing or invalid."""


class UpyunScanError(UpyunError):
    """Raised when the local output directory cannot be scanned."""

    def __init__(self, path: Any, message: Optional[str] = None):
        self.path = str(path)
        super().__init__(message or f"Failed to scan {self.path}")


class UpyunFetchError(UpyunError):
    """Raised when the persisted remote manifest cannot be retrieved."""

    def __init__(self, path: str, detail: Any = None, message: Optional[str] = None):
        self.path = path
        self.detail = detail
        super().__init__(message or f"Failed to fetch {path}: {detail}")


class UpyunOperationError(UpyunError):
    """A remote operation returned a result that is neither success nor not-found.

    Attributes:
        operation: Name of the deploy phase that issued the call
        path: Remote path the call was made for
        detail: Raw result detail reported by the store
    """

    def __init__(self, operation: str, path: str, detail: Any = None):
        self.operation = operation
        self.path = path
        self.detail = detail
        super().__init__(f"{operation} failed for {path}: {detail}")


class UpyunRetryExhaustedError(UpyunOperationError):
    """Directory removal kept failing after the configured number of attempts."""

    def __init__(self, path: str, detail: Any = None, attempts: int = 0):
        self.attempts = attempts
        super().__init__("remove_dir", path, detail)
        self.args = (
            f"remove_dir failed for {path} after {attempts} attempt(s): {detail}",
        )
