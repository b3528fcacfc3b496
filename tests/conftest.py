"""Shared fixtures for pyupyun tests."""

import tempfile
from pathlib import Path
from typing import Optional
from unittest.mock import Mock

import pytest

from pyupyun.output import OutputFormatter
from pyupyun.sync.operations import RemoteResult


class InMemoryStore:
    """Remote store keeping a bucket in memory.

    Behaves like an object store with real directories: removing a
    non-empty directory fails, creating a file or directory requires its
    parent to exist. Every call is recorded in ``calls``.
    """

    def __init__(self, files: Optional[dict[str, bytes]] = None, dirs=()):
        self.files: dict[str, bytes] = dict(files or {})
        self.dirs: set[str] = set(dirs)
        self.content_types: dict[str, Optional[str]] = {}
        self.calls: list[tuple[str, str]] = []

    def _parent_exists(self, path: str) -> bool:
        parent = path.rpartition("/")[0]
        return parent == "" or parent in self.dirs

    def get_file(self, path: str) -> RemoteResult:
        self.calls.append(("get", path))
        if path in self.files:
            return RemoteResult.success(self.files[path])
        return RemoteResult.not_found({"status": 404})

    def delete_file(self, path: str) -> RemoteResult:
        self.calls.append(("delete", path))
        if path in self.files:
            del self.files[path]
            return RemoteResult.success()
        if path in self.dirs:
            prefix = path + "/"
            if any(p.startswith(prefix) for p in list(self.files) + list(self.dirs)):
                return RemoteResult.other({"status": 403, "msg": "not empty"})
            self.dirs.remove(path)
            return RemoteResult.success()
        return RemoteResult.not_found({"status": 404})

    def make_dir(self, path: str) -> RemoteResult:
        self.calls.append(("mkdir", path))
        if not self._parent_exists(path):
            return RemoteResult.other({"status": 404, "msg": "parent missing"})
        self.dirs.add(path)
        return RemoteResult.success()

    def put_file(
        self, path: str, content: bytes, content_type: Optional[str] = None
    ) -> RemoteResult:
        self.calls.append(("put", path))
        if not self._parent_exists(path):
            return RemoteResult.other({"status": 404, "msg": "parent missing"})
        self.files[path] = content
        self.content_types[path] = content_type
        return RemoteResult.success()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_output():
    """Create a mock output formatter."""
    output = Mock(spec=OutputFormatter)
    output.quiet = False
    output.json_output = False
    output.format_size.return_value = "0 B"
    return output


@pytest.fixture
def store():
    """Create an empty in-memory store."""
    return InMemoryStore()
