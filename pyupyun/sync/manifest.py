"""Tree snapshot of a deployed directory.

A manifest is a list of ``ManifestEntry`` objects describing the children of
the deploy root. The same model describes the freshly scanned local tree and
the state persisted on the remote side after the previous deploy.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from collections.abc import Iterator
from typing import Any, Optional, Union

MANIFEST_FILE_NAME = ".file_list.json"
"""Reserved remote object holding the manifest of the last deploy"""


class EntryKind(str, Enum):
    """Kind of a manifest entry, valued as in the persisted JSON."""

    FILE = "file"
    DIRECTORY = "dir"


@dataclass
class ManifestEntry:
    """A file or directory node in a manifest tree."""

    name: str
    """Basename within the parent directory"""

    kind: EntryKind
    """Whether this entry is a file or a directory"""

    fingerprint: Optional[str] = None
    """Content digest (files only)"""

    children: list["ManifestEntry"] = field(default_factory=list)
    """Child entries (directories only)"""

    @classmethod
    def file(cls, name: str, fingerprint: str) -> "ManifestEntry":
        """Create a file entry."""
        return cls(name=name, kind=EntryKind.FILE, fingerprint=fingerprint)

    @classmethod
    def directory(
        cls, name: str, children: Optional[list["ManifestEntry"]] = None
    ) -> "ManifestEntry":
        """Create a directory entry."""
        return cls(name=name, kind=EntryKind.DIRECTORY, children=children or [])

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.kind == EntryKind.DIRECTORY

    def to_dict(self) -> dict[str, Any]:
        """Convert entry to the persisted JSON shape."""
        if self.is_file:
            return {"name": self.name, "type": "file", "md5sum": self.fingerprint}
        return {
            "name": self.name,
            "type": "dir",
            "subItems": [child.to_dict() for child in self.children],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ManifestEntry":
        """Create an entry from its persisted JSON shape.

        Raises:
            ValueError: If the data does not describe a valid entry
        """
        if not isinstance(data, dict):
            raise ValueError(f"Manifest entry must be an object, got {data!r}")

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError(f"Manifest entry without a name: {data!r}")

        entry_type = data.get("type")
        if entry_type == "file":
            md5sum = data.get("md5sum")
            if not isinstance(md5sum, str):
                raise ValueError(f"File entry {name!r} has no md5sum")
            return cls.file(name, md5sum)
        if entry_type == "dir":
            sub_items = data.get("subItems", [])
            if not isinstance(sub_items, list):
                raise ValueError(f"Directory entry {name!r} has invalid subItems")
            return cls.directory(name, [cls.from_dict(item) for item in sub_items])

        raise ValueError(f"Unknown entry type {entry_type!r} for {name!r}")


def manifest_to_json(entries: list[ManifestEntry]) -> bytes:
    """Serialize a manifest for upload."""
    return json.dumps(
        [entry.to_dict() for entry in entries], separators=(",", ":")
    ).encode("utf-8")


def manifest_from_json(data: Union[bytes, str]) -> list[ManifestEntry]:
    """Parse a persisted manifest.

    The reserved manifest object itself is dropped from the root level if an
    older deploy recorded it.

    Raises:
        ValueError: If the data is not a valid manifest
    """
    try:
        raw = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValueError(f"Manifest is not valid JSON: {e}") from e

    if not isinstance(raw, list):
        raise ValueError("Manifest must be a JSON array")

    entries = [ManifestEntry.from_dict(item) for item in raw]
    return [
        entry
        for entry in entries
        if not (entry.is_file and entry.name == MANIFEST_FILE_NAME)
    ]


def join_path(prefix: str, name: str) -> str:
    """Join a relative POSIX path prefix and a name."""
    return f"{prefix}/{name}" if prefix else name


def path_depth(path: str) -> int:
    """Number of segments in a relative POSIX path."""
    return len(path.split("/"))


def iter_files(entries: list[ManifestEntry], prefix: str = "") -> Iterator[str]:
    """Yield the relative path of every file in a manifest tree."""
    for entry in entries:
        path = join_path(prefix, entry.name)
        if entry.is_file:
            yield path
        else:
            yield from iter_files(entry.children, path)


def count_entries(entries: list[ManifestEntry]) -> tuple[int, int]:
    """Count files and directories in a manifest tree.

    Returns:
        Tuple of (file_count, directory_count)
    """
    files = 0
    dirs = 0
    for entry in entries:
        if entry.is_file:
            files += 1
        else:
            dirs += 1
            sub_files, sub_dirs = count_entries(entry.children)
            files += sub_files
            dirs += sub_dirs
    return files, dirs
