"""Diff of a remote manifest against a freshly scanned local manifest."""

from dataclasses import dataclass, field

from .manifest import ManifestEntry, join_path, path_depth


@dataclass
class DiffResult:
    """Operations needed to turn the remote tree into the local tree.

    All paths are POSIX paths relative to the deploy root.
    """

    files_to_remove: list[str] = field(default_factory=list)
    """Files only present remotely"""

    files_to_put: list[str] = field(default_factory=list)
    """Files that are new or whose content changed"""

    dirs_to_remove: list[str] = field(default_factory=list)
    """Directories only present remotely, deepest first"""

    dirs_to_make: list[str] = field(default_factory=list)
    """Directories only present locally, shallowest first"""

    @property
    def is_empty(self) -> bool:
        """True when the remote tree already matches the local tree."""
        return self.total == 0

    @property
    def total(self) -> int:
        """Total number of remote operations."""
        return (
            len(self.files_to_remove)
            + len(self.files_to_put)
            + len(self.dirs_to_remove)
            + len(self.dirs_to_make)
        )

    def prefixed(self, prefix: str) -> "DiffResult":
        """Return a copy with every path placed under ``prefix``."""
        return DiffResult(
            files_to_remove=[join_path(prefix, p) for p in self.files_to_remove],
            files_to_put=[join_path(prefix, p) for p in self.files_to_put],
            dirs_to_remove=[join_path(prefix, p) for p in self.dirs_to_remove],
            dirs_to_make=[join_path(prefix, p) for p in self.dirs_to_make],
        )

    def merge(self, other: "DiffResult") -> None:
        """Append the operations of ``other`` to this result."""
        self.files_to_remove.extend(other.files_to_remove)
        self.files_to_put.extend(other.files_to_put)
        self.dirs_to_remove.extend(other.dirs_to_remove)
        self.dirs_to_make.extend(other.dirs_to_make)

    def to_dict(self) -> dict[str, list[str]]:
        return {
            "files_to_remove": list(self.files_to_remove),
            "files_to_put": list(self.files_to_put),
            "dirs_to_remove": list(self.dirs_to_remove),
            "dirs_to_make": list(self.dirs_to_make),
        }


def compute_diff(
    remote: list[ManifestEntry], local: list[ManifestEntry]
) -> DiffResult:
    """Compare the children of the remote root against the local root.

    Directory lists are ordered so that they can be applied one by one:
    ``dirs_to_make`` by ascending depth (a parent exists before anything
    inside it is created) and ``dirs_to_remove`` by descending depth (a
    directory is emptied before it is removed).

    Args:
        remote: Entries recorded by the previous deploy
        local: Entries of the freshly scanned output directory

    Returns:
        DiffResult with the operations to apply

    Examples:
        >>> remote = [ManifestEntry.directory("old")]
        >>> local = [ManifestEntry.file("index.html", "abc")]
        >>> diff = compute_diff(remote, local)
        >>> diff.files_to_put, diff.dirs_to_remove
        (['index.html'], ['old'])
    """
    result = _diff_level(remote, local)
    result.dirs_to_make.sort(key=path_depth)
    result.dirs_to_remove.sort(key=path_depth, reverse=True)
    return result


def _diff_level(
    remote: list[ManifestEntry], local: list[ManifestEntry]
) -> DiffResult:
    """Diff one directory level and recurse into its subdirectories.

    Files and directories are matched by name within their own kind only. A
    name that is a file on one side and a directory on the other is handled
    as an unrelated removal plus creation.
    """
    result = DiffResult()

    # Files
    local_files = {entry.name: entry for entry in local if entry.is_file}
    for remote_file in (entry for entry in remote if entry.is_file):
        local_file = local_files.pop(remote_file.name, None)
        if local_file is None:
            result.files_to_remove.append(remote_file.name)
        elif local_file.fingerprint != remote_file.fingerprint:
            result.files_to_put.append(local_file.name)
    result.files_to_put.extend(local_files)

    # Directories
    local_dirs = {entry.name: entry for entry in local if entry.is_dir}
    for remote_dir in (entry for entry in remote if entry.is_dir):
        local_dir = local_dirs.pop(remote_dir.name, None)
        if local_dir is not None:
            sub = _diff_level(remote_dir.children, local_dir.children)
            result.merge(sub.prefixed(remote_dir.name))
        else:
            sub = _diff_level(remote_dir.children, [])
            result.merge(sub.prefixed(remote_dir.name))
            result.dirs_to_remove.append(remote_dir.name)

    for local_dir in local_dirs.values():
        result.dirs_to_make.append(local_dir.name)
        sub = _diff_level([], local_dir.children)
        result.merge(sub.prefixed(local_dir.name))

    return result
