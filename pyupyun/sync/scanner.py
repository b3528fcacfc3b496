"""Directory scanning for deploy operations."""

import logging
import re
from pathlib import Path
from typing import Callable, Optional, Union

from ..exceptions import UpyunScanError
from ..utils import md5_file
from .manifest import MANIFEST_FILE_NAME, ManifestEntry, iter_files

logger = logging.getLogger(__name__)

Pattern = Union[str, re.Pattern]


def _compile(pattern: Optional[Pattern]) -> Optional[re.Pattern]:
    if pattern is None or pattern == "":
        return None
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


class DirectoryScanner:
    """Scans a local output directory into a manifest.

    Exclusion patterns are regular expressions searched in the path of each
    entry relative to the scan root (forward slashes on every platform). An
    excluded directory is skipped together with everything beneath it.

    Examples:
        >>> scanner = DirectoryScanner(dir_exclude=r"^drafts$")
        >>> entries = scanner.scan(Path("public"))

        >>> # Skip source maps everywhere
        >>> scanner = DirectoryScanner(file_exclude=r"\\.map$")
    """

    def __init__(
        self,
        file_exclude: Optional[Pattern] = None,
        dir_exclude: Optional[Pattern] = None,
        fingerprint: Callable[[Path], str] = md5_file,
    ):
        """Initialize directory scanner.

        Args:
            file_exclude: Pattern matching relative paths of files to skip
            dir_exclude: Pattern matching relative paths of directories to skip
            fingerprint: Function computing the content digest of a file
        """
        self.file_exclude = _compile(file_exclude)
        self.dir_exclude = _compile(dir_exclude)
        self.fingerprint = fingerprint

    def is_excluded(self, relative_path: str, is_dir: bool) -> bool:
        """Check if a relative path matches the exclusion rules.

        Args:
            relative_path: POSIX path relative to the scan root
            is_dir: Whether the path is a directory

        Returns:
            True if the path should be skipped
        """
        pattern = self.dir_exclude if is_dir else self.file_exclude
        return pattern is not None and pattern.search(relative_path) is not None

    def scan(self, root: Path) -> list[ManifestEntry]:
        """Scan a directory tree.

        Args:
            root: Directory to scan

        Returns:
            Manifest entries for the children of ``root``, sorted by name

        Raises:
            UpyunScanError: If the root is not a directory or any entry
                cannot be listed or read
        """
        root = Path(root)
        if not root.is_dir():
            raise UpyunScanError(root, f"Not a directory: {root}")
        entries = self._scan_dir(root, root)
        file_count = sum(1 for _ in iter_files(entries))
        logger.debug(f"Scanned {root}: {file_count} file(s)")
        return entries

    def _scan_dir(self, directory: Path, root: Path) -> list[ManifestEntry]:
        try:
            items = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise UpyunScanError(directory, f"Cannot list {directory}: {e}") from e

        entries: list[ManifestEntry] = []
        for item in items:
            relative_path = item.relative_to(root).as_posix()
            try:
                is_file = item.is_file()
                is_dir = not is_file and item.is_dir()
            except OSError as e:
                raise UpyunScanError(item, f"Cannot stat {item}: {e}") from e

            if is_file:
                if directory == root and item.name == MANIFEST_FILE_NAME:
                    continue
                if self.is_excluded(relative_path, is_dir=False):
                    logger.debug(f"Ignoring file: {relative_path}")
                    continue
                try:
                    digest = self.fingerprint(item)
                except OSError as e:
                    raise UpyunScanError(item, f"Cannot read {item}: {e}") from e
                entries.append(ManifestEntry.file(item.name, digest))
            elif is_dir:
                if self.is_excluded(relative_path, is_dir=True):
                    logger.debug(f"Ignoring directory: {relative_path}")
                    continue
                entries.append(
                    ManifestEntry.directory(item.name, self._scan_dir(item, root))
                )
            else:
                logger.debug(f"Skipping special file: {relative_path}")

        return entries
