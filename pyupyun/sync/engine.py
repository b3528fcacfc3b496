"""Core deploy engine for applying a diff to the remote store."""

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..exceptions import (
    UpyunConfigError,
    UpyunOperationError,
    UpyunRetryExhaustedError,
    UpyunScanError,
)
from ..output import OutputFormatter
from ..utils import DEFAULT_RETRY_DELAY, DEFAULT_TRY_TIMES, content_type_for
from .differ import DiffResult, compute_diff
from .manifest import ManifestEntry
from .operations import RemoteResult, RemoteStore
from .scanner import DirectoryScanner
from .state import ManifestState

logger = logging.getLogger(__name__)


class DeployEngine:
    """Deploys a local directory to a remote store.

    A deploy runs strictly sequentially in five phases: remove files, remove
    directories, make directories, put files, persist manifest. The first
    fatal result aborts the run by raising; nothing already applied is rolled
    back, and since the manifest is only written in the last phase the next
    run diffs against the previous state and retries whatever is missing.
    """

    def __init__(
        self,
        store: RemoteStore,
        output: Optional[OutputFormatter] = None,
        try_times: int = DEFAULT_TRY_TIMES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize deploy engine.

        Args:
            store: Remote store to deploy to
            output: Output formatter for progress and status lines
            try_times: Attempts for removing a directory
            retry_delay: Delay between directory removal attempts (seconds)
            sleep: Function used to wait between attempts
        """
        if isinstance(try_times, bool) or not isinstance(try_times, int):
            raise UpyunConfigError(f"try_times must be an integer, got {try_times!r}")
        if try_times < 1:
            raise UpyunConfigError(f"try_times must be at least 1, got {try_times}")

        self.store = store
        self.output = output or OutputFormatter()
        self.try_times = try_times
        self.retry_delay = retry_delay
        self.sleep = sleep
        self.state = ManifestState(store)

    def deploy(
        self,
        local_root: Path,
        scanner: Optional[DirectoryScanner] = None,
        allow_missing_manifest: bool = False,
        dry_run: bool = False,
    ) -> dict:
        """Run a complete deploy.

        Args:
            local_root: Local output directory
            scanner: Scanner carrying the exclusion rules
            allow_missing_manifest: Accept a bucket without a manifest
            dry_run: Only display the plan, do not change the remote store

        Returns:
            Dictionary with deploy statistics

        Raises:
            UpyunScanError: If the local directory cannot be scanned
            UpyunFetchError: If the remote manifest cannot be fetched
            UpyunOperationError: If a remote operation fails fatally

        Examples:
            >>> engine = DeployEngine(client)
            >>> stats = engine.deploy(Path("public"), dry_run=True)
            >>> print(f"Would upload {stats['files_put']} files")
        """
        local_root = Path(local_root)
        if not local_root.is_dir():
            raise UpyunScanError(local_root, f"Not a directory: {local_root}")

        scanner = scanner or DirectoryScanner()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=self.output.quiet or self.output.json_output,
        ) as progress:
            task = progress.add_task("Fetching remote manifest...", total=None)
            remote = self.state.fetch(allow_missing=allow_missing_manifest)

            progress.update(task, description="Scanning local directory...")
            local = scanner.scan(local_root)

        diff = compute_diff(remote, local)
        self.display_plan(diff, dry_run)

        if dry_run:
            return self._stats_for_plan(diff)

        return self.execute(diff, local_root, local)

    def execute(
        self, diff: DiffResult, local_root: Path, manifest: list[ManifestEntry]
    ) -> dict:
        """Apply a diff in phase order and persist the new manifest.

        Args:
            diff: Operations to apply
            local_root: Directory the paths in ``diff.files_to_put`` live in
            manifest: Local manifest that becomes the new remote state

        Returns:
            Dictionary with deploy statistics
        """
        stats = self._create_empty_stats()

        self.remove_files(diff.files_to_remove, stats)
        self.remove_dirs(diff.dirs_to_remove, stats)
        self.make_dirs(diff.dirs_to_make, stats)
        self.put_files(diff.files_to_put, Path(local_root), stats)
        self.persist_manifest(manifest)

        if not (self.output.quiet or self.output.json_output):
            self._display_summary(stats)
        return stats

    # =========================
    # Phases
    # =========================

    def remove_files(self, paths: list[str], stats: Optional[dict] = None) -> None:
        """Delete remote files. Missing files count as removed."""
        stats = stats if stats is not None else self._create_empty_stats()
        for path in paths:
            result = self.store.delete_file(path)
            if result.ok:
                self.output.success(f"Removed file {path}")
                stats["files_removed"] += 1
            elif result.missing:
                self.output.warning(f"Error removing file {path} - 404")
                stats["not_found"] += 1
            else:
                raise UpyunOperationError("remove_file", path, result)

    def remove_dirs(self, paths: list[str], stats: Optional[dict] = None) -> None:
        """Delete remote directories, deepest first.

        A store may still report a directory as non-empty shortly after its
        last file was deleted, so each removal is attempted up to
        ``try_times`` times with ``retry_delay`` between attempts.
        """
        stats = stats if stats is not None else self._create_empty_stats()
        for path in paths:
            result = self._remove_dir_with_retry(path)
            if result.ok:
                self.output.success(f"Removed dir {path}")
                stats["dirs_removed"] += 1
            else:
                self.output.warning(f"Error removing dir {path} - 404")
                stats["not_found"] += 1

    def _remove_dir_with_retry(self, path: str) -> RemoteResult:
        result: Optional[RemoteResult] = None
        for attempt in range(1, self.try_times + 1):
            result = self.store.delete_file(path)
            if result.ok or result.missing:
                return result
            logger.debug(
                f"Removing dir {path} failed "
                f"(attempt {attempt}/{self.try_times}): {result}"
            )
            if attempt < self.try_times:
                self.sleep(self.retry_delay)
        raise UpyunRetryExhaustedError(path, result, attempts=self.try_times)

    def make_dirs(self, paths: list[str], stats: Optional[dict] = None) -> None:
        """Create remote directories, shallowest first."""
        stats = stats if stats is not None else self._create_empty_stats()
        for path in paths:
            result = self.store.make_dir(path)
            if not result.ok:
                raise UpyunOperationError("make_dir", path, result)
            self.output.success(f"Make dir {path}")
            stats["dirs_made"] += 1

    def put_files(
        self, paths: list[str], local_root: Path, stats: Optional[dict] = None
    ) -> None:
        """Upload local files to the same relative remote paths."""
        stats = stats if stats is not None else self._create_empty_stats()
        for path in paths:
            local_path = local_root / path
            try:
                content = local_path.read_bytes()
            except OSError as e:
                raise UpyunScanError(local_path, f"Cannot read {local_path}: {e}") from e

            result = self.store.put_file(path, content, content_type_for(path))
            if not result.ok:
                raise UpyunOperationError("put_file", path, result)
            self.output.success(f"Put file {path}")
            stats["files_put"] += 1
            stats["bytes_put"] += len(content)

    def persist_manifest(self, manifest: list[ManifestEntry]) -> None:
        """Record the deployed tree for the next run's diff."""
        self.state.persist(manifest)
        self.output.success("Put new file list")

    # =========================
    # Reporting
    # =========================

    def _create_empty_stats(self) -> dict:
        """Create an empty statistics dictionary.

        Returns:
            Dictionary with zero counts for all stat categories
        """
        return {
            "files_removed": 0,
            "dirs_removed": 0,
            "dirs_made": 0,
            "files_put": 0,
            "bytes_put": 0,
            "not_found": 0,
        }

    def _stats_for_plan(self, diff: DiffResult) -> dict:
        stats = self._create_empty_stats()
        stats["files_removed"] = len(diff.files_to_remove)
        stats["dirs_removed"] = len(diff.dirs_to_remove)
        stats["dirs_made"] = len(diff.dirs_to_make)
        stats["files_put"] = len(diff.files_to_put)
        return stats

    def display_plan(self, diff: DiffResult, dry_run: bool) -> None:
        display_plan(self.output, diff, dry_run)

    def _display_summary(self, stats: dict) -> None:
        self.output.print("")
        self.output.print_summary(
            "Deploy Complete",
            [
                ("Files removed", str(stats["files_removed"])),
                ("Dirs removed", str(stats["dirs_removed"])),
                ("Dirs made", str(stats["dirs_made"])),
                ("Files put", str(stats["files_put"])),
                ("Uploaded", self.output.format_size(stats["bytes_put"])),
                ("Already gone", str(stats["not_found"])),
            ],
        )


def display_plan(output: OutputFormatter, diff: DiffResult, dry_run: bool) -> None:
    """Display a deploy plan to the user.

    Args:
        output: Output formatter to write to
        diff: Computed diff
        dry_run: Whether this is a dry run (lists every path)
    """
    if output.quiet:
        return

    if diff.is_empty:
        output.info("Remote is up to date")
        return

    output.info("Deploy plan:")
    if diff.files_to_remove:
        output.info(f"  ✗ Remove: {len(diff.files_to_remove)} file(s)")
    if diff.dirs_to_remove:
        output.info(f"  ✗ Remove: {len(diff.dirs_to_remove)} dir(s)")
    if diff.dirs_to_make:
        output.info(f"  + Make: {len(diff.dirs_to_make)} dir(s)")
    if diff.files_to_put:
        output.info(f"  ↑ Put: {len(diff.files_to_put)} file(s)")

    if dry_run:
        output.print("")
        for path in diff.files_to_remove:
            output.print(f"  - {path}")
        for path in diff.dirs_to_remove:
            output.print(f"  - {path}/")
        for path in diff.dirs_to_make:
            output.print(f"  + {path}/")
        for path in diff.files_to_put:
            output.print(f"  ↑ {path}")

    output.print("")
