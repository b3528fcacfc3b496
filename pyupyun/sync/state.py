"""Persistence of the deployed manifest on the remote side.

After every successful deploy the local manifest is uploaded to the bucket
under a reserved name. The next deploy reads it back and diffs against it,
so no remote listing is ever needed.
"""

import logging

from ..exceptions import UpyunFetchError, UpyunOperationError
from .manifest import (
    MANIFEST_FILE_NAME,
    ManifestEntry,
    count_entries,
    manifest_from_json,
    manifest_to_json,
)
from .operations import RemoteStore

logger = logging.getLogger(__name__)


class ManifestState:
    """Reads and writes the manifest of the last deploy."""

    def __init__(self, store: RemoteStore, path: str = MANIFEST_FILE_NAME):
        """Initialize manifest state.

        Args:
            store: Remote store holding the manifest
            path: Remote path of the manifest object
        """
        self.store = store
        self.path = path

    def fetch(self, allow_missing: bool = False) -> list[ManifestEntry]:
        """Fetch the manifest recorded by the previous deploy.

        Args:
            allow_missing: Treat an absent manifest as an empty remote tree
                (first deploy to a bucket)

        Returns:
            Manifest entries of the remote root

        Raises:
            UpyunFetchError: If the manifest is absent (and not allowed to be),
                cannot be fetched or cannot be parsed
        """
        result = self.store.get_file(self.path)

        if result.missing:
            if allow_missing:
                logger.debug(f"No manifest at {self.path}, starting from empty")
                return []
            raise UpyunFetchError(
                self.path,
                result.detail,
                f"Remote manifest {self.path} not found. "
                "Use --initial for the first deploy to this bucket.",
            )

        if not result.ok or result.content is None:
            raise UpyunFetchError(self.path, result.detail)

        try:
            entries = manifest_from_json(result.content)
        except ValueError as e:
            raise UpyunFetchError(
                self.path, str(e), f"Remote manifest {self.path} is invalid: {e}"
            ) from e

        files, dirs = count_entries(entries)
        logger.debug(f"Loaded remote manifest with {files} file(s), {dirs} dir(s)")
        return entries

    def persist(self, entries: list[ManifestEntry]) -> None:
        """Upload a manifest as the new remote state.

        Raises:
            UpyunOperationError: If the upload does not succeed
        """
        data = manifest_to_json(entries)
        result = self.store.put_file(self.path, data)
        if not result.ok:
            raise UpyunOperationError("persist_manifest", self.path, result)
        logger.debug(f"Saved manifest ({len(data)} bytes) to {self.path}")
