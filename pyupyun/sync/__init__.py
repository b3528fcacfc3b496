"""Deploy engine for pyupyun - incremental directory to bucket sync."""

from .config import (
    DEFAULT_CONFIG_FILE_NAME,
    DeployConfig,
    load_deploy_config_from_json,
    parse_try_times,
    validate_pattern,
)
from .differ import DiffResult, compute_diff
from .engine import DeployEngine, display_plan
from .manifest import (
    MANIFEST_FILE_NAME,
    EntryKind,
    ManifestEntry,
    manifest_from_json,
    manifest_to_json,
)
from .operations import RemoteResult, RemoteStore, ResultStatus
from .scanner import DirectoryScanner
from .state import ManifestState

__all__ = [
    "DeployEngine",
    "display_plan",
    "DeployConfig",
    "DEFAULT_CONFIG_FILE_NAME",
    "load_deploy_config_from_json",
    "parse_try_times",
    "validate_pattern",
    "DiffResult",
    "compute_diff",
    "DirectoryScanner",
    "EntryKind",
    "ManifestEntry",
    "MANIFEST_FILE_NAME",
    "manifest_from_json",
    "manifest_to_json",
    "ManifestState",
    "RemoteResult",
    "RemoteStore",
    "ResultStatus",
]
