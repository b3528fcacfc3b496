"""Deploy settings loaded from a JSON file.

Example ``upyun.json``::

    {
        "bucket": "my-site",
        "operator": "deployer",
        "public_dir": "public",
        "ignore_path_re": {"file": "\\\\.map$", "dir": "^drafts$"},
        "try_times": 5
    }

The password is normally supplied through the environment rather than being
stored next to the site sources.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..exceptions import UpyunConfigError
from ..utils import DEFAULT_TRY_TIMES

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE_NAME = "upyun.json"
DEFAULT_PUBLIC_DIR = "public"


@dataclass
class DeployConfig:
    """Settings for one deploy target."""

    bucket: Optional[str] = None
    operator: Optional[str] = None
    password: Optional[str] = None
    public_dir: str = DEFAULT_PUBLIC_DIR
    ignore_file: Optional[str] = None
    """Regular expression for relative file paths to skip"""

    ignore_dir: Optional[str] = None
    """Regular expression for relative directory paths to skip"""

    try_times: int = DEFAULT_TRY_TIMES
    extra: dict[str, Any] = field(default_factory=dict)
    """Unrecognised keys, kept for diagnostics"""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeployConfig":
        """Create DeployConfig from a parsed JSON object.

        Raises:
            UpyunConfigError: If a value has the wrong type or a pattern
                does not compile
        """
        if not isinstance(data, dict):
            raise UpyunConfigError("Deploy config must be a JSON object")

        known = {
            "bucket",
            "operator",
            "password",
            "public_dir",
            "ignore_path_re",
            "try_times",
        }

        for key in ("bucket", "operator", "password", "public_dir"):
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise UpyunConfigError(f"'{key}' must be a string")

        ignore = data.get("ignore_path_re") or {}
        if not isinstance(ignore, dict):
            raise UpyunConfigError("'ignore_path_re' must be an object")
        ignore_file = ignore.get("file") or None
        ignore_dir = ignore.get("dir") or None
        for name, pattern in (("file", ignore_file), ("dir", ignore_dir)):
            validate_pattern(pattern, f"ignore_path_re.{name}")

        try_times = parse_try_times(data.get("try_times", DEFAULT_TRY_TIMES))

        return cls(
            bucket=data.get("bucket"),
            operator=data.get("operator"),
            password=data.get("password"),
            public_dir=data.get("public_dir") or DEFAULT_PUBLIC_DIR,
            ignore_file=ignore_file,
            ignore_dir=ignore_dir,
            try_times=try_times,
            extra={k: v for k, v in data.items() if k not in known},
        )

    def require_credentials(self) -> tuple[str, str, str]:
        """Return (bucket, operator, password).

        Raises:
            UpyunConfigError: If any of them is missing
        """
        missing = [
            name
            for name, value in (
                ("bucket", self.bucket),
                ("operator", self.operator),
                ("password", self.password),
            )
            if not value
        ]
        if missing:
            raise UpyunConfigError(
                f"Missing {', '.join(missing)}. Please check your config "
                "(upyun.json, UPYUN_* environment variables or 'pyupyun init')."
            )
        return self.bucket, self.operator, self.password  # type: ignore[return-value]


def validate_pattern(pattern: Optional[str], name: str) -> None:
    """Check that an exclusion pattern is a valid regular expression."""
    if pattern is None:
        return
    if not isinstance(pattern, str):
        raise UpyunConfigError(f"'{name}' must be a string")
    try:
        re.compile(pattern)
    except re.error as e:
        raise UpyunConfigError(f"'{name}' is not a valid regular expression: {e}") from e


def parse_try_times(value: Any) -> int:
    """Parse the directory removal attempt count.

    Accepts integers and integer strings (values coming from YAML or the
    environment are often strings).

    Raises:
        UpyunConfigError: If the value is not a positive integer
    """
    if isinstance(value, bool):
        raise UpyunConfigError(f"'try_times' must be a positive integer: {value!r}")
    try:
        try_times = int(value)
    except (TypeError, ValueError):
        raise UpyunConfigError(
            f"'try_times' must be a positive integer: {value!r}"
        ) from None
    if try_times < 1:
        raise UpyunConfigError(f"'try_times' must be a positive integer: {value!r}")
    return try_times


def load_deploy_config_from_json(path: Path) -> DeployConfig:
    """Load deploy settings from a JSON file.

    Args:
        path: Path to the JSON file

    Returns:
        DeployConfig instance

    Raises:
        UpyunConfigError: If the file cannot be read or parsed
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise UpyunConfigError(f"Config file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise UpyunConfigError(f"Invalid JSON in {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise UpyunConfigError(f"Invalid encoding in {path}: {e}") from e
    except OSError as e:
        raise UpyunConfigError(f"Cannot read {path}: {e}") from e

    deploy_config = DeployConfig.from_dict(data)
    if deploy_config.extra:
        logger.debug(f"Ignoring unknown keys in {path}: {sorted(deploy_config.extra)}")
    return deploy_config
