"""Credential configuration for pyupyun.

Credentials are resolved from environment variables first and from the
config file written by ``pyupyun init`` second.
"""

import os
from pathlib import Path
from typing import Optional

from .exceptions import UpyunConfigError

CONFIG_DIR = Path.home() / ".config" / "pyupyun"
CONFIG_FILE = CONFIG_DIR / "config"

ENV_BUCKET = "UPYUN_BUCKET"
ENV_OPERATOR = "UPYUN_OPERATOR"
ENV_PASSWORD = "UPYUN_PASSWORD"
ENV_API_URL = "UPYUN_API_URL"

DEFAULT_API_URL = "https://v0.api.upyun.com"


def env_value(name: str) -> Optional[str]:
    """Read an environment variable, also accepting its lowercase spelling."""
    return os.environ.get(name) or os.environ.get(name.lower()) or None


class Config:
    """Stored UPYUN credentials."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or CONFIG_FILE

    def _read_file(self) -> dict[str, str]:
        """Parse the key=value config file.

        Returns:
            Mapping of keys to values (empty if the file does not exist)

        Raises:
            UpyunConfigError: If the file exists but cannot be read or decoded
        """
        values: dict[str, str] = {}
        if not self.config_file.exists():
            return values
        try:
            text = self.config_file.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise UpyunConfigError(
                f"Invalid encoding in {self.config_file}: {e}"
            ) from e
        except OSError as e:
            raise UpyunConfigError(f"Cannot read {self.config_file}: {e}") from e
        for line in text.splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            values[key.strip()] = value.strip().strip('"').strip("'")
        return values

    def get_saved(self, key: str) -> Optional[str]:
        """Value stored in the config file, ignoring the environment."""
        return self._read_file().get(key) or None

    def _get(self, env_name: str) -> Optional[str]:
        return env_value(env_name) or self.get_saved(env_name)

    @property
    def bucket(self) -> Optional[str]:
        return self._get(ENV_BUCKET)

    @property
    def operator(self) -> Optional[str]:
        return self._get(ENV_OPERATOR)

    @property
    def password(self) -> Optional[str]:
        return self._get(ENV_PASSWORD)

    @property
    def api_url(self) -> str:
        return self._get(ENV_API_URL) or DEFAULT_API_URL

    def is_configured(self) -> bool:
        """Check whether bucket, operator and password are all available."""
        return bool(self.bucket and self.operator and self.password)

    def save_credentials(self, bucket: str, operator: str, password: str) -> None:
        """Save credentials to the config file.

        Other keys already present in the file are preserved. The file is
        readable by the owner only.

        Args:
            bucket: Bucket (service) name
            operator: Operator name
            password: Operator password
        """
        values = self._read_file()
        values[ENV_BUCKET] = bucket
        values[ENV_OPERATOR] = operator
        values[ENV_PASSWORD] = password

        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        content = "".join(f"{key}={value}\n" for key, value in values.items())
        self.config_file.write_text(content, encoding="utf-8")
        self.config_file.chmod(0o600)

    def get_config_path(self) -> Path:
        return self.config_file


config = Config()
