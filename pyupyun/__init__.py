"""PyUpyun - incremental static site deployer for UPYUN storage."""

from .api import UpyunClient
from .exceptions import (
    UpyunConfigError,
    UpyunError,
    UpyunFetchError,
    UpyunOperationError,
    UpyunRetryExhaustedError,
    UpyunScanError,
)
from .utils import md5_file

__all__ = [
    "UpyunClient",
    "UpyunConfigError",
    "UpyunError",
    "UpyunFetchError",
    "UpyunOperationError",
    "UpyunRetryExhaustedError",
    "UpyunScanError",
    "md5_file",
]
