"""Utility functions for pyupyun."""

import hashlib
import posixpath
from pathlib import Path
from typing import Optional

# =============================================================================
# Constants for deploy operations
# =============================================================================

# Attempts for removing a directory that the store still reports as non-empty
DEFAULT_TRY_TIMES: int = 5

# Delay between directory removal attempts
DEFAULT_RETRY_DELAY: float = 0.5  # seconds

# Retry configuration for transport errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_TRANSPORT_RETRY_DELAY: float = 1.0  # seconds

# Block size used when hashing local files (1 MB)
HASH_CHUNK_SIZE: int = 1024 * 1024

# Content type sent for files without an extension (clean URLs)
EXTENSIONLESS_CONTENT_TYPE: str = "text/html"


# =============================================================================
# Hash calculation utilities
# =============================================================================


def md5_bytes(content: bytes) -> str:
    """Return the lowercase hex MD5 digest of a byte string.

    Examples:
        >>> md5_bytes(b"hello")
        '5d41402abc4b2a76b9719d911017c592'
    """
    return hashlib.md5(content).hexdigest()


def md5_file(path: Path) -> str:
    """Calculate the MD5 fingerprint of a file.

    The file is read in blocks so large assets do not have to fit in memory.

    Args:
        path: Path to the file

    Returns:
        Lowercase hex MD5 digest
    """
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


# =============================================================================
# Path utilities
# =============================================================================


def content_type_for(path: str) -> Optional[str]:
    """Return the content type hint used when uploading ``path``.

    Files without an extension are served as HTML so that clean URLs such as
    ``/about`` render in the browser. Every other file gets ``None``, which
    lets the store infer the type from the extension.
    """
    _, ext = posixpath.splitext(posixpath.basename(path))
    if ext == "":
        return EXTENSIONLESS_CONTENT_TYPE
    return None


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
