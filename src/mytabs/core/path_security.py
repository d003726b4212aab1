"""
Path security validation utilities for MyTabs.

Every filename or tab identifier that comes from a caller goes through
check_filename() before it is joined onto a storage path.
"""

import re
from pathlib import Path

# Characters that are unsafe in filenames on at least one common filesystem
_UNSAFE_CHARS = re.compile(r'[/\\?<>:*|"\x00-\x1f\x80-\x9f]')
_WINDOWS_RESERVED = re.compile(
    r"^(con|prn|aux|nul|com[0-9]|lpt[0-9])(\..*)?$", re.IGNORECASE
)
MAX_FILENAME_BYTES = 255


class InvalidFilenameError(ValueError):
    """Raised when a caller-supplied name could escape its directory."""


def is_safe_filename(name: str) -> bool:
    """Pure function - True if name has no parent segment or path separator."""
    if not name:
        return False
    return ".." not in name and "/" not in name and "\\" not in name


def check_filename(name: str) -> None:
    """Reject names containing '..' or a path separator.

    Raises:
        InvalidFilenameError: If the name is unsafe
    """
    if not is_safe_filename(name):
        raise InvalidFilenameError("Invalid filename")


def sanitize_filename(name: str, replacement: str = "") -> str:
    """Strip characters that are not portable across filesystems.

    Args:
        name: Original filename as uploaded
        replacement: String substituted for each unsafe character

    Returns:
        Filename safe to create on Linux, macOS and Windows, or "" if
        nothing usable remains

    Example:
        'my:song?.mp3' -> 'mysong.mp3'
    """
    cleaned = _UNSAFE_CHARS.sub(replacement, name)

    if cleaned in (".", ".."):
        return ""

    if _WINDOWS_RESERVED.match(cleaned):
        cleaned = replacement

    # Windows drops trailing dots and spaces
    cleaned = cleaned.rstrip(". ")

    # Truncate by encoded length, keeping whole characters
    encoded = cleaned.encode("utf-8")
    if len(encoded) > MAX_FILENAME_BYTES:
        cleaned = encoded[:MAX_FILENAME_BYTES].decode("utf-8", errors="ignore")

    return cleaned


def safe_join(directory: Path, name: str) -> Path:
    """Join a checked name onto directory."""
    check_filename(name)
    return directory / name
