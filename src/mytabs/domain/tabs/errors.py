"""Errors raised by the tab document store."""

from mytabs.core.path_security import InvalidFilenameError


class TabStoreError(Exception):
    """Base class for tab store failures."""


class TabNotFoundError(TabStoreError):
    """The tab has no document on disk."""

    def __init__(self, message: str = "Tab not found"):
        super().__init__(message)


class CorruptDocumentError(TabNotFoundError):
    """The document exists but does not validate. Callers treat it as missing."""

    def __init__(self, tab_id: str):
        super().__init__(f"Failed to parse config.json for tab {tab_id}")
        self.tab_id = tab_id


class AudioNotFoundError(TabStoreError):
    def __init__(self, message: str = "Audio file not found"):
        super().__init__(message)


class ConflictError(TabStoreError):
    """An entry with the same name already exists."""


class UnsupportedFormatError(TabStoreError, ValueError):
    """The file extension is not one the store accepts."""


class TranscodeError(TabStoreError):
    """The external transcoder failed or produced no output."""


__all__ = [
    "AudioNotFoundError",
    "ConflictError",
    "CorruptDocumentError",
    "InvalidFilenameError",
    "TabNotFoundError",
    "TabStoreError",
    "TranscodeError",
    "UnsupportedFormatError",
]
