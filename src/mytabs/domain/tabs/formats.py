"""Supported tab and audio file formats."""

from pathlib import PurePath

from .errors import UnsupportedFormatError

SUPPORTED_TAB_FORMATS: tuple[str, ...] = (
    "gp",
    "gpx",
    "gp3",
    "gp4",
    "gp5",
    "musicxml",
    "capx",
)

SUPPORTED_AUDIO_FORMATS: tuple[str, ...] = (
    "mp3",
    "ogg",
    "wav",
    "m4a",
    "aac",
    "opus",
    "flac",
)

# Uploaded FLAC is stored as Ogg Vorbis
TRANSCODE_FORMATS: dict[str, str] = {"flac": "ogg"}


def get_extension(filename: str) -> str:
    """Pure function - lowercase extension without the dot, or ""."""
    return PurePath(filename).suffix[1:].lower()


def is_tab_file(filename: str) -> bool:
    return get_extension(filename) in SUPPORTED_TAB_FORMATS


def is_audio_file(filename: str) -> bool:
    return get_extension(filename) in SUPPORTED_AUDIO_FORMATS


def check_tab_format(ext: str) -> str:
    """Normalize and validate a tab extension.

    Raises:
        UnsupportedFormatError: If ext is not a supported tab format
    """
    ext = ext.lower().lstrip(".")
    if ext not in SUPPORTED_TAB_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported file format: {ext}. Supported: {supported_format_string()}"
        )
    return ext


def check_audio_format(filename: str) -> str:
    """Validate an audio filename by extension and return the extension.

    Raises:
        UnsupportedFormatError: If the extension is not a supported audio format
    """
    ext = get_extension(filename)
    if ext not in SUPPORTED_AUDIO_FORMATS:
        raise UnsupportedFormatError(f"Unsupported audio format: {ext or filename}")
    return ext


def supported_format_string() -> str:
    """Supported tab formats for display, like ".gp, .gpx, .gp3"."""
    return ", ".join("." + ext for ext in SUPPORTED_TAB_FORMATS)
