"""
Reconciling stored documents with the files on disk.

The folder is the source of truth for which audio files exist; the document
is the source of truth for their sync settings.
"""

from pathlib import Path
from typing import Iterable, Optional

import anyio

from .formats import is_audio_file, is_tab_file
from .models import AudioData


def merge_audio(
    disk_filenames: Iterable[str], stored: Iterable[AudioData]
) -> list[AudioData]:
    """Pure function - one entry per file on disk, in disk order.

    Stored settings are reused for files that still exist; files without
    stored settings get defaults; stored entries for missing files are dropped.
    """
    by_name = {}
    for entry in stored:
        by_name.setdefault(entry.filename, entry)

    merged = []
    for filename in disk_filenames:
        entry = by_name.get(filename)
        merged.append(entry if entry is not None else AudioData(filename=filename))
    return merged


async def list_files(directory: Path) -> list[str]:
    """Names of regular files in directory, in enumeration order."""
    names = []
    async for entry in anyio.Path(directory).iterdir():
        if await entry.is_file():
            names.append(entry.name)
    return names


async def find_audio_files(directory: Path) -> list[str]:
    return [name for name in await list_files(directory) if is_audio_file(name)]


async def find_tab_file(directory: Path) -> Optional[str]:
    """First file in directory with a supported tab extension, or None."""
    for name in await list_files(directory):
        if is_tab_file(name):
            return name
    return None
