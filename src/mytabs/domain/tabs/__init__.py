"""Tabs domain - the per-tab document store.

This domain handles:
- Tab document models (config.json)
- Identifier allocation
- Reconciling stored audio metadata with files on disk
- Serialized per-tab document updates
- Tab, audio and YouTube mutations
"""

# Models
from .models import (
    AudioData,
    ConfigJSON,
    SyncRequest,
    TabInfo,
    UpdateTabInfo,
    Youtube,
    YoutubeAddData,
)

# Errors
from .errors import (
    AudioNotFoundError,
    ConflictError,
    CorruptDocumentError,
    InvalidFilenameError,
    TabNotFoundError,
    TabStoreError,
    TranscodeError,
    UnsupportedFormatError,
)

# Formats
from .formats import (
    SUPPORTED_AUDIO_FORMATS,
    SUPPORTED_TAB_FORMATS,
    check_audio_format,
    check_tab_format,
    get_extension,
)

# Store
from .allocator import IdAllocator, next_counter_value
from .reconcile import merge_audio
from .store import TabStore
from .transcode import FfmpegTranscoder
from .update_queue import UpdateQueue

__all__ = [
    "AudioData",
    "ConfigJSON",
    "SyncRequest",
    "TabInfo",
    "UpdateTabInfo",
    "Youtube",
    "YoutubeAddData",
    "AudioNotFoundError",
    "ConflictError",
    "CorruptDocumentError",
    "InvalidFilenameError",
    "TabNotFoundError",
    "TabStoreError",
    "TranscodeError",
    "UnsupportedFormatError",
    "SUPPORTED_AUDIO_FORMATS",
    "SUPPORTED_TAB_FORMATS",
    "check_audio_format",
    "check_tab_format",
    "get_extension",
    "IdAllocator",
    "next_counter_value",
    "merge_audio",
    "TabStore",
    "FfmpegTranscoder",
    "UpdateQueue",
]
