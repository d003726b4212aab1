"""
Tab document models.

One config.json per tab folder holds a ConfigJSON: the tab's metadata, the
sync settings of its audio files and its linked YouTube videos. JSON keys
keep the camelCase names the frontend reads; attributes are snake_case.
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SyncMethod = Literal["simple", "advanced"]


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with a Z suffix, e.g. 2024-05-01T12:00:00.123456Z."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace(
        "+00:00", "Z"
    )


def parse_created_at(value: str) -> datetime:
    """Parse a stored createdAt; unparsable values sort as oldest."""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class _Document(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TabInfo(_Document):
    id: str
    title: str = "Unknown"
    artist: str = ""
    filename: str = "tab.gp"
    original_filename: str = Field(default="", alias="originalFilename")
    created_at: str = Field(default_factory=utc_now_iso, alias="createdAt")
    public: bool = False
    fav: bool = False


class SyncRequest(_Document):
    """Sync settings sent when saving an audio file or video link."""

    sync_method: SyncMethod = Field(default="simple", alias="syncMethod")
    simple_sync: int = Field(default=0, alias="simpleSync")
    advanced_sync: str = Field(default="", alias="advancedSync")


class AudioData(_Document):
    filename: str = Field(min_length=1)
    sync_method: SyncMethod = Field(default="simple", alias="syncMethod")
    simple_sync: int = Field(default=0, alias="simpleSync")
    advanced_sync: str = Field(default="", alias="advancedSync")


class Youtube(_Document):
    video_id: str = Field(min_length=1, alias="videoID")
    sync_method: SyncMethod = Field(default="simple", alias="syncMethod")
    simple_sync: int = Field(default=0, alias="simpleSync")
    advanced_sync: str = Field(default="", alias="advancedSync")


class ConfigJSON(_Document):
    """The persisted document of a single tab."""

    tab: TabInfo
    audio: list[AudioData] = Field(default_factory=list)
    youtube: list[Youtube] = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2) + "\n"


class UpdateTabInfo(_Document):
    title: str = Field(min_length=1)
    artist: str = ""
    public: bool = False


class YoutubeAddData(_Document):
    video_id: str = Field(min_length=1, alias="videoID")
