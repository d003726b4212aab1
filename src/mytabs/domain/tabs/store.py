"""
Tab document store.

Every tab is a folder under the tabs root holding the primary tab file, any
audio files and config.json. All changes to config.json go through
TabStore.update(), which serializes read-modify-write cycles per tab so
concurrent callers never lose each other's changes. Binary files are written
directly, before the matching document change is queued.
"""

import asyncio
import inspect
import time
import uuid
from pathlib import Path, PurePath
from typing import Awaitable, Callable, Optional, Union

import anyio
from loguru import logger
from pydantic import ValidationError

from mytabs.core.config import Config
from mytabs.core.database import SqliteCounter, VersionedCounter
from mytabs.core.path_security import (
    InvalidFilenameError,
    check_filename,
    is_safe_filename,
    safe_join,
    sanitize_filename,
)

from .allocator import IdAllocator
from .errors import (
    AudioNotFoundError,
    ConflictError,
    CorruptDocumentError,
    TabNotFoundError,
)
from .formats import (
    TRANSCODE_FORMATS,
    check_audio_format,
    check_tab_format,
    get_extension,
)
from .models import (
    AudioData,
    ConfigJSON,
    SyncRequest,
    TabInfo,
    UpdateTabInfo,
    Youtube,
    YoutubeAddData,
    parse_created_at,
)
from .reconcile import find_audio_files, find_tab_file, merge_audio
from .transcode import FfmpegTranscoder, Transcoder, check_ffmpeg
from .update_queue import UpdateQueue

CONFIG_FILENAME = "config.json"
DELETED_DIR = "deleted"

Mutator = Callable[[ConfigJSON], Union[Awaitable[None], None]]


def _now_ms() -> int:
    return int(time.time() * 1000)


async def _unused_timestamped_path(make_path: Callable[[int], Path]) -> Path:
    """First make_path(ms) that does not exist, starting at the current time."""
    stamp = _now_ms()
    while await anyio.Path(make_path(stamp)).exists():
        stamp += 1
    return make_path(stamp)


def _newest_first_key(tab: TabInfo) -> tuple:
    numeric_id = int(tab.id) if tab.id.isdigit() else -1
    return (parse_created_at(tab.created_at), numeric_id)


def _as_sync_request(data: Union[SyncRequest, dict]) -> SyncRequest:
    if isinstance(data, SyncRequest):
        return data
    return SyncRequest.model_validate(data)


class TabStore:
    """Owns the tabs folder, identifier allocation and per-tab update queues."""

    def __init__(
        self,
        tabs_dir: Path,
        counter: VersionedCounter,
        transcoder: Optional[Transcoder] = None,
    ):
        self.tabs_dir = Path(tabs_dir)
        self.allocator = IdAllocator(counter, self.tabs_dir)
        self.transcoder = transcoder or FfmpegTranscoder()
        self.queue = UpdateQueue()

    @classmethod
    def from_config(cls, config: Config) -> "TabStore":
        """Build a store on the configured data directory."""
        config.storage.tabs_dir.mkdir(parents=True, exist_ok=True)
        counter = SqliteCounter(config.storage.database_path)
        check_ffmpeg(config.audio.ffmpeg_path)
        transcoder = FfmpegTranscoder(config.audio.ffmpeg_path, config.audio.ogg_quality)
        return cls(config.storage.tabs_dir, counter, transcoder)

    # Paths

    def tab_dir(self, tab_id: str) -> Path:
        return safe_join(self.tabs_dir, tab_id)

    def get_config_path(self, tab_id: str) -> Path:
        return self.tab_dir(tab_id) / CONFIG_FILENAME

    def get_tab_file_path(self, tab: TabInfo) -> Path:
        return safe_join(self.tab_dir(tab.id), tab.filename)

    # Reading

    async def tab_exists(self, tab_id: str) -> bool:
        return await anyio.Path(self.get_config_path(tab_id)).exists()

    async def check_tab_exists(self, tab_id: str) -> None:
        if not await self.tab_exists(tab_id):
            raise TabNotFoundError()

    async def read_document(self, tab_id: str, scan_audio: bool = True) -> ConfigJSON:
        """Load config.json for a tab.

        With scan_audio, the audio list is rebuilt from the audio files in the
        tab folder, keeping stored sync settings only for files that exist.

        Raises:
            TabNotFoundError: No document for tab_id
            CorruptDocumentError: The document does not validate
        """
        config_path = anyio.Path(self.get_config_path(tab_id))
        try:
            content = await config_path.read_bytes()
        except FileNotFoundError:
            raise TabNotFoundError() from None

        try:
            config = ConfigJSON.model_validate_json(content.decode("utf-8"))
        except (ValidationError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read config.json for tab {tab_id}: {e}")
            raise CorruptDocumentError(tab_id) from e

        if scan_audio:
            disk_files = await find_audio_files(self.tab_dir(tab_id))
            config.audio = merge_audio(disk_files, config.audio)

        return config

    async def get_tab(self, tab_id: str) -> TabInfo:
        return (await self.read_document(tab_id, scan_audio=False)).tab

    async def get_youtube_list(self, tab_id: str) -> list[Youtube]:
        return (await self.read_document(tab_id, scan_audio=False)).youtube

    async def list_tabs(self) -> list[TabInfo]:
        """All tabs, newest first.

        Folders without config.json but with a tab file get a fresh document;
        folders with neither are skipped.
        """
        root = anyio.Path(self.tabs_dir)
        if not await root.exists():
            return []

        tabs = []
        async for entry in root.iterdir():
            if entry.name == DELETED_DIR or not await entry.is_dir():
                continue
            tab = await self._get_or_create_tab(entry.name)
            if tab is not None:
                tabs.append(tab)

        tabs.sort(key=_newest_first_key, reverse=True)
        return tabs

    async def _get_or_create_tab(self, tab_id: str) -> Optional[TabInfo]:
        if not is_safe_filename(tab_id):
            return None

        try:
            return await self.get_tab(tab_id)
        except CorruptDocumentError:
            logger.warning(f"Skipping tab {tab_id}: config.json is corrupt")
            return None
        except TabNotFoundError:
            pass

        tab_file = await find_tab_file(self.tab_dir(tab_id))
        if tab_file is None:
            return None

        tab = TabInfo(
            id=tab_id,
            title=tab_id,
            artist="",
            filename=tab_file,
            original_filename=tab_file,
        )
        if not await self._write_document(tab_id, ConfigJSON(tab=tab), overwrite=False):
            # Another writer created the document first
            return await self.get_tab(tab_id)
        logger.info(f"Created missing config.json for tab {tab_id} ({tab_file})")
        return tab

    # Writing

    async def _write_document(
        self, tab_id: str, config: ConfigJSON, overwrite: bool = True
    ) -> bool:
        """Publish config.json in full. Use update() for changes to existing tabs.

        Each write goes through its own temporary file. With overwrite=False
        an existing config.json is left alone and False is returned.
        """
        config_path = anyio.Path(self.get_config_path(tab_id))
        temp_path = config_path.with_name(f"{CONFIG_FILENAME}.{uuid.uuid4().hex}.tmp")
        try:
            await temp_path.write_text(config.to_json(), encoding="utf-8")
            if overwrite:
                await temp_path.replace(config_path)
                return True
            try:
                await config_path.hardlink_to(temp_path)
            except FileExistsError:
                return False
            return True
        finally:
            await temp_path.unlink(missing_ok=True)

    async def allocate_next_id(self) -> str:
        return await self.allocator.allocate_next_id()

    async def create_tab(
        self,
        data: bytes,
        ext: str,
        title: str,
        artist: str,
        original_filename: str,
    ) -> ConfigJSON:
        """Create a tab folder, its primary file and its document, in that order."""
        ext = check_tab_format(ext)
        tab_id = await self.allocate_next_id()
        await anyio.Path(self.tabs_dir).mkdir(parents=True, exist_ok=True)

        # No exist_ok: a folder that appeared since allocation must not be shared
        folder = anyio.Path(self.tab_dir(tab_id))
        await folder.mkdir()
        filename = f"tab.{ext}"
        await (folder / filename).write_bytes(data)

        tab = TabInfo(
            id=tab_id,
            title=title,
            artist=artist,
            filename=filename,
            original_filename=original_filename,
        )
        config = ConfigJSON(tab=tab)
        await self._write_document(tab.id, config)
        logger.info(f"Created tab {tab.id}: {tab.title!r} ({original_filename})")
        return config

    def update(self, tab_id: str, mutator: Mutator) -> "asyncio.Future[None]":
        """Queue a read-modify-write cycle of a tab's document.

        The mutator gets the stored document (no audio scan) and may change
        it in place; it may be a coroutine function. If it raises, nothing is
        written and the error goes to this caller only. Later updates for the
        same tab still run.

        Returns an awaitable for this cycle. Cancelling it does not cancel the
        cycle itself.
        """
        check_filename(tab_id)

        async def cycle() -> None:
            config = await self.read_document(tab_id, scan_audio=False)
            result = mutator(config)
            if inspect.isawaitable(result):
                await result
            await self._write_document(tab_id, config)

        return asyncio.shield(self.queue.submit(tab_id, cycle))

    # Tab metadata

    async def update_tab_info(self, tab_id: str, data: UpdateTabInfo) -> None:
        def apply(config: ConfigJSON) -> None:
            config.tab.title = data.title
            config.tab.artist = data.artist
            config.tab.public = data.public

        await self.update(tab_id, apply)

    async def set_favorite(self, tab_id: str, fav: bool) -> None:
        def apply(config: ConfigJSON) -> None:
            config.tab.fav = fav

        await self.update(tab_id, apply)

    async def replace_tab_file(
        self, tab_id: str, data: bytes, ext: str, original_filename: str
    ) -> None:
        """Swap in a new primary file, keeping the old one as <name>.<epoch-ms>."""
        ext = check_tab_format(ext)
        tab = await self.get_tab(tab_id)
        folder = self.tab_dir(tab_id)

        old_path = anyio.Path(self.get_tab_file_path(tab))
        if await old_path.exists():
            aside = await _unused_timestamped_path(
                lambda stamp: folder / f"{tab.filename}.{stamp}"
            )
            await old_path.rename(aside)
            logger.info(f"Tab {tab_id}: kept previous file as {aside.name}")
        else:
            logger.warning(f"Tab {tab_id}: primary file {tab.filename} was missing")

        filename = f"tab.{ext}"
        await anyio.Path(folder / filename).write_bytes(data)

        def apply(config: ConfigJSON) -> None:
            config.tab.filename = filename
            config.tab.original_filename = original_filename

        await self.update(tab_id, apply)

    async def delete_tab(self, tab_id: str) -> None:
        """Move the tab folder to deleted/<id>-<epoch-ms>."""
        await self.check_tab_exists(tab_id)

        deleted_dir = self.tabs_dir / DELETED_DIR
        await anyio.Path(deleted_dir).mkdir(parents=True, exist_ok=True)
        target = await _unused_timestamped_path(
            lambda stamp: deleted_dir / f"{tab_id}-{stamp}"
        )
        await anyio.Path(self.tab_dir(tab_id)).rename(target)
        logger.info(f"Deleted tab {tab_id} (moved to {target})")

    # Audio

    async def add_audio(self, tab_id: str, data: bytes, original_filename: str) -> str:
        """Store an uploaded audio file and register it with default sync settings.

        FLAC uploads are converted to Ogg Vorbis and renamed to .ogg.

        Returns:
            The filename the audio was stored under

        Raises:
            ConflictError: A file with the resulting name already exists
        """
        check_filename(original_filename)
        check_audio_format(original_filename)
        await self.check_tab_exists(tab_id)

        filename = sanitize_filename(original_filename)
        if not filename:
            raise InvalidFilenameError("Invalid filename")
        ext = check_audio_format(filename)

        target_ext = TRANSCODE_FORMATS.get(ext)
        if target_ext:
            filename = f"{PurePath(filename).stem}.{target_ext}"

        path = anyio.Path(safe_join(self.tab_dir(tab_id), filename))
        if await path.exists():
            raise ConflictError("Audio file with the same name already exists")

        if target_ext:
            data = await self.transcoder(data)

        await self._write_new_file(path, data)
        logger.info(f"Tab {tab_id}: added audio {filename}")

        def apply(config: ConfigJSON) -> None:
            if not any(a.filename == filename for a in config.audio):
                config.audio.append(AudioData(filename=filename))

        await self.update(tab_id, apply)
        return filename

    @staticmethod
    async def _write_new_file(path: anyio.Path, data: bytes) -> None:
        """Write a file that must not exist yet; never overwrites."""
        try:
            async with await anyio.open_file(path, "xb") as f:
                await f.write(data)
        except FileExistsError:
            raise ConflictError("Audio file with the same name already exists") from None
        except OSError:
            await path.unlink(missing_ok=True)
            raise

    async def _require_audio_file(self, tab_id: str, filename: str) -> anyio.Path:
        path = anyio.Path(safe_join(self.tab_dir(tab_id), filename))
        check_audio_format(filename)
        await self.check_tab_exists(tab_id)
        if not await path.is_file():
            raise AudioNotFoundError()
        return path

    async def remove_audio(self, tab_id: str, filename: str) -> None:
        path = await self._require_audio_file(tab_id, filename)
        await path.unlink()
        logger.info(f"Tab {tab_id}: removed audio {filename}")

        def apply(config: ConfigJSON) -> None:
            config.audio = [a for a in config.audio if a.filename != filename]

        await self.update(tab_id, apply)

    async def update_audio(
        self, tab_id: str, filename: str, data: Union[SyncRequest, dict]
    ) -> None:
        """Save the sync settings of an existing audio file."""
        await self._require_audio_file(tab_id, filename)
        sync = _as_sync_request(data)
        entry = AudioData(
            filename=filename,
            sync_method=sync.sync_method,
            simple_sync=sync.simple_sync,
            advanced_sync=sync.advanced_sync,
        )

        def apply(config: ConfigJSON) -> None:
            for i, existing in enumerate(config.audio):
                if existing.filename == filename:
                    config.audio[i] = entry
                    return
            config.audio.append(entry)

        await self.update(tab_id, apply)

    # YouTube

    async def add_youtube(self, tab_id: str, video_id: str) -> None:
        """Link a video. Raises ConflictError if it is already linked."""
        video_id = YoutubeAddData(video_id=video_id).video_id
        check_filename(video_id)

        def apply(config: ConfigJSON) -> None:
            if any(y.video_id == video_id for y in config.youtube):
                raise ConflictError("YouTube video already exists")
            config.youtube.append(Youtube(video_id=video_id))

        await self.update(tab_id, apply)

    async def update_youtube(
        self, tab_id: str, video_id: str, data: Union[SyncRequest, dict]
    ) -> None:
        check_filename(video_id)
        sync = _as_sync_request(data)
        entry = Youtube(
            video_id=video_id,
            sync_method=sync.sync_method,
            simple_sync=sync.simple_sync,
            advanced_sync=sync.advanced_sync,
        )

        def apply(config: ConfigJSON) -> None:
            for i, existing in enumerate(config.youtube):
                if existing.video_id == video_id:
                    config.youtube[i] = entry
                    return
            config.youtube.append(entry)

        await self.update(tab_id, apply)

    async def remove_youtube(self, tab_id: str, video_id: str) -> None:
        """Unlink a video. Unlinking a video that is not linked is a no-op."""
        check_filename(video_id)

        def apply(config: ConfigJSON) -> None:
            config.youtube = [y for y in config.youtube if y.video_id != video_id]

        await self.update(tab_id, apply)
