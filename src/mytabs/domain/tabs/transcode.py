"""FLAC to Ogg Vorbis conversion through ffmpeg."""

import shutil
import tempfile
from functools import partial
from typing import Awaitable, Callable

import anyio
import anyio.to_thread
from loguru import logger

from .errors import TranscodeError

Transcoder = Callable[[bytes], Awaitable[bytes]]


def check_ffmpeg(ffmpeg_path: str = "ffmpeg") -> bool:
    """Return True if the ffmpeg binary can be found."""
    if shutil.which(ffmpeg_path):
        return True
    logger.warning(f"{ffmpeg_path} not found - FLAC uploads will fail")
    return False


class FfmpegTranscoder:
    """Converts FLAC bytes to Ogg Vorbis bytes.

    Input and output go through a private temporary directory that is always
    removed, whether or not ffmpeg succeeds. Creating and removing it runs in
    a worker thread.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", quality: int = 6):
        self.ffmpeg_path = ffmpeg_path
        self.quality = quality

    async def __call__(self, data: bytes) -> bytes:
        temp_dir = await anyio.to_thread.run_sync(
            partial(tempfile.mkdtemp, prefix="mytabs-transcode-")
        )
        try:
            output = await self._convert(anyio.Path(temp_dir), data)
        finally:
            await anyio.to_thread.run_sync(partial(shutil.rmtree, temp_dir, ignore_errors=True))

        if not output:
            raise TranscodeError("Failed to convert FLAC to OGG: empty output")
        return output

    async def _convert(self, temp_dir: anyio.Path, data: bytes) -> bytes:
        source = temp_dir / "input.flac"
        target = temp_dir / "output.ogg"
        await source.write_bytes(data)

        try:
            result = await anyio.run_process(
                [
                    self.ffmpeg_path,
                    "-y",
                    "-i",
                    str(source),
                    "-c:a",
                    "libvorbis",
                    "-q:a",
                    str(self.quality),
                    str(target),
                    "-loglevel",
                    "error",
                ],
                check=False,
            )
        except OSError as e:
            raise TranscodeError(f"Failed to run {self.ffmpeg_path}: {e}") from e

        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            logger.error(f"ffmpeg exited with {result.returncode}: {stderr}")
            raise TranscodeError(f"Failed to convert FLAC to OGG: {stderr}")

        if not await target.exists():
            raise TranscodeError("Failed to convert FLAC to OGG: no output file")

        return await target.read_bytes()
