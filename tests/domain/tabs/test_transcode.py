"""Tests for FLAC to Ogg conversion (ffmpeg is mocked)."""

import subprocess
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from mytabs.domain.tabs.errors import TranscodeError
from mytabs.domain.tabs.transcode import FfmpegTranscoder, check_ffmpeg


def fake_ffmpeg(output: bytes = b"OggS", returncode: int = 0, stderr: bytes = b""):
    """Build a run_process replacement that behaves like ffmpeg."""
    seen = {}

    async def run_process(command, **kwargs):
        source, target = Path(command[3]), Path(command[8])
        seen["command"] = command
        seen["input"] = source.read_bytes()
        seen["temp_dir"] = source.parent
        if returncode == 0 and output is not None:
            target.write_bytes(output)
        return subprocess.CompletedProcess(command, returncode, b"", stderr)

    return run_process, seen


@pytest.mark.anyio
async def test_converts_through_temp_files():
    run_process, seen = fake_ffmpeg(output=b"OggS data")

    with patch("anyio.run_process", run_process):
        result = await FfmpegTranscoder("/opt/ffmpeg", quality=4)(b"fLaC data")

    assert result == b"OggS data"
    assert seen["input"] == b"fLaC data"
    assert seen["command"][0] == "/opt/ffmpeg"
    assert "libvorbis" in seen["command"]
    assert seen["command"][seen["command"].index("-q:a") + 1] == "4"
    assert not seen["temp_dir"].exists()


@pytest.mark.anyio
async def test_nonzero_exit_raises_and_cleans_up():
    run_process, seen = fake_ffmpeg(returncode=1, stderr=b"Invalid data found")

    with patch("anyio.run_process", run_process):
        with pytest.raises(TranscodeError, match="Invalid data found"):
            await FfmpegTranscoder()(b"not flac")

    assert not seen["temp_dir"].exists()


@pytest.mark.anyio
async def test_empty_output_raises():
    run_process, _ = fake_ffmpeg(output=b"")

    with patch("anyio.run_process", run_process):
        with pytest.raises(TranscodeError, match="empty output"):
            await FfmpegTranscoder()(b"fLaC")


@pytest.mark.anyio
async def test_missing_output_raises():
    run_process, _ = fake_ffmpeg(output=None)

    with patch("anyio.run_process", run_process):
        with pytest.raises(TranscodeError, match="no output file"):
            await FfmpegTranscoder()(b"fLaC")


@pytest.mark.anyio
async def test_missing_binary_raises():
    with pytest.raises(TranscodeError, match="Failed to run"):
        await FfmpegTranscoder("/nonexistent/ffmpeg-binary")(b"fLaC")


def test_check_ffmpeg():
    assert check_ffmpeg("/nonexistent/ffmpeg-binary") is False


@pytest.mark.anyio
async def test_temp_dir_removed_when_binary_missing():
    created = []
    real_mkdtemp = tempfile.mkdtemp

    def recording_mkdtemp(*args, **kwargs):
        created.append(Path(real_mkdtemp(*args, **kwargs)))
        return str(created[-1])

    with patch("tempfile.mkdtemp", recording_mkdtemp):
        with pytest.raises(TranscodeError):
            await FfmpegTranscoder("/nonexistent/ffmpeg-binary")(b"fLaC")

    assert len(created) == 1
    assert not created[0].exists()
