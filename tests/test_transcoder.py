"""
tests/test_transcoder.py

Audio extraction: scratch files never outlive the call, whatever happens.
"""

import asyncio
from pathlib import Path

import aiohttp
import pytest

from teleload.errors import DownloadFailed, TranscodeFailed, TranscodeUnavailable
from teleload.transcoder import ScratchFiles, Transcoder
from teleload.utils.ffmpeg_runner import audio_extract_cmd, locate_ffmpeg

TOKEN = "a1b2c3d4e5f6"


async def ok_download(url, dest: Path, timeout=60):
    dest.write_bytes(b"fake-mp4")
    return 8


async def failing_download(url, dest: Path, timeout=60):
    dest.write_bytes(b"partial")
    raise aiohttp.ClientError("connection reset")


async def timeout_download(url, dest: Path, timeout=60):
    raise asyncio.TimeoutError()


async def ok_runner(cmd, timeout):
    Path(cmd[-1]).write_bytes(b"ID3fake-mp3")
    return 0, ""


async def failing_runner(cmd, timeout):
    Path(cmd[-1]).write_bytes(b"")
    return 1, "Invalid data found when processing input"


def leftovers(d: Path):
    return sorted(p.name for p in d.iterdir() if TOKEN in p.name)


def make(scratch_dir, downloader=ok_download, runner=ok_runner, ffmpeg="/usr/bin/ffmpeg"):
    return Transcoder(ffmpeg, scratch_dir=scratch_dir, downloader=downloader, runner=runner)


async def test_success_yields_audio_then_cleans_up(scratch_dir):
    t = make(scratch_dir)
    async with t.extract_audio(TOKEN, "https://cdn/v.mp4") as audio:
        assert audio.name == f"{TOKEN}.mp3"
        assert audio.read_bytes() == b"ID3fake-mp3"
        assert leftovers(scratch_dir) == [f"{TOKEN}.mp3", f"{TOKEN}.mp4"]
    assert leftovers(scratch_dir) == []


async def test_download_failure_raises_and_cleans_up(scratch_dir):
    t = make(scratch_dir, downloader=failing_download)
    with pytest.raises(DownloadFailed):
        async with t.extract_audio(TOKEN, "https://cdn/v.mp4"):
            pytest.fail("body must not run")
    assert leftovers(scratch_dir) == []


async def test_download_timeout_is_download_failed(scratch_dir):
    t = make(scratch_dir, downloader=timeout_download)
    with pytest.raises(DownloadFailed):
        async with t.extract_audio(TOKEN, "https://cdn/v.mp4"):
            pass
    assert leftovers(scratch_dir) == []


async def test_transcode_failure_raises_and_cleans_up(scratch_dir):
    t = make(scratch_dir, runner=failing_runner)
    with pytest.raises(TranscodeFailed):
        async with t.extract_audio(TOKEN, "https://cdn/v.mp4"):
            pass
    assert leftovers(scratch_dir) == []


async def test_ffmpeg_missing_binary_is_transcode_failed(scratch_dir):
    async def runner(cmd, timeout):
        raise FileNotFoundError(cmd[0])

    t = make(scratch_dir, runner=runner)
    with pytest.raises(TranscodeFailed):
        async with t.extract_audio(TOKEN, "https://cdn/v.mp4"):
            pass
    assert leftovers(scratch_dir) == []


async def test_caller_failure_inside_block_still_cleans_up(scratch_dir):
    t = make(scratch_dir)
    with pytest.raises(RuntimeError):
        async with t.extract_audio(TOKEN, "https://cdn/v.mp4"):
            raise RuntimeError("send failed")
    assert leftovers(scratch_dir) == []


async def test_unavailable_fails_fast_without_network(scratch_dir):
    calls = []

    async def downloader(url, dest, timeout=60):
        calls.append(url)
        return 0

    t = make(scratch_dir, downloader=downloader, ffmpeg=None)
    assert not t.available
    with pytest.raises(TranscodeUnavailable):
        async with t.extract_audio(TOKEN, "https://cdn/v.mp4"):
            pass
    assert calls == []


async def test_scratch_dir_created_if_missing(tmp_path):
    scratch = tmp_path / "nested" / "scratch"
    t = make(scratch)
    async with t.extract_audio(TOKEN, "https://cdn/v.mp4") as audio:
        assert audio.parent == scratch
    assert scratch.is_dir()
    assert leftovers(scratch) == []


def test_scratch_files_release_ignores_missing(tmp_path):
    present = tmp_path / "a.mp4"
    present.write_bytes(b"x")
    with ScratchFiles(present, tmp_path / "missing.mp3"):
        pass
    assert not present.exists()


def test_audio_cmd_is_audio_only_mp3_128k():
    cmd = audio_extract_cmd("ffmpeg", Path("in.mp4"), Path("out.mp3"))
    assert cmd[0] == "ffmpeg"
    assert "-vn" in cmd
    assert cmd[cmd.index("-acodec") + 1] == "libmp3lame"
    assert cmd[cmd.index("-b:a") + 1] == "128k"
    assert cmd[cmd.index("-f") + 1] == "mp3"
    assert cmd[-1] == "out.mp3"


def test_locate_ffmpeg_falls_back_to_bundled(tmp_path):
    bundled = tmp_path / "ffmpeg"
    bundled.write_text("#!/bin/sh\n")
    bundled.chmod(0o755)
    assert locate_ffmpeg("definitely-not-a-real-binary-xyz", str(bundled)) == str(bundled)


def test_locate_ffmpeg_none_when_nothing_present(tmp_path):
    assert locate_ffmpeg("definitely-not-a-real-binary-xyz", str(tmp_path / "nope")) is None
