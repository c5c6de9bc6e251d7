# teleload/transcoder.py
"""
Video URL -> local mp3 file.

    async with transcoder.extract_audio(token_id, url) as audio_path:
        await send(audio_path)

Both scratch files (<token_id>.mp4 and <token_id>.<fmt>) live only inside the
`async with` block: they are removed on the way out whether the download, the
transform or the caller's send failed or succeeded.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Tuple

import aiohttp

from .config import AUDIO_FORMAT, MEDIA_FETCH_TIMEOUT_SEC, TMP_DIR, TRANSCODE_TIMEOUT_SEC
from .errors import DownloadFailed, TranscodeFailed, TranscodeUnavailable
from .utils.ffmpeg_runner import audio_extract_cmd, locate_ffmpeg, run_ffmpeg
from .utils.http import download_to_file

logger = logging.getLogger(__name__)

Downloader = Callable[..., Awaitable[int]]
Runner = Callable[[List[str], float], Awaitable[Tuple[int, str]]]


class ScratchFiles:
    """Owns a set of scratch paths; release() unlinks every one of them."""

    def __init__(self, *paths: Path):
        self.paths = list(paths)

    def release(self) -> None:
        for p in self.paths:
            try:
                p.unlink(missing_ok=True)
            except OSError:
                logger.warning("could not remove scratch file %s", p, exc_info=True)

    def __enter__(self) -> "ScratchFiles":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


class Transcoder:
    def __init__(
        self,
        ffmpeg: Optional[str],
        scratch_dir: Path = TMP_DIR,
        downloader: Downloader = download_to_file,
        runner: Runner = run_ffmpeg,
        fetch_timeout: int = MEDIA_FETCH_TIMEOUT_SEC,
        transcode_timeout: int = TRANSCODE_TIMEOUT_SEC,
        fmt: str = AUDIO_FORMAT,
    ):
        self.ffmpeg = ffmpeg
        self.scratch_dir = Path(scratch_dir)
        self._download = downloader
        self._run = runner
        self.fetch_timeout = fetch_timeout
        self.transcode_timeout = transcode_timeout
        self.fmt = fmt

    @classmethod
    def probe(cls, **kwargs) -> "Transcoder":
        """Look for ffmpeg once at startup."""
        ffmpeg = locate_ffmpeg()
        if ffmpeg:
            logger.info("ffmpeg found at %s", ffmpeg)
        else:
            logger.warning("ffmpeg not found (PATH or bundled); audio extraction disabled")
        return cls(ffmpeg, **kwargs)

    @property
    def available(self) -> bool:
        return bool(self.ffmpeg)

    def scratch_paths(self, token_id: str) -> Tuple[Path, Path]:
        return (
            self.scratch_dir / f"{token_id}.mp4",
            self.scratch_dir / f"{token_id}.{self.fmt}",
        )

    @contextlib.asynccontextmanager
    async def extract_audio(self, token_id: str, video_url: str) -> AsyncIterator[Path]:
        if not self.available:
            raise TranscodeUnavailable("no ffmpeg backend on this host")

        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        video_path, audio_path = self.scratch_paths(token_id)

        with ScratchFiles(video_path, audio_path):
            try:
                size = await self._download(video_url, video_path, timeout=self.fetch_timeout)
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                raise DownloadFailed(f"fetch failed: {e!r}") from e
            logger.debug("fetched %d bytes for %s", size, token_id)

            cmd = audio_extract_cmd(self.ffmpeg, video_path, audio_path)
            try:
                code, err = await self._run(cmd, self.transcode_timeout)
            except OSError as e:
                raise TranscodeFailed(f"could not start ffmpeg: {e!r}") from e
            if code != 0 or not audio_path.exists() or audio_path.stat().st_size == 0:
                raise TranscodeFailed(f"ffmpeg exit {code}: {err}")

            yield audio_path
