# teleload/utils/ffmpeg_runner.py
"""
Thin ffmpeg wrapper.

- locate_ffmpeg(): PATH first (FFMPEG_BIN), then the optional bundled binary
- audio_extract_cmd(): video in -> audio-only out (no video stream, fixed codec/bitrate/format)
- run_ffmpeg(): async subprocess, bounded by a timeout, returns (returncode, stderr tail)
"""

from __future__ import annotations

import asyncio
import os
import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from ..config import AUDIO_BITRATE, AUDIO_CODEC, AUDIO_FORMAT, FFMPEG_BIN, FFMPEG_BUNDLED


def locate_ffmpeg(binary: str = FFMPEG_BIN, bundled: Optional[str] = FFMPEG_BUNDLED) -> Optional[str]:
    found = shutil.which(binary)
    if found:
        return found
    if bundled:
        p = Path(bundled)
        if p.is_file() and os.access(p, os.X_OK):
            return str(p)
    return None


def audio_extract_cmd(
    ffmpeg: str,
    input_path: Path,
    output_path: Path,
    codec: str = AUDIO_CODEC,
    bitrate: str = AUDIO_BITRATE,
    fmt: str = AUDIO_FORMAT,
) -> List[str]:
    return [
        ffmpeg, "-y",
        "-hide_banner", "-loglevel", "error",
        "-i", str(input_path),
        "-vn",
        "-acodec", codec,
        "-b:a", bitrate,
        "-f", fmt,
        str(output_path),
    ]


async def run_ffmpeg(cmd: List[str], timeout: float) -> Tuple[int, str]:
    p = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.DEVNULL,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        _, err = await asyncio.wait_for(p.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        p.kill()
        await p.wait()
        return -1, "timeout"
    tail = (err or b"").decode("utf-8", errors="ignore")[-500:]
    return p.returncode if p.returncode is not None else -1, tail
