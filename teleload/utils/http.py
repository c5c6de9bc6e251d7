# teleload/utils/http.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import aiohttp

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0 Safari/537.36",
}


async def fetch_json(url: str, params: Optional[Dict[str, str]] = None, headers: Optional[Dict[str, str]] = None, timeout: int = 15) -> Any:
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
        async with session.get(url, params=params, headers=headers or DEFAULT_HEADERS) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)


async def download_to_file(url: str, dest: Path, timeout: int = 60, chunk_size: int = 256 * 1024) -> int:
    """
    Stream `url` into `dest`. Returns bytes written.
    Raises aiohttp.ClientError / asyncio.TimeoutError on failure.
    """
    written = 0
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
        async with session.get(url, headers=DEFAULT_HEADERS) as resp:
            resp.raise_for_status()
            with open(dest, "wb") as f:
                async for chunk in resp.content.iter_chunked(chunk_size):
                    if not chunk:
                        continue
                    f.write(chunk)
                    written += len(chunk)
    return written
