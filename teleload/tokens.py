# teleload/tokens.py
from __future__ import annotations

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .config import TOKEN_ID_BYTES, TOKEN_TTL_SEC

logger = logging.getLogger(__name__)


def new_token_id(nbytes: int = TOKEN_ID_BYTES) -> str:
    return secrets.token_hex(nbytes)


@dataclass
class AudioToken:
    token_id: str
    video_url: str
    title: str
    created_at: float = field(default_factory=time.time)


class TokenStore:
    """
    Short-lived token_id -> AudioToken map behind the "extract audio" button.

    - take() is destructive: a token is handed out at most once
    - sweep() drops everything older than ttl, taken or not
    - all three operations share one lock
    """

    def __init__(self, ttl_sec: float = TOKEN_TTL_SEC, clock: Callable[[], float] = time.time):
        self.ttl_sec = float(ttl_sec)
        self._clock = clock
        self._items: Dict[str, AudioToken] = {}
        self._lock = asyncio.Lock()

    async def put(self, video_url: str, title: str) -> AudioToken:
        async with self._lock:
            token = AudioToken(
                token_id=new_token_id(),
                video_url=video_url,
                title=title,
                created_at=self._clock(),
            )
            self._items[token.token_id] = token
            return token

    async def take(self, token_id: str) -> Optional[AudioToken]:
        async with self._lock:
            token = self._items.pop(token_id, None)
            if token is None:
                return None
            # expired but not swept yet
            if self._clock() - token.created_at > self.ttl_sec:
                return None
            return token

    async def sweep(self, now: Optional[float] = None) -> int:
        async with self._lock:
            now = self._clock() if now is None else now
            stale = [tid for tid, t in self._items.items() if now - t.created_at > self.ttl_sec]
            for tid in stale:
                self._items.pop(tid, None)
            if stale:
                logger.debug("token sweep removed %d entries", len(stale))
            return len(stale)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, token_id: str) -> bool:
        return token_id in self._items
