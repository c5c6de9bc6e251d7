# teleload/resolver.py
"""
Upstream resolver: turns a submitted short-video link into something we can send.

Providers are tried strictly in order, one request each, and the first one that
yields a video or a photo set wins. Every provider failure (network, non-2xx,
garbage JSON, unexpected shape) just moves on to the next one; resolve() itself
never raises.

Adding a provider = subclass Provider, implement normalize(), register it in
PROVIDERS. Nothing downstream changes: it only ever sees Video / PhotoSet / NotFound.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Type, Union

from .config import PREFER_VIDEO, PROVIDER_ORDER, PROVIDER_TIMEOUT_SEC
from .errors import ProviderError
from .utils.http import fetch_json

logger = logging.getLogger(__name__)


# -------------------------
# Canonical result
# -------------------------

@dataclass(frozen=True)
class Photo:
    url: str
    caption: Optional[str] = None


@dataclass(frozen=True)
class Video:
    url: str
    title: str = ""


@dataclass(frozen=True)
class PhotoSet:
    items: Tuple[Photo, ...] = field(default_factory=tuple)
    title: str = ""


@dataclass(frozen=True)
class NotFound:
    pass


NOT_FOUND = NotFound()

ResolvedMedia = Union[Video, PhotoSet, NotFound]

FetchJson = Callable[..., Awaitable[Any]]


def _str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _photos_from(raw: Any) -> Tuple[Photo, ...]:
    """Providers hand images back either as plain URLs or as {"url": ...} dicts."""
    if not isinstance(raw, list):
        return ()
    out: List[Photo] = []
    for item in raw:
        if isinstance(item, str) and item.strip():
            out.append(Photo(url=item.strip()))
        elif isinstance(item, dict):
            url = _str(item.get("url"))
            if url:
                out.append(Photo(url=url, caption=_str(item.get("caption")) or None))
    return tuple(out)


def pick_media(video_url: str, photos: Sequence[Photo], title: str, prefer_video: bool = True) -> ResolvedMedia:
    has_video = bool(video_url)
    has_photos = bool(photos)
    if has_video and (prefer_video or not has_photos):
        return Video(url=video_url, title=title)
    if has_photos:
        return PhotoSet(items=tuple(photos), title=title)
    return NOT_FOUND


# -------------------------
# Providers
# -------------------------

class Provider:
    name = "base"
    endpoint = ""

    def params(self, source_url: str) -> Dict[str, str]:
        return {"url": source_url}

    def normalize(self, payload: Any, prefer_video: bool = True) -> ResolvedMedia:
        raise NotImplementedError


class TiklydownProvider(Provider):
    # {"video": {"noWatermark": "...", "title": "..."}, "images": [...], "title": "..."}
    name = "tiklydown"
    endpoint = "https://api.tiklydown.eu.org/api/download"

    def normalize(self, payload: Any, prefer_video: bool = True) -> ResolvedMedia:
        if not isinstance(payload, dict):
            raise ProviderError(self.name, "unexpected payload")
        video = payload.get("video") if isinstance(payload.get("video"), dict) else {}
        video_url = _str(video.get("noWatermark"))
        photos = _photos_from(payload.get("images"))
        if video_url and (prefer_video or not photos):
            title = _str(video.get("title")) or _str(payload.get("title"))
        else:
            title = _str(payload.get("title"))
        return pick_media(video_url, photos, title, prefer_video)


class TikwmProvider(Provider):
    # {"code": 0, "data": {"play": "/video/...", "title": "...", "images": [...]}}
    name = "tikwm"
    endpoint = "https://tikwm.com/api/"
    base_url = "https://tikwm.com"

    def normalize(self, payload: Any, prefer_video: bool = True) -> ResolvedMedia:
        if not isinstance(payload, dict):
            raise ProviderError(self.name, "unexpected payload")
        data = payload.get("data")
        if not isinstance(data, dict):
            return NOT_FOUND
        play = _str(data.get("play"))
        if play and not play.startswith("http"):
            play = f"{self.base_url}{play}"
        photos = _photos_from(data.get("images"))
        return pick_media(play, photos, _str(data.get("title")), prefer_video)


PROVIDERS: Dict[str, Type[Provider]] = {
    TiklydownProvider.name: TiklydownProvider,
    TikwmProvider.name: TikwmProvider,
}


def build_providers(names: Iterable[str] = PROVIDER_ORDER) -> List[Provider]:
    out: List[Provider] = []
    for name in names:
        cls = PROVIDERS.get(name.strip().lower())
        if cls is None:
            logger.warning("unknown provider %r in PROVIDER_ORDER, skipped", name)
            continue
        out.append(cls())
    return out


# -------------------------
# Resolver
# -------------------------

class Resolver:
    def __init__(
        self,
        providers: Optional[Sequence[Provider]] = None,
        fetch: FetchJson = fetch_json,
        timeout: int = PROVIDER_TIMEOUT_SEC,
        prefer_video: bool = PREFER_VIDEO,
    ):
        self.providers: List[Provider] = list(providers) if providers is not None else build_providers()
        self._fetch = fetch
        self.timeout = timeout
        self.prefer_video = prefer_video

    async def _call(self, provider: Provider, source_url: str) -> ResolvedMedia:
        try:
            payload = await self._fetch(provider.endpoint, params=provider.params(source_url), timeout=self.timeout)
        except Exception as e:
            raise ProviderError(provider.name, f"request failed: {e!r}") from e
        try:
            return provider.normalize(payload, prefer_video=self.prefer_video)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(provider.name, f"bad response: {e!r}") from e

    async def resolve(self, source_url: str) -> ResolvedMedia:
        for provider in self.providers:
            try:
                media = await self._call(provider, source_url)
            except ProviderError as e:
                logger.warning("provider %s failed, trying next: %s", e.provider, e.reason)
                continue
            if isinstance(media, (Video, PhotoSet)):
                logger.info("resolved %s via %s (%s)", source_url, provider.name, type(media).__name__)
                return media
            logger.info("provider %s had nothing for %s", provider.name, source_url)
        return NOT_FOUND
