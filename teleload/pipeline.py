# teleload/pipeline.py
"""
Download-and-delivery pipeline.

Link message:
    gate -> resolve -> (video | photos | not found) -> record

    - gate runs first: an expired user never costs a provider call
    - the status message walks detected -> fetching -> sending and always ends
      deleted (delivered) or edited to an error text
    - a video gets an "extract audio" button backed by a TokenStore entry

Audio button:
    take token -> transcode -> send audio

    - the token is gone after take(), whatever happens next
    - scratch files are owned by Transcoder.extract_audio()

Neither entry point raises for expected failures; both return an Outcome and
have already told the user what happened.
"""

from __future__ import annotations

import datetime as _dt
import enum
import html
import logging
import re
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence

from .buttons import audio_keyboard, upgrade_keyboard
from .config import AUDIO_FORMAT, CAPTION_LIMIT, MEDIA_GROUP_LIMIT, TITLE_MAX_LEN
from .entitlement import Tier, evaluate, utcnow
from .errors import (
    AccessExpired,
    DeliveryFailed,
    DownloadFailed,
    PipelineError,
    ResolutionNotFound,
    TokenExpiredOrMissing,
    TranscodeFailed,
    TranscodeUnavailable,
)
from .events import extract_link
from .messages import Msg
from .resolver import Photo, PhotoSet, Resolver, Video
from .tokens import AudioToken, TokenStore
from .transcoder import Transcoder

logger = logging.getLogger(__name__)

_HASHTAG_RE = re.compile(r"#\w+")
_UNSAFE_TITLE_RE = re.compile(r"[^\w\s]")


class Outcome(str, enum.Enum):
    NO_LINK = "no_link"
    ACCESS_EXPIRED = "access_expired"
    NOT_FOUND = "not_found"
    VIDEO_DELIVERED = "video_delivered"
    PHOTOS_DELIVERED = "photos_delivered"
    DELIVERY_FAILED = "delivery_failed"
    AUDIO_DELIVERED = "audio_delivered"
    TOKEN_EXPIRED = "token_expired"
    TRANSCODE_UNAVAILABLE = "transcode_unavailable"
    AUDIO_FAILED = "audio_failed"

    @classmethod
    def of(cls, error: PipelineError) -> "Outcome":
        """Outcome named by an error's kind (ResolutionNotFound -> NOT_FOUND, ...)."""
        return cls(error.kind)


class Store(Protocol):
    async def record_download(self, user_id: str, url: str, is_watermarked: bool) -> Any: ...


class Transport(Protocol):
    lang: str
    bot_username: str

    async def send_text(self, text: str, reply_markup: Any = None) -> Any: ...
    async def edit_text(self, message: Any, text: str, reply_markup: Any = None) -> None: ...
    async def delete(self, message: Any) -> None: ...
    async def send_video(self, url: str, caption: str, reply_markup: Any = None) -> Any: ...
    async def send_photo_group(self, items: Sequence[Photo], caption: Optional[str] = None) -> None: ...
    async def send_audio(self, path: Any, filename: str, caption: str) -> None: ...
    async def answer_action(self, text: Optional[str] = None) -> None: ...


# -------------------------
# Captions / titles
# -------------------------

def split_title(title: str) -> tuple[str, str]:
    """-> (title without hashtags, "#a #b")"""
    title = title or ""
    hashtags = " ".join(_HASHTAG_RE.findall(title))
    clean = " ".join(_HASHTAG_RE.sub("", title).split())
    return clean, hashtags


def safe_title(title: str, max_len: int = TITLE_MAX_LEN) -> str:
    """Filesystem-safe: letters, digits, underscore and spaces only, capped."""
    cleaned = _UNSAFE_TITLE_RE.sub("", title or "")
    return cleaned[:max_len].strip() or "audio"


def tg_len(text: str) -> int:
    """Length as Telegram counts it: UTF-16 code units (astral emoji count 2)."""
    return len(text.encode("utf-16-le")) // 2


def tg_cut(text: str, limit: int) -> str:
    """Longest prefix of `text` within `limit` UTF-16 units; never splits a surrogate pair."""
    if tg_len(text) <= limit:
        return text
    used = 0
    for idx, ch in enumerate(text):
        used += 2 if ord(ch) > 0xFFFF else 1
        if used > limit:
            return text[:idx]
    return text


def _fit(text: str, budget: int) -> str:
    """Cut raw `text` so that its HTML-escaped form fits in `budget` units."""
    if budget <= 0:
        return ""
    while text and tg_len(html.escape(text)) > budget:
        over = tg_len(html.escape(text)) - budget
        text = tg_cut(text, tg_len(text) - max(1, over)).rstrip()
    return html.escape(text)


def build_video_caption(title: str, tier: Tier, lang: str, bot_username: str, limit: int = CAPTION_LIMIT) -> str:
    # HTML tags are counted too; Telegram strips them before checking the limit
    clean, hashtags = split_title(title)
    tier_label = Msg.get(lang, "tier.short.pro" if tier is Tier.PRO else "tier.short.trial")
    fixed = Msg.get(lang, "dl.caption", bot=html.escape(bot_username), title="", hashtags="", tier=tier_label)

    budget = limit - tg_len(fixed)
    title_part = ""
    if clean:
        wrap = Msg.get(lang, "dl.caption_title", title="")
        t = _fit(clean, budget - tg_len(wrap))
        if t:
            title_part = Msg.get(lang, "dl.caption_title", title=t)
            budget -= tg_len(title_part)
    tags_part = ""
    if hashtags and budget > 1:
        t = _fit(hashtags, budget - 1)
        if t:
            tags_part = f"{t}\n"

    caption = Msg.get(lang, "dl.caption", bot=html.escape(bot_username), title=title_part, hashtags=tags_part, tier=tier_label)
    return tg_cut(caption, limit)


def batches(items: Sequence[Photo], size: int = MEDIA_GROUP_LIMIT) -> List[List[Photo]]:
    size = max(1, int(size))
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


# -------------------------
# Pipeline
# -------------------------

class DeliveryPipeline:
    def __init__(
        self,
        store: Store,
        resolver: Resolver,
        tokens: TokenStore,
        transcoder: Transcoder,
        clock: Callable[[], _dt.datetime] = utcnow,
        caption_limit: int = CAPTION_LIMIT,
        group_limit: int = MEDIA_GROUP_LIMIT,
    ):
        self.store = store
        self.resolver = resolver
        self.tokens = tokens
        self.transcoder = transcoder
        self._clock = clock
        self.caption_limit = caption_limit
        self.group_limit = group_limit

    # ---- helpers ----

    @staticmethod
    async def _status(transport: Transport, message: Any, text: str) -> None:
        try:
            await transport.edit_text(message, text)
        except DeliveryFailed as e:
            logger.debug("status edit failed: %s", e)

    @staticmethod
    async def _notify(transport: Transport, text: str, reply_markup: Any = None) -> None:
        try:
            await transport.send_text(text, reply_markup=reply_markup)
        except DeliveryFailed:
            logger.warning("could not notify chat", exc_info=True)

    async def _record(self, user: Mapping[str, Any], url: str, tier: Tier) -> None:
        try:
            await self.store.record_download(user["user_id"], url, tier is not Tier.PRO)
        except Exception:
            # already delivered; a lost stats row must not turn into a user-facing error
            logger.exception("recording download failed user=%s url=%s", user.get("user_id"), url)

    def gate(self, user: Mapping[str, Any]) -> Tier:
        """Tier for a delivery request; raises AccessExpired instead of returning EXPIRED."""
        tier = evaluate(user, self._clock())
        if tier is Tier.EXPIRED:
            raise AccessExpired(f"user {user.get('user_id')} has no active trial or PRO")
        return tier

    async def take_token(self, token_id: str) -> AudioToken:
        token = await self.tokens.take(token_id)
        if token is None:
            raise TokenExpiredOrMissing(token_id)
        return token

    # ---- link message ----

    async def handle_link(self, user: Mapping[str, Any], text: str, transport: Transport) -> Outcome:
        url = extract_link(text)
        if not url:
            return Outcome.NO_LINK
        lang = transport.lang

        try:
            tier = self.gate(user)
        except AccessExpired as e:
            await self._notify(transport, Msg.get(lang, "dl.expired"), reply_markup=upgrade_keyboard(lang))
            return Outcome.of(e)

        try:
            status = await transport.send_text(Msg.get(lang, "dl.detected"))
        except DeliveryFailed as e:
            logger.warning("could not post status message", exc_info=True)
            return Outcome.of(e)

        token: Optional[AudioToken] = None
        try:
            await self._status(transport, status, Msg.get(lang, "dl.fetching"))
            media = await self.resolver.resolve(url)

            if isinstance(media, PhotoSet):
                await self._status(transport, status, Msg.get(lang, "dl.sending_photos"))
                caption = tg_cut(media.title, self.caption_limit) or None
                for idx, batch in enumerate(batches(media.items, self.group_limit)):
                    await transport.send_photo_group(batch, caption=caption if idx == 0 else None)
                outcome = Outcome.PHOTOS_DELIVERED

            elif isinstance(media, Video):
                await self._status(transport, status, Msg.get(lang, "dl.sending_video"))
                caption = build_video_caption(media.title, tier, lang, transport.bot_username, self.caption_limit)
                clean, _ = split_title(media.title)
                token = await self.tokens.put(media.url, safe_title(clean))
                await transport.send_video(media.url, caption, reply_markup=audio_keyboard(lang, token.token_id))
                outcome = Outcome.VIDEO_DELIVERED

            else:
                raise ResolutionNotFound(url)

        except ResolutionNotFound as e:
            await self._status(transport, status, Msg.get(lang, "dl.not_found"))
            return Outcome.of(e)
        except Exception:
            logger.exception("delivery failed for %s", url)
            if token is not None:
                await self.tokens.take(token.token_id)
            await self._status(transport, status, Msg.get(lang, "dl.failed"))
            return Outcome.DELIVERY_FAILED

        # submitted link for both media kinds
        await self._record(user, url, tier)
        try:
            await transport.delete(status)
        except DeliveryFailed:
            await self._status(transport, status, Msg.get(lang, "dl.done"))
        return outcome

    # ---- audio button ----

    async def handle_audio(self, token_id: str, transport: Transport) -> Outcome:
        lang = transport.lang
        try:
            await transport.answer_action(Msg.get(lang, "audio.preparing"))
        except DeliveryFailed:
            logger.debug("answer callback failed", exc_info=True)

        try:
            token = await self.take_token(token_id)
        except TokenExpiredOrMissing as e:
            await self._notify(transport, Msg.get(lang, "audio.expired"))
            return Outcome.of(e)

        try:
            async with self.transcoder.extract_audio(token.token_id, token.video_url) as audio_path:
                await transport.send_audio(
                    audio_path,
                    f"{token.title}.{AUDIO_FORMAT}",
                    Msg.get(lang, "audio.caption"),
                )
        except TranscodeUnavailable as e:
            logger.warning("audio requested but no ffmpeg backend")
            await self._notify(transport, Msg.get(lang, "audio.unavailable"))
            return Outcome.of(e)
        except (DownloadFailed, TranscodeFailed, DeliveryFailed) as e:
            logger.warning("audio extraction failed for %s: %s", token.token_id, e)
            await self._notify(transport, Msg.get(lang, "audio.failed"))
            return Outcome.AUDIO_FAILED
        except Exception:
            logger.exception("audio delivery crashed for %s", token.token_id)
            await self._notify(transport, Msg.get(lang, "audio.failed"))
            return Outcome.AUDIO_FAILED
        return Outcome.AUDIO_DELIVERED
