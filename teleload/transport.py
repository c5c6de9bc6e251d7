# teleload/transport.py
"""
Delivery surface handed to the pipelines: one instance per inbound update,
bound to a chat (and, for button presses, to the callback query).

Every Telegram failure (payload too large, flood control, network drop) comes
out of here as DeliveryFailed, so the pipelines only deal with their own errors.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Optional, Sequence

from telegram import Bot, CallbackQuery, InputMediaPhoto, Message
from telegram.constants import ParseMode
from telegram.error import TelegramError

from .errors import DeliveryFailed
from .messages import norm_lang
from .resolver import Photo


class TelegramTransport:
    def __init__(self, bot: Bot, chat_id: int, lang: str, query: Optional[CallbackQuery] = None):
        self.bot = bot
        self.chat_id = chat_id
        self.lang = norm_lang(lang)
        self.query = query

    @property
    def bot_username(self) -> str:
        return self.bot.username or "bot"

    async def _guard(self, what: str, aw: Awaitable[Any]) -> Any:
        try:
            return await aw
        except TelegramError as e:
            raise DeliveryFailed(f"{what}: {e}") from e

    async def send_text(self, text: str, reply_markup: Any = None) -> Message:
        return await self._guard("sendMessage", self.bot.send_message(
            chat_id=self.chat_id,
            text=text,
            parse_mode=ParseMode.HTML,
            reply_markup=reply_markup,
        ))

    async def edit_text(self, message: Message, text: str, reply_markup: Any = None) -> None:
        await self._guard("editMessageText", self.bot.edit_message_text(
            chat_id=self.chat_id,
            message_id=message.message_id,
            text=text,
            parse_mode=ParseMode.HTML,
            reply_markup=reply_markup,
        ))

    async def delete(self, message: Message) -> None:
        await self._guard("deleteMessage", self.bot.delete_message(chat_id=self.chat_id, message_id=message.message_id))

    async def send_video(self, url: str, caption: str, reply_markup: Any = None) -> Message:
        return await self._guard("sendVideo", self.bot.send_video(
            chat_id=self.chat_id,
            video=url,
            caption=caption,
            parse_mode=ParseMode.HTML,
            reply_markup=reply_markup,
            supports_streaming=True,
        ))

    async def send_photo_group(self, items: Sequence[Photo], caption: Optional[str] = None) -> None:
        media = [
            InputMediaPhoto(media=p.url, caption=caption if idx == 0 and caption else None)
            for idx, p in enumerate(items)
        ]
        await self._guard("sendMediaGroup", self.bot.send_media_group(chat_id=self.chat_id, media=media))

    async def send_audio(self, path: Path, filename: str, caption: str) -> None:
        with open(path, "rb") as f:
            await self._guard("sendAudio", self.bot.send_audio(
                chat_id=self.chat_id,
                audio=f,
                filename=filename,
                caption=caption,
            ))

    async def answer_action(self, text: Optional[str] = None) -> None:
        if self.query is None:
            return
        await self._guard("answerCallbackQuery", self.query.answer(text))
