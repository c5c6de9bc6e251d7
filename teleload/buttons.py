# teleload/buttons.py
from __future__ import annotations

from typing import List

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, KeyboardButton, ReplyKeyboardMarkup

from .config import PROMO_CHANNEL, UPGRADE_URL
from .events import CB_ADMIN, CB_AUDIO, CB_LANG, CB_STATUS, CB_SUB, callback_data
from .messages import Msg


def main_keyboard(lang: str) -> ReplyKeyboardMarkup:
    rows: List[List[KeyboardButton]] = [
        [KeyboardButton(Msg.get(lang, "btn.instructions")), KeyboardButton(Msg.get(lang, "btn.pro"))],
        [KeyboardButton(Msg.get(lang, "btn.profile")), KeyboardButton(Msg.get(lang, "btn.handbook"))],
        [KeyboardButton(Msg.get(lang, "btn.language"))],
    ]
    return ReplyKeyboardMarkup(rows, resize_keyboard=True)


def language_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([[
        InlineKeyboardButton("🇷🇺 Русский", callback_data=callback_data(CB_LANG, "ru")),
        InlineKeyboardButton("🇺🇸 English", callback_data=callback_data(CB_LANG, "en")),
        InlineKeyboardButton("🇵🇱 Polski", callback_data=callback_data(CB_LANG, "pl")),
    ]])


def audio_keyboard(lang: str, token_id: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(Msg.get(lang, "btn.extract_audio"), callback_data=callback_data(CB_AUDIO, token_id))],
    ])


def upgrade_keyboard(lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(Msg.get(lang, "btn.upgrade"), url=UPGRADE_URL)],
        [InlineKeyboardButton(Msg.get(lang, "btn.verify"), callback_data=callback_data(CB_STATUS, "refresh"))],
    ])


def subscribe_keyboard(lang: str) -> InlineKeyboardMarkup:
    channel_url = f"https://t.me/{PROMO_CHANNEL.lstrip('@')}"
    return InlineKeyboardMarkup([
        [InlineKeyboardButton(Msg.get(lang, "btn.go_channel"), url=channel_url)],
        [InlineKeyboardButton(Msg.get(lang, "btn.subscribed"), callback_data=callback_data(CB_SUB, "check"))],
    ])


def admin_keyboard(lang: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup([
        [
            InlineKeyboardButton(Msg.get(lang, "admin.btn.stats"), callback_data=callback_data(CB_ADMIN, "stats")),
            InlineKeyboardButton(Msg.get(lang, "admin.btn.users"), callback_data=callback_data(CB_ADMIN, "users")),
        ],
        [InlineKeyboardButton(Msg.get(lang, "admin.btn.top"), callback_data=callback_data(CB_ADMIN, "top"))],
        [InlineKeyboardButton(Msg.get(lang, "admin.btn.close"), callback_data=callback_data(CB_ADMIN, "close"))],
    ])
