# teleload/events.py
"""
Inbound event classification.

Every text message and every button press goes through one of two functions
here, and main.py routes on the result:

    classify_text("https://vm.tiktok.com/abc")  -> TextEvent("link", "https://vm.tiktok.com/abc")
    classify_text("👤 My Profile")               -> TextEvent("menu", "btn.profile")
    parse_callback("aud|1a2b3c")                 -> CallbackEvent("audio", "1a2b3c")

Callback format:
    audio:    "aud|<token_id>"
    language: "lang|<ru|en|pl>"
    channel:  "sub|check"
    status:   "status|refresh"
    admin:    "adm|<stats|users|top|close>"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .messages import Msg

LINK_RE = re.compile(
    r"https?://(?:www\.)?tiktok\.com/\S+"
    r"|https?://vm\.tiktok\.com/\S+"
    r"|https?://vt\.tiktok\.com/\S+",
    re.IGNORECASE,
)

MENU_KEYS = ("btn.instructions", "btn.pro", "btn.profile", "btn.handbook", "btn.language")

CB_AUDIO = "aud"
CB_LANG = "lang"
CB_SUB = "sub"
CB_STATUS = "status"
CB_ADMIN = "adm"

_CB_KINDS = {
    CB_AUDIO: "audio",
    CB_LANG: "language",
    CB_SUB: "subscription",
    CB_STATUS: "status",
    CB_ADMIN: "admin",
}

REF_PREFIX = "ref_"


@dataclass(frozen=True)
class TextEvent:
    kind: str   # link / menu / other
    value: str = ""


@dataclass(frozen=True)
class CallbackEvent:
    kind: str   # audio / language / subscription / status / admin / unknown
    arg: str = ""


def extract_link(text: str) -> Optional[str]:
    """First supported link in the message, or None."""
    m = LINK_RE.search(text or "")
    return m.group(0) if m else None


def menu_key(text: str) -> Optional[str]:
    t = (text or "").strip()
    for key in MENU_KEYS:
        if t in Msg.variants(key):
            return key
    return None


def classify_text(text: str) -> TextEvent:
    key = menu_key(text)
    if key:
        return TextEvent("menu", key)
    link = extract_link(text)
    if link:
        return TextEvent("link", link)
    return TextEvent("other", (text or "").strip())


def callback_data(prefix: str, arg: str) -> str:
    return f"{prefix}|{arg}"


def parse_callback(data: str) -> CallbackEvent:
    prefix, _, arg = (data or "").partition("|")
    kind = _CB_KINDS.get(prefix)
    if kind is None or not arg:
        return CallbackEvent("unknown", data or "")
    return CallbackEvent(kind, arg)


def parse_referral(payload: Optional[str]) -> Optional[str]:
    """`/start ref_12345` -> "12345"; anything else -> None."""
    p = (payload or "").strip()
    if not p.startswith(REF_PREFIX):
        return None
    ref = p[len(REF_PREFIX):]
    return ref if ref.isdigit() else None


def referral_link(bot_username: str, user_id: str) -> str:
    return f"https://t.me/{bot_username}?start={REF_PREFIX}{user_id}"
