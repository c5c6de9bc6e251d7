# teleload/config.py
"""
Configuration for the TeleLoad Telegram bot.

The bot downloads short videos / photo carousels without watermark and
hands them back to the user.

Key points:
- Access is gated: PRO (optionally time-bounded) or a trial window from first contact
- Ordered list of extraction providers, first success wins
- "Extract audio" button backed by short-lived in-memory tokens
- MongoDB-backed users / downloads storage
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import FrozenSet, Tuple


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip() not in ("0", "false", "False", "no", "")


def _env_csv(name: str, default: str) -> Tuple[str, ...]:
    raw = os.getenv(name, default)
    return tuple(p.strip() for p in raw.split(",") if p.strip())


# -------------------------
# Bot identity / access
# -------------------------
BOT_TOKEN: str = os.getenv("BOT_TOKEN", os.getenv("TELEGRAM_BOT_TOKEN", "")).strip()

ADMIN_IDS: FrozenSet[int] = frozenset(int(x) for x in _env_csv("ADMIN_IDS", "7248043928"))

# Version
BOT_VERSION: str = os.getenv("BOT_VERSION", "TeleLoad-PRO-v1")

# -------------------------
# Storage paths
# -------------------------
BASE_DIR = Path(__file__).resolve().parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data"))).resolve()
TMP_DIR = Path(os.getenv("TMP_DIR", str(DATA_DIR / "tmp"))).resolve()

for _p in (DATA_DIR, TMP_DIR):
    _p.mkdir(parents=True, exist_ok=True)

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# -------------------------
# MongoDB
# -------------------------
MONGO_URI: str = os.getenv("MONGO_URI", "").strip()
MONGO_DB_NAME: str = os.getenv("MONGO_DB_NAME", "teleload").strip()

# Collections
COL_USERS = "users"
COL_DOWNLOADS = "downloads"

# -------------------------
# Entitlement
# -------------------------
TRIAL_HOURS: int = int(os.getenv("TRIAL_HOURS", "24"))

# Referrer gets +N days of PRO per referral, counted from max(pro_end, now).
REFERRAL_BONUS_DAYS: int = int(os.getenv("REFERRAL_BONUS_DAYS", "1"))
# How many referrals may grant a bonus to the same referrer (0 = no cap).
REFERRAL_BONUS_LIMIT: int = int(os.getenv("REFERRAL_BONUS_LIMIT", "0"))

# Channel subscription bonus
PROMO_CHANNEL: str = os.getenv("PROMO_CHANNEL", "@TeleLoadd").strip()
SUBSCRIBE_BONUS_DAYS: int = int(os.getenv("SUBSCRIBE_BONUS_DAYS", "7"))
UPGRADE_URL: str = os.getenv("UPGRADE_URL", "https://t.me/TeleLoadd").strip()

# -------------------------
# Audio tokens
# -------------------------
TOKEN_TTL_SEC: int = int(os.getenv("TOKEN_TTL_SEC", str(15 * 60)))   # 15 min
TOKEN_SWEEP_SEC: int = int(os.getenv("TOKEN_SWEEP_SEC", str(5 * 60)))  # 5 min
TOKEN_ID_BYTES: int = int(os.getenv("TOKEN_ID_BYTES", "6"))            # 12 hex chars

# -------------------------
# Providers / network
# -------------------------
PROVIDER_ORDER: Tuple[str, ...] = _env_csv("PROVIDER_ORDER", "tiklydown,tikwm")
PROVIDER_TIMEOUT_SEC: int = int(os.getenv("PROVIDER_TIMEOUT_SEC", "15"))
MEDIA_FETCH_TIMEOUT_SEC: int = int(os.getenv("MEDIA_FETCH_TIMEOUT_SEC", "60"))

# When a provider reports both a video and a photo set, send the video.
PREFER_VIDEO: bool = _env_bool("PREFER_VIDEO", "1")

# -------------------------
# Telegram limits
# -------------------------
CAPTION_LIMIT: int = int(os.getenv("CAPTION_LIMIT", "1024"))
MEDIA_GROUP_LIMIT: int = int(os.getenv("MEDIA_GROUP_LIMIT", "10"))
TITLE_MAX_LEN: int = int(os.getenv("TITLE_MAX_LEN", "50"))

# -------------------------
# FFmpeg tools
# -------------------------
FFMPEG_BIN: str = os.getenv("FFMPEG_BIN", "ffmpeg")
# Optional bundled binary, used when FFMPEG_BIN is not on PATH.
FFMPEG_BUNDLED: str = os.getenv("FFMPEG_BUNDLED", str(BASE_DIR / "bin" / "ffmpeg"))
TRANSCODE_TIMEOUT_SEC: int = int(os.getenv("TRANSCODE_TIMEOUT_SEC", "180"))

AUDIO_CODEC: str = os.getenv("AUDIO_CODEC", "libmp3lame")
AUDIO_BITRATE: str = os.getenv("AUDIO_BITRATE", "128k")
AUDIO_FORMAT: str = os.getenv("AUDIO_FORMAT", "mp3").strip().lower()

# -------------------------
# Languages
# -------------------------
LANGUAGES: Tuple[str, ...] = ("ru", "en", "pl")
DEFAULT_LANGUAGE: str = os.getenv("DEFAULT_LANGUAGE", "ru").strip().lower()
