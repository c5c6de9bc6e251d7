# teleload/access.py
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from telegram import Bot, Update
from telegram.constants import ChatMemberStatus
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from .config import ADMIN_IDS
from .db import DB
from .messages import Msg, norm_lang

logger = logging.getLogger(__name__)


def is_admin(user_id: int) -> bool:
    return int(user_id) in ADMIN_IDS


async def sync_user(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Optional[Dict[str, Any]]:
    """
    Runs on every update:
    - unseen platform id -> user created, trial starts now
    - known user -> username / first name refreshed when they changed
    The user's language is cached on context.user_data for the rest of the update.
    """
    tg_user = update.effective_user
    if not tg_user:
        return None
    db: DB = context.application.bot_data["db"]
    doc = await db.ensure_user(str(tg_user.id), tg_user.username, tg_user.first_name)
    context.user_data["lang"] = norm_lang(doc.get("language"))
    return doc


def user_lang(context: ContextTypes.DEFAULT_TYPE) -> str:
    return norm_lang(context.user_data.get("lang"))


async def require_admin_or_reply(update: Update, context: ContextTypes.DEFAULT_TYPE) -> bool:
    user = update.effective_user
    if not user:
        return False
    if is_admin(user.id):
        return True
    if update.effective_message:
        await update.effective_message.reply_html(Msg.get(user_lang(context), "admin.only"))
    return False


async def diagnose_member_check(bot: Bot, channel: str) -> str:
    """
    Called after get_chat_member(channel, user) failed: the usual cause is the
    bot lacking admin rights there. Returns the message key to show.
    """
    try:
        me = await bot.get_chat_member(channel, bot.id)
    except TelegramError:
        logger.warning("bot membership check failed for %s", channel, exc_info=True)
        return "sub.check_failed"
    if me.status in (ChatMemberStatus.OWNER, ChatMemberStatus.ADMINISTRATOR):
        return "sub.not_member"
    return "sub.bot_not_admin"
