# teleload/main.py
from __future__ import annotations

import html
import logging
from typing import Any, Dict, Optional

import psutil
from telegram import Update
from telegram.constants import ChatMemberStatus
from telegram.error import TelegramError
from telegram.ext import (
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .config import (
    BOT_TOKEN,
    BOT_VERSION,
    LANGUAGES,
    LOG_LEVEL,
    PROMO_CHANNEL,
    REFERRAL_BONUS_DAYS,
    SUBSCRIBE_BONUS_DAYS,
    TOKEN_SWEEP_SEC,
    TOKEN_TTL_SEC,
    TRIAL_HOURS,
)
from .db import DB
from .access import diagnose_member_check, is_admin, require_admin_or_reply, sync_user, user_lang
from .messages import Msg
from .entitlement import Tier, describe, fmt_until
from .events import classify_text, parse_callback, parse_referral, referral_link
from .pipeline import DeliveryPipeline
from .resolver import Resolver
from .tokens import TokenStore
from .transcoder import Transcoder
from .transport import TelegramTransport
from .buttons import admin_keyboard, language_keyboard, main_keyboard, subscribe_keyboard, upgrade_keyboard

logger = logging.getLogger(__name__)

# -------------------------
# Helpers
# -------------------------

async def _db(context: ContextTypes.DEFAULT_TYPE) -> DB:
    db: DB = context.application.bot_data["db"]
    return db


def _pipeline(context: ContextTypes.DEFAULT_TYPE) -> DeliveryPipeline:
    return context.application.bot_data["pipeline"]


def _tier_lines(lang: str, doc: Dict[str, Any], until_key: str) -> Dict[str, str]:
    info = describe(doc)
    tier = Msg.get(lang, f"tier.{info.tier.value}")
    until = ""
    if info.tier is not Tier.EXPIRED and info.until is not None:
        until = Msg.get(lang, until_key, until=fmt_until(info.until))
    return {"tier": tier, "until": until}


def _display_name(doc: Dict[str, Any]) -> str:
    return html.escape(doc.get("first_name") or "???")


# -------------------------
# Commands
# -------------------------

async def start_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    doc = await sync_user(update, context)
    if not doc:
        return
    db = await _db(context)
    lang = user_lang(context)
    msg = update.effective_message

    ref = parse_referral(context.args[0] if context.args else None)
    if ref and not doc.get("referred_by") and ref != doc["user_id"]:
        if await db.add_referral(doc["user_id"], ref):
            logger.info("referral applied: %s -> %s", doc["user_id"], ref)
            await msg.reply_html(Msg.get(lang, "start.referred"))

    await msg.reply_html(
        Msg.get(lang, "start.welcome", **_tier_lines(lang, doc, "start.until")),
        reply_markup=main_keyboard(lang),
    )


async def help_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    if not await sync_user(update, context):
        return
    await update.effective_message.reply_html(Msg.get(user_lang(context), "instructions"))


# -------------------------
# Menu buttons
# -------------------------

async def _menu_instructions(update: Update, context: ContextTypes.DEFAULT_TYPE, doc: Dict[str, Any]):
    await update.effective_message.reply_html(Msg.get(user_lang(context), "instructions"))


async def _menu_pro(update: Update, context: ContextTypes.DEFAULT_TYPE, doc: Dict[str, Any]):
    lang = user_lang(context)
    await update.effective_message.reply_html(Msg.get(lang, "pro.offer"), reply_markup=upgrade_keyboard(lang))


async def _menu_profile(update: Update, context: ContextTypes.DEFAULT_TYPE, doc: Dict[str, Any]):
    lang = user_lang(context)
    text = Msg.get(
        lang,
        "profile.text",
        user_id=doc["user_id"],
        ref_count=int(doc.get("referral_count") or 0),
        ref_link=referral_link(context.bot.username or "bot", doc["user_id"]),
        **_tier_lines(lang, doc, "profile.until"),
    )
    if describe(doc).is_pro:
        await update.effective_message.reply_html(text)
        return
    text += Msg.get(lang, "profile.offer", days=SUBSCRIBE_BONUS_DAYS)
    await update.effective_message.reply_html(text, reply_markup=subscribe_keyboard(lang))


async def _menu_handbook(update: Update, context: ContextTypes.DEFAULT_TYPE, doc: Dict[str, Any]):
    await update.effective_message.reply_html(Msg.get(
        user_lang(context),
        "handbook",
        trial_hours=TRIAL_HOURS,
        ref_days=REFERRAL_BONUS_DAYS,
        channel=html.escape(PROMO_CHANNEL),
        sub_days=SUBSCRIBE_BONUS_DAYS,
        ttl_min=TOKEN_TTL_SEC // 60,
    ))


async def _menu_language(update: Update, context: ContextTypes.DEFAULT_TYPE, doc: Dict[str, Any]):
    await update.effective_message.reply_html(Msg.get(user_lang(context), "lang.choose"), reply_markup=language_keyboard())


_MENU = {
    "btn.instructions": _menu_instructions,
    "btn.pro": _menu_pro,
    "btn.profile": _menu_profile,
    "btn.handbook": _menu_handbook,
    "btn.language": _menu_language,
}

# -------------------------
# Text dispatcher (menu buttons / links)
# -------------------------

async def on_text(update: Update, context: ContextTypes.DEFAULT_TYPE):
    doc = await sync_user(update, context)
    msg = update.effective_message
    if not doc or not msg or not msg.text:
        return

    event = classify_text(msg.text)
    if event.kind == "menu":
        await _MENU[event.value](update, context, doc)
        return
    if event.kind != "link":
        return

    transport = TelegramTransport(context.bot, update.effective_chat.id, user_lang(context))
    outcome = await _pipeline(context).handle_link(doc, msg.text, transport)
    logger.info("link from %s -> %s", doc["user_id"], outcome.value)

# -------------------------
# Callback dispatcher
# -------------------------

async def callbacks(update: Update, context: ContextTypes.DEFAULT_TYPE):
    q = update.callback_query
    if not q or not q.data:
        return
    doc = await sync_user(update, context)
    if not doc:
        await q.answer()
        return
    lang = user_lang(context)
    event = parse_callback(q.data)

    if event.kind == "audio":
        chat_id = q.message.chat.id if q.message else update.effective_user.id
        transport = TelegramTransport(context.bot, chat_id, lang, query=q)
        outcome = await _pipeline(context).handle_audio(event.arg, transport)
        logger.info("audio %s for %s -> %s", event.arg, doc["user_id"], outcome.value)
        return

    if event.kind == "language":
        await _on_language(q, context, doc, event.arg)
        return

    if event.kind == "subscription":
        await _on_subscription_check(q, context, doc)
        return

    if event.kind == "status":
        info = describe(doc)
        await q.answer()
        await q.message.reply_html(
            Msg.get(lang, "status.refreshed", **_tier_lines(lang, doc, "start.until")),
            reply_markup=None if info.has_access else upgrade_keyboard(lang),
        )
        return

    if event.kind == "admin":
        await _on_admin(q, context, event.arg)
        return

    await q.answer()


async def _on_language(q, context: ContextTypes.DEFAULT_TYPE, doc: Dict[str, Any], lang: str):
    if lang not in LANGUAGES:
        await q.answer()
        return
    db = await _db(context)
    await db.set_language(doc["user_id"], lang)
    context.user_data["lang"] = lang
    await q.answer()
    try:
        await q.edit_message_text(Msg.get(lang, "lang.set"))
    except TelegramError:
        pass
    await q.message.reply_html(Msg.get(lang, "lang.choose"), reply_markup=main_keyboard(lang))


async def _on_subscription_check(q, context: ContextTypes.DEFAULT_TYPE, doc: Dict[str, Any]):
    lang = user_lang(context)
    if describe(doc).is_pro:
        await q.answer(Msg.get(lang, "sub.already_pro"))
        return

    channel = html.escape(PROMO_CHANNEL)
    try:
        member = await context.bot.get_chat_member(PROMO_CHANNEL, q.from_user.id)
    except TelegramError:
        logger.exception("chat member check failed for %s", doc["user_id"])
        key = await diagnose_member_check(context.bot, PROMO_CHANNEL)
        await q.answer()
        await q.message.reply_html(
            Msg.get(lang, key, channel=channel),
            reply_markup=subscribe_keyboard(lang) if key == "sub.not_member" else None,
        )
        return

    if member.status in (ChatMemberStatus.OWNER, ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.MEMBER):
        db = await _db(context)
        await db.set_pro(doc["user_id"], True, SUBSCRIBE_BONUS_DAYS)
        await q.answer(Msg.get(lang, "sub.bonus_short"))
        await q.edit_message_text(Msg.get(lang, "sub.bonus", days=SUBSCRIBE_BONUS_DAYS), parse_mode="HTML")
        return

    await q.answer(Msg.get(lang, "sub.not_member_short"))
    try:
        await q.edit_message_text(
            Msg.get(lang, "sub.not_member", channel=channel),
            parse_mode="HTML",
            reply_markup=subscribe_keyboard(lang),
        )
    except TelegramError:
        pass

# -------------------------
# Admin
# -------------------------

async def admin_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await sync_user(update, context)
    if not await require_admin_or_reply(update, context):
        return
    lang = user_lang(context)
    await update.effective_message.reply_html(Msg.get(lang, "admin.panel"), reply_markup=admin_keyboard(lang))


async def _admin_text(context: ContextTypes.DEFAULT_TYPE, lang: str, action: str) -> Optional[str]:
    db = await _db(context)
    if action == "stats":
        stats = await db.get_stats()
        return Msg.get(
            lang,
            "admin.stats",
            cpu=psutil.cpu_percent(interval=None),
            ram=psutil.virtual_memory().percent,
            version=html.escape(BOT_VERSION),
            **stats,
        )
    if action == "users":
        users = await db.recent_users(5)
        lines = [Msg.get(lang, "admin.users_header")]
        for u in users:
            lines.append(Msg.get(
                lang,
                "admin.users_item",
                icon="🌟" if describe(u).is_pro else "👤",
                name=_display_name(u),
                username=html.escape(u.get("username") or "-"),
                user_id=u["user_id"],
            ))
        if not users:
            lines.append(Msg.get(lang, "admin.empty"))
        lines.append(Msg.get(lang, "admin.users_footer"))
        return "".join(lines)
    if action == "top":
        rows = await db.downloads_by_user(10)
        lines = [Msg.get(lang, "admin.top_header")]
        for idx, r in enumerate(rows, 1):
            lines.append(Msg.get(lang, "admin.top_item", idx=idx, name=_display_name(r), user_id=r["user_id"], count=r["downloads"]))
        if not rows:
            lines.append(Msg.get(lang, "admin.empty"))
        return "".join(lines)
    return None


async def _on_admin(q, context: ContextTypes.DEFAULT_TYPE, action: str):
    if not is_admin(q.from_user.id):
        await q.answer()
        return
    lang = user_lang(context)
    await q.answer()
    if action == "close":
        try:
            await q.message.delete()
        except TelegramError:
            logger.warning("could not delete admin panel message")
        return
    text = await _admin_text(context, lang, action)
    if text is None:
        return
    try:
        await q.edit_message_text(text, parse_mode="HTML", reply_markup=admin_keyboard(lang))
    except TelegramError:
        pass


async def setpro_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await sync_user(update, context)
    if not await require_admin_or_reply(update, context):
        return
    lang = user_lang(context)
    msg = update.effective_message
    if len(context.args or []) < 2:
        await msg.reply_html(Msg.get(lang, "admin.setpro_usage"))
        return
    target, days_s = context.args[0], context.args[1]
    try:
        days = int(days_s)
    except ValueError:
        await msg.reply_html(Msg.get(lang, "admin.setpro_usage"))
        return
    if days <= 0:
        await msg.reply_html(Msg.get(lang, "admin.setpro_usage"))
        return

    db = await _db(context)
    doc = await db.set_pro(target, True, days)
    if not doc:
        await msg.reply_html(Msg.get(lang, "admin.user_missing"))
        return
    await msg.reply_html(Msg.get(lang, "admin.setpro_ok", user_id=html.escape(target), days=days))
    try:
        await context.bot.send_message(chat_id=int(target), text=Msg.get(doc.get("language"), "pro.granted"), parse_mode="HTML")
    except (TelegramError, ValueError):
        logger.warning("could not notify %s about PRO", target)


async def unpro_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await sync_user(update, context)
    if not await require_admin_or_reply(update, context):
        return
    lang = user_lang(context)
    msg = update.effective_message
    if not context.args:
        await msg.reply_html(Msg.get(lang, "admin.unpro_usage"))
        return
    target = context.args[0]
    db = await _db(context)
    doc = await db.set_pro(target, False)
    if not doc:
        await msg.reply_html(Msg.get(lang, "admin.user_missing"))
        return
    await msg.reply_html(Msg.get(lang, "admin.unpro_ok", user_id=html.escape(target)))
    try:
        await context.bot.send_message(chat_id=int(target), text=Msg.get(doc.get("language"), "pro.revoked"), parse_mode="HTML")
    except (TelegramError, ValueError):
        logger.warning("could not notify %s about PRO removal", target)

# -------------------------
# Errors
# -------------------------

async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE):
    logger.error("unhandled error while processing update", exc_info=context.error)

# -------------------------
# Startup / background jobs
# -------------------------

async def sweep_tokens_job(context: ContextTypes.DEFAULT_TYPE):
    tokens: TokenStore = context.application.bot_data["tokens"]
    try:
        removed = await tokens.sweep()
    except Exception:
        logger.exception("token sweep failed")
        return
    if removed:
        logger.info("token sweep: %d expired, %d live", removed, len(tokens))


async def post_init(app):
    # Connect DB
    db = await DB.connect()
    app.bot_data["db"] = db

    tokens = TokenStore()
    transcoder = Transcoder.probe()
    resolver = Resolver()
    logger.info("providers: %s", ", ".join(p.name for p in resolver.providers) or "none")

    app.bot_data["tokens"] = tokens
    app.bot_data["pipeline"] = DeliveryPipeline(
        store=db,
        resolver=resolver,
        tokens=tokens,
        transcoder=transcoder,
    )

    # Token sweep (every 5 minutes)
    app.job_queue.run_repeating(sweep_tokens_job, interval=TOKEN_SWEEP_SEC, first=TOKEN_SWEEP_SEC, name="token_sweep")


async def post_shutdown(app):
    db: DB = app.bot_data.get("db")
    if db:
        await db.close()


def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger("httpx").setLevel(logging.WARNING)
    if not BOT_TOKEN:
        raise RuntimeError("BOT_TOKEN is not set. Export BOT_TOKEN in environment.")

    application = (
        ApplicationBuilder()
        .token(BOT_TOKEN)
        .concurrent_updates(True)
        .post_init(post_init)
        .post_shutdown(post_shutdown)
        .build()
    )

    # commands
    application.add_handler(CommandHandler("start", start_cmd))
    application.add_handler(CommandHandler("help", help_cmd))
    application.add_handler(CommandHandler("admin", admin_cmd))
    application.add_handler(CommandHandler("setpro", setpro_cmd))
    application.add_handler(CommandHandler("unpro", unpro_cmd))

    # text: menu buttons + links
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, on_text))

    # callbacks
    application.add_handler(CallbackQueryHandler(callbacks))

    application.add_error_handler(on_error)

    application.run_polling(drop_pending_updates=True, close_loop=False)


if __name__ == "__main__":
    main()
