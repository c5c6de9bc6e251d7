# teleload/messages.py
"""
messages.py
Central reply catalogue (language-aware).

Goals:
- Keep ALL text replies here (menus, statuses, errors, admin)
- Languages: ru / en / pl
- A language only has to define what it translates; the rest falls back to en
- Safe formatting: never crashes on .format

All templates are Telegram HTML. Anything user-supplied must be escaped by the
caller (html.escape) before it is passed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .config import DEFAULT_LANGUAGE, LANGUAGES

_FALLBACK = "en"


def norm_lang(lang: str | None) -> str:
    lang = (lang or DEFAULT_LANGUAGE).lower()
    return lang if lang in LANGUAGES else DEFAULT_LANGUAGE


@dataclass(frozen=True)
class Msg:
    """
    Message catalogue accessor.

    Keys are "namespaced" strings, e.g.:
        start.welcome
        dl.fetching
        audio.expired
        admin.stats
    """
    MESSAGES: Dict[str, Dict[str, str]] = None  # type: ignore

    @staticmethod
    def get(lang: str, key: str, **kwargs: Any) -> str:
        lang = norm_lang(lang)
        tpl = Msg.MESSAGES.get(lang, {}).get(key)
        if tpl is None:
            tpl = Msg.MESSAGES.get(_FALLBACK, {}).get(key)
        if tpl is None:
            return f"[missing:{key}]"
        try:
            return tpl.format(**kwargs)
        except (KeyError, IndexError, ValueError):
            return tpl  # never crash due to formatting mismatch

    @staticmethod
    def variants(key: str) -> set:
        """Every rendering of `key` across languages (menu button matching)."""
        return {cat[key] for cat in Msg.MESSAGES.values() if key in cat}


# -------------------------
# Catalogue
# -------------------------

EN: Dict[str, str] = {
    # Menu buttons
    "btn.instructions": "📥 Instructions",
    "btn.pro": "💎 Get PRO",
    "btn.profile": "👤 My Profile",
    "btn.handbook": "📖 Handbook",
    "btn.language": "🌐 Change Language",
    "btn.extract_audio": "🎵 Extract Music",
    "btn.upgrade": "💳 Get PRO Subscription",
    "btn.verify": "🔄 Verify Payment",
    "btn.go_channel": "📢 Go to Channel",
    "btn.subscribed": "✅ I subscribed!",

    # Tier labels
    "tier.pro": "💎 PRO Account",
    "tier.trial": "⏳ Free Trial",
    "tier.expired": "❌ Access Expired",
    "tier.short.pro": "PRO",
    "tier.short.trial": "Trial",

    # Start / menus
    "start.welcome": (
        "🌟 <b>Welcome to TeleLoad PRO!</b> 🌟\n\n"
        "I download <b>TikTok</b> videos and photo carousels in high quality without watermarks.\n\n"
        "📝 <b>Your status:</b> {tier}\n"
        "{until}"
        "\n🎯 Just send me a video link and I'll process it instantly!"
    ),
    "start.until": "● Valid until: <code>{until}</code>\n",
    "start.referred": "🎉 <b>You've joined via an invitation!</b>\n\nYour friend received a bonus. Enjoy! ❤️",
    "instructions": (
        "📥 <b>How to download</b>\n\n"
        "1. Open the video in TikTok and tap <i>Share → Copy link</i>\n"
        "2. Send the link here\n"
        "3. Get the video without watermark, then tap 🎵 to get the audio\n\n"
        "Photo carousels are sent as albums."
    ),
    "handbook": (
        "📖 <b>Handbook</b>\n\n"
        "• Trial: {trial_hours}h of free access from your first message\n"
        "• PRO: unlimited downloads\n"
        "• Invite a friend with your referral link: +{ref_days} day(s) of PRO per friend\n"
        "• Subscribe to {channel}: +{sub_days} days of PRO\n"
        "• The 🎵 button works for {ttl_min} minutes after the video is sent"
    ),
    "pro.offer": (
        "💎 <b>TeleLoad PRO</b>\n\n"
        "• Unlimited downloads\n• Clean videos without watermark\n• Audio extraction\n\n"
        "Tap the button below to subscribe, then verify your status."
    ),
    "profile.text": (
        "👤 <b>YOUR PROFILE</b>\n\n"
        "🆔 <b>ID:</b> <code>{user_id}</code>\n"
        "🎭 <b>Status:</b> {tier}\n"
        "{until}"
        "👥 <b>Invited friends:</b> {ref_count}\n"
        "🔗 <b>Your referral link:</b> {ref_link}"
    ),
    "profile.until": "📅 <b>Until:</b> <code>{until}</code>\n",
    "profile.offer": "\n\n🎁 <b>SPECIAL OFFER:</b>\nSubscribe to our channel and get <b>+{days} days of PRO</b> for free!",
    "lang.choose": "🌐 Choose your language:",
    "lang.set": "✅ Language set to English.",

    # Download pipeline
    "dl.expired": "⚠️ <b>Your access is limited.</b>\n\nFree trial has expired. Please upgrade to PRO to continue.",
    "dl.detected": "🔗 <b>Link detected!</b> Starting the magic...",
    "dl.fetching": "⏳ <b>Fetching metadata...</b>",
    "dl.sending_photos": "📸 <b>Sending photo carousel...</b>",
    "dl.sending_video": "🚀 <b>Sending video file...</b>",
    "dl.not_found": "❌ <b>Could not process this link.</b> Try another link or try again later.",
    "dl.failed": "❌ <b>Error!</b> Could not download video. Try another link or later.",
    "dl.done": "✅ Done!",
    "dl.caption": "✅ <b>Downloaded via @{bot}</b>\n{title}{hashtags}💎 <b>Status:</b> {tier}",
    "dl.caption_title": "📝 {title}\n",

    # Audio
    "audio.preparing": "⏳ Preparing audio...",
    "audio.expired": "❌ Link expired. Try again.",
    "audio.unavailable": "⚠️ ffmpeg is not installed on the server. Install ffmpeg and try again.",
    "audio.failed": "❌ Failed to create audio. Try again later.",
    "audio.caption": "🔊 Audio from video",

    # Subscription bonus / status refresh
    "sub.bonus": "🎉 <b>Congratulations!</b>\n\nWe verified your subscription. You've been granted <b>{days} days of PRO</b>. Enjoy!",
    "sub.bonus_short": "Bonus granted! 💎",
    "sub.not_member": "❌ <b>Error!</b>\n\nYou are not subscribed to {channel} yet. Please subscribe and try again.",
    "sub.not_member_short": "Subscription not found",
    "sub.already_pro": "You already have PRO! ✨",
    "sub.check_failed": "⚠️ Could not verify subscription. Ensure the bot is an administrator of {channel}.",
    "sub.bot_not_admin": "⚠️ The bot does not have administrator rights in {channel}. Please promote the bot to an admin and try again.",
    "status.refreshed": "🔄 Your status: {tier}\n{until}",

    # Admin
    "admin.only": "❌ <b>Error:</b> this command is for administrators only.",
    "admin.panel": "⚡️ <b>TELELOAD PRO ADMIN</b>\n\nChoose a section:",
    "admin.btn.stats": "📊 Statistics",
    "admin.btn.users": "👥 Users",
    "admin.btn.top": "🏆 Top downloaders",
    "admin.btn.close": "❌ Close",
    "admin.stats": (
        "📊 <b>SYSTEM STATISTICS</b>\n\n"
        "👥 <b>Total users:</b> {total_users}\n"
        "🌟 <b>PRO users:</b> {pro_users}\n"
        "📥 <b>Total downloads:</b> {total_downloads}\n"
        "⏳ <b>Active trials:</b> {active_trials}\n\n"
        "🖥 CPU {cpu}% • RAM {ram}% • <code>{version}</code>"
    ),
    "admin.users_header": "👥 <b>LATEST USERS</b>\n\n",
    "admin.users_item": "{icon} {name} (@{username}) - <code>{user_id}</code>\n",
    "admin.users_footer": "\n🎁 Grant PRO: <code>/setpro [ID] [days]</code>\nRevoke: <code>/unpro [ID]</code>",
    "admin.top_header": "🏆 <b>DOWNLOADS BY USER</b>\n\n",
    "admin.top_item": "{idx}. {name} (<code>{user_id}</code>) - {count}\n",
    "admin.empty": "nothing yet",
    "admin.setpro_usage": "❓ <code>/setpro [ID] [days]</code>\n💡 Example: <code>/setpro 12345678 30</code>",
    "admin.unpro_usage": "❓ <code>/unpro [ID]</code>",
    "admin.setpro_ok": "✅ User <code>{user_id}</code> got PRO for {days} days.",
    "admin.unpro_ok": "✅ PRO removed from <code>{user_id}</code>.",
    "admin.user_missing": "❌ User not found or invalid data.",
    "pro.granted": "🎊 <b>Hooray!</b> PRO is now active on your account. Download without limits!",
    "pro.revoked": "ℹ️ Your PRO subscription has been deactivated.",
}

RU: Dict[str, str] = {
    "btn.instructions": "📥 Инструкция",
    "btn.pro": "💎 Стать PRO",
    "btn.profile": "👤 Мой Профиль",
    "btn.handbook": "📖 Справочник",
    "btn.language": "🌐 Сменить Язык",
    "btn.extract_audio": "🎵 Извлечь музыку",
    "btn.upgrade": "💳 Оформить PRO подписку",
    "btn.verify": "🔄 Проверить оплату",
    "btn.go_channel": "📢 Перейти в канал",
    "btn.subscribed": "✅ Я подписался!",

    "tier.pro": "💎 PRO Аккаунт",
    "tier.trial": "⏳ Пробный период",
    "tier.expired": "❌ Срок действия истек",
    "tier.short.pro": "PRO",
    "tier.short.trial": "Trial",

    "start.welcome": (
        "🌟 <b>Добро пожаловать в TeleLoad PRO!</b> 🌟\n\n"
        "Я скачиваю видео и фото-карусели из <b>TikTok</b> в высоком качестве и без водяных знаков.\n\n"
        "📝 <b>Ваш статус:</b> {tier}\n"
        "{until}"
        "\n🎯 Просто пришлите ссылку на видео, и я мгновенно его обработаю!"
    ),
    "start.until": "● Доступен до: <code>{until}</code>\n",
    "start.referred": "🎉 <b>Вы присоединились по приглашению!</b>\n\nМы начислили бонус вашему другу. Приятного пользования! ❤️",
    "instructions": (
        "📥 <b>Как скачать</b>\n\n"
        "1. Откройте видео в TikTok и нажмите <i>Поделиться → Копировать ссылку</i>\n"
        "2. Пришлите ссылку сюда\n"
        "3. Получите видео без водяного знака, а кнопка 🎵 пришлёт аудио\n\n"
        "Фото-карусели отправляются альбомами."
    ),
    "pro.offer": (
        "💎 <b>TeleLoad PRO</b>\n\n"
        "• Безлимитные загрузки\n• Видео без водяных знаков\n• Извлечение аудио\n\n"
        "Нажмите кнопку ниже, чтобы оформить подписку, затем проверьте статус."
    ),
    "profile.text": (
        "👤 <b>ВАШ ПРОФИЛЬ</b>\n\n"
        "🆔 <b>ID:</b> <code>{user_id}</code>\n"
        "🎭 <b>Статус:</b> {tier}\n"
        "{until}"
        "👥 <b>Приглашено друзей:</b> {ref_count}\n"
        "🔗 <b>Ваша реферальная ссылка:</b> {ref_link}"
    ),
    "profile.until": "📅 <b>Активен до:</b> <code>{until}</code>\n",
    "profile.offer": "\n\n🎁 <b>СПЕЦИАЛЬНОЕ ПРЕДЛОЖЕНИЕ:</b>\nПодпишитесь на наш канал и получите <b>+{days} дней PRO</b> бесплатно!",
    "lang.choose": "🌐 Выберите язык:",
    "lang.set": "✅ Язык изменен на русский.",

    "dl.expired": "⚠️ <b>Ваш доступ ограничен.</b>\n\nПробный период закончился. Пожалуйста, приобретите PRO для продолжения работы.",
    "dl.detected": "🔗 <b>Ссылка обнаружена!</b> Начинаю магию...",
    "dl.fetching": "⏳ <b>Получаю данные видео...</b>",
    "dl.sending_photos": "📸 <b>Отправляю фото-карусель...</b>",
    "dl.sending_video": "🚀 <b>Отправляю видеофайл...</b>",
    "dl.not_found": "❌ <b>Не удалось обработать ссылку.</b> Попробуйте другую ссылку или позже.",
    "dl.failed": "❌ <b>Ошибка!</b> Не удалось скачать видео. Попробуйте другую ссылку или позже.",
    "dl.done": "✅ Готово!",
    "dl.caption": "✅ <b>Скачано через @{bot}</b>\n{title}{hashtags}💎 <b>Статус:</b> {tier}",

    "audio.preparing": "⏳ Подготовка аудио...",
    "audio.expired": "❌ Ссылка устарела. Попробуйте заново.",
    "audio.unavailable": "⚠️ На сервере не установлен ffmpeg. Установите ffmpeg и попробуйте снова.",
    "audio.failed": "❌ Ошибка при создании аудио. Попробуйте позже.",
    "audio.caption": "🔊 Аудио из видео",

    "sub.bonus": "🎉 <b>Поздравляем!</b>\n\nМы проверили подписку. Вам начислено <b>{days} дней PRO</b>!",
    "sub.bonus_short": "Бонус начислен! 💎",
    "sub.not_member": "❌ <b>Ошибка!</b>\n\nВы еще не подписаны на {channel}. Подпишитесь и попробуйте снова.",
    "sub.not_member_short": "Подписка не найдена",
    "sub.already_pro": "У вас уже есть PRO статус! ✨",
    "sub.check_failed": "⚠️ Не удалось проверить подписку. Убедитесь, что бот является администратором {channel}.",
    "sub.bot_not_admin": "⚠️ Бот не имеет прав администратора в канале {channel}. Назначьте бота администратором, затем повторите проверку.",
    "status.refreshed": "🔄 Ваш статус: {tier}\n{until}",

    "admin.only": "❌ <b>Ошибка:</b> команда доступна только администраторам.",
    "admin.panel": "⚡️ <b>АДМИН-ПАНЕЛЬ TELELOAD PRO</b>\n\nВыберите раздел:",
    "admin.btn.stats": "📊 Общая Статистика",
    "admin.btn.users": "👥 Управление Юзерами",
    "admin.btn.top": "🏆 Топ загрузок",
    "admin.btn.close": "❌ Закрыть Меню",
    "pro.granted": "🎊 <b>УРА!</b> Вам активирована подписка <b>PRO</b>! Теперь вы можете качать без ограничений.",
    "pro.revoked": "ℹ️ Ваша подписка PRO отключена.",
}

PL: Dict[str, str] = {
    "btn.instructions": "📥 Instrukcja",
    "btn.pro": "💎 Kup PRO",
    "btn.profile": "👤 Mój Profil",
    "btn.handbook": "📖 Przewodnik",
    "btn.language": "🌐 Zmień Język",
    "btn.extract_audio": "🎵 Pobierz dźwięk",
    "btn.upgrade": "💳 Kup subskrypcję PRO",
    "btn.verify": "🔄 Sprawdź status",
    "btn.go_channel": "📢 Przejdź do kanału",
    "btn.subscribed": "✅ Zasubskrybowałem!",

    "tier.pro": "💎 Konto PRO",
    "tier.trial": "⏳ Okres próbny",
    "tier.expired": "❌ Subskrypcja wygasła",
    "tier.short.trial": "Okres próbny",

    "start.until": "● Ważne do: <code>{until}</code>\n",
    "lang.choose": "🌐 Wybierz język:",
    "lang.set": "✅ Język zmieniony na polski.",

    "dl.expired": "⚠️ <b>Twój dostęp jest ograniczony.</b>\n\nOkres próbny się skończył. Kup PRO, aby kontynuować.",
    "dl.detected": "🔗 <b>Link wykryty!</b> Rozpoczynam magię...",
    "dl.fetching": "⏳ <b>Pobieranie metadanych...</b>",
    "dl.sending_photos": "📸 <b>Wysyłanie karuzeli zdjęć...</b>",
    "dl.sending_video": "🚀 <b>Wysyłanie pliku wideo...</b>",
    "dl.failed": "❌ <b>Błąd!</b> Nie udało się pobrać wideo. Spróbuj innego linku lub później.",
    "dl.caption": "✅ <b>Pobrano przez @{bot}</b>\n{title}{hashtags}💎 <b>Status:</b> {tier}",

    "audio.preparing": "⏳ Przygotowywanie dźwięku...",
    "audio.expired": "❌ Link wygasł. Spróbuj ponownie.",
    "audio.failed": "❌ Błąd podczas tworzenia dźwięku. Spróbuj później.",
    "audio.caption": "🔊 Dźwięk z filmu",

    "sub.bonus_short": "Bonus przyznany! 💎",
    "sub.not_member_short": "Nie znaleziono subskrypcji",
    "sub.bot_not_admin": "⚠️ Bot nie ma uprawnień administratora na kanale {channel}. Nadaj uprawnienia administracyjne i spróbuj ponownie.",
}

Msg.MESSAGES = {
    "en": EN,
    "ru": RU,
    "pl": PL,
}
