"""
tests/test_access.py

Channel membership diagnostics for the subscription bonus.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.constants import ChatMemberStatus
from telegram.error import BadRequest

from teleload.access import diagnose_member_check

CHANNEL = "@TeleLoadd"


def bot_with(status=None, exc=None):
    bot = MagicMock()
    bot.id = 555
    if exc is not None:
        bot.get_chat_member = AsyncMock(side_effect=exc)
    else:
        bot.get_chat_member = AsyncMock(return_value=SimpleNamespace(status=status))
    return bot


@pytest.mark.parametrize("status", [ChatMemberStatus.MEMBER, ChatMemberStatus.LEFT])
async def test_bot_without_admin_rights_is_reported(status):
    bot = bot_with(status)
    assert await diagnose_member_check(bot, CHANNEL) == "sub.bot_not_admin"
    bot.get_chat_member.assert_awaited_once_with(CHANNEL, 555)


@pytest.mark.parametrize("status", [ChatMemberStatus.ADMINISTRATOR, ChatMemberStatus.OWNER])
async def test_bot_is_admin_so_user_is_not_a_member(status):
    assert await diagnose_member_check(bot_with(status), CHANNEL) == "sub.not_member"


async def test_bot_membership_lookup_fails():
    bot = bot_with(exc=BadRequest("Chat not found"))
    assert await diagnose_member_check(bot, CHANNEL) == "sub.check_failed"
