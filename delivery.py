# delivery.py
# Renders engine replies to Telegram: text, single photo, or media group + buttons

import asyncio
import logging
from typing import Iterable

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest, TelegramForbiddenError
from aiogram.types import InputMediaPhoto

from engine.replies import Reply
from texts_ui import t

log = logging.getLogger("delivery")


async def _send_text(bot: Bot, chat_id: int, text: str, markup, parse_mode):
    try:
        await bot.send_message(chat_id, text, reply_markup=markup, parse_mode=parse_mode)
    except TelegramBadRequest as e:
        if parse_mode is None:
            raise
        log.warning("[deliver] %s rejected for user=%s: %s; resending as plain text", parse_mode, chat_id, e)
        await bot.send_message(chat_id, text, reply_markup=markup, parse_mode=None)


async def _send_photos(bot: Bot, chat_id: int, reply: Reply, parse_mode):
    if len(reply.photos) == 1:
        await bot.send_photo(chat_id, reply.photos[0], caption=reply.text,
                             reply_markup=reply.markup, parse_mode=parse_mode)
        return
    media = [
        InputMediaPhoto(media=photo, caption=reply.text if i == 0 else None,
                        parse_mode=parse_mode if i == 0 else None)
        for i, photo in enumerate(reply.photos)
    ]
    await bot.send_media_group(chat_id, media)
    # media groups cannot carry inline buttons
    if reply.markup is not None:
        await bot.send_message(chat_id, t("nice_profile"), reply_markup=reply.markup)


async def send_reply(bot: Bot, chat_id: int, reply: Reply) -> None:
    parse_mode = "Markdown" if reply.markdown else None
    if reply.photos:
        try:
            await _send_photos(bot, chat_id, reply, parse_mode)
            return
        except TelegramForbiddenError:
            raise
        except TelegramAPIError as e:
            log.warning("[deliver] photos failed for user=%s: %s; sending text only", chat_id, e)
            await _send_text(bot, chat_id, t("photos_unavailable") + reply.text, reply.markup, parse_mode)
            return
    await _send_text(bot, chat_id, reply.text, reply.markup, parse_mode)


async def deliver(bot: Bot, chat_id: int, replies: Iterable[Reply]) -> bool:
    """Send replies in order. Returns False when the user has blocked the bot."""
    for reply in replies:
        if reply.delay:
            await asyncio.sleep(reply.delay)
        try:
            await send_reply(bot, chat_id, reply)
        except TelegramForbiddenError:
            log.warning("[forbidden] user=%s blocked bot, dropping remaining replies", chat_id)
            return False
    return True
