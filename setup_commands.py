# setup_commands.py: registers the command menu
import logging
from aiogram import Bot
from aiogram.types import BotCommand

COMMANDS = [
    BotCommand(command="start", description="Start the bot"),
    BotCommand(command="create", description="Create your profile"),
    BotCommand(command="profile", description="View your profile"),
    BotCommand(command="edit", description="Edit your profile"),
    BotCommand(command="match", description="Start finding people"),
    BotCommand(command="matches", description="Your likes and matches"),
    BotCommand(command="help", description="How we keep you safe"),
    BotCommand(command="delete", description="Delete your profile"),
]


async def ensure_bot_commands(bot: Bot):
    try:
        await bot.set_my_commands(COMMANDS)
        await bot.set_my_commands(COMMANDS, language_code="en")
    except Exception as e:
        logging.warning("setup_commands skipped: %s", e)
