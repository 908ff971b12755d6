import asyncio
import functools
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.fsm.storage.memory import MemoryStorage

from config import (
    AUTO_OPEN_STATS, DB_CONNECT_ATTEMPTS, HEARTBEAT_INTERVAL, LOG_LEVEL, MATCH_RESUME_DELAY,
    NOTIFY_TIMEOUT, PREFERENCE_FALLBACK, STATS_ENABLED, STATS_HOST, STATS_PORT, TOKEN,
)
from delivery import deliver
from engine.database import init_db
from engine.dialogue import Dialogue
from engine.matching import MatchingEngine
from engine.notify import Notifier
from engine.payments import Payments
from engine.profiles import ProfileFlow
from engine.queue_builder import CandidateQueueBuilder
from engine.rate_limiter import RateLimiter
from engine.sessions import MemorySessionStore
from handlers import router
from setup_commands import ensure_bot_commands
from stats_api import start_stats_server

log = logging.getLogger("bot")


def build_services(db, send, *, relax_preferences=None, notify_timeout=NOTIFY_TIMEOUT,
                   resume_delay=MATCH_RESUME_DELAY, limiter=None):
    """Wire the engine around one store. `send(chat_id, replies)` delivers to other users."""
    if relax_preferences is None:
        relax_preferences = PREFERENCE_FALLBACK != "strict"
    sessions = MemorySessionStore()
    limiter = limiter or RateLimiter(db)
    queues = CandidateQueueBuilder(db, sessions, relax_preferences=relax_preferences)
    notifier = Notifier(send, timeout=notify_timeout)
    matching = MatchingEngine(db, sessions, limiter, queues, notifier, resume_delay=resume_delay)
    profiles = ProfileFlow(db, sessions, matching)
    return {
        "db": db,
        "sessions": sessions,
        "limiter": limiter,
        "queues": queues,
        "notifier": notifier,
        "matching": matching,
        "profiles": profiles,
        "dialogue": Dialogue(sessions, profiles, matching),
        "payments": Payments(db, limiter, sessions, matching),
    }


async def init_storage(attempts: int = DB_CONNECT_ATTEMPTS):
    for attempt in range(1, attempts + 1):
        try:
            return await init_db()
        except Exception as e:
            log.warning("[db] init attempt %d/%d failed: %s", attempt, attempts, e)
            if attempt < attempts:
                await asyncio.sleep(attempt)
    return None


async def heartbeat_loop(sessions, interval: int = HEARTBEAT_INTERVAL):
    while True:
        await asyncio.sleep(interval)
        log.info("[health] bot is alive, sessions=%d", len(sessions))


async def main():
    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s:%(name)s:%(message)s")
    if not TOKEN:
        log.critical("TOKEN is not set (env TOKEN or BOT_TOKEN)")
        sys.exit(1)

    db = await init_storage()
    if db is None:
        log.critical("storage backend could not be initialised, exiting")
        sys.exit(1)

    bot = Bot(token=TOKEN, default=DefaultBotProperties(link_preview_is_disabled=True))
    services = build_services(db, functools.partial(deliver, bot))
    dp = Dispatcher(storage=MemoryStorage(), **services)
    dp.include_router(router)

    await ensure_bot_commands(bot)
    if STATS_ENABLED:
        asyncio.create_task(start_stats_server(host=STATS_HOST, port=STATS_PORT, open_browser=AUTO_OPEN_STATS))
    asyncio.create_task(heartbeat_loop(services["sessions"]))

    log.info("💘 MatchUps started.")
    try:
        await dp.start_polling(bot)
    finally:
        await services["notifier"].drain()
        await bot.session.close()


if __name__ == "__main__":
    asyncio.run(main())
