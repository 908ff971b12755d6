# engine/rate_limiter.py
# Daily free swipes + purchased credits, with local-midnight rollover

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from config import DAILY_FREE_SWIPES

_FIELDS = ("daily_swipes", "last_swipe_reset", "purchased_swipes")


@dataclass(frozen=True)
class Allowance:
    free: int
    purchased: int
    total: int


NO_ALLOWANCE = Allowance(0, 0, 0)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


class RateLimiter:
    def __init__(self, db, daily_free: int = DAILY_FREE_SWIPES, now: Callable[[], datetime] = datetime.now):
        self.db = db
        self.daily_free = daily_free
        self.now = now

    async def _reset_if_new_day(self, user_id: int, user: dict) -> dict:
        today = start_of_day(self.now())
        last = datetime.fromtimestamp(user.get("last_swipe_reset") or 0)
        if last.date() != today.date():
            stamp = int(today.timestamp())
            await self.db.update_fields(user_id, {"daily_swipes": 0, "last_swipe_reset": stamp})
            user = {**user, "daily_swipes": 0, "last_swipe_reset": stamp}
        return user

    async def available(self, user_id: int) -> Allowance:
        user = await self.db.find_one(user_id, fields=_FIELDS)
        if user is None:
            return NO_ALLOWANCE
        user = await self._reset_if_new_day(user_id, user)
        free = max(0, self.daily_free - (user.get("daily_swipes") or 0))
        purchased = max(0, user.get("purchased_swipes") or 0)
        return Allowance(free, purchased, free + purchased)

    async def consume(self, user_id: int) -> Optional[int]:
        """Spend one swipe: purchased credits first, then today's free quota."""
        user = await self.db.find_one(user_id, fields=_FIELDS)
        if user is None:
            return None
        if (user.get("purchased_swipes") or 0) > 0:
            return await self.db.atomic_increment(user_id, "purchased_swipes", -1)
        await self._reset_if_new_day(user_id, user)
        return await self.db.atomic_increment(user_id, "daily_swipes", 1)
