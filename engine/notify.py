# engine/notify.py
# Fire-and-forget notifications to other users with a fixed deadline

import asyncio
import enum
import logging
from typing import Awaitable, Callable, List, Set

from config import NOTIFY_TIMEOUT

log = logging.getLogger("notify")


class NotifyOutcome(enum.Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


class Notifier:
    """
    `deliver(chat_id, replies)` is the transport call (see delivery.deliver);
    it returns False when the recipient cannot be reached.
    notify() never blocks the caller: it schedules a task and returns it.
    """

    def __init__(self, deliver: Callable[[int, List], Awaitable[bool]], timeout: float = NOTIFY_TIMEOUT):
        self._deliver = deliver
        self.timeout = timeout
        self._pending: Set[asyncio.Task] = set()

    def notify(self, chat_id: int, replies: List) -> "asyncio.Task[NotifyOutcome]":
        task = asyncio.create_task(self._run(chat_id, list(replies)))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _run(self, chat_id: int, replies: List) -> NotifyOutcome:
        try:
            ok = await asyncio.wait_for(self._deliver(chat_id, replies), timeout=self.timeout)
        except asyncio.TimeoutError:
            log.warning("[notify] user=%s timed out after %.1fs", chat_id, self.timeout)
            return NotifyOutcome.TIMED_OUT
        except Exception:
            log.exception("[notify] user=%s delivery failed", chat_id)
            return NotifyOutcome.FAILED
        if ok is False:
            log.warning("[notify] user=%s unreachable (blocked bot?)", chat_id)
            return NotifyOutcome.FAILED
        return NotifyOutcome.DELIVERED

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
