from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from bot import build_services
from engine.database import init_db
from engine.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kw):
        self.current += timedelta(**kw)


class Outbox:
    """Stands in for delivery.deliver: records what other users would receive."""

    def __init__(self):
        self.sent = []

    async def send(self, chat_id, replies):
        self.sent.append((chat_id, list(replies)))
        return True

    def texts_for(self, chat_id):
        return [r.text for cid, replies in self.sent if cid == chat_id for r in replies]


@pytest_asyncio.fixture
async def db(tmp_path):
    return await init_db(use_postgres=False, sqlite_path=str(tmp_path / "matchups.sqlite3"))


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 3, 10, 12, 0))


@pytest.fixture
def outbox():
    return Outbox()


@pytest_asyncio.fixture
async def services(db, outbox, clock):
    svc = build_services(
        db, outbox.send, relax_preferences=True, resume_delay=0,
        limiter=RateLimiter(db, daily_free=20, now=clock),
    )
    yield svc
    await svc["notifier"].drain()


@pytest.fixture
def make_user(db):
    async def _make(user_id, *, gender="male", looking="women", **extra):
        record = {
            "name": f"user{user_id}",
            "age": 25,
            "gender": gender,
            "looking": looking,
            "intention": "casual",
            "bio": "hi",
            "photos": [f"photo-{user_id}-a", f"photo-{user_id}-b"],
        }
        record.update(extra)
        await db.upsert(user_id, record)
        return await db.find_one(user_id)
    return _make


def shown_id(reply) -> int:
    """Candidate id carried by the Skip button of a candidate card."""
    return int(reply.markup.inline_keyboard[0][0].callback_data.split("_")[1])
