import pytest

from engine.queue_builder import CandidateQueueBuilder
from engine.sessions import MemorySessionStore


def ids(queue):
    return [c["user_id"] for c in queue]


@pytest.fixture
def sessions():
    return MemorySessionStore()


@pytest.mark.asyncio
async def test_only_mutually_compatible_candidates(db, sessions, make_user):
    await make_user(1, gender="male", looking="women")
    await make_user(3, gender="female", looking="men")
    await make_user(2, gender="female", looking="women")
    await make_user(4, gender="male", looking="women")
    await make_user(5, gender="female", looking="men")
    queues = CandidateQueueBuilder(db, sessions)
    assert ids(await queues.build(1)) == [3, 5]


@pytest.mark.asyncio
async def test_shown_candidates_are_excluded_until_exhausted(db, sessions, make_user):
    await make_user(1)
    await make_user(2, gender="female", looking="men")
    await make_user(3, gender="female", looking="men")
    queues = CandidateQueueBuilder(db, sessions)
    session = sessions.get_or_create(1)

    session.shown[:] = [2]
    assert ids(await queues.build(1)) == [3]

    session.shown[:] = [2, 3]
    assert ids(await queues.build(1)) == [2, 3]
    assert session.shown == []


@pytest.mark.asyncio
async def test_include_shown_when_asked(db, sessions, make_user):
    await make_user(1)
    await make_user(2, gender="female", looking="men")
    sessions.get_or_create(1).shown[:] = [2]
    queues = CandidateQueueBuilder(db, sessions)
    assert ids(await queues.build(1, exclude_shown=False)) == [2]
    assert sessions.get(1).shown == [2]


@pytest.mark.asyncio
async def test_relaxed_policy_falls_back_to_anyone(db, sessions, make_user):
    await make_user(1, gender="male", looking="women")
    await make_user(2, gender="male", looking="men")
    assert ids(await CandidateQueueBuilder(db, sessions, relax_preferences=True).build(1)) == [2]


@pytest.mark.asyncio
async def test_strict_policy_never_shows_incompatible_users(db, sessions, make_user):
    await make_user(1, gender="male", looking="women")
    await make_user(2, gender="male", looking="men")
    assert await CandidateQueueBuilder(db, sessions, relax_preferences=False).build(1) == []


@pytest.mark.asyncio
async def test_no_profile_or_nobody_else(db, sessions, make_user):
    queues = CandidateQueueBuilder(db, sessions)
    assert await queues.build(1) == []
    await make_user(1)
    assert await queues.build(1) == []
