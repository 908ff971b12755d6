import asyncio

import pytest

from engine.notify import Notifier, NotifyOutcome
from engine.replies import Reply


@pytest.mark.asyncio
async def test_delivered():
    got = []

    async def send(chat_id, replies):
        got.append((chat_id, [r.text for r in replies]))
        return True

    notifier = Notifier(send, timeout=1)
    assert await notifier.notify(5, [Reply("hi")]) is NotifyOutcome.DELIVERED
    assert got == [(5, ["hi"])]


@pytest.mark.asyncio
async def test_slow_recipient_times_out():
    async def send(chat_id, replies):
        await asyncio.sleep(5)
        return True

    notifier = Notifier(send, timeout=0.05)
    assert await notifier.notify(5, [Reply("hi")]) is NotifyOutcome.TIMED_OUT


@pytest.mark.asyncio
async def test_unreachable_or_broken_sender_fails():
    async def blocked(chat_id, replies):
        return False

    async def broken(chat_id, replies):
        raise RuntimeError("boom")

    assert await Notifier(blocked).notify(5, []) is NotifyOutcome.FAILED
    assert await Notifier(broken).notify(5, []) is NotifyOutcome.FAILED


@pytest.mark.asyncio
async def test_notify_does_not_block_caller():
    release = asyncio.Event()

    async def send(chat_id, replies):
        await release.wait()
        return True

    notifier = Notifier(send, timeout=1)
    task = notifier.notify(5, [Reply("hi")])
    await asyncio.sleep(0)
    assert notifier.pending == 1 and not task.done()
    release.set()
    await notifier.drain()
    assert notifier.pending == 0
    assert task.result() is NotifyOutcome.DELIVERED
