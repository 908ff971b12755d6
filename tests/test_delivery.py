import pytest
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.methods import SendMessage, SendPhoto

import keyboards as kb
from delivery import deliver
from engine.replies import Reply
from texts_ui import t


class FakeBot:
    def __init__(self, fail_photos=False, forbidden=False, reject_markdown=False):
        self.calls = []
        self.fail_photos = fail_photos
        self.forbidden = forbidden
        self.reject_markdown = reject_markdown

    async def send_message(self, chat_id, text, **kw):
        if self.forbidden:
            raise TelegramForbiddenError(method=SendMessage(chat_id=chat_id, text=text), message="blocked")
        if self.reject_markdown and kw.get("parse_mode"):
            raise TelegramBadRequest(method=SendMessage(chat_id=chat_id, text=text), message="can't parse entities")
        self.calls.append(("message", chat_id, text, kw))

    async def send_photo(self, chat_id, photo, **kw):
        if self.fail_photos:
            raise TelegramBadRequest(method=SendPhoto(chat_id=chat_id, photo=photo), message="bad file")
        self.calls.append(("photo", chat_id, photo, kw))

    async def send_media_group(self, chat_id, media, **kw):
        self.calls.append(("group", chat_id, [m.media for m in media], kw))


@pytest.mark.asyncio
async def test_plain_text_with_markdown():
    bot = FakeBot()
    assert await deliver(bot, 1, [Reply("*hi*", markdown=True)]) is True
    assert bot.calls == [("message", 1, "*hi*", {"reply_markup": None, "parse_mode": "Markdown"})]


@pytest.mark.asyncio
async def test_single_photo_carries_caption_and_buttons():
    bot = FakeBot()
    markup = kb.kb_swipe(2)
    await deliver(bot, 1, [Reply("card", photos=["p1"], markup=markup)])
    [(kind, _, photo, kw)] = bot.calls
    assert (kind, photo, kw["caption"], kw["reply_markup"]) == ("photo", "p1", "card", markup)


@pytest.mark.asyncio
async def test_album_then_buttons_message():
    bot = FakeBot()
    markup = kb.kb_swipe(2)
    await deliver(bot, 1, [Reply("card", photos=["p1", "p2"], markup=markup)])
    assert [c[0] for c in bot.calls] == ["group", "message"]
    assert bot.calls[0][2] == ["p1", "p2"]
    assert bot.calls[1][2] == t("nice_profile")
    assert bot.calls[1][3]["reply_markup"] is markup


@pytest.mark.asyncio
async def test_broken_photo_falls_back_to_text():
    bot = FakeBot(fail_photos=True)
    await deliver(bot, 1, [Reply("card", photos=["p1"])])
    [(kind, _, text, _)] = bot.calls
    assert kind == "message"
    assert text == t("photos_unavailable") + "card"


@pytest.mark.asyncio
async def test_blocked_user_stops_delivery():
    bot = FakeBot(forbidden=True)
    assert await deliver(bot, 1, [Reply("a"), Reply("b")]) is False
    assert bot.calls == []


@pytest.mark.asyncio
async def test_unparseable_markdown_is_resent_as_plain_text():
    bot = FakeBot(reject_markdown=True)
    assert await deliver(bot, 1, [Reply("bad *markup", markdown=True), Reply("next")]) is True
    assert [(c[2], c[3]["parse_mode"]) for c in bot.calls] == [("bad *markup", None), ("next", None)]


@pytest.mark.asyncio
async def test_photo_fallback_also_survives_bad_markdown():
    bot = FakeBot(fail_photos=True, reject_markdown=True)
    await deliver(bot, 1, [Reply("card _", photos=["p1"], markdown=True)])
    [(kind, _, text, kw)] = bot.calls
    assert kind == "message"
    assert text == t("photos_unavailable") + "card _"
    assert kw["parse_mode"] is None
