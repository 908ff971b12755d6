import pytest

from conftest import shown_id
from engine.sessions import IDLE, AwaitingDeletionReason, Creating, Editing
from texts_ui import t


@pytest.fixture
def profiles(services):
    return services["profiles"]


@pytest.fixture
def dialogue(services):
    return services["dialogue"]


async def create_profile(profiles, dialogue, user_id, *, photos=2):
    profiles.begin_create(user_id, "Tg", "tguser")
    profiles.use_custom_name(user_id)
    await dialogue.on_text(user_id, "Dana")
    await dialogue.on_text(user_id, "27")
    profiles.choose_gender(user_id, "female")
    profiles.choose_looking(user_id, "men")
    profiles.choose_intention(user_id, "serious")
    await dialogue.on_text(user_id, "I like hiking")
    replies = []
    for n in range(photos):
        replies = await dialogue.on_photo(user_id, f"file-{n}")
    if photos < 3:
        replies = await profiles.finish_photos(user_id)
    return replies


class TestCreate:
    @pytest.mark.asyncio
    async def test_full_flow_saves_profile(self, profiles, dialogue, db, services):
        replies = await create_profile(profiles, dialogue, 10)
        assert replies[0].text == t("profile_done")
        assert replies[1].text == t("nobody_yet")

        user = await db.find_one(10)
        assert user["name"] == "Dana"
        assert user["username"] == "tguser"
        assert user["age"] == 27
        assert (user["gender"], user["looking"], user["intention"]) == ("female", "men", "serious")
        assert user["bio"] == "I like hiking"
        assert user["photos"] == ["file-0", "file-1"]
        assert services["sessions"].get(10).step == IDLE

    @pytest.mark.asyncio
    async def test_third_photo_finishes_automatically(self, profiles, dialogue, db, make_user):
        await make_user(1, gender="male", looking="women")
        replies = await create_profile(profiles, dialogue, 10, photos=3)
        assert replies[0].text == t("profile_done")
        assert shown_id(replies[1]) == 1
        assert (await db.find_one(10))["photos"] == ["file-0", "file-1", "file-2"]

    @pytest.mark.asyncio
    async def test_telegram_name_is_used(self, profiles, services):
        profiles.begin_create(10, "Tg", None)
        assert profiles.use_telegram_name(10)[0].text == t("name_telegram")
        session = services["sessions"].get(10)
        assert session.draft["name"] == "Tg"
        assert session.step == Creating("age")

    @pytest.mark.asyncio
    async def test_bad_age_keeps_asking(self, profiles, dialogue, services):
        profiles.begin_create(10, "Tg", None)
        profiles.use_telegram_name(10)
        for bad in ("abc", "12", "200", "²⁵", "２５"):
            [reply] = await dialogue.on_text(10, bad)
            assert reply.text == t("age_invalid", min=16, max=100)
        assert services["sessions"].get(10).step == Creating("age")

    @pytest.mark.asyncio
    async def test_buttons_outside_their_step_do_nothing(self, profiles, services):
        profiles.begin_create(10, "Tg", None)
        assert profiles.choose_gender(10, "male") == []
        assert profiles.skip_bio(10) == []
        assert services["sessions"].get(10).step == Creating("name_choice")
        assert profiles.use_telegram_name(99) == []

    @pytest.mark.asyncio
    async def test_single_photo_is_not_enough(self, profiles, dialogue):
        profiles.begin_create(10, "Tg", None)
        profiles.use_telegram_name(10)
        await dialogue.on_text(10, "30")
        profiles.choose_gender(10, "male")
        profiles.choose_looking(10, "women")
        profiles.choose_intention(10, "casual")
        profiles.skip_bio(10)
        [saved] = await dialogue.on_photo(10, "only")
        assert saved.text == t("photo_saved", count=1)
        assert [r.text for r in await profiles.finish_photos(10)] == [t("photos_min")]

    @pytest.mark.asyncio
    async def test_recreating_keeps_likes_and_counters(self, profiles, dialogue, db, make_user):
        await make_user(10, likes=[3], matches=[4], purchased_swipes=7, gender="male")
        await create_profile(profiles, dialogue, 10)
        user = await db.find_one(10)
        assert user["name"] == "Dana"
        assert user["likes"] == [3] and user["matches"] == [4]
        assert user["purchased_swipes"] == 7


class TestEdit:
    @pytest.mark.asyncio
    async def test_needs_a_profile(self, profiles):
        assert [r.text for r in await profiles.edit_menu(10)] == [t("no_profile_edit")]
        assert [r.text for r in await profiles.edit_age(10)] == [t("no_profile_edit")]

    @pytest.mark.asyncio
    async def test_edit_age(self, profiles, dialogue, db, make_user, services):
        await make_user(10)
        await profiles.edit_age(10)
        assert services["sessions"].get(10).step == Editing("age")
        replies = await dialogue.on_text(10, "31")
        assert replies[0].text == t("age_updated")
        assert (await db.find_one(10))["age"] == 31
        assert services["sessions"].get(10).step == IDLE

    @pytest.mark.asyncio
    async def test_edit_age_rejects_non_ascii_digits(self, profiles, dialogue, db, make_user, services):
        await make_user(10)
        await profiles.edit_age(10)
        assert [r.text for r in await dialogue.on_text(10, "²⁵")] == [t("age_invalid", min=16, max=100)]
        assert (await db.find_one(10))["age"] == 25
        assert services["sessions"].get(10).step == Editing("age")

    @pytest.mark.asyncio
    async def test_edit_photos_keeps_last_three(self, profiles, dialogue, db, make_user):
        await make_user(10)
        await profiles.edit_photos(10)
        for n in range(5):
            await dialogue.on_photo(10, f"new-{n}")
        replies = await profiles.finish_edit_photos(10)
        assert replies[0].text == t("photos_updated", count=3)
        assert (await db.find_one(10))["photos"] == ["new-2", "new-3", "new-4"]

    @pytest.mark.asyncio
    async def test_set_gender_and_intention(self, profiles, db, make_user):
        await make_user(10)
        await profiles.set_gender(10, "female")
        await profiles.set_intention(10, "friendship")
        user = await db.find_one(10)
        assert (user["gender"], user["intention"]) == ("female", "friendship")
        assert await profiles.set_gender(10, "robot") == []

    @pytest.mark.asyncio
    async def test_set_looking_starts_browsing_over(self, profiles, make_user, services):
        await make_user(10)
        session = services["sessions"].get_or_create(10)
        session.shown[:] = [1, 2]
        await profiles.set_looking(10, "men")
        assert session.shown == []
        assert session.last_preference == "men"

    @pytest.mark.asyncio
    async def test_view_own_profile(self, profiles, make_user):
        await make_user(10, name="Dana")
        [card] = await profiles.view(10)
        assert card.text.startswith("👤 Dana, 25")
        assert "Looking for: Women" in card.text
        assert card.photos == ["photo-10-a", "photo-10-b"]


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_purges_references(self, profiles, dialogue, db, make_user, services):
        await make_user(10)
        await make_user(11, likes=[10], matches=[10], recent_likes=[10, 12])
        await make_user(12, likes=[10, 11])

        [prompt] = await profiles.request_delete(10)
        assert prompt.text == t("delete_reason")
        assert services["sessions"].get(10).step == AwaitingDeletionReason()

        [done] = await dialogue.on_text(10, "found someone", username="dana")
        assert done.text == t("deleted")

        assert await db.find_one(10) is None
        other = await db.find_one(11)
        assert other["likes"] == [] and other["matches"] == [] and other["recent_likes"] == [12]
        assert (await db.find_one(12))["likes"] == [11]
        assert (await db.get_stats())["deletions_total"] == 1
        assert services["sessions"].get(10) is None

    @pytest.mark.asyncio
    async def test_deleted_user_never_comes_back_in_queues(self, profiles, dialogue, services, make_user):
        await make_user(1, gender="male", looking="women")
        await make_user(10, gender="female", looking="men")
        await make_user(11, gender="female", looking="men")

        await profiles.request_delete(10)
        await dialogue.on_text(10, "bye")

        assert [c["user_id"] for c in await services["queues"].build(1)] == [11]
        seen = [shown_id((await services["matching"].present_next(1))[0]) for _ in range(3)]
        assert seen == [11, 11, 11]

    @pytest.mark.asyncio
    async def test_delete_without_profile(self, profiles):
        assert [r.text for r in await profiles.request_delete(10)] == [t("no_profile_delete")]


@pytest.mark.asyncio
async def test_commands_are_not_treated_as_answers(profiles, dialogue, services):
    profiles.begin_create(10, "Tg", None)
    profiles.use_custom_name(10)
    assert await dialogue.on_text(10, "/match") == []
    assert services["sessions"].get(10).step == Creating("name")


@pytest.mark.asyncio
async def test_text_without_session_is_ignored(dialogue):
    assert await dialogue.on_text(10, "hello") == []
    assert await dialogue.on_photo(10, "file") == []
