import pytest

from engine.database import _SQLite, normalize_ids


def test_normalize_ids_drops_junk_and_duplicates():
    assert normalize_ids(["5", 5, "x", None, 7, 5.0, True]) == [5, 7]
    assert normalize_ids(None) == []


@pytest.mark.asyncio
async def test_missing_user_is_none(db):
    assert await db.find_one(42) is None
    assert await db.count() == 0


@pytest.mark.asyncio
async def test_upsert_then_read_normalizes_lists(db):
    await db.upsert(1, {"name": "Ann", "age": 30, "likes": ["2", 2, "bad", 3], "photos": ["a", "b", "c", "d"]})
    user = await db.find_one(1)
    assert user["name"] == "Ann"
    assert user["likes"] == [2, 3]
    assert user["photos"] == ["a", "b", "c"]
    assert user["matches"] == [] and user["recent_likes"] == []
    assert user["purchased_swipes"] == 0


@pytest.mark.asyncio
async def test_projection_returns_only_requested_fields(db):
    await db.upsert(1, {"name": "Ann", "age": 30})
    assert await db.find_one(1, fields=("name",)) == {"user_id": 1, "name": "Ann"}


@pytest.mark.asyncio
async def test_update_fields_ignores_unknown_columns(db):
    await db.upsert(1, {"name": "Ann"})
    assert await db.update_fields(1, {"nope": 1}) is False
    assert await db.update_fields(1, {"bio": "new", "nope": 1}) is True
    assert (await db.find_one(1))["bio"] == "new"


@pytest.mark.asyncio
async def test_atomic_increment_clamps_at_zero(db):
    await db.upsert(1, {"name": "Ann"})
    assert await db.atomic_increment(1, "purchased_swipes", -1) == 0
    assert await db.atomic_increment(1, "purchased_swipes", 40) == 40
    assert await db.atomic_increment(1, "daily_swipes", 1) == 1


@pytest.mark.asyncio
async def test_atomic_increment_rejects_non_counters(db):
    await db.upsert(1, {"name": "Ann"})
    assert await db.atomic_increment(1, "age", 1) is None


@pytest.mark.asyncio
async def test_reports_are_unique_per_pair(db):
    record = {"reporter_id": 1, "reporter_name": "Ann", "reported_id": 2, "reported_name": "Bob"}
    assert await db.insert_report(record) is True
    assert await db.insert_report(record) is False
    assert (await db.find_report(1, 2))["reported_name"] == "Bob"
    assert await db.find_report(2, 1) is None


@pytest.mark.asyncio
async def test_delete_and_stats(db):
    await db.upsert(1, {"name": "Ann", "gender": "female", "matches": [2]})
    await db.upsert(2, {"name": "Bob", "gender": "male", "matches": [1]})
    await db.insert_deletion_reason({"user_id": 3, "name": "Cy", "reason": "bored"})
    stats = await db.get_stats()
    assert stats["users_total"] == 2
    assert stats["gender"] == {"female": 1, "male": 1}
    assert stats["matched_pairs"] == 1
    assert stats["deletions_total"] == 1

    assert await db.delete(1) is True
    assert await db.delete(1) is False
    assert await db.count() == 1


@pytest.mark.asyncio
async def test_unreachable_store_returns_safe_defaults(tmp_path):
    broken = _SQLite(str(tmp_path / "missing-dir" / "nowhere.sqlite3"))
    assert await broken.find_one(1) is None
    assert await broken.find_all() == []
    assert await broken.count() == 0
    assert await broken.upsert(1, {"name": "Ann"}) is False
    assert await broken.update_fields(1, {"bio": "x"}) is False
    assert await broken.atomic_increment(1, "daily_swipes", 1) is None
    assert await broken.insert_report({"reporter_id": 1, "reported_id": 2}) is False
    assert await broken.get_stats() == {}


@pytest.mark.asyncio
async def test_missing_table_is_logged_not_raised(db, caplog):
    import aiosqlite

    async with aiosqlite.connect(db.path) as con:
        await con.execute("DROP TABLE users")
        await con.commit()
    assert await db.find_all() == []
    assert await db.count() == 0
    assert "[db] find_all failed" in caplog.text
