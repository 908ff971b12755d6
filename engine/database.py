
"""
engine/database.py: Profile store for MatchUps
- SQLite by default
- Postgres when USE_POSTGRES=1
Tables (auto-created):
  users(user_id PK, name, username, age, gender, looking, intention, bio, photos,
        likes, matches, recent_likes, daily_swipes, last_swipe_reset, purchased_swipes, created_at)
  reports(id PK, reporter_id, reporter_name, reported_id, reported_name, created_at)  UNIQUE(reporter_id, reported_id)
  deletion_reasons(id PK, user_id, name, username, reason, created_at)
Id lists (likes / matches / recent_likes) are normalized on read: ints only, no duplicates, order kept.
Every backend call is guarded: failures are logged and a safe default is returned.
"""
import functools
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

from config import PG_DSN, PG_POOL_MAX, PG_POOL_MIN, PG_TIMEOUT, SQLITE_PATH, USE_POSTGRES

log = logging.getLogger("db")

ID_LISTS = ("likes", "matches", "recent_likes")
COUNTERS = ("daily_swipes", "purchased_swipes")
COLUMNS = (
    "user_id", "name", "username", "age", "gender", "looking", "intention", "bio", "photos",
    "likes", "matches", "recent_likes", "daily_swipes", "last_swipe_reset", "purchased_swipes", "created_at",
)
# columns a partial update may touch
WRITABLE = tuple(c for c in COLUMNS if c not in ("user_id", "created_at"))

SQLITE_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
      user_id           INTEGER PRIMARY KEY,
      name              TEXT DEFAULT '',
      username          TEXT,
      age               INTEGER,
      gender            TEXT,
      looking           TEXT,
      intention         TEXT DEFAULT '',
      bio               TEXT DEFAULT '',
      photos            TEXT DEFAULT '[]',
      likes             TEXT DEFAULT '[]',
      matches           TEXT DEFAULT '[]',
      recent_likes      TEXT DEFAULT '[]',
      daily_swipes      INTEGER DEFAULT 0,
      last_swipe_reset  INTEGER DEFAULT 0,
      purchased_swipes  INTEGER DEFAULT 0,
      created_at        INTEGER
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reports (
      id            INTEGER PRIMARY KEY,
      reporter_id   INTEGER,
      reporter_name TEXT,
      reported_id   INTEGER,
      reported_name TEXT,
      created_at    INTEGER
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_reports_pair ON reports(reporter_id, reported_id)",
    """
    CREATE TABLE IF NOT EXISTS deletion_reasons (
      id         INTEGER PRIMARY KEY,
      user_id    INTEGER,
      name       TEXT,
      username   TEXT,
      reason     TEXT,
      created_at INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_deletion_reasons_user ON deletion_reasons(user_id)",
)

PG_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
      user_id           BIGINT PRIMARY KEY,
      name              TEXT DEFAULT '',
      username          TEXT,
      age               INT,
      gender            TEXT,
      looking           TEXT,
      intention         TEXT DEFAULT '',
      bio               TEXT DEFAULT '',
      photos            TEXT[] DEFAULT '{}',
      likes             BIGINT[] DEFAULT '{}',
      matches           BIGINT[] DEFAULT '{}',
      recent_likes      BIGINT[] DEFAULT '{}',
      daily_swipes      INT DEFAULT 0,
      last_swipe_reset  BIGINT DEFAULT 0,
      purchased_swipes  INT DEFAULT 0,
      created_at        BIGINT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS reports (
      id            BIGSERIAL PRIMARY KEY,
      reporter_id   BIGINT,
      reporter_name TEXT,
      reported_id   BIGINT,
      reported_name TEXT,
      created_at    BIGINT
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_reports_pair ON reports(reporter_id, reported_id)",
    """
    CREATE TABLE IF NOT EXISTS deletion_reasons (
      id         BIGSERIAL PRIMARY KEY,
      user_id    BIGINT,
      name       TEXT,
      username   TEXT,
      reason     TEXT,
      created_at BIGINT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_deletion_reasons_user ON deletion_reasons(user_id)",
)

__all__ = ["init_db", "get_backend", "get_stats", "normalize_ids"]

_backend = None


async def init_db(reset: bool = False, *, use_postgres: Optional[bool] = None,
                  sqlite_path: Optional[str] = None, pg_dsn: Optional[str] = None):
    """Create the configured backend, make sure the schema exists and return it."""
    global _backend
    if USE_POSTGRES if use_postgres is None else use_postgres:
        backend = _PG(pg_dsn or PG_DSN)
    else:
        backend = _SQLite(sqlite_path or SQLITE_PATH)
    await backend.init(reset)
    _backend = backend
    return backend


def get_backend():
    return _backend


async def get_stats() -> Dict[str, Any]:
    if _backend is None:
        return {}
    return await _backend.get_stats()


def normalize_ids(raw) -> List[int]:
    out: List[int] = []
    for v in raw or []:
        if isinstance(v, bool):
            continue
        try:
            n = int(v)
        except (TypeError, ValueError):
            continue
        if n not in out:
            out.append(n)
    return out


def _normalize(record: Dict[str, Any]) -> Dict[str, Any]:
    for key in ID_LISTS:
        if key in record:
            record[key] = normalize_ids(record[key])
    if "photos" in record:
        record["photos"] = [str(p) for p in (record["photos"] or []) if p][:3]
    for key in COUNTERS + ("last_swipe_reset",):
        if key in record:
            record[key] = int(record[key] or 0)
    return record


def _guarded(default=None):
    """Log backend failures and hand back a safe default instead of raising."""
    def deco(fn):
        @functools.wraps(fn)
        async def wrapper(self, *args, **kwargs):
            try:
                return await fn(self, *args, **kwargs)
            except Exception:
                log.exception("[db] %s failed", fn.__name__)
                return default() if callable(default) else default
        return wrapper
    return deco


def _projection(fields) -> List[str]:
    if not fields:
        return list(COLUMNS)
    cols = [f for f in fields if f in COLUMNS]
    if "user_id" not in cols:
        cols.insert(0, "user_id")
    return cols


def _writable(partial: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in partial.items() if k in WRITABLE}


# --- Implementations ---
class _SQLite:
    def __init__(self, path: str):
        self.path = path

    async def init(self, reset: bool):
        import aiosqlite
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        if reset and os.path.exists(self.path):
            os.remove(self.path)
        async with aiosqlite.connect(self.path) as db:
            for stmt in SQLITE_SCHEMA:
                await db.execute(stmt)
            await db.commit()
        log.info("[db] sqlite ready → %s", self.path)

    @staticmethod
    def _encode(record: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(record)
        for key in ID_LISTS + ("photos",):
            if key in out:
                out[key] = json.dumps(list(out[key] or []))
        return out

    @staticmethod
    def _decode(row) -> Dict[str, Any]:
        record = dict(row)
        for key in ID_LISTS + ("photos",):
            if key in record:
                try:
                    record[key] = json.loads(record[key] or "[]")
                except ValueError:
                    record[key] = []
        return _normalize(record)

    @_guarded()
    async def find_one(self, user_id: int, fields=None) -> Optional[Dict[str, Any]]:
        import aiosqlite
        cols = _projection(fields)
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cur = await db.execute(f"SELECT {', '.join(cols)} FROM users WHERE user_id=?", (user_id,))
            row = await cur.fetchone()
            return self._decode(row) if row else None

    @_guarded(list)
    async def find_all(self) -> List[Dict[str, Any]]:
        import aiosqlite
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cur = await db.execute(f"SELECT {', '.join(COLUMNS)} FROM users ORDER BY user_id")
            return [self._decode(r) for r in await cur.fetchall()]

    @_guarded(False)
    async def upsert(self, user_id: int, record: Dict[str, Any]) -> bool:
        import aiosqlite
        data = self._encode(_writable(record))
        cols = ["user_id", "created_at"] + list(data)
        params = [user_id, int(record.get("created_at") or time.time())] + list(data.values())
        updates = ", ".join(f"{k}=excluded.{k}" for k in data) or "user_id=excluded.user_id"
        async with aiosqlite.connect(self.path) as db:
            await db.execute(f"""
              INSERT INTO users ({', '.join(cols)}) VALUES ({', '.join('?' for _ in cols)})
              ON CONFLICT(user_id) DO UPDATE SET {updates}
            """, params)
            await db.commit()
        return True

    @_guarded(False)
    async def delete(self, user_id: int) -> bool:
        import aiosqlite
        async with aiosqlite.connect(self.path) as db:
            cur = await db.execute("DELETE FROM users WHERE user_id=?", (user_id,))
            await db.commit()
            return cur.rowcount > 0

    @_guarded(False)
    async def update_fields(self, user_id: int, partial: Dict[str, Any]) -> bool:
        import aiosqlite
        data = self._encode(_writable(partial))
        if not data:
            return False
        params = list(data.values()) + [user_id]
        async with aiosqlite.connect(self.path) as db:
            cur = await db.execute(f"UPDATE users SET {', '.join(f'{k}=?' for k in data)} WHERE user_id=?", params)
            await db.commit()
            return cur.rowcount > 0

    @_guarded()
    async def atomic_increment(self, user_id: int, field: str, delta: int) -> Optional[int]:
        import aiosqlite
        if field not in COUNTERS:
            raise ValueError(f"not a counter: {field}")
        async with aiosqlite.connect(self.path) as db:
            await db.execute(f"UPDATE users SET {field} = MAX(0, COALESCE({field}, 0) + ?) WHERE user_id=?", (delta, user_id))
            await db.commit()
            cur = await db.execute(f"SELECT {field} FROM users WHERE user_id=?", (user_id,))
            row = await cur.fetchone()
            return int(row[0]) if row else None

    @_guarded(0)
    async def count(self) -> int:
        import aiosqlite
        async with aiosqlite.connect(self.path) as db:
            cur = await db.execute("SELECT COUNT(*) FROM users")
            return (await cur.fetchone())[0]

    @_guarded(False)
    async def insert_report(self, record: Dict[str, Any]) -> bool:
        import aiosqlite
        async with aiosqlite.connect(self.path) as db:
            cur = await db.execute("""
              INSERT OR IGNORE INTO reports (reporter_id, reporter_name, reported_id, reported_name, created_at)
              VALUES (?,?,?,?,?)
            """, (record["reporter_id"], record.get("reporter_name"), record["reported_id"],
                  record.get("reported_name"), int(record.get("created_at") or time.time())))
            await db.commit()
            return cur.rowcount > 0

    @_guarded()
    async def find_report(self, reporter_id: int, reported_id: int) -> Optional[Dict[str, Any]]:
        import aiosqlite
        async with aiosqlite.connect(self.path) as db:
            db.row_factory = aiosqlite.Row
            cur = await db.execute("SELECT * FROM reports WHERE reporter_id=? AND reported_id=?", (reporter_id, reported_id))
            row = await cur.fetchone()
            return dict(row) if row else None

    @_guarded(False)
    async def insert_deletion_reason(self, record: Dict[str, Any]) -> bool:
        import aiosqlite
        async with aiosqlite.connect(self.path) as db:
            await db.execute("""
              INSERT INTO deletion_reasons (user_id, name, username, reason, created_at) VALUES (?,?,?,?,?)
            """, (record["user_id"], record.get("name"), record.get("username"), record.get("reason", ""),
                  int(record.get("created_at") or time.time())))
            await db.commit()
        return True

    @_guarded(dict)
    async def get_stats(self) -> Dict[str, Any]:
        import aiosqlite
        async with aiosqlite.connect(self.path) as db:
            total = (await (await db.execute("SELECT COUNT(*) FROM users")).fetchone())[0]
            cur = await db.execute("SELECT COALESCE(gender,'unknown'), COUNT(*) FROM users GROUP BY 1")
            genders = {g: c for g, c in await cur.fetchall()}
            cur = await db.execute("SELECT matches FROM users")
            links = sum(len(normalize_ids(json.loads(m or "[]"))) for (m,) in await cur.fetchall())
            reports = (await (await db.execute("SELECT COUNT(*) FROM reports")).fetchone())[0]
            deletions = (await (await db.execute("SELECT COUNT(*) FROM deletion_reasons")).fetchone())[0]
        return {
            "users_total": total,
            "gender": genders,
            "matched_pairs": links // 2,
            "reports_total": reports,
            "deletions_total": deletions,
        }


class _PG:
    def __init__(self, dsn: str):
        self.dsn = dsn
        self.pool = None

    async def init(self, reset: bool):
        import asyncpg
        self.pool = await asyncpg.create_pool(
            dsn=self.dsn, min_size=PG_POOL_MIN, max_size=PG_POOL_MAX,
            timeout=PG_TIMEOUT, command_timeout=60,
        )
        async with self.pool.acquire() as con:
            if reset:
                await con.execute("DROP TABLE IF EXISTS users, reports, deletion_reasons")
            for stmt in PG_SCHEMA:
                await con.execute(stmt)
        log.info("[db] pool ready → %s", self.dsn.split("@")[-1])

    async def close(self):
        if self.pool is not None:
            await self.pool.close()

    @staticmethod
    def _encode(record: Dict[str, Any]) -> Dict[str, Any]:
        out = dict(record)
        for key in ID_LISTS:
            if key in out:
                out[key] = normalize_ids(out[key])
        if "photos" in out:
            out["photos"] = [str(p) for p in out["photos"] or []]
        return out

    @_guarded()
    async def find_one(self, user_id: int, fields=None) -> Optional[Dict[str, Any]]:
        cols = _projection(fields)
        async with self.pool.acquire() as con:
            r = await con.fetchrow(f"SELECT {', '.join(cols)} FROM users WHERE user_id=$1", user_id)
            return _normalize(dict(r)) if r else None

    @_guarded(list)
    async def find_all(self) -> List[Dict[str, Any]]:
        async with self.pool.acquire() as con:
            rows = await con.fetch(f"SELECT {', '.join(COLUMNS)} FROM users ORDER BY user_id")
            return [_normalize(dict(r)) for r in rows]

    @_guarded(False)
    async def upsert(self, user_id: int, record: Dict[str, Any]) -> bool:
        data = self._encode(_writable(record))
        cols = ["user_id", "created_at"] + list(data)
        params = [user_id, int(record.get("created_at") or time.time())] + list(data.values())
        placeholders = ", ".join(f"${i}" for i in range(1, len(cols) + 1))
        updates = ", ".join(f"{k}=EXCLUDED.{k}" for k in data) or "user_id=EXCLUDED.user_id"
        async with self.pool.acquire() as con:
            await con.execute(f"""
              INSERT INTO users ({', '.join(cols)}) VALUES ({placeholders})
              ON CONFLICT (user_id) DO UPDATE SET {updates}
            """, *params)
        return True

    @_guarded(False)
    async def delete(self, user_id: int) -> bool:
        async with self.pool.acquire() as con:
            status = await con.execute("DELETE FROM users WHERE user_id=$1", user_id)
            return status != "DELETE 0"

    @_guarded(False)
    async def update_fields(self, user_id: int, partial: Dict[str, Any]) -> bool:
        data = self._encode(_writable(partial))
        if not data:
            return False
        parts = [f"{k}=${i}" for i, k in enumerate(data, start=1)]
        params = list(data.values()) + [user_id]
        async with self.pool.acquire() as con:
            status = await con.execute(f"UPDATE users SET {', '.join(parts)} WHERE user_id=${len(params)}", *params)
            return status != "UPDATE 0"

    @_guarded()
    async def atomic_increment(self, user_id: int, field: str, delta: int) -> Optional[int]:
        if field not in COUNTERS:
            raise ValueError(f"not a counter: {field}")
        async with self.pool.acquire() as con:
            value = await con.fetchval(
                f"UPDATE users SET {field} = GREATEST(0, COALESCE({field}, 0) + $1) WHERE user_id=$2 RETURNING {field}",
                delta, user_id,
            )
            return int(value) if value is not None else None

    @_guarded(0)
    async def count(self) -> int:
        async with self.pool.acquire() as con:
            return await con.fetchval("SELECT COUNT(*) FROM users")

    @_guarded(False)
    async def insert_report(self, record: Dict[str, Any]) -> bool:
        async with self.pool.acquire() as con:
            status = await con.execute("""
              INSERT INTO reports (reporter_id, reporter_name, reported_id, reported_name, created_at)
              VALUES ($1,$2,$3,$4,$5)
              ON CONFLICT (reporter_id, reported_id) DO NOTHING
            """, record["reporter_id"], record.get("reporter_name"), record["reported_id"],
                record.get("reported_name"), int(record.get("created_at") or time.time()))
            return status.endswith(" 1")

    @_guarded()
    async def find_report(self, reporter_id: int, reported_id: int) -> Optional[Dict[str, Any]]:
        async with self.pool.acquire() as con:
            r = await con.fetchrow("SELECT * FROM reports WHERE reporter_id=$1 AND reported_id=$2", reporter_id, reported_id)
            return dict(r) if r else None

    @_guarded(False)
    async def insert_deletion_reason(self, record: Dict[str, Any]) -> bool:
        async with self.pool.acquire() as con:
            await con.execute("""
              INSERT INTO deletion_reasons (user_id, name, username, reason, created_at) VALUES ($1,$2,$3,$4,$5)
            """, record["user_id"], record.get("name"), record.get("username"), record.get("reason", ""),
                int(record.get("created_at") or time.time()))
        return True

    @_guarded(dict)
    async def get_stats(self) -> Dict[str, Any]:
        async with self.pool.acquire() as con:
            total = await con.fetchval("SELECT COUNT(*) FROM users")
            genders = await con.fetch("SELECT COALESCE(gender,'unknown') g, COUNT(*) c FROM users GROUP BY 1")
            links = await con.fetchval("SELECT COALESCE(SUM(cardinality(matches)), 0) FROM users") or 0
            reports = await con.fetchval("SELECT COUNT(*) FROM reports") or 0
            deletions = await con.fetchval("SELECT COUNT(*) FROM deletion_reasons") or 0
        return {
            "users_total": total,
            "gender": {r["g"]: r["c"] for r in genders},
            "matched_pairs": int(links) // 2,
            "reports_total": reports,
            "deletions_total": deletions,
        }
