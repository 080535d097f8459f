from __future__ import annotations
import asyncio
import logging
import aiosqlite
from contextlib import asynccontextmanager

log = logging.getLogger(__name__)


class Database:
    """Single aiosqlite connection shared by the whole bot.

    Every statement runs behind one asyncio.Lock. A transaction holds the lock
    from BEGIN to COMMIT/ROLLBACK; statements issued by the task that owns the
    transaction join it instead of waiting.
    """

    def __init__(self, path: str):
        self.path = path
        self.conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._tx_task: asyncio.Task | None = None

    async def connect(self):
        self.conn = await aiosqlite.connect(self.path)
        self.conn.row_factory = aiosqlite.Row
        # Enable WAL and foreign keys for better performance and integrity
        await self.conn.execute("PRAGMA journal_mode=WAL;")
        await self.conn.execute("PRAGMA foreign_keys=ON;")
        await self.conn.execute("PRAGMA synchronous=NORMAL;")
        await self.conn.commit()

    async def close(self):
        if self.conn:
            await self.conn.close()
            self.conn = None

    def _owns_tx(self) -> bool:
        return self._tx_task is not None and self._tx_task is asyncio.current_task()

    @asynccontextmanager
    async def _serialized(self):
        if self._owns_tx():
            yield
            return
        async with self._lock:
            try:
                yield
            except BaseException:
                # A failed statement outside a transaction must not leave sqlite3's implicit BEGIN open.
                if self.conn.in_transaction:
                    await self.conn.rollback()
                raise

    async def execute(self, sql: str, params=(), commit: bool = True) -> int:
        """Execute SQL statement and return the number of changed rows.
        If commit=False, don't commit (for use in transactions)."""
        assert self.conn
        async with self._serialized():
            cur = await self.conn.execute(sql, params)
            changes = cur.rowcount
            await cur.close()
            # Only commit if explicitly requested AND not inside a transaction
            if commit and not self._owns_tx():
                await self.conn.commit()
            return changes

    async def execute_returning(self, sql: str, params=()):
        """Run a single ``... RETURNING`` statement and return the first row (or None)."""
        assert self.conn
        async with self._serialized():
            cur = await self.conn.execute(sql, params)
            row = await cur.fetchone()
            await cur.close()
            if not self._owns_tx():
                await self.conn.commit()
            return row

    @asynccontextmanager
    async def transaction(self):
        """Transaction context manager: BEGIN on enter, COMMIT on success, ROLLBACK on exception.
        Re-entrant for the owning task."""
        assert self.conn
        if self._owns_tx():
            yield self
            return
        async with self._lock:
            self._tx_task = asyncio.current_task()
            try:
                await self.conn.execute("BEGIN IMMEDIATE")
                yield self
                await self.conn.commit()
            except BaseException:
                await self.conn.rollback()
                raise
            finally:
                self._tx_task = None

    async def fetchone(self, sql: str, params=()):
        assert self.conn
        async with self._serialized():
            cur = await self.conn.execute(sql, params)
            row = await cur.fetchone()
            await cur.close()
            return row

    async def fetchall(self, sql: str, params=()):
        assert self.conn
        async with self._serialized():
            cur = await self.conn.execute(sql, params)
            rows = await cur.fetchall()
            await cur.close()
            return rows

    async def migrate(self):
        """Run database migrations. Wrapped in a single transaction."""
        try:
            async with self.transaction():
                await self._migrate_tables()
        except Exception:
            log.exception("Database migration failed for %s", self.path)
            raise

    async def _migrate_tables(self):
        """Internal migration method (called within transaction)."""
        # Guild records (coordinates/biome come from the map service)
        await self.execute("""
        CREATE TABLE IF NOT EXISTS servers (
          guild_id     TEXT PRIMARY KEY,
          name         TEXT NOT NULL DEFAULT '',
          lat          REAL,
          lon          REAL,
          biome        TEXT,
          archived     INTEGER NOT NULL DEFAULT 0,
          last_boss_at INTEGER
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS players (
          user_id            TEXT PRIMARY KEY,
          health             INTEGER NOT NULL DEFAULT 100,
          stamina            INTEGER NOT NULL DEFAULT 100,
          stamina_updated_at INTEGER NOT NULL DEFAULT 0,
          location_guild_id  TEXT,
          travel_arrival_at  INTEGER,
          currency           INTEGER NOT NULL DEFAULT 0,
          gems               INTEGER NOT NULL DEFAULT 0,
          boss_kills         INTEGER NOT NULL DEFAULT 0
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS equipment (
          user_id TEXT NOT NULL,
          slot    TEXT NOT NULL,
          item_id TEXT NOT NULL,
          PRIMARY KEY (user_id, slot)
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS inventory (
          user_id TEXT NOT NULL,
          item_id TEXT NOT NULL,
          qty     INTEGER NOT NULL DEFAULT 0,
          PRIMARY KEY (user_id, item_id)
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS premium_users (
          user_id TEXT PRIMARY KEY
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS bosses (
          id          INTEGER PRIMARY KEY AUTOINCREMENT,
          guild_id    TEXT NOT NULL,
          name        TEXT NOT NULL,
          tier        INTEGER NOT NULL DEFAULT 1,
          hp          INTEGER NOT NULL,
          max_hp      INTEGER NOT NULL,
          started_at  INTEGER NOT NULL,
          expires_at  INTEGER NOT NULL,
          active      INTEGER NOT NULL DEFAULT 1,
          defeated_at INTEGER,
          expired_at  INTEGER,
          rewarded_at INTEGER,
          CHECK (hp >= 0)
        );
        """)

        # One active boss per guild
        await self.execute("""
        CREATE UNIQUE INDEX IF NOT EXISTS idx_bosses_one_active
        ON bosses(guild_id) WHERE active = 1;
        """)
        await self.execute("""
        CREATE INDEX IF NOT EXISTS idx_bosses_active_expiry ON bosses(active, expires_at);
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS boss_participants (
          boss_id INTEGER NOT NULL,
          user_id TEXT NOT NULL,
          damage  INTEGER NOT NULL CHECK (damage > 0),
          PRIMARY KEY (boss_id, user_id)
        );
        """)
        await self.execute("""
        CREATE INDEX IF NOT EXISTS idx_boss_participants_user ON boss_participants(user_id);
        """)

        # Exactly-once payout log
        await self.execute("""
        CREATE TABLE IF NOT EXISTS boss_rewards (
          boss_id  INTEGER NOT NULL,
          user_id  TEXT NOT NULL,
          currency INTEGER NOT NULL,
          items    TEXT NOT NULL DEFAULT '[]',
          ts       INTEGER NOT NULL,
          PRIMARY KEY (boss_id, user_id)
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS battle_analytics (
          id        INTEGER PRIMARY KEY AUTOINCREMENT,
          user_id   TEXT NOT NULL,
          boss_id   INTEGER NOT NULL,
          damage    INTEGER NOT NULL,
          weapon    TEXT NOT NULL DEFAULT 'none',
          ts        INTEGER NOT NULL
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS player_challenges (
          user_id  TEXT NOT NULL,
          kind     TEXT NOT NULL,
          progress INTEGER NOT NULL DEFAULT 0,
          PRIMARY KEY (user_id, kind)
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS gem_ledger (
          id      INTEGER PRIMARY KEY AUTOINCREMENT,
          user_id TEXT NOT NULL,
          amount  INTEGER NOT NULL,
          kind    TEXT NOT NULL,
          reason  TEXT NOT NULL DEFAULT '',
          ts      INTEGER NOT NULL
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS player_achievements (
          user_id     TEXT NOT NULL,
          achievement TEXT NOT NULL,
          unlocked_ts INTEGER NOT NULL,
          PRIMARY KEY (user_id, achievement)
        );
        """)

        await self.execute("""
        CREATE TABLE IF NOT EXISTS system_settings (
          key        TEXT PRIMARY KEY,
          value      TEXT NOT NULL,
          updated_at INTEGER NOT NULL
        );
        """)

    # ------------------------------------------------------------------
    # system_settings helpers
    # ------------------------------------------------------------------
    async def get_setting(self, key: str, default: str | None = None) -> str | None:
        row = await self.fetchone("SELECT value FROM system_settings WHERE key=?", (key,))
        return str(row["value"]) if row else default

    async def set_setting(self, key: str, value, ts: int):
        await self.execute(
            """INSERT INTO system_settings(key,value,updated_at) VALUES(?,?,?)
               ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at""",
            (key, str(value), int(ts)),
        )
