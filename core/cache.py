# core/cache.py
import datetime
import json
import os
import sqlite3
from typing import Any, Callable, List, Optional, Tuple

import pytz

from .logger import get_logger

logger = get_logger(__name__)

DB_PATH = os.getenv("CACHE_DB_PATH", "/data/storefront_cache.sqlite3")

ONE_HOUR_MS = 60 * 60 * 1000
CACHE_TTL_MS = int(os.getenv("CACHE_TTL_SECONDS", str(ONE_HOUR_MS // 1000))) * 1000

TIME_SUFFIX = "Time"


def now_ms() -> int:
    return int(datetime.datetime.now(tz=pytz.UTC).timestamp() * 1000)


def time_key(key: str) -> str:
    return f"{key}{TIME_SUFFIX}"


class CacheStore:
    """
    Process-wide key/value snapshot store backed by SQLite.

    Every value slot has a parallel "<key>Time" slot holding the write time in
    epoch milliseconds. A slot is only returned while it is younger than the
    freshness window; nothing is ever evicted otherwise, and the last writer wins.
    """

    def __init__(
        self,
        db_path: str = DB_PATH,
        ttl_ms: int = CACHE_TTL_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.db_path = db_path
        self.ttl_ms = ttl_ms
        self.clock = clock
        self.ensure_db()

    def _connect(self):
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def ensure_db(self):
        with self._connect() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """
            )
            con.commit()

    def write(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        ts = self.clock()
        try:
            with self._connect() as con:
                con.executemany(
                    """
                    INSERT INTO kv (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                    [(key, payload), (time_key(key), str(ts))],
                )
                con.commit()
        except sqlite3.Error as e:
            logger.error("Failed to write cache slot '%s': %s", key, e)
            return
        logger.debug("Cached slot '%s' (%d bytes).", key, len(payload))

    def _get_raw(self, key: str) -> Optional[str]:
        try:
            with self._connect() as con:
                row = con.execute("SELECT value FROM kv WHERE key=?", (key,)).fetchone()
        except sqlite3.Error as e:
            logger.error("Failed to read cache slot '%s': %s", key, e)
            return None
        return row[0] if row else None

    def written_at(self, key: str) -> Optional[int]:
        raw = self._get_raw(time_key(key))
        if raw is None:
            return None
        try:
            return int(raw)
        except ValueError:
            logger.warning("Ignoring malformed timestamp for cache slot '%s': %r", key, raw)
            return None

    def read(self, key: str, ttl_ms: Optional[int] = None) -> Any:
        """
        Return the cached value for key, or None when it is missing or older
        than the freshness window (ttl_ms overrides the store default).
        """
        stored = self.written_at(key)
        if stored is None:
            return None

        window = self.ttl_ms if ttl_ms is None else ttl_ms
        age = self.clock() - stored
        if age >= window:
            logger.debug("Cache slot '%s' is stale (%.1fs old).", key, age / 1000)
            return None

        raw = self._get_raw(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("Corrupt cache slot '%s': %s", key, e)
            return None

    def clear(self, key: str) -> None:
        try:
            with self._connect() as con:
                con.execute("DELETE FROM kv WHERE key IN (?, ?)", (key, time_key(key)))
                con.commit()
        except sqlite3.Error as e:
            logger.error("Failed to clear cache slot '%s': %s", key, e)
            return
        logger.debug("Cleared cache slot '%s'.", key)

    def slots(self) -> List[Tuple[str, Optional[int]]]:
        """List value keys with their write timestamps."""
        try:
            with self._connect() as con:
                rows = con.execute("SELECT key, value FROM kv ORDER BY key").fetchall()
        except sqlite3.Error as e:
            logger.error("Failed to list cache slots: %s", e)
            return []
        stamps = {k: v for k, v in rows}
        out: List[Tuple[str, Optional[int]]] = []
        for key, _ in rows:
            if key.endswith(TIME_SUFFIX) and key[: -len(TIME_SUFFIX)] in stamps:
                continue
            ts = stamps.get(time_key(key))
            out.append((key, int(ts) if ts and ts.isdigit() else None))
        return out
