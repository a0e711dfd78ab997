from __future__ import annotations

import logging
import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional

from revalidate._core._storages._base import BaseStorage
from revalidate._core._storages._packing import pack, unpack
from revalidate._core.models import CacheEntry, Request, Response
from revalidate._utils import ensure_cache_dict

logger = logging.getLogger("revalidate.storages")

__all__ = ("SqliteStorage",)


class SqliteStorage(BaseStorage):
    """
    A persistent sqlite3 storage.

    Entries survive the process; each key holds exactly one row which is
    replaced on every store.

    :param connection: An already opened sqlite3 connection, defaults to None.
        The async transports call the storage from worker threads, so such a
        connection must be opened with `check_same_thread=False`.
    :type connection: Optional[sqlite3.Connection], optional
    :param database_path: Database file name, created under `base_path` when no connection is given
    :type database_path: str, optional
    :param base_path: Directory for the database file, defaults to `.cache/revalidate`
    :type base_path: Optional[Path], optional
    """

    def __init__(
        self,
        *,
        connection: Optional[sqlite3.Connection] = None,
        database_path: str = "revalidate_cache.db",
        base_path: Optional[Path] = None,
    ) -> None:
        self.connection = connection
        self.database_path = database_path
        self.base_path = base_path
        self._initialized = False
        self._lock = threading.RLock()

    def _ensure_connection(self) -> sqlite3.Connection:
        """Ensure connection is established and database is initialized."""
        if self.connection is None:
            path = ensure_cache_dict(self.base_path) / self.database_path
            self.connection = sqlite3.connect(str(path), check_same_thread=False)
        if not self._initialized:
            self._initialize_database()
            self._initialized = True
        return self.connection

    def _initialize_database(self) -> None:
        assert self.connection is not None
        cursor = self.connection.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS entries (
                cache_key TEXT PRIMARY KEY,
                data BLOB NOT NULL,
                fresh_until REAL NOT NULL,
                stale_until REAL NOT NULL,
                created_at REAL NOT NULL
            )
        """)
        self.connection.commit()

    def store(self, response: Response, fresh_until: float, stale_until: float) -> None:
        key = self._key_for_response(response)
        # Validates the window before anything is written
        entry = CacheEntry(response=response, fresh_until=fresh_until, stale_until=stale_until)

        with self._lock:
            connection = self._ensure_connection()
            connection.execute(
                "INSERT OR REPLACE INTO entries (cache_key, data, fresh_until, stale_until, created_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (key, pack(entry.response), entry.fresh_until, entry.stale_until, time.time()),
            )
            connection.commit()
        logger.debug(f"Stored entry {key!r} (fresh until {fresh_until}, stale until {stale_until})")

    def get_entry(self, request: Request) -> Optional[CacheEntry]:
        key = self.get_key(request)

        with self._lock:
            connection = self._ensure_connection()
            row = connection.execute(
                "SELECT data, fresh_until, stale_until FROM entries WHERE cache_key = ?",
                (key,),
            ).fetchone()

        if row is None:
            return None

        data, fresh_until, stale_until = row
        response = unpack(data)
        assert response is not None
        return CacheEntry(response=response, fresh_until=fresh_until, stale_until=stale_until)

    def close(self) -> None:
        with self._lock:
            if self.connection is not None:
                self.connection.close()
                self.connection = None
                self._initialized = False
