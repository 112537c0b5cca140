"""Small persistent key-value store backing the session and reminder flags."""

from __future__ import annotations

import os
import sqlite3
from typing import Iterable, Optional

from .logging import get_logger

LOG = get_logger("storage")

DB_FILENAME = "dealsafe.sqlite3"
TABLE_NAME = "kv_store"


class KeyValueStore:
    def __init__(self, state_dir: str) -> None:
        folder = os.path.abspath(state_dir)
        os.makedirs(folder, exist_ok=True)
        self.db_path = os.path.join(folder, DB_FILENAME)
        self._ensure_schema()
        LOG.debug(f"Key-value store ready at {self.db_path}")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT (datetime('now'))
                );
                """
            )
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(f"SELECT value FROM {TABLE_NAME} WHERE key=?", (key,))
            row = cur.fetchone()
            return str(row[0]) if row else None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO {TABLE_NAME} (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=datetime('now');
                """,
                (key, value),
            )
            conn.commit()
        finally:
            conn.close()

    def remove(self, keys: Iterable[str]) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.executemany(f"DELETE FROM {TABLE_NAME} WHERE key=?", [(k,) for k in keys])
            conn.commit()
        finally:
            conn.close()
