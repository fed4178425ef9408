"""PostgreSQL storage implementation."""

import json
import logging
import os

import psycopg2
from psycopg2.extras import RealDictCursor

from core.interfaces import KeyValueBackend, StorageError

logger = logging.getLogger(__name__)


class PostgresBackend(KeyValueBackend):
    """PostgreSQL-based key-value backend (one JSONB row per key)."""

    def __init__(self, db_url: str = None, namespace: str = 'default'):
        self.db_url = db_url or os.environ.get(
            'DATABASE_URL',
            'postgresql://localhost:5432/spanish_rain'
        )
        self.namespace = namespace
        self._conn = None
        self._initialized = False

    @property
    def conn(self):
        """Lazy connection initialization."""
        if self._conn is None or self._conn.closed:
            self._conn = psycopg2.connect(self.db_url)
            if not self._initialized:
                self._init_db()
                self._initialized = True
        return self._conn

    def _init_db(self):
        """Create tables if they don't exist."""
        with self._conn.cursor() as cur:
            cur.execute("""
                CREATE TABLE IF NOT EXISTS rain_state (
                    namespace VARCHAR(255) NOT NULL,
                    key VARCHAR(255) NOT NULL,
                    value JSONB,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (namespace, key)
                )
            """)
            cur.execute("""
                CREATE INDEX IF NOT EXISTS idx_rain_state_updated
                ON rain_state(updated_at)
            """)
        self._conn.commit()

    def close(self):
        """Close the database connection."""
        if self._conn and not self._conn.closed:
            self._conn.close()

    def get(self, key: str):
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    "SELECT value FROM rain_state WHERE namespace = %s AND key = %s",
                    (self.namespace, key)
                )
                row = cur.fetchone()
                if row:
                    return row['value']
                return None
        except psycopg2.Error as e:
            self._rollback()
            raise StorageError(f"Error loading {key}: {e}") from e

    def set(self, key: str, value) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute("""
                    INSERT INTO rain_state (namespace, key, value, updated_at)
                    VALUES (%s, %s, %s, CURRENT_TIMESTAMP)
                    ON CONFLICT (namespace, key)
                    DO UPDATE SET value = EXCLUDED.value, updated_at = CURRENT_TIMESTAMP
                """, (self.namespace, key, json.dumps(value)))
            self.conn.commit()
        except psycopg2.Error as e:
            logger.error(f"Error saving {key}: {e}")
            self._rollback()
            raise StorageError(f"Error saving {key}: {e}") from e

    def delete(self, key: str) -> None:
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM rain_state WHERE namespace = %s AND key = %s",
                    (self.namespace, key)
                )
            self.conn.commit()
        except psycopg2.Error as e:
            self._rollback()
            raise StorageError(f"Error deleting {key}: {e}") from e

    def _rollback(self) -> None:
        if self._conn is not None and not self._conn.closed:
            self._conn.rollback()
