"""
Durable key-value storage backed by SQLAlchemy.

Handles:
- Engine creation for the configured storage URL (SQLite by default)
- A single ``kv_store(item_key, item_value)`` table created on first use
- JSON read/write helpers that never raise: failures are logged, counted
  and reported as "nothing stored" / "not written"

Writes are best-effort and last-write-wins; there is no retry path.
"""
import json
import logging
from typing import Any, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from config import STORAGE_TABLE
from utils.metrics import metrics

log = logging.getLogger("RatedCapacity")


class KeyValueStore:
    """String key -> string value table on a SQLAlchemy engine."""

    def __init__(self, engine: Engine, table: str = STORAGE_TABLE):
        self.engine = engine
        self.table = table

    def ensure_schema(self) -> None:
        with self.engine.begin() as conn:
            conn.execute(text(
                f"CREATE TABLE IF NOT EXISTS {self.table} ("
                "item_key VARCHAR(128) PRIMARY KEY, item_value TEXT NOT NULL)"
            ))

    def get(self, key: str) -> Optional[str]:
        """Raw stored value, or None when the key was never written."""
        with self.engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT item_value FROM {self.table} WHERE item_key = :key"),
                {"key": key},
            ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace ``key`` with a single upsert (SQLite 3.24+ and PostgreSQL)."""
        with self.engine.begin() as conn:
            conn.execute(
                text(
                    f"INSERT INTO {self.table} (item_key, item_value) VALUES (:key, :value) "
                    "ON CONFLICT (item_key) DO UPDATE SET item_value = excluded.item_value"
                ),
                {"key": key, "value": value},
            )

    def read_json(self, key: str) -> Optional[Any]:
        """
        Decode the JSON stored under ``key``.

        Returns None when nothing is stored, the payload is not valid JSON,
        or the storage backend fails.
        """
        metrics.log_storage_read()
        try:
            raw = self.get(key)
        except SQLAlchemyError as e:
            metrics.log_storage_error()
            log.warning(f"⚠️ Storage read failed for {key}: {e}")
            return None

        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.warning(f"⚠️ Ignoring corrupt JSON stored under {key}")
            return None

    def write_json(self, key: str, obj: Any) -> bool:
        """Encode ``obj`` as JSON and store it. Returns False if the write was dropped."""
        try:
            payload = json.dumps(obj)
            self.set(key, payload)
        except (SQLAlchemyError, TypeError, ValueError) as e:
            metrics.log_storage_error()
            log.warning(f"⚠️ Storage write failed for {key}: {e}")
            return False

        metrics.log_storage_write()
        return True


def create_store(url: str) -> KeyValueStore:
    """
    Build a store for ``url`` and make sure its table exists.

    Examples:
        >>> store = create_store("sqlite:///rated_capacity.db")
        >>> store.write_json("ratedCapacity_plf", {"Coal": 60})
        True
    """
    engine = create_engine(url, pool_pre_ping=True)
    store = KeyValueStore(engine)
    store.ensure_schema()
    log.info(f"✅ Storage ready at {engine.url.render_as_string(hide_password=True)}")
    return store
