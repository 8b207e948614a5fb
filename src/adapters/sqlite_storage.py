"""SQLite storage adapter.

Implements the core RelayStorePort using a simple SQLite database.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
import sqlite3
from typing import Iterable

from core.models import RelayRecord

_COLUMNS = (
    "source_message_id, source_instance, source_channel, "
    "target_message_id, target_instance, target_channel, created_at"
)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the RelayStorePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create the relay_records table and its lookup indexes.

        relay_records is append-only: one row per (inbound message, delivered
        copy) pair. Rows are never updated by the relay.
        """

        with self._connect() as conn:
            # Fields:
            # - id: auto-increment record id
            # - source_*: inbound message id, "<platform>:<self_id>", channel
            # - target_*: delivered message id, "<platform>:<self_id>", channel
            # - created_at: UTC timestamp of the delivery
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS relay_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    source_message_id VARCHAR(64) NOT NULL,
                    source_instance VARCHAR(64) NOT NULL,
                    source_channel VARCHAR(64) NOT NULL,
                    target_message_id VARCHAR(64) NOT NULL,
                    target_instance VARCHAR(64) NOT NULL,
                    target_channel VARCHAR(64) NOT NULL,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS relay_records_by_source
                ON relay_records (source_message_id, source_instance, source_channel)
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS relay_records_by_target
                ON relay_records (target_message_id, target_instance, target_channel)
                """
            )

    @staticmethod
    def _to_record(row: sqlite3.Row) -> RelayRecord:
        return RelayRecord(
            source_message_id=row["source_message_id"],
            source_instance=row["source_instance"],
            source_channel=row["source_channel"],
            target_message_id=row["target_message_id"],
            target_instance=row["target_instance"],
            target_channel=row["target_channel"],
            timestamp=datetime.fromisoformat(row["created_at"]),
            record_id=int(row["id"]),
        )

    def find_by_source(self, message_id: str, instance: str, channel: str) -> list[RelayRecord]:
        """Return records whose inbound side matches, oldest first."""

        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT id, {_COLUMNS} FROM relay_records
                WHERE source_message_id = ? AND source_instance = ? AND source_channel = ?
                ORDER BY id
                """,
                (message_id, instance, channel),
            ).fetchall()
        return [self._to_record(row) for row in rows]

    def find_by_target(self, message_id: str, instance: str, channel: str) -> list[RelayRecord]:
        """Return records whose delivered side matches, oldest first."""

        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT id, {_COLUMNS} FROM relay_records
                WHERE target_message_id = ? AND target_instance = ? AND target_channel = ?
                ORDER BY id
                """,
                (message_id, instance, channel),
            ).fetchall()
        return [self._to_record(row) for row in rows]

    def insert_records(self, records: Iterable[RelayRecord]) -> list[RelayRecord]:
        """Insert a batch of records in one transaction."""

        stored: list[RelayRecord] = []
        with self._connect() as conn:
            for record in records:
                cur = conn.execute(
                    f"INSERT INTO relay_records ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.source_message_id,
                        record.source_instance,
                        record.source_channel,
                        record.target_message_id,
                        record.target_instance,
                        record.target_channel,
                        record.timestamp.isoformat(),
                    ),
                )
                stored.append(replace(record, record_id=cur.lastrowid))
        return stored

    def count_records(self) -> int:
        """Return the number of stored relay records."""

        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM relay_records").fetchone()
        return int(row["total"])
