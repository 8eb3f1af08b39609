"""Device persistence.

Stores hold Device.to_dict() records keyed by device id. They are async so the
SQLite implementation can use aiosqlite; the engine only ever calls them
through the effect dispatcher.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Protocol

import aiosqlite

from .errors import PersistenceError

logger = logging.getLogger("wear_tracker.store")


class DeviceStore(Protocol):
    async def load(self) -> list[dict]: ...

    async def save(self, record: dict) -> None: ...

    async def delete(self, device_id: str) -> None: ...


class InMemoryDeviceStore:
    """Keeps records in a dict. Offline mode and tests."""

    def __init__(self, records: list[dict] | None = None):
        self.records: dict[str, dict] = {}
        for record in records or []:
            self.records[record["id"]] = copy.deepcopy(record)
        self.saves = 0
        self.deletes = 0

    async def load(self) -> list[dict]:
        return [copy.deepcopy(record) for record in self.records.values()]

    async def save(self, record: dict) -> None:
        self.records[record["id"]] = copy.deepcopy(record)
        self.saves += 1

    async def delete(self, device_id: str) -> None:
        self.records.pop(device_id, None)
        self.deletes += 1


class SqliteDeviceStore:
    """Devices in a single SQLite table. Ledgers are stored as JSON text."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)

    # ── Schema ─────────────────────────────────────────────────

    async def init(self) -> None:
        """Create the devices table if missing."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    CREATE TABLE IF NOT EXISTS devices (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        total_time_today REAL NOT NULL DEFAULT 0,
                        session_start_time TEXT,
                        last_stop_time TEXT,
                        weekly_stats TEXT NOT NULL DEFAULT '{}',
                        monthly_stats TEXT NOT NULL DEFAULT '{}',
                        notified_for_not_wearing INTEGER NOT NULL DEFAULT 0,
                        notified_for_long_wearing INTEGER NOT NULL DEFAULT 0,
                        last_checked_at TEXT,
                        created_at TEXT NOT NULL
                    )
                """)
                await db.execute("""
                    CREATE INDEX IF NOT EXISTS idx_devices_created_at
                    ON devices(created_at)
                """)
                await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not initialize {self.db_path}: {e}") from e

    # ── Records ────────────────────────────────────────────────

    async def load(self) -> list[dict]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute("SELECT * FROM devices ORDER BY created_at, rowid")
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not load devices from {self.db_path}: {e}") from e

        records = []
        for row in rows:
            record = dict(row)
            record["weekly_stats"] = json.loads(record["weekly_stats"] or "{}")
            record["monthly_stats"] = json.loads(record["monthly_stats"] or "{}")
            record["notified_for_not_wearing"] = bool(record["notified_for_not_wearing"])
            record["notified_for_long_wearing"] = bool(record["notified_for_long_wearing"])
            records.append(record)
        logger.debug(f"Loaded {len(records)} device(s) from {self.db_path}")
        return records

    async def save(self, record: dict) -> None:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("""
                    INSERT INTO devices (
                        id, name, total_time_today,
                        session_start_time, last_stop_time,
                        weekly_stats, monthly_stats,
                        notified_for_not_wearing, notified_for_long_wearing,
                        last_checked_at, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        total_time_today = excluded.total_time_today,
                        session_start_time = excluded.session_start_time,
                        last_stop_time = excluded.last_stop_time,
                        weekly_stats = excluded.weekly_stats,
                        monthly_stats = excluded.monthly_stats,
                        notified_for_not_wearing = excluded.notified_for_not_wearing,
                        notified_for_long_wearing = excluded.notified_for_long_wearing,
                        last_checked_at = excluded.last_checked_at
                """, (
                    record["id"],
                    record["name"],
                    record.get("total_time_today", 0.0),
                    record.get("session_start_time"),
                    record.get("last_stop_time"),
                    json.dumps(record.get("weekly_stats") or {}),
                    json.dumps(record.get("monthly_stats") or {}),
                    int(bool(record.get("notified_for_not_wearing"))),
                    int(bool(record.get("notified_for_long_wearing"))),
                    record.get("last_checked_at"),
                    record["created_at"],
                ))
                await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not save device {record['id']}: {e}") from e
        logger.debug(f"Saved device '{record['name']}' ({record['id'][:8]})")

    async def delete(self, device_id: str) -> None:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                await db.execute("DELETE FROM devices WHERE id = ?", (device_id,))
                await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Could not delete device {device_id}: {e}") from e
        logger.debug(f"Deleted device {device_id[:8]}")
