"""SQLite-backed operation store.

Satisfies the same contract as the in-memory store so operations survive a
process restart. Metadata, log details and restore-point payloads are stored
as JSON text; values that JSON cannot represent natively (datetimes, enums)
come back in their ``json_default`` form.
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

from ads_op_tracker.domain.operations import (
    LogLevel,
    Operation,
    OperationError,
    OperationLog,
    OperationStatus,
    RestorePoint,
    RestorePointMetadata,
    new_operation_id,
)
from ads_op_tracker.store.base import OperationFilter, OperationStore, apply_filter
from ads_op_tracker.utils.serialization import dumps, loads
from ads_op_tracker.utils.time import parse_iso

_SqlValue = str | bytes | int | float | None
_SqlParams = Sequence[_SqlValue] | Mapping[str, _SqlValue]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class SqliteOperationStore(OperationStore):
    def __init__(self, path: str, wal: bool = True) -> None:
        if path != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._closed = False
        if wal and path != ":memory:":
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS operations (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                operation_id TEXT NOT NULL UNIQUE,
                type TEXT NOT NULL,
                status TEXT NOT NULL,
                progress REAL NOT NULL DEFAULT 0,
                start_time TEXT,
                end_time TEXT,
                error TEXT,
                metadata TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS operation_logs (
                log_id INTEGER PRIMARY KEY AUTOINCREMENT,
                operation_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                level TEXT NOT NULL,
                message TEXT NOT NULL,
                details TEXT,
                FOREIGN KEY(operation_id) REFERENCES operations(operation_id)
            );

            CREATE TABLE IF NOT EXISTS operation_restore_points (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                restore_point_id TEXT NOT NULL UNIQUE,
                operation_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                type TEXT NOT NULL,
                data TEXT,
                metadata TEXT,
                FOREIGN KEY(operation_id) REFERENCES operations(operation_id)
            );

            CREATE INDEX IF NOT EXISTS idx_operations_type_status
                ON operations(type, status);
            CREATE INDEX IF NOT EXISTS idx_operation_logs_operation_id
                ON operation_logs(operation_id);
            CREATE INDEX IF NOT EXISTS idx_restore_points_operation_id
                ON operation_restore_points(operation_id);
            """
        )
        self._conn.commit()

    def execute(self, query: str, params: _SqlParams) -> int:
        with self._lock:
            cursor = self._conn.execute(query, params)
            self._conn.commit()
            return cursor.rowcount

    def fetch_one(self, query: str, params: _SqlParams) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchone()

    def fetch_all(self, query: str, params: _SqlParams) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchall()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True

    def create(self, type: str, metadata: dict[str, Any] | None = None) -> str:
        operation_id = new_operation_id()
        self.execute(
            """
            INSERT INTO operations (
                operation_id, type, status, progress, metadata
            ) VALUES (?, ?, ?, 0, ?)
            """,
            (operation_id, type, OperationStatus.PENDING.value, dumps(dict(metadata or {}))),
        )
        return operation_id

    def get(self, operation_id: str) -> Operation | None:
        with self._lock:
            row = self.fetch_one(
                "SELECT * FROM operations WHERE operation_id = ?", (operation_id,)
            )
            if row is None:
                return None
            return self._hydrate(row)

    def list(self, flt: OperationFilter | None = None) -> list[Operation]:
        flt = flt or OperationFilter()
        clauses: list[str] = []
        params: list[_SqlValue] = []
        if flt.type is not None:
            clauses.append("type = ?")
            params.append(flt.type)
        status = flt.resolved_status
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock:
            rows = self.fetch_all(f"SELECT * FROM operations{where} ORDER BY seq", params)
            operations = [self._hydrate(row) for row in rows]
        return apply_filter(operations, flt)

    def exists(self, operation_id: str) -> bool:
        row = self.fetch_one(
            "SELECT 1 FROM operations WHERE operation_id = ?", (operation_id,)
        )
        return row is not None

    def get_status(self, operation_id: str) -> OperationStatus | None:
        row = self.fetch_one(
            "SELECT status FROM operations WHERE operation_id = ?", (operation_id,)
        )
        return OperationStatus(row["status"]) if row is not None else None

    def set_status(self, operation_id: str, status: OperationStatus) -> bool:
        return self._update(operation_id, "status = ?", (status.value,))

    def set_progress(self, operation_id: str, progress: float) -> bool:
        return self._update(operation_id, "progress = ?", (float(progress),))

    def set_times(
        self,
        operation_id: str,
        *,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> bool:
        if start_time is None and end_time is None:
            return self.exists(operation_id)
        return self._update(
            operation_id,
            "start_time = COALESCE(?, start_time), end_time = COALESCE(?, end_time)",
            (_iso(start_time), _iso(end_time)),
        )

    def append_log(self, operation_id: str, log: OperationLog) -> bool:
        with self._lock:
            if not self.exists(operation_id):
                return False
            self.execute(
                """
                INSERT INTO operation_logs (
                    operation_id, timestamp, level, message, details
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    operation_id,
                    log.timestamp.isoformat(),
                    log.level.value,
                    log.message,
                    dumps(log.details) if log.details is not None else None,
                ),
            )
            return True

    def append_restore_point(self, operation_id: str, restore_point: RestorePoint) -> bool:
        with self._lock:
            if not self.exists(operation_id):
                return False
            metadata = restore_point.metadata
            self.execute(
                """
                INSERT INTO operation_restore_points (
                    restore_point_id, operation_id, timestamp, type, data, metadata
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    restore_point.id,
                    operation_id,
                    restore_point.timestamp.isoformat(),
                    restore_point.type,
                    dumps(restore_point.data),
                    dumps(metadata) if metadata is not None else None,
                ),
            )
            return True

    def set_error(self, operation_id: str, error: OperationError | None) -> bool:
        return self._update(
            operation_id, "error = ?", (dumps(error) if error is not None else None,)
        )

    def _update(self, operation_id: str, assignments: str, params: tuple[_SqlValue, ...]) -> bool:
        rowcount = self.execute(
            f"UPDATE operations SET {assignments} WHERE operation_id = ?",
            (*params, operation_id),
        )
        return rowcount == 1

    def _hydrate(self, row: sqlite3.Row) -> Operation:
        operation_id = row["operation_id"]
        log_rows = self.fetch_all(
            "SELECT * FROM operation_logs WHERE operation_id = ? ORDER BY log_id",
            (operation_id,),
        )
        rp_rows = self.fetch_all(
            "SELECT * FROM operation_restore_points WHERE operation_id = ? ORDER BY seq",
            (operation_id,),
        )
        error_data = loads(row["error"])
        return Operation(
            id=operation_id,
            type=row["type"],
            status=OperationStatus(row["status"]),
            progress=row["progress"],
            start_time=parse_iso(row["start_time"]),
            end_time=parse_iso(row["end_time"]),
            logs=[
                OperationLog(
                    timestamp=datetime.fromisoformat(log["timestamp"]),
                    level=LogLevel(log["level"]),
                    message=log["message"],
                    details=loads(log["details"]),
                )
                for log in log_rows
            ],
            error=OperationError(**error_data) if isinstance(error_data, dict) else None,
            metadata=loads(row["metadata"]) or {},
            restore_points=[
                RestorePoint(
                    id=rp["restore_point_id"],
                    timestamp=datetime.fromisoformat(rp["timestamp"]),
                    type=rp["type"],
                    data=loads(rp["data"]),
                    metadata=RestorePointMetadata.coerce(loads(rp["metadata"])),
                )
                for rp in rp_rows
            ],
        )
