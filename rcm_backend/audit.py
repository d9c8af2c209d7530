"""Audit trail for claim lifecycle events and correction decisions.

Entries are written to an ``audit_logs`` SQLite table. Rejected correction
suggestions are recorded here as well, which is what a learning loop would
read from.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    """Types of auditable actions."""

    # Claim lifecycle
    CLAIM_VALIDATE = "claim.validate"
    CLAIM_CONFIRM = "claim.confirm"
    CLAIM_SUBMIT = "claim.submit"
    CLAIM_SUBMIT_FAILED = "claim.submit_failed"
    CLAIM_ADJUDICATE = "claim.adjudicate"
    CLAIM_WRITE_OFF = "claim.write_off"
    CLAIM_CLONE = "claim.clone"
    CLAIM_ARCHIVE = "claim.archive"

    # Corrections
    CORRECTION_APPLY = "correction.apply"
    CORRECTION_REJECT = "correction.reject"
    CORRECTION_CONFLICT = "correction.conflict"


@dataclass(frozen=True)
class AuditEntry:
    """Single audit log entry."""

    id: str
    timestamp: str
    action: str
    resource_type: str | None = None
    resource_id: str | None = None
    user_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    status: str = "success"
    error_message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "user_id": self.user_id,
            "details": self.details,
            "status": self.status,
            "error_message": self.error_message,
        }


class AuditLog:
    """SQLite-backed audit log.

    One connection is shared behind a lock, so ``":memory:"`` works for
    tests and the log can be written from any request thread.
    """

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._init_table()

    def _init_table(self) -> None:
        with self._lock:
            cursor = self._conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS audit_logs (
                    id TEXT PRIMARY KEY,
                    timestamp TEXT NOT NULL,
                    action TEXT NOT NULL,
                    resource_type TEXT,
                    resource_id TEXT,
                    user_id TEXT,
                    details TEXT,
                    status TEXT DEFAULT 'success',
                    error_message TEXT
                )
            """)
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_logs(timestamp)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_logs(action)"
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_audit_resource ON audit_logs(resource_type, resource_id)"
            )
            self._conn.commit()

    def record(
        self,
        action: AuditAction | str,
        resource_id: str | None = None,
        resource_type: str | None = "claim",
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
        status: str = "success",
        error_message: str | None = None,
    ) -> str:
        """Log an audit event.

        Returns the audit log entry ID.
        """
        audit_id = str(uuid.uuid4())
        timestamp = datetime.now(timezone.utc).isoformat()
        action_value = action.value if isinstance(action, AuditAction) else action

        with self._lock:
            self._conn.execute(
                """
                INSERT INTO audit_logs (
                    id, timestamp, action, resource_type, resource_id,
                    user_id, details, status, error_message
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    audit_id,
                    timestamp,
                    action_value,
                    resource_type,
                    resource_id,
                    user_id,
                    json.dumps(details, default=str) if details else None,
                    status,
                    error_message,
                ),
            )
            self._conn.commit()

        return audit_id

    def entries(
        self,
        resource_id: str | None = None,
        action: str | None = None,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuditEntry], int]:
        """Return matching entries, oldest first, and the total match count."""
        conditions = []
        params: list[Any] = []

        if resource_id:
            conditions.append("resource_id = ?")
            params.append(resource_id)

        if action:
            conditions.append("action = ?")
            params.append(action)

        if status:
            conditions.append("status = ?")
            params.append(status)

        where_clause = " AND ".join(conditions) if conditions else "1=1"

        # where_clause only ever holds the fixed column names above
        with self._lock:
            cursor = self._conn.cursor()
            cursor.execute(f"SELECT COUNT(*) FROM audit_logs WHERE {where_clause}", params)
            total = cursor.fetchone()[0]

            cursor.execute(
                f"""
                SELECT id, timestamp, action, resource_type, resource_id,
                       user_id, details, status, error_message
                FROM audit_logs
                WHERE {where_clause}
                ORDER BY timestamp ASC, rowid ASC
                LIMIT ? OFFSET ?
                """,
                params + [limit, offset],
            )
            rows = cursor.fetchall()

        entries = []
        for row in rows:
            details: dict[str, Any] = {}
            if row[6]:
                try:
                    details = json.loads(row[6])
                except json.JSONDecodeError:
                    logger.warning(f"Unreadable audit details on entry {row[0]}")
                    details = {"raw": row[6]}

            entries.append(
                AuditEntry(
                    id=row[0],
                    timestamp=row[1],
                    action=row[2],
                    resource_type=row[3],
                    resource_id=row[4],
                    user_id=row[5],
                    details=details,
                    status=row[7] or "success",
                    error_message=row[8],
                )
            )

        return entries, total

    def close(self) -> None:
        with self._lock:
            self._conn.close()
