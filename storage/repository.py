"""Typed repositories over the SQLite schema in storage/db.py.

Every method opens its own connection, so a repository instance can be
shared freely between activities and threads.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from core.models.records import (
    PENDING_NOTIFICATION_STATUSES,
    ErpJob,
    ErpJobLog,
    ImportLogRecord,
    ImportRecord,
)
from connectors.erp_base import ErpJobReader
from storage.db import DEFAULT_DB_PATH, connect, init_db


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_import_record(row) -> ImportRecord:
    return ImportRecord(
        job_id=row["job_id"],
        company_code=row["company_code"],
        device_name=row["device_name"],
        status=row["status"],
        artifact_url=row["artifact_url"],
        archive_url=row["archive_url"],
        notified=bool(row["notified"]),
        created_by=row["created_by"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


def _row_to_erp_job(row) -> ErpJob:
    return ErpJob(
        job_id=row["job_id"],
        status=row["status"],
        created_by=row["created_by"],
        created_at=datetime.fromisoformat(row["created_at"]),
    )


class ImportRepository:
    """Import records, archived logs and notification deliveries."""

    def __init__(self, db_path: Union[str, Path] = DEFAULT_DB_PATH, initialize: bool = True):
        self.db_path = db_path
        if initialize:
            init_db(db_path)

    # =========================================================================
    # Import records
    # =========================================================================

    def upsert_import_record(self, record: ImportRecord) -> ImportRecord:
        """Insert the record, or refresh it if the job id is already known.

        The notified flag and creation fields of an existing row are kept.
        """
        now = _now()
        conn = connect(self.db_path)
        try:
            conn.execute("""
                INSERT INTO import_records
                (job_id, company_code, device_name, status, artifact_url, archive_url,
                 notified, created_by, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(job_id) DO UPDATE SET
                    company_code = excluded.company_code,
                    device_name = excluded.device_name,
                    status = excluded.status,
                    artifact_url = COALESCE(excluded.artifact_url, import_records.artifact_url),
                    archive_url = COALESCE(excluded.archive_url, import_records.archive_url),
                    updated_at = excluded.updated_at
            """, (
                record.job_id,
                record.company_code,
                record.device_name,
                record.status,
                record.artifact_url,
                record.archive_url,
                int(record.notified),
                record.created_by,
                record.created_at.isoformat(),
                now,
            ))
            conn.commit()
        finally:
            conn.close()
        return self.get_import_record(record.job_id)

    def get_import_record(self, job_id: int) -> Optional[ImportRecord]:
        conn = connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT * FROM import_records WHERE job_id = ?", (job_id,)
            ).fetchone()
            return _row_to_import_record(row) if row else None
        finally:
            conn.close()

    def update_status(self, job_id: int, status: int) -> bool:
        """Persist a new ERP status. Returns False if the record is missing."""
        conn = connect(self.db_path)
        try:
            cursor = conn.execute(
                "UPDATE import_records SET status = ?, updated_at = ? WHERE job_id = ?",
                (status, _now(), job_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()

    def mark_notified(self, job_id: int, status: int) -> bool:
        """Set notified=true and write the delivery audit row in one transaction.

        Returns:
            False if the record was already notified (nothing written)
        """
        now = _now()
        conn = connect(self.db_path)
        try:
            with conn:
                cursor = conn.execute(
                    "UPDATE import_records SET notified = 1, updated_at = ? "
                    "WHERE job_id = ? AND notified = 0",
                    (now, job_id),
                )
                if cursor.rowcount == 0:
                    return False
                conn.execute(
                    "INSERT INTO notification_deliveries (job_id, status, delivered_at) VALUES (?, ?, ?)",
                    (job_id, status, now),
                )
            return True
        finally:
            conn.close()

    def list_pending_notifications(self) -> List[ImportRecord]:
        """Records not yet notified whose status may still call for a notification."""
        placeholders = ", ".join("?" for _ in PENDING_NOTIFICATION_STATUSES)
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                f"SELECT * FROM import_records "
                f"WHERE notified = 0 AND status IN ({placeholders}) "
                f"ORDER BY created_at",
                PENDING_NOTIFICATION_STATUSES,
            ).fetchall()
            return [_row_to_import_record(row) for row in rows]
        finally:
            conn.close()

    def count_deliveries(self, job_id: int) -> int:
        conn = connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM notification_deliveries WHERE job_id = ?", (job_id,)
            ).fetchone()
            return row["n"]
        finally:
            conn.close()

    # =========================================================================
    # Archived ERP logs
    # =========================================================================

    def list_archived_log_names(self, job_id: int) -> List[str]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                "SELECT log_name FROM import_logs WHERE job_id = ? ORDER BY id", (job_id,)
            ).fetchall()
            return [row["log_name"] for row in rows]
        finally:
            conn.close()

    def list_import_logs(self, job_id: int) -> List[ImportLogRecord]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                "SELECT job_id, log_name, location_url FROM import_logs WHERE job_id = ? ORDER BY id",
                (job_id,),
            ).fetchall()
            return [ImportLogRecord(**dict(row)) for row in rows]
        finally:
            conn.close()

    def insert_import_log(self, log: ImportLogRecord) -> bool:
        """Record an archived log. Returns False if (job_id, log_name) exists."""
        conn = connect(self.db_path)
        try:
            cursor = conn.execute(
                "INSERT OR IGNORE INTO import_logs (job_id, log_name, location_url, created_at) "
                "VALUES (?, ?, ?, ?)",
                (log.job_id, log.log_name, log.location_url, _now()),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()


class ErpJobRepository(ErpJobReader):
    """SQLite copy of the ERP job tables, for local runs and tests.

    Deployed workers read the ERP database itself through
    connectors.totvs.job_reader.TotvsJobReader. The write helpers below seed
    this copy; the pipeline only reads.
    """

    def __init__(self, db_path: Union[str, Path] = DEFAULT_DB_PATH, initialize: bool = True):
        self.db_path = db_path
        if initialize:
            init_db(db_path)

    def find_latest_job(self, created_by: str, process_class: str) -> Optional[ErpJob]:
        """Most recent job created by `created_by` for `process_class`."""
        conn = connect(self.db_path)
        try:
            row = conn.execute("""
                SELECT job_id, status, created_by, created_at
                FROM erp_jobs
                WHERE created_by = ? AND process_class = ?
                ORDER BY created_at DESC, job_id DESC
                LIMIT 1
            """, (created_by, process_class)).fetchone()
            return _row_to_erp_job(row) if row else None
        finally:
            conn.close()

    def get_status(self, job_id: int) -> Optional[int]:
        """Live execution status, or None if the job has no execution yet."""
        conn = connect(self.db_path)
        try:
            row = conn.execute(
                "SELECT status FROM erp_jobs WHERE job_id = ?", (job_id,)
            ).fetchone()
            return row["status"] if row else None
        finally:
            conn.close()

    def list_logs(self, job_id: int) -> List[ErpJobLog]:
        conn = connect(self.db_path)
        try:
            rows = conn.execute(
                "SELECT log_name, content FROM erp_job_logs WHERE job_id = ? ORDER BY id",
                (job_id,),
            ).fetchall()
            return [ErpJobLog(log_name=row["log_name"], content=row["content"]) for row in rows]
        finally:
            conn.close()

    def create_job(
        self,
        process_class: str,
        created_by: str,
        status: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> ErpJob:
        created = (created_at or datetime.now(timezone.utc)).isoformat()
        conn = connect(self.db_path)
        try:
            cursor = conn.execute(
                "INSERT INTO erp_jobs (process_class, created_by, status, created_at) VALUES (?, ?, ?, ?)",
                (process_class, created_by, status, created),
            )
            conn.commit()
            job_id = cursor.lastrowid
        finally:
            conn.close()
        return ErpJob(
            job_id=job_id,
            status=status,
            created_by=created_by,
            created_at=datetime.fromisoformat(created),
        )

    def set_status(self, job_id: int, status: Optional[int]):
        conn = connect(self.db_path)
        try:
            conn.execute("UPDATE erp_jobs SET status = ? WHERE job_id = ?", (status, job_id))
            conn.commit()
        finally:
            conn.close()

    def add_log(self, job_id: int, log_name: str, content: str):
        conn = connect(self.db_path)
        try:
            conn.execute(
                "INSERT INTO erp_job_logs (job_id, log_name, content) VALUES (?, ?, ?)",
                (job_id, log_name, content),
            )
            conn.commit()
        finally:
            conn.close()
