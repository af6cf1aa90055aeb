"""SQLite schema for import records and the ERP job read model.

Local tables:
- import_records: one row per ERP job created by an AFD import
- import_logs: archived ERP execution logs, unique per (job_id, log_name)
- notification_deliveries: audit of delivered operator notifications

ERP read model for local runs and tests (a copy of the ERP job tables;
deployed workers read the ERP database directly):
- erp_jobs: jobs with their creator, process class and execution status
- erp_job_logs: execution logs attached to a job
"""

import sqlite3
from pathlib import Path
from typing import Union

from core.config import REPO_ROOT


DEFAULT_DB_PATH = REPO_ROOT / "afd_import.db"


def connect(db_path: Union[str, Path] = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Open a connection with name-addressable rows."""
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: Union[str, Path] = DEFAULT_DB_PATH) -> None:
    """Create every table if it doesn't exist.

    Args:
        db_path: Path to SQLite database file
    """
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    try:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS import_records (
                job_id INTEGER PRIMARY KEY,
                company_code INTEGER NOT NULL,
                device_name TEXT NOT NULL,
                status INTEGER,
                artifact_url TEXT,
                archive_url TEXT,
                notified INTEGER NOT NULL DEFAULT 0,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_import_records_pending
            ON import_records(notified, status)
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS import_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id INTEGER NOT NULL,
                log_name TEXT NOT NULL,
                location_url TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (job_id) REFERENCES import_records(job_id),
                UNIQUE(job_id, log_name)
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS notification_deliveries (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id INTEGER NOT NULL,
                status INTEGER NOT NULL,
                delivered_at TEXT NOT NULL,
                FOREIGN KEY (job_id) REFERENCES import_records(job_id)
            )
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS erp_jobs (
                job_id INTEGER PRIMARY KEY AUTOINCREMENT,
                process_class TEXT NOT NULL,
                created_by TEXT NOT NULL,
                status INTEGER,
                created_at TEXT NOT NULL
            )
        """)
        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_erp_jobs_signature
            ON erp_jobs(created_by, process_class, created_at)
        """)
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS erp_job_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id INTEGER NOT NULL,
                log_name TEXT NOT NULL,
                content TEXT NOT NULL,
                FOREIGN KEY (job_id) REFERENCES erp_jobs(job_id)
            )
        """)
        conn.commit()
    finally:
        conn.close()
