"""
Startup maintenance for the shared local database.

Rows belong to a project directory. When that directory disappears from disk
its rows are orphaned and removed the next time a process opens the database.
"""

import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from .db import TABLES
from ..util.logging import logger


@dataclass
class MaintenanceReport:
    """Outcome of a maintenance pass."""
    operation: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    removed_projects: List[str] = None
    rows_deleted: Dict[str, int] = None
    errors: List[str] = None

    def __post_init__(self):
        if self.removed_projects is None:
            self.removed_projects = []
        if self.rows_deleted is None:
            self.rows_deleted = {}
        if self.errors is None:
            self.errors = []

    @property
    def total_rows_deleted(self) -> int:
        return sum(self.rows_deleted.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for serialization."""
        data = {
            "operation": self.operation,
            "started_at": self.started_at.isoformat(),
            "removed_projects": self.removed_projects,
            "rows_deleted": self.rows_deleted,
            "errors": self.errors,
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


def list_project_paths(conn: sqlite3.Connection) -> List[str]:
    """Distinct project paths present in any storage table."""
    paths = set()
    cursor = conn.cursor()
    try:
        for table in TABLES:
            cursor.execute(f"SELECT DISTINCT project_path FROM {table}")
            paths.update(row[0] for row in cursor.fetchall())
    finally:
        cursor.close()
    return sorted(paths)


def find_orphaned_projects(conn: sqlite3.Connection, current_project: str) -> List[str]:
    """Project paths whose directory is gone, excluding the running project."""
    return [
        path for path in list_project_paths(conn)
        if path != current_project and not os.path.isdir(path)
    ]


def cleanup_orphaned_projects(conn: sqlite3.Connection, current_project: str) -> MaintenanceReport:
    """
    Delete every row owned by a project directory that no longer exists.

    Each table is cleared with its own statement, so an interrupted pass can
    leave some tables cleaned and others not. The next pass finishes the job.

    Returns:
        MaintenanceReport: Projects removed and rows deleted per table
    """

    report = MaintenanceReport(
        operation="orphaned_project_cleanup",
        started_at=datetime.now()
    )

    orphaned = find_orphaned_projects(conn, current_project)
    if orphaned:
        placeholders = ", ".join("?" for _ in orphaned)
        cursor = conn.cursor()
        try:
            for table in TABLES:
                cursor.execute(f"DELETE FROM {table} WHERE project_path IN ({placeholders})", orphaned)
                report.rows_deleted[table] = cursor.rowcount
        finally:
            cursor.close()

        report.removed_projects = orphaned
        logger.log_maintenance("orphaned_project_cleanup", orphaned, details={
            "rows_deleted": report.total_rows_deleted
        })

    report.completed_at = datetime.now()
    return report
