"""Database Module - SQLite Encrypted Enrollment Store

Record store gateway backed by SQLCipher:
- Enrollment images (base64 text, one row per reference label)
- Audit logging

Tables:
- enrollment_images: (student_id, label) -> base64 image
- audit_log: All write operations

The verifier only calls lookup(); the write methods serve the external
enrollment workflow and tests.

"""

from __future__ import annotations

import threading
from sqlcipher3 import dbapi2 as sqlite
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from fingerauth.models import EnrollmentRecord

from .config import DB_PATH, DB_ENCRYPTION_KEY
from .logger import get_logger

logger = get_logger("database")


# ============================================================================
# DATABASE CLASS
# ============================================================================

class BiometricDatabase:
    """SQLite enrollment store with encryption support."""

    def __init__(self, db_path: Path = None, encryption_key: str = None):
        """Initialize database connection.

        Args:
            db_path: Path to database file
            encryption_key: Encryption key for SQLCipher
        """
        self.db_path = db_path or DB_PATH
        self.encryption_key = encryption_key or DB_ENCRYPTION_KEY
        self.conn = None
        self.encrypted = False
        self._lock = threading.Lock()

        self._connect()
        self._create_tables()

    def _connect(self):
        """Connect to database with encryption if available."""
        try:
            self.conn = sqlite.connect(str(self.db_path), check_same_thread=False)
            self.conn.execute(f"PRAGMA key = '{self.encryption_key}'")
            # Test if encryption works
            self.conn.execute("SELECT count(*) FROM sqlite_master")
            self.encrypted = True
            logger.info("Using encrypted database (SQLCipher)")
        except sqlite.DatabaseError as e:
            # Existing plain SQLite file or SQLCipher disabled
            logger.warning(f"SQLCipher key rejected, using standard SQLite: {e}")
            if self.conn:
                self.conn.close()
            self.conn = sqlite.connect(str(self.db_path), check_same_thread=False)
            self.encrypted = False

        # Row factory for dict-like access
        self.conn.row_factory = sqlite.Row

    def _create_tables(self):
        """Create database tables if they don't exist."""
        with self._lock:
            cursor = self.conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS enrollment_images (
                    student_id TEXT NOT NULL,
                    label TEXT NOT NULL,
                    image_b64 TEXT NOT NULL,
                    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    PRIMARY KEY (student_id, label)
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS audit_log (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    username TEXT NOT NULL,
                    action TEXT NOT NULL,
                    details TEXT,
                    result TEXT
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp)"
            )

            self.conn.commit()

    # ========================================================================
    # RECORD STORE
    # ========================================================================

    def lookup(self, subject_id: str) -> Optional[EnrollmentRecord]:
        """Get the enrollment record of a subject.

        Args:
            subject_id: Student identifier

        Returns:
            EnrollmentRecord (references ordered by label) or None
        """
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT label, image_b64 FROM enrollment_images WHERE student_id = ?",
                (subject_id,)
            )
            rows = cursor.fetchall()

        if not rows:
            return None

        images = {row["label"]: row["image_b64"] for row in rows}
        return EnrollmentRecord.from_mapping(subject_id, images)

    def save_record(
        self,
        subject_id: str,
        images: Mapping[str, Union[str, bytes]],
        username: str = "system"
    ) -> int:
        """Replace all reference images of a subject.

        Args:
            subject_id: Student identifier
            images: Mapping label -> base64 image
            username: Who performed the operation

        Returns:
            Number of images stored
        """
        rows = [
            (subject_id, label, value.decode("ascii") if isinstance(value, bytes) else value)
            for label, value in images.items()
        ]

        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM enrollment_images WHERE student_id = ?", (subject_id,))
            cursor.executemany(
                "INSERT INTO enrollment_images (student_id, label, image_b64) VALUES (?, ?, ?)",
                rows
            )
            self.conn.commit()

        self._log_audit(username, "RECORD_SAVED", f"student_id={subject_id}, images={len(rows)}")
        return len(rows)

    def delete_record(self, subject_id: str, username: str = "system") -> bool:
        """Delete all reference images of a subject.

        Returns:
            True if anything was deleted
        """
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute("DELETE FROM enrollment_images WHERE student_id = ?", (subject_id,))
            deleted = cursor.rowcount
            self.conn.commit()

        self._log_audit(
            username, "RECORD_DELETED", f"student_id={subject_id}",
            "success" if deleted else "failure"
        )
        return deleted > 0

    def list_subjects(self) -> List[Dict[str, Any]]:
        """List enrolled subjects with their image counts (no image data)."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                """SELECT student_id, COUNT(*) AS num_images
                   FROM enrollment_images
                   GROUP BY student_id
                   ORDER BY student_id"""
            )
            return [dict(row) for row in cursor.fetchall()]

    def get_stats(self) -> Dict[str, Any]:
        """Get store statistics."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT COUNT(DISTINCT student_id) AS subjects, COUNT(*) AS images FROM enrollment_images"
            )
            row = cursor.fetchone()

        return {
            "num_subjects": row["subjects"],
            "num_images": row["images"],
            "encrypted": self.encrypted
        }

    # ========================================================================
    # AUDIT LOGGING
    # ========================================================================

    def _log_audit(
        self,
        username: str,
        action: str,
        details: str = "",
        result: str = "success"
    ):
        """Log audit entry."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "INSERT INTO audit_log (username, action, details, result) VALUES (?, ?, ?, ?)",
                (username, action, details, result)
            )
            self.conn.commit()

    def get_audit_log(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Get recent audit log entries."""
        with self._lock:
            cursor = self.conn.cursor()
            cursor.execute(
                "SELECT * FROM audit_log ORDER BY id DESC LIMIT ?",
                (limit,)
            )
            return [dict(row) for row in cursor.fetchall()]

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
