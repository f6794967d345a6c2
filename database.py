"""Database operations for stored comment runs.

This module provides SQLite-based storage for the cleaned comment list of
each pipeline run. Storage is best effort: the pipeline logs a failed
store() and returns its report unchanged.

Database Schema:
    runs table:
        - id (INTEGER, PK): Autoincrement run id
        - video_id (TEXT): YouTube video id
        - stored_at (INTEGER): Storage timestamp (Unix epoch)
        - comment_count (INTEGER): Number of stored comments

    comments table:
        - run_id (INTEGER): Owning run (FK to runs)
        - position (INTEGER): Index in the run's comment list
        - comment (TEXT): Normalized comment text
        - positive_percentage (REAL): Sentiment mapped to 0..100
        - is_question (INTEGER): 0/1 question flag

Features:
    - WAL mode for concurrent read/write access
    - Deferred commits for batch writes
    - Context manager support for auto-cleanup
"""

import logging
import sqlite3
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from errors import PersistenceError
from models.comment import EnrichedComment

logger = logging.getLogger(__name__)


class Database:
    """SQLite store for comment runs.

    Example:
        >>> with Database("comments.db") as db:
        ...     run_id = db.store("dQw4w9WgXcQ", report.comments)
        ...     db.get_comments(run_id)
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS runs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        video_id TEXT NOT NULL,
        stored_at INTEGER NOT NULL,
        comment_count INTEGER NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_runs_stored ON runs(stored_at);
    CREATE INDEX IF NOT EXISTS idx_runs_video ON runs(video_id);

    CREATE TABLE IF NOT EXISTS comments (
        run_id INTEGER NOT NULL REFERENCES runs(id) ON DELETE CASCADE,
        position INTEGER NOT NULL,
        comment TEXT NOT NULL,
        positive_percentage REAL NOT NULL,
        is_question INTEGER NOT NULL,
        PRIMARY KEY (run_id, position)
    );
    """

    path: Path
    conn: sqlite3.Connection

    def __init__(self, path: Path | str):
        """Open (and create if needed) the database.

        Args:
            path: Path to SQLite database file
        """
        self.path = Path(path)
        self.conn = sqlite3.connect(str(self.path))
        self.conn.row_factory = sqlite3.Row

        self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.execute("PRAGMA foreign_keys=ON")
        self.conn.executescript(self.SCHEMA)
        self.conn.commit()
        logger.debug("Database initialized | path=%s", self.path)

    def store(
        self,
        video_id: str,
        comments: list[EnrichedComment],
        commit: bool = True,
    ) -> int:
        """Store the cleaned comment list of one run.

        Args:
            video_id: YouTube video id
            comments: Kept comments in report order
            commit: Whether to commit immediately (False for batch operations)

        Returns:
            The new run id

        Raises:
            PersistenceError: If the write failed (the transaction is rolled back)
        """
        try:
            cursor = self.conn.execute(
                "INSERT INTO runs (video_id, stored_at, comment_count) VALUES (?, ?, ?)",
                (video_id, int(time.time()), len(comments)),
            )
            run_id = cursor.lastrowid
            self.conn.executemany(
                """
                INSERT INTO comments (run_id, position, comment, positive_percentage, is_question)
                VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (run_id, i, c.comment, c.positive_percentage, int(c.is_question))
                    for i, c in enumerate(comments)
                ],
            )
            if commit:
                self.conn.commit()
        except sqlite3.Error as e:
            self.conn.rollback()
            raise PersistenceError(f"Failed to store comments for {video_id}: {e}") from e

        logger.info("Comments stored | video_id=%s run=%d count=%d", video_id, run_id, len(comments))
        return run_id

    def commit(self) -> None:
        """Commit pending changes."""
        self.conn.commit()

    def prune(self, days: int) -> int:
        """Delete runs (and their comments) older than specified days.

        Args:
            days: Number of days to keep

        Returns:
            Number of runs deleted
        """
        cutoff = int((datetime.now() - timedelta(days=days)).timestamp())
        cursor = self.conn.execute("DELETE FROM runs WHERE stored_at < ?", (cutoff,))
        self.conn.commit()
        deleted = cursor.rowcount
        if deleted > 0:
            logger.info("Database pruned | deleted=%d days=%d", deleted, days)
        return deleted

    def recent(self, hours: int = 24) -> list[dict[str, Any]]:
        """Get runs stored in the last N hours, newest first.

        Args:
            hours: Number of hours to look back

        Returns:
            List of run records as dictionaries
        """
        cutoff = int((datetime.now() - timedelta(hours=hours)).timestamp())
        cursor = self.conn.execute(
            """
            SELECT id, video_id, stored_at, comment_count
            FROM runs
            WHERE stored_at >= ?
            ORDER BY stored_at DESC, id DESC
            """,
            (cutoff,),
        )
        return [dict(row) for row in cursor.fetchall()]

    def stats(self) -> dict[str, int]:
        """Get database statistics.

        Returns:
            Dictionary with run, video and comment counts
        """
        row = self.conn.execute(
            "SELECT COUNT(*) AS runs, COUNT(DISTINCT video_id) AS videos FROM runs"
        ).fetchone()
        comments_row = self.conn.execute("SELECT COUNT(*) AS comments FROM comments").fetchone()
        return {
            "runs": row["runs"] or 0,
            "videos": row["videos"] or 0,
            "comments": comments_row["comments"] or 0,
        }

    def get_comments(self, run_id: int) -> list[EnrichedComment]:
        """Get the stored comments of a run, in their original order.

        Args:
            run_id: Run id returned by store()

        Returns:
            The comments (empty if the run does not exist)
        """
        cursor = self.conn.execute(
            """
            SELECT comment, positive_percentage, is_question
            FROM comments WHERE run_id = ? ORDER BY position
            """,
            (run_id,),
        )
        return [
            EnrichedComment(
                comment=row["comment"],
                positive_percentage=row["positive_percentage"],
                is_question=bool(row["is_question"]),
            )
            for row in cursor.fetchall()
        ]

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()

    def __enter__(self) -> "Database":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
