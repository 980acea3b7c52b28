"""Database migrations for the SQLite result cache."""

import sqlite3
from pathlib import Path


def init_db(db_path: Path) -> None:
    """Initialize the database with all required tables."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS analysis_results (
            cache_key TEXT PRIMARY KEY,
            source_hash TEXT NOT NULL,
            detail_level TEXT NOT NULL,
            valid INTEGER NOT NULL,
            data TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
    """)

    cursor.execute("CREATE INDEX IF NOT EXISTS idx_results_source ON analysis_results(source_hash)")

    conn.commit()
    conn.close()


def reset_db(db_path: Path) -> None:
    """Reset database by dropping and recreating all tables."""
    if db_path.exists():
        db_path.unlink()
    init_db(db_path)
