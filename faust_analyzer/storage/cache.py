"""Read-through cache of analysis results keyed by source hash."""

import hashlib
import logging
import sqlite3
import threading
from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from ..core.types import AnalysisResult, DetailLevel
from .migrations import init_db


logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 256


def source_hash(source: str) -> str:
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def cache_key(source: str, detail_level: DetailLevel) -> str:
    """SHA-256 of the source text, qualified by the detail level."""
    return f"{source_hash(source)}:{detail_level.value}"


class AnalysisCache:
    """In-memory LRU of results, optionally backed by SQLite.

    Entries are keyed by the exact source text, so any edit misses. Results
    are copied on the way in and out; callers can mutate what they get.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, db_path: Path | None = None):
        self.capacity = capacity
        self.db_path = db_path
        self._entries: OrderedDict[str, AnalysisResult] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        if db_path is not None:
            init_db(db_path)

    def _conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, source: str, detail_level: DetailLevel) -> AnalysisResult | None:
        key = cache_key(source, detail_level)
        with self._lock:
            result = self._entries.get(key)
            if result is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return result.model_copy(deep=True)

        result = self._load(key)
        with self._lock:
            if result is None:
                self.misses += 1
                return None
            self.hits += 1
            self._remember(key, result)
        return result.model_copy(deep=True)

    def put(self, source: str, detail_level: DetailLevel, result: AnalysisResult) -> None:
        key = cache_key(source, detail_level)
        stored = result.model_copy(deep=True)
        with self._lock:
            self._remember(key, stored)
        self._save(key, detail_level, stored)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        if self.db_path is not None:
            with self._conn() as conn:
                conn.execute("DELETE FROM analysis_results")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _remember(self, key: str, result: AnalysisResult) -> None:
        self._entries[key] = result
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("evicted %s", evicted)

    def _load(self, key: str) -> AnalysisResult | None:
        if self.db_path is None:
            return None
        with self._conn() as conn:
            row = conn.execute(
                "SELECT data FROM analysis_results WHERE cache_key = ?", (key,)
            ).fetchone()
            if row:
                return AnalysisResult.model_validate_json(row["data"])
            return None

    def _save(self, key: str, detail_level: DetailLevel, result: AnalysisResult) -> None:
        if self.db_path is None:
            return
        with self._conn() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO analysis_results
                   (cache_key, source_hash, detail_level, valid, data, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (
                    key,
                    result.source_hash or key.split(":")[0],
                    detail_level.value,
                    int(result.valid),
                    result.model_dump_json(),
                    datetime.now().isoformat(),
                ),
            )
