"""SQLite store gateway: researchers and their articles."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ValidationError

from scholar.core.errors import StorageError
from scholar.ingest.models import ArticleRecord

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path("data") / "scholar.db"
REQUIRED_TABLES = frozenset({"researchers", "articles"})

# ── Schema DDL ───────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS researchers (
    id              INTEGER PRIMARY KEY,
    external_id     TEXT UNIQUE,
    name            TEXT,
    affiliation     TEXT,
    email           TEXT,
    h_index         INTEGER,
    i10_index       INTEGER,
    total_citations INTEGER,
    interests       TEXT,
    profile_url     TEXT,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS articles (
    id               INTEGER PRIMARY KEY,
    title            TEXT NOT NULL UNIQUE,
    authors          TEXT,
    publication_date TEXT,          -- ISO date, Jan 1 of the year
    abstract         TEXT,
    link             TEXT,
    keywords         TEXT,          -- comma separated
    cited_by         INTEGER NOT NULL DEFAULT 0,
    researcher_id    INTEGER REFERENCES researchers(id),
    citation_id      TEXT,
    year             INTEGER,
    created_at       TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_articles_researcher ON articles(researcher_id);
"""

class BulkInsertResult(BaseModel):
    inserted: int = 0
    failed: int = 0
    errors: list[str] = []


# ── ScholarDatabase ──────────────────────────────────────────────────


class ScholarDatabase:
    """Per-operation SQLite access; every call opens and closes its own connection."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path) if db_path is not None else DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Commit on success, roll back on error, always close."""
        try:
            conn = sqlite3.connect(str(self.db_path))
        except sqlite3.Error as exc:
            raise StorageError(f"Cannot open database {self.db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys=ON")
            yield conn
            conn.commit()
        except (sqlite3.Error, OverflowError) as exc:
            # OverflowError: a Python int beyond SQLite's signed 64-bit INTEGER
            conn.rollback()
            raise StorageError(f"Database error: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ── Schema ───────────────────────────────────────────────

    def create_tables(self) -> None:
        """Idempotent schema bootstrap."""
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(_SCHEMA)
        logger.info("Database tables ready at %s", self.db_path)

    def test_connection(self) -> bool:
        try:
            with self._connect() as conn:
                conn.execute("SELECT 1").fetchone()
        except StorageError as exc:
            logger.error("Database connection failed: %s", exc)
            return False
        return True

    # ── Articles ─────────────────────────────────────────────

    def article_exists(self, title: str) -> bool:
        """Exact, case-sensitive title match."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM articles WHERE title = ?", (title,)
            ).fetchone()
        return row is not None

    def get_article(self, title: str) -> Optional[dict]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM articles WHERE title = ?", (title,)
            ).fetchone()
        return dict(row) if row else None

    def insert_article(
        self, record: ArticleRecord, researcher_id: Optional[int] = None
    ) -> int:
        """Insert one article. Returns the new row id."""
        with self._connect() as conn:
            article_id = _insert_article(conn, record, researcher_id, _now())
        logger.debug("Inserted article %d: %s", article_id, record.title[:60])
        return article_id

    def update_citation_count(self, title: str, cited_by: int) -> bool:
        """Overwrite cited_by for a title. False if no row matched."""
        with self._connect() as conn:
            cur = conn.execute(
                "UPDATE articles SET cited_by = ? WHERE title = ?", (cited_by, title)
            )
        return cur.rowcount > 0

    def bulk_insert_articles(
        self,
        records: list[ArticleRecord | dict[str, Any]],
        researcher_id: Optional[int] = None,
    ) -> BulkInsertResult:
        """Validate and insert each row on its own; one bad row never blocks the rest."""
        result = BulkInsertResult()
        now = _now()
        with self._connect() as conn:
            for i, raw in enumerate(records):
                try:
                    record = (
                        raw if isinstance(raw, ArticleRecord) else ArticleRecord.model_validate(raw)
                    )
                    if not record.title.strip():
                        raise ValueError("Article title is required")
                    _insert_article(conn, record, researcher_id, now)
                    result.inserted += 1
                except (ValidationError, ValueError, OverflowError, sqlite3.IntegrityError) as exc:
                    result.failed += 1
                    result.errors.append(f"Row {i}: {exc}")

        logger.info(
            "Bulk insert: %d inserted, %d failed", result.inserted, result.failed
        )
        return result

    # ── Researchers ──────────────────────────────────────────

    def researcher_exists(self, external_id: str) -> bool:
        return self.get_researcher_id(external_id) is not None

    def get_researcher_id(self, external_id: str) -> Optional[int]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT id FROM researchers WHERE external_id = ?", (external_id,)
            ).fetchone()
        return row["id"] if row else None

    def insert_researcher(
        self,
        external_id: Optional[str] = None,
        name: Optional[str] = None,
        affiliation: Optional[str] = None,
        email: Optional[str] = None,
        h_index: Optional[int] = None,
        i10_index: Optional[int] = None,
        total_citations: Optional[int] = None,
        interests: Optional[str] = None,
        profile_url: Optional[str] = None,
    ) -> int:
        """Insert a researcher. Returns the new row id."""
        with self._connect() as conn:
            cur = conn.execute(
                """INSERT INTO researchers
                   (external_id, name, affiliation, email, h_index, i10_index,
                    total_citations, interests, profile_url, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    external_id,
                    name,
                    affiliation,
                    email,
                    h_index,
                    i10_index,
                    total_citations,
                    interests,
                    profile_url,
                    _now(),
                ),
            )
        logger.info("Inserted researcher %d (%s)", cur.lastrowid, name or external_id)
        return cur.lastrowid

    # ── Stats ────────────────────────────────────────────────

    def get_stats(self) -> dict:
        """Totals plus the five most recent researchers and articles."""
        with self._connect() as conn:
            stats = {
                "total_researchers": conn.execute(
                    "SELECT COUNT(*) FROM researchers"
                ).fetchone()[0],
                "total_articles": conn.execute(
                    "SELECT COUNT(*) FROM articles"
                ).fetchone()[0],
                "total_citations": conn.execute(
                    "SELECT COALESCE(SUM(cited_by), 0) FROM articles"
                ).fetchone()[0],
            }
            stats["recent_researchers"] = [
                dict(r)
                for r in conn.execute(
                    """SELECT id, external_id, name, affiliation, created_at
                       FROM researchers ORDER BY id DESC LIMIT 5"""
                ).fetchall()
            ]
            stats["recent_articles"] = [
                dict(r)
                for r in conn.execute(
                    """SELECT id, title, authors, year, cited_by, created_at
                       FROM articles ORDER BY id DESC LIMIT 5"""
                ).fetchall()
            ]
        return stats

    def get_integrity_report(self) -> dict:
        """Counts of incomplete article rows."""
        with self._connect() as conn:
            blank_titles = conn.execute(
                "SELECT COUNT(*) FROM articles WHERE TRIM(title) = ''"
            ).fetchone()[0]
            no_authors = conn.execute(
                "SELECT COUNT(*) FROM articles WHERE authors IS NULL OR TRIM(authors) = ''"
            ).fetchone()[0]
            total = conn.execute("SELECT COUNT(*) FROM articles").fetchone()[0]
        return {
            "total_articles": total,
            "articles_with_blank_titles": blank_titles,
            "articles_without_authors": no_authors,
            "healthy": blank_titles == 0,
        }

    def table_names(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            ).fetchall()
        return [r["name"] for r in rows]


# ── Helpers ──────────────────────────────────────────────────────────


def _insert_article(
    conn: sqlite3.Connection,
    record: ArticleRecord,
    researcher_id: Optional[int],
    now: str,
) -> int:
    cur = conn.execute(
        """INSERT INTO articles
           (title, authors, publication_date, abstract, link, keywords,
            cited_by, researcher_id, citation_id, year, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (
            record.title,
            record.authors,
            record.publication_date.isoformat() if record.publication_date else None,
            record.abstract,
            record.link,
            record.keywords,
            record.cited_by or 0,
            researcher_id,
            record.citation_id,
            record.year,
            now,
        ),
    )
    return cur.lastrowid


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()
