"""Tests for the SQLite store gateway."""

import sqlite3
from datetime import date

import pytest

from scholar.core.database import ScholarDatabase
from scholar.core.errors import StorageError
from scholar.ingest.models import ArticleRecord


@pytest.fixture()
def db(tmp_path):
    """Fresh database with tables in a temp directory."""
    sdb = ScholarDatabase(tmp_path / "nested" / "scholar.db")
    sdb.create_tables()
    return sdb


def _rec(**kw):
    defaults = dict(
        title="Study A",
        authors="A Author",
        publication_date=date(2018, 1, 1),
        year=2018,
        cited_by=10,
        keywords="study",
        link="https://example.org/a",
    )
    defaults.update(kw)
    return ArticleRecord(**defaults)


# ── Table Creation ───────────────────────────────────────────────────


def test_exactly_two_tables(db):
    assert db.table_names() == ["articles", "researchers"]


def test_create_tables_is_idempotent(db):
    db.create_tables()
    db.create_tables()
    assert db.table_names() == ["articles", "researchers"]


def test_parent_directory_created(tmp_path):
    ScholarDatabase(tmp_path / "a" / "b" / "x.db")
    assert (tmp_path / "a" / "b").is_dir()


def test_wal_mode(db):
    conn = sqlite3.connect(str(db.db_path))
    try:
        assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    finally:
        conn.close()


def test_connection_check(db):
    assert db.test_connection() is True


def test_missing_tables_raise_storage_error(tmp_path):
    bare = ScholarDatabase(tmp_path / "bare.db")
    with pytest.raises(StorageError):
        bare.article_exists("anything")


# ── Articles ─────────────────────────────────────────────────────────


def test_insert_and_fetch_article(db):
    article_id = db.insert_article(_rec())
    assert article_id > 0
    row = db.get_article("Study A")
    assert row["authors"] == "A Author"
    assert row["publication_date"] == "2018-01-01"
    assert row["cited_by"] == 10
    assert row["researcher_id"] is None
    assert row["created_at"]


def test_missing_cited_by_stored_as_zero(db):
    db.insert_article(_rec(cited_by=None))
    assert db.get_article("Study A")["cited_by"] == 0


def test_title_match_is_case_sensitive(db):
    db.insert_article(_rec())
    assert db.article_exists("Study A")
    assert not db.article_exists("study a")


def test_duplicate_title_raises_storage_error(db):
    db.insert_article(_rec())
    with pytest.raises(StorageError):
        db.insert_article(_rec(authors="Someone Else"))


def test_update_citation_count(db):
    db.insert_article(_rec(cited_by=50))
    assert db.update_citation_count("Study A", 7) is True
    assert db.get_article("Study A")["cited_by"] == 7
    assert db.update_citation_count("Missing", 1) is False


def test_integer_overflow_raises_storage_error(db):
    with pytest.raises(StorageError, match="too large"):
        db.insert_article(_rec(cited_by=10**20))
    assert not db.article_exists("Study A")
    db.insert_article(_rec())
    with pytest.raises(StorageError):
        db.update_citation_count("Study A", 10**20)
    assert db.get_article("Study A")["cited_by"] == 10


def test_failed_write_rolls_back(db):
    with pytest.raises(StorageError):
        with db._connect() as conn:
            conn.execute(
                "INSERT INTO articles (title, created_at) VALUES ('Temp', 'now')"
            )
            conn.execute("INSERT INTO no_such_table VALUES (1)")
    assert not db.article_exists("Temp")


# ── Bulk Insert ──────────────────────────────────────────────────────


def test_bulk_insert_rows_independent(db):
    rows = [
        _rec(title="One"),
        {"title": "Two", "authors": "B"},
        {"title": "   "},
        {"authors": "no title"},
        _rec(title="One"),
        {"title": "Huge", "cited_by": 10**20},
    ]
    result = db.bulk_insert_articles(rows)
    assert result.inserted == 2
    assert result.failed == 4
    assert len(result.errors) == 4
    assert not db.article_exists("Huge")
    assert db.article_exists("One")
    assert db.article_exists("Two")


# ── Researchers ──────────────────────────────────────────────────────


def test_insert_and_lookup_researcher(db):
    rid = db.insert_researcher(external_id="abc123", name="Ada Lovelace", h_index=12)
    assert db.researcher_exists("abc123")
    assert db.get_researcher_id("abc123") == rid
    assert db.get_researcher_id("unknown") is None


def test_researchers_without_external_id(db):
    first = db.insert_researcher(name="Anon")
    second = db.insert_researcher(name="Anon")
    assert first != second


def test_oversized_researcher_metric_raises_storage_error(db):
    with pytest.raises(StorageError):
        db.insert_researcher(external_id="big", h_index=10**20)
    assert not db.researcher_exists("big")


def test_duplicate_external_id_raises(db):
    db.insert_researcher(external_id="dup")
    with pytest.raises(StorageError):
        db.insert_researcher(external_id="dup")


def test_article_links_to_researcher(db):
    rid = db.insert_researcher(external_id="r1", name="R")
    db.insert_article(_rec(), researcher_id=rid)
    assert db.get_article("Study A")["researcher_id"] == rid


def test_unknown_researcher_fk_rejected(db):
    with pytest.raises(StorageError):
        db.insert_article(_rec(), researcher_id=999)


# ── Stats & Integrity ────────────────────────────────────────────────


def test_stats(db):
    rid = db.insert_researcher(external_id="r1", name="R")
    for i in range(7):
        db.insert_article(_rec(title=f"Paper {i}", cited_by=i), researcher_id=rid)
    stats = db.get_stats()
    assert stats["total_researchers"] == 1
    assert stats["total_articles"] == 7
    assert stats["total_citations"] == sum(range(7))
    assert len(stats["recent_articles"]) == 5
    assert stats["recent_articles"][0]["title"] == "Paper 6"


def test_integrity_report(db):
    db.insert_article(_rec(title="Has authors"))
    db.insert_article(_rec(title="No authors", authors=None))
    report = db.get_integrity_report()
    assert report["total_articles"] == 2
    assert report["articles_without_authors"] == 1
    assert report["articles_with_blank_titles"] == 0
    assert report["healthy"] is True
