"""Tests for reconciliation decisions and their effect on the store."""

from unittest.mock import MagicMock

import pytest

from scholar.core.database import ScholarDatabase
from scholar.core.errors import BatchLimitError, StorageError
from scholar.ingest.models import ArticleRecord, Decision, ResearcherProfile
from scholar.ingest.reconcile import (
    MAX_ARTICLES_PER_RESEARCHER,
    MAX_RESEARCHERS,
    check_batch_limits,
    decide_article,
    reconcile_article,
    reconcile_researcher,
)


@pytest.fixture()
def db(tmp_path):
    sdb = ScholarDatabase(tmp_path / "scholar.db")
    sdb.create_tables()
    return sdb


def _rec(**kw):
    defaults = dict(title="Graph neural networks", cited_by=100)
    defaults.update(kw)
    return ArticleRecord(**defaults)


def _profile(**kw):
    defaults = dict(external_id="abc", name="Ada", articles=[])
    defaults.update(kw)
    return ResearcherProfile(**defaults)


# ── Pure Decisions ───────────────────────────────────────────────────


def test_decide_insert():
    assert decide_article(_rec(), exists=False) is Decision.INSERT


def test_decide_update_when_count_present():
    assert decide_article(_rec(), exists=True) is Decision.UPDATE_CITATIONS


def test_decide_update_with_zero_count():
    assert decide_article(_rec(cited_by=0), exists=True) is Decision.UPDATE_CITATIONS


def test_decide_skip_without_count():
    assert decide_article(_rec(cited_by=None), exists=True) is Decision.SKIP_DUPLICATE


@pytest.mark.parametrize("title", ["", "   "])
def test_decide_reject_blank_title(title):
    assert decide_article(_rec(title=title), exists=False) is Decision.REJECT


# ── Applying Decisions ───────────────────────────────────────────────


def test_first_sighting_inserts(db):
    outcome = reconcile_article(_rec(), db)
    assert outcome.status == "inserted"
    assert outcome.decision is Decision.INSERT
    assert outcome.article_id is not None
    assert db.get_article("Graph neural networks")["cited_by"] == 100


def test_second_sighting_updates_even_downward(db):
    reconcile_article(_rec(cited_by=100), db)
    outcome = reconcile_article(_rec(cited_by=40), db)
    assert outcome.status == "updated"
    assert db.get_article("Graph neural networks")["cited_by"] == 40


def test_second_sighting_without_count_skips(db):
    reconcile_article(_rec(cited_by=100), db)
    outcome = reconcile_article(_rec(cited_by=None, authors="Changed"), db)
    assert outcome.status == "skipped"
    row = db.get_article("Graph neural networks")
    assert row["cited_by"] == 100
    assert row["authors"] is None


def test_blank_title_never_touches_store():
    store = MagicMock(spec=ScholarDatabase)
    outcome = reconcile_article(_rec(title="  "), store)
    assert outcome.status == "rejected"
    assert store.method_calls == []


def test_storage_failure_becomes_failed_outcome():
    store = MagicMock(spec=ScholarDatabase)
    store.article_exists.return_value = False
    store.insert_article.side_effect = StorageError("disk I/O error")
    outcome = reconcile_article(_rec(), store)
    assert outcome.status == "failed"
    assert "disk I/O error" in outcome.message


def test_lost_insert_race_becomes_failed_outcome(db, monkeypatch):
    db.insert_article(_rec(cited_by=5))
    # Another writer got there between the existence check and the insert.
    monkeypatch.setattr(db, "article_exists", lambda title: False)
    outcome = reconcile_article(_rec(cited_by=7), db)
    assert outcome.status == "failed"
    assert "UNIQUE" in outcome.message
    assert db.get_article("Graph neural networks")["cited_by"] == 5


def test_count_beyond_sqlite_integer_becomes_failed_outcome(db):
    outcome = reconcile_article(_rec(title="Overflowing", cited_by=10**20), db)
    assert outcome.status == "failed"
    assert not db.article_exists("Overflowing")


def test_oversized_update_becomes_failed_outcome(db):
    db.insert_article(_rec())
    outcome = reconcile_article(_rec(cited_by=10**20), db)
    assert outcome.status == "failed"
    assert db.get_article("Graph neural networks")["cited_by"] == 100


def test_outcome_is_immutable(db):
    outcome = reconcile_article(_rec(), db)
    with pytest.raises(Exception):
        outcome.status = "skipped"


def test_researcher_id_attached(db):
    rid = db.insert_researcher(external_id="r", name="R")
    reconcile_article(_rec(), db, researcher_id=rid)
    assert db.get_article("Graph neural networks")["researcher_id"] == rid


# ── Researchers ──────────────────────────────────────────────────────


def test_new_researcher_created(db):
    outcome = reconcile_researcher(_profile(), db)
    assert outcome.status == "created"
    assert db.get_researcher_id("abc") == outcome.researcher_id


def test_known_researcher_reused(db):
    first = reconcile_researcher(_profile(), db)
    second = reconcile_researcher(_profile(name="Renamed"), db)
    assert second.status == "existing"
    assert second.researcher_id == first.researcher_id


def test_researcher_without_external_id_always_new(db):
    a = reconcile_researcher(_profile(external_id=None, name="Anon"), db)
    b = reconcile_researcher(_profile(external_id=None, name="Anon"), db)
    assert a.status == b.status == "created"
    assert a.researcher_id != b.researcher_id


# ── Batch Limits ─────────────────────────────────────────────────────


def test_limits_accept_max_batch():
    profiles = [
        _profile(external_id=str(i), articles=[{"title": f"T{j}"} for j in range(MAX_ARTICLES_PER_RESEARCHER)])
        for i in range(MAX_RESEARCHERS)
    ]
    check_batch_limits(profiles)


def test_too_many_researchers():
    with pytest.raises(BatchLimitError, match="Too many researchers"):
        check_batch_limits([_profile(external_id=str(i)) for i in range(MAX_RESEARCHERS + 1)])


def test_too_many_articles():
    articles = [{"title": f"T{j}"} for j in range(MAX_ARTICLES_PER_RESEARCHER + 1)]
    with pytest.raises(BatchLimitError, match="Too many articles"):
        check_batch_limits([_profile(articles=articles)])


def test_empty_batch_rejected():
    with pytest.raises(BatchLimitError):
        check_batch_limits([])
