"""Reconciliation: decide what each record means for the store, then apply it."""

import logging
from typing import Optional, Sequence

from scholar.core.database import ScholarDatabase
from scholar.core.errors import BatchLimitError, StorageError
from scholar.ingest.models import ArticleOutcome, ArticleRecord, Decision, ResearcherProfile
from scholar.ingest.summary import ResearcherOutcome

logger = logging.getLogger(__name__)

MAX_RESEARCHERS = 2
MAX_ARTICLES_PER_RESEARCHER = 3


# ── Articles ─────────────────────────────────────────────────────────


def decide_article(record: ArticleRecord, exists: bool) -> Decision:
    """Pure decision for one article given whether its title is already stored."""
    if not record.title or not record.title.strip():
        return Decision.REJECT
    if not exists:
        return Decision.INSERT
    if record.cited_by is not None:
        return Decision.UPDATE_CITATIONS
    return Decision.SKIP_DUPLICATE


def reconcile_article(
    record: ArticleRecord,
    db: ScholarDatabase,
    researcher_id: Optional[int] = None,
) -> ArticleOutcome:
    """Apply the decision for one record. Storage failures become a failed outcome."""
    if not record.title or not record.title.strip():
        return ArticleOutcome.applied(
            Decision.REJECT, record, message="Article title is required"
        )

    try:
        decision = decide_article(record, db.article_exists(record.title))

        if decision is Decision.INSERT:
            article_id = db.insert_article(record, researcher_id=researcher_id)
            logger.info("Inserted article: %s", record.title[:60])
            return ArticleOutcome.applied(decision, record, article_id=article_id)

        if decision is Decision.UPDATE_CITATIONS:
            db.update_citation_count(record.title, record.cited_by)
            logger.info(
                "Updated citation count for '%s' to %d", record.title[:60], record.cited_by
            )
            return ArticleOutcome.applied(decision, record)

        logger.debug("Skipped duplicate without citation data: %s", record.title[:60])
        return ArticleOutcome.applied(decision, record, message="Duplicate article")
    except StorageError as exc:
        logger.error("Failed to store article '%s': %s", record.title[:60], exc)
        return ArticleOutcome(
            status="failed", title=record.title, message=str(exc), warnings=record.warnings
        )


# ── Researchers ──────────────────────────────────────────────────────


def reconcile_researcher(profile: ResearcherProfile, db: ScholarDatabase) -> ResearcherOutcome:
    """Reuse a known researcher by external id, otherwise insert a new one.

    Existing researchers are never refreshed. Raises StorageError.
    """
    if profile.external_id is not None:
        existing = db.get_researcher_id(profile.external_id)
        if existing is not None:
            logger.info("Researcher %s already exists (id %d)", profile.external_id, existing)
            return ResearcherOutcome(
                external_id=profile.external_id,
                name=profile.name,
                researcher_id=existing,
                status="existing",
            )

    researcher_id = db.insert_researcher(
        external_id=profile.external_id,
        name=profile.name,
        affiliation=profile.affiliation,
        email=profile.email,
        h_index=profile.h_index,
        i10_index=profile.i10_index,
        total_citations=profile.total_citations,
        interests=profile.interests,
        profile_url=profile.profile_url,
    )
    return ResearcherOutcome(
        external_id=profile.external_id,
        name=profile.name,
        researcher_id=researcher_id,
        status="created",
    )


def check_batch_limits(profiles: Sequence[ResearcherProfile]) -> None:
    """Raise BatchLimitError unless the whole batch is within limits."""
    if not profiles:
        raise BatchLimitError("At least one researcher is required")
    if len(profiles) > MAX_RESEARCHERS:
        raise BatchLimitError(
            f"Too many researchers: {len(profiles)} (maximum {MAX_RESEARCHERS})"
        )
    for profile in profiles:
        if len(profile.articles) > MAX_ARTICLES_PER_RESEARCHER:
            raise BatchLimitError(
                f"Too many articles for researcher {profile.name or profile.external_id}: "
                f"{len(profile.articles)} (maximum {MAX_ARTICLES_PER_RESEARCHER})"
            )
