"""Ingest pipeline: provider payloads → reconciled articles → summaries."""

import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from scholar.core.database import ScholarDatabase
from scholar.core.errors import ParseError, ProviderError, RecordValidationError, StorageError
from scholar.ingest.fields import extract_article
from scholar.ingest.models import ArticleOutcome, Decision, ResearcherProfile
from scholar.ingest.reconcile import check_batch_limits, reconcile_article, reconcile_researcher
from scholar.ingest.summary import BatchSummary, IngestSummary, ResearcherOutcome
from scholar.search.client import ScholarClient
from scholar.search.models import ProviderResponse, RawResult, SearchRequest
from scholar.search.parser import parse_response

logger = logging.getLogger(__name__)


# ── Single Results ───────────────────────────────────────────────────


def ingest_one(
    result: RawResult | dict[str, Any],
    db: ScholarDatabase,
    researcher_id: Optional[int] = None,
) -> ArticleOutcome:
    """Extract and reconcile one result. Never raises for a bad record."""
    try:
        record = extract_article(result)
    except RecordValidationError as exc:
        title = result.title if isinstance(result, RawResult) else None
        if isinstance(result, dict) and isinstance(result.get("title"), str):
            title = result["title"]
        logger.warning("Rejected result: %s", exc)
        return ArticleOutcome(
            status="rejected", decision=Decision.REJECT, title=title, message=str(exc)
        )
    return reconcile_article(record, db, researcher_id=researcher_id)


def ingest_results(
    results: Iterable[RawResult | dict[str, Any]],
    db: ScholarDatabase,
    researcher_id: Optional[int] = None,
) -> IngestSummary:
    """Process results in order; each one is independent of the others."""
    outcomes = [ingest_one(r, db, researcher_id=researcher_id) for r in results]
    summary = IngestSummary.from_outcomes(outcomes)
    logger.info(summary.message)
    return summary


# ── Provider Payloads ────────────────────────────────────────────────


def process_response(response: ProviderResponse, db: ScholarDatabase) -> IngestSummary:
    """Persist the results of an already-parsed provider response."""
    if response.error:
        raise ProviderError(f"Provider error: {response.error}")
    if response.organic_results is None and response.articles is None:
        raise ParseError("No valid articles found in the response")

    db.create_tables()
    return ingest_results(response.results, db)


def process_payload(text: str | bytes, db: ScholarDatabase) -> IngestSummary:
    """Parse a raw provider JSON payload and persist its results."""
    return process_response(parse_response(text), db)


def search_and_save(
    client: ScholarClient, request: SearchRequest, db: ScholarDatabase
) -> Optional[IngestSummary]:
    """Run one search and persist what comes back. None when no content arrived."""
    response = client.search(request)
    if response is None:
        return None
    return process_response(response, db)


# ── Researcher Batches ───────────────────────────────────────────────


def parse_researchers(payloads: Iterable[Any]) -> list[ResearcherProfile]:
    profiles = []
    for i, payload in enumerate(payloads):
        try:
            profiles.append(ResearcherProfile.model_validate(payload))
        except ValidationError as exc:
            raise ParseError(f"Invalid researcher at index {i}: {exc.errors()[0]['msg']}") from exc
    return profiles


def process_researchers(payloads: Iterable[Any], db: ScholarDatabase) -> BatchSummary:
    """Validate the whole batch, enforce limits, then store researchers and articles.

    Nothing is written when any payload is invalid or a limit is exceeded.
    A storage failure on one researcher marks it failed and skips its articles.
    """
    profiles = parse_researchers(payloads)
    check_batch_limits(profiles)
    db.create_tables()

    outcomes: list[ResearcherOutcome] = []
    for profile in profiles:
        try:
            outcome = reconcile_researcher(profile, db)
        except StorageError as exc:
            logger.error("Failed to store researcher %s: %s", profile.name, exc)
            outcomes.append(
                ResearcherOutcome(
                    external_id=profile.external_id,
                    name=profile.name,
                    status="failed",
                    message=str(exc),
                )
            )
            continue

        articles = ingest_results(profile.articles, db, researcher_id=outcome.researcher_id)
        outcomes.append(outcome.model_copy(update={"articles": articles}))

    batch = BatchSummary(researchers=tuple(outcomes))
    logger.info(
        "Processed %d researchers (%d failed), %d articles",
        len(outcomes),
        batch.failed_researchers,
        batch.articles.total,
    )
    return batch
