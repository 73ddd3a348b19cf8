"""REST routes under /api/v1/scholar."""

import logging
from typing import Any, Iterator, Optional

from fastapi import APIRouter, Body, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from scholar.core.database import REQUIRED_TABLES, ScholarDatabase
from scholar.core.errors import InvalidSearchError
from scholar.core.settings import ScholarSettings, get_settings
from scholar.ingest.pipeline import process_payload, process_researchers, search_and_save
from scholar.ingest.summary import IngestSummary
from scholar.search.client import NO_CONTENT_MESSAGE, ScholarClient
from scholar.search.models import ProviderResponse, SearchRequest
from scholar.search.query import author_query, page_to_offset

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/scholar", tags=["scholar"])


# ── Dependencies ─────────────────────────────────────────────────────


def get_database(settings: ScholarSettings = Depends(get_settings)) -> ScholarDatabase:
    return ScholarDatabase(settings.database_path)


def get_client(settings: ScholarSettings = Depends(get_settings)) -> Iterator[ScholarClient]:
    client = ScholarClient.from_settings(settings)
    try:
        yield client
    finally:
        client.close()


class BulkArticles(BaseModel):
    articles: list[dict[str, Any]]
    researcher_id: Optional[int] = None


# ── Response Shapes ──────────────────────────────────────────────────


def no_content() -> JSONResponse:
    return JSONResponse(
        status_code=200,
        content={"success": False, "status": "no_content", "message": NO_CONTENT_MESSAGE},
    )


def search_payload(request: SearchRequest, response: Optional[ProviderResponse]) -> Any:
    if response is None:
        return no_content()
    return {
        "success": True,
        "mode": request.mode,
        "results_count": len(response.results),
        "current_page": response.current_page,
        "next_page": response.next_page,
        "data": response.model_dump(mode="json", exclude_none=True),
    }


def summary_payload(summary: IngestSummary) -> dict:
    return {
        "success": summary.status != "failed",
        "message": summary.message,
        **summary.model_dump(mode="json"),
    }


def _request(settings: ScholarSettings, page_start: int, page_size: int, **kw) -> SearchRequest:
    if page_size < 1 or page_size > settings.max_page_size:
        raise InvalidSearchError(f"Page size must be between 1 and {settings.max_page_size}")
    return SearchRequest(start=page_start, num=page_size, hl=settings.default_locale, **kw)


# ── Search ───────────────────────────────────────────────────────────


@router.post("/search")
def search(request: SearchRequest, client: ScholarClient = Depends(get_client)):
    """Search with the full set of provider parameters."""
    return search_payload(request, client.search(request))


@router.get("/search")
def search_simple(
    query: str = Query(..., description="Free-text query"),
    page_start: int = Query(0, ge=0),
    page_size: int = Query(10),
    page: Optional[int] = Query(None, description="1-based page; overrides page_start"),
    settings: ScholarSettings = Depends(get_settings),
    client: ScholarClient = Depends(get_client),
):
    if page is not None:
        page_start, page_size = page_to_offset(page, page_size, settings.max_page_size)
    request = _request(settings, page_start, page_size, q=query)
    return search_payload(request, client.search(request))


@router.get("/authors/search")
def search_author(
    author_name: str = Query(""),
    page_start: int = Query(0, ge=0),
    page_size: int = Query(10),
    settings: ScholarSettings = Depends(get_settings),
    client: ScholarClient = Depends(get_client),
):
    request = _request(settings, page_start, page_size, q=author_query(author_name))
    return search_payload(request, client.search(request))


@router.get("/cited-by/{cites_id}")
def cited_by(
    cites_id: str,
    page_start: int = Query(0, ge=0),
    page_size: int = Query(10),
    settings: ScholarSettings = Depends(get_settings),
    client: ScholarClient = Depends(get_client),
):
    """Papers citing the article identified by ``cites_id``."""
    request = _request(settings, page_start, page_size, cites=cites_id)
    return search_payload(request, client.search(request))


@router.get("/versions/{cluster_id}")
def versions(
    cluster_id: str,
    settings: ScholarSettings = Depends(get_settings),
    client: ScholarClient = Depends(get_client),
):
    """All versions of one article."""
    request = _request(settings, 0, min(10, settings.max_page_size), cluster=cluster_id)
    return search_payload(request, client.search(request))


# ── Persistence ──────────────────────────────────────────────────────


@router.post("/search-and-save")
def search_and_save_route(
    request: SearchRequest,
    client: ScholarClient = Depends(get_client),
    db: ScholarDatabase = Depends(get_database),
):
    summary = search_and_save(client, request, db)
    if summary is None:
        return no_content()
    return summary_payload(summary)


@router.post("/save-articles")
async def save_articles(request: Request, db: ScholarDatabase = Depends(get_database)):
    """Persist a raw provider JSON payload (organic results or author articles)."""
    body = await request.body()
    logger.info("Saving provider payload (%d bytes)", len(body))
    summary = await run_in_threadpool(process_payload, body, db)
    return summary_payload(summary)


@router.post("/process-multiple-researchers")
def process_multiple_researchers(
    payload: Any = Body(...),
    db: ScholarDatabase = Depends(get_database),
):
    """Store up to two researchers with up to three articles each."""
    if isinstance(payload, dict) and "researchers" in payload:
        payload = payload["researchers"]
    if not isinstance(payload, list):
        payload = [payload]

    batch = process_researchers(payload, db)
    return {
        "success": batch.failed_researchers == 0,
        "message": (
            f"Processed {len(batch.researchers)} researchers: "
            f"{batch.successful_researchers} successful, {batch.failed_researchers} failed"
        ),
        **batch.model_dump(mode="json"),
    }


@router.get("/articles")
def get_article(title: str = Query(...), db: ScholarDatabase = Depends(get_database)):
    """One stored article by exact, case-sensitive title."""
    db.create_tables()
    article = db.get_article(title)
    if article is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": f"No article titled '{title}'"},
        )
    return {"success": True, "data": article}


@router.post("/articles/bulk")
def bulk_insert(body: BulkArticles, db: ScholarDatabase = Depends(get_database)):
    """Insert article rows as given; each row succeeds or fails on its own."""
    db.create_tables()
    result = db.bulk_insert_articles(body.articles, researcher_id=body.researcher_id)
    return {
        "success": result.failed == 0,
        "message": f"{result.inserted} articles inserted, {result.failed} failed",
        **result.model_dump(),
    }


# ── Database ─────────────────────────────────────────────────────────


@router.post("/database/initialize")
def initialize_database(db: ScholarDatabase = Depends(get_database)):
    db.create_tables()
    return {"success": True, "message": "Database tables initialized"}


@router.get("/database/stats")
def database_stats(db: ScholarDatabase = Depends(get_database)):
    return {"success": True, "data": db.get_stats()}


@router.get("/database/integrity")
def database_integrity(db: ScholarDatabase = Depends(get_database)):
    return {"success": True, "data": db.get_integrity_report()}


# ── Health ───────────────────────────────────────────────────────────


@router.get("/health")
def health(
    settings: ScholarSettings = Depends(get_settings),
    db: ScholarDatabase = Depends(get_database),
):
    connected = db.test_connection()
    return {
        "status": "ok",
        "service": "scholar-search",
        "apiKeyConfigured": settings.has_api_key,
        "databaseConnected": connected,
        "schemaReady": connected and REQUIRED_TABLES <= set(db.table_names()),
    }
