#!/usr/bin/env python3
"""Command-line runner for scholar search and persistence."""

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from scholar.core.database import ScholarDatabase
from scholar.core.errors import ParseError, RecordValidationError, ScholarError
from scholar.core.settings import ScholarSettings, load_settings
from scholar.ingest.fields import extract_article
from scholar.ingest.pipeline import process_payload, process_response
from scholar.search.client import NO_CONTENT_MESSAGE, ScholarClient
from scholar.search.models import RawResult, SearchRequest
from scholar.search.query import author_query, page_to_offset

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("scholar")


# ── Commands ─────────────────────────────────────────────────────────


def cmd_search(args: argparse.Namespace, settings: ScholarSettings) -> int:
    start, num = page_to_offset(args.page, args.page_size, settings.max_page_size)
    request = SearchRequest(
        q=args.query,
        cites=args.cites,
        cluster=args.cluster,
        as_ylo=args.year_from,
        as_yhi=args.year_to,
        start=start,
        num=num,
        hl=settings.default_locale,
    )
    return _run_search(request, settings, save=args.save)


def cmd_author(args: argparse.Namespace, settings: ScholarSettings) -> int:
    start, num = page_to_offset(args.page, args.page_size, settings.max_page_size)
    request = SearchRequest(
        q=author_query(args.name), start=start, num=num, hl=settings.default_locale
    )
    return _run_search(request, settings, save=args.save)


def cmd_save(args: argparse.Namespace, settings: ScholarSettings) -> int:
    db = ScholarDatabase(settings.database_path)
    summary = process_payload(Path(args.file).read_bytes(), db)
    logger.info(summary.message)
    for err in summary.errors:
        logger.warning("  %s", err)
    return 0 if summary.status != "failed" else 1


def cmd_article(args: argparse.Namespace, settings: ScholarSettings) -> int:
    article = ScholarDatabase(settings.database_path).get_article(args.title)
    if article is None:
        logger.warning("No article titled %r", args.title)
        return 1
    print(json.dumps(article, indent=2, default=str))
    return 0


def cmd_import(args: argparse.Namespace, settings: ScholarSettings) -> int:
    """Bulk-load article rows from a JSON list of objects."""
    try:
        rows = json.loads(Path(args.file).read_text())
    except json.JSONDecodeError as exc:
        raise ParseError(f"Error processing JSON file: {exc}") from exc
    if not isinstance(rows, list):
        raise ParseError("Expected a JSON list of article objects")

    db = ScholarDatabase(settings.database_path)
    db.create_tables()
    result = db.bulk_insert_articles(rows, researcher_id=args.researcher_id)
    for err in result.errors:
        logger.warning("  %s", err)
    return 0 if result.inserted or not rows else 1


def cmd_init_db(args: argparse.Namespace, settings: ScholarSettings) -> int:
    db = ScholarDatabase(settings.database_path)
    db.create_tables()
    logger.info("Initialized %s", db.db_path)
    return 0


def cmd_stats(args: argparse.Namespace, settings: ScholarSettings) -> int:
    db = ScholarDatabase(settings.database_path)
    report = {"stats": db.get_stats(), "integrity": db.get_integrity_report()}
    print(json.dumps(report, indent=2, default=str))
    return 0


def cmd_serve(args: argparse.Namespace, settings: ScholarSettings) -> int:
    import uvicorn

    from scholar.api.app import app
    from scholar.core.settings import get_settings

    app.dependency_overrides[get_settings] = lambda: settings
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


def print_results(results: list[RawResult]) -> int:
    """Print a two-line entry per result with a title. Returns the number printed."""
    shown = 0
    for result in results:
        try:
            record = extract_article(result)
        except RecordValidationError as exc:
            logger.debug("Not listing result %s: %s", result.position, exc)
            continue
        position = result.position if result.position is not None else "-"
        print(f"{str(position):>3}  {record.title}")
        print(
            f"     {record.authors or '?'} ({record.year or 'n.d.'}), "
            f"cited by {record.cited_by or 0}"
        )
        shown += 1
    return shown


def _run_search(request: SearchRequest, settings: ScholarSettings, save: bool) -> int:
    with ScholarClient.from_settings(settings) as client:
        response = client.search(request)

    if response is None:
        logger.warning(NO_CONTENT_MESSAGE)
        return 1

    print_results(response.results)
    logger.info(
        "%d results (page %s, next: %s)",
        len(response.results),
        response.current_page,
        "yes" if response.next_page else "no",
    )

    if save:
        summary = process_response(response, ScholarDatabase(settings.database_path))
        logger.info(summary.message)
    return 0


# ── CLI ──────────────────────────────────────────────────────────────


def main():
    parser = argparse.ArgumentParser(description="Scholar search and persistence")
    parser.add_argument("--config", default=None, help="Path to settings YAML file")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("search", help="Search by query, citation id or cluster id")
    p.add_argument("query", nargs="?", default=None)
    p.add_argument("--cites", default=None, help="Find papers citing this citation id")
    p.add_argument("--cluster", default=None, help="Find versions of this cluster id")
    p.add_argument("--year-from", type=int, default=None)
    p.add_argument("--year-to", type=int, default=None)
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=10)
    p.add_argument("--save", action="store_true", help="Persist results to the database")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("author", help="Search articles by author name")
    p.add_argument("name")
    p.add_argument("--page", type=int, default=1)
    p.add_argument("--page-size", type=int, default=10)
    p.add_argument("--save", action="store_true", help="Persist results to the database")
    p.set_defaults(func=cmd_author)

    p = sub.add_parser("save", help="Persist a saved provider JSON response")
    p.add_argument("file")
    p.set_defaults(func=cmd_save)

    p = sub.add_parser("article", help="Show one stored article by exact title")
    p.add_argument("title")
    p.set_defaults(func=cmd_article)

    p = sub.add_parser("import", help="Bulk-load article rows from a JSON list")
    p.add_argument("file")
    p.add_argument("--researcher-id", type=int, default=None)
    p.set_defaults(func=cmd_import)

    p = sub.add_parser("init-db", help="Create database tables")
    p.set_defaults(func=cmd_init_db)

    p = sub.add_parser("stats", help="Print database statistics and integrity report")
    p.set_defaults(func=cmd_stats)

    p = sub.add_parser("serve", help="Run the REST API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    settings = load_settings(args.config)

    try:
        sys.exit(args.func(args, settings))
    except ScholarError as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
