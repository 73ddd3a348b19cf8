"""Field extraction: one provider result (either shape) → ArticleRecord."""

import logging
import re
from datetime import date
from typing import Any, Callable, Optional

from scholar.core.errors import RecordValidationError
from scholar.ingest.models import SQLITE_MAX_INT, ArticleRecord
from scholar.search.models import RawResult

logger = logging.getLogger(__name__)

FieldPath = tuple[str, ...]

# Ordered fallbacks; the first path yielding a usable value wins.
AUTHOR_PATHS: tuple[FieldPath, ...] = (("publication_info", "authors"), ("authors",))
SUMMARY_PATHS: tuple[FieldPath, ...] = (("publication_info", "summary"), ("publication",))
CITED_BY_PATHS: tuple[FieldPath, ...] = (
    ("inline_links", "cited_by", "total"),
    ("cited_by", "value"),
)
CITATION_ID_PATHS: tuple[FieldPath, ...] = (
    ("citation_id",),
    ("inline_links", "cited_by", "cites_id"),
)
CLUSTER_ID_PATHS: tuple[FieldPath, ...] = (("inline_links", "versions", "cluster_id"),)

STOP_WORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "can", "her", "was",
        "one", "our", "had", "day", "get", "has", "him", "his", "how", "man", "new",
        "now", "old", "see", "two", "way", "who", "boy", "did", "its", "let", "put",
        "say", "she", "too", "use",
    }
)
MAX_KEYWORDS = 5

_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")
_INITIALS_RE = re.compile(r"^[A-Z]{1,3}\s+")
_NON_LETTER_RE = re.compile(r"[^a-zA-Z\s]")
_NON_DIGIT_RE = re.compile(r"\D")


# ── Ordered-Path Decoder ─────────────────────────────────────────────


def dig(data: Any, path: FieldPath) -> Any:
    """Follow ``path`` through nested dicts; None if any step is missing."""
    node = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
        if node is None:
            return None
    return node


def first_value(data: Any, paths: tuple[FieldPath, ...]) -> Any:
    """Value at the first path that is present and not a blank string."""
    for path in paths:
        value = dig(data, path)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


# ── Individual Fields ────────────────────────────────────────────────


def parse_citation_count(value: Any) -> int:
    """``"Cited by 1,234"`` → 1234; no digits → 0."""
    if isinstance(value, bool):
        raise ValueError(f"not a citation count: {value!r}")
    if isinstance(value, int):
        if not 0 <= value <= SQLITE_MAX_INT:
            raise ValueError(f"citation count out of range: {value}")
        return value
    digits = _NON_DIGIT_RE.sub("", str(value))
    count = int(digits) if digits else 0
    if count > SQLITE_MAX_INT:
        raise ValueError(f"citation count out of range: {digits[:20]}...")
    return count


def extract_year(text: Optional[str]) -> Optional[int]:
    """First 19xx/20xx token in a publication summary."""
    if not text:
        return None
    match = _YEAR_RE.search(text)
    return int(match.group(0)) if match else None


def derive_authors(summary: Optional[str]) -> Optional[str]:
    """Author list from the text before the first `` - `` of a summary line."""
    if not summary or " - " not in summary:
        return None
    candidate = summary.split(" - ", 1)[0].strip()
    candidate = _INITIALS_RE.sub("", candidate).strip()
    if 4 <= len(candidate) <= 199:
        return candidate
    return None


def format_authors(value: Any) -> Optional[str]:
    """Provider author field (string or list of ``{name}``) → display string."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, list):
        names = []
        for author in value:
            name = author.get("name") if isinstance(author, dict) else author
            if isinstance(name, str) and name.strip():
                names.append(name.strip())
        return ", ".join(names) or None
    raise ValueError(f"unsupported authors value: {type(value).__name__}")


def extract_keywords(title: Optional[str], limit: int = MAX_KEYWORDS) -> Optional[str]:
    """Up to ``limit`` distinctive title words, in order of appearance.

    Non-letters are dropped before splitting on whitespace, so "deep-learning"
    stays one word. Repeats count once.
    """
    if not title:
        return None
    keywords: list[str] = []
    for word in _NON_LETTER_RE.sub("", title).lower().split():
        if len(word) <= 3 or word in STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) == limit:
            break
    return ", ".join(keywords) or None


def is_valid_link(link: Optional[str]) -> bool:
    return bool(link) and link.startswith(("http://", "https://"))


# ── Record Assembly ──────────────────────────────────────────────────


def extract_article(result: RawResult | dict[str, Any]) -> ArticleRecord:
    """Build an ArticleRecord from one provider result.

    A blank or missing title raises RecordValidationError. Every other field is
    extracted independently: a failure is logged, noted in ``warnings`` and
    leaves only that field unset.
    """
    data = result.model_dump(exclude_none=True) if isinstance(result, RawResult) else result
    if not isinstance(data, dict):
        raise RecordValidationError(f"Result is not an object: {type(data).__name__}")

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise RecordValidationError("Article title is required")

    warnings: list[str] = []

    def attempt(field: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning("Could not extract %s for '%s': %s", field, title[:60], exc)
            warnings.append(f"{field}: {exc}")
            return None

    summary = attempt("summary", lambda: _as_text(first_value(data, SUMMARY_PATHS)))

    authors = attempt("authors", lambda: _authors(data, summary))
    year = attempt("year", lambda: _year(data, summary))
    cited_by = attempt("cited_by", lambda: _cited_by(data))
    keywords = attempt("keywords", lambda: extract_keywords(title))
    abstract = attempt("abstract", lambda: _as_text(data.get("snippet")))
    citation_id = attempt("citation_id", lambda: _as_text(first_value(data, CITATION_ID_PATHS)))
    cluster_id = attempt("cluster_id", lambda: _as_text(first_value(data, CLUSTER_ID_PATHS)))

    link = attempt("link", lambda: _as_text(data.get("link")))
    if link is not None and not is_valid_link(link):
        logger.warning("Invalid URL format for '%s': %s", title[:60], link)
        warnings.append(f"link: invalid URL format: {link}")

    return ArticleRecord(
        title=title,
        authors=authors,
        publication_date=date(year, 1, 1) if year else None,
        abstract=abstract,
        link=link,
        keywords=keywords,
        cited_by=cited_by,
        citation_id=citation_id,
        cluster_id=cluster_id,
        year=year,
        warnings=tuple(warnings),
    )


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        raise ValueError(f"expected text, got {type(value).__name__}")
    return str(value)


def _authors(data: dict[str, Any], summary: Optional[str]) -> Optional[str]:
    explicit = first_value(data, AUTHOR_PATHS)
    if explicit is not None:
        formatted = format_authors(explicit)
        if formatted:
            return formatted
    return derive_authors(summary)


def _year(data: dict[str, Any], summary: Optional[str]) -> Optional[int]:
    raw = data.get("year")
    if raw is not None and str(raw).strip():
        year = int(str(raw).strip())
        if not 1000 <= year <= 9999:
            raise ValueError(f"year out of range: {year}")
        return year
    return extract_year(summary)


def _cited_by(data: dict[str, Any]) -> Optional[int]:
    raw = first_value(data, CITED_BY_PATHS)
    if raw is None:
        return None
    return parse_citation_count(raw)
