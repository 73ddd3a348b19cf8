"""Tests for provider response parsing."""

import json
from pathlib import Path

import pytest

from scholar.core.errors import ParseError
from scholar.search.parser import parse_response

DATA = Path(__file__).resolve().parent / "data"


# ── Organic Results ──────────────────────────────────────────────────


def test_parse_organic_fixture():
    resp = parse_response((DATA / "organic_results.json").read_text())
    assert len(resp.results) == 3
    first = resp.results[0]
    assert first.title == "Deep learning for healthcare prediction"
    assert first.inline_links.cited_by.total == 1234
    assert first.inline_links.versions.cluster_id == "444555666"
    assert first.publication_info.authors[0].name == "R Miotto"
    assert resp.current_page == 1
    assert resp.next_page.startswith("https://scholar.google.com")


def test_unknown_fields_ignored():
    resp = parse_response(
        json.dumps({"organic_results": [{"title": "A", "brand_new_field": {"x": 1}}], "extra": 5})
    )
    assert resp.results[0].title == "A"


def test_missing_title_is_not_a_parse_error():
    resp = parse_response('{"organic_results": [{"link": "https://a.b"}]}')
    assert resp.results[0].title is None


# ── Author Articles ──────────────────────────────────────────────────


def test_parse_author_articles_fixture():
    resp = parse_response((DATA / "author_articles.json").read_bytes())
    assert resp.organic_results is None
    assert len(resp.results) == 2
    assert resp.results[0].cited_by.value == 98765
    assert resp.results[0].year == "2017"


def test_serpapi_pagination_fallback():
    resp = parse_response((DATA / "author_articles.json").read_text())
    assert resp.current_page == 1
    assert "start=20" in resp.next_page


def test_organic_results_preferred_over_articles():
    resp = parse_response(
        json.dumps({"organic_results": [{"title": "O"}], "articles": [{"title": "A"}]})
    )
    assert [r.title for r in resp.results] == ["O"]


def test_no_results_at_all():
    resp = parse_response("{}")
    assert resp.results == []


def test_provider_error_field():
    resp = parse_response('{"error": "Invalid API key."}')
    assert resp.error == "Invalid API key."


# ── Failures ─────────────────────────────────────────────────────────


@pytest.mark.parametrize("text", ["not json", "{", "", "[1, 2]", '"string"'])
def test_malformed_payload(text):
    with pytest.raises(ParseError):
        parse_response(text)


def test_type_mismatch_in_consumed_field():
    with pytest.raises(ParseError, match="organic_results"):
        parse_response('{"organic_results": {"title": "not a list"}}')


def test_type_drift_in_unread_fields_is_tolerated():
    resp = parse_response(
        json.dumps(
            {
                "search_metadata": {"total_time_taken": "0.42s"},
                "search_information": {
                    "total_results": "About 1,000 results",
                    "time_taken_displayed": "0.05 sec",
                },
                "related_searches": "none",
                "organic_results": [
                    {
                        "position": "first",
                        "title": "A",
                        "resources": {"title": "PDF"},
                        "inline_links": {"versions": {"total": "All 5 versions", "cluster_id": "77"}},
                    }
                ],
            }
        )
    )
    assert resp.results[0].title == "A"
    assert resp.results[0].inline_links.versions.cluster_id == "77"
    assert resp.search_information["total_results"] == "About 1,000 results"
