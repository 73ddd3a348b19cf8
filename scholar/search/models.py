"""Search request and provider response models.

Provider models ignore unknown keys so that new fields in the provider
schema never break parsing. Every field is optional at the type level: the
provider omits blocks opportunistically (``cited_by`` only exists for results
that have been cited at least once).
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

SearchMode = Literal["query", "citation", "cluster"]


# ── Search Request ───────────────────────────────────────────────────


class SearchRequest(BaseModel):
    """Caller-supplied search; field names follow the provider parameters."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    q: Optional[str] = Field(default=None, description="Free-text query")
    cites: Optional[str] = Field(default=None, description="Citation-id: papers citing this one")
    cluster: Optional[str] = Field(default=None, description="Cluster-id: versions of one paper")
    as_ylo: Optional[int] = Field(default=None, ge=1900, description="Lowest publication year")
    as_yhi: Optional[int] = Field(default=None, le=2099, description="Highest publication year")
    scisbd: Optional[int] = Field(default=None, ge=0, le=2, description="0=relevance, 1=abstracts, 2=everything")
    hl: Optional[str] = "en"
    lr: Optional[str] = None
    start: Optional[int] = Field(default=0, ge=0)
    num: Optional[int] = Field(default=10, ge=1, le=100)
    as_sdt: Optional[str] = None
    safe: Optional[str] = "off"
    filter: Optional[int] = 1
    as_vis: Optional[int] = 0
    as_rr: Optional[int] = 0
    no_cache: Optional[bool] = False
    async_search: Optional[bool] = Field(default=False, alias="async")
    output: Optional[str] = "json"

    @model_validator(mode="after")
    def valid_year_range(self) -> "SearchRequest":
        if self.as_ylo is not None and self.as_yhi is not None and self.as_ylo > self.as_yhi:
            raise ValueError(
                f"as_ylo ({self.as_ylo}) must be <= as_yhi ({self.as_yhi})"
            )
        return self

    @property
    def mode(self) -> SearchMode:
        """Which lookup this request performs; citation beats cluster beats query."""
        if self.cites and self.cites.strip():
            return "citation"
        if self.cluster and self.cluster.strip():
            return "cluster"
        return "query"

    @property
    def has_query(self) -> bool:
        return bool(self.q and self.q.strip())


# ── Provider Response: result blocks ─────────────────────────────────


class _ProviderModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class AuthorRef(_ProviderModel):
    name: Optional[str] = None
    link: Optional[str] = None
    author_id: Optional[str] = None


class PublicationInfo(_ProviderModel):
    summary: Optional[str] = None
    authors: Optional[Union[str, list[AuthorRef]]] = None


class CitedBy(_ProviderModel):
    total: Optional[Union[int, str]] = None
    link: Optional[str] = None
    cites_id: Optional[str] = None
    serpapi_scholar_link: Optional[str] = None


class Versions(_ProviderModel):
    total: Any = None
    link: Optional[str] = None
    cluster_id: Optional[str] = None
    serpapi_scholar_link: Optional[str] = None


class InlineLinks(_ProviderModel):
    serpapi_cite_link: Optional[str] = None
    cited_by: Optional[CitedBy] = None
    related_pages_link: Optional[str] = None
    versions: Optional[Versions] = None
    cached_page_link: Optional[str] = None


class CitedByValue(_ProviderModel):
    """``cited_by`` as it appears on author-article results."""

    value: Optional[Union[int, str]] = None
    link: Optional[str] = None
    cites_id: Optional[str] = None


class RawResult(_ProviderModel):
    """One provider hit; covers both organic results and author articles."""

    position: Any = None
    title: Optional[str] = None
    result_id: Any = None
    link: Optional[str] = None
    snippet: Optional[str] = None
    publication_info: Optional[PublicationInfo] = None
    resources: Any = None
    inline_links: Optional[InlineLinks] = None
    # author-articles shape
    authors: Optional[str] = None
    publication: Optional[str] = None
    citation_id: Optional[str] = None
    year: Optional[Union[int, str]] = None
    cited_by: Optional[CitedByValue] = None


# ── Provider Response: envelope ──────────────────────────────────────


class Pagination(_ProviderModel):
    current: Optional[int] = None
    next: Optional[str] = None
    other_pages: Optional[dict[str, Any]] = None


class ProviderResponse(_ProviderModel):
    """Envelope of one provider call."""

    # Passed through untouched; nothing downstream reads them.
    search_metadata: Any = None
    search_parameters: Any = None
    search_information: Any = None
    organic_results: Optional[list[RawResult]] = None
    articles: Optional[list[RawResult]] = None
    related_searches: Any = None
    pagination: Optional[Pagination] = None
    error: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def serpapi_pagination_fallback(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("pagination") is None and "serpapi_pagination" in data:
            data = {**data, "pagination": data["serpapi_pagination"]}
        return data

    @property
    def results(self) -> list[RawResult]:
        """Organic results when present, otherwise author articles."""
        if self.organic_results is not None:
            return self.organic_results
        return self.articles or []

    @property
    def current_page(self) -> Optional[int]:
        return self.pagination.current if self.pagination else None

    @property
    def next_page(self) -> Optional[str]:
        return self.pagination.next if self.pagination else None
