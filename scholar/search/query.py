"""Provider query builder: SearchRequest → GET parameters."""

from typing import Any

import httpx

from scholar.core.errors import ConfigurationError, InvalidSearchError
from scholar.core.settings import DEFAULT_BASE_URL, DEFAULT_ENGINE, ScholarSettings
from scholar.search.models import SearchRequest

# (provider parameter, SearchRequest attribute), in emission order
_OPTIONAL_PARAMS: tuple[tuple[str, str], ...] = (
    ("cites", "cites"),
    ("as_ylo", "as_ylo"),
    ("as_yhi", "as_yhi"),
    ("scisbd", "scisbd"),
    ("cluster", "cluster"),
    ("hl", "hl"),
    ("lr", "lr"),
    ("start", "start"),
    ("num", "num"),
    ("as_sdt", "as_sdt"),
    ("safe", "safe"),
    ("filter", "filter"),
    ("as_vis", "as_vis"),
    ("as_rr", "as_rr"),
    ("no_cache", "no_cache"),
    ("async", "async_search"),
    ("output", "output"),
)


# ── Query Builder ────────────────────────────────────────────────────


class QueryBuilder:
    """Builds provider query parameters with an injected credential."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        engine: str = DEFAULT_ENGINE,
    ):
        self._api_key = api_key
        self.base_url = base_url
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: ScholarSettings) -> "QueryBuilder":
        return cls(settings.api_key, base_url=settings.base_url, engine=settings.engine)

    @property
    def has_credential(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    def build_params(self, request: SearchRequest) -> dict[str, Any]:
        """Return the provider parameters for one request.

        ``engine`` and ``api_key`` are always present, ``q`` whenever the
        request carries a non-blank query. Every other parameter is present
        only when its value is non-null (and non-blank, for strings).
        """
        if not self.has_credential:
            raise ConfigurationError(
                "API key not configured. Set the SCHOLAR_API_KEY environment variable."
            )
        if request.mode == "query" and not request.has_query:
            raise InvalidSearchError("Search query is required")

        params: dict[str, Any] = {"engine": self.engine}
        add_optional_param(params, "q", request.q)
        params["api_key"] = self._api_key
        for name, attr in _OPTIONAL_PARAMS:
            add_optional_param(params, name, getattr(request, attr))
        return params

    def build_url(self, request: SearchRequest) -> str:
        """Full GET URL for a request. Contains the credential; never log it."""
        return str(httpx.URL(self.base_url, params=self.build_params(request)))


def add_optional_param(params: dict[str, Any], name: str, value: Any) -> None:
    """Set ``params[name]`` unless value is None or a blank string."""
    if value is None:
        return
    if isinstance(value, str) and not value.strip():
        return
    params[name] = value


def redact(params: dict[str, Any]) -> dict[str, Any]:
    """Copy of params safe for logging."""
    return {k: ("***" if k == "api_key" else v) for k, v in params.items()}


# ── Request Helpers ──────────────────────────────────────────────────


def author_query(author_name: str | None) -> str:
    """Query term for an author search: ``author:"<name>"``."""
    if author_name is None or not author_name.strip():
        raise InvalidSearchError("Author name is required")
    return f'author:"{author_name.strip()}"'


def page_to_offset(page: int, page_size: int, max_page_size: int = 20) -> tuple[int, int]:
    """Translate a 1-based page number into provider (start, num)."""
    if page < 1:
        raise InvalidSearchError("Page number must be 1 or greater")
    if page_size < 1 or page_size > max_page_size:
        raise InvalidSearchError(f"Page size must be between 1 and {max_page_size}")
    return (page - 1) * page_size, page_size
