"""Synchronous HTTP client for the search provider (one attempt per call)."""

import logging

import httpx

from scholar.core.errors import ProviderError, TransportError
from scholar.core.settings import ScholarSettings
from scholar.search.models import ProviderResponse, SearchRequest
from scholar.search.parser import parse_response
from scholar.search.query import QueryBuilder, redact

logger = logging.getLogger(__name__)

USER_AGENT = "scholar-search/1.0"
NO_CONTENT_MESSAGE = "No content received from API"


class ScholarClient:
    """Thin wrapper over ``httpx.Client`` bound to one QueryBuilder."""

    def __init__(
        self,
        builder: QueryBuilder,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.builder = builder
        self._client = httpx.Client(
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )

    @classmethod
    def from_settings(
        cls, settings: ScholarSettings, transport: httpx.BaseTransport | None = None
    ) -> "ScholarClient":
        return cls(
            QueryBuilder.from_settings(settings),
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    # ── Raw Fetch ────────────────────────────────────────────

    def fetch(self, request: SearchRequest) -> str | None:
        """GET the provider once and return the body text.

        Returns None for a non-200 status or an empty body. Raises
        ConfigurationError before any network traffic when no credential is
        configured, and TransportError when the provider is unreachable.
        """
        params = self.builder.build_params(request)
        logger.info("Provider query (%s mode): %s", request.mode, redact(params))

        try:
            response = self._client.get(self.builder.base_url, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(f"HTTP Client error: {exc}") from exc

        if response.status_code != 200:
            logger.warning("Provider returned HTTP %d; treating as no content", response.status_code)
            return None
        if not response.text.strip():
            logger.warning("Provider returned an empty body")
            return None
        return response.text

    # ── Parsed Search ────────────────────────────────────────

    def search(self, request: SearchRequest) -> ProviderResponse | None:
        """Fetch and parse; None means no content was received."""
        body = self.fetch(request)
        if body is None:
            return None
        if not body.lstrip().startswith(("{", "[")):
            raise TransportError(f"Provider returned a non-JSON response: {body[:80]!r}")

        response = parse_response(body)
        if response.error:
            raise ProviderError(f"Provider error: {response.error}")

        logger.info(
            "Provider returned %d results (page %s)",
            len(response.results),
            response.current_page,
        )
        return response

    # ── Cleanup ──────────────────────────────────────────────

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "ScholarClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
