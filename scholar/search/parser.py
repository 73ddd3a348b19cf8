"""Provider JSON → ProviderResponse."""

import json
import logging

from pydantic import ValidationError

from scholar.core.errors import ParseError
from scholar.search.models import ProviderResponse

logger = logging.getLogger(__name__)


def parse_response(text: str | bytes) -> ProviderResponse:
    """Deserialize a provider payload.

    Unknown keys are ignored. Invalid JSON, a non-object top level, or a type
    mismatch in a field the pipeline consumes raises ParseError; there is no
    partial result.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseError(f"Error processing JSON response: {exc}") from exc

    if not isinstance(data, dict):
        raise ParseError(
            f"Error processing JSON response: expected an object, got {type(data).__name__}"
        )

    try:
        response = ProviderResponse.model_validate(data)
    except ValidationError as exc:
        raise ParseError(
            f"Error processing JSON response: {exc.error_count()} invalid field(s): "
            + "; ".join(_describe(e) for e in exc.errors()[:5])
        ) from exc

    logger.debug(
        "Parsed provider response: %d organic results, %d articles",
        len(response.organic_results or []),
        len(response.articles or []),
    )
    return response


def _describe(error: dict) -> str:
    loc = ".".join(str(part) for part in error.get("loc", ()))
    return f"{loc}: {error.get('msg', 'invalid')}"
