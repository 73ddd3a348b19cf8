"""Exception hierarchy for the scholar search backend.

ScholarError (base)
├── ConfigurationError      missing provider credential
├── TransportError          provider unreachable
│   └── ProviderError       provider answered with an error payload
├── ParseError              malformed top-level JSON
├── InvalidSearchError      unusable search input
├── RecordValidationError   record cannot carry an identity (blank title)
├── BatchLimitError         multi-researcher batch exceeds its caps
└── StorageError            relational store failure
"""

from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Categories used when rendering errors for callers."""

    CONFIGURATION = "config"
    TRANSPORT = "transport"
    PARSE = "parse"
    VALIDATION = "validation"
    STORAGE = "storage"


class ScholarError(Exception):
    """Base exception for all scholar backend errors."""

    category: ErrorCategory = ErrorCategory.VALIDATION

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable error payload."""
        return {
            "success": False,
            "error": str(self),
            "category": self.category.value,
        }


class ConfigurationError(ScholarError):
    category = ErrorCategory.CONFIGURATION


class TransportError(ScholarError):
    category = ErrorCategory.TRANSPORT


class ProviderError(TransportError):
    """The provider returned a payload carrying its own ``error`` field."""


class ParseError(ScholarError):
    category = ErrorCategory.PARSE


class InvalidSearchError(ScholarError):
    category = ErrorCategory.VALIDATION


class RecordValidationError(ScholarError):
    category = ErrorCategory.VALIDATION


class BatchLimitError(ScholarError):
    category = ErrorCategory.VALIDATION


class StorageError(ScholarError):
    category = ErrorCategory.STORAGE
