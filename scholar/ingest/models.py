"""Domain records and per-item outcomes for the ingest pipeline."""

import json
from datetime import date
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator


# ── Article ──────────────────────────────────────────────────────────


class ArticleRecord(BaseModel):
    """Normalized article, ready for reconciliation."""

    model_config = ConfigDict(frozen=True)

    title: str
    authors: Optional[str] = None
    publication_date: Optional[date] = None
    abstract: Optional[str] = None
    link: Optional[str] = None
    keywords: Optional[str] = None
    cited_by: Optional[int] = Field(
        default=None, description="None when no citation field was present"
    )
    citation_id: Optional[str] = None
    cluster_id: Optional[str] = None
    year: Optional[int] = None
    warnings: tuple[str, ...] = ()


# Largest value SQLite stores in an INTEGER column.
SQLITE_MAX_INT = 2**63 - 1


# ── Researcher ───────────────────────────────────────────────────────


class ResearcherProfile(BaseModel):
    """One researcher entry of a multi-researcher batch, with its articles."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    external_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("external_id", "author_id", "authorId")
    )
    name: Optional[str] = None
    affiliation: Optional[str] = None
    email: Optional[str] = None
    h_index: Optional[int] = Field(
        default=None, le=SQLITE_MAX_INT, validation_alias=AliasChoices("h_index", "hIndex")
    )
    i10_index: Optional[int] = Field(
        default=None, le=SQLITE_MAX_INT, validation_alias=AliasChoices("i10_index", "i10Index")
    )
    total_citations: Optional[int] = Field(
        default=None,
        le=SQLITE_MAX_INT,
        validation_alias=AliasChoices("total_citations", "totalCitations"),
    )
    interests: Optional[str] = None
    profile_url: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("profile_url", "profileUrl")
    )
    articles: list[dict[str, Any]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("articles", "articles_json", "articlesJson"),
    )

    @field_validator("external_id", "name")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("interests", mode="before")
    @classmethod
    def join_interests(cls, v: Any) -> Any:
        if isinstance(v, list):
            return ", ".join(
                (i.get("title") if isinstance(i, dict) else str(i)) or "" for i in v
            )
        return v

    @field_validator("articles", mode="before")
    @classmethod
    def decode_articles(cls, v: Any) -> Any:
        """Accept a list, an author-articles payload, or that payload as JSON text."""
        if v is None:
            return []
        if isinstance(v, (str, bytes)):
            try:
                v = json.loads(v)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid articles JSON: {exc}") from exc
        if isinstance(v, dict):
            if "articles" not in v:
                raise ValueError("Invalid articles JSON format: 'articles' array not found")
            v = v["articles"]
        return v

    @model_validator(mode="after")
    def identifiable(self) -> "ResearcherProfile":
        if self.external_id is None and self.name is None:
            raise ValueError("Researcher needs an author id or a name")
        return self


# ── Outcomes ─────────────────────────────────────────────────────────


class Decision(str, Enum):
    """What reconciliation decided for one article."""

    INSERT = "insert"
    UPDATE_CITATIONS = "update_citations"
    SKIP_DUPLICATE = "skip_duplicate"
    REJECT = "reject"


ArticleStatus = Literal["inserted", "updated", "skipped", "rejected", "failed"]

_STATUS_BY_DECISION: dict[Decision, ArticleStatus] = {
    Decision.INSERT: "inserted",
    Decision.UPDATE_CITATIONS: "updated",
    Decision.SKIP_DUPLICATE: "skipped",
    Decision.REJECT: "rejected",
}


class ArticleOutcome(BaseModel):
    """Result of processing a single article; never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    status: ArticleStatus
    decision: Optional[Decision] = None
    title: Optional[str] = None
    article_id: Optional[int] = None
    message: Optional[str] = None
    warnings: tuple[str, ...] = ()

    @classmethod
    def applied(cls, decision: Decision, record: ArticleRecord, **kw) -> "ArticleOutcome":
        return cls(
            status=_STATUS_BY_DECISION[decision],
            decision=decision,
            title=record.title,
            warnings=record.warnings,
            **kw,
        )
