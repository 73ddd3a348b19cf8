"""Immutable summaries folded from per-item outcomes."""

from collections import Counter
from typing import Iterable, Literal, Optional

from pydantic import BaseModel, ConfigDict, computed_field

from scholar.ingest.models import ArticleOutcome

SummaryStatus = Literal["success", "partial_success", "failed"]


# ── Article Summary ──────────────────────────────────────────────────


class IngestSummary(BaseModel):
    """Counts of what happened to a set of articles."""

    model_config = ConfigDict(frozen=True)

    total: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    rejected: int = 0
    failed: int = 0
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[ArticleOutcome]) -> "IngestSummary":
        outcomes = list(outcomes)
        counts = Counter(o.status for o in outcomes)
        warnings: list[str] = []
        errors: list[str] = []
        for o in outcomes:
            label = o.title or "<untitled>"
            warnings.extend(f"{label}: {w}" for w in o.warnings)
            if o.status in ("rejected", "failed") and o.message:
                errors.append(f"{label}: {o.message}")
        return cls(
            total=len(outcomes),
            inserted=counts["inserted"],
            updated=counts["updated"],
            skipped=counts["skipped"],
            rejected=counts["rejected"],
            failed=counts["failed"],
            warnings=tuple(warnings),
            errors=tuple(errors),
        )

    def __add__(self, other: "IngestSummary") -> "IngestSummary":
        return IngestSummary(
            total=self.total + other.total,
            inserted=self.inserted + other.inserted,
            updated=self.updated + other.updated,
            skipped=self.skipped + other.skipped,
            rejected=self.rejected + other.rejected,
            failed=self.failed + other.failed,
            warnings=self.warnings + other.warnings,
            errors=self.errors + other.errors,
        )

    @computed_field
    @property
    def status(self) -> SummaryStatus:
        bad = self.rejected + self.failed
        if bad == 0:
            return "success"
        if bad < self.total:
            return "partial_success"
        return "failed"

    @property
    def message(self) -> str:
        parts = [f"{self.inserted} articles saved"]
        if self.updated:
            parts.append(f"{self.updated} citation counts updated")
        if self.skipped:
            parts.append(f"{self.skipped} duplicates skipped")
        if self.rejected:
            parts.append(f"{self.rejected} rejected")
        if self.failed:
            parts.append(f"{self.failed} failed")
        return "Operation completed: " + ", ".join(parts)


# ── Researcher Batch Summary ─────────────────────────────────────────


class ResearcherOutcome(BaseModel):
    """What happened to one researcher and its articles."""

    model_config = ConfigDict(frozen=True)

    external_id: Optional[str] = None
    name: Optional[str] = None
    researcher_id: Optional[int] = None
    status: Literal["created", "existing", "failed"]
    message: Optional[str] = None
    articles: IngestSummary = IngestSummary()


class BatchSummary(BaseModel):
    """Outcome of a multi-researcher batch."""

    model_config = ConfigDict(frozen=True)

    researchers: tuple[ResearcherOutcome, ...] = ()

    @computed_field
    @property
    def articles(self) -> IngestSummary:
        total = IngestSummary()
        for r in self.researchers:
            total = total + r.articles
        return total

    @computed_field
    @property
    def failed_researchers(self) -> int:
        return sum(1 for r in self.researchers if r.status == "failed")

    @computed_field
    @property
    def successful_researchers(self) -> int:
        return len(self.researchers) - self.failed_researchers
