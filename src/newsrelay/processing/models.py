"""Processing models for the dedup → select → deliver pipeline.

These models define the data structures that flow between stages:
- Item: one candidate news article (persisted by the history store)
- ScoredItem / EnrichedItem: ephemeral per-stage pairs
- FilterResult: outcome of the duplicate filter
- RunResult: what outer callers see after a pipeline run
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from newsrelay.processing.fingerprint import fingerprint as compute_fingerprint


def _utcnow() -> datetime:
    return datetime.now(UTC)


# =============================================================================
# Item
# =============================================================================


class Item(BaseModel):
    """A candidate news item.

    The fingerprint is derived from ``title + " " + description`` when the
    item is created and is never supplied by feeds.
    """

    id: int | None = None  # assigned by the history store
    title: str
    description: str = ""
    url: str
    fingerprint: str = ""
    source: str = ""
    published_at: datetime = Field(default_factory=_utcnow)
    created_at: datetime = Field(default_factory=_utcnow)
    delivered: bool = False

    @model_validator(mode="after")
    def _derive_fingerprint(self) -> "Item":
        if not self.fingerprint:
            self.fingerprint = compute_fingerprint(self.content)
        return self

    @property
    def content(self) -> str:
        """Text used for fingerprinting and similarity checks."""
        return f"{self.title} {self.description}"

    def mark_delivered(self) -> None:
        """Flip the delivered flag. The flag never goes back to False."""
        self.delivered = True


# =============================================================================
# Stage pairs
# =============================================================================


@dataclass(frozen=True)
class ScoredItem:
    """An item with its editorial score (1-10)."""

    item: Item
    score: int


@dataclass(frozen=True)
class EnrichedItem:
    """An item paired with its rewritten title and description."""

    item: Item
    title: str
    description: str


# =============================================================================
# Duplicate filter
# =============================================================================


class FilterOutcome(str, Enum):
    accepted = "accepted"
    rejected = "rejected"


class RejectReason(str, Enum):
    url = "url"
    fingerprint = "fingerprint"
    similarity = "similarity"


@dataclass(frozen=True)
class FilterResult:
    """Result of running one item through the duplicate filter."""

    item: Item
    outcome: FilterOutcome
    reason: RejectReason | None = None
    fail_open: bool = False  # accepted because the history store failed

    @property
    def accepted(self) -> bool:
        return self.outcome is FilterOutcome.accepted


# =============================================================================
# Pipeline run
# =============================================================================

CATASTROPHIC_FAILURE = -1


@dataclass
class RunResult:
    """Outcome of one pipeline run.

    ``count`` is the number of selected items, or ``CATASTROPHIC_FAILURE``
    when the run blew up before producing anything.
    """

    status: str
    fetched: int = 0
    accepted: int = 0
    selected: int = 0
    delivered: int = 0
    failed: bool = False

    @property
    def count(self) -> int:
        return CATASTROPHIC_FAILURE if self.failed else self.selected

    @property
    def success(self) -> bool:
        return not self.failed
