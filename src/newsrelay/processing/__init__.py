"""Processing stages: duplicate filtering, selection, enrichment.

Submodules:
- deduplication: URL, fingerprint and similarity checks against history
- selector: LLM editor scoring with heuristic and recency fallbacks
- enricher: concurrent LLM rewriting with language validation
- common: cross-stage utilities (LLM oracle, retry policy, text helpers)
"""

from newsrelay.processing.fingerprint import fingerprint, normalize, similar, similarity
from newsrelay.processing.models import (
    EnrichedItem,
    FilterOutcome,
    FilterResult,
    Item,
    RejectReason,
    RunResult,
    ScoredItem,
)

__all__ = [
    "EnrichedItem",
    "FilterOutcome",
    "FilterResult",
    "Item",
    "RejectReason",
    "RunResult",
    "ScoredItem",
    "fingerprint",
    "normalize",
    "similar",
    "similarity",
]
