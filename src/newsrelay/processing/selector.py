"""Editorial selection: rank candidates with an LLM and keep the top N.

Flow:
  items (≤ N) ──────────────────────────────→ returned unchanged
  items (> N) → one scoring prompt → LLM → parse "NOTA<i>: <score>" → top N

Degradation:
- Unparseable or partial responses: missing scores come from a
  deterministic heuristic (source authority + position)
- LLM unreachable after retries/timeouts: newest N by publication time
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field

from newsrelay.config import PipelineConfig
from newsrelay.core.exceptions import ResponseParseError
from newsrelay.core.logging import get_logger
from newsrelay.processing.common.llm import Oracle
from newsrelay.processing.common.retry import call_with_retry
from newsrelay.processing.models import Item, ScoredItem

logger = get_logger(__name__)

MIN_SCORE = 1
MAX_SCORE = 10

HEURISTIC_BASE_SCORE = 6
HEURISTIC_MIN_SCORE = 3

EDITOR_SYSTEM_PROMPT = """You are the editor-in-chief of a technology and gaming news portal.
Rate each news item ONLY from its title, with a score from 1 to 10.

Criteria:
10 - Groundbreaking launches, major acquisitions
8-9 - Important updates, highly anticipated AAA games
6-7 - Interesting news from well-known companies
4-5 - Niche content or minor updates
1-3 - Low relevance or overly specific

ALWAYS ANSWER in the format: {token}1: X, {token}2: Y, {token}3: Z"""


def build_scoring_prompt(items: list[Item], token: str = "NOTA") -> str:
    """Enumerate ``[source] title`` for every item, numbered from 1."""
    lines = ["Evaluate these news titles (1-10):", ""]
    for i, item in enumerate(items, start=1):
        lines.append(f"{i}. [{item.source}] {item.title}")
    lines.append("")
    lines.append(f"RESPONSE ({token}1: X, {token}2: Y, ...):")
    return "\n".join(lines)


def heuristic_score(item: Item, position: int, config: PipelineConfig) -> int:
    """Deterministic fallback score for the item at ``position`` (0-based)."""
    score = HEURISTIC_BASE_SCORE
    source = item.source.lower()
    if any(outlet in source for outlet in config.primary_outlets):
        score += 2
    elif any(outlet in source for outlet in config.secondary_outlets):
        score += 1

    if position < 3:
        score += 1
    elif position >= 5:
        score -= 1

    return min(MAX_SCORE, max(HEURISTIC_MIN_SCORE, score))


def heuristic_scores(items: list[Item], config: PipelineConfig) -> list[ScoredItem]:
    return [ScoredItem(item, heuristic_score(item, i, config)) for i, item in enumerate(items)]


def parse_scores(
    response: str | None, items: list[Item], config: PipelineConfig
) -> list[ScoredItem]:
    """Parse ``<TOKEN><index>: <score>`` pairs out of an LLM response.

    Never raises. Items the response omits get a heuristic score; a response
    with no valid pair at all is scored entirely by the heuristic.

    Returns:
        One ScoredItem per input item, in input order
    """
    if not response or not response.strip():
        logger.warning("Empty scoring response, using heuristic scores")
        return heuristic_scores(items, config)

    pattern = re.compile(rf"{re.escape(config.score_token)}(\d+)\s*:?\s*(\d+)", re.IGNORECASE)
    scores: dict[int, int] = {}
    match_count = 0
    for match in pattern.finditer(response):
        match_count += 1
        index = int(match.group(1)) - 1
        score = int(match.group(2))
        if 0 <= index < len(items) and MIN_SCORE <= score <= MAX_SCORE:
            scores.setdefault(index, score)
        else:
            logger.warning("Score out of bounds", index=index + 1, score=score)

    if not scores:
        logger.warning(
            "No valid scores in response, using heuristic scores",
            matches=match_count,
            response_preview=response[:100],
        )
        return heuristic_scores(items, config)

    missing = len(items) - len(scores)
    if missing:
        logger.debug("Filling omitted scores with heuristic", missing=missing)

    return [
        ScoredItem(item, scores[i] if i in scores else heuristic_score(item, i, config))
        for i, item in enumerate(items)
    ]


def top_scored(scored: list[ScoredItem], n: int) -> list[Item]:
    """Highest scores first; ties keep their original relative order."""
    ranked = sorted(scored, key=lambda s: s.score, reverse=True)
    return [s.item for s in ranked[:n]]


def newest_first(items: list[Item], n: int) -> list[Item]:
    """Recency fallback: the ``n`` most recently published items."""
    return sorted(items, key=lambda item: item.published_at, reverse=True)[:n]


@dataclass
class NewsSelector:
    """Pick the top-N items using an LLM editor with layered fallbacks."""

    oracle: Oracle
    config: PipelineConfig = field(default_factory=PipelineConfig)

    async def select(self, items: list[Item], top_n: int | None = None) -> list[Item]:
        """Select the best ``top_n`` items (default from config).

        Never raises: any unrecoverable error degrades to recency ordering.
        """
        n = top_n if top_n is not None else self.config.top_news_count
        if len(items) <= n:
            logger.info("Few items available, selecting all", count=len(items), top_n=n)
            return list(items)

        logger.info("Scoring items with LLM editor", count=len(items), top_n=n)
        try:
            scored = await asyncio.wait_for(
                self._score_all(items), timeout=self.config.selector_global_timeout
            )
        except Exception as e:
            logger.error(
                "Scoring failed, falling back to newest items",
                error_type=type(e).__name__,
                error=str(e),
            )
            return newest_first(items, n)

        selected = top_scored(scored, n)
        logger.info("Editor selection complete", selected=len(selected), candidates=len(items))
        return selected

    async def _score_all(self, items: list[Item]) -> list[ScoredItem]:
        prompt = build_scoring_prompt(items, self.config.score_token)

        async def attempt() -> list[ScoredItem]:
            return await asyncio.wait_for(
                self._score_once(items, prompt), timeout=self.config.selector_attempt_timeout
            )

        return await asyncio.wait_for(
            call_with_retry(
                attempt,
                name="score_items",
                max_retries=self.config.selector_max_retries,
                backoff_base=self.config.selector_backoff_base,
                backoff_max=self.config.selector_backoff_max,
                attempt_timeout=self.config.selector_retry_attempt_timeout,
            ),
            timeout=self.config.selector_total_timeout,
        )

    async def _score_once(self, items: list[Item], prompt: str) -> list[ScoredItem]:
        system_prompt = EDITOR_SYSTEM_PROMPT.format(token=self.config.score_token)
        try:
            response = await asyncio.wait_for(
                self.oracle.complete(prompt, system_prompt=system_prompt),
                timeout=self.config.selector_call_timeout,
            )
        except ResponseParseError as e:
            logger.warning("Unparseable editor response, using heuristic scores", error=str(e))
            return heuristic_scores(items, self.config)
        return parse_scores(response, items, self.config)
