"""Per-item rewrite/summarization with bounded concurrency.

Each selected item is sent to the LLM for a rewritten title and summary in
the target language. Failures are isolated: an item whose rewrite fails,
times out, or comes back in the wrong language is dropped, and the rest of
the batch carries on.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field

from newsrelay.config import PipelineConfig
from newsrelay.core.logging import get_logger
from newsrelay.processing.common.llm import Oracle
from newsrelay.processing.common.retry import call_with_retry
from newsrelay.processing.common.text import truncate
from newsrelay.processing.language import LanguageChecker
from newsrelay.processing.models import EnrichedItem, Item

logger = get_logger(__name__)

REWRITE_PROMPT = """You are a professional editor specialized in technology and gaming news.
Rewrite the content below in {language}, keeping it clear and preserving proper nouns.

Rules:
- Always answer 100% in {language}
- Do not translate proper nouns (companies, products)
- Summarize fluently and technically
- Title at most {max_title} characters, summary at most {max_description} characters
- If the text is already in {language}, just improve the writing

ORIGINAL TITLE: {title}
ORIGINAL DESCRIPTION: {description}

Answer exactly in this format:
TITLE: [rewritten title]
SUMMARY: [summary]"""

# Accepts the English labels and the accented/unaccented Portuguese ones
_TITLE_RE = re.compile(r"^\s*(?:TITLE|T[ÍI]TULO)\s*[:：]\s*(.+)$", re.IGNORECASE | re.MULTILINE)
_SUMMARY_RE = re.compile(r"(?:SUMMARY|RESUMO)\s*[:：]\s*(.*)", re.IGNORECASE | re.DOTALL)
_QUOTES_RE = re.compile(r"^[\"']|[\"']$")


def _extract(response: str, pattern: re.Pattern[str], default: str) -> str:
    match = pattern.search(response)
    if match is None:
        return default
    return _QUOTES_RE.sub("", match.group(1).strip())


def parse_rewrite_response(
    response: str | None,
    original_title: str,
    original_description: str,
    max_title_length: int,
    max_description_length: int,
) -> tuple[str, str]:
    """Pull ``TITLE:`` and ``SUMMARY:`` out of a rewrite response.

    Missing sections fall back to the original text. Both values are
    truncated to their limits.

    Returns:
        (title, description)
    """
    response = response or ""
    title = _extract(response, _TITLE_RE, original_title or "")
    description = _extract(response, _SUMMARY_RE, original_description or "")
    return truncate(title, max_title_length), truncate(description, max_description_length)


@dataclass
class NewsEnricher:
    """Rewrite selected items with at most ``enrich_concurrency`` LLM calls in flight."""

    oracle: Oracle
    language_checker: LanguageChecker
    config: PipelineConfig = field(default_factory=PipelineConfig)

    def build_prompt(self, item: Item) -> str:
        return REWRITE_PROMPT.format(
            language=self.config.target_language_name,
            max_title=self.config.rewrite_max_title_length,
            max_description=self.config.rewrite_max_description_length,
            title=item.title,
            description=item.description or item.title,
        )

    async def enrich(self, items: list[Item]) -> list[EnrichedItem]:
        """Rewrite all items concurrently.

        Returns:
            Successfully enriched items in input order (possibly fewer)
        """
        if not items:
            return []

        semaphore = asyncio.Semaphore(self.config.enrich_concurrency)

        async def bounded(item: Item) -> EnrichedItem | None:
            async with semaphore:
                return await self.enrich_one(item)

        tasks = [asyncio.create_task(bounded(item)) for item in items]
        done, pending = await asyncio.wait(tasks, timeout=self.config.enrich_global_timeout)

        if pending:
            logger.error(
                "Enrichment timed out, dropping unfinished items",
                timeout=self.config.enrich_global_timeout,
                completed=len(done),
                dropped=len(pending),
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        enriched: list[EnrichedItem] = []
        for task in tasks:
            if task not in done or task.cancelled() or task.exception() is not None:
                continue
            result = task.result()
            if result is not None:
                enriched.append(result)

        logger.info("Enrichment complete", requested=len(items), enriched=len(enriched))
        return enriched

    async def enrich_one(self, item: Item) -> EnrichedItem | None:
        """Rewrite one item. Returns None instead of raising."""
        try:
            title, description = await call_with_retry(
                lambda: self._rewrite(item),
                name="rewrite_item",
                max_retries=self.config.enrich_max_retries,
                backoff_base=self.config.enrich_backoff_base,
                backoff_max=self.config.enrich_backoff_max,
                attempt_timeout=self.config.enrich_timeout,
            )
        except Exception as e:
            logger.warning(
                "Rewrite failed, dropping item",
                title=item.title,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        checker = self.language_checker
        if not (checker.is_target_language(title) and checker.is_target_language(description)):
            logger.warning(
                "Rewrite not in target language, dropping item",
                title=title,
                target=self.config.target_language,
            )
            return None

        logger.info("Rewrite complete", title=title)
        return EnrichedItem(item=item, title=title, description=description)

    async def _rewrite(self, item: Item) -> tuple[str, str]:
        response = await self.oracle.complete(self.build_prompt(item))
        logger.debug("Rewrite response received", title=item.title)
        return parse_rewrite_response(
            response,
            item.title,
            item.description,
            self.config.rewrite_max_title_length,
            self.config.rewrite_max_description_length,
        )
