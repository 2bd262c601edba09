"""Three-stage duplicate filter against delivered history.

Checks run in order and stop at the first hit:
1. Exact URL already delivered
2. Content fingerprint already delivered
3. Jaro-Winkler similarity against items delivered in the lookback window

History store failures fail open: the candidate is accepted and logged,
so a storage outage never blocks genuinely new items.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from newsrelay.config import PipelineConfig
from newsrelay.core.logging import get_logger
from newsrelay.processing.fingerprint import similar
from newsrelay.processing.models import FilterOutcome, FilterResult, Item, RejectReason
from newsrelay.storage.base import HistoryStore

logger = get_logger(__name__)


@dataclass
class DuplicateFilter:
    """Reject items that were already delivered (or look like they were)."""

    history: HistoryStore
    config: PipelineConfig = field(default_factory=PipelineConfig)

    async def check(self, item: Item) -> FilterResult:
        """Run one candidate through the URL, fingerprint and similarity checks.

        Args:
            item: The candidate item (fingerprint already computed)

        Returns:
            FilterResult with the terminal outcome
        """
        try:
            return await self._check(item)
        except Exception as e:
            logger.warning(
                "History lookup failed - accepting item",
                url=item.url,
                error_type=type(e).__name__,
                error=str(e),
            )
            return FilterResult(item=item, outcome=FilterOutcome.accepted, fail_open=True)

    async def _check(self, item: Item) -> FilterResult:
        if await self.history.find_by_url(item.url) is not None:
            logger.debug("Item discarded: duplicate URL", url=item.url)
            return self._reject(item, RejectReason.url)

        if await self.history.find_by_fingerprint(item.fingerprint) is not None:
            logger.debug("Item discarded: duplicate content hash", title=item.title)
            return self._reject(item, RejectReason.fingerprint)

        since = datetime.now(UTC) - timedelta(hours=self.config.history_lookback_hours)
        recent = await self.history.find_delivered_since(since)
        for existing in recent:
            if similar(existing.content, item.content, self.config.similarity_threshold):
                logger.debug(
                    "Item discarded: similar content",
                    title=item.title,
                    similar_to=existing.title,
                )
                return self._reject(item, RejectReason.similarity)

        return FilterResult(item=item, outcome=FilterOutcome.accepted)

    @staticmethod
    def _reject(item: Item, reason: RejectReason) -> FilterResult:
        return FilterResult(item=item, outcome=FilterOutcome.rejected, reason=reason)

    async def filter(self, items: list[Item]) -> list[Item]:
        """Check candidates one by one and return the accepted ones in order."""
        accepted: list[Item] = []
        rejected = 0
        fail_open = 0
        for item in items:
            result = await self.check(item)
            if result.accepted:
                accepted.append(item)
                fail_open += int(result.fail_open)
            else:
                rejected += 1

        logger.info(
            "Duplicate filter complete",
            candidates=len(items),
            accepted=len(accepted),
            rejected=rejected,
            fail_open=fail_open,
        )
        return accepted
