"""History store protocol.

The duplicate filter and the pipeline only talk to persistence through this
interface, so the PostgreSQL implementation can be swapped for anything that
remembers which items were delivered.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from newsrelay.processing.models import Item


@runtime_checkable
class HistoryStore(Protocol):
    """Protocol for the store that remembers delivered items.

    Lookups only consider items that were already delivered. Any method may
    raise; callers decide how to degrade.
    """

    async def find_by_url(self, url: str) -> Item | None:
        """Return a delivered item with exactly this URL, if any."""
        ...

    async def find_by_fingerprint(self, fingerprint: str) -> Item | None:
        """Return a delivered item with this content fingerprint, if any."""
        ...

    async def find_delivered_since(self, since: datetime) -> list[Item]:
        """Return items delivered and ingested at or after ``since``, newest first."""
        ...

    async def save(self, item: Item) -> Item:
        """Persist an item and return it with its identifier assigned."""
        ...

    async def mark_delivered(self, items: list[Item]) -> None:
        """Persist the delivered flag for ``items`` and set it on the objects."""
        ...
