"""Data ingestion layer: RSS feeds."""

from newsrelay.ingestion.rss import RSSFeedClient, entry_to_item

__all__ = ["RSSFeedClient", "entry_to_item"]
