"""Notification services for NewsRelay."""

from newsrelay.notifications.discord import DiscordWebhookSink
from newsrelay.notifications.dispatcher import BatchedDispatcher, enrich_and_dispatch

__all__ = ["BatchedDispatcher", "DiscordWebhookSink", "enrich_and_dispatch"]
