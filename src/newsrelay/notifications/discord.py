"""Discord webhook delivery sink.

Posts rich embeds to a Discord webhook. Non-2xx answers are raised as
DeliveryError carrying the status code, so callers can tell a malformed
payload (4xx) from an outage or rate limit (5xx/429).
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from typing import Any

import httpx
from pydantic import BaseModel, Field

from newsrelay.core.constants import (
    DISCORD_HTTP_TIMEOUT,
    DISCORD_MAX_DESCRIPTION_LENGTH,
    DISCORD_MAX_TITLE_LENGTH,
    HTTP_URL_PATTERN,
)
from newsrelay.core.exceptions import DeliveryError, ErrorKind
from newsrelay.core.logging import get_logger
from newsrelay.processing.common.text import truncate
from newsrelay.processing.models import EnrichedItem

logger = get_logger(__name__)

DEFAULT_EMBED_COLOR = 3447003  # Discord blurple-ish blue

_URL_RE = re.compile(HTTP_URL_PATTERN)


class Embed(BaseModel):
    """One Discord embed (one delivered item)."""

    title: str | None = Field(default=None, max_length=DISCORD_MAX_TITLE_LENGTH)
    description: str | None = Field(default=None, max_length=DISCORD_MAX_DESCRIPTION_LENGTH)
    url: str | None = None
    color: int | None = None
    timestamp: str | None = None

    @property
    def characters(self) -> int:
        """Characters counted against Discord's per-message budget."""
        return len(self.title or "") + len(self.description or "")


class DiscordWebhookPayload(BaseModel):
    """Body posted to the webhook."""

    content: str | None = None
    username: str | None = None
    embeds: list[Embed] = Field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


def sanitize_url(url: str | None) -> str | None:
    """Keep only absolute http(s) URLs."""
    if url is None or not _URL_RE.match(url):
        return None
    return url


def format_timestamp(value: datetime) -> str:
    """ISO-8601 timestamp; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def build_embed(enriched: EnrichedItem, color: int = DEFAULT_EMBED_COLOR) -> Embed:
    """Format an enriched item as a Discord embed within Discord's field limits."""
    return Embed(
        title=truncate(enriched.title, DISCORD_MAX_TITLE_LENGTH),
        description=truncate(enriched.description, DISCORD_MAX_DESCRIPTION_LENGTH),
        url=sanitize_url(enriched.item.url),
        color=color,
        timestamp=format_timestamp(enriched.item.published_at),
    )


class DiscordWebhookSink:
    """Delivery sink that posts payloads to a Discord webhook URL."""

    def __init__(self, timeout: float = DISCORD_HTTP_TIMEOUT, username: str | None = None) -> None:
        self._timeout = timeout
        self._username = username

    async def send(self, target: str, payload: DiscordWebhookPayload) -> None:
        """Post one payload.

        Raises:
            DeliveryError: with ``status_code`` for HTTP errors, tagged
                transient for timeouts/transport errors
        """
        if not target or not target.strip():
            raise DeliveryError("Discord webhook URL not configured", kind=ErrorKind.permanent)

        body = payload.to_json()
        if self._username and "username" not in body:
            body["username"] = self._username

        logger.debug("Sending payload to Discord", embeds=len(payload.embeds))
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(target, json=body)
        except httpx.TimeoutException as e:
            logger.error(
                "Discord webhook timed out",
                error_type=type(e).__name__,
                timeout=self._timeout,
            )
            raise DeliveryError("Discord webhook timed out", kind=ErrorKind.transient) from e
        except httpx.HTTPError as e:
            logger.error(
                "Discord webhook HTTP error",
                error_type=type(e).__name__,
                error=str(e),
            )
            raise DeliveryError(f"Discord webhook failed: {e}", kind=ErrorKind.transient) from e

        if response.status_code in (200, 204):
            logger.info("Discord message sent", embeds=len(payload.embeds))
            return

        status = response.status_code
        if status == 429:
            logger.warning("Discord rate limited", body=response.text[:200])
        elif 400 <= status < 500:
            logger.error(
                "Discord rejected payload (invalid form body)",
                status=status,
                body=response.text[:200],
            )
        else:
            logger.error("Discord server error", status=status, body=response.text[:200])
        raise DeliveryError(f"Discord webhook returned {status}", status_code=status)
