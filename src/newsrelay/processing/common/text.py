"""Small text helpers shared by ingestion, enrichment and delivery."""

import html
import re

from newsrelay.core.constants import ELLIPSIS

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")


def truncate(text: str | None, max_length: int) -> str:
    """Cut ``text`` to ``max_length`` characters, ending in an ellipsis if cut."""
    if text is None:
        return ""
    if len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)] + ELLIPSIS


def clean_html(text: str | None) -> str:
    """Strip tags, unescape entities and collapse whitespace."""
    if not text:
        return ""
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    return _WHITESPACE_RE.sub(" ", text).strip()
