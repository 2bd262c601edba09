"""Text normalization, content fingerprints and fuzzy similarity.

Pure functions, no I/O:
- normalize(): lower-case, keep only Unicode letters/digits/whitespace
- fingerprint(): SHA-256 hex digest of the normalized text
- similar(): Jaro-Winkler similarity of normalized texts against a threshold
"""

import hashlib
import re

from rapidfuzz.distance import JaroWinkler

DEFAULT_SIMILARITY_THRESHOLD = 0.8

_WHITESPACE_RE = re.compile(r"\s+")


def normalize(text: str | None) -> str:
    """Normalize text for hashing and comparison.

    Examples:
        >>> normalize("  Hello,   World! ")
        'hello world'
        >>> normalize(None)
        ''
    """
    if not text:
        return ""
    kept = "".join(ch for ch in text.lower() if ch.isalnum() or ch.isspace())
    return _WHITESPACE_RE.sub(" ", kept).strip()


def fingerprint(text: str | None) -> str:
    """Return the 64-char lowercase SHA-256 hex digest of ``normalize(text)``."""
    return hashlib.sha256(normalize(text).encode("utf-8")).hexdigest()


def similarity(a: str | None, b: str | None) -> float:
    """Jaro-Winkler similarity (0.0-1.0) of the normalized texts.

    Returns 0.0 if either side is None.
    """
    if a is None or b is None:
        return 0.0
    return float(JaroWinkler.normalized_similarity(normalize(a), normalize(b)))


def similar(
    a: str | None,
    b: str | None,
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
) -> bool:
    """Check whether two texts are near-duplicates.

    Never raises; a None on either side is never similar.
    """
    if a is None or b is None:
        return False
    return similarity(a, b) >= threshold
