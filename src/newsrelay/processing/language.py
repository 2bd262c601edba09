"""Language conformance check for rewritten news.

Accepts text unless the detector is confident it is in some other language.
Detector failures fail open so enrichment is never starved by a flaky model.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from langdetect import DetectorFactory, detect_langs

from newsrelay.core.constants import LANGUAGE_REJECT_CONFIDENCE
from newsrelay.core.logging import get_logger

logger = get_logger(__name__)

# langdetect is non-deterministic unless seeded
DetectorFactory.seed = 0


@runtime_checkable
class LanguageChecker(Protocol):
    def is_target_language(self, text: str | None) -> bool: ...


class LangDetectChecker:
    """LanguageChecker backed by langdetect."""

    def __init__(
        self,
        target_language: str = "en",
        reject_confidence: float = LANGUAGE_REJECT_CONFIDENCE,
    ) -> None:
        self.target_language = target_language.lower()
        self.reject_confidence = reject_confidence

    def is_target_language(self, text: str | None) -> bool:
        if text is None or not text.strip():
            logger.debug("Empty text is never in the target language")
            return False

        try:
            candidates = detect_langs(text)
        except Exception as e:
            logger.warning(
                "Language detection failed, accepting text",
                error_type=type(e).__name__,
                error=str(e),
            )
            return True

        if not candidates:
            return True

        best = candidates[0]
        if best.lang != self.target_language and best.prob > self.reject_confidence:
            logger.debug(
                "Text rejected as foreign language",
                detected=best.lang,
                confidence=round(best.prob, 3),
                target=self.target_language,
            )
            return False
        return True
