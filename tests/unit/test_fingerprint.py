"""Tests for text normalization, fingerprints and similarity."""

import pytest

from newsrelay.processing.fingerprint import fingerprint, normalize, similar, similarity


class TestNormalize:
    def test_strips_punctuation_and_case(self) -> None:
        assert normalize("  Hello,   World! ") == "hello world"

    def test_none_and_empty(self) -> None:
        assert normalize(None) == ""
        assert normalize("") == ""

    def test_keeps_unicode_letters(self) -> None:
        assert normalize("Não é Ótimo?") == "não é ótimo"

    def test_collapses_newlines_and_tabs(self) -> None:
        assert normalize("a\n\tb   c") == "a b c"


class TestFingerprint:
    def test_deterministic(self) -> None:
        assert fingerprint("Some headline") == fingerprint("Some headline")

    def test_equivalent_after_normalization(self) -> None:
        assert fingerprint("Hello, World!") == fingerprint("hello world")

    def test_is_sha256_hex(self) -> None:
        digest = fingerprint("anything")
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    def test_different_text_different_fingerprint(self) -> None:
        assert fingerprint("Apple launches iPhone") != fingerprint("Google launches Pixel")


class TestSimilarity:
    def test_identical_texts(self) -> None:
        assert similarity("Nintendo reveals Switch 2", "nintendo reveals switch 2!") == 1.0

    def test_none_is_zero(self) -> None:
        assert similarity(None, "text") == 0.0
        assert similarity("text", None) == 0.0

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ("Nintendo reveals Switch 2 price", "Nintendo reveals the Switch 2 price"),
            ("Apple earnings beat", "Valve announces Half-Life 3"),
        ],
    )
    def test_symmetric(self, a: str, b: str) -> None:
        assert similar(a, b) == similar(b, a)

    def test_near_duplicate_titles(self) -> None:
        assert similar(
            "Nintendo reveals Switch 2 price and release date",
            "Nintendo reveals Switch 2 price and launch date",
        )

    def test_unrelated_titles(self) -> None:
        assert not similar(
            "Nintendo reveals Switch 2 price",
            "Microsoft reports quarterly cloud revenue growth",
        )

    def test_none_never_similar(self) -> None:
        assert similar(None, "x") is False
        assert similar("x", None) is False
        assert similar(None, None) is False

    def test_threshold_is_respected(self) -> None:
        a, b = "abcdef", "abcxyz"
        score = similarity(a, b)
        assert similar(a, b, threshold=score)
        assert not similar(a, b, threshold=min(1.0, score + 0.01))
