"""Unit tests for whitespace normalization and text statistics."""
import pytest

from ragcore.rag.normalizer import count_words, normalize, text_stats


@pytest.mark.unit
class TestNormalize:
    """Test suite for normalize()."""

    def test_collapses_spaces_and_tabs(self):
        assert normalize("a  \t b\t\tc") == "a b c"

    def test_collapses_newline_runs(self):
        assert normalize("first\n\n\nsecond") == "first\nsecond"

    def test_whitespace_around_newlines_is_absorbed(self):
        assert normalize("first  \n \n  second\r\nthird") == "first\nsecond\nthird"

    def test_trims_both_ends(self):
        assert normalize("  \n padded \t\n ") == "padded"

    def test_empty_and_blank(self):
        assert normalize("") == ""
        assert normalize(" \n\t ") == ""

    @pytest.mark.parametrize(
        "text",
        [
            "plain text",
            "  lots   of\t\tspace  ",
            "para one.\n\n\npara two.\r\n\r\n  para three.",
            "unicode\u00a0space\u2003line",
            "\n\n\n",
        ],
    )
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once


@pytest.mark.unit
def test_count_words():
    assert count_words("one two  three\nfour") == 4
    assert count_words("   ") == 0


@pytest.mark.unit
def test_text_stats():
    assert text_stats("hello world") == {"word_count": 2, "character_count": 11}
