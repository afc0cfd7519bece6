"""Unit tests for text normalization and word wrapping."""

import pytest

from document_core.text import fit_font_size, sanitize, string_width, wrap_paragraphs, wrap_text

FONT = "Helvetica"
SIZE = 10

SAMPLES = [
    "Lieferung und Montage einer Einbauküche inklusive Arbeitsplatte und Spüle",
    "Kurz",
    "Ein sehr langer Text " * 12,
    "Zeile eins\nZeile zwei\r\n  mit   vielen    Leerzeichen",
    "Donaudampfschifffahrtsgesellschaftskapitän hat ein Boot",
]


class TestSanitize:
    def test_collapses_whitespace_and_newlines(self) -> None:
        assert sanitize("a\n\nb \t c\r\nd") == "a b c d"

    def test_replaces_typographic_punctuation(self) -> None:
        text = "\u201eZitat\u201c \u2018x\u2019 1\u20132 a\u2014b 5\u00a0kg"
        assert sanitize(text) == "\"Zitat\" 'x' 1-2 a-b 5 kg"

    def test_none_is_empty(self) -> None:
        assert sanitize(None) == ""


class TestWrapText:
    def test_empty_text_has_no_lines(self) -> None:
        assert wrap_text("", 100, FONT, SIZE) == []
        assert wrap_text("   \n ", 100, FONT, SIZE) == []

    def test_short_text_stays_on_one_line(self) -> None:
        assert wrap_text("Farbe weiß", 200, FONT, SIZE) == ["Farbe weiß"]

    @pytest.mark.parametrize("width", [40, 120, 252])
    def test_lines_never_exceed_width_unless_single_word(self, width: float) -> None:
        for text in SAMPLES:
            for line in wrap_text(text, width, FONT, SIZE):
                if string_width(line, FONT, SIZE) > width:
                    assert " " not in line

    def test_words_are_preserved_in_order(self) -> None:
        text = SAMPLES[0]
        lines = wrap_text(text, 80, FONT, SIZE)
        assert " ".join(lines) == sanitize(text)

    def test_overlong_word_gets_its_own_line(self) -> None:
        lines = wrap_text("ab Donaudampfschifffahrtsgesellschaft cd", 60, FONT, SIZE)
        assert lines == ["ab", "Donaudampfschifffahrtsgesellschaft", "cd"]

    def test_greedy_fill(self) -> None:
        width = string_width("aa bb", FONT, SIZE)
        assert wrap_text("aa bb cc dd", width, FONT, SIZE) == ["aa bb", "cc dd"]


def test_wrap_paragraphs_keeps_blank_paragraphs() -> None:
    paragraphs = wrap_paragraphs("Erster Absatz\n\nZweiter Absatz", 500, FONT, SIZE)
    assert paragraphs == [["Erster Absatz"], [], ["Zweiter Absatz"]]


class TestFitFontSize:
    def test_fitting_title_keeps_max_size(self) -> None:
        assert fit_font_size("Rechnung", "Helvetica-Bold", 500) == 16

    def test_long_title_is_scaled_down(self) -> None:
        title = "Auftragsbest\u00e4tigung - Gemeinschaftspraxis am Stadtpark"
        max_width = string_width(title, "Helvetica-Bold", 16) * 0.8
        size = fit_font_size(title, "Helvetica-Bold", max_width)
        assert size == 12
        assert string_width(title, "Helvetica-Bold", size) <= max_width

    def test_never_below_minimum(self) -> None:
        assert fit_font_size("x" * 400, "Helvetica-Bold", 100) == 10
