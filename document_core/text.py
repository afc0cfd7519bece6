import math
import re

from reportlab.pdfbase.pdfmetrics import stringWidth

_WHITESPACE = re.compile(r"\s+")
_REPLACEMENTS = {
    "\u00a0": " ",
    "\u202f": " ",
    "\u201c": '"',
    "\u201d": '"',
    "\u201e": '"',
    "\u2018": "'",
    "\u2019": "'",
    "\u2013": "-",
    "\u2014": "-",
}


def sanitize(text):
    """Normalize text for the standard PDF fonts.

    Runs of whitespace and line breaks collapse to a single space, typographic
    quotes and dashes become their ASCII counterparts.
    """
    text = text or ""
    for src, dst in _REPLACEMENTS.items():
        text = text.replace(src, dst)
    return _WHITESPACE.sub(" ", text).strip()


def string_width(text, font, size):
    return stringWidth(text, font, size)


def wrap_text(text, max_width, font, size):
    """Greedy word wrap. Returns the lines, or [] for blank text.

    A single word wider than ``max_width`` is put on a line of its own; words
    are never hyphenated.
    """
    lines = []
    line = ""
    for word in sanitize(text).split(" "):
        if not word:
            continue
        candidate = f"{line} {word}" if line else word
        if line and string_width(candidate, font, size) > max_width:
            lines.append(line)
            line = word
        else:
            line = candidate
    if line:
        lines.append(line)
    return lines


def wrap_paragraphs(text, max_width, font, size):
    """Wrap text that may contain several paragraphs.

    Returns one list of lines per paragraph; a blank paragraph yields [].
    """
    text = (text or "").replace("\r\n", "\n")
    return [wrap_text(para, max_width, font, size) for para in text.split("\n")]


def fit_font_size(text, font, max_width, max_size=16, min_size=10):
    """Largest size up to ``max_size`` that lets ``text`` fit in one line."""
    width = string_width(text, font, max_size)
    if width <= max_width or width == 0:
        return max_size
    scaled = math.floor(max_size * max_width / width)
    return max(min_size, scaled)
