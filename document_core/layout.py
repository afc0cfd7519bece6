"""Page geometry, the positions table and page breaking.

Coordinates are PDF points with the origin in the lower left corner, so the
cursor moves *down* by decreasing ``y``.
"""

from dataclasses import dataclass, field

from reportlab.lib import colors

from .models import PositionKind
from .money import format_money, format_number, running_subtotal
from .text import sanitize, wrap_text

FONT = "Helvetica"
BOLD = "Helvetica-Bold"
FONT_SIZE = 10
SMALL_FONT_SIZE = 9
RULE_COLOR = colors.Color(0.8, 0.8, 0.8)
RULE_WIDTH = 0.5

COLUMN_HEADERS = ("Position", "Anzahl", "Einheit", "Preis", "Total")
SUBTOTAL_LABEL = "Zwischensumme:"


@dataclass(frozen=True)
class Layout:
    width: float
    height: float
    margin: float = 32
    logo_band_height: float = 120
    footer_top: float = 40
    footer_gap: float = 5
    line_height: float = 12
    row_spacing: float = 4
    # distance intro -> column header on page one, logo band -> header afterwards
    first_header_offset: float = 36
    next_header_offset: float = 24
    first_row_gap: float = 14
    next_row_gap: float = 8
    # logo band -> first line on a continuation page without a table header
    plain_top_offset: float = 40
    # the table only starts on page one if this much room is left below its header
    table_start_reserve: float = 40

    @property
    def top_y(self):
        return self.height - self.margin

    @property
    def logo_band_bottom(self):
        return self.top_y - self.logo_band_height

    @property
    def bottom_limit(self):
        return self.footer_top + self.footer_gap

    @property
    def content_width(self):
        return self.width - 2 * self.margin

    @property
    def desc_x(self):
        return self.margin + 4

    @property
    def qty_x(self):
        return self.margin + 260

    @property
    def unit_x(self):
        return self.margin + 320

    @property
    def price_x(self):
        return self.width - self.margin - 125

    @property
    def total_x(self):
        return self.width - self.margin - 10

    @property
    def desc_width(self):
        return self.qty_x - self.desc_x - 4

    @property
    def full_row_width(self):
        return self.width - self.margin - self.desc_x

    def logo_box(self, max_width, max_height):
        return min(self.width - 2 * (self.margin + 8), max_width), max_height


def draw_rule(c, layout, y):
    c.saveState()
    c.setStrokeColor(RULE_COLOR)
    c.setLineWidth(RULE_WIDTH)
    c.line(layout.margin, y, layout.width - layout.margin, y)
    c.restoreState()


def draw_lines(c, lines, x, y, line_height):
    for i, line in enumerate(lines):
        c.drawString(x, y - i * line_height, line)


def draw_column_header(c, layout, y):
    position, quantity, unit, price, total = COLUMN_HEADERS
    text_y = y + 6
    c.setFont(BOLD, FONT_SIZE)
    c.drawString(layout.desc_x, text_y, position)
    c.drawString(layout.qty_x, text_y, quantity)
    c.drawString(layout.unit_x, text_y, unit)
    c.drawString(layout.price_x, text_y, price)
    c.drawRightString(layout.total_x, text_y, total)
    draw_rule(c, layout, y)


@dataclass
class PageState:
    """Where the next row goes. Only :class:`Paginator` changes it."""

    page_number: int = 1
    cursor_y: float = 0.0
    header_y: float = 0.0
    rows_on_page: int = 0

    @property
    def fresh_continuation(self):
        return self.page_number > 1 and self.rows_on_page == 0


@dataclass(frozen=True)
class Row:
    index: int
    height: float
    lines: list = field(default_factory=list)


class Paginator:
    """Decides page breaks and re-establishes the page chrome after one.

    ``on_break`` is called after every new page has been opened.
    """

    def __init__(self, c, layout, logo=None, on_break=None):
        self.c = c
        self.layout = layout
        self.logo = logo
        self.on_break = on_break
        self.page_breaks = 0
        # (page_number, top_y, height) of everything placed, for inspection
        self.placements = []

    def fits(self, state, height):
        return state.cursor_y - height >= self.layout.bottom_limit

    def start_table(self, state, y):
        """Put the column header below ``y`` on page one, or on a new page."""
        L = self.layout
        header_y = y - L.first_header_offset
        if header_y < L.bottom_limit + L.table_start_reserve:
            self.new_page(state)
            return
        draw_column_header(self.c, L, header_y)
        state.header_y = header_y
        state.cursor_y = header_y - L.first_row_gap
        state.rows_on_page = 0

    def new_page(self, state, with_header=True):
        """Open the next page with the logo and, for table rows, the column header."""
        L = self.layout
        self.c.showPage()
        self.page_breaks += 1
        state.page_number += 1
        if self.logo is not None:
            self.logo.draw(self.c, L.logo_band_bottom, L.logo_band_height)
        if with_header:
            state.header_y = L.logo_band_bottom - L.next_header_offset
            draw_column_header(self.c, L, state.header_y)
            state.cursor_y = state.header_y - L.next_row_gap
        else:
            state.header_y = L.logo_band_bottom - L.plain_top_offset
            state.cursor_y = state.header_y
        state.rows_on_page = 0
        if self.on_break is not None:
            self.on_break(state)

    def ensure_space(self, state, height):
        """Open a new page unless ``height`` fits above the footer.

        A row that does not even fit on an empty continuation page is left
        where it is; breaking again would not help.
        """
        if self.fits(state, height) or state.fresh_continuation:
            return False
        self.new_page(state)
        return True

    def ensure_block(self, state, height):
        """Like :meth:`ensure_space` for a block that must not be split.

        The block is not part of the table, so the new page gets no column
        header.
        """
        if self.fits(state, height):
            return False
        self.new_page(state, with_header=False)
        return True

    def advance(self, state, height):
        self.placements.append((state.page_number, state.cursor_y, height))
        state.cursor_y -= height
        state.rows_on_page += 1


class TableRenderer:
    """Measures and draws the rows of one position list."""

    def __init__(self, layout, positions):
        self.layout = layout
        self.positions = positions

    def measure(self, index):
        L = self.layout
        position = self.positions[index]
        single = L.line_height + L.row_spacing
        if position.kind is PositionKind.ITEM:
            lines = wrap_text(position.description, L.desc_width, FONT, FONT_SIZE)
        elif position.kind is PositionKind.DESCRIPTION:
            lines = wrap_text(position.description, L.full_row_width, FONT, FONT_SIZE)
        else:
            return Row(index, single)
        return Row(index, max(1, len(lines)) * L.line_height + L.row_spacing, lines)

    def draw(self, c, row, y):
        L = self.layout
        position = self.positions[row.index]
        kind = position.kind
        if kind is PositionKind.ITEM:
            c.setFont(FONT, FONT_SIZE)
            draw_lines(c, row.lines, L.desc_x, y, L.line_height)
            c.drawString(L.qty_x, y, format_number(position.quantity))
            c.drawString(L.unit_x, y, position.unit)
            c.drawString(L.price_x, y, format_money(position.unit_price))
            c.drawRightString(L.total_x, y, format_money(position.line_total))
        elif kind is PositionKind.HEADING:
            c.setFont(BOLD, FONT_SIZE)
            c.drawString(L.desc_x, y, sanitize(position.description))
        elif kind is PositionKind.DESCRIPTION:
            c.setFont(FONT, FONT_SIZE)
            draw_lines(c, row.lines, L.desc_x, y, L.line_height)
        elif kind is PositionKind.SUBTOTAL:
            amount = format_money(running_subtotal(self.positions, row.index))
            c.setFont(BOLD, FONT_SIZE)
            c.drawString(L.desc_x, y, SUBTOTAL_LABEL)
            c.drawRightString(L.total_x, y, amount)
        elif kind is PositionKind.SEPARATOR:
            draw_rule(c, L, y)

    def render_all(self, c, paginator, state):
        for index in range(len(self.positions)):
            row = self.measure(index)
            paginator.ensure_space(state, row.height)
            self.draw(c, row, state.cursor_y)
            paginator.advance(state, row.height)
