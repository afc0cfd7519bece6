# assembler.py
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from io import BytesIO

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from .errors import MissingDataError
from .flavors import FLAVORS
from .layout import (
    BOLD,
    FONT,
    FONT_SIZE,
    SMALL_FONT_SIZE,
    Layout,
    PageState,
    Paginator,
    TableRenderer,
    draw_rule,
)
from .logo import embed_logo
from .models import (
    BillingSettings,
    Customer,
    Discount,
    DiscountBase,
    DiscountKind,
    DocumentIdentity,
    Profile,
)
from .money import (
    MoneySummary,
    compute_summary,
    format_date,
    format_money,
    format_number,
    format_percent,
)
from .text import fit_font_size, wrap_paragraphs

logger = logging.getLogger(__name__)

HINT_COLOR = colors.Color(0.25, 0.25, 0.25)
SUMMARY_LINE = 16
SUMMARY_TOP_GAP = 40
HINT_GAP = 22
# shown in place of the number while previewing a new document
NO_NUMBER = "\u2014"


class Stage(Enum):
    INIT = "init"
    HEADER_DRAWN = "header_drawn"
    TABLE_IN_PROGRESS = "table_in_progress"
    PAGE_BREAK = "page_break"
    SUMMARY_DRAWN = "summary_drawn"
    FOOTER_APPLIED = "footer_applied"
    SERIALIZED = "serialized"


TRANSITIONS = {
    Stage.INIT: {Stage.HEADER_DRAWN},
    Stage.HEADER_DRAWN: {Stage.TABLE_IN_PROGRESS},
    Stage.TABLE_IN_PROGRESS: {Stage.PAGE_BREAK, Stage.SUMMARY_DRAWN},
    Stage.PAGE_BREAK: {Stage.TABLE_IN_PROGRESS},
    Stage.SUMMARY_DRAWN: {Stage.FOOTER_APPLIED},
    Stage.FOOTER_APPLIED: {Stage.SERIALIZED},
    Stage.SERIALIZED: set(),
}


@dataclass
class RenderContext:
    """Resolved input of one rendering call."""

    identity: DocumentIdentity
    profile: Profile
    customer: Customer
    billing: BillingSettings
    positions: list
    tax_rate: Decimal
    discount: Discount | None = None
    title: str = ""
    intro: str = ""
    template_pdf: bytes | None = None
    logo_data: bytes | None = None
    logo_mime: str | None = None


@dataclass
class RenderResult:
    pdf: bytes
    summary: MoneySummary
    page_count: int
    page_breaks: int = 0
    placements: list = field(default_factory=list)


def read_template_page(template_pdf):
    """First page of the background template, or None when there is none."""
    if not template_pdf:
        return None
    try:
        return PdfReader(BytesIO(template_pdf)).pages[0]
    except (PdfReadError, IndexError, ValueError) as exc:
        raise MissingDataError("Template could not be read") from exc


class DocumentAssembler:
    """Lays out one document and serializes it.

    An assembler renders exactly once; create a new one per document.
    """

    def __init__(self, context, currency_label="EUR", logo_max_width=260, logo_max_height=80):
        self.context = context
        self.flavor = FLAVORS[context.identity.kind]
        self.currency_label = currency_label
        self.logo_max_width = logo_max_width
        self.logo_max_height = logo_max_height
        self.stage = Stage.INIT
        self.history = [Stage.INIT]

    def _enter(self, stage):
        if stage not in TRANSITIONS[self.stage]:
            raise RuntimeError(f"Cannot go from {self.stage.value} to {stage.value}")
        self.stage = stage
        self.history.append(stage)

    def _on_break(self, state):
        logger.debug("Page break, now on page %d", state.page_number)
        if self.stage is Stage.INIT:
            # a long intro, the table has not started yet
            return
        self._enter(Stage.PAGE_BREAK)
        self._enter(Stage.TABLE_IN_PROGRESS)

    def render(self):
        ctx = self.context
        template_page = read_template_page(ctx.template_pdf)
        if template_page is not None:
            width = float(template_page.mediabox.width)
            height = float(template_page.mediabox.height)
        else:
            width, height = A4
        L = Layout(width=width, height=height)

        summary = compute_summary(ctx.positions, ctx.tax_rate, ctx.discount)

        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(width, height))
        box_width, box_height = L.logo_box(self.logo_max_width, self.logo_max_height)
        logo = embed_logo(ctx.logo_data, ctx.logo_mime, box_width, box_height, width)

        state = PageState()
        paginator = Paginator(c, L, logo=logo, on_break=self._on_break)

        y = self._draw_header(c, L, logo, paginator, state)
        self._enter(Stage.HEADER_DRAWN)

        self._enter(Stage.TABLE_IN_PROGRESS)
        paginator.start_table(state, y)
        TableRenderer(L, ctx.positions).render_all(c, paginator, state)

        self._draw_summary(c, L, paginator, state, summary)
        self._enter(Stage.SUMMARY_DRAWN)
        c.save()

        footer = self._render_footer(L)
        self._enter(Stage.FOOTER_APPLIED)

        pdf, page_count = self._serialize(buf.getvalue(), footer, template_page)
        self._enter(Stage.SERIALIZED)
        logger.info(
            "Rendered %s %s: %d page(s), gross %s",
            self.flavor.kind.value, ctx.identity.number or "preview", page_count, format_money(summary.gross_total),
        )
        return RenderResult(
            pdf=pdf,
            summary=summary,
            page_count=page_count,
            page_breaks=paginator.page_breaks,
            placements=list(paginator.placements),
        )

    def _draw_header(self, c, L, logo, paginator, state):
        """Logo, sender, recipient, identity block, title and intro.

        Returns the y below the intro where the table may start.
        """
        ctx = self.context
        flavor = self.flavor
        if logo is not None:
            logo.draw(c, L.logo_band_bottom, L.logo_band_height)

        base_y = L.logo_band_bottom - 20
        c.setFont(FONT, SMALL_FONT_SIZE)
        c.drawString(L.margin, base_y, ctx.profile.sender_line)

        # Recipient
        cust_y = base_y - 20
        c.setFont(BOLD, FONT_SIZE)
        c.drawString(L.margin, cust_y, ctx.customer.display_name)
        c.setFont(FONT, FONT_SIZE)
        for line in (ctx.customer.street_line, ctx.customer.city_line):
            if line:
                cust_y -= 13
                c.drawString(L.margin, cust_y, line)

        # Identity block on the right
        meta_x = L.width - L.margin - flavor.meta_width
        meta_y = base_y
        rows = [(flavor.number_label, ctx.identity.number or NO_NUMBER), ("Datum:", format_date(ctx.identity.issue_date))]
        if flavor.due_label and ctx.identity.due_date:
            rows.append((flavor.due_label, format_date(ctx.identity.due_date)))
        if ctx.customer.customer_number:
            rows.append(("Kundennr.:", ctx.customer.customer_number))
        for label, value in rows:
            c.setFont(BOLD, FONT_SIZE)
            c.drawString(meta_x, meta_y, label)
            c.setFont(FONT, FONT_SIZE)
            c.drawString(meta_x + flavor.meta_value_offset, meta_y, str(value))
            meta_y -= 13

        y = min(cust_y, meta_y) - 70

        title = ctx.title.strip()
        if title:
            size = fit_font_size(title, BOLD, L.content_width)
            c.setFont(BOLD, size)
            c.drawString(L.margin, y, title)
            y -= size + 14

        if not ctx.intro.strip():
            return y - 18
        c.setFont(FONT, FONT_SIZE)
        for lines in wrap_paragraphs(ctx.intro, L.content_width, FONT, FONT_SIZE):
            if not lines:
                # blank paragraph, keep the gap
                y -= L.line_height
                continue
            for line in lines:
                if y < L.bottom_limit:
                    paginator.new_page(state, with_header=False)
                    y = state.cursor_y
                    c.setFont(FONT, FONT_SIZE)
                c.drawString(L.margin, y, line)
                y -= L.line_height
        return y - 6

    def _summary_rows(self, summary):
        ctx = self.context
        discount = ctx.discount
        rows = [("Netto", format_money(summary.net_subtotal))]
        if discount is not None and discount.active:
            basis = "auf Netto" if discount.base is DiscountBase.NET else "auf Brutto"
            suffix = f" ({format_number(discount.value)}%)" if discount.kind is DiscountKind.PERCENT else ""
            rows.append((f"{discount.display_label} – {basis}{suffix}", f"-{format_money(summary.discount_amount)}"))
            rows.append(("Netto nach Rabatt", format_money(summary.net_after_discount)))
        rows.append((f"USt ({format_percent(ctx.tax_rate)} %)", format_money(summary.tax_amount)))
        rows.append(("Brutto", format_money(summary.gross_total)))
        return rows

    def _draw_summary(self, c, L, paginator, state, summary):
        discount = self.context.discount
        with_hint = discount is not None and discount.active
        rows = self._summary_rows(summary)
        height = SUMMARY_TOP_GAP + len(rows) * SUMMARY_LINE + (HINT_GAP if with_hint else 0)
        paginator.ensure_block(state, height)

        sum_y = state.cursor_y - SUMMARY_TOP_GAP
        draw_rule(c, L, sum_y + 18)
        sy = sum_y + 2
        c.setFont(FONT, FONT_SIZE)
        for label, amount in rows:
            c.drawString(L.margin, sy, label)
            c.drawString(L.price_x, sy, self.currency_label)
            c.drawRightString(L.total_x, sy, amount)
            sy -= SUMMARY_LINE

        if with_hint:
            note = f'Hinweis: Es wurde ein Rabatt namens "{discount.display_label}" angewendet.'
            c.saveState()
            c.setFont(FONT, SMALL_FONT_SIZE)
            c.setFillColor(HINT_COLOR)
            c.drawString(L.margin, max(L.footer_top + HINT_GAP, sy - HINT_GAP), note)
            c.restoreState()
        paginator.advance(state, height)

    def _render_footer(self, L):
        """One overlay page with the footer, stamped onto every page later."""
        ctx = self.context
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(L.width, L.height))
        draw_rule(c, L, L.footer_top)
        c.setFont(FONT, SMALL_FONT_SIZE)

        left = ctx.profile.address_lines
        middle = [
            f"Kontoinhaber: {ctx.billing.account_holder}",
            f"IBAN: {ctx.billing.iban}",
            f"BIC: {ctx.billing.bic}",
        ]
        right = [
            f"Tel: {ctx.billing.billing_phone}",
            f"E-Mail: {ctx.billing.billing_email}",
            ctx.profile.website,
        ]
        for i in range(3):
            y = L.footer_top - 12 - i * 11
            c.drawString(L.margin, y, left[i])
            c.drawCentredString(L.width / 2, y, middle[i])
            c.drawRightString(L.width - L.margin, y, right[i])
        c.showPage()
        c.save()
        return buf.getvalue()

    def _serialize(self, content_pdf, footer_pdf, template_page):
        footer_page = PdfReader(BytesIO(footer_pdf)).pages[0]
        writer = PdfWriter(clone_from=PdfReader(BytesIO(content_pdf)))
        for page in writer.pages:
            if template_page is not None:
                page.merge_page(template_page, over=False)
            page.merge_page(footer_page)
        out = BytesIO()
        writer.write(out)
        return out.getvalue(), len(writer.pages)


def generate_document_pdf(context, currency_label="EUR", logo_max_width=260, logo_max_height=80):
    """Render ``context`` and return a :class:`RenderResult`."""
    assembler = DocumentAssembler(
        context,
        currency_label=currency_label,
        logo_max_width=logo_max_width,
        logo_max_height=logo_max_height,
    )
    return assembler.render()
