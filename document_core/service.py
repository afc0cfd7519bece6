"""The generation flows: offer, offer -> order confirmation, order
confirmation -> invoice, and an invoice written directly.

All of them share one sequence: check the inputs, load the template and the
logo, take a document number, render, store the PDF and hand back the record
that describes it. A request with ``commit=False`` is a preview: it takes no
number and stores nothing.
"""

import logging
from dataclasses import dataclass
from datetime import date

from .assembler import DocumentAssembler, RenderContext
from .config import get_settings
from .errors import MissingDataError
from .flavors import FLAVORS
from .models import Discount, DocumentIdentity, DocumentKind, DocumentRecord
from .money import add_days
from .numbering import format_document_number

logger = logging.getLogger(__name__)


@dataclass
class GeneratedDocument:
    pdf: bytes
    filename: str
    record: DocumentRecord
    page_count: int
    committed: bool = True


class DocumentService:
    def __init__(self, allocator, assets, settings=None):
        self.allocator = allocator
        self.assets = assets
        self.settings = settings or get_settings()

    def generate(self, flow, request):
        """Run the flow named ``flow``; a document kind picks its default flow."""
        flows = {
            "offer": self.generate_offer,
            "order_confirmation": self.confirm_offer,
            "invoice": self.generate_invoice,
            "invoice_from_order": self.invoice_order,
        }
        if isinstance(flow, DocumentKind):
            flow = flow.value
        return flows[flow](request)

    def generate_offer(self, request):
        """Render an offer.

        An offer that already has a number is being re-rendered after an edit
        and keeps it; otherwise a new number is taken.
        """
        source = self._require(request)
        flavor = FLAVORS[DocumentKind.OFFER]
        assets = self._load_assets(request)
        issue_date = source.issue_date or date.today()
        number, sequence = source.number, None
        if not number:
            number, sequence = self._take_number(request, DocumentKind.OFFER, issue_date)
        identity = DocumentIdentity(
            kind=DocumentKind.OFFER,
            number=number,
            sequence=sequence,
            issue_date=issue_date,
            due_date=source.valid_until or add_days(issue_date, self.settings.due_days),
        )
        return self._build(
            request, identity, assets, discount=source.discount,
            title=flavor.title(request.customer.display_name, source.title),
            intro=flavor.intro(fallback=source.intro),
        )

    def confirm_offer(self, request):
        """Order confirmation for an accepted offer."""
        source = self._require(request)
        if not source.number:
            raise MissingDataError("Offer number missing")
        flavor = FLAVORS[DocumentKind.ORDER_CONFIRMATION]
        assets = self._load_assets(request)
        issue_date = source.issue_date or date.today()
        number, sequence = self._take_number(request, DocumentKind.ORDER_CONFIRMATION, issue_date)
        identity = DocumentIdentity(
            kind=DocumentKind.ORDER_CONFIRMATION,
            number=number,
            sequence=sequence,
            issue_date=issue_date,
            parent_number=source.number,
        )
        return self._build(
            request, identity, assets, discount=source.discount,
            title=flavor.title(request.customer.display_name),
            intro=flavor.intro(source.number),
        )

    def generate_invoice(self, request):
        """Invoice written directly from the caller's positions.

        ``source.number`` marks an edit of an existing invoice: it keeps its
        number and the date it was first issued with.
        """
        source = self._require(request)
        flavor = FLAVORS[DocumentKind.INVOICE]
        assets = self._load_assets(request)
        number, sequence = source.number, None
        if number:
            stored = self.allocator.find_issued(request.owner_id, DocumentKind.INVOICE, number)
            issue_date = stored.issue_date if stored else source.issue_date or date.today()
        else:
            issue_date = source.issue_date or date.today()
            number, sequence = self._take_number(request, DocumentKind.INVOICE, issue_date)
        identity = DocumentIdentity(
            kind=DocumentKind.INVOICE,
            number=number,
            sequence=sequence,
            issue_date=issue_date,
            due_date=add_days(issue_date, self.settings.due_days),
        )
        return self._build(
            request, identity, assets, discount=source.discount,
            title=source.title or flavor.title(request.customer.display_name),
            intro=source.intro,
        )

    def invoice_order(self, request):
        """Invoice for a confirmed order, due after the configured days.

        The confirmation's own discount wins when it is active; otherwise the
        discount of the offer it came from (``request.parent_discount``) is
        applied.
        """
        source = self._require(request)
        if not source.number:
            raise MissingDataError("Order confirmation number missing")
        flavor = FLAVORS[DocumentKind.INVOICE]
        discount = source.discount
        if not (discount and discount.active) and request.parent_discount is not None:
            discount = request.parent_discount
        assets = self._load_assets(request)
        issue_date = source.issue_date or date.today()
        number, sequence = self._take_number(request, DocumentKind.INVOICE, issue_date)
        identity = DocumentIdentity(
            kind=DocumentKind.INVOICE,
            number=number,
            sequence=sequence,
            issue_date=issue_date,
            due_date=add_days(issue_date, self.settings.due_days),
            parent_number=source.number,
        )
        return self._build(
            request, identity, assets, discount=discount,
            title=flavor.title(request.customer.display_name),
            intro=flavor.intro(source.number),
        )

    def _require(self, request):
        if request.source is None:
            raise MissingDataError("Source document not found")
        if request.customer is None:
            raise MissingDataError("Customer not found")
        if request.profile is None:
            raise MissingDataError("Profile not found")
        if request.billing is None:
            raise MissingDataError("Billing settings not found")
        return request.source

    def _load_assets(self, request):
        """Template and logo, fetched before a number is taken."""
        template = self.assets.get(request.billing.template)
        if template is None:
            raise MissingDataError("Template not found")
        logo = self.assets.get(request.profile.logo_path)
        if request.profile.logo_path and logo is None:
            logger.warning("Logo %s not found, rendering without it", request.profile.logo_path)
        return template, logo

    def _allocate(self, request, kind):
        prefix, start, suffix = request.billing.numbering_for(kind)
        sequence = self.allocator.allocate(request.owner_id, kind, start=start)
        return format_document_number(prefix, sequence, suffix), sequence

    def _take_number(self, request, kind, issue_date):
        """Number for a new document, or ``(None, None)`` for a preview.

        A request repeated with the same idempotency key gets the number the
        first one received.
        """
        if not request.commit:
            return None, None
        key = request.idempotency_key
        earlier = self.allocator.find_by_key(request.owner_id, kind, key)
        if earlier is not None:
            logger.info("Request %s already received %s number %s", key, kind.value, earlier.number)
            return earlier.number, None
        number, sequence = self._allocate(request, kind)
        registered = self.allocator.register(request.owner_id, kind, number, issue_date, idempotency_key=key)
        if registered.number != number:
            return registered.number, None
        return number, sequence

    def _build(self, request, identity, assets, discount, title, intro):
        source = request.source
        customer = request.customer
        flavor = FLAVORS[identity.kind]
        template, logo = assets
        context = RenderContext(
            identity=identity,
            profile=request.profile,
            customer=customer,
            billing=request.billing,
            positions=source.positions,
            tax_rate=source.tax_rate,
            discount=discount,
            title=title,
            intro=intro,
            template_pdf=template.data,
            logo_data=logo.data if logo else None,
            logo_mime=logo.mime_type if logo else None,
        )
        path = None
        try:
            result = DocumentAssembler(
                context,
                currency_label=self.settings.currency_label,
                logo_max_width=self.settings.logo_max_width,
                logo_max_height=self.settings.logo_max_height,
            ).render()
            if request.commit:
                path = flavor.storage_path(identity.number, customer.customer_number)
                self.assets.put(path, result.pdf, content_type="application/pdf")
        except Exception:
            if identity.sequence is not None:
                logger.error("%s number %s was taken but no document was stored", identity.kind.value, identity.number)
            raise

        totals = result.summary.rounded()
        record = DocumentRecord(
            kind=identity.kind,
            number=identity.number,
            parent_number=identity.parent_number,
            owner_id=request.owner_id,
            customer_id=customer.id or source.customer_id,
            issue_date=identity.issue_date,
            due_date=identity.due_date,
            title=title,
            intro=intro,
            tax_rate=source.tax_rate,
            positions=source.positions,
            discount=discount or Discount(),
            net_subtotal=totals.net_subtotal,
            discount_amount=totals.discount_amount,
            net_after_discount=totals.net_after_discount,
            tax_amount=totals.tax_amount,
            gross_total=totals.gross_total,
            pdf_path=path,
            status="Erstellt" if request.commit else None,
        )
        return GeneratedDocument(
            pdf=result.pdf,
            filename=flavor.filename(identity.number, customer.customer_number),
            record=record,
            page_count=result.page_count,
            committed=request.commit,
        )
