"""What differs between an offer, an order confirmation and an invoice."""

import re
from dataclasses import dataclass

from .models import DocumentKind


@dataclass(frozen=True)
class DocumentFlavor:
    kind: DocumentKind
    number_label: str
    # label of the second date in the identity block, if the kind has one
    due_label: str | None
    title_template: str | None
    intro_template: str | None
    file_stem: str
    folder: str
    meta_width: float = 150
    meta_value_offset: float = 80

    def title(self, customer_name, fallback=""):
        if self.title_template is None:
            return fallback
        return self.title_template.format(customer=customer_name)

    def intro(self, parent_number=None, fallback=""):
        if self.intro_template is None:
            return fallback
        return self.intro_template.format(parent=parent_number or "")

    def filename(self, number, customer_number=None):
        parts = [self.file_stem, safe_filename_part(number), safe_filename_part(customer_number)]
        return "_".join(part for part in parts if part) + ".pdf"

    def storage_path(self, number, customer_number=None):
        return f"{self.folder}/{self.filename(number, customer_number)}"


def safe_filename_part(value):
    return re.sub(r"[\W_]+", "_", value or "").strip("_")


OFFER = DocumentFlavor(
    kind=DocumentKind.OFFER,
    number_label="Angebotsnr.:",
    due_label="Gültig bis:",
    title_template=None,
    intro_template=None,
    file_stem="Angebot",
    folder="angebot",
)

ORDER_CONFIRMATION = DocumentFlavor(
    kind=DocumentKind.ORDER_CONFIRMATION,
    number_label="Auftragsbestätigungsnr.:",
    due_label=None,
    title_template="Auftragsbestätigung – {customer}",
    intro_template=(
        "Vielen Dank für Ihre Auftragsbestätigung. "
        "Nachfolgend die bestätigten Positionen:"
    ),
    file_stem="Auftragsbestaetigung",
    folder="auftrag",
    meta_width=170,
    meta_value_offset=140,
)

INVOICE = DocumentFlavor(
    kind=DocumentKind.INVOICE,
    number_label="Rechnungsnr.:",
    due_label="Zahlen bis:",
    title_template="Rechnung – {customer}",
    intro_template=(
        "Vielen Dank für Ihren Auftrag (AB: {parent}). "
        "Nachfolgend berechnen wir die vereinbarten Leistungen:"
    ),
    file_stem="Rechnung",
    folder="rechnung",
)

FLAVORS = {flavor.kind: flavor for flavor in (OFFER, ORDER_CONFIRMATION, INVOICE)}
