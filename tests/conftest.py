"""Shared fixtures: records, a background template and logo images."""

from datetime import date
from decimal import Decimal
from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image
from pypdf import PdfReader
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from document_core.config import Settings
from document_core.models import (
    BillingSettings,
    Customer,
    DocumentIdentity,
    DocumentKind,
    Position,
    Profile,
)
from document_core.numbering import NumberingAllocator
from document_core.storage import LocalAssetStore

TEMPLATE_KEY = "vorlagen/standard.pdf"
LOGO_KEY = "logos/logo.png"


def make_template(pagesize=A4) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=pagesize)
    c.setFont("Helvetica", 6)
    c.drawString(10, 10, "Briefpapier")
    c.showPage()
    c.save()
    return buf.getvalue()


def make_image(fmt: str, size: tuple[int, int] = (600, 200)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, (200, 30, 30)).save(buf, format=fmt)
    return buf.getvalue()


def item(description: str = "Montage", quantity="1", unit_price="10", unit: str = "Std") -> Position:
    return Position(kind="item", description=description, quantity=quantity, unit_price=unit_price, unit=unit)


def many_items(count: int) -> list[Position]:
    return [item(f"Leistung Nummer {i} mit etwas Beschreibung", "2", "12.5") for i in range(count)]


def pdf_pages_text(pdf: bytes) -> list[str]:
    return [page.extract_text() or "" for page in PdfReader(BytesIO(pdf)).pages]


@pytest.fixture
def template_pdf() -> bytes:
    return make_template()


@pytest.fixture
def png_logo() -> bytes:
    return make_image("PNG")


@pytest.fixture
def jpeg_logo() -> bytes:
    return make_image("JPEG")


@pytest.fixture
def profile() -> Profile:
    return Profile(
        company_name="Malerbetrieb Sommer",
        street="Hauptstraße",
        house_number="5",
        postal_code="10115",
        city="Berlin",
        logo_path=LOGO_KEY,
        website="www.sommer-maler.de",
    )


@pytest.fixture
def customer() -> Customer:
    return Customer(
        id="c-1",
        first_name="Erika",
        last_name="Muster",
        street="Lindenweg",
        house_number="12",
        postal_code="80331",
        city="München",
        customer_number="K-42",
    )


@pytest.fixture
def billing() -> BillingSettings:
    return BillingSettings(
        template=TEMPLATE_KEY,
        account_holder="Malerbetrieb Sommer",
        iban="DE02120300000000202051",
        bic="BYLADEM1001",
        billing_phone="030 123456",
        billing_email="info@sommer-maler.de",
        quote_prefix="AN-",
        quote_start=1000,
        order_confirmation_prefix="AB-",
        invoice_prefix="RE-",
        invoice_start=41,
        invoice_suffix="/26",
    )


@pytest.fixture
def identity() -> DocumentIdentity:
    return DocumentIdentity(
        kind=DocumentKind.INVOICE,
        number="RE-42/26",
        issue_date=date(2026, 3, 2),
        due_date=date(2026, 3, 16),
        parent_number="AB-7",
    )


@pytest.fixture
def basic_positions() -> list[Position]:
    return [item("Wand streichen", 2, 100), item("Material", 1, 50)]


@pytest.fixture
def asset_store(tmp_path: Path, template_pdf: bytes, png_logo: bytes) -> LocalAssetStore:
    root = tmp_path / "assets"
    (root / "vorlagen").mkdir(parents=True)
    (root / "logos").mkdir()
    (root / TEMPLATE_KEY).write_bytes(template_pdf)
    (root / LOGO_KEY).write_bytes(png_logo)
    return LocalAssetStore(root)


@pytest.fixture
def allocator(tmp_path: Path) -> NumberingAllocator:
    return NumberingAllocator.from_url(f"sqlite:///{tmp_path / 'numbers.db'}")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        asset_dir=tmp_path / "assets",
        database_url=f"sqlite:///{tmp_path / 'numbers.db'}",
    )


@pytest.fixture
def tax_rate() -> Decimal:
    return Decimal("19")
