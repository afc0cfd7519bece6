"""Input and output records of the document generator.

Everything that arrives from callers passes through these models once; the
numeric fields are coerced to ``Decimal`` here so the layout and money code
never has to deal with strings or ``None``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

ZERO = Decimal("0")
# largest quantity, price or discount value accepted from callers
MAX_AMOUNT = Decimal("1e12")


def to_decimal(value, default=ZERO) -> Decimal:
    """Parse a number that may be given as text with a decimal comma."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, (int, float)):
        try:
            parsed = Decimal(str(value))
        except InvalidOperation:
            return default
        return parsed if parsed.is_finite() else default
    if isinstance(value, str):
        cleaned = value.strip().replace(" ", "")
        if "," in cleaned:
            # German notation, dots group thousands
            cleaned = cleaned.replace(".", "").replace(",", ".")
        if not cleaned:
            return default
        try:
            parsed = Decimal(cleaned)
        except InvalidOperation:
            return default
        return parsed if parsed.is_finite() else default
    return default


def _text(value) -> str:
    return "" if value is None else str(value)


class DocumentKind(str, Enum):
    OFFER = "offer"
    ORDER_CONFIRMATION = "order_confirmation"
    INVOICE = "invoice"


class PositionKind(str, Enum):
    ITEM = "item"
    HEADING = "heading"
    DESCRIPTION = "description"
    SUBTOTAL = "subtotal"
    SEPARATOR = "separator"


class DiscountKind(str, Enum):
    PERCENT = "percent"
    FIXED_AMOUNT = "fixed_amount"


class DiscountBase(str, Enum):
    NET = "net"
    GROSS = "gross"


class Position(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: PositionKind = Field(
        default=PositionKind.ITEM, validation_alias=AliasChoices("kind", "type")
    )
    description: str = ""
    quantity: Decimal = Field(default=ZERO, ge=-MAX_AMOUNT, le=MAX_AMOUNT)
    unit_price: Decimal = Field(
        default=ZERO,
        ge=-MAX_AMOUNT,
        le=MAX_AMOUNT,
        validation_alias=AliasChoices("unit_price", "unitPrice"),
    )
    unit: str = ""

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def _coerce_number(cls, value):
        return to_decimal(value)

    @field_validator("description", "unit", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @property
    def line_total(self) -> Decimal:
        if self.kind is not PositionKind.ITEM:
            return ZERO
        return self.quantity * self.unit_price


class Discount(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = False
    label: str = "Rabatt"
    kind: DiscountKind = Field(
        default=DiscountKind.PERCENT, validation_alias=AliasChoices("kind", "type")
    )
    base: DiscountBase = DiscountBase.NET
    value: Decimal = Field(default=ZERO, le=MAX_AMOUNT)

    @field_validator("enabled", mode="before")
    @classmethod
    def _coerce_enabled(cls, value):
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    @field_validator("label", mode="before")
    @classmethod
    def _coerce_label(cls, value):
        return "Rabatt" if value is None else str(value)

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value):
        if value is None:
            return DiscountKind.PERCENT
        # older records call the fixed variant "amount"
        if value == "amount":
            return DiscountKind.FIXED_AMOUNT
        return value

    @field_validator("base", mode="before")
    @classmethod
    def _coerce_base(cls, value):
        return DiscountBase.NET if value is None else value

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, value):
        return max(ZERO, to_decimal(value))

    @property
    def active(self) -> bool:
        return self.enabled and self.value > 0

    @property
    def display_label(self) -> str:
        return self.label.strip() or "Rabatt"


class Profile(BaseModel):
    """Sender of the document (the business issuing it)."""

    first_name: str = ""
    last_name: str = ""
    company_name: str = ""
    street: str = ""
    house_number: str = ""
    postal_code: str = ""
    city: str = ""
    logo_path: str | None = None
    website: str = ""

    @field_validator(
        "first_name", "last_name", "company_name", "street", "house_number",
        "postal_code", "city", "website", mode="before",
    )
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @property
    def display_name(self) -> str:
        if self.company_name.strip():
            return self.company_name.strip()
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def address_lines(self) -> list[str]:
        return [
            self.display_name,
            f"{self.street} {self.house_number}".strip(),
            f"{self.postal_code} {self.city}".strip(),
        ]

    @property
    def sender_line(self) -> str:
        street, city = self.address_lines[1:]
        return f"{self.display_name} – {street} – {city}"


class Customer(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str | None = None
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    street: str = ""
    house_number: str = ""
    address: str = ""
    postal_code: str = ""
    city: str = ""
    customer_number: str | None = None

    @field_validator(
        "first_name", "last_name", "company", "street", "house_number",
        "address", "postal_code", "city", mode="before",
    )
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @property
    def display_name(self) -> str:
        if self.company.strip():
            return self.company.strip()
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()

    @property
    def street_line(self) -> str:
        if self.street.strip() or self.house_number.strip():
            return f"{self.street} {self.house_number}".strip()
        return self.address.strip()

    @property
    def city_line(self) -> str:
        return f"{self.postal_code} {self.city}".strip()


class BillingSettings(BaseModel):
    """Payment details, background template and number formats of one owner."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    template: str | None = None
    account_holder: str = ""
    iban: str = ""
    bic: str = ""
    billing_phone: str = ""
    billing_email: str = ""

    quote_prefix: str = ""
    quote_start: int = 0
    quote_suffix: str = ""
    order_confirmation_prefix: str = ""
    order_confirmation_start: int = 0
    order_confirmation_suffix: str = ""
    invoice_prefix: str = ""
    invoice_start: int = 0
    invoice_suffix: str = ""

    @field_validator(
        "account_holder", "iban", "bic", "billing_phone", "billing_email",
        "quote_prefix", "quote_suffix", "order_confirmation_prefix",
        "order_confirmation_suffix", "invoice_prefix", "invoice_suffix",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @field_validator("quote_start", "order_confirmation_start", "invoice_start", mode="before")
    @classmethod
    def _coerce_start(cls, value):
        return int(to_decimal(value))

    def numbering_for(self, kind: DocumentKind) -> tuple[str, int, str]:
        """Return ``(prefix, start, suffix)`` configured for ``kind``."""
        field = {
            DocumentKind.OFFER: "quote",
            DocumentKind.ORDER_CONFIRMATION: "order_confirmation",
            DocumentKind.INVOICE: "invoice",
        }[kind]
        return (
            getattr(self, f"{field}_prefix"),
            getattr(self, f"{field}_start"),
            getattr(self, f"{field}_suffix"),
        )


class SourceDocument(BaseModel):
    """An offer or order confirmation as stored by the caller."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    number: str | None = None
    issue_date: date | None = Field(
        default=None, validation_alias=AliasChoices("issue_date", "date")
    )
    valid_until: date | None = None
    title: str = ""
    intro: str = ""
    tax_rate: Decimal = Field(default=ZERO, ge=0, le=100)
    positions: list[Position] = Field(default_factory=list)
    discount: Discount | None = None
    customer_id: str | None = None

    @field_validator("tax_rate", mode="before")
    @classmethod
    def _coerce_tax_rate(cls, value):
        return to_decimal(value)

    @field_validator("title", "intro", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        return _text(value)

    @field_validator("positions", mode="before")
    @classmethod
    def _coerce_positions(cls, value):
        return [] if value is None else value


class DocumentIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: DocumentKind
    # None while previewing a document that has no number yet
    number: str | None = None
    issue_date: date
    due_date: date | None = None
    parent_number: str | None = None
    sequence: int | None = None


class DocumentRecord(BaseModel):
    """The derived record handed back for persistence."""

    kind: DocumentKind
    number: str | None = None
    parent_number: str | None = None
    owner_id: str
    customer_id: str | None = None
    issue_date: date
    due_date: date | None = None
    title: str
    intro: str
    tax_rate: Decimal
    positions: list[Position]
    discount: Discount
    net_subtotal: Decimal
    discount_amount: Decimal
    net_after_discount: Decimal
    tax_amount: Decimal
    gross_total: Decimal
    pdf_path: str | None = None
    status: str | None = "Erstellt"


class GenerationRequest(BaseModel):
    """Everything one generation call needs, resolved by the caller."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    owner_id: str
    profile: Profile | None = None
    customer: Customer | None = None
    billing: BillingSettings | None = None
    source: SourceDocument | None = None
    parent_discount: Discount | None = None
    # False renders a preview: no number is taken and nothing is stored
    commit: bool = True
    idempotency_key: str | None = Field(
        default=None, validation_alias=AliasChoices("idempotency_key", "idempotencyKey")
    )
