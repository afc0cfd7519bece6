"""Money figures of a document and their German display format.

All arithmetic is done on unrounded ``Decimal`` values; rounding to cents
happens only in :meth:`MoneySummary.rounded` and in the format helpers.
"""

from dataclasses import astuple, dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal, localcontext

from .models import ZERO, DiscountBase, DiscountKind, to_decimal

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def round2(value):
    amount = to_decimal(value)
    with localcontext() as ctx:
        # quantize needs room for every digit left of the cents
        ctx.prec = max(ctx.prec, amount.adjusted() + 4)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class MoneySummary:
    net_subtotal: Decimal
    discount_amount: Decimal
    net_after_discount: Decimal
    tax_amount: Decimal
    gross_total: Decimal

    def rounded(self):
        """Cent-rounded copy, the form that gets persisted."""
        return MoneySummary(*(round2(value) for value in astuple(self)))


def net_subtotal(positions):
    return sum((p.line_total for p in positions), ZERO)


def running_subtotal(positions, index):
    """Sum of the item rows strictly before ``index``."""
    return net_subtotal(positions[:index])


def discount_amount(discount, base):
    """Amount ``discount`` takes off ``base``, clamped to ``[0, base]``."""
    if discount.kind is DiscountKind.FIXED_AMOUNT:
        raw = discount.value
    else:
        raw = base * discount.value / HUNDRED
    return min(max(ZERO, raw), max(ZERO, base))


def compute_summary(positions, tax_rate, discount=None):
    net = net_subtotal(positions)
    rate = to_decimal(tax_rate)

    if discount is None or not discount.active:
        tax = net * rate / HUNDRED
        return MoneySummary(net, ZERO, net, tax, net + tax)

    if discount.base is DiscountBase.NET:
        amount = discount_amount(discount, net)
        net_after = net - amount
        tax = net_after * rate / HUNDRED
        return MoneySummary(net, amount, net_after, tax, net_after + tax)

    # gross base: discount the gross figure, then split it back into net and tax
    factor = 1 + rate / HUNDRED
    gross_before = net * factor
    amount = discount_amount(discount, gross_before)
    gross_after = gross_before - amount
    net_after = gross_after / factor if factor else ZERO
    tax = gross_after - net_after
    return MoneySummary(net, amount, net_after, tax, gross_after)


def _german(text):
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_money(value):
    """``1234.5`` -> ``1.234,50``"""
    amount = round2(value)
    if amount == 0:
        amount = abs(amount)
    return _german(f"{amount:,.2f}")


def format_percent(value):
    """``19`` -> ``19,00``"""
    return format_money(value)


def format_number(value):
    """Shortest plain form, ``12.50`` -> ``12,5``, ``10`` -> ``10``."""
    number = to_decimal(value)
    if number == number.to_integral_value():
        return str(number.to_integral_value())
    return _german(f"{number.normalize():f}")


def format_date(value):
    return value.strftime("%d.%m.%Y") if value else ""


def add_days(value, days):
    return value + timedelta(days=days)
