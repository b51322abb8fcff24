"""
GST (Goods and Services Tax) Calculations for India

Restaurant services are taxed at 5%: 2.5% CGST + 2.5% SGST within a
state, or the full rate as IGST for inter-state supply.

All amounts are Decimal, rounded half-up to paise. The grand total is
always the rounded subtotal plus the rounded GST so that
``total == subtotal + total_gst`` holds for every stored order.

Author: Khalil Bannouri
Version: 1.0.0
"""

import re
from dataclasses import dataclass, asdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Mapping, Optional, Union

Number = Union[Decimal, int, float, str]

TWO_PLACES = Decimal("0.01")
DEFAULT_GST_RATE = Decimal("5")

# GST rates in India for restaurant-adjacent categories
GST_RATES = {
    "RESTAURANT_AC": Decimal("18"),      # AC restaurant with liquor license
    "RESTAURANT_NON_AC": Decimal("5"),   # Non-AC restaurant or no liquor
    "TAKEAWAY": Decimal("5"),
    "SWEETS": Decimal("5"),
    "BAKERY": Decimal("5"),
    "LIQUOR": Decimal("28"),             # Varies by state
    "PACKAGED_FOOD": Decimal("12"),
}

# SAC codes for restaurant services
HSN_SAC_CODES = {
    "RESTAURANT_SERVICE": "996331",
    "FOOD_PREPARATION": "996332",
    "BEVERAGE_SERVICE": "996333",
    "TAKEAWAY": "996334",
}

# 2 digit state code + PAN (5 letters, 4 digits, 1 letter) + entity + Z + checksum
GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")


def to_decimal(value: Number) -> Decimal:
    """Convert an int/float/str amount to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_money(value: Number) -> Decimal:
    """Round to two decimal places, half-up."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class GSTBreakdown:
    """Result of a GST calculation, every amount rounded to paise."""
    subtotal: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    gst_rate: Decimal
    total_gst: Decimal
    total: Decimal

    @property
    def is_inter_state(self) -> bool:
        return self.igst > 0

    def to_dict(self) -> dict[str, float]:
        """Convert to a JSON-friendly dictionary."""
        return {key: float(value) for key, value in asdict(self).items()}


def calculate_gst(
    subtotal: Number,
    gst_rate: Number = DEFAULT_GST_RATE,
    is_inter_state: bool = False,
) -> GSTBreakdown:
    """
    Calculate GST for a restaurant order.

    Args:
        subtotal: Pre-tax amount
        gst_rate: GST percentage (default 5)
        is_inter_state: Charge IGST instead of CGST + SGST

    Returns:
        GSTBreakdown with two-decimal amounts

    Example:
        >>> calculate_gst(200).total
        Decimal('210.00')
    """
    amount = to_decimal(subtotal)
    rate = to_decimal(gst_rate)
    raw_gst = amount * rate / 100

    zero = Decimal("0.00")
    if is_inter_state:
        cgst = sgst = zero
        igst = round_money(raw_gst)
    else:
        cgst = sgst = round_money(raw_gst / 2)
        igst = zero

    rounded_subtotal = round_money(amount)
    total_gst = round_money(raw_gst)

    return GSTBreakdown(
        subtotal=rounded_subtotal,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        gst_rate=rate,
        total_gst=total_gst,
        total=rounded_subtotal + total_gst,
    )


def reverse_gst(total_with_gst: Number, gst_rate: Number = DEFAULT_GST_RATE) -> GSTBreakdown:
    """Back out the base price from a GST-inclusive price."""
    rate = to_decimal(gst_rate)
    subtotal = to_decimal(total_with_gst) / (1 + rate / 100)
    return calculate_gst(subtotal, rate)


def calculate_order_total(
    lines: Iterable[Mapping[str, Any]],
    gst_rate: Number = DEFAULT_GST_RATE,
    is_inter_state: bool = False,
) -> GSTBreakdown:
    """Sum ``price * quantity`` over order lines and apply GST."""
    subtotal = sum(
        (to_decimal(line["price"]) * int(line["quantity"]) for line in lines),
        Decimal("0"),
    )
    return calculate_gst(subtotal, gst_rate, is_inter_state)


def format_indian_currency(amount: Number) -> str:
    """
    Format a number with Indian digit grouping.

    >>> format_indian_currency(123456.78)
    '1,23,456.78'
    """
    value = round_money(amount)
    sign = "-" if value < 0 else ""
    integer, fraction = f"{abs(value):.2f}".split(".")

    head, tail = integer[:-3], integer[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)

    return f"{sign}{','.join(groups + [tail])}.{fraction}"


def _format_rate(rate: Decimal) -> str:
    return f"{rate.normalize():f}"


def format_gst_breakdown(breakdown: GSTBreakdown) -> list[dict[str, str]]:
    """Label/value rows for an invoice or checkout summary."""
    rows = [{"label": "Subtotal", "value": f"₹{format_indian_currency(breakdown.subtotal)}"}]

    if breakdown.igst > 0:
        rows.append({
            "label": f"IGST ({_format_rate(breakdown.gst_rate)}%)",
            "value": f"₹{format_indian_currency(breakdown.igst)}",
        })
    else:
        half_rate = _format_rate(breakdown.gst_rate / 2)
        if breakdown.cgst > 0:
            rows.append({
                "label": f"CGST ({half_rate}%)",
                "value": f"₹{format_indian_currency(breakdown.cgst)}",
            })
        if breakdown.sgst > 0:
            rows.append({
                "label": f"SGST ({half_rate}%)",
                "value": f"₹{format_indian_currency(breakdown.sgst)}",
            })

    rows.append({"label": "Total", "value": f"₹{format_indian_currency(breakdown.total)}"})
    return rows


def generate_invoice_number(sequence_number: int, on: Optional[date] = None) -> str:
    """
    Generate a GST invoice number.

    Format: INV/YYYY/MM/NNNNN
    """
    on = on or date.today()
    return f"INV/{on.year}/{on.month:02d}/{sequence_number:05d}"


def is_valid_gstin(gstin: str) -> bool:
    """Validate the shape of a GSTIN, e.g. 22AAAAA0000A1Z5."""
    return bool(GSTIN_PATTERN.match(gstin or ""))
