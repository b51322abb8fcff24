from datetime import date
from decimal import Decimal

from menumagi.services.gst import (
    calculate_gst,
    calculate_order_total,
    format_gst_breakdown,
    format_indian_currency,
    generate_invoice_number,
    is_valid_gstin,
    reverse_gst,
    round_money,
)


def test_intra_state_split():
    breakdown = calculate_gst(200)
    assert breakdown.cgst == Decimal("5.00")
    assert breakdown.sgst == Decimal("5.00")
    assert breakdown.igst == Decimal("0.00")
    assert breakdown.total_gst == Decimal("10.00")
    assert breakdown.total == Decimal("210.00")
    assert not breakdown.is_inter_state


def test_inter_state_uses_igst():
    breakdown = calculate_gst(200, is_inter_state=True)
    assert breakdown.cgst == breakdown.sgst == Decimal("0.00")
    assert breakdown.igst == Decimal("10.00")
    assert breakdown.total == Decimal("210.00")
    assert breakdown.is_inter_state


def test_total_is_subtotal_plus_gst():
    for amount in ("0.01", "99.99", "350", "1234.56"):
        breakdown = calculate_gst(amount)
        assert breakdown.total == breakdown.subtotal + breakdown.total_gst


def test_half_up_rounding():
    assert round_money("2.675") == Decimal("2.68")
    assert round_money(Decimal("0.125")) == Decimal("0.13")
    # float input goes through str, so no binary artifacts
    assert round_money(0.1 + 0.2) == Decimal("0.30")


def test_order_total_from_lines():
    lines = [{"price": "100", "quantity": 2}, {"price": 150, "quantity": 1}]
    breakdown = calculate_order_total(lines)
    assert breakdown.subtotal == Decimal("350.00")
    assert breakdown.total_gst == Decimal("17.50")
    assert breakdown.cgst == Decimal("8.75")
    assert breakdown.total == Decimal("367.50")


def test_reverse_gst():
    assert reverse_gst(210).subtotal == Decimal("200.00")


def test_breakdown_rows():
    rows = format_gst_breakdown(calculate_gst(200))
    assert [row["label"] for row in rows] == ["Subtotal", "CGST (2.5%)", "SGST (2.5%)", "Total"]
    assert rows[-1]["value"] == "₹210.00"

    rows = format_gst_breakdown(calculate_gst(200, is_inter_state=True))
    assert [row["label"] for row in rows] == ["Subtotal", "IGST (5%)", "Total"]


def test_zero_subtotal_has_no_tax_rows():
    rows = format_gst_breakdown(calculate_gst(0))
    assert [row["label"] for row in rows] == ["Subtotal", "Total"]


def test_indian_grouping():
    assert format_indian_currency(123456.78) == "1,23,456.78"
    assert format_indian_currency(1000) == "1,000.00"
    assert format_indian_currency(12345678) == "1,23,45,678.00"
    assert format_indian_currency(99) == "99.00"


def test_invoice_number_format():
    assert generate_invoice_number(7, on=date(2024, 3, 9)) == "INV/2024/03/00007"


def test_gstin_shape():
    assert is_valid_gstin("22AAAAA0000A1Z5")
    assert not is_valid_gstin("22AAAAA0000A1X5")
    assert not is_valid_gstin("")


def test_to_dict_is_json_friendly():
    data = calculate_gst(200).to_dict()
    assert data["total"] == 210.0
    assert isinstance(data["cgst"], float)
