"""
pricecompare/calculations.py

Vendor totals for a comparison sheet.

For the vendor linked at position p (index i = p - 1) and every row:
    quantity = row.quantities[i]  (falls back to row.qty)
    price    = row.prices[i]      (missing -> 0)
    line     = quantity * price
VAT applies only to rows whose item is VAT-applicable, at the vendor's rate.
Vendor VAT may be stored as a percent (15) or as a fraction (0.15).

All arithmetic is Decimal; money is rounded half-up to 3 places.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

MONEY_PLACES = Decimal("0.001")
ZERO = Decimal("0")


def _to_decimal(value) -> Decimal:
    """Convert Numeric/float/str/None to Decimal; unparseable values count as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return ZERO


def _normalize_percent(rate: Decimal) -> Decimal:
    """
    Percent or fraction -> fraction:
    - 15   => 0.15
    - 0.15 => 0.15
    """
    if rate > Decimal("1"):
        return (rate / Decimal("100")).quantize(Decimal("0.0000001"))
    return rate.quantize(Decimal("0.0000001"))


def _money(x: Decimal) -> Decimal:
    return x.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def _at(values, index: int):
    if values and 0 <= index < len(values):
        return values[index]
    return None


def vendor_totals(comparison) -> list[dict]:
    """One entry per linked vendor, ordered by position."""
    results = []
    for link in comparison.vendor_links:
        index = link.position - 1
        vat_rate = _normalize_percent(_to_decimal(link.vendor.vat if link.vendor else None))

        subtotal = ZERO
        vatable = ZERO
        for row in comparison.rows:
            qty = _at(row.quantities, index)
            quantity = _to_decimal(qty if qty is not None else row.qty)
            line = quantity * _to_decimal(_at(row.prices, index))
            subtotal += line
            if row.item is None or row.item.is_vatable:
                vatable += line

        vat = vatable * vat_rate
        results.append(
            {
                "vendorId": link.vendor_id,
                "name": link.vendor.name if link.vendor else None,
                "position": link.position,
                "subtotal": _money(subtotal),
                "vat": _money(vat),
                "total": _money(subtotal + vat),
            }
        )
    return results


def lowest_bidder(totals: list[dict]) -> dict | None:
    """Smallest positive total; ties go to the lower position."""
    candidates = [t for t in totals if t["total"] > ZERO]
    if not candidates:
        return None
    return min(candidates, key=lambda t: (t["total"], t["position"]))


def calculate_savings(lowest_total: Decimal, highest_total: Decimal) -> dict:
    if lowest_total == ZERO or highest_total == ZERO:
        return {"amount": ZERO, "percentage": ZERO}

    amount = highest_total - lowest_total
    percentage = (amount / lowest_total * Decimal("100")).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return {"amount": _money(amount), "percentage": percentage}


def summarize(comparison) -> dict:
    """Totals, lowest bidder and potential savings for a comparison."""
    totals = vendor_totals(comparison)
    lowest = lowest_bidder(totals)
    highest_total = max((t["total"] for t in totals), default=ZERO)

    savings = calculate_savings(lowest["total"] if lowest else ZERO, highest_total)

    return {
        "comparisonId": comparison.id,
        "itemCount": len(comparison.rows),
        "vendorCount": len(totals),
        "vendors": [_jsonable(t) for t in totals],
        "lowestBidder": _jsonable(lowest) if lowest else None,
        "savings": _jsonable(savings),
    }


def _jsonable(entry: dict) -> dict:
    return {k: float(v) if isinstance(v, Decimal) else v for k, v in entry.items()}
