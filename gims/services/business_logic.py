"""
GIMS Business Logic
Shared status codes, rounding and costing rules used across services
"""
from decimal import Decimal, ROUND_HALF_UP
from datetime import date, timedelta
from typing import List, Iterable, Optional
from enum import Enum
from dataclasses import dataclass
import re

CURRENCY_PRECISION = 2
QUANTITY_PRECISION = 2


class ApprovalStatus(str, Enum):
    """Approval workflow states"""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CLOSED = "CLOSED"


class ReceiveSource(str, Enum):
    PURCHASE = "purchase"
    TENDER = "tender"
    BORROW = "borrow"
    BORROW_RETURN = "borrow_return"
    CODE_TRANSFER = "code_transfer"


class BorrowStatus(str, Enum):
    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"


# Stock codes fuel is issued from
FUEL_NAC_CODES = {
    "diesel": "GT 07986",
    "petrol": "GT 00000",
}


def round_currency(amount: Decimal) -> Decimal:
    """Round a money amount to 2 decimal places, half up"""
    return Decimal(amount).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def round_quantity(quantity: Decimal) -> Decimal:
    return Decimal(quantity).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def format_quantity(quantity) -> str:
    """Render a quantity without trailing zeros: 5.00 -> '5', 2.50 -> '2.5'"""
    value = Decimal(str(quantity or 0))
    if value == value.to_integral_value():
        return str(value.to_integral_value())
    return format(value.normalize(), 'f')


def to_decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal('0')


def split_csv(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or '').split(',') if part.strip()]


def merge_csv(existing: Optional[str], additions: Iterable[str], prepend: bool = False) -> str:
    """
    Add values to a comma separated list, skipping duplicates

    New values go to the end, or to the front when ``prepend`` is set.
    """
    items = split_csv(existing)
    new: List[str] = []
    for value in additions:
        value = (value or '').strip()
        if value and value not in items and value not in new:
            new.append(value)
    return ','.join(new + items if prepend else items + new)


def expand_equipment_numbers(value: Optional[str]) -> List[str]:
    """
    Expand an equipment number expression into individual numbers

    Comma separated tokens; ``a-b`` numeric ranges are expanded, plain
    numbers and alphanumeric codes are kept as they are.
    """
    numbers: List[str] = []
    for token in split_csv(value):
        match = re.fullmatch(r'(\d+)\s*-\s*(\d+)', token)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if start <= end:
                numbers.extend(str(n) for n in range(start, end + 1))
                continue
        numbers.append(token)
    seen = set()
    return [n for n in numbers if not (n in seen or seen.add(n))]


@dataclass
class RRPLineCost:
    """Costing breakdown for one RRP line, all amounts in local currency"""
    item_price: Decimal
    freight_charge: Decimal
    customs_charge: Decimal
    customs_service_charge: Decimal
    vat_amount: Decimal
    total_amount: Decimal


def calculate_rrp_line_costs(
    prices: List[Decimal],
    customs_charges: List[Decimal],
    vat_flags: List[bool],
    freight_charge: Decimal,
    custom_service_charge: Decimal,
    vat_rate: Decimal,
    forex_rate: Decimal = Decimal('1')
) -> List[RRPLineCost]:
    """
    Distribute document level charges over RRP lines

    Freight (in supplier currency) and customs service charge are shared in
    proportion to each line's converted price. VAT applies to the line's
    price, freight share, customs and service charge when the line is
    VAT-able.
    """
    converted = [to_decimal(p) * forex_rate for p in prices]
    total_price = sum(converted, Decimal('0'))

    results = []
    for price, customs, vat_flag in zip(converted, customs_charges, vat_flags):
        share = price / total_price if total_price else Decimal('0')
        freight = share * to_decimal(freight_charge) * forex_rate
        service = share * to_decimal(custom_service_charge)
        customs = to_decimal(customs)
        vat = Decimal('0')
        if vat_flag:
            vat = (price + freight + customs + service) * to_decimal(vat_rate) / Decimal('100')
        total = price + freight + customs + service + vat
        results.append(RRPLineCost(
            item_price=round_currency(price),
            freight_charge=round_currency(freight),
            customs_charge=round_currency(customs),
            customs_service_charge=round_currency(service),
            vat_amount=round_currency(vat),
            total_amount=round_currency(total),
        ))
    return results


def receive_status_label(requested, approved_total) -> str:
    """Human readable receive progress of a request line"""
    approved = to_decimal(approved_total)
    if approved <= 0:
        return "Not Received"
    if approved < to_decimal(requested):
        return "Partially Received"
    return "Received"


def fuel_week_number(issue_date: date, first_date: date) -> int:
    """
    Week of the fiscal year a fuel issue falls in

    Weeks end on Saturday. Week 1 runs from the first fuel issue of the
    year up to the following Saturday, every later week is a full
    Sunday to Saturday week.
    """
    first_saturday = first_date + timedelta(days=(5 - first_date.weekday()) % 7)
    if issue_date <= first_saturday:
        return 1
    return (issue_date - first_saturday - timedelta(days=1)).days // 7 + 2
