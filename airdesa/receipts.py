"""Printable payment receipts: customer lookup, billable periods and the receipt body."""

from typing import List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from .billing import bill_for_reading
from .customers import customer_row, get_customer
from .models import Customer, MeterReading, utcnow
from .periods import period_label
from .readings import get_reading
from .tariff import ADMIN_FEE, BAND_RATES, band_volumes

SEARCH_LIMIT = 20

_ONES = [
    "zero", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten",
    "eleven", "twelve", "thirteen", "fourteen", "fifteen", "sixteen", "seventeen",
    "eighteen", "nineteen",
]
_TENS = ["", "", "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety"]
_SCALES = ((10 ** 9, "billion"), (10 ** 6, "million"), (1000, "thousand"))


def _words(n: int) -> str:
    if n < 20:
        return _ONES[n]
    if n < 100:
        tens, rest = divmod(n, 10)
        return _TENS[tens] + (f"-{_ONES[rest]}" if rest else "")
    if n < 1000:
        hundreds, rest = divmod(n, 100)
        return f"{_ONES[hundreds]} hundred" + (f" {_words(rest)}" if rest else "")
    for value, name in _SCALES:
        if n >= value:
            head, rest = divmod(n, value)
            return f"{_words(head)} {name}" + (f" {_words(rest)}" if rest else "")
    return ""


def amount_in_words(amount: int) -> str:
    """``19500`` -> ``"nineteen thousand five hundred rupiah"``."""
    return f"{_words(max(int(amount), 0))} rupiah"


def search_customers(session: Session, q: Optional[str] = None) -> List[dict]:
    like = f"%{(q or '').strip().lower()}%"
    rows = session.exec(
        select(Customer)
        .where(or_(func.lower(Customer.code).like(like), func.lower(Customer.name).like(like)))
        .order_by(Customer.code)
        .limit(SEARCH_LIMIT)
    ).all()
    return [customer_row(c) for c in rows]


def customer_periods(session: Session, customer_id: int) -> List[dict]:
    get_customer(session, customer_id)
    rows = session.exec(
        select(MeterReading)
        .where(MeterReading.customer_id == customer_id)
        .order_by(MeterReading.period_year.desc(), MeterReading.period_month.desc())
    ).all()
    return [
        {
            "reading_id": r.id,
            "period": period_label(r.period_year, r.period_month),
            "period_year": r.period_year,
            "period_month": r.period_month,
            "start_index": r.start_index,
            "end_index": r.end_index,
            "usage": r.usage,
            "charge": r.charge,
        }
        for r in rows
    ]


def receipt(session: Session, reading_id: int) -> dict:
    reading = get_reading(session, reading_id)
    customer = session.get(Customer, reading.customer_id)
    bill = bill_for_reading(session, reading.id)

    lines = [
        {"band": band, "volume": qty, "rate": BAND_RATES[band], "subtotal": qty * BAND_RATES[band]}
        for band, qty in band_volumes(reading.usage).items()
    ]
    usage_subtotal = sum(line["subtotal"] for line in lines)
    arrears = bill.arrears if bill else 0
    total = bill.total if bill else reading.charge
    return {
        "reading_id": reading.id,
        "customer": customer_row(customer),
        "period": period_label(reading.period_year, reading.period_month),
        "period_year": reading.period_year,
        "period_month": reading.period_month,
        "start_index": reading.start_index,
        "end_index": reading.end_index,
        "usage": reading.usage,
        "lines": lines,
        "usage_subtotal": usage_subtotal,
        "admin_fee": ADMIN_FEE,
        "usage_charge": usage_subtotal + ADMIN_FEE,
        "arrears": arrears,
        "total": total,
        "status": bill.status if bill else "unpaid",
        "paid_at": bill.paid_at if bill else None,
        "amount_in_words": amount_in_words(total),
        "printed_at": utcnow(),
    }
