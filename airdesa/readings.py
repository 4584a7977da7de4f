"""Monthly meter readings and their continuity.

The start index of a period always equals the end index of the customer's
previous period. Every write keeps the reading's bill in step.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from .arrears import cascade_forward
from .billing import bill_for_reading, sync_bill_from_reading
from .cashbook import delete_for_bill
from .envelope import page_window, pagination
from .errors import DuplicatePeriod, InvalidReading, NotFound, ValidationError
from .models import Customer, MeterReading, utcnow
from .periods import next_period, previous_period
from .tariff import calculate_charge

logger = logging.getLogger(__name__)


def _validate_period(year, month):
    errors: Dict[str, str] = {}
    if year is None or not 1 <= int(year) <= 9999:
        errors["period_year"] = "Year must be between 1 and 9999"
    if month is None or not 1 <= int(month) <= 12:
        errors["period_month"] = "Month must be between 1 and 12"
    if errors:
        raise ValidationError(errors=errors)


def get_reading(session: Session, reading_id: int) -> MeterReading:
    reading = session.get(MeterReading, reading_id)
    if not reading:
        raise NotFound("Meter reading not found")
    return reading


def reading_for_period(
    session: Session, customer_id: int, year: int, month: int
) -> Optional[MeterReading]:
    return session.exec(
        select(MeterReading).where(
            MeterReading.customer_id == customer_id,
            MeterReading.period_year == year,
            MeterReading.period_month == month,
        )
    ).first()


def opening_index(session: Session, customer_id: int, year: int, month: int) -> int:
    """End index of the previous period's reading, or 0 for a first reading."""
    prev = reading_for_period(session, customer_id, *previous_period(year, month))
    return prev.end_index if prev else 0


def _recompute(reading: MeterReading):
    reading.usage = reading.end_index - reading.start_index
    reading.charge = calculate_charge(reading.usage)


def create_reading(
    session: Session,
    customer_id: int,
    year: int,
    month: int,
    end_index: int,
    start_index: Optional[int] = None,
) -> MeterReading:
    _validate_period(year, month)
    if not session.get(Customer, customer_id):
        raise NotFound("Customer not found")
    if reading_for_period(session, customer_id, year, month):
        raise DuplicatePeriod()
    if start_index is None:
        start_index = opening_index(session, customer_id, year, month)
    if end_index < start_index:
        raise InvalidReading()

    reading = MeterReading(
        customer_id=customer_id,
        period_year=year,
        period_month=month,
        start_index=start_index,
        end_index=end_index,
    )
    _recompute(reading)
    session.add(reading)
    session.flush()
    logger.info(
        "reading %s for customer %s %04d-%02d usage=%s charge=%s",
        reading.id,
        customer_id,
        year,
        month,
        reading.usage,
        reading.charge,
    )

    sync_bill_from_reading(session, reading.id, reading.charge)
    # a back-dated reading adds to the unpaid history of every later period
    cascade_forward(session, customer_id, year, month)
    return reading


def update_reading(
    session: Session,
    reading_id: int,
    end_index: int,
    start_index: Optional[int] = None,
) -> MeterReading:
    """Correct a reading, repair the next period's start index and re-cascade arrears.

    Raises InvalidReading if the correction would give this period or the
    next one a negative usage; nothing is written in that case.
    """
    reading = get_reading(session, reading_id)
    if start_index is None:
        start_index = reading.start_index
    if end_index < start_index:
        raise InvalidReading()

    following = reading_for_period(
        session, reading.customer_id, *next_period(reading.period_year, reading.period_month)
    )
    if following and following.end_index < end_index:
        raise InvalidReading(
            "End index exceeds the next period's end index",
            errors={"end_index": f"Must not exceed {following.end_index}"},
        )

    reading.start_index = start_index
    reading.end_index = end_index
    _recompute(reading)
    reading.updated_at = utcnow()
    session.add(reading)
    session.flush()
    sync_bill_from_reading(session, reading.id, reading.charge)

    if following:
        following.start_index = end_index
        _recompute(following)
        following.updated_at = utcnow()
        session.add(following)
        session.flush()
        sync_bill_from_reading(session, following.id, following.charge)

    cascade_forward(session, reading.customer_id, reading.period_year, reading.period_month)
    return reading


def delete_reading(session: Session, reading_id: int):
    """Remove a reading with its bill and the cash entries booked against that bill."""
    reading = get_reading(session, reading_id)
    customer_id = reading.customer_id
    year, month = reading.period_year, reading.period_month

    bill = bill_for_reading(session, reading.id)
    if bill:
        removed = delete_for_bill(session, bill.id)
        session.delete(bill)
        session.flush()
        logger.info("deleted bill %s and %d ledger entr(ies)", bill.id, removed)
    session.delete(reading)
    session.flush()

    cascade_forward(session, customer_id, year, month)


def reading_row(reading: MeterReading, customer: Optional[Customer] = None) -> dict:
    row = {
        "id": reading.id,
        "customer_id": reading.customer_id,
        "period_year": reading.period_year,
        "period_month": reading.period_month,
        "start_index": reading.start_index,
        "end_index": reading.end_index,
        "usage": reading.usage,
        "charge": reading.charge,
        "created_at": reading.created_at,
    }
    if customer is not None:
        row["customer_code"] = customer.code
        row["customer_name"] = customer.name
    return row


def list_readings(
    session: Session,
    year: Optional[int] = None,
    month: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    filters = []
    if year:
        filters.append(MeterReading.period_year == year)
    if month:
        filters.append(MeterReading.period_month == month)
    if search:
        like = f"%{search}%"
        filters.append(or_(Customer.code.like(like), Customer.name.like(like)))

    count, total_usage = session.exec(
        select(func.count(MeterReading.id), func.coalesce(func.sum(MeterReading.usage), 0))
        .join(Customer, Customer.id == MeterReading.customer_id)
        .where(*filters)
    ).one()

    page, limit, offset = page_window(page, limit)
    rows = session.exec(
        select(MeterReading, Customer)
        .join(Customer, Customer.id == MeterReading.customer_id)
        .where(*filters)
        .order_by(MeterReading.period_year.desc(), MeterReading.period_month.desc(), Customer.code)
        .offset(offset)
        .limit(limit)
    ).all()
    count = int(count)
    return {
        "items": [reading_row(r, c) for r, c in rows],
        "pagination": pagination(count, page, limit),
        "stats": {"count": count, "total_usage": int(total_usage)},
    }
