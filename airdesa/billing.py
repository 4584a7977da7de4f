import logging
from typing import Optional

from sqlalchemy import case, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from .arrears import accumulated_arrears
from .envelope import page_window, pagination
from .errors import NotFound
from .models import Bill, BillStatus, Customer, MeterReading, utcnow
from .tariff import ADMIN_FEE

logger = logging.getLogger(__name__)


def get_bill(session: Session, bill_id: int) -> Bill:
    bill = session.get(Bill, bill_id)
    if not bill:
        raise NotFound("Bill not found")
    return bill


def bill_for_reading(session: Session, reading_id: int) -> Optional[Bill]:
    return session.exec(select(Bill).where(Bill.reading_id == reading_id)).first()


def _new_bill(reading: MeterReading, charge: int, arrears: int) -> Bill:
    return Bill(
        reading_id=reading.id,
        customer_id=reading.customer_id,
        period_year=reading.period_year,
        period_month=reading.period_month,
        start_index=reading.start_index,
        end_index=reading.end_index,
        usage=reading.usage,
        usage_charge=charge,
        arrears=arrears,
        total=charge + arrears,
        status=BillStatus.unpaid.value,
    )


def _insert_bill(session: Session, reading: MeterReading, charge: int) -> Bill:
    bill = _new_bill(reading, charge, 0)
    session.add(bill)
    session.flush()
    return bill


def _apply_reading(session: Session, reading_id: int, charge: int) -> Optional[Bill]:
    reading = session.get(MeterReading, reading_id)
    if not reading:
        logger.warning("no meter reading %s to bill", reading_id)
        return None

    bill = bill_for_reading(session, reading_id)
    if not bill:
        return _insert_bill(session, reading, charge)

    bill.start_index = reading.start_index
    bill.end_index = reading.end_index
    bill.usage = reading.usage
    bill.usage_charge = charge
    bill.total = charge + bill.arrears
    bill.updated_at = utcnow()
    session.add(bill)
    session.flush()
    return bill


def sync_bill_from_reading(session: Session, reading_id: int, charge: int) -> Optional[Bill]:
    """Bring the reading's bill in line with a new usage charge.

    An existing bill keeps its arrears; a missing one is created unpaid with
    no arrears. Runs in a savepoint: a failure is logged and rolled back
    without disturbing the caller's transaction.
    """
    try:
        with session.begin_nested():
            return _apply_reading(session, reading_id, charge)
    except SQLAlchemyError:
        logger.exception("bill sync failed for reading %s", reading_id)
        return None


def ensure_bill(session: Session, reading_id: int) -> Bill:
    """Return the reading's bill, materialising it if it does not exist yet.

    A materialised bill starts with the unpaid balance accumulated before
    its period.
    """
    bill = bill_for_reading(session, reading_id)
    if bill:
        return bill
    reading = session.get(MeterReading, reading_id)
    if not reading:
        raise NotFound("Meter reading not found")
    arrears = accumulated_arrears(
        session, reading.customer_id, reading.period_year, reading.period_month
    )
    bill = _new_bill(reading, reading.charge, arrears)
    session.add(bill)
    session.flush()
    logger.info("materialised bill %s for reading %s", bill.id, reading_id)
    return bill


def backfill_bills(session: Session) -> int:
    """Create the bills missing for any reading, oldest period first per customer."""
    missing = session.exec(
        select(MeterReading)
        .where(~MeterReading.id.in_(select(Bill.reading_id)))
        .order_by(MeterReading.customer_id, MeterReading.period_year, MeterReading.period_month)
    ).all()
    for reading in missing:
        ensure_bill(session, reading.id)
    return len(missing)


def bill_row(bill: Bill, customer: Optional[Customer] = None) -> dict:
    row = {
        "id": bill.id,
        "reading_id": bill.reading_id,
        "customer_id": bill.customer_id,
        "period_year": bill.period_year,
        "period_month": bill.period_month,
        "start_index": bill.start_index,
        "end_index": bill.end_index,
        "usage": bill.usage,
        "usage_charge": bill.usage_charge,
        "arrears": bill.arrears,
        "total": bill.total,
        "status": bill.status,
        "paid_at": bill.paid_at,
    }
    if customer is not None:
        row.update(
            {
                "customer_code": customer.code,
                "customer_name": customer.name,
                "customer_address": customer.address,
                "customer_phone": customer.phone,
            }
        )
    return row


def list_bills(
    session: Session,
    year: Optional[int] = None,
    month: Optional[int] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    """Paginated bill listing with aggregate stats over the whole filtered set."""
    filters = []
    if year:
        filters.append(Bill.period_year == year)
    if month:
        filters.append(Bill.period_month == month)
    if status and status != "all":
        filters.append(Bill.status == status)
    if search:
        like = f"%{search}%"
        filters.append(or_(Customer.code.like(like), Customer.name.like(like)))

    stats_stmt = (
        select(
            func.count(Bill.id),
            func.coalesce(func.sum(Bill.usage_charge), 0),
            func.coalesce(
                func.sum(
                    case((Bill.status == BillStatus.unpaid.value, Bill.total), else_=0)
                ),
                0,
            ),
        )
        .join(Customer, Customer.id == Bill.customer_id)
        .where(*filters)
    )
    count, gross, outstanding = session.exec(stats_stmt).one()

    page, limit, offset = page_window(page, limit)
    rows = session.exec(
        select(Bill, Customer)
        .join(Customer, Customer.id == Bill.customer_id)
        .where(*filters)
        .order_by(Bill.period_year.desc(), Bill.period_month.desc(), Customer.address)
        .offset(offset)
        .limit(limit)
    ).all()

    count = int(count)
    admin_total = count * ADMIN_FEE
    return {
        "items": [bill_row(b, c) for b, c in rows],
        "pagination": pagination(count, page, limit),
        "stats": {
            "count": count,
            "gross_charges": int(gross),
            "admin_fees": admin_total,
            "water_charges": int(gross) - admin_total,
            "outstanding": int(outstanding),
        },
    }
