"""Unpaid balance carried from earlier periods (tunggakan).

The balance at a period is recomputed from the bills themselves, never read
from a stored running total.
"""

import logging

from sqlalchemy import func
from sqlmodel import Session, select

from .models import Bill, BillStatus, utcnow
from .periods import earlier_than, later_than

logger = logging.getLogger(__name__)


def accumulated_arrears(session: Session, customer_id: int, year: int, month: int) -> int:
    """Sum of ``total`` over the customer's unpaid bills strictly before (year, month)."""
    stmt = select(func.coalesce(func.sum(Bill.total), 0)).where(
        Bill.customer_id == customer_id,
        Bill.status == BillStatus.unpaid.value,
        earlier_than(Bill, year, month),
    )
    return int(session.exec(stmt).one())


def cascade_forward(session: Session, customer_id: int, from_year: int, from_month: int) -> int:
    """Recompute arrears and total of every unpaid bill after (from_year, from_month).

    Bills are processed in ascending period order so that each one sees
    already-corrected totals for the periods before it. Paid bills are left
    alone: they carry no arrears. Returns the number of bills rewritten.
    """
    later = session.exec(
        select(Bill)
        .where(
            Bill.customer_id == customer_id,
            Bill.status == BillStatus.unpaid.value,
            later_than(Bill, from_year, from_month),
        )
        .order_by(Bill.period_year, Bill.period_month)
    ).all()

    for bill in later:
        arrears = accumulated_arrears(session, customer_id, bill.period_year, bill.period_month)
        bill.arrears = arrears
        bill.total = bill.usage_charge + arrears
        bill.updated_at = utcnow()
        session.add(bill)
        session.flush()

    if later:
        logger.info(
            "cascaded arrears for customer %s from %04d-%02d over %d bill(s)",
            customer_id,
            from_year,
            from_month,
            len(later),
        )
    return len(later)
