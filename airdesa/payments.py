"""Payments against bills: installments, status flips and manual arrears.

Every operation keeps ``total == usage_charge + arrears`` on the bill it
touches. Installments and manual arrears change the unpaid-balance history,
so they re-cascade the customer's later bills; a plain status flip does not.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlmodel import Session

from .arrears import accumulated_arrears, cascade_forward
from .audit import record_audit
from .billing import bill_row, get_bill
from .cashbook import (
    CATEGORY_INSTALLMENT,
    CATEGORY_WATER_BILL,
    delete_for_bill,
    has_bill_entry,
    record_entry,
)
from .errors import InvalidAmount, InvalidState, Overpayment, ValidationError
from .models import Bill, BillStatus, Customer, TransactionType, utcnow
from .periods import period_label

logger = logging.getLogger(__name__)


def current_arrears(session: Session, bill: Bill) -> int:
    """Stored arrears when positive, otherwise the balance recomputed from earlier bills."""
    if bill.arrears and bill.arrears > 0:
        return bill.arrears
    return accumulated_arrears(session, bill.customer_id, bill.period_year, bill.period_month)


def _customer_label(session: Session, bill: Bill) -> str:
    customer = session.get(Customer, bill.customer_id)
    period = period_label(bill.period_year, bill.period_month)
    if not customer:
        return period
    return f"{customer.name} ({customer.code}) {period}"


def apply_installment(
    session: Session,
    bill_id: int,
    amount: int,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> int:
    """Reduce a bill's arrears by ``amount``.

    Raises InvalidAmount for a non-positive amount, Overpayment when the
    amount exceeds the outstanding arrears and InvalidState when the bill is
    already paid. The bill is untouched when any of these is raised.

    Returns the number of later bills whose arrears were recalculated.
    """
    bill = get_bill(session, bill_id)
    amount = int(amount)
    if amount <= 0:
        raise InvalidAmount()
    if bill.status == BillStatus.paid.value:
        raise InvalidState("Bill is already paid")

    outstanding = current_arrears(session, bill)
    if amount > outstanding:
        raise Overpayment(
            errors={"amount": f"Installment exceeds the outstanding arrears of {outstanding}"}
        )
    remaining = outstanding - amount
    if remaining < 0:
        raise InvalidState("Installment would leave negative arrears")

    now = now or utcnow()
    before = bill_row(bill)
    bill.arrears = remaining
    bill.total = bill.usage_charge + remaining
    fully_paid = remaining == 0
    if fully_paid:
        bill.status = BillStatus.paid.value
        bill.paid_at = now
    bill.updated_at = now
    session.add(bill)
    session.flush()

    label = _customer_label(session, bill)
    record_entry(
        session,
        TransactionType.income.value,
        f"Installment {label}",
        CATEGORY_INSTALLMENT,
        amount,
        now.date(),
        memo=f"Arrears installment, remaining {remaining}",
    )
    if fully_paid and not has_bill_entry(session, bill.id):
        record_entry(
            session,
            TransactionType.income.value,
            f"Water bill {label}",
            CATEGORY_WATER_BILL,
            bill.usage_charge,
            now.date(),
            bill_id=bill.id,
        )
    record_audit(session, actor_id, "installment", "bill", bill.id, before, bill_row(bill))

    recalculated = cascade_forward(session, bill.customer_id, bill.period_year, bill.period_month)
    logger.info(
        "installment of %s on bill %s, remaining arrears %s, %d later bill(s) recalculated",
        amount,
        bill.id,
        remaining,
        recalculated,
    )
    return recalculated


def set_status(
    session: Session,
    bill_id: int,
    status: str,
    actor_id: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Bill:
    """Mark a bill paid or unpaid in one step, keeping its ledger presence in sync."""
    if status not in (BillStatus.paid.value, BillStatus.unpaid.value):
        raise ValidationError(errors={"status": "Status must be paid or unpaid"})
    bill = get_bill(session, bill_id)
    now = now or utcnow()
    before = bill_row(bill)

    if status == BillStatus.paid.value:
        if bill.status != BillStatus.paid.value or not bill.paid_at:
            bill.paid_at = now
        if not has_bill_entry(session, bill.id):
            record_entry(
                session,
                TransactionType.income.value,
                f"Water bill {_customer_label(session, bill)}",
                CATEGORY_WATER_BILL,
                bill.total,
                now.date(),
                bill_id=bill.id,
            )
        # the amount owed has been settled in full
        bill.arrears = 0
        bill.total = bill.usage_charge
    else:
        bill.paid_at = None
        removed = delete_for_bill(session, bill.id)
        logger.info("bill %s reverted to unpaid, %d ledger entr(ies) removed", bill.id, removed)

    bill.status = status
    bill.updated_at = now
    session.add(bill)
    session.flush()
    record_audit(session, actor_id, f"mark_{status}", "bill", bill.id, before, bill_row(bill))
    return bill


def add_manual_arrears(
    session: Session,
    bill_id: int,
    amount: int,
    actor_id: Optional[int] = None,
) -> int:
    """Layer an explicit arrears adjustment on top of the stored value, then re-cascade."""
    amount = int(amount)
    if amount <= 0:
        raise InvalidAmount()
    bill = get_bill(session, bill_id)
    if bill.status == BillStatus.paid.value:
        raise InvalidState("Cannot add arrears to a paid bill")

    before = bill_row(bill)
    bill.arrears = (bill.arrears or 0) + amount
    bill.total = bill.usage_charge + bill.arrears
    bill.updated_at = utcnow()
    session.add(bill)
    session.flush()
    record_audit(session, actor_id, "add_arrears", "bill", bill.id, before, bill_row(bill))

    recalculated = cascade_forward(session, bill.customer_id, bill.period_year, bill.period_month)
    logger.info("added %s arrears to bill %s, %d later bill(s) recalculated", amount, bill.id, recalculated)
    return recalculated
