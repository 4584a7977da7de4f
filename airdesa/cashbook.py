"""Cash transaction ledger (income and expense, cash basis)."""

import logging
from datetime import date
from typing import Dict, Optional

from sqlalchemy import case, func
from sqlmodel import Session, select

from .envelope import page_window, pagination
from .errors import InvalidState, NotFound, ValidationError
from .models import CashTransaction, TransactionType

logger = logging.getLogger(__name__)

CATEGORY_WATER_BILL = "Monthly Water Bill"
CATEGORY_INSTALLMENT = "Installment"
AUTOMATIC_CATEGORIES = (CATEGORY_WATER_BILL, CATEGORY_INSTALLMENT)

MANUAL_CATEGORIES = {
    TransactionType.income.value: ["New Connection", "Penalty", "Material Sales", "Other"],
    TransactionType.expense.value: ["Operational", "Salary", "Maintenance", "Other"],
}


def _parse_date(value) -> Optional[date]:
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        return None


def _validate_manual(type_, name, category, amount, entry_date) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if type_ not in MANUAL_CATEGORIES:
        errors["type"] = "Type must be income or expense"
    elif category not in MANUAL_CATEGORIES[type_]:
        errors["category"] = "Category must be one of: " + ", ".join(MANUAL_CATEGORIES[type_])
    if not name or not str(name).strip():
        errors["name"] = "Name is required"
    if amount is None or int(amount) <= 0:
        errors["amount"] = "Amount must be greater than 0"
    if entry_date is None:
        errors["date"] = "A valid date (YYYY-MM-DD) is required"
    return errors


def record_entry(
    session: Session,
    type_: str,
    name: str,
    category: str,
    amount: int,
    entry_date: Optional[date] = None,
    memo: Optional[str] = None,
    bill_id: Optional[int] = None,
) -> CashTransaction:
    """Append a ledger line; its period is taken from ``entry_date`` (today by default)."""
    entry_date = entry_date or date.today()
    tx = CashTransaction(
        bill_id=bill_id,
        type=type_,
        name=name,
        category=category,
        amount=int(amount),
        entry_date=entry_date,
        memo=memo,
        period_year=entry_date.year,
        period_month=entry_date.month,
    )
    session.add(tx)
    session.flush()
    logger.info("ledger %s %s %s amount=%s bill=%s", tx.id, type_, category, tx.amount, bill_id)
    return tx


def create_manual(
    session: Session,
    type_: str,
    name: str,
    category: str,
    amount: int,
    entry_date=None,
    memo: Optional[str] = None,
) -> CashTransaction:
    parsed = _parse_date(entry_date)
    errors = _validate_manual(type_, name, category, amount, parsed)
    if errors:
        raise ValidationError(errors=errors)
    return record_entry(session, type_, name.strip(), category, amount, parsed, memo)


def get_entry(session: Session, tx_id: int) -> CashTransaction:
    tx = session.get(CashTransaction, tx_id)
    if not tx:
        raise NotFound("Transaction not found")
    return tx


def _ensure_manual(tx: CashTransaction):
    # entries booked by bill payments follow the bill; change the bill instead
    if tx.bill_id is not None or tx.category in AUTOMATIC_CATEGORIES:
        raise InvalidState("Entries recorded by bill payments cannot be edited or deleted")


def update_manual(
    session: Session,
    tx_id: int,
    type_: str,
    name: str,
    category: str,
    amount: int,
    entry_date=None,
    memo: Optional[str] = None,
) -> CashTransaction:
    tx = get_entry(session, tx_id)
    _ensure_manual(tx)
    parsed = _parse_date(entry_date)
    errors = _validate_manual(type_, name, category, amount, parsed)
    if errors:
        raise ValidationError(errors=errors)
    tx.type = type_
    tx.name = name.strip()
    tx.category = category
    tx.amount = int(amount)
    tx.entry_date = parsed
    tx.memo = memo
    tx.period_year = parsed.year
    tx.period_month = parsed.month
    session.add(tx)
    session.flush()
    return tx


def delete_entry(session: Session, tx_id: int):
    tx = get_entry(session, tx_id)
    _ensure_manual(tx)
    session.delete(tx)
    session.flush()


def has_bill_entry(session: Session, bill_id: int) -> bool:
    return (
        session.exec(select(CashTransaction.id).where(CashTransaction.bill_id == bill_id)).first()
        is not None
    )


def delete_for_bill(session: Session, bill_id: int) -> int:
    """Remove every ledger line referencing ``bill_id``; returns how many were removed."""
    rows = session.exec(select(CashTransaction).where(CashTransaction.bill_id == bill_id)).all()
    for tx in rows:
        session.delete(tx)
    session.flush()
    return len(rows)


def entry_row(tx: CashTransaction) -> dict:
    return {
        "id": tx.id,
        "bill_id": tx.bill_id,
        "type": tx.type,
        "name": tx.name,
        "category": tx.category,
        "amount": tx.amount,
        "date": tx.entry_date,
        "memo": tx.memo,
        "period_year": tx.period_year,
        "period_month": tx.period_month,
    }


def period_totals(session: Session, year: int, month: Optional[int] = None) -> Dict[str, int]:
    """Income and expense totals booked in a year, or in one month of it."""
    stmt = select(
        func.coalesce(
            func.sum(case((CashTransaction.type == TransactionType.income.value, CashTransaction.amount), else_=0)),
            0,
        ),
        func.coalesce(
            func.sum(case((CashTransaction.type == TransactionType.expense.value, CashTransaction.amount), else_=0)),
            0,
        ),
    ).where(CashTransaction.period_year == year)
    if month:
        stmt = stmt.where(CashTransaction.period_month == month)
    income, expense = session.exec(stmt).one()
    return {
        "income": int(income),
        "expense": int(expense),
        "balance": int(income) - int(expense),
    }


def list_entries(
    session: Session,
    year: int,
    month: int,
    type_: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    stmt = select(CashTransaction).where(
        CashTransaction.period_year == year, CashTransaction.period_month == month
    )
    count_stmt = select(func.count(CashTransaction.id)).where(
        CashTransaction.period_year == year, CashTransaction.period_month == month
    )
    if type_ and type_ != "all":
        stmt = stmt.where(CashTransaction.type == type_)
        count_stmt = count_stmt.where(CashTransaction.type == type_)
    count = int(session.exec(count_stmt).one())
    page, limit, offset = page_window(page, limit)
    rows = session.exec(
        stmt.order_by(CashTransaction.entry_date.desc(), CashTransaction.id.desc())
        .offset(offset)
        .limit(limit)
    ).all()
    return {
        "items": [entry_row(tx) for tx in rows],
        "pagination": pagination(count, page, limit),
        "summary": period_totals(session, year, month),
    }
