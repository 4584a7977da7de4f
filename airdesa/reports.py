"""Read-only rollups: cash-basis financial reports and public transparency data.

Income counts only money actually booked in the cash ledger. Unpaid bills
are reported separately as receivables and never enter the balance.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, Optional

from sqlalchemy import case, func
from sqlmodel import Session, select

from .cashbook import CATEGORY_WATER_BILL, entry_row
from .customers import customer_by_code
from .errors import NotFound
from .models import Bill, BillStatus, CashTransaction, Customer, MeterReading, TransactionType
from .periods import MONTH_NAMES, period_label
from .tariff import ADMIN_FEE, band_charges

RECENT_PERIODS = 3


def _region(address: Optional[str]) -> str:
    return (address or "").split(",")[0].strip() or "Unknown"


def _cash_figures(session: Session, year: int, month: Optional[int] = None) -> Dict[str, int]:
    income = TransactionType.income.value
    stmt = select(
        func.coalesce(
            func.sum(
                case(
                    (
                        (CashTransaction.type == income)
                        & (CashTransaction.category == CATEGORY_WATER_BILL),
                        CashTransaction.amount,
                    ),
                    else_=0,
                )
            ),
            0,
        ),
        func.coalesce(
            func.sum(
                case(
                    (
                        (CashTransaction.type == income)
                        & (CashTransaction.category != CATEGORY_WATER_BILL),
                        CashTransaction.amount,
                    ),
                    else_=0,
                )
            ),
            0,
        ),
        func.coalesce(
            func.sum(
                case(
                    (CashTransaction.type == TransactionType.expense.value, CashTransaction.amount),
                    else_=0,
                )
            ),
            0,
        ),
    ).where(CashTransaction.period_year == year)
    if month:
        stmt = stmt.where(CashTransaction.period_month == month)
    water, other, expense = (int(v) for v in session.exec(stmt).one())
    return {
        "water_income": water,
        "other_income": other,
        "total_income": water + other,
        "expenses": expense,
        "net_balance": water + other - expense,
    }


def receivables(session: Session, year: int, month: Optional[int] = None) -> int:
    """Unpaid bill totals for the year's (or month's) periods."""
    stmt = select(func.coalesce(func.sum(Bill.total), 0)).where(
        Bill.status == BillStatus.unpaid.value, Bill.period_year == year
    )
    if month:
        stmt = stmt.where(Bill.period_month == month)
    return int(session.exec(stmt).one())


def financial_summary(session: Session, year: int) -> dict:
    figures = _cash_figures(session, year)
    figures["receivables"] = receivables(session, year)
    figures["year"] = year
    return figures


def yearly_report(session: Session, year: int) -> dict:
    months = []
    for m in range(1, 13):
        row = _cash_figures(session, year, m)
        row["receivables"] = receivables(session, year, m)
        row["period_year"] = year
        row["period_month"] = m
        row["month_name"] = MONTH_NAMES[m]
        months.append(row)
    keys = ["water_income", "other_income", "total_income", "receivables", "expenses", "net_balance"]
    totals = {k: sum(r[k] for r in months) for k in keys}
    return {"year": year, "months": months, "totals": totals}


def monthly_report(session: Session, year: int, month: int) -> dict:
    entries = session.exec(
        select(CashTransaction)
        .where(CashTransaction.period_year == year, CashTransaction.period_month == month)
        .order_by(CashTransaction.entry_date, CashTransaction.id)
    ).all()
    figures = _cash_figures(session, year, month)
    return {
        "period": period_label(year, month),
        "year": year,
        "month": month,
        "entries": [entry_row(tx) for tx in entries],
        "summary": {
            "total_income": figures["total_income"],
            "expenses": figures["expenses"],
            "receivables": receivables(session, year, month),
            "balance": figures["net_balance"],
        },
    }


def _entry_lines(session: Session, year: int, month: int, type_: str, exclude_category=None):
    stmt = select(CashTransaction).where(
        CashTransaction.period_year == year,
        CashTransaction.period_month == month,
        CashTransaction.type == type_,
    )
    if exclude_category:
        stmt = stmt.where(CashTransaction.category != exclude_category)
    return session.exec(stmt.order_by(CashTransaction.entry_date, CashTransaction.id)).all()


def detail_report(session: Session, year: int, month: int) -> dict:
    """Water revenue of the month's paid bills split by tariff band, plus the other ledger lines.

    Water revenue is rebuilt from the usage of this period's paid bills, not
    read from the ledger.
    """
    usages = session.exec(
        select(Bill.usage).where(
            Bill.period_year == year,
            Bill.period_month == month,
            Bill.status == BillStatus.paid.value,
        )
    ).all()
    water = {"band1": 0, "band2": 0, "band3": 0}
    for usage in usages:
        for band, amount in band_charges(usage).items():
            water[band] += amount
    water["admin_fee"] = len(usages) * ADMIN_FEE
    water["customer_count"] = len(usages)
    water["total"] = water["band1"] + water["band2"] + water["band3"] + water["admin_fee"]

    other = _entry_lines(
        session, year, month, TransactionType.income.value, exclude_category=CATEGORY_WATER_BILL
    )
    expenses = _entry_lines(session, year, month, TransactionType.expense.value)
    other_total = sum(tx.amount for tx in other)
    expense_total = sum(tx.amount for tx in expenses)
    total_income = water["total"] + other_total
    return {
        "period": period_label(year, month),
        "year": year,
        "month": month,
        "water": water,
        "other_income": [entry_row(tx) for tx in other],
        "other_income_total": other_total,
        "expenses": [entry_row(tx) for tx in expenses],
        "expenses_total": expense_total,
        "total_income": total_income,
        "net_profit": total_income - expense_total,
        "chart": {"labels": ["Income", "Expenses"], "values": [total_income, expense_total]},
    }


def customer_statement(session: Session, code: str) -> dict:
    """Public bill check: the latest periods and the customer's unpaid position."""
    customer = customer_by_code(session, (code or "").strip().upper())
    if not customer:
        raise NotFound("Customer code is not registered")

    rows = session.exec(
        select(MeterReading, Bill)
        .join(Bill, Bill.reading_id == MeterReading.id, isouter=True)
        .where(MeterReading.customer_id == customer.id)
        .order_by(MeterReading.period_year.desc(), MeterReading.period_month.desc())
    ).all()

    periods = []
    unpaid_count = 0
    unpaid_total = 0
    for reading, bill in rows:
        status = bill.status if bill else BillStatus.unpaid.value
        if status == BillStatus.unpaid.value:
            unpaid_count += 1
            unpaid_total += bill.total if bill else reading.charge
        if len(periods) < RECENT_PERIODS:
            periods.append(
                {
                    "period": period_label(reading.period_year, reading.period_month),
                    "period_year": reading.period_year,
                    "period_month": reading.period_month,
                    "usage": reading.usage,
                    "charge": reading.charge,
                    "arrears": bill.arrears if bill else 0,
                    "total": bill.total if bill else reading.charge,
                    "status": status,
                }
            )

    shown_unpaid = sum(1 for p in periods if p["status"] == BillStatus.unpaid.value)
    return {
        "customer_code": customer.code,
        "name": customer.name,
        "address": customer.address,
        "tariff_class": customer.tariff_class,
        "latest": periods[0] if periods else None,
        "periods": periods,
        "extra_unpaid_months": unpaid_count - shown_unpaid,
        "unpaid_count": unpaid_count,
        "unpaid_total": unpaid_total,
    }


def public_stats(session: Session, today: Optional[date] = None) -> dict:
    today = today or date.today()
    year, month = today.year, today.month

    usage_by_month = dict(
        session.exec(
            select(MeterReading.period_month, func.coalesce(func.sum(MeterReading.usage), 0))
            .where(MeterReading.period_year == year)
            .group_by(MeterReading.period_month)
        ).all()
    )
    total_customers = int(session.exec(select(func.count(Customer.id))).one())

    billed, paid = session.exec(
        select(
            func.count(Bill.id),
            func.coalesce(
                func.sum(case((Bill.status == BillStatus.paid.value, 1), else_=0)), 0
            ),
        ).where(Bill.period_year == year)
    ).one()
    compliance = round(int(paid) * 100 / int(billed)) if billed else 100

    outstanding = defaultdict(int)
    for address, total in session.exec(
        select(Customer.address, Bill.total)
        .join(Customer, Customer.id == Bill.customer_id)
        .where(Bill.status == BillStatus.unpaid.value)
    ).all():
        outstanding[_region(address)] += int(total)

    distribution = defaultdict(int)
    for address in session.exec(select(Customer.address)).all():
        distribution[_region(address)] += 1

    return {
        "summary": {
            "usage_this_month": int(usage_by_month.get(month, 0)),
            "total_customers": total_customers,
            "payment_compliance": compliance,
        },
        "charts": {
            "trend_labels": [MONTH_NAMES[m][:3] for m in range(1, 13)],
            "trend_data": [int(usage_by_month.get(m, 0)) for m in range(1, 13)],
            "outstanding_by_region": [
                {"region": r, "total": t}
                for r, t in sorted(outstanding.items(), key=lambda kv: kv[1], reverse=True)
            ],
            "customers_by_region": [
                {"region": r, "total": t}
                for r, t in sorted(distribution.items(), key=lambda kv: kv[1], reverse=True)
            ],
        },
    }
