from datetime import date

import pytest
from sqlmodel import select

from airdesa import cashbook
from airdesa.errors import InvalidState, NotFound, ValidationError
from airdesa.models import CashTransaction
from airdesa.payments import apply_installment, set_status


def test_manual_entry_period_follows_date(session):
    tx = cashbook.create_manual(
        session, "income", "  Connection fee Pak Slamet ", "New Connection", 350000, "2024-05-17"
    )
    assert tx.name == "Connection fee Pak Slamet"
    assert tx.entry_date == date(2024, 5, 17)
    assert (tx.period_year, tx.period_month) == (2024, 5)


def test_manual_entry_validation(session):
    with pytest.raises(ValidationError) as exc:
        cashbook.create_manual(session, "expense", "", "Penalty", 0, None)
    errors = exc.value.errors
    assert set(errors) == {"category", "name", "amount", "date"}

    with pytest.raises(ValidationError) as exc:
        cashbook.create_manual(session, "gift", "x", "Other", 10, "2024-01-01")
    assert "type" in exc.value.errors

    with pytest.raises(ValidationError) as exc:
        cashbook.create_manual(session, "income", "x", "Other", 10, "17/05/2024")
    assert "date" in exc.value.errors


def test_automatic_categories_are_not_manual(session):
    with pytest.raises(ValidationError):
        cashbook.create_manual(session, "income", "x", cashbook.CATEGORY_INSTALLMENT, 10, "2024-01-01")


def test_update_rederives_period(session):
    tx = cashbook.create_manual(session, "expense", "Pump repair", "Maintenance", 120000, "2024-01-31")
    cashbook.update_manual(
        session, tx.id, "expense", "Pump repair", "Maintenance", 125000, "2024-02-01", "new seal"
    )
    assert (tx.period_year, tx.period_month) == (2024, 2)
    assert tx.amount == 125000
    assert tx.memo == "new seal"


def test_delete_entry(session):
    tx = cashbook.create_manual(session, "expense", "Salary", "Salary", 500000, "2024-01-31")
    cashbook.delete_entry(session, tx.id)
    with pytest.raises(NotFound):
        cashbook.get_entry(session, tx.id)


def test_monthly_listing_and_summary(session):
    cashbook.create_manual(session, "income", "Penalty late", "Penalty", 10000, "2024-03-02")
    cashbook.create_manual(session, "income", "Pipe sale", "Material Sales", 40000, "2024-03-10")
    cashbook.create_manual(session, "expense", "Chlorine", "Operational", 15000, "2024-03-11")
    cashbook.create_manual(session, "expense", "Other month", "Operational", 99999, "2024-04-01")

    out = cashbook.list_entries(session, 2024, 3, limit=2)
    assert out["summary"] == {"income": 50000, "expense": 15000, "balance": 35000}
    assert out["pagination"]["total_items"] == 3
    assert len(out["items"]) == 2
    assert out["items"][0]["name"] == "Chlorine"

    only_expense = cashbook.list_entries(session, 2024, 3, type_="expense")
    assert [i["name"] for i in only_expense["items"]] == ["Chlorine"]


def test_bill_payment_entries_are_read_only(session, make_customer, make_bill):
    c = make_customer()
    jan = make_bill(c, 2024, 1)
    feb = make_bill(c, 2024, 2, arrears=17000)
    set_status(session, jan.id, "paid")
    apply_installment(session, feb.id, 5000)

    water = session.exec(select(CashTransaction).where(CashTransaction.bill_id == jan.id)).one()
    installment = session.exec(
        select(CashTransaction).where(CashTransaction.category == cashbook.CATEGORY_INSTALLMENT)
    ).one()

    for tx in (water, installment):
        with pytest.raises(InvalidState):
            cashbook.delete_entry(session, tx.id)
        with pytest.raises(InvalidState):
            cashbook.update_manual(session, tx.id, "income", "Edited", "Other", 1, "2024-03-01")

    assert cashbook.has_bill_entry(session, jan.id)
    set_status(session, jan.id, "paid")
    entries = session.exec(select(CashTransaction).where(CashTransaction.bill_id == jan.id)).all()
    assert len(entries) == 1
