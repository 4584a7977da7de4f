from datetime import date, datetime, timezone

import pytest
from sqlmodel import select

from airdesa import billing, cashbook, readings, reports
from airdesa.errors import NotFound
from airdesa.models import Bill
from airdesa.payments import set_status


def test_financial_summary_is_cash_basis(session, make_customer, make_bill):
    c = make_customer()
    jan = make_bill(c, 2024, 1, usage_charge=17000)
    make_bill(c, 2024, 2, usage_charge=9500)
    set_status(session, jan.id, "paid", now=datetime(2024, 2, 3, tzinfo=timezone.utc))
    cashbook.create_manual(session, "income", "Connection", "New Connection", 300000, "2024-02-10")
    cashbook.create_manual(session, "expense", "Chlorine", "Operational", 50000, "2024-02-11")

    summary = reports.financial_summary(session, 2024)
    assert summary["water_income"] == 17000
    assert summary["other_income"] == 300000
    assert summary["total_income"] == 317000
    assert summary["expenses"] == 50000
    assert summary["net_balance"] == 267000
    assert summary["receivables"] == 9500


def test_yearly_report_breaks_down_by_month(session):
    cashbook.create_manual(session, "income", "Penalty", "Penalty", 5000, "2024-01-05")
    cashbook.create_manual(session, "expense", "Salary", "Salary", 2000, "2024-03-05")

    report = reports.yearly_report(session, 2024)
    assert len(report["months"]) == 12
    assert report["months"][0]["other_income"] == 5000
    assert report["months"][2]["expenses"] == 2000
    assert report["months"][2]["month_name"] == "March"
    assert report["totals"]["net_balance"] == 3000


def test_monthly_report_lists_entries(session):
    cashbook.create_manual(session, "income", "Penalty", "Penalty", 5000, "2024-01-05")
    report = reports.monthly_report(session, 2024, 1)
    assert report["period"] == "January 2024"
    assert [e["name"] for e in report["entries"]] == ["Penalty"]
    assert report["summary"]["balance"] == 5000


def test_customer_statement(session, make_customer):
    c = make_customer()
    end = 0
    for month in range(1, 6):
        end += 5
        readings.create_reading(session, c.id, 2024, month, end)
    bill = session.exec(select(Bill).where(Bill.period_month == 5)).one()
    set_status(session, bill.id, "paid")

    out = reports.customer_statement(session, c.code.lower())
    assert out["customer_code"] == c.code
    assert [p["period_month"] for p in out["periods"]] == [5, 4, 3]
    assert out["latest"]["status"] == "paid"
    assert out["unpaid_count"] == 4
    assert out["extra_unpaid_months"] == 2
    assert out["unpaid_total"] == 4 * 9500


def test_customer_statement_unknown_code(session):
    with pytest.raises(NotFound):
        reports.customer_statement(session, "HPM00404")


def test_public_stats(session, make_customer):
    krajan = make_customer(address="Krajan, RT 01")
    sumber = make_customer(name="Siti", address="Sumber,RT 02")
    make_customer(name="Tono", address="Krajan, RT 03")
    r = readings.create_reading(session, krajan.id, 2024, 6, 8, start_index=0)
    readings.create_reading(session, sumber.id, 2024, 6, 3, start_index=0)
    set_status(session, billing.bill_for_reading(session, r.id).id, "paid")

    stats = reports.public_stats(session, today=date(2024, 6, 20))
    assert stats["summary"] == {
        "usage_this_month": 11,
        "total_customers": 3,
        "payment_compliance": 50,
    }
    assert stats["charts"]["trend_data"][5] == 11
    assert stats["charts"]["outstanding_by_region"] == [{"region": "Sumber", "total": 6500}]
    assert stats["charts"]["customers_by_region"][0] == {"region": "Krajan", "total": 2}


def test_detail_report_splits_paid_usage_by_band(session, make_customer):
    small = make_customer()
    large = make_customer(name="Siti")
    unpaid = make_customer(name="Tono")
    paid_on = datetime(2024, 1, 20, tzinfo=timezone.utc)
    for customer, end in ((small, 3), (large, 12)):
        r = readings.create_reading(session, customer.id, 2024, 1, end, start_index=0)
        set_status(session, billing.bill_for_reading(session, r.id).id, "paid", now=paid_on)
    readings.create_reading(session, unpaid.id, 2024, 1, 7, start_index=0)
    cashbook.create_manual(session, "income", "Late fee", "Penalty", 5000, "2024-01-15")
    cashbook.create_manual(session, "expense", "Chlorine", "Operational", 20000, "2024-01-16")

    report = reports.detail_report(session, 2024, 1)

    assert report["period"] == "January 2024"
    assert report["water"] == {
        "band1": 4500 + 7500,
        "band2": 10000,
        "band3": 5000,
        "admin_fee": 4000,
        "customer_count": 2,
        "total": 31000,
    }
    # the water bill ledger lines are already counted in the band totals
    assert [e["name"] for e in report["other_income"]] == ["Late fee"]
    assert report["other_income_total"] == 5000
    assert report["expenses_total"] == 20000
    assert report["total_income"] == 36000
    assert report["net_profit"] == 16000
    assert report["chart"]["values"] == [36000, 20000]
