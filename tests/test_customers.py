import pytest

from airdesa import customers, readings
from airdesa.errors import InvalidState, ValidationError
from airdesa.models import Customer


def test_codes_are_sequential(session):
    a = customers.create_customer(session, "Budi", "081234567890", "Krajan, RT 01", "R2")
    b = customers.create_customer(session, "Siti", "081234567891", "Krajan, RT 02", "R1")
    assert a.code == "HPM00001"
    assert b.code == "HPM00002"


def test_code_follows_highest_existing(session):
    session.add(Customer(code="HPM00041", name="Imported"))
    session.add(Customer(code="LEGACY9", name="Other scheme"))
    session.flush()
    c = customers.create_customer(session, "New", "081234567890", "Sumber, RT 03", "N1")
    assert c.code == "HPM00042"


def test_validation_reports_every_field(session):
    with pytest.raises(ValidationError) as exc:
        customers.create_customer(session, " ", "0812-abc", "", "X9")
    assert set(exc.value.errors) == {"name", "phone", "address", "tariff_class"}


def test_phone_length(session):
    with pytest.raises(ValidationError) as exc:
        customers.create_customer(session, "Budi", "0812345", "Krajan", "R2")
    assert "phone" in exc.value.errors


def test_update_keeps_code(session):
    c = customers.create_customer(session, "Budi", "081234567890", "Krajan", "R2")
    customers.update_customer(session, c.id, "Budi S", "081234567899", "Sumber", "S1")
    assert c.code == "HPM00001"
    assert c.name == "Budi S"
    assert c.tariff_class == "S1"
    assert c.updated_at is not None


def test_delete_blocked_by_billing_history(session):
    c = customers.create_customer(session, "Budi", "081234567890", "Krajan", "R2")
    readings.create_reading(session, c.id, 2024, 1, 5, start_index=0)
    with pytest.raises(InvalidState):
        customers.delete_customer(session, c.id)


def test_delete_without_history(session):
    c = customers.create_customer(session, "Budi", "081234567890", "Krajan", "R2")
    customers.delete_customer(session, c.id)
    assert session.get(Customer, c.id) is None


def test_list_with_class_breakdown(session):
    customers.create_customer(session, "Budi", "081234567890", "Krajan", "R2")
    customers.create_customer(session, "Masjid Al Huda", "081234567891", "Krajan", "R1")
    customers.create_customer(session, "Bu Tini", "081234567892", "Sumber", "R2")

    out = customers.list_customers(session, search="bu")
    assert {i["name"] for i in out["items"]} == {"Budi", "Bu Tini"}
    assert out["stats"]["per_class"] == {"R1": 1, "R2": 2, "N1": 0, "S1": 0}
    assert out["stats"]["total"] == 3

    only_r1 = customers.list_customers(session, tariff_class="R1")
    assert [i["name"] for i in only_r1["items"]] == ["Masjid Al Huda"]
