import os
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

ROOT = Path(__file__).resolve().parent.parent

# Module-level setup: env vars must be set before test modules import `airdesa`.
data_dir = ROOT / "data"
data_dir.mkdir(exist_ok=True)
test_db_path = data_dir / "test.db"
for suffix in ("", "-wal", "-shm"):
    stale = Path(str(test_db_path) + suffix)
    if stale.exists():
        stale.unlink()

test_db_url = f"sqlite:///{test_db_path.as_posix()}"
os.environ["DATABASE_URL"] = test_db_url
os.environ["WHATSAPP_TOKEN"] = ""
os.environ["ADMIN_WHATSAPP"] = ""
os.environ["IMPORT_DIR"] = str(data_dir / "test_imports")

# Run alembic migrations once at import time so `airdesa` imports see the schema.
cfg = Config(str(ROOT / "alembic.ini"))
cfg.set_main_option("script_location", str(ROOT / "alembic"))
cfg.set_main_option("sqlalchemy.url", test_db_url)
command.upgrade(cfg, "head")

from airdesa.models import Bill, Customer, MeterReading  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def prepare_test_db():
    """Session-scoped fixture available to tests; cleanup happens after session."""
    yield
    from airdesa.db import engine

    engine.dispose()
    for suffix in ("", "-wal", "-shm"):
        stale = Path(str(test_db_path) + suffix)
        if stale.exists():
            stale.unlink()


@pytest.fixture
def session():
    """A fresh in-memory database per test for service-level tests."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    engine.dispose()


@pytest.fixture
def make_customer(session):
    counter = {"n": 0}

    def _make(name="Budi Santoso", address="Krajan, RT 01", tariff_class="R2"):
        counter["n"] += 1
        c = Customer(
            code=f"HPM{counter['n']:05d}",
            name=name,
            phone="081234567890",
            address=address,
            tariff_class=tariff_class,
        )
        session.add(c)
        session.flush()
        return c

    return _make


@pytest.fixture
def make_bill(session):
    """Insert a reading and its bill directly, bypassing the tariff."""

    def _make(customer, year, month, usage_charge=17000, arrears=0, status="unpaid"):
        reading = MeterReading(
            customer_id=customer.id,
            period_year=year,
            period_month=month,
            charge=usage_charge,
        )
        session.add(reading)
        session.flush()
        bill = Bill(
            reading_id=reading.id,
            customer_id=customer.id,
            period_year=year,
            period_month=month,
            usage_charge=usage_charge,
            arrears=arrears,
            total=usage_charge + arrears,
            status=status,
        )
        session.add(bill)
        session.flush()
        return bill

    return _make
