from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TariffClass(str, Enum):
    R1 = "R1"  # social: places of worship, orphanages
    R2 = "R2"  # household
    N1 = "N1"  # commercial
    S1 = "S1"  # village public facilities


class BillStatus(str, Enum):
    unpaid = "unpaid"
    paid = "paid"


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class ComplaintStatus(str, Enum):
    pending = "pending"
    processing = "processing"
    done = "done"


class Customer(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(sa_column=Column("code", String(16), unique=True, nullable=False))
    name: str = Field(nullable=False)
    phone: Optional[str] = None
    address: Optional[str] = None
    tariff_class: str = Field(default=TariffClass.R2.value)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))


class MeterReading(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint(
            "customer_id", "period_year", "period_month", name="uq_reading_customer_period"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)
    period_year: int
    period_month: int
    start_index: int = Field(default=0)
    end_index: int = Field(default=0)
    usage: int = Field(default=0)
    charge: int = Field(default=0)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))


class Bill(SQLModel, table=True):
    # period and customer are copied from the reading; a reading's period never changes
    id: Optional[int] = Field(default=None, primary_key=True)
    reading_id: int = Field(foreign_key="meterreading.id", unique=True)
    customer_id: int = Field(foreign_key="customer.id", index=True)
    period_year: int
    period_month: int
    start_index: int = Field(default=0)
    end_index: int = Field(default=0)
    usage: int = Field(default=0)
    usage_charge: int = Field(default=0)
    arrears: int = Field(default=0)
    total: int = Field(default=0)
    status: str = Field(default=BillStatus.unpaid.value)
    paid_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))


class CashTransaction(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    bill_id: Optional[int] = Field(default=None, foreign_key="bill.id", index=True)
    type: str
    name: str
    category: str
    amount: int
    entry_date: date
    memo: Optional[str] = Field(default=None, sa_column=Column("memo", Text, nullable=True))
    period_year: int = Field(index=True)
    period_month: int
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Complaint(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    reporter_name: str
    customer_code: str = Field(index=True)
    category: str
    detail: str = Field(sa_column=Column("detail", Text, nullable=False))
    photo_path: Optional[str] = None
    whatsapp: str
    status: str = Field(default=ComplaintStatus.pending.value)
    admin_note: Optional[str] = Field(default=None, sa_column=Column("admin_note", Text, nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))


class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(sa_column=Column("username", String(128), unique=True, nullable=False))
    password_hash: str
    role: str  # admin finance clerk


class AuditLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    actor_id: Optional[int] = Field(default=None, foreign_key="user.id")
    action: str
    table_name: str = Field(default="")
    row_id: Optional[int] = None
    before: Optional[str] = None
    after: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class ImportBatch(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    filename: str
    kind: str  # customers
    status: str = Field(default="pending")  # pending, processing, done, failed
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    started_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    finished_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    result: Optional[str] = Field(default=None, sa_column=Column("result", Text))
    errors: Optional[str] = Field(default=None, sa_column=Column("errors", Text))
