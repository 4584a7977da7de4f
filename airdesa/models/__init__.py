from .domain import (  # noqa: F401
    AuditLog,
    Bill,
    BillStatus,
    CashTransaction,
    Complaint,
    ComplaintStatus,
    Customer,
    ImportBatch,
    MeterReading,
    TariffClass,
    TransactionType,
    User,
    utcnow,
)
