from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import billing, payments
from ..auth import require_any_role
from ..db import engine
from ..envelope import ok
from ..models import Customer, User
from ..schemas.bills import ArrearsAdd, InstallmentCreate, StatusUpdate

router = APIRouter(prefix="/api/v1/bills", tags=["bills"])
finance = require_any_role("finance")


@router.get("", dependencies=[Depends(finance)])
def list_bills(
    year: Optional[int] = None,
    month: Optional[int] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    with Session(engine) as session:
        return ok(billing.list_bills(session, year, month, status, search, page, limit))


@router.post("/backfill", dependencies=[Depends(finance)])
def backfill():
    with Session(engine) as session:
        with session.begin():
            created = billing.backfill_bills(session)
    return ok({"created": created}, f"{created} bill(s) materialised")


@router.get("/{bill_id}", dependencies=[Depends(finance)])
def get_bill(bill_id: int):
    with Session(engine) as session:
        bill = billing.get_bill(session, bill_id)
        return ok(billing.bill_row(bill, session.get(Customer, bill.customer_id)))


@router.post("/{bill_id}/installments")
def pay_installment(bill_id: int, payload: InstallmentCreate, current_user: User = Depends(finance)):
    with Session(engine) as session:
        with session.begin():
            recalculated = payments.apply_installment(
                session, bill_id, payload.amount, actor_id=current_user.id
            )
            data = billing.bill_row(billing.get_bill(session, bill_id))
    data["recalculated_periods"] = recalculated
    return ok(data, "Installment recorded")


@router.put("/{bill_id}/status")
def update_status(bill_id: int, payload: StatusUpdate, current_user: User = Depends(finance)):
    with Session(engine) as session:
        with session.begin():
            bill = payments.set_status(session, bill_id, payload.status, actor_id=current_user.id)
            data = billing.bill_row(bill)
    return ok(data, f"Bill marked {payload.status}")


@router.post("/{bill_id}/arrears")
def add_arrears(bill_id: int, payload: ArrearsAdd, current_user: User = Depends(finance)):
    with Session(engine) as session:
        with session.begin():
            recalculated = payments.add_manual_arrears(
                session, bill_id, payload.amount, actor_id=current_user.id
            )
            data = billing.bill_row(billing.get_bill(session, bill_id))
    data["recalculated_periods"] = recalculated
    return ok(data, "Arrears added")
