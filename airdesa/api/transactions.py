from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import cashbook
from ..auth import require_any_role
from ..db import engine
from ..envelope import ok
from ..schemas.transactions import TransactionIn

router = APIRouter(prefix="/api/v1/transactions", tags=["transactions"])
finance = require_any_role("finance")


@router.get("", dependencies=[Depends(finance)])
def list_transactions(
    year: Optional[int] = None,
    month: Optional[int] = None,
    type: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    today = date.today()
    with Session(engine) as session:
        return ok(
            cashbook.list_entries(
                session, year or today.year, month or today.month, type, page, limit
            )
        )


@router.post("", dependencies=[Depends(finance)])
def create_transaction(payload: TransactionIn):
    with Session(engine) as session:
        with session.begin():
            tx = cashbook.create_manual(
                session,
                payload.type,
                payload.name,
                payload.category,
                payload.amount,
                payload.entry_date,
                payload.memo,
            )
            data = cashbook.entry_row(tx)
    return ok(data, "Transaction recorded")


@router.put("/{tx_id}", dependencies=[Depends(finance)])
def update_transaction(tx_id: int, payload: TransactionIn):
    with Session(engine) as session:
        with session.begin():
            tx = cashbook.update_manual(
                session,
                tx_id,
                payload.type,
                payload.name,
                payload.category,
                payload.amount,
                payload.entry_date,
                payload.memo,
            )
            data = cashbook.entry_row(tx)
    return ok(data, "Transaction updated")


@router.delete("/{tx_id}", dependencies=[Depends(finance)])
def delete_transaction(tx_id: int):
    with Session(engine) as session:
        with session.begin():
            cashbook.delete_entry(session, tx_id)
    return ok(message="Transaction deleted")
