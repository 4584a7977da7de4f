from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import receipts
from ..auth import require_any_role
from ..db import engine
from ..envelope import ok

router = APIRouter(
    prefix="/api/v1/receipts",
    tags=["receipts"],
    dependencies=[Depends(require_any_role("clerk", "finance"))],
)


@router.get("/customers")
def search_customers(q: Optional[str] = None):
    with Session(engine) as session:
        return ok(receipts.search_customers(session, q))


@router.get("/customers/{customer_id}/periods")
def customer_periods(customer_id: int):
    with Session(engine) as session:
        return ok(receipts.customer_periods(session, customer_id))


@router.get("/{reading_id}")
def receipt(reading_id: int):
    with Session(engine) as session:
        return ok(receipts.receipt(session, reading_id))
