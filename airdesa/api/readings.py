from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import readings
from ..auth import require_any_role
from ..billing import bill_row, ensure_bill
from ..db import engine
from ..envelope import ok
from ..schemas.readings import ReadingCreate, ReadingUpdate

router = APIRouter(prefix="/api/v1/readings", tags=["readings"])
clerk = require_any_role("clerk")


@router.get("", dependencies=[Depends(clerk)])
def list_readings(
    year: Optional[int] = None,
    month: Optional[int] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    with Session(engine) as session:
        return ok(readings.list_readings(session, year, month, search, page, limit))


@router.post("", dependencies=[Depends(clerk)])
def create_reading(payload: ReadingCreate):
    with Session(engine) as session:
        with session.begin():
            r = readings.create_reading(
                session,
                payload.customer_id,
                payload.period_year,
                payload.period_month,
                payload.end_index,
                start_index=payload.start_index,
            )
            data = readings.reading_row(r)
    return ok(data, "Meter reading saved")


@router.get("/opening-index", dependencies=[Depends(clerk)])
def opening_index(customer_id: int, year: int, month: int):
    with Session(engine) as session:
        return ok({"start_index": readings.opening_index(session, customer_id, year, month)})


@router.get("/{reading_id}", dependencies=[Depends(clerk)])
def get_reading(reading_id: int):
    with Session(engine) as session:
        return ok(readings.reading_row(readings.get_reading(session, reading_id)))


@router.put("/{reading_id}", dependencies=[Depends(clerk)])
def update_reading(reading_id: int, payload: ReadingUpdate):
    with Session(engine) as session:
        with session.begin():
            r = readings.update_reading(
                session, reading_id, payload.end_index, start_index=payload.start_index
            )
            data = readings.reading_row(r)
    return ok(data, "Meter reading updated")


@router.delete("/{reading_id}", dependencies=[Depends(clerk)])
def delete_reading(reading_id: int):
    with Session(engine) as session:
        with session.begin():
            readings.delete_reading(session, reading_id)
    return ok(message="Meter reading deleted")


@router.post("/{reading_id}/bill", dependencies=[Depends(require_any_role("clerk", "finance"))])
def ensure_reading_bill(reading_id: int):
    with Session(engine) as session:
        with session.begin():
            data = bill_row(ensure_bill(session, reading_id))
    return ok(data)
