"""Endpoints open to residents without an account."""

from fastapi import APIRouter, BackgroundTasks
from sqlmodel import Session

from .. import complaints, reports
from ..db import engine
from ..envelope import ok
from ..notify import dispatch
from ..schemas.complaints import ComplaintIn
from ..tariff import tariff_schedule

router = APIRouter(prefix="/api/public", tags=["public"])


@router.post("/complaints")
def submit_complaint(payload: ComplaintIn, background_tasks: BackgroundTasks):
    with Session(engine) as session:
        with session.begin():
            c, outbox = complaints.submit_complaint(
                session,
                payload.reporter_name,
                payload.customer_code,
                payload.category,
                payload.detail,
                payload.whatsapp,
                payload.photo_path,
            )
            complaint_id = c.id
    if outbox:
        background_tasks.add_task(dispatch, outbox)
    return ok(
        {"id": complaint_id},
        "Your report has been received. We will contact you on WhatsApp.",
    )


@router.get("/bills/{customer_code}")
def check_bill(customer_code: str):
    with Session(engine) as session:
        return ok(reports.customer_statement(session, customer_code))


@router.get("/tariffs")
def tariffs():
    return ok(tariff_schedule())


@router.get("/stats")
def stats():
    with Session(engine) as session:
        return ok(reports.public_stats(session))
