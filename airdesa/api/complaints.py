from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlmodel import Session

from .. import complaints
from ..auth import require_any_role
from ..db import engine
from ..envelope import ok
from ..notify import dispatch
from ..schemas.complaints import ComplaintStatusUpdate

router = APIRouter(
    prefix="/api/v1/complaints",
    tags=["complaints"],
    dependencies=[Depends(require_any_role("clerk"))],
)


@router.get("")
def list_complaints(
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    with Session(engine) as session:
        return ok(complaints.list_complaints(session, status, category, search, page, limit))


@router.get("/pending-count")
def pending_count():
    with Session(engine) as session:
        return ok({"count": complaints.pending_count(session)})


@router.get("/{complaint_id}")
def get_complaint(complaint_id: int):
    with Session(engine) as session:
        return ok(complaints.complaint_row(complaints.get_complaint(session, complaint_id)))


@router.put("/{complaint_id}/status")
def update_status(
    complaint_id: int, payload: ComplaintStatusUpdate, background_tasks: BackgroundTasks
):
    with Session(engine) as session:
        with session.begin():
            c, outbox = complaints.update_status(
                session, complaint_id, payload.status, payload.admin_note
            )
            data = complaints.complaint_row(c)
    if outbox:
        background_tasks.add_task(dispatch, outbox)
    return ok(data, "Complaint status updated")
