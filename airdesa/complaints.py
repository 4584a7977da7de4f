import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlmodel import Session, select

from . import notify
from .customers import customer_by_code
from .envelope import page_window, pagination
from .errors import InvalidState, NotFound, ValidationError
from .models import Complaint, ComplaintStatus, utcnow
from .notify import Notification, format_phone

logger = logging.getLogger(__name__)

CATEGORIES = ["Pipe Leak", "No Water", "Broken Meter", "Billing Error", "Water Quality", "Other"]
MIN_DETAIL_LENGTH = 10

# allowed forward moves; a status may also be re-saved unchanged to edit the note
_NEXT = {
    ComplaintStatus.pending.value: {ComplaintStatus.processing.value, ComplaintStatus.done.value},
    ComplaintStatus.processing.value: {ComplaintStatus.done.value},
    ComplaintStatus.done.value: set(),
}


def submit_complaint(
    session: Session,
    reporter_name: str,
    customer_code: str,
    category: str,
    detail: str,
    whatsapp: str,
    photo_path: Optional[str] = None,
) -> Tuple[Complaint, List[Notification]]:
    """Record a public complaint; returns it with the message for the admin number."""
    errors: Dict[str, str] = {}
    for field, value in (
        ("reporter_name", reporter_name),
        ("customer_code", customer_code),
        ("category", category),
        ("detail", detail),
        ("whatsapp", whatsapp),
    ):
        if not value or not str(value).strip():
            errors[field] = "This field is required"
    if errors:
        raise ValidationError("All fields are required", errors=errors)

    customer_code = customer_code.strip().upper()
    if not customer_by_code(session, customer_code):
        raise ValidationError(
            errors={"customer_code": "Customer code is not registered. Check your customer ID."}
        )
    if category not in CATEGORIES:
        raise ValidationError(errors={"category": "Invalid complaint category"})
    detail = detail.strip()
    if len(detail) < MIN_DETAIL_LENGTH:
        raise ValidationError(
            errors={"detail": f"Detail must be at least {MIN_DETAIL_LENGTH} characters"}
        )

    complaint = Complaint(
        reporter_name=reporter_name.strip(),
        customer_code=customer_code,
        category=category,
        detail=detail,
        whatsapp=whatsapp.strip(),
        photo_path=photo_path,
    )
    session.add(complaint)
    session.flush()
    logger.info("complaint %s from %s (%s)", complaint.id, customer_code, category)

    outbox = []
    if notify.ADMIN_WHATSAPP:
        outbox.append(
            Notification(
                format_phone(notify.ADMIN_WHATSAPP),
                f"*NEW COMPLAINT* #{complaint.id}\n\n"
                f"Name: {complaint.reporter_name}\n"
                f"Customer: {complaint.customer_code}\n"
                f"Category: {complaint.category}\n"
                f"WhatsApp: {complaint.whatsapp}\n\n"
                f"Detail: {complaint.detail}\n\n"
                "Please follow up from the admin dashboard.",
            )
        )
    return complaint, outbox


def _status_message(complaint: Complaint) -> str:
    if complaint.status == ComplaintStatus.processing.value:
        return (
            f"Hello *{complaint.reporter_name}*, your report about *{complaint.category}* "
            "is being handled by our technical team.\n\n"
            f"Report no: #{complaint.id}\n"
            "Status: *PROCESSING*\n\n"
            "Please wait for further updates. Thank you for your patience."
        )
    text = (
        f"Your complaint (customer {complaint.customer_code}) about *{complaint.category}* "
        "has been marked *DONE*.\n\n"
    )
    if complaint.admin_note:
        text += f"Note: {complaint.admin_note}\n\n"
    return text + "Thank you for using our water service."


def get_complaint(session: Session, complaint_id: int) -> Complaint:
    complaint = session.get(Complaint, complaint_id)
    if not complaint:
        raise NotFound("Complaint not found")
    return complaint


def update_status(
    session: Session,
    complaint_id: int,
    status: str,
    admin_note: Optional[str] = None,
) -> Tuple[Complaint, List[Notification]]:
    """Move a complaint forward and return the message owed to the reporter, if any."""
    if status not in _NEXT:
        raise ValidationError(errors={"status": "Status must be pending, processing or done"})
    complaint = get_complaint(session, complaint_id)
    old = complaint.status
    if status != old and status not in _NEXT[old]:
        raise InvalidState(f"Cannot move a complaint from {old} to {status}")

    complaint.status = status
    if admin_note is not None:
        complaint.admin_note = admin_note.strip()
    complaint.updated_at = utcnow()
    session.add(complaint)
    session.flush()

    outbox = []
    if status != old:
        logger.info("complaint %s %s -> %s", complaint.id, old, status)
        outbox.append(Notification(format_phone(complaint.whatsapp), _status_message(complaint)))
    return complaint, outbox


def complaint_row(c: Complaint) -> dict:
    return {
        "id": c.id,
        "reporter_name": c.reporter_name,
        "customer_code": c.customer_code,
        "category": c.category,
        "detail": c.detail,
        "photo_path": c.photo_path,
        "whatsapp": c.whatsapp,
        "status": c.status,
        "admin_note": c.admin_note,
        "created_at": c.created_at,
        "updated_at": c.updated_at,
    }


def pending_count(session: Session) -> int:
    return int(
        session.exec(
            select(func.count(Complaint.id)).where(
                Complaint.status == ComplaintStatus.pending.value
            )
        ).one()
    )


def list_complaints(
    session: Session,
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    filters = []
    if status and status != "all":
        filters.append(Complaint.status == status)
    if category and category != "all":
        filters.append(Complaint.category == category)
    if search:
        like = f"%{search}%"
        filters.append(
            or_(
                Complaint.reporter_name.like(like),
                Complaint.customer_code.like(like),
                Complaint.detail.like(like),
            )
        )
    count = int(session.exec(select(func.count(Complaint.id)).where(*filters)).one())
    page, limit, offset = page_window(page, limit)
    rows = session.exec(
        select(Complaint)
        .where(*filters)
        .order_by(Complaint.created_at.desc(), Complaint.id.desc())
        .offset(offset)
        .limit(limit)
    ).all()
    return {
        "items": [complaint_row(c) for c in rows],
        "pagination": pagination(count, page, limit),
    }
