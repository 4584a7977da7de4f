import logging
import os
import shutil
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile
from fastapi.responses import Response
from sqlmodel import Session

from .. import customers
from ..auth import require_any_role
from ..db import BASE_DIR, engine
from ..envelope import ok
from ..errors import NotFound, ValidationError
from ..imports import (
    IMPORT_SUFFIXES,
    batch_row,
    process_import_batch,
    template_csv,
    template_xlsx,
)
from ..models import ImportBatch
from ..schemas.customers import CustomerIn

logger = logging.getLogger(__name__)

IMPORT_DIR = os.getenv("IMPORT_DIR", str(BASE_DIR / "data" / "imports"))
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

router = APIRouter(prefix="/api/v1/customers", tags=["customers"])
clerk = require_any_role("clerk")


@router.get("", dependencies=[Depends(clerk)])
def list_customers(
    search: Optional[str] = None,
    tariff_class: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
):
    with Session(engine) as session:
        return ok(customers.list_customers(session, search, tariff_class, page, limit))


@router.post("", dependencies=[Depends(clerk)])
def create_customer(payload: CustomerIn):
    with Session(engine) as session:
        with session.begin():
            c = customers.create_customer(
                session, payload.name, payload.phone, payload.address, payload.tariff_class
            )
            data = customers.customer_row(c)
    return ok(data, f"Customer {data['code']} registered")


@router.get("/template", dependencies=[Depends(clerk)])
def download_template(format: str = "csv"):
    if format == "xlsx":
        content, media_type = template_xlsx(), XLSX_MEDIA_TYPE
    elif format == "csv":
        content, media_type = template_csv(), "text/csv"
    else:
        raise ValidationError(errors={"format": "Format must be csv or xlsx"})
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="customer_template.{format}"'},
    )


@router.post("/imports", dependencies=[Depends(clerk)])
def import_customers(background_tasks: BackgroundTasks, file: UploadFile = File(...)):
    filename = os.path.basename(file.filename or "")
    if not filename.lower().endswith(IMPORT_SUFFIXES):
        raise ValidationError(errors={"file": "Upload the CSV or XLSX template"})
    os.makedirs(IMPORT_DIR, exist_ok=True)
    with Session(engine) as session:
        batch = ImportBatch(filename=filename, kind="customers", status="pending")
        session.add(batch)
        session.commit()
        session.refresh(batch)
        batch_id = batch.id
    dest_path = os.path.join(IMPORT_DIR, f"{batch_id}_{uuid.uuid4().hex[:8]}_{filename}")
    with open(dest_path, "wb") as out:
        shutil.copyfileobj(file.file, out)
    logger.info("queued import batch %s (%s)", batch_id, filename)
    background_tasks.add_task(process_import_batch, batch_id, dest_path)
    return ok({"batch_id": batch_id, "status": "pending"}, "Import queued")


@router.get("/imports/{batch_id}", dependencies=[Depends(clerk)])
def get_import_batch(batch_id: int):
    with Session(engine) as session:
        batch = session.get(ImportBatch, batch_id)
        if not batch:
            raise NotFound("Import batch not found")
        return ok(batch_row(batch))


@router.get("/{customer_id}", dependencies=[Depends(clerk)])
def get_customer(customer_id: int):
    with Session(engine) as session:
        return ok(customers.customer_row(customers.get_customer(session, customer_id)))


@router.put("/{customer_id}", dependencies=[Depends(clerk)])
def update_customer(customer_id: int, payload: CustomerIn):
    with Session(engine) as session:
        with session.begin():
            c = customers.update_customer(
                session,
                customer_id,
                payload.name,
                payload.phone,
                payload.address,
                payload.tariff_class,
            )
            data = customers.customer_row(c)
    return ok(data, "Customer updated")


@router.delete("/{customer_id}", dependencies=[Depends(clerk)])
def delete_customer(customer_id: int):
    with Session(engine) as session:
        with session.begin():
            customers.delete_customer(session, customer_id)
    return ok(message="Customer deleted")
