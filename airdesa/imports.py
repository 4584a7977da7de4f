import csv
import json
import logging
from io import BytesIO, StringIO, TextIOWrapper
from typing import Any, Dict, Iterator, List

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from sqlmodel import Session, select

from .db import engine
from .models import Customer, ImportBatch, TariffClass, utcnow
from .notify import format_phone

logger = logging.getLogger(__name__)

TEMPLATE_HEADER = ["No", "Customer Code", "Name", "Phone", "Address"]
IMPORT_SUFFIXES = (".csv", ".xlsx")


class ImportErrors(Exception):
    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors


def template_csv() -> str:
    buf = StringIO()
    csv.writer(buf).writerow(TEMPLATE_HEADER)
    return buf.getvalue()


def template_xlsx() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Customers"
    ws.append(TEMPLATE_HEADER)
    for cell in ws[1]:
        cell.font = Font(bold=True)
    bio = BytesIO()
    wb.save(bio)
    return bio.getvalue()


def _cell_text(value) -> str:
    if value is None:
        return ""
    # spreadsheet apps turn codes and phone numbers into floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _csv_rows(path: str) -> Iterator[List[str]]:
    with open(path, "rb") as fh:
        text = TextIOWrapper(fh, encoding="utf-8-sig")
        for row in csv.reader(text):
            yield [_cell_text(c) for c in row]


def _xlsx_rows(path: str) -> Iterator[List[str]]:
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        for row in wb.active.iter_rows(values_only=True):
            yield [_cell_text(c) for c in row]
    finally:
        wb.close()


def _read_rows(path: str):
    rows = _xlsx_rows(path) if path.lower().endswith(".xlsx") else _csv_rows(path)
    header = next(rows, [])
    if header[: len(TEMPLATE_HEADER)] != TEMPLATE_HEADER:
        raise ImportErrors(
            [{"row": 1, "error": "invalid template header, expected " + ", ".join(TEMPLATE_HEADER)}]
        )
    for i, cells in enumerate(rows, start=2):
        cells = cells + [""] * len(TEMPLATE_HEADER)
        yield i, dict(zip(TEMPLATE_HEADER, cells))


def import_customers_path(session: Session, path: str) -> Dict[str, Any]:
    """Load customers from a CSV or XLSX template inside the caller's session.

    Bad rows are skipped and reported. Raises ImportErrors, after rolling
    back, when every non-empty row failed.
    """
    errors: List[Dict[str, Any]] = []
    created = 0
    seen = set()
    for rownum, row in _read_rows(path):
        code = row["Customer Code"].upper()
        name = row["Name"]
        if not code and not name:
            continue
        if not code or not name:
            errors.append({"row": rownum, "error": "customer code or name is empty"})
            continue
        exists = session.exec(select(Customer.id).where(Customer.code == code)).first()
        if exists or code in seen:
            errors.append({"row": rownum, "error": f"customer code {code} already exists"})
            continue

        session.add(
            Customer(
                code=code,
                name=name,
                phone=format_phone(row["Phone"]) or None,
                address=row["Address"] or None,
                tariff_class=TariffClass.R2.value,
            )
        )
        seen.add(code)
        created += 1

    if created == 0 and errors:
        session.rollback()
        raise ImportErrors(errors)
    session.commit()
    return {"created": created, "failed": len(errors), "errors": errors}


def process_import_batch(batch_id: int, path: str):
    # update batch status and run import, capturing results/errors
    with Session(engine) as session:
        b0 = session.get(ImportBatch, batch_id)
        if not b0:
            logger.warning("import batch %s vanished before processing", batch_id)
            return
        b0.status = "processing"
        b0.started_at = utcnow()
        session.add(b0)
        session.commit()

    try:
        with Session(engine) as session:
            res = import_customers_path(session, path)
        with Session(engine) as session:
            b = session.get(ImportBatch, batch_id)
            b.status = "done"
            b.finished_at = utcnow()
            b.result = json.dumps(res, ensure_ascii=False)
            session.add(b)
            session.commit()
        logger.info("import batch %s: %s created, %s failed", batch_id, res["created"], res["failed"])
    except ImportErrors as ie:
        with Session(engine) as session:
            b = session.get(ImportBatch, batch_id)
            b.status = "failed"
            b.finished_at = utcnow()
            b.errors = json.dumps(ie.errors, ensure_ascii=False)
            session.add(b)
            session.commit()
        logger.warning("import batch %s failed with %d row error(s)", batch_id, len(ie.errors))
    except Exception as e:
        logger.exception("import batch %s crashed", batch_id)
        with Session(engine) as session:
            b = session.get(ImportBatch, batch_id)
            b.status = "failed"
            b.finished_at = utcnow()
            b.errors = json.dumps({"error": str(e)}, ensure_ascii=False)
            session.add(b)
            session.commit()


def batch_row(batch: ImportBatch) -> dict:
    return {
        "id": batch.id,
        "filename": batch.filename,
        "kind": batch.kind,
        "status": batch.status,
        "created_at": batch.created_at,
        "started_at": batch.started_at,
        "finished_at": batch.finished_at,
        "result": json.loads(batch.result) if batch.result else None,
        "errors": json.loads(batch.errors) if batch.errors else None,
    }
