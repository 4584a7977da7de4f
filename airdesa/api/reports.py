from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from .. import reports
from ..auth import require_any_role
from ..db import engine
from ..envelope import ok
from ..errors import ValidationError

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["reports"],
    dependencies=[Depends(require_any_role("finance"))],
)


@router.get("/summary")
def summary(year: Optional[int] = None):
    with Session(engine) as session:
        return ok(reports.financial_summary(session, year or date.today().year))


@router.get("/yearly")
def yearly(year: Optional[int] = None):
    with Session(engine) as session:
        return ok(reports.yearly_report(session, year or date.today().year))


@router.get("/monthly")
def monthly(month: Optional[int] = None, year: Optional[int] = None):
    if not month or not 1 <= month <= 12:
        raise ValidationError(errors={"month": "Month between 1 and 12 is required"})
    with Session(engine) as session:
        return ok(reports.monthly_report(session, year or date.today().year, month))


@router.get("/detail")
def detail(month: Optional[int] = None, year: Optional[int] = None):
    if not month or not 1 <= month <= 12:
        raise ValidationError(errors={"month": "Month between 1 and 12 is required"})
    with Session(engine) as session:
        return ok(reports.detail_report(session, year or date.today().year, month))
