import logging
import re
from typing import Dict, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from .envelope import page_window, pagination
from .errors import InvalidState, NotFound, ValidationError
from .models import Bill, Customer, MeterReading, TariffClass, utcnow

logger = logging.getLogger(__name__)

CODE_PREFIX = "HPM"
PHONE_RE = re.compile(r"^[0-9]{10,15}$")


def next_customer_code(session: Session) -> str:
    codes = session.exec(select(Customer.code).where(Customer.code.like(f"{CODE_PREFIX}%"))).all()
    highest = 0
    for code in codes:
        suffix = code[len(CODE_PREFIX):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{CODE_PREFIX}{highest + 1:05d}"


def validate_customer(name, phone, address, tariff_class) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not name or not str(name).strip():
        errors["name"] = "Name is required"
    if not phone or not str(phone).strip():
        errors["phone"] = "Phone is required"
    elif not PHONE_RE.match(str(phone).strip()):
        errors["phone"] = "Phone must be 10-15 digits"
    if not address or not str(address).strip():
        errors["address"] = "Address is required"
    if tariff_class not in [c.value for c in TariffClass]:
        errors["tariff_class"] = "Tariff class must be one of R1, R2, N1, S1"
    return errors


def get_customer(session: Session, customer_id: int) -> Customer:
    customer = session.get(Customer, customer_id)
    if not customer:
        raise NotFound("Customer not found")
    return customer


def customer_by_code(session: Session, code: str) -> Optional[Customer]:
    return session.exec(select(Customer).where(Customer.code == code)).first()


def create_customer(session: Session, name, phone, address, tariff_class=TariffClass.R2.value) -> Customer:
    errors = validate_customer(name, phone, address, tariff_class)
    if errors:
        raise ValidationError(errors=errors)
    customer = Customer(
        code=next_customer_code(session),
        name=name.strip(),
        phone=phone.strip(),
        address=address.strip(),
        tariff_class=tariff_class,
    )
    session.add(customer)
    session.flush()
    logger.info("registered customer %s (%s)", customer.code, customer.id)
    return customer


def update_customer(session: Session, customer_id: int, name, phone, address, tariff_class) -> Customer:
    """Update the editable fields; the customer code never changes."""
    customer = get_customer(session, customer_id)
    errors = validate_customer(name, phone, address, tariff_class)
    if errors:
        raise ValidationError(errors=errors)
    customer.name = name.strip()
    customer.phone = phone.strip()
    customer.address = address.strip()
    customer.tariff_class = tariff_class
    customer.updated_at = utcnow()
    session.add(customer)
    session.flush()
    return customer


def delete_customer(session: Session, customer_id: int):
    customer = get_customer(session, customer_id)
    bills = session.exec(select(func.count(Bill.id)).where(Bill.customer_id == customer.id)).one()
    readings = session.exec(
        select(func.count(MeterReading.id)).where(MeterReading.customer_id == customer.id)
    ).one()
    if bills or readings:
        raise InvalidState("Customer still has billing history and cannot be deleted")
    session.delete(customer)
    session.flush()
    logger.info("deleted customer %s", customer.code)


def customer_row(customer: Customer) -> dict:
    return {
        "id": customer.id,
        "code": customer.code,
        "name": customer.name,
        "phone": customer.phone,
        "address": customer.address,
        "tariff_class": customer.tariff_class,
        "created_at": customer.created_at,
    }


def list_customers(
    session: Session,
    search: Optional[str] = None,
    tariff_class: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    filters = []
    if search:
        like = f"%{search}%"
        filters.append(or_(Customer.name.like(like), Customer.code.like(like)))
    if tariff_class and tariff_class != "all":
        filters.append(Customer.tariff_class == tariff_class)

    count = int(session.exec(select(func.count(Customer.id)).where(*filters)).one())
    page, limit, offset = page_window(page, limit)
    rows = session.exec(
        select(Customer).where(*filters).order_by(Customer.code).offset(offset).limit(limit)
    ).all()

    per_class = {c.value: 0 for c in TariffClass}
    for cls, n in session.exec(
        select(Customer.tariff_class, func.count(Customer.id)).group_by(Customer.tariff_class)
    ).all():
        per_class[cls] = int(n)

    return {
        "items": [customer_row(c) for c in rows],
        "pagination": pagination(count, page, limit),
        "stats": {"total": sum(per_class.values()), "per_class": per_class},
    }
