import logging
from typing import List

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .. import models, schemas
from ..database_helper import db_helper, safe_query
from ..errors import Conflict
from .common import Page, find_by, get_or_404, paginate, search_filter

logger = logging.getLogger(__name__)


def list_customers(db: Session, page: int, limit: int, search: str = "") -> Page:
    return paginate(
        db,
        models.Customer,
        models.Customer.role == "customer",
        search_filter(search, models.Customer.name, models.Customer.email),
        order_by=(models.Customer.created_at.desc(), models.Customer.id.desc()),
        page=page,
        limit=limit,
    )


def get_customer(db: Session, customer_id: int) -> models.Customer:
    return get_or_404(db, models.Customer, customer_id, "Customer not found")


def create_customer(db: Session, data: schemas.CustomerCreate) -> models.Customer:
    if find_by(db, models.Customer, models.Customer.email == data.email) is not None:
        raise Conflict("Email is already in use")
    customer = safe_query.create(db, models.Customer(
        name=data.name,
        email=data.email,
        phone=data.phone or None,
        role="customer",
        is_active=True,
    ))
    logger.info("Created customer %s", customer.email)
    return customer


def update_customer(db: Session, customer_id: int, data: schemas.CustomerUpdate) -> models.Customer:
    customer = get_customer(db, customer_id)
    clash = find_by(
        db,
        models.Customer,
        models.Customer.email == data.email,
        models.Customer.id != customer_id,
    )
    if clash is not None:
        raise Conflict("Email is already in use")

    values = {
        "name": data.name,
        "email": data.email,
        "phone": data.phone or None,
        "address": data.address or None,
        "note": data.note or None,
    }
    if data.is_active is not None:
        values["is_active"] = data.is_active
    customer = safe_query.update(db, customer, **values)
    logger.info("Updated customer %s", customer.email)
    return customer


def delete_customer(db: Session, customer_id: int) -> None:
    customer = get_customer(db, customer_id)
    email = customer.email
    safe_query.delete(db, customer)
    logger.info("Deleted customer %s", email)


def bulk_delete_customers(db: Session, customer_ids: List[int]) -> int:
    def work(tx: Session) -> int:
        result = tx.execute(delete(models.Customer).where(models.Customer.id.in_(customer_ids)))
        return result.rowcount or 0

    deleted = db_helper.transaction(db, work)
    logger.info("Deleted %d customers", deleted)
    return deleted
