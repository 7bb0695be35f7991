import logging
import time
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..database_helper import DatabaseHelper, db_helper, safe_query
from ..errors import NotFound
from .common import Page, get_or_404, paginate, search_filter

logger = logging.getLogger(__name__)

ORDER_NUMBER_SPACE = 10_000


def generate_order_number(now: Optional[datetime] = None, millis: Optional[int] = None) -> str:
    """ORD-YYYYMMDD-NNNN, NNNN being the last four digits of the epoch milliseconds."""
    now = now or datetime.now()
    millis = int(time.time() * 1000) if millis is None else millis
    return f"ORD-{now:%Y%m%d}-{millis % ORDER_NUMBER_SPACE:04d}"


def _unique_order_number(db: Session) -> str:
    now = datetime.now()
    millis = int(time.time() * 1000)
    for step in range(ORDER_NUMBER_SPACE):
        candidate = generate_order_number(now, millis + step)
        taken = db.scalar(
            select(models.Order.id).where(models.Order.order_number == candidate).limit(1)
        )
        if taken is None:
            return candidate
        logger.info("Order number %s already taken, advancing suffix", candidate)
    raise RuntimeError(f"No free order number left for {now:%Y-%m-%d}")


def _resolve_customer_id(db: Session, customer: schemas.CustomerData) -> int:
    # an explicit id is trusted as is; the foreign key rejects unknown ids
    if customer.existing_customer_id is not None:
        return customer.existing_customer_id

    existing = db.scalar(
        select(models.Customer).where(models.Customer.email == customer.email).limit(1)
    )
    if existing is not None:
        return existing.id

    new_customer = models.Customer(
        name=customer.name,
        email=customer.email,
        phone=customer.phone or None,
        role="customer",
        is_active=True,
    )
    db.add(new_customer)
    db.flush()
    logger.info("Created customer %s while placing an order", new_customer.email)
    return new_customer.id


def add_event(db: Session, event_type: str, payload: dict) -> models.EventOutbox:
    event = models.EventOutbox(event_type=event_type, payload=payload)
    db.add(event)
    return event


def create_order_with_outbox(
    db: Session, order_data: schemas.OrderCreate, helper: DatabaseHelper = db_helper
) -> models.Order:
    """
    One transaction:
    - resolve or create the customer
    - insert the order header and its items
    - record order.placed in event_outbox
    """
    customer_data = order_data.customer_data

    def work(tx: Session) -> int:
        customer_id = _resolve_customer_id(tx, customer_data)
        name, email, phone = customer_data.name, customer_data.email, customer_data.phone
        if not (name and email):
            # snapshot only; a missing row is left for the foreign key to reject
            known = tx.get(models.Customer, customer_id)
            if known is not None:
                name, email, phone = name or known.name, email or known.email, phone or known.phone

        order = models.Order(
            order_number=_unique_order_number(tx),
            customer_id=customer_id,
            customer_name=name or "",
            customer_email=email or "",
            customer_phone=phone or None,
            total_amount=order_data.total_amount,
            status="pending",
        )
        tx.add(order)
        tx.flush()

        for item in order_data.items:
            tx.add(models.OrderItem(
                order_id=order.id,
                product_id=item.product_id,
                variant_id=item.variant_id,
                product_name=item.product_name,
                variant_name=item.variant_name,
                price=item.price,
                quantity=item.quantity,
            ))
        tx.flush()

        add_event(tx, "order.placed", {
            "order_id": order.id,
            "order_number": order.order_number,
            "customer_id": customer_id,
            "customer_name": order.customer_name,
            "email": order.customer_email,
            "items": [
                {
                    "product_id": item.product_id,
                    "variant_id": item.variant_id,
                    "product_name": item.product_name,
                    "variant_name": item.variant_name,
                    "quantity": item.quantity,
                    "price": str(item.price),
                }
                for item in order_data.items
            ],
            "total_amount": str(order_data.total_amount),
        })
        return order.id

    order_id = helper.transaction(db, work)
    order = get_order(db, order_id)
    logger.info("Created order %s", order.order_number)
    return order


def list_orders(
    db: Session, page: int, limit: int, search: str = "", status: str = ""
) -> Page:
    return paginate(
        db,
        models.Order,
        search_filter(
            search,
            models.Order.order_number,
            models.Order.customer_name,
            models.Order.customer_email,
        ),
        models.Order.status == status if status else None,
        order_by=(models.Order.created_at.desc(), models.Order.id.desc()),
        page=page,
        limit=limit,
    )


def get_order(db: Session, order_id: int) -> models.Order:
    stmt = (
        select(models.Order)
        .where(models.Order.id == order_id)
        .options(selectinload(models.Order.items))
    )
    order = safe_query.find_first(db, stmt)
    if order is None:
        raise NotFound("Order not found")
    return order


def update_order(
    db: Session, order_id: int, changes: schemas.OrderUpdate, helper: DatabaseHelper = db_helper
) -> models.Order:
    order = get_or_404(db, models.Order, order_id, "Order not found")
    previous_status = order.status

    def work(tx: Session) -> None:
        if changes.status:
            order.status = changes.status
        if changes.admin_notes is not None:
            order.admin_notes = changes.admin_notes
        if changes.status and changes.status != previous_status:
            add_event(tx, "order.status_changed", {
                "order_id": order.id,
                "order_number": order.order_number,
                "email": order.customer_email,
                "from": previous_status,
                "to": changes.status,
            })

    helper.transaction(db, work)
    logger.info("Updated order %s", order_id)
    return get_order(db, order_id)


def delete_order(db: Session, order_id: int) -> None:
    order = get_or_404(db, models.Order, order_id, "Order not found")
    safe_query.delete(db, order)
    logger.info("Deleted order %s", order_id)
