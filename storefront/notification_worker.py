"""
Consumes order events and sends the customer/admin notifications.

Mail delivery is not wired up; notifications are written to the log. Each
event is handled at most once per service, tracked in ``processed_events``.
"""
import json
import logging
import time

import pika
from pika.exceptions import AMQPError
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .database import session_scope

logger = logging.getLogger(__name__)

SERVICE_NAME = "notification-worker"

BINDINGS = [
    ("q.notification.order-placed", "order.placed"),
    ("q.notification.order-status-changed", "order.status_changed"),
]


def already_processed(db: Session, event_id: str) -> bool:
    stmt = select(models.ProcessedEvent.id).where(
        models.ProcessedEvent.service_name == SERVICE_NAME,
        models.ProcessedEvent.event_id == event_id,
    )
    return db.scalar(stmt) is not None


def mark_processed(db: Session, event_id: str) -> None:
    db.add(models.ProcessedEvent(service_name=SERVICE_NAME, event_id=event_id))


def send_notification(to: str, subject: str, body: str) -> None:
    logger.info("Notification TO=%s SUBJECT=%s BODY=%s", to, subject, body)


def notify_order_placed(payload: dict) -> None:
    number = payload.get("order_number")
    items = payload.get("items") or []
    send_notification(
        payload.get("email") or "unknown",
        f"Order {number} received",
        f"Hi {payload.get('customer_name', '')}, we received your order of "
        f"{len(items)} item(s), total {payload.get('total_amount')}.",
    )
    send_notification(
        "admin",
        f"New order {number}",
        f"{payload.get('customer_name', '')} <{payload.get('email', '')}> placed "
        f"{number} for {payload.get('total_amount')}.",
    )


def notify_status_changed(payload: dict) -> None:
    send_notification(
        payload.get("email") or "unknown",
        f"Order {payload.get('order_number')} is now {payload.get('to')}",
        f"Your order moved from {payload.get('from')} to {payload.get('to')}.",
    )


HANDLERS = {
    "order.placed": notify_order_placed,
    "order.status_changed": notify_status_changed,
}


def handle_event(db: Session, event_type: str, event_id: str, payload: dict) -> bool:
    """Returns False when the event was seen before."""
    if already_processed(db, event_id):
        logger.info("Skipping duplicate %s %s", event_type, event_id)
        return False
    handler = HANDLERS.get(event_type)
    if handler is None:
        logger.warning("No handler for %s", event_type)
    else:
        handler(payload)
    mark_processed(db, event_id)
    return True


def on_message(ch, method, props, body) -> None:
    try:
        payload = json.loads(body.decode("utf-8"))
    except ValueError as e:
        logger.error("Dropping malformed %s message: %s", method.routing_key, e)
        ch.basic_nack(delivery_tag=method.delivery_tag, requeue=False)
        return
    event_id = props.message_id or f"{method.routing_key}:{payload.get('order_id')}"
    with session_scope() as db:
        handle_event(db, method.routing_key, event_id, payload)
    ch.basic_ack(delivery_tag=method.delivery_tag)


def connect_rabbit_with_retry():
    if not settings.rabbitmq_url:
        raise RuntimeError("RABBITMQ_URL is not set")
    while True:
        try:
            params = pika.URLParameters(settings.rabbitmq_url)
            params.heartbeat = 30
            conn = pika.BlockingConnection(params)
            ch = conn.channel()
            ch.exchange_declare(exchange=settings.events_exchange, exchange_type="direct", durable=True)
            return conn, ch
        except AMQPError as e:
            logger.warning("Rabbit connect failed: %s; retrying...", e)
            time.sleep(2)


def consume_forever() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    while True:
        try:
            conn, ch = connect_rabbit_with_retry()
            for queue, routing_key in BINDINGS:
                ch.queue_declare(queue=queue, durable=True)
                ch.queue_bind(queue=queue, exchange=settings.events_exchange, routing_key=routing_key)
                ch.basic_consume(queue=queue, on_message_callback=on_message)
            logger.info("Listening on %s", ", ".join(q for q, _ in BINDINGS))
            ch.start_consuming()
        except Exception:
            # a failed handler (DB down, duplicate insert) must not end the worker
            logger.exception("Consumer error; reconnecting...")
            time.sleep(2)


if __name__ == "__main__":
    consume_forever()
