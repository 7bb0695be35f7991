"""
Outbox relay: polls ``event_outbox`` for NEW rows and publishes them to the
events exchange, marking each row PUBLISHED in the same DB transaction that
read it.

Run with ``storefront-outbox-publisher`` (or ``python -m storefront.outbox_publisher``).
"""
import json
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

import pika
from pika.exceptions import AMQPError
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from . import models
from .config import settings
from .database import SessionLocal

logger = logging.getLogger(__name__)

PUBLISH_ATTEMPTS = 2


def connect_rabbitmq_with_retry(max_wait_sec: int = 60, sleep: Callable[[float], None] = time.sleep):
    if not settings.rabbitmq_url:
        raise RuntimeError("RABBITMQ_URL is not set")
    attempt = 0
    while True:
        try:
            params = pika.URLParameters(settings.rabbitmq_url)
            params.heartbeat = 30
            params.blocked_connection_timeout = 300
            params.connection_attempts = 5
            params.retry_delay = 2

            conn = pika.BlockingConnection(params)
            ch = conn.channel()
            ch.exchange_declare(exchange=settings.events_exchange, exchange_type="direct", durable=True)
            return conn, ch
        except AMQPError as e:
            attempt += 1
            delay = min(2 ** attempt, max_wait_sec)
            logger.warning("RabbitMQ connect failed (%s); retrying in %ss", e, delay)
            sleep(delay)


def wait_for_database(max_wait_sec: int = 60, sleep: Callable[[float], None] = time.sleep) -> None:
    attempt = 0
    while True:
        try:
            with SessionLocal() as db:
                db.execute(text("select 1"))
            return
        except OperationalError as e:
            attempt += 1
            delay = min(2 ** attempt, max_wait_sec)
            logger.warning("DB connect failed (%s); retrying in %ss", e, delay)
            sleep(delay)


def fetch_pending(db: Session, batch_size: int) -> Sequence[models.EventOutbox]:
    stmt = (
        select(models.EventOutbox)
        .where(models.EventOutbox.status == "NEW")
        .order_by(models.EventOutbox.id)
        .limit(batch_size)
    )
    if db.get_bind().dialect.name == "postgresql":
        # several relays may poll the same table
        stmt = stmt.with_for_update(skip_locked=True)
    return db.scalars(stmt).all()


def _close_quietly(resource) -> None:
    if resource is None:
        return
    try:
        if resource.is_open:
            resource.close()
    except AMQPError as e:
        logger.debug("Ignoring close error: %s", e)


def publish_batch(channel, rows: Sequence[models.EventOutbox], reconnect: Optional[Callable] = None):
    """
    Publish ``rows`` and update their status in place; the caller commits.
    Returns ``(channel, published)``: the channel differs from the one passed
    in after a reconnect.
    """
    published = 0
    for row in rows:
        try:
            body = json.dumps(row.payload).encode("utf-8")
        except (TypeError, ValueError) as e:
            logger.error("Outbox row %s has an unserialisable payload: %s", row.id, e)
            row.status = "FAILED"
            continue

        for attempt in range(PUBLISH_ATTEMPTS):
            try:
                channel.basic_publish(
                    exchange=settings.events_exchange,
                    routing_key=row.event_type,
                    body=body,
                    properties=pika.BasicProperties(
                        content_type="application/json",
                        delivery_mode=2,  # persistent
                        message_id=str(row.event_id),
                        type=row.event_type,
                    ),
                )
            except AMQPError as e:
                logger.warning("Publish failed id=%s (attempt %d): %s", row.id, attempt + 1, e)
                if reconnect is not None:
                    channel = reconnect()
                continue
            row.status = "PUBLISHED"
            row.published_at = datetime.now(timezone.utc)
            published += 1
            break
        else:
            # stays NEW; the next poll picks it up again
            logger.warning("Giving up for now on id=%s; will retry on next loop", row.id)
    return channel, published


def loop() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    conn, channel = connect_rabbitmq_with_retry()
    logger.info("Connected to RabbitMQ")
    wait_for_database()
    logger.info("Connected to DB")

    def reconnect():
        nonlocal conn, channel
        _close_quietly(channel)
        _close_quietly(conn)
        conn, channel = connect_rabbitmq_with_retry()
        return channel

    while True:
        try:
            with SessionLocal() as db:
                rows = fetch_pending(db, settings.outbox_batch_size)
                if rows:
                    channel, published = publish_batch(channel, rows, reconnect)
                    db.commit()
                    logger.info("Published %d of %d outbox rows", published, len(rows))
        except Exception:
            logger.exception("Loop error; reconnecting")
            reconnect()
        time.sleep(settings.outbox_poll_sec)


if __name__ == "__main__":
    loop()
