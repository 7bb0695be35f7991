"""
Retrying data access.

Connection poolers in front of Postgres (pgbouncer in transaction mode) can
leave a pooled connection pointing at a server session that no longer knows
the driver's prepared statements. Those failures go away on a fresh
connection, so they are retried after recycling the pool; everything else is
raised to the caller untouched.
"""
import logging
import threading
import time
from typing import Any, Callable, Optional, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from . import database
from .config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# 42P05 duplicate_prepared_statement, 26000 invalid_sql_statement_name
TRANSIENT_PGCODES = {"42P05", "26000"}
TRANSIENT_MESSAGE = "prepared statement"


def is_transient_error(exc: BaseException) -> bool:
    if isinstance(exc, DBAPIError):
        pgcode = getattr(exc.orig, "pgcode", None)
        if pgcode in TRANSIENT_PGCODES:
            return True
        # str(exc) carries the SQL text and bound parameters; only the driver message counts
        return TRANSIENT_MESSAGE in str(exc.orig).lower()
    return TRANSIENT_MESSAGE in str(exc).lower()


class DatabaseHelper:
    def __init__(
        self,
        reconnect: Callable[[], None],
        retries: int = 3,
        retry_delay: float = 1.0,
        max_delay: float = 10.0,
        reconnect_cooldown: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._reconnect = reconnect
        self.retries = retries
        self.retry_delay = retry_delay
        self.max_delay = max_delay
        self.reconnect_cooldown = reconnect_cooldown
        self._sleep = sleep
        self._clock = clock
        self._last_reconnect: Optional[float] = None
        self._lock = threading.Lock()

    def execute_with_retry(
        self, operation: Callable[[], T], session: Optional[Session] = None
    ) -> T:
        attempt = 0
        while True:
            try:
                return operation()
            except Exception as exc:
                if not is_transient_error(exc) or attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning(
                    "Transient database error (%s); retry %d/%d", exc, attempt, self.retries
                )
                if session is not None:
                    session.rollback()
                self.reconnect()
                self._sleep(min(self.retry_delay * 2 ** (attempt - 1), self.max_delay))

    def reconnect(self) -> bool:
        """Recycle connections unless another request just did. Returns True if it ran."""
        with self._lock:
            now = self._clock()
            if (
                self._last_reconnect is not None
                and now - self._last_reconnect < self.reconnect_cooldown
            ):
                logger.info("Reconnect cooldown active, skipping")
                return False
            self._last_reconnect = now
        try:
            self._reconnect()
        except Exception:
            logger.exception("Reconnect failed")
            return False
        return True

    def transaction(self, session: Session, work: Callable[[Session], T]) -> T:
        """Run ``work`` as one commit; any failure rolls the whole unit back."""

        def run() -> T:
            try:
                result = work(session)
                session.commit()
                return result
            except Exception:
                session.rollback()
                raise

        return self.execute_with_retry(run)

    def health_check(self, session: Session) -> tuple[bool, int, Optional[str]]:
        started = time.perf_counter()
        try:
            session.execute(select(1))
        except Exception as exc:
            logger.error("Database health check failed: %s", exc)
            return False, int((time.perf_counter() - started) * 1000), str(exc)
        return True, int((time.perf_counter() - started) * 1000), None


class SafeQuery:
    """One ORM call per method, each wrapped in the helper's retry loop."""

    def __init__(self, helper: DatabaseHelper):
        self.helper = helper

    def find_many(self, session: Session, stmt) -> Sequence[Any]:
        return self.helper.execute_with_retry(lambda: session.scalars(stmt).all(), session)

    def find_first(self, session: Session, stmt) -> Any:
        return self.helper.execute_with_retry(lambda: session.scalars(stmt).first(), session)

    def find_unique(self, session: Session, model, ident) -> Any:
        return self.helper.execute_with_retry(lambda: session.get(model, ident), session)

    def count(self, session: Session, model, *criteria) -> int:
        stmt = select(func.count()).select_from(model).where(*criteria)
        return self.helper.execute_with_retry(lambda: session.scalar(stmt) or 0, session)

    def create(self, session: Session, obj: T) -> T:
        def op():
            session.add(obj)
            session.commit()
            session.refresh(obj)
            return obj

        return self.helper.execute_with_retry(op, session)

    def update(self, session: Session, obj: T, **values) -> T:
        def op():
            for key, value in values.items():
                setattr(obj, key, value)
            session.commit()
            session.refresh(obj)
            return obj

        return self.helper.execute_with_retry(op, session)

    def delete(self, session: Session, obj) -> None:
        def op():
            session.delete(obj)
            session.commit()

        self.helper.execute_with_retry(op, session)


db_helper = DatabaseHelper(
    reconnect=database.reconnect,
    retries=settings.db_retry_count,
    retry_delay=settings.db_retry_delay,
    reconnect_cooldown=settings.db_reconnect_cooldown,
)
safe_query = SafeQuery(db_helper)
