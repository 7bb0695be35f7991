import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from storefront import models
from storefront.database_helper import DatabaseHelper, SafeQuery, is_transient_error


class PgError(Exception):
    def __init__(self, message, pgcode):
        super().__init__(message)
        self.pgcode = pgcode


def stale_statement():
    return OperationalError("SELECT 1", {}, Exception('prepared statement "s7" does not exist'))


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def reconnects():
    return []


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def helper(reconnects, sleeps, clock):
    return DatabaseHelper(
        reconnect=lambda: reconnects.append(clock()),
        retries=3,
        retry_delay=1.0,
        max_delay=10.0,
        reconnect_cooldown=5.0,
        sleep=sleeps.append,
        clock=clock,
    )


def flaky(failures, result="ok"):
    calls = []

    def operation():
        calls.append(1)
        if len(calls) <= failures:
            raise stale_statement()
        return result

    return operation, calls


def test_transient_error_detection():
    assert is_transient_error(stale_statement())
    assert is_transient_error(OperationalError("x", {}, PgError("boom", "42P05")))
    assert is_transient_error(OperationalError("x", {}, PgError("boom", "26000")))
    assert not is_transient_error(IntegrityError("x", {}, Exception("FOREIGN KEY constraint failed")))
    assert not is_transient_error(ValueError("bad input"))


def test_bound_parameters_do_not_make_an_error_transient():
    exc = IntegrityError(
        "INSERT INTO faqs (question) VALUES (?)",
        ("What is a prepared statement?",),
        Exception("UNIQUE constraint failed: faqs.question"),
    )
    assert not is_transient_error(exc)


def test_error_mentioning_prepared_statement_only_in_params_is_not_retried(helper, reconnects, sleeps):
    calls = []

    def operation():
        calls.append(1)
        raise IntegrityError(
            "INSERT INTO faqs (question) VALUES (?)",
            ("What is a prepared statement?",),
            Exception("UNIQUE constraint failed: faqs.question"),
        )

    with pytest.raises(IntegrityError):
        helper.execute_with_retry(operation)
    assert len(calls) == 1
    assert reconnects == []
    assert sleeps == []


def test_first_success_does_not_retry(helper, reconnects, sleeps):
    operation, calls = flaky(0)
    assert helper.execute_with_retry(operation) == "ok"
    assert len(calls) == 1
    assert reconnects == []
    assert sleeps == []


def test_single_transient_failure_reconnects_once(helper, reconnects, sleeps):
    operation, calls = flaky(1)
    assert helper.execute_with_retry(operation) == "ok"
    assert len(calls) == 2
    assert len(reconnects) == 1
    assert sleeps == [1.0]


def test_transient_failures_are_retried_with_backoff(helper, sleeps, clock, reconnects):
    def tick(delay):
        sleeps.append(delay)
        clock.now += 10

    helper._sleep = tick
    operation, calls = flaky(2)
    assert helper.execute_with_retry(operation) == "ok"
    assert len(calls) == 3
    assert sleeps == [1.0, 2.0]
    assert len(reconnects) == 2


def test_backoff_is_capped():
    sleeps = []
    helper = DatabaseHelper(
        reconnect=lambda: None, retries=3, retry_delay=4.0, max_delay=5.0,
        reconnect_cooldown=0, sleep=sleeps.append,
    )
    operation, _ = flaky(3)
    assert helper.execute_with_retry(operation) == "ok"
    assert sleeps == [4.0, 5.0, 5.0]


def test_non_transient_error_is_raised_immediately(helper, reconnects, sleeps):
    calls = []

    def operation():
        calls.append(1)
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        helper.execute_with_retry(operation)
    assert len(calls) == 1
    assert reconnects == []
    assert sleeps == []


def test_gives_up_after_configured_retries(helper):
    operation, calls = flaky(10)
    with pytest.raises(OperationalError):
        helper.execute_with_retry(operation)
    assert len(calls) == helper.retries + 1


def test_reconnect_respects_cooldown(helper, reconnects, clock):
    assert helper.reconnect() is True
    clock.now += 1
    assert helper.reconnect() is False
    clock.now += 5
    assert helper.reconnect() is True
    assert reconnects == [100.0, 106.0]


def test_failed_reconnect_is_reported_not_raised(clock):
    def broken():
        raise RuntimeError("pool gone")

    helper = DatabaseHelper(reconnect=broken, clock=clock)
    assert helper.reconnect() is False


def test_session_is_rolled_back_before_retry(helper):
    class RecordingSession:
        rollbacks = 0

        def rollback(self):
            self.rollbacks += 1

    session = RecordingSession()
    operation, _ = flaky(1)
    helper.execute_with_retry(operation, session)
    assert session.rollbacks == 1


def test_transaction_rolls_back_everything_on_failure(helper, db, count_rows):
    def work(tx):
        tx.add(models.Customer(name="Ann", email="ann@example.com"))
        tx.flush()
        raise RuntimeError("late failure")

    with pytest.raises(RuntimeError):
        helper.transaction(db, work)
    assert count_rows(models.Customer) == 0


def test_transaction_commits_and_returns_result(helper, db, count_rows):
    def work(tx):
        customer = models.Customer(name="Ann", email="ann@example.com")
        tx.add(customer)
        tx.flush()
        return customer.id

    customer_id = helper.transaction(db, work)
    assert customer_id is not None
    assert count_rows(models.Customer) == 1


def test_health_check_reports_latency(helper, db):
    healthy, elapsed_ms, error = helper.health_check(db)
    assert healthy is True
    assert elapsed_ms >= 0
    assert error is None


def test_safe_query_round_trip(helper, db):
    query = SafeQuery(helper)
    faq = query.create(db, models.FAQ(question="Shipping?", answer="Two days."))
    assert query.find_unique(db, models.FAQ, faq.id).question == "Shipping?"
    query.update(db, faq, answer="Three days.")
    assert query.count(db, models.FAQ, models.FAQ.answer == "Three days.") == 1
    query.delete(db, faq)
    assert query.count(db, models.FAQ) == 0
