"""Tests for change streams."""

import logging
import threading
import time
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import OperationalError

from conftest import balance_of, expense
from tally.database.streams import ChangeStream, NotificationDispatcher


@dataclass(frozen=True)
class Item:
    id: UUID
    name: str


class TestChangeStream:
    """Tests for ChangeStream on its own."""

    def test_subscribe_replays_latest(self):
        a, b = Item(uuid4(), "b"), Item(uuid4(), "a")
        stream = ChangeStream("items", lambda: [a, b], sort_key=lambda i: i.name)
        received = []

        stream.subscribe(received.append)

        assert received == [[b, a]]

    def test_loader_runs_once(self):
        calls = []

        def loader():
            calls.append(1)
            return []

        stream = ChangeStream("items", loader, sort_key=lambda i: i.name)
        stream.latest()
        stream.subscribe(lambda snapshot: None)
        stream.apply_changes([Item(uuid4(), "x")])

        assert calls == [1]

    def test_apply_changes_updates_index(self):
        keep, drop = Item(uuid4(), "keep"), Item(uuid4(), "drop")
        stream = ChangeStream("items", lambda: [keep, drop], sort_key=lambda i: i.name)
        received = []
        stream.subscribe(received.append)

        renamed = Item(keep.id, "kept")
        stream.apply_changes(upserted=[renamed], removed=[drop.id])

        assert received[-1] == [renamed]
        assert len(received) == 2

    def test_changes_ignored_before_first_load(self):
        stream = ChangeStream("items", lambda: [], sort_key=lambda i: i.name)
        stream.apply_changes([Item(uuid4(), "early")])

        assert not stream.is_loaded
        assert stream.latest() == []

    def test_failing_subscriber_is_logged(self, caplog):
        stream = ChangeStream("items", lambda: [], sort_key=lambda i: i.name)
        received = []

        def broken(snapshot):
            raise RuntimeError("listener bug")

        stream.subscribe(received.append)
        with caplog.at_level(logging.ERROR, logger="tally.database.streams"):
            stream.subscribe(broken)
            stream.apply_changes([Item(uuid4(), "x")])

        assert "Subscriber of items stream failed" in caplog.text
        assert len(received) == 2

    def test_unsubscribe(self):
        stream = ChangeStream("items", lambda: [], sort_key=lambda i: i.name)
        received = []
        unsubscribe = stream.subscribe(received.append)
        unsubscribe()
        stream.apply_changes([Item(uuid4(), "x")])
        assert len(received) == 1


class TestNotificationDispatcher:
    """Tests for the background notification thread."""

    def test_runs_tasks_in_submission_order(self):
        dispatcher = NotificationDispatcher()
        seen = []
        for i in range(20):
            dispatcher.submit(seen.append, i)
        dispatcher.flush()
        dispatcher.close()

        assert seen == list(range(20))

    def test_failing_task_is_logged_and_later_tasks_run(self, caplog):
        dispatcher = NotificationDispatcher("test-dispatcher")
        seen = []

        def broken():
            raise RuntimeError("boom")

        with caplog.at_level(logging.ERROR, logger="tally.database.streams"):
            dispatcher.submit(broken)
            dispatcher.submit(seen.append, "after")
            dispatcher.flush()
        dispatcher.close()

        assert seen == ["after"]
        assert "Notification task on test-dispatcher failed" in caplog.text

    def test_tasks_run_off_the_caller_thread(self):
        dispatcher = NotificationDispatcher()
        threads = []
        dispatcher.submit(lambda: threads.append(threading.current_thread()))
        dispatcher.flush()
        dispatcher.close()

        assert threads[0] is not threading.current_thread()

    def test_close_drains_pending_tasks(self):
        dispatcher = NotificationDispatcher()
        seen = []
        dispatcher.submit(seen.append, 1)
        dispatcher.submit(seen.append, 2)
        dispatcher.close()

        assert seen == [1, 2]

    def test_stream_replay_goes_through_dispatcher(self):
        dispatcher = NotificationDispatcher()
        a = Item(uuid4(), "a")
        stream = ChangeStream("items", lambda: [a], sort_key=lambda i: i.name, dispatcher=dispatcher)
        received = []
        stream.subscribe(lambda snapshot: received.append((threading.current_thread(), snapshot)))
        dispatcher.flush()
        dispatcher.close()

        assert received[0][0] is not threading.current_thread()
        assert received[0][1] == [a]


class TestRepositoryStreams:
    """Tests for streams published by the repository after each batch."""

    def test_transactions_stream_follows_ledger(self, temp_db, ledger, card):
        received = []
        temp_db.transactions_stream.subscribe(received.append)

        txn = ledger.create_transaction(expense(card, "10"))
        temp_db.flush_notifications()
        ledger.delete_transaction(txn.id)
        temp_db.flush_notifications()

        assert [[t.id for t in snapshot] for snapshot in received] == [[], [txn.id], []]

    def test_accounts_stream_sees_balance(self, temp_db, ledger, card):
        received = []
        temp_db.accounts_stream.subscribe(received.append)

        ledger.create_transaction(expense(card, "10"))
        temp_db.flush_notifications()

        assert received[-1][0].balance == Decimal("990.00")

    def test_categories_stream(self, temp_db, category_service):
        received = []
        temp_db.categories_stream.subscribe(received.append)

        category_service.create_category("cafe")
        temp_db.flush_notifications()

        assert [c.name for c in received[-1]] == ["cafe"]

    def test_failed_batch_publishes_nothing(self, temp_db, card):
        received = []
        temp_db.accounts_stream.subscribe(received.append)

        def failing(uow):
            uow.adjust_balance(card.id, Decimal("-1"))
            raise RuntimeError("interrupted")

        with pytest.raises(RuntimeError):
            temp_db.perform_batch(failing)
        temp_db.flush_notifications()

        assert len(received) == 1

    def test_slow_subscriber_does_not_delay_writes(self, temp_db, ledger, card):
        release = threading.Event()
        received = []

        def slow(snapshot):
            received.append(snapshot)
            release.wait(timeout=5)

        temp_db.transactions_stream.subscribe(slow)
        started = time.monotonic()
        first = ledger.create_transaction(expense(card, "5"))
        second = ledger.create_transaction(expense(card, "7"))
        elapsed = time.monotonic() - started
        release.set()
        temp_db.flush_notifications()

        assert elapsed < 1.0
        assert {t.id for t in received[-1]} == {first.id, second.id}

    def test_subscriber_can_write_to_the_same_account(self, temp_db, ledger, account_service, card):
        written = []

        def refund_once(snapshot):
            if len(snapshot) == 1 and not written:
                written.append(ledger.create_transaction(expense(card, "1")))

        temp_db.transactions_stream.subscribe(refund_once)
        ledger.create_transaction(expense(card, "10"))
        temp_db.flush_notifications()

        assert len(written) == 1
        assert balance_of(account_service, card) == Decimal("989.00")
        assert ledger.reconcile() == []

    def test_refresh_failure_does_not_fail_the_write(self, temp_db, ledger, card, monkeypatch, caplog):
        temp_db.transactions_stream.latest()

        def broken(changes):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(temp_db, "_refresh_streams", broken)
        with caplog.at_level(logging.ERROR, logger="tally.database.sqlalchemy_db"):
            txn = ledger.create_transaction(expense(card, "5"))
            temp_db.flush_notifications()

        assert ledger.get_transaction(txn.id) is not None
        assert "Could not refresh change streams after commit" in caplog.text
