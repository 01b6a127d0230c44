"""Pending import queue: admits bank-feed transactions into the ledger exactly once."""

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta, UTC
from typing import Optional
from uuid import UUID

from tally.database.base import Repository, UnitOfWork
from tally.domain.categorization import CategorySuggester, NullCategorySuggester
from tally.domain.entities import (
    PendingStatus,
    PendingTransaction,
    Transaction,
    TransactionType,
)
from tally.domain.errors import (
    AccountNotFoundError,
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
    account_not_found,
    duplicate_bank_transaction_id,
    pending_not_found,
)
from tally.domain.ledger import LedgerEngine, check_amount

logger = logging.getLogger(__name__)

STUCK_AFTER = timedelta(minutes=10)


class PendingImportQueue:
    """Review queue between the bank feed and the ledger.

    Items move ``pending -> processing -> processed`` or ``pending -> dismissed``.
    The ``processing`` state is committed before the ledger is called, so an
    interrupted promotion leaves a visible stuck item instead of a lost one.
    """

    def __init__(
        self,
        db: Repository,
        ledger: LedgerEngine,
        suggester: Optional[CategorySuggester] = None,
    ):
        """Initialize the pending import queue.

        Args:
            db: Repository instance
            ledger: Ledger engine used to materialize transactions
            suggester: Categorization collaborator (defaults to a null suggester)
        """
        self.db = db
        self.ledger = ledger
        self.suggester = suggester or NullCategorySuggester()
        self._guard = threading.Lock()
        self._in_flight: set[UUID] = set()

    def create_pending_transaction(self, pending: PendingTransaction) -> PendingTransaction:
        """Add an imported bank line to the queue.

        Args:
            pending: Pending transaction as read from the bank feed

        Returns:
            The stored pending transaction, in ``pending`` status

        Raises:
            ValidationError: If the amount, type or confidence is invalid
            AccountNotFoundError: If the account does not exist
            ConflictError: If the bank transaction id was already imported
        """
        if pending.type not in (TransactionType.EXPENSE, TransactionType.INCOME):
            raise ValidationError("Pending transactions must be expenses or incomes")
        amount = check_amount(pending.amount)
        if not 0.0 <= pending.confidence <= 1.0:
            raise ValidationError(f"Confidence {pending.confidence} is outside [0, 1]")

        category_id, confidence = pending.suggested_category_id, pending.confidence
        if category_id is None:
            category_id, confidence = self._suggest(pending)

        item = replace(
            pending,
            amount=amount,
            suggested_category_id=category_id,
            confidence=confidence,
            status=PendingStatus.PENDING,
            processed_at=None,
            processing_started_at=None,
            transaction_id=None,
            last_error=None,
        )

        def add(uow: UnitOfWork) -> PendingTransaction:
            if uow.get_account(item.account_id) is None:
                raise AccountNotFoundError(account_not_found(item.account_id))
            if item.bank_transaction_id is not None and uow.find_pending_by_bank_id(
                item.bank_transaction_id
            ):
                raise ConflictError(duplicate_bank_transaction_id(item.bank_transaction_id))
            stored = item
            if stored.suggested_category_id is not None and uow.get_category(
                stored.suggested_category_id
            ) is None:
                logger.warning(
                    "Suggested category %s does not exist, dropping suggestion",
                    stored.suggested_category_id,
                )
                stored = replace(stored, suggested_category_id=None, confidence=0.0)
            return uow.add_pending(stored)

        created = self.db.perform_batch(add)
        logger.info("Queued pending transaction %s (bank id %s)", created.id, created.bank_transaction_id)
        return created

    def _suggest(self, pending: PendingTransaction) -> tuple[Optional[UUID], float]:
        try:
            category_id, confidence = self.suggester.suggest_category(
                pending.description_text, pending.merchant_name
            )
        except Exception:
            logger.warning("Category suggestion failed for '%s'", pending.description_text, exc_info=True)
            return None, 0.0
        return category_id, min(max(float(confidence), 0.0), 1.0)

    def get_pending_transaction(self, pending_id: UUID) -> Optional[PendingTransaction]:
        return self.db.get_pending_transaction(pending_id)

    def get_pending_transactions(self, account_id: Optional[UUID] = None) -> list[PendingTransaction]:
        """List items awaiting review, newest transaction date first.

        Args:
            account_id: Optional account filter

        Returns:
            List of pending transactions in ``pending`` status
        """
        return self.db.get_pending_transactions(account_id=account_id)

    def get_stuck_pending_transactions(self, older_than: timedelta = STUCK_AFTER) -> list[PendingTransaction]:
        """List items left in ``processing`` that no consumer is working on.

        Items claimed by this queue are never stuck. Items claimed elsewhere,
        possibly by another process, count as stuck once they have been
        processing for longer than ``older_than``.

        Args:
            older_than: Minimum time in ``processing`` before an item counts as stuck
        """
        cutoff = datetime.now(UTC) - older_than
        with self._guard:
            in_flight = set(self._in_flight)
        return [
            item
            for item in self.db.get_pending_transactions(status=PendingStatus.PROCESSING)
            if item.id not in in_flight and _claimed_before(item, cutoff)
        ]

    def process_pending_transaction(
        self, pending_id: UUID, transaction: Optional[Transaction] = None
    ) -> Transaction:
        """Promote a pending item into the ledger.

        Args:
            pending_id: Pending transaction ID
            transaction: The reviewed transaction to record; when omitted it
                is built from the pending item itself

        Returns:
            The materialized transaction (the existing one if the item was
            already processed)

        Raises:
            NotFoundError: If the pending item does not exist
            ConflictError: If the item was dismissed or is being processed
            DomainError: Whatever the ledger raised; the item is back in ``pending``
        """
        with self._guard:
            if pending_id in self._in_flight:
                raise ConflictError(f"Pending transaction {pending_id} is already being processed")
            self._in_flight.add(pending_id)
        try:
            return self._process(pending_id, transaction)
        finally:
            with self._guard:
                self._in_flight.discard(pending_id)

    def _process(self, pending_id: UUID, transaction: Optional[Transaction]) -> Transaction:
        def claim(uow: UnitOfWork) -> tuple[PendingTransaction, Optional[Transaction]]:
            item = uow.get_pending(pending_id)
            if item is None:
                raise NotFoundError(pending_not_found(pending_id))
            if item.status is PendingStatus.DISMISSED:
                raise ConflictError(f"Pending transaction {pending_id} was dismissed")

            existing = uow.find_transaction_by_pending(pending_id)
            if existing is not None:
                if item.status is not PendingStatus.PROCESSED:
                    # Interrupted after the ledger committed; only the status is missing.
                    uow.set_pending_status(
                        pending_id,
                        PendingStatus.PROCESSED,
                        expected=(PendingStatus.PENDING, PendingStatus.PROCESSING),
                        processed_at=datetime.now(UTC),
                        transaction_id=existing.id,
                        last_error=None,
                    )
                return item, existing

            if item.status is PendingStatus.PROCESSED:
                raise ConflictError(
                    f"Pending transaction {pending_id} is processed but its transaction is gone"
                )
            if not uow.set_pending_status(
                pending_id,
                PendingStatus.PROCESSING,
                expected=(PendingStatus.PENDING, PendingStatus.PROCESSING),
                processing_started_at=datetime.now(UTC),
            ):
                raise ConflictError(f"Pending transaction {pending_id} changed state concurrently")
            return item, None

        item, existing = self.db.perform_batch(claim)
        if existing is not None:
            logger.info("Pending transaction %s already materialized as %s", pending_id, existing.id)
            return existing

        candidate = self.materialize(item, transaction)
        try:
            created = self.ledger.create_transaction(candidate)
        except DomainError as e:
            created = self.db.perform_batch(lambda uow: uow.find_transaction_by_pending(pending_id))
            if created is None:
                self._release(pending_id, str(e))
                raise

        marked = self.db.perform_batch(
            lambda uow: uow.set_pending_status(
                pending_id,
                PendingStatus.PROCESSED,
                expected=(PendingStatus.PROCESSING,),
                processed_at=datetime.now(UTC),
                transaction_id=created.id,
                last_error=None,
            )
        )
        if not marked:
            logger.warning("Pending transaction %s left processing state before it was marked", pending_id)
        logger.info("Processed pending transaction %s into %s", pending_id, created.id)

        category_id = created.primary_category_id
        if category_id is not None and category_id != item.suggested_category_id:
            self._learn(item, category_id)
        return created

    @staticmethod
    def materialize(item: PendingTransaction, transaction: Optional[Transaction]) -> Transaction:
        if transaction is None:
            is_expense = item.type is TransactionType.EXPENSE
            transaction = Transaction(
                type=item.type,
                amount=item.amount,
                transaction_date=item.transaction_date,
                description=item.description_text,
                category_id=item.suggested_category_id,
                from_account_id=item.account_id if is_expense else None,
                to_account_id=None if is_expense else item.account_id,
            )
        return replace(
            transaction,
            pending_transaction_id=item.id,
            bank_transaction_id=item.bank_transaction_id,
        )

    def _release(self, pending_id: UUID, error: str) -> None:
        """Return a failed item to ``pending`` with the failure recorded."""
        logger.warning("Processing of pending transaction %s failed: %s", pending_id, error)
        self.db.perform_batch(
            lambda uow: uow.set_pending_status(
                pending_id,
                PendingStatus.PENDING,
                expected=(PendingStatus.PROCESSING,),
                last_error=error,
                processing_started_at=None,
            )
        )

    def _learn(self, item: PendingTransaction, category_id: UUID) -> None:
        try:
            self.suggester.learn_from_correction(item.description_text, item.merchant_name, category_id)
        except Exception:
            logger.warning("Categorizer failed to learn from pending transaction %s", item.id, exc_info=True)

    def dismiss_pending_transaction(self, pending_id: UUID) -> PendingTransaction:
        """Dismiss a pending item without touching the ledger.

        Dismissing an already dismissed item is a no-op.

        Raises:
            NotFoundError: If the pending item does not exist
            ConflictError: If the item is processed or being processed
        """

        def dismiss(uow: UnitOfWork) -> PendingTransaction:
            item = uow.get_pending(pending_id)
            if item is None:
                raise NotFoundError(pending_not_found(pending_id))
            if item.status is PendingStatus.DISMISSED:
                return item
            if not uow.set_pending_status(
                pending_id,
                PendingStatus.DISMISSED,
                expected=(PendingStatus.PENDING,),
                processed_at=datetime.now(UTC),
            ):
                raise ConflictError(
                    f"Cannot dismiss pending transaction {pending_id}: it is {item.status.value}"
                )
            return uow.get_pending(pending_id)

        dismissed = self.db.perform_batch(dismiss)
        logger.info("Dismissed pending transaction %s", pending_id)
        return dismissed


def _claimed_before(item: PendingTransaction, cutoff: datetime) -> bool:
    started = item.processing_started_at
    if started is None:
        return True
    if started.tzinfo is None:
        # SQLite drops the offset; stored times are UTC.
        started = started.replace(tzinfo=UTC)
    return started <= cutoff
