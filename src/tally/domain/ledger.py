"""Ledger engine: transactional create/update/delete of transactions.

Every mutation runs as one repository unit of work: the stored state is read
inside the unit, effects are computed and checked by the balance mutator, and
only then are rows and balances written. Any failure rolls the whole unit back.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Iterator, Optional
from uuid import UUID, uuid4, uuid5

from tally.database.base import Repository, TransactionFilter, UnitOfWork
from tally.domain import splits
from tally.domain.balance import BalanceMutator
from tally.domain.entities import Transaction, TransactionType
from tally.domain.errors import (
    AccountNotFoundError,
    ConflictError,
    NotFoundError,
    ValidationError,
    account_not_found,
    category_not_found,
    stale_version,
    transaction_not_found,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class AccountLocks:
    """Per-account mutual exclusion for ledger writes.

    Locks are always taken in sorted id order so two writers touching the same
    pair of accounts cannot deadlock.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[UUID, threading.RLock] = {}

    def _lock_for(self, account_id: UUID) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = self._locks[account_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, account_ids: Iterable[UUID]) -> Iterator[None]:
        locks = [self._lock_for(account_id) for account_id in sorted(set(account_ids))]
        acquired = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


@dataclass(frozen=True)
class BalanceDiscrepancy:
    """An account whose stored balance disagrees with its ledger."""

    account_id: UUID
    tag: str
    recorded: Decimal
    expected: Decimal

    @property
    def difference(self) -> Decimal:
        return self.recorded - self.expected


def check_amount(value) -> Decimal:
    """Validate a money amount: positive, finite, at most two decimals.

    Raises:
        ValidationError: If the amount is not acceptable
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Invalid amount '{value}'")
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"Amount {amount} has more than two decimal places")
    return amount


class LedgerEngine:
    """Keeps account balances consistent with the recorded transactions."""

    def __init__(
        self,
        db: Repository,
        mutator: Optional[BalanceMutator] = None,
        locks: Optional[AccountLocks] = None,
    ):
        """Initialize the ledger engine.

        Args:
            db: Repository instance
            mutator: Balance mutator (a default one is created if omitted)
            locks: Shared account lock registry; engines writing to the same
                repository from several threads must share one
        """
        self.db = db
        self.mutator = mutator or BalanceMutator()
        self.locks = locks or AccountLocks()

    # Validation helpers
    def _normalize(self, transaction: Transaction) -> Transaction:
        """Validate the shape of ``transaction`` and return its canonical form."""
        if not isinstance(transaction.type, TransactionType):
            raise ValidationError(f"Unknown transaction type '{transaction.type}'")
        if transaction.parent_transaction_id is not None:
            raise ValidationError("Split children are recorded through their parent transaction")

        if transaction.split_transactions:
            children = [
                replace(child, amount=check_amount(child.amount))
                for child in transaction.split_transactions
            ]
            transaction = splits.expand_split(transaction, children)
        else:
            transaction = replace(
                transaction, amount=check_amount(transaction.amount), split_transactions=None
            )

        kind = transaction.type
        if kind.is_transfer:
            if transaction.from_account_id is None or transaction.to_account_id is None:
                raise ValidationError("A transfer needs both a source and a destination account")
            if transaction.from_account_id == transaction.to_account_id:
                raise ValidationError("A transfer needs two different accounts")
        elif kind is TransactionType.EXPENSE:
            if transaction.from_account_id is None:
                raise ValidationError("An expense needs a source account")
            if transaction.to_account_id is not None:
                raise ValidationError("An expense cannot have a destination account")
        else:
            if transaction.to_account_id is None:
                raise ValidationError("An income needs a destination account")
            if transaction.from_account_id is not None:
                raise ValidationError("An income cannot have a source account")
        return transaction

    def _check_references(self, uow: UnitOfWork, transaction: Transaction) -> None:
        """Check categories exist and transfer accounts share a currency."""
        category_ids = {transaction.category_id}
        category_ids.update(child.category_id for child in transaction.split_transactions or ())
        for category_id in category_ids - {None}:
            if uow.get_category(category_id) is None:
                raise NotFoundError(category_not_found(category_id))

        if transaction.type.is_transfer:
            source = uow.get_account(transaction.from_account_id)
            destination = uow.get_account(transaction.to_account_id)
            if source is None:
                raise AccountNotFoundError(account_not_found(transaction.from_account_id))
            if destination is None:
                raise AccountNotFoundError(account_not_found(transaction.to_account_id))
            if source.currency != destination.currency:
                raise ValidationError(
                    f"Cannot transfer between {source.currency.value} and "
                    f"{destination.currency.value} accounts"
                )

    @staticmethod
    def _pair_transfer(leg: Transaction) -> list[Transaction]:
        """Return ``leg`` and its counterpart, linked by a shared transfer id."""
        transfer_id = leg.transfer_id or uuid4()
        leg = replace(leg, transfer_id=transfer_id)
        counterpart = replace(
            leg,
            id=uuid5(transfer_id, leg.type.counterpart.value),
            type=leg.type.counterpart,
            bank_transaction_id=None,
            pending_transaction_id=None,
        )
        return [leg, counterpart]

    @staticmethod
    def _accounts_of(transactions: Iterable[Transaction]) -> set[UUID]:
        accounts: set[UUID] = set()
        for transaction in transactions:
            accounts |= transaction.account_ids
        return accounts

    def _write_balances(
        self, uow: UnitOfWork, deltas: dict[UUID, Decimal], touched: Iterable[Transaction] = ()
    ) -> None:
        for account_id in sorted(deltas):
            uow.adjust_balance(account_id, deltas[account_id])
        for transaction in touched:
            for effect in self.mutator.apply(transaction):
                uow.touch_account(effect.account_id, transaction.transaction_date)

    # Create
    def create_transaction(self, transaction: Transaction) -> Transaction:
        """Record a transaction and apply its balance effects atomically.

        Creating one leg of a transfer also records the counterpart leg.

        Args:
            transaction: Transaction to record (a split parent carries its children)

        Returns:
            The stored transaction

        Raises:
            ValidationError: If the transaction is malformed
            AccountNotFoundError: If a referenced account does not exist
            NotFoundError: If a referenced category does not exist
            ConflictError: If a transaction with the same id already exists
        """
        return self._record(transaction)[0]

    def create_transfer(
        self,
        from_account_id: UUID,
        to_account_id: UUID,
        amount: Decimal,
        transaction_date: Optional[date] = None,
        description: str = "",
        category_id: Optional[UUID] = None,
    ) -> tuple[Transaction, Transaction]:
        """Move money between two accounts.

        Returns:
            The (transferOut, transferIn) legs
        """
        out_leg = Transaction(
            type=TransactionType.TRANSFER_OUT,
            amount=amount,
            transaction_date=transaction_date or date.today(),
            description=description,
            category_id=category_id,
            from_account_id=from_account_id,
            to_account_id=to_account_id,
        )
        saved = self._record(out_leg)
        return saved[0], saved[1]

    def _record(self, transaction: Transaction) -> list[Transaction]:
        transaction = self._normalize(transaction)
        records = self._pair_transfer(transaction) if transaction.type.is_transfer else [transaction]

        def create(uow: UnitOfWork) -> list[Transaction]:
            for record in records:
                self._check_references(uow, record)
            applied = [effect for record in records for effect in self.mutator.apply(record)]
            deltas = self.mutator.plan(lambda a: uow.get_account(a) is not None, applied=applied)
            saved = [uow.add_transaction(record) for record in records]
            self._write_balances(uow, deltas, records)
            return saved

        with self.locks.hold(self._accounts_of(records)):
            saved = self.db.perform_batch(create)

        logger.info(
            "Recorded %s %s of %s on %s",
            transaction.type.value,
            transaction.id,
            transaction.effective_amount,
            transaction.transaction_date,
        )
        return saved

    # Update
    def update_transaction(self, transaction: Transaction) -> Transaction:
        """Replace a stored transaction, reversing its old effects first.

        The previous state is read from the repository inside the unit of
        work. ``transaction.version`` must match the stored version. Editing
        a transfer leg updates its counterpart as well.

        Returns:
            The updated transaction

        Raises:
            NotFoundError: If the transaction does not exist
            ConflictError: If the stored version changed since ``transaction`` was read
            ValidationError: If the new state is malformed or the edit is not allowed
        """
        transaction = self._normalize(transaction)
        current = self.db.get_transaction(transaction.id)
        if current is None:
            raise NotFoundError(transaction_not_found(transaction.id))
        if current.is_split_child:
            raise ValidationError("Split children are edited through their parent transaction")
        if current.type.is_transfer != transaction.type.is_transfer:
            raise ValidationError("A transaction cannot change between transfer and non-transfer")

        def update(uow: UnitOfWork) -> Transaction:
            stored = uow.get_transaction(transaction.id)
            if stored is None:
                raise NotFoundError(transaction_not_found(transaction.id))
            if stored.version != transaction.version:
                raise ConflictError(stale_version(stored.id, transaction.version, stored.version))

            edited = replace(
                transaction,
                timestamp=stored.timestamp,
                transfer_id=stored.transfer_id,
                bank_transaction_id=stored.bank_transaction_id,
                pending_transaction_id=stored.pending_transaction_id,
            )
            old_records = [stored]
            new_records = [edited]
            if stored.type.is_transfer and stored.transfer_id is not None:
                old_records = uow.get_transfer_legs(stored.transfer_id)
                for old_leg in old_records:
                    if old_leg.id != stored.id:
                        new_records.append(
                            replace(
                                edited,
                                id=old_leg.id,
                                type=edited.type.counterpart,
                                timestamp=old_leg.timestamp,
                                bank_transaction_id=old_leg.bank_transaction_id,
                                pending_transaction_id=old_leg.pending_transaction_id,
                            )
                        )

            for record in new_records:
                self._check_references(uow, record)
            deltas = self.mutator.plan(
                lambda a: uow.get_account(a) is not None,
                applied=[e for record in new_records for e in self.mutator.apply(record)],
                reversed_=[e for record in old_records for e in self.mutator.reverse(record)],
            )
            saved = [uow.replace_transaction(record) for record in new_records]
            self._write_balances(uow, deltas, new_records)
            return saved[0]

        with self.locks.hold(self._accounts_of([current, transaction])):
            saved = self.db.perform_batch(update)

        logger.info("Updated transaction %s (version %d)", saved.id, saved.version)
        return saved

    # Delete
    def delete_transaction(self, transaction_id: UUID) -> None:
        """Delete a transaction, its split children and its transfer counterpart.

        Raises:
            NotFoundError: If the transaction does not exist
            ValidationError: If the transaction is a split child
        """
        current = self.db.get_transaction(transaction_id)
        if current is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        if current.is_split_child:
            raise ValidationError(
                "Split children are removed by updating or deleting their parent transaction"
            )

        def delete(uow: UnitOfWork) -> None:
            stored = uow.get_transaction(transaction_id)
            if stored is None:
                raise NotFoundError(transaction_not_found(transaction_id))
            records = [stored]
            if stored.type.is_transfer and stored.transfer_id is not None:
                records = uow.get_transfer_legs(stored.transfer_id)
            deltas = self.mutator.plan(
                lambda a: uow.get_account(a) is not None,
                reversed_=[e for record in records for e in self.mutator.reverse(record)],
            )
            for record in records:
                uow.remove_transaction(record.id)
            self._write_balances(uow, deltas)

        with self.locks.hold(current.account_ids):
            self.db.perform_batch(delete)

        logger.info("Deleted transaction %s", transaction_id)

    def purge_account(self, account_id: UUID) -> int:
        """Delete an account together with every transaction referencing it.

        Counterpart legs of transfers are deleted too and their effects on the
        other accounts reversed.

        Returns:
            Number of deleted transactions
        """
        referencing = self.db.perform_batch(lambda uow: uow.list_account_transactions(account_id))

        def purge(uow: UnitOfWork) -> int:
            if uow.get_account(account_id) is None:
                raise AccountNotFoundError(account_not_found(account_id))
            records: dict[UUID, Transaction] = {}
            for transaction in uow.list_account_transactions(account_id):
                legs = [transaction]
                if transaction.type.is_transfer and transaction.transfer_id is not None:
                    legs = uow.get_transfer_legs(transaction.transfer_id)
                for leg in legs:
                    records[leg.id] = leg
            deltas = self.mutator.plan(
                lambda a: a != account_id and uow.get_account(a) is not None,
                reversed_=[e for record in records.values() for e in self.mutator.reverse(record)],
            )
            for record in records.values():
                uow.remove_transaction(record.id)
            self._write_balances(uow, deltas)
            uow.remove_account(account_id)
            return len(records)

        with self.locks.hold(self._accounts_of(referencing) | {account_id}):
            removed = self.db.perform_batch(purge)

        logger.info("Deleted account %s with %d transactions", account_id, removed)
        return removed

    # Queries
    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """Get transaction by ID.

        Args:
            transaction_id: Transaction ID

        Returns:
            Transaction entity or None if not found
        """
        return self.db.get_transaction(transaction_id)

    def get_transactions(
        self,
        account_id: Optional[UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """List transactions with filters, newest transaction date first.

        Args:
            account_id: Optional account filter (the account whose balance moves)
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            category_id: Optional category filter (split children included)

        Returns:
            List of top-level transaction entities
        """
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError(f"Start date {start_date} is after end date {end_date}")
        return self.db.get_transactions(
            TransactionFilter(
                account_id=account_id,
                start_date=start_date,
                end_date=end_date,
                category_id=category_id,
            )
        )

    # Reconciliation
    def reconcile(self, repair: bool = False) -> list[BalanceDiscrepancy]:
        """Compare every stored balance with opening balance plus ledger effects.

        Args:
            repair: If True, overwrite drifted balances with the expected value

        Returns:
            Discrepancies found (before any repair)
        """

        def check(uow: UnitOfWork) -> list[BalanceDiscrepancy]:
            accounts = {account.id: account for account in uow.list_accounts()}
            expected = {account_id: account.opening_balance for account_id, account in accounts.items()}
            for transaction in uow.list_transactions():
                for effect in self.mutator.apply(transaction):
                    if effect.account_id in expected:
                        expected[effect.account_id] += effect.delta

            found = []
            for account_id, account in accounts.items():
                if account.balance != expected[account_id]:
                    found.append(
                        BalanceDiscrepancy(
                            account_id=account_id,
                            tag=account.tag,
                            recorded=account.balance,
                            expected=expected[account_id],
                        )
                    )
                    if repair:
                        uow.set_balance(account_id, expected[account_id])
            return found

        if not repair:
            return self.db.perform_batch(check)

        account_ids = [account.id for account in self.db.get_all_accounts()]
        with self.locks.hold(account_ids):
            found = self.db.perform_batch(check)
        for discrepancy in found:
            logger.warning(
                "Repaired balance of %s: %s -> %s",
                discrepancy.tag,
                discrepancy.recorded,
                discrepancy.expected,
            )
        return found
