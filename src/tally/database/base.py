"""Abstract repository interface.

``Repository`` is the persistence collaborator of the ledger. Every write goes
through ``perform_batch``, which hands an ``UnitOfWork`` to the caller and
commits everything it did atomically, or nothing at all.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Iterable, Optional, TypeVar
from uuid import UUID

# Import entities directly to avoid circular import through domain/__init__.py
from tally.domain.entities import (
    Account,
    Category,
    Transaction,
    PendingTransaction,
    PendingStatus,
)
from tally.database.streams import ChangeStream

T = TypeVar("T")


@dataclass(frozen=True)
class TransactionFilter:
    """Read-only transaction query. Every field is optional."""

    account_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category_id: Optional[UUID] = None


class UnitOfWork(ABC):
    """Operations available inside one atomic batch."""

    # Account operations
    @abstractmethod
    def get_account(self, account_id: UUID) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts, default first, then by name."""
        pass

    @abstractmethod
    def add_account(self, account: Account) -> Account:
        """Insert a new account with its opening balance as balance."""
        pass

    @abstractmethod
    def save_account(self, account: Account) -> Account:
        """Update an account's descriptive fields. Never touches the balance."""
        pass

    @abstractmethod
    def remove_account(self, account_id: UUID) -> None:
        """Delete an account row."""
        pass

    @abstractmethod
    def adjust_balance(self, account_id: UUID, delta: Decimal) -> Decimal:
        """Add ``delta`` to an account's balance. Returns the new balance."""
        pass

    @abstractmethod
    def set_balance(self, account_id: UUID, balance: Decimal) -> None:
        """Overwrite an account's balance (reconciliation repair only)."""
        pass

    @abstractmethod
    def touch_account(self, account_id: UUID, activity_date: date) -> None:
        """Move ``last_transaction_date`` forward to ``activity_date`` if later."""
        pass

    @abstractmethod
    def count_account_transactions(self, account_id: UUID) -> int:
        """Count top-level transactions referencing an account."""
        pass

    # Category operations
    @abstractmethod
    def get_category(self, category_id: UUID) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def get_category_by_name(self, name: str) -> Optional[Category]:
        """Get category by its machine name."""
        pass

    @abstractmethod
    def add_category(self, category: Category) -> Category:
        """Insert a new category."""
        pass

    @abstractmethod
    def save_category(self, category: Category) -> Category:
        """Update an existing category."""
        pass

    @abstractmethod
    def remove_category(self, category_id: UUID) -> None:
        """Delete a category row."""
        pass

    @abstractmethod
    def count_category_transactions(self, category_id: UUID) -> int:
        """Count transactions (children included) using a category."""
        pass

    # Transaction operations
    @abstractmethod
    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """Get transaction by ID, with its split children."""
        pass

    @abstractmethod
    def get_transfer_legs(self, transfer_id: UUID) -> list[Transaction]:
        """Get both legs of a transfer."""
        pass

    @abstractmethod
    def find_transaction_by_pending(self, pending_id: UUID) -> Optional[Transaction]:
        """Get the transaction promoted from a pending item, if any."""
        pass

    @abstractmethod
    def list_account_transactions(self, account_id: UUID) -> list[Transaction]:
        """List top-level transactions referencing an account in any role."""
        pass

    @abstractmethod
    def list_transactions(self) -> list[Transaction]:
        """List all top-level transactions."""
        pass

    @abstractmethod
    def add_transaction(self, transaction: Transaction) -> Transaction:
        """Insert a transaction and its split children."""
        pass

    @abstractmethod
    def replace_transaction(self, transaction: Transaction) -> Transaction:
        """Overwrite a stored transaction, replacing its children set, and bump its version."""
        pass

    @abstractmethod
    def remove_transaction(self, transaction_id: UUID) -> None:
        """Delete a transaction and its split children."""
        pass

    # Pending transaction operations
    @abstractmethod
    def get_pending(self, pending_id: UUID) -> Optional[PendingTransaction]:
        """Get pending transaction by ID."""
        pass

    @abstractmethod
    def find_pending_by_bank_id(self, bank_transaction_id: str) -> Optional[PendingTransaction]:
        """Get pending transaction by its bank idempotency key."""
        pass

    @abstractmethod
    def add_pending(self, pending: PendingTransaction) -> PendingTransaction:
        """Insert a pending transaction."""
        pass

    @abstractmethod
    def set_pending_status(
        self,
        pending_id: UUID,
        status: PendingStatus,
        expected: Iterable[PendingStatus],
        **fields,
    ) -> bool:
        """Compare-and-set a pending item's status.

        Args:
            pending_id: Pending transaction ID
            status: New status
            expected: Statuses the item must currently be in
            **fields: Extra columns to write together with the status

        Returns:
            True if the item was in an expected status and was updated
        """
        pass


class Repository(ABC):
    """Abstract persistence boundary for tally."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def perform_batch(self, operation: Callable[[UnitOfWork], T]) -> T:
        """Run ``operation`` in one atomic unit of work and return its result.

        Raises:
            PersistenceError: If the storage layer fails; nothing is committed
            ConflictError: If a uniqueness constraint is violated on commit
        """
        pass

    @abstractmethod
    def flush_notifications(self) -> None:
        """Block until change streams reflect every batch committed so far."""
        pass

    # Queries
    @abstractmethod
    def get_transactions(self, query: TransactionFilter) -> list[Transaction]:
        """List top-level transactions matching ``query``, newest first."""
        pass

    @abstractmethod
    def get_pending_transactions(
        self,
        account_id: Optional[UUID] = None,
        status: PendingStatus = PendingStatus.PENDING,
    ) -> list[PendingTransaction]:
        """List pending transactions in ``status``, newest transaction date first."""
        pass

    # Change streams
    @property
    @abstractmethod
    def transactions_stream(self) -> ChangeStream[Transaction]:
        pass

    @property
    @abstractmethod
    def accounts_stream(self) -> ChangeStream[Account]:
        pass

    @property
    @abstractmethod
    def categories_stream(self) -> ChangeStream[Category]:
        pass

    # Transaction operations (raw rows, no balance effects)
    def create_transaction(self, transaction: Transaction) -> Transaction:
        return self.perform_batch(lambda uow: uow.add_transaction(transaction))

    def update_transaction(self, transaction: Transaction) -> Transaction:
        return self.perform_batch(lambda uow: uow.replace_transaction(transaction))

    def delete_transaction(self, transaction_id: UUID) -> None:
        self.perform_batch(lambda uow: uow.remove_transaction(transaction_id))

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return self.perform_batch(lambda uow: uow.get_transaction(transaction_id))

    def get_all_transactions(self) -> list[Transaction]:
        return self.get_transactions(TransactionFilter())

    # Pending transaction operations
    def create_pending_transaction(self, pending: PendingTransaction) -> PendingTransaction:
        return self.perform_batch(lambda uow: uow.add_pending(pending))

    def get_pending_transaction(self, pending_id: UUID) -> Optional[PendingTransaction]:
        return self.perform_batch(lambda uow: uow.get_pending(pending_id))

    # Account operations
    def create_account(self, account: Account) -> Account:
        return self.perform_batch(lambda uow: uow.add_account(account))

    def update_account(self, account: Account) -> Account:
        return self.perform_batch(lambda uow: uow.save_account(account))

    def delete_account(self, account_id: UUID) -> None:
        self.perform_batch(lambda uow: uow.remove_account(account_id))

    def get_account(self, account_id: UUID) -> Optional[Account]:
        return self.perform_batch(lambda uow: uow.get_account(account_id))

    def get_all_accounts(self) -> list[Account]:
        return self.perform_batch(lambda uow: uow.list_accounts())

    def get_default_account(self) -> Optional[Account]:
        for account in self.get_all_accounts():
            if account.is_default:
                return account
        return None

    # Category operations
    def create_category(self, category: Category) -> Category:
        return self.perform_batch(lambda uow: uow.add_category(category))

    def update_category(self, category: Category) -> Category:
        return self.perform_batch(lambda uow: uow.save_category(category))

    def delete_category(self, category_id: UUID) -> None:
        self.perform_batch(lambda uow: uow.remove_category(category_id))

    def get_category(self, category_id: UUID) -> Optional[Category]:
        return self.perform_batch(lambda uow: uow.get_category(category_id))

    @abstractmethod
    def get_all_categories(self) -> list[Category]:
        """List all categories by name."""
        pass
