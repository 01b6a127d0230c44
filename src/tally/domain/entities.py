"""Domain model entities for tally.

These are pure data classes representing business concepts, independent of
database schema. The only behavior they carry is derived fields; balance
effects live in the balance mutator and persistence in the repository.
"""

from dataclasses import dataclass, field
from datetime import datetime, date, UTC
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from tally.domain import splits


class TransactionType(str, Enum):
    """Direction of a transaction relative to the account it references."""

    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER_OUT = "transferOut"
    TRANSFER_IN = "transferIn"

    @classmethod
    def parse(cls, value: str) -> "TransactionType":
        """Parse a type name, accepting any case and the dashed transfer spellings."""
        normalized = value.strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise ValueError(f"Unknown transaction type '{value}'")

    @property
    def is_transfer(self) -> bool:
        return self in (TransactionType.TRANSFER_OUT, TransactionType.TRANSFER_IN)

    @property
    def is_debit(self) -> bool:
        """True for types that take money out of their account."""
        return self in (TransactionType.EXPENSE, TransactionType.TRANSFER_OUT)

    @property
    def symbol(self) -> str:
        return "-" if self.is_debit else "+"

    @property
    def counterpart(self) -> "TransactionType":
        """The opposite leg of a transfer."""
        if self is TransactionType.TRANSFER_OUT:
            return TransactionType.TRANSFER_IN
        if self is TransactionType.TRANSFER_IN:
            return TransactionType.TRANSFER_OUT
        raise ValueError(f"{self.value} is not a transfer type")


class PendingStatus(str, Enum):
    """Lifecycle of a bank-imported candidate."""

    PENDING = "pending"
    PROCESSING = "processing"
    PROCESSED = "processed"
    DISMISSED = "dismissed"


class AccountType(str, Enum):
    CASH = "Cash"
    CARD = "Card"
    SAVINGS = "Savings"
    INVESTMENT = "Investment"


class Currency(str, Enum):
    UAH = "UAH"
    USD = "USD"
    EUR = "EUR"


@dataclass(frozen=True)
class Account:
    """Account domain entity. ``balance`` is owned by the ledger."""

    name: str
    tag: str
    id: UUID = field(default_factory=uuid4)
    balance: Decimal = Decimal("0")
    opening_balance: Decimal = Decimal("0")
    is_default: bool = False
    account_type: AccountType = AccountType.CARD
    currency: Currency = Currency.UAH
    last_transaction_date: Optional[date] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class Category:
    """Category domain entity. ``name`` is a stable machine key."""

    name: str
    id: UUID = field(default_factory=uuid4)
    icon: str = "circle"
    color_hex: str = "#000000"
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class Transaction:
    """Transaction domain entity.

    ``amount`` is always a non-negative magnitude; the direction comes from
    ``type``. A split parent carries its children in ``split_transactions`` and
    its own ``amount``/``category_id`` are ignored in favour of the derived
    ``effective_amount``/``primary_category_id``.
    """

    type: TransactionType
    amount: Decimal
    transaction_date: date
    description: str = ""
    category_id: Optional[UUID] = None
    from_account_id: Optional[UUID] = None
    to_account_id: Optional[UUID] = None
    parent_transaction_id: Optional[UUID] = None
    split_transactions: Optional[tuple["Transaction", ...]] = None
    transfer_id: Optional[UUID] = None
    bank_transaction_id: Optional[str] = None
    pending_transaction_id: Optional[UUID] = None
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    version: int = 0

    @property
    def is_split_parent(self) -> bool:
        return splits.is_split_parent(self)

    @property
    def is_split_child(self) -> bool:
        return splits.is_split_child(self)

    @property
    def effective_amount(self) -> Decimal:
        return splits.effective_amount(self)

    @property
    def primary_category_id(self) -> Optional[UUID]:
        return splits.primary_category_id(self)

    @property
    def account_ids(self) -> set[UUID]:
        """All accounts this transaction references."""
        return {a for a in (self.from_account_id, self.to_account_id) if a is not None}


@dataclass(frozen=True)
class PendingTransaction:
    """Bank-imported candidate awaiting review before entering the ledger."""

    amount: Decimal
    description_text: str
    transaction_date: date
    type: TransactionType
    account_id: UUID
    bank_transaction_id: Optional[str] = None
    merchant_name: Optional[str] = None
    suggested_category_id: Optional[UUID] = None
    confidence: float = 0.0
    status: PendingStatus = PendingStatus.PENDING
    id: UUID = field(default_factory=uuid4)
    imported_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    processed_at: Optional[datetime] = None
    processing_started_at: Optional[datetime] = None
    transaction_id: Optional[UUID] = None
    last_error: Optional[str] = None
