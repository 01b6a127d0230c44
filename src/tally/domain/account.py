"""Account domain service."""

import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from uuid import UUID

from tally.database.base import Repository, UnitOfWork
from tally.domain.entities import Account, AccountType, Currency
from tally.domain.errors import (
    AccountNotFoundError,
    DependencyError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
)
from tally.domain.ledger import CENT, LedgerEngine

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 50
DEFAULT_ACCOUNT_NAME = "default_card"
DEFAULT_ACCOUNT_TAG = "#main"


class AccountDeletionPolicy(str, Enum):
    """What happens to transactions that reference a deleted account."""

    REFUSE = "refuse"
    CASCADE = "cascade"
    DETACH = "detach"

    @classmethod
    def parse(cls, value: str) -> "AccountDeletionPolicy":
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(policy.value for policy in cls)
            raise ValidationError(f"Unknown account deletion policy '{value}' (expected one of: {choices})")


def validate_account_fields(name: str, tag: str) -> tuple[str, str]:
    """Validate and normalize an account name and tag.

    Returns:
        The stripped (name, tag) pair

    Raises:
        ValidationError: If the name or tag is invalid
    """
    name = name.strip()
    tag = tag.strip()
    if not name:
        raise ValidationError("Account name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"Account name cannot be longer than {MAX_NAME_LENGTH} characters")
    if not tag:
        raise ValidationError("Account tag cannot be empty")
    if not tag.startswith("#"):
        raise ValidationError(f"Account tag '{tag}' must start with '#'")
    return name, tag


class AccountService:
    """Service for managing accounts."""

    def __init__(self, db: Repository, ledger: Optional[LedgerEngine] = None):
        """Initialize account service.

        Args:
            db: Repository instance
            ledger: Ledger engine used for cascading deletes
        """
        self.db = db
        self.ledger = ledger or LedgerEngine(db)

    @staticmethod
    def _check_unique_tag(uow: UnitOfWork, tag: str, account_id: Optional[UUID] = None) -> None:
        for acc in uow.list_accounts():
            if acc.id != account_id and acc.tag == tag:
                raise ValidationError(f"Account with tag '{tag}' already exists")

    @staticmethod
    def _clear_default(uow: UnitOfWork, keep: Optional[UUID] = None) -> None:
        for acc in uow.list_accounts():
            if acc.is_default and acc.id != keep:
                uow.save_account(replace(acc, is_default=False))

    def create_account(
        self,
        name: str,
        tag: str,
        account_type: AccountType = AccountType.CARD,
        currency: Currency = Currency.UAH,
        opening_balance: Decimal = Decimal("0"),
        is_default: bool = False,
    ) -> Account:
        """Create a new account.

        The first account created becomes the default one. Creating an account
        with ``is_default`` moves the default flag to it.

        Args:
            name: Account name (at most 50 characters)
            tag: Unique short tag starting with '#'
            account_type: Account type
            currency: Account currency
            opening_balance: Balance the account starts with
            is_default: Make this the default account

        Returns:
            The created account

        Raises:
            ValidationError: If a field is invalid or the tag already exists
        """
        name, tag = validate_account_fields(name, tag)
        try:
            opening = Decimal(str(opening_balance))
        except InvalidOperation:
            raise ValidationError(f"Invalid opening balance '{opening_balance}'")
        if not opening.is_finite() or opening != opening.quantize(CENT):
            raise ValidationError(f"Invalid opening balance '{opening_balance}'")

        def create(uow: UnitOfWork) -> Account:
            self._check_unique_tag(uow, tag)
            make_default = is_default or not uow.list_accounts()
            if make_default:
                self._clear_default(uow)
            return uow.add_account(
                Account(
                    name=name,
                    tag=tag,
                    balance=opening,
                    opening_balance=opening,
                    is_default=make_default,
                    account_type=account_type,
                    currency=currency,
                )
            )

        account = self.db.perform_batch(create)
        logger.info("Created account %s (%s)", account.tag, account.id)
        return account

    def update_account(
        self,
        account_id: UUID,
        name: Optional[str] = None,
        tag: Optional[str] = None,
        account_type: Optional[AccountType] = None,
        currency: Optional[Currency] = None,
    ) -> Account:
        """Update an account's descriptive fields. The balance is never touched.

        Args:
            account_id: Account ID to update
            name: Optional new name
            tag: Optional new tag
            account_type: Optional new type
            currency: Optional new currency (only while no transactions use the account)

        Returns:
            The updated account

        Raises:
            AccountNotFoundError: If the account does not exist
            ValidationError: If a field is invalid or the tag already exists
            DependencyError: If the currency changes on an account with transactions
        """

        def update(uow: UnitOfWork) -> Account:
            account = uow.get_account(account_id)
            if account is None:
                raise AccountNotFoundError(account_not_found(account_id))
            new_name, new_tag = validate_account_fields(
                name if name is not None else account.name,
                tag if tag is not None else account.tag,
            )
            self._check_unique_tag(uow, new_tag, account_id)
            if currency is not None and currency != account.currency:
                count = uow.count_account_transactions(account_id)
                if count:
                    raise DependencyError(
                        f"Cannot change currency of account {account.tag}: "
                        f"it has {count} transaction{'s' if count != 1 else ''}"
                    )
            return uow.save_account(
                replace(
                    account,
                    name=new_name,
                    tag=new_tag,
                    account_type=account_type or account.account_type,
                    currency=currency or account.currency,
                )
            )

        return self.db.perform_batch(update)

    def set_default_account(self, account_id: UUID) -> Account:
        """Make an account the single default account.

        Raises:
            AccountNotFoundError: If the account does not exist
        """

        def set_default(uow: UnitOfWork) -> Account:
            account = uow.get_account(account_id)
            if account is None:
                raise AccountNotFoundError(account_not_found(account_id))
            self._clear_default(uow, keep=account_id)
            return uow.save_account(replace(account, is_default=True))

        return self.db.perform_batch(set_default)

    def get_account(self, account_id: UUID) -> Optional[Account]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def get_account_by_tag(self, tag: str) -> Optional[Account]:
        for acc in self.db.get_all_accounts():
            if acc.tag == tag:
                return acc
        return None

    def list_accounts(self) -> list[Account]:
        """List all accounts, default first, then by name.

        Returns:
            List of account entities
        """
        return self.db.get_all_accounts()

    def get_default_account(self) -> Optional[Account]:
        return self.db.get_default_account()

    def ensure_default_account(self) -> Account:
        """Return the default account, creating the bootstrap one if there are no accounts."""
        accounts = self.db.get_all_accounts()
        for acc in accounts:
            if acc.is_default:
                return acc
        if accounts:
            return self.set_default_account(accounts[0].id)
        return self.create_account(
            name=DEFAULT_ACCOUNT_NAME,
            tag=DEFAULT_ACCOUNT_TAG,
            account_type=AccountType.CARD,
            currency=Currency.UAH,
            is_default=True,
        )

    def delete_account(
        self, account_id: UUID, policy: AccountDeletionPolicy = AccountDeletionPolicy.REFUSE
    ) -> None:
        """Delete an account.

        Args:
            account_id: Account ID to delete
            policy: ``refuse`` while transactions reference the account,
                ``cascade`` to delete those transactions first, or ``detach``
                to keep them (their later reversals become no-ops)

        Raises:
            AccountNotFoundError: If the account does not exist
            DependencyError: If the policy is ``refuse`` and transactions exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_not_found(account_id))

        if policy is AccountDeletionPolicy.CASCADE:
            self.ledger.purge_account(account_id)
        else:

            def delete(uow: UnitOfWork) -> None:
                if uow.get_account(account_id) is None:
                    raise AccountNotFoundError(account_not_found(account_id))
                if policy is AccountDeletionPolicy.REFUSE:
                    count = uow.count_account_transactions(account_id)
                    if count:
                        raise DependencyError(account_delete_blocked(account_id, count))
                uow.remove_account(account_id)

            with self.ledger.locks.hold([account_id]):
                self.db.perform_batch(delete)

        logger.info("Deleted account %s (%s policy)", account.tag, policy.value)

        if account.is_default:
            remaining = self.db.get_all_accounts()
            if remaining:
                self.set_default_account(remaining[0].id)
