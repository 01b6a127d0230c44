"""Balance mutator: the signed effect a transaction has on account balances."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable
from uuid import UUID

from tally.domain.entities import Transaction, TransactionType
from tally.domain.errors import AccountNotFoundError, ValidationError, account_not_found

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceEffect:
    """A signed change to one account's balance."""

    account_id: UUID
    delta: Decimal

    def inverted(self) -> "BalanceEffect":
        return BalanceEffect(account_id=self.account_id, delta=-self.delta)


class BalanceMutator:
    """Computes balance effects and turns them into a per-account plan.

    Effects are always computed and checked against the set of existing
    accounts before anything is written, so a missing account aborts the
    operation without a partial mutation.
    """

    def apply(self, transaction: Transaction) -> list[BalanceEffect]:
        """Effects of recording ``transaction``.

        A split parent produces a single effect of its effective amount against
        its own account. Split children produce none.
        """
        if transaction.is_split_child:
            return []

        amount = transaction.effective_amount
        if transaction.type in (TransactionType.EXPENSE, TransactionType.TRANSFER_OUT):
            if transaction.from_account_id is None:
                raise ValidationError(
                    f"{transaction.type.value} transaction {transaction.id} has no source account"
                )
            return [BalanceEffect(transaction.from_account_id, -amount)]

        if transaction.to_account_id is None:
            raise ValidationError(
                f"{transaction.type.value} transaction {transaction.id} has no destination account"
            )
        return [BalanceEffect(transaction.to_account_id, amount)]

    def reverse(self, transaction: Transaction) -> list[BalanceEffect]:
        """Effects that undo a previous ``apply`` of ``transaction``."""
        return [effect.inverted() for effect in self.apply(transaction)]

    @staticmethod
    def combine(effects: Iterable[BalanceEffect]) -> dict[UUID, Decimal]:
        """Net the effects per account."""
        net: dict[UUID, Decimal] = defaultdict(lambda: Decimal("0"))
        for effect in effects:
            net[effect.account_id] += effect.delta
        return dict(net)

    def plan(
        self,
        account_exists: Callable[[UUID], bool],
        applied: Iterable[BalanceEffect] = (),
        reversed_: Iterable[BalanceEffect] = (),
    ) -> dict[UUID, Decimal]:
        """Build the net per-account deltas for one ledger operation.

        Args:
            account_exists: Lookup telling whether an account is still present
            applied: Effects of the new state; every account must exist
            reversed_: Effects undoing the stored state; missing accounts are
                detached and skipped with a warning

        Returns:
            Mapping of account ID to the delta to add to its balance

        Raises:
            AccountNotFoundError: If an applied effect targets a missing account
        """
        applied = list(applied)
        for effect in applied:
            if not account_exists(effect.account_id):
                raise AccountNotFoundError(account_not_found(effect.account_id))

        attached = []
        for effect in reversed_:
            if account_exists(effect.account_id):
                attached.append(effect)
            else:
                logger.warning(
                    "Reconciliation: account %s no longer exists, reversal of %s detached",
                    effect.account_id,
                    effect.delta,
                )

        return {
            account_id: delta
            for account_id, delta in self.combine(applied + attached).items()
            if delta != 0
        }
