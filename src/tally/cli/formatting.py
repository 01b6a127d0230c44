"""Console rendering of ledger entities."""

from decimal import Decimal

from tally.domain.entities import Account, Transaction


def format_money(amount: Decimal, currency: str = "") -> str:
    text = f"{amount:,.2f}"
    return f"{text} {currency}" if currency else text


def signed_amount(transaction: Transaction) -> str:
    return f"{transaction.type.symbol}{transaction.effective_amount:,.2f}"


def transaction_line(
    transaction: Transaction,
    category_names: dict,
    account_tags: dict,
) -> str:
    """One-line summary used by listings."""
    account_id = transaction.from_account_id if transaction.type.is_debit else transaction.to_account_id
    category = category_names.get(transaction.primary_category_id, "-")
    if transaction.is_split_parent:
        category = f"{category} (+{len(transaction.split_transactions) - 1} split)"
    return (
        f"{transaction.transaction_date} | {transaction.type.value:11s} | "
        f"{signed_amount(transaction):>12s} | {account_tags.get(account_id, '?'):10s} | "
        f"{category:20s} | {transaction.description[:30]:30s} | {transaction.id}"
    )


def account_line(account: Account) -> str:
    marker = "*" if account.is_default else " "
    return (
        f"{marker} {account.tag:12s} | {account.name:20s} | {account.account_type.value:10s} | "
        f"{format_money(account.balance, account.currency.value):>18s}"
    )
