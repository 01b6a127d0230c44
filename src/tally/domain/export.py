"""CSV export of transactions."""

import csv
import logging
from pathlib import Path
from typing import Iterable

from tally.domain.entities import Account, Category, Transaction

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ["Date", "Type", "Amount", "Category", "Description", "Account"]


def export_transactions_csv(
    path: str,
    transactions: Iterable[Transaction],
    accounts: Iterable[Account],
    categories: Iterable[Category],
) -> int:
    """Write transactions to a CSV file.

    Split parents are written as one row with their effective amount and
    primary category. Amounts are unsigned; the Type column carries the direction.

    Args:
        path: Output file path
        transactions: Transactions to write, in the desired order
        accounts: Accounts used to render tags
        categories: Categories used to render names

    Returns:
        Number of rows written
    """
    account_tags = {acc.id: acc.tag for acc in accounts}
    category_names = {cat.id: cat.name for cat in categories}

    rows = 0
    with open(Path(path), "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(EXPORT_COLUMNS)
        for txn in transactions:
            account_id = txn.from_account_id if txn.type.is_debit else txn.to_account_id
            writer.writerow(
                [
                    txn.transaction_date.isoformat(),
                    txn.type.value,
                    f"{txn.effective_amount:.2f}",
                    category_names.get(txn.primary_category_id, ""),
                    txn.description,
                    account_tags.get(account_id, ""),
                ]
            )
            rows += 1

    logger.info("Exported %d transactions to %s", rows, path)
    return rows
