"""Bank feed CSV import into the pending queue."""

import csv
import logging
from typing import Any
from pathlib import Path
from uuid import UUID

from tally.domain.entities import PendingTransaction, TransactionType
from tally.domain.errors import ConflictError, DomainError, ValidationError
from tally.domain.pending import PendingImportQueue
from tally.utils.amount_parser import parse_amount
from tally.utils.date_parser import parse_date

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"id", "date", "amount", "description"}


class BankFeedImportService:
    """Reads a bank statement CSV and queues every line for review."""

    def __init__(self, queue: PendingImportQueue):
        """Initialize bank feed import service.

        Args:
            queue: Pending import queue receiving the lines
        """
        self.queue = queue

    def import_csv(self, csv_file_path: str, account_id: UUID) -> dict[str, Any]:
        """Import a bank CSV into the pending queue.

        Negative amounts become expenses and positive amounts incomes. Lines
        whose bank id was already imported are skipped.

        Args:
            csv_file_path: Path to CSV file with columns id, date, amount,
                description and optionally merchant
            account_id: Account the statement belongs to

        Returns:
            Dict with import statistics:
            - imported: number of lines queued
            - skipped: number of lines skipped (duplicates)
            - errors: list of error messages

        Raises:
            ValidationError: If the file lacks required columns
            FileNotFoundError: If CSV file doesn't exist
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        imported = 0
        skipped = 0
        errors = []

        with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
            sample = f.read(1024)
            f.seek(0)
            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
            except csv.Error:
                delimiter = ","

            reader = csv.DictReader(f, delimiter=delimiter)
            if reader.fieldnames is None:
                raise ValidationError("CSV file has no columns")
            columns = {name.strip().lower(): name for name in reader.fieldnames if name}
            missing = REQUIRED_COLUMNS - set(columns)
            if missing:
                raise ValidationError(f"CSV file missing required columns: {', '.join(sorted(missing))}")

            for row_num, row in enumerate(reader, start=2):
                values = {key: (row.get(name) or "").strip() for key, name in columns.items()}
                if not values["id"]:
                    errors.append(f"Row {row_num}: Missing id")
                    continue
                try:
                    amount = parse_amount(values["amount"])
                    txn_date = parse_date(values["date"])
                except ValueError as e:
                    errors.append(f"Row {row_num}: {e}")
                    continue
                if amount == 0:
                    errors.append(f"Row {row_num}: Zero amount")
                    continue

                pending = PendingTransaction(
                    amount=abs(amount),
                    description_text=values["description"],
                    merchant_name=values.get("merchant") or None,
                    transaction_date=txn_date,
                    type=TransactionType.EXPENSE if amount < 0 else TransactionType.INCOME,
                    account_id=account_id,
                    bank_transaction_id=values["id"],
                )
                try:
                    self.queue.create_pending_transaction(pending)
                except ConflictError:
                    skipped += 1
                    continue
                except DomainError as e:
                    errors.append(f"Row {row_num}: {e}")
                    continue
                imported += 1

        logger.info(
            "Imported %s: %d queued, %d skipped, %d errors", csv_path.name, imported, skipped, len(errors)
        )
        return {"imported": imported, "skipped": skipped, "errors": errors}
