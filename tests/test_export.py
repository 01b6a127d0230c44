"""Tests for CSV export."""

import csv
from datetime import date
from decimal import Decimal

from conftest import expense, income
from tally.domain.entities import Transaction, TransactionType
from tally.domain.export import EXPORT_COLUMNS, export_transactions_csv


class TestExport:
    """Tests for export_transactions_csv."""

    def test_export_rows(self, tmp_path, ledger, account_service, category_service, card, cash, categories):
        ledger.create_transaction(
            expense(card, "12.5", category=categories["cafe"], on=date(2024, 3, 2), description="Latte")
        )
        ledger.create_transaction(income(cash, "100", on=date(2024, 3, 1)))
        ledger.create_transfer(card.id, cash.id, Decimal("40"), transaction_date=date(2024, 3, 3))

        out = tmp_path / "out.csv"
        count = export_transactions_csv(
            str(out),
            ledger.get_transactions(),
            account_service.list_accounts(),
            category_service.list_categories(),
        )

        with open(out, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert count == 4
        assert rows[0] == EXPORT_COLUMNS
        assert ["2024-03-02", "expense", "12.50", "cafe", "Latte", "#mono"] in rows
        assert ["2024-03-01", "income", "100.00", "", "", "#cash"] in rows
        transfer_rows = sorted(row[1] + row[5] for row in rows if row[0] == "2024-03-03")
        assert transfer_rows == ["transferIn#cash", "transferOut#mono"]

    def test_split_parent_is_one_row(self, tmp_path, ledger, card, categories):
        parent = ledger.create_transaction(
            Transaction(
                type=TransactionType.EXPENSE,
                amount=Decimal("0"),
                transaction_date=date(2024, 3, 2),
                from_account_id=card.id,
                split_transactions=(
                    expense(card, "30", category=categories["groceries"]),
                    expense(card, "70", category=categories["pharmacy"]),
                ),
            )
        )

        out = tmp_path / "split.csv"
        export_transactions_csv(str(out), [parent], [card], categories.values())

        with open(out, newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[1] == ["2024-03-02", "expense", "100.00", "pharmacy", "", "#mono"]

    def test_empty_export(self, tmp_path):
        out = tmp_path / "empty.csv"
        assert export_transactions_csv(str(out), [], [], []) == 0
        assert out.read_text(encoding="utf-8").strip() == ",".join(EXPORT_COLUMNS)
