"""Integration tests for end-to-end workflows."""

from decimal import Decimal
from uuid import UUID

from conftest import expense, income
from tally.cli.main import cli
from tally.domain.account import AccountDeletionPolicy
from tally.domain.ledger import LedgerEngine


def test_full_workflow(cli_runner, temp_db, tmp_path):
    """Test complete workflow: accounts → categories → import → review → transfer → reconcile → export."""
    db_path = temp_db.database_path

    def run(*args):
        result = cli_runner.invoke(cli, ["--db-path", db_path, *args])
        assert result.exit_code == 0, result.output
        return result

    # Step 1: Accounts and categories
    run("account", "create", "Monobank", "--tag", "#mono", "--opening-balance", "5000")
    run("account", "create", "Wallet", "--tag", "#cash", "--type", "Cash")
    run("category", "init")

    # Step 2: Import a bank statement into the pending queue
    statement = tmp_path / "statement.csv"
    statement.write_text(
        "ID;Date;Amount;Description;Merchant\n"
        "M-1;01.03.2024;-350,00;Card payment;Silpo\n"
        "M-2;02.03.2024;-120,00;Card payment;Uber\n"
        "M-3;03.03.2024;45 000,00;Salary;\n",
        encoding="utf-8",
    )
    result = run("import", str(statement), "--account", "#mono")
    assert "Imported 3 transactions" in result.output

    # Step 3: Review: accept two lines, dismiss one
    queue = {item.bank_transaction_id: item for item in _pending(temp_db)}
    run("pending", "process", str(queue["M-1"].id), "--category", "groceries")
    run("pending", "process", str(queue["M-3"].id), "--description", "March salary")
    run("pending", "dismiss", str(queue["M-2"].id))
    assert "Nothing to review." in run("pending", "list").output

    # Step 4: Cash withdrawal and a split purchase
    run("transfer", "--from", "#mono", "--to", "#cash", "--amount", "1000", "--date", "2024-03-04")
    result = run(
        "add", "--account", "#cash", "--split", "cafe=80", "--split", "other=20", "--date", "2024-03-05"
    )
    split_id = UUID(result.output.splitlines()[0].split()[-1])

    balances = {acc.tag: acc.balance for acc in temp_db.get_all_accounts()}
    assert balances == {"#mono": Decimal("48650.00"), "#cash": Decimal("900.00")}

    # Step 5: Listing per account shows each transfer leg once
    mono = run("transaction", "list", "--account", "#mono").output
    assert "3 transactions" in mono
    assert "March salary" in mono

    # Step 6: Edit the split into a single expense
    run("transaction", "update", str(split_id), "--amount", "60", "--category", "cafe")
    assert LedgerEngine(temp_db).get_transaction(split_id).effective_amount == Decimal("60")

    # Step 7: Everything reconciles and exports
    assert "All balances match the ledger." in run("reconcile").output
    out = tmp_path / "export.csv"
    assert "Exported 5 transactions" in run("export", str(out)).output


def test_cascading_account_removal_keeps_ledger_consistent(ledger, account_service, card, cash, categories):
    """Removing an account with transfers leaves the other side balanced."""
    ledger.create_transaction(income(cash, "50"))
    ledger.create_transfer(card.id, cash.id, Decimal("300"))
    ledger.create_transaction(expense(card, "25", category=categories["taxi"]))

    account_service.delete_account(cash.id, policy=AccountDeletionPolicy.CASCADE)

    assert account_service.get_account(card.id).balance == Decimal("975.00")
    assert ledger.reconcile() == []


def _pending(temp_db):
    return temp_db.get_pending_transactions()
