"""Domain layer for tally application."""

__all__ = [
    "LedgerEngine",
    "PendingImportQueue",
    "AccountService",
    "CategoryService",
    "BankFeedImportService",
]

_SERVICES = {
    "LedgerEngine": "tally.domain.ledger",
    "PendingImportQueue": "tally.domain.pending",
    "AccountService": "tally.domain.account",
    "CategoryService": "tally.domain.category",
    "BankFeedImportService": "tally.domain.bank_import",
}


# Services import the database layer, which imports the entities from this
# package, so they are resolved lazily.
def __getattr__(name):
    if name in _SERVICES:
        import importlib

        return getattr(importlib.import_module(_SERVICES[name]), name)
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
