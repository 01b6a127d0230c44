"""Database layer for tally application."""

from tally.database.base import Repository, TransactionFilter, UnitOfWork
from tally.database.factories import create_sqlite_database

__all__ = ["Repository", "TransactionFilter", "UnitOfWork", "create_sqlite_database"]
