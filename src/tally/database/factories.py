"""Database factory functions for creating repository instances."""

import os
from pathlib import Path
from typing import Optional

from tally.database.sqlalchemy_db import SQLAlchemyRepository


def default_database_path() -> str:
    """Return TALLY_DB_PATH, or ~/.tally/tally.db when it is not set."""
    database_path = os.environ.get("TALLY_DB_PATH")
    if database_path is None:
        db_dir = Path.home() / ".tally"
        db_dir.mkdir(exist_ok=True)
        database_path = str(db_dir / "tally.db")
    return database_path


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyRepository:
    """Create a SQLite-backed repository.

    Args:
        database_path: Path to SQLite database file. If None, checks TALLY_DB_PATH
            environment variable, then defaults to ~/.tally/tally.db

    Returns:
        SQLAlchemyRepository instance configured for SQLite
    """
    if database_path is None:
        database_path = default_database_path()

    repository = SQLAlchemyRepository(f"sqlite:///{database_path}")
    repository.database_path = database_path
    return repository
