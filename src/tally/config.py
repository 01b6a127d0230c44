"""Configuration for tally.

Settings come from environment variables; command line options override them.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from tally.database.factories import default_database_path
from tally.domain.account import AccountDeletionPolicy

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class Settings:
    """Runtime settings."""

    database_path: str
    log_level: str = "WARNING"
    account_delete_policy: AccountDeletionPolicy = AccountDeletionPolicy.REFUSE

    @classmethod
    def from_environment(cls, database_path: Optional[str] = None) -> "Settings":
        """Create settings from TALLY_* environment variables.

        Args:
            database_path: Explicit database path, taking precedence over TALLY_DB_PATH
        """
        return cls(
            database_path=database_path or default_database_path(),
            log_level=os.getenv("TALLY_LOG_LEVEL", "WARNING").upper(),
            account_delete_policy=AccountDeletionPolicy.parse(
                os.getenv("TALLY_ACCOUNT_DELETE_POLICY", AccountDeletionPolicy.REFUSE.value)
            ),
        )

    def setup_logging(self, debug: bool = False) -> None:
        """Configure logging based on settings.

        Args:
            debug: Force DEBUG level for tally's own loggers
        """
        level = getattr(logging, self.log_level, logging.WARNING)
        logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        if debug:
            logging.getLogger("tally").setLevel(logging.DEBUG)
