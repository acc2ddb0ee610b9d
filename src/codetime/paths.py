"""Where codetime keeps its ledger database and log file.

Both live in the per-user roaming data directory, so a synced profile carries
its coding history along with it.
"""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs


APP_NAME = "CodeTime"
APP_AUTHOR = "CodeTime"
LEDGER_FILENAME = "ledger.sqlite3"
LOG_FILENAME = "codetime.log"


def get_data_dir() -> Path:
    """Create and return the directory holding the ledger database."""
    dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=True)
    path = Path(dirs.user_data_path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_db_path() -> Path:
    """Default SQLite file for the project, language and framework ledgers."""
    return get_data_dir() / LEDGER_FILENAME


def get_log_path() -> Path:
    return get_data_dir() / LOG_FILENAME
