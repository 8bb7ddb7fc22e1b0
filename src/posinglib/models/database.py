"""
DuckDB access for the posing reference table.

A ``DatabaseManager`` owns at most one connection to one database file. The
photo store opens it per operation (``with manager as db``) so the file is
never held open between requests and can be uploaded as a backup.
"""

from pathlib import Path
from typing import Any

import duckdb

from ..logging_config import get_logger
from .schema import REQUIRED_COLUMNS, TABLE_NAME, get_schema_statements, validate_schema_compatibility

logger = get_logger(__name__)


class DatabaseManager:
    """Lazily connected DuckDB database file."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._connection: duckdb.DuckDBPyConnection | None = None

    def connect(self) -> duckdb.DuckDBPyConnection:
        """Open the connection on first use and return it."""
        if self._connection is None:
            self._connection = duckdb.connect(self.db_path)
            logger.debug("duckdb_connected", db_path=self.db_path)
        return self._connection

    def close(self) -> None:
        if self._connection is None:
            return
        self._connection.close()
        self._connection = None
        logger.debug("duckdb_closed", db_path=self.db_path)

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def initialize_schema(self) -> None:
        """
        Create the posing reference table and its indexes in one transaction.

        Raises:
            RuntimeError: If the schema definition lacks a PhotoRecord column
            duckdb.Error: If a statement fails; nothing is committed then
        """
        if not validate_schema_compatibility():
            raise RuntimeError("Schema is not compatible with PhotoRecord model")

        conn = self.connect()
        conn.begin()
        try:
            for statement in get_schema_statements():
                conn.execute(statement)
        except duckdb.Error as e:
            conn.rollback()
            logger.error("database_schema_initialization_failed", db_path=self.db_path, error=str(e))
            raise
        conn.commit()
        logger.info("database_schema_initialized", db_path=self.db_path)

    def missing_columns(self) -> set[str] | None:
        """
        Required columns absent from the table.

        Returns:
            Set of missing column names, or None when the table does not exist
        """
        conn = self.connect()
        tables = conn.execute(
            "SELECT table_name FROM information_schema.tables WHERE table_name = ?", (TABLE_NAME,)
        ).fetchall()
        if not tables:
            return None
        # PRAGMA table_info rows are (cid, name, type, notnull, default, pk)
        present = {row[1] for row in conn.execute(f"PRAGMA table_info({TABLE_NAME})").fetchall()}
        return REQUIRED_COLUMNS - present

    def verify_schema(self) -> bool:
        """True when the table exists with every required column."""
        try:
            missing = self.missing_columns()
        except duckdb.Error as e:
            logger.error("schema_verification_failed", db_path=self.db_path, error=str(e))
            return False

        if missing is None:
            logger.warning("table_missing", table=TABLE_NAME, db_path=self.db_path)
            return False
        if missing:
            logger.warning("columns_missing", table=TABLE_NAME, missing=sorted(missing))
            return False
        return True

    def execute_query(self, query: str, parameters: tuple | None = None) -> list[tuple]:
        """
        Run one statement and fetch all result rows.

        Raises:
            duckdb.Error: If the statement fails
        """
        conn = self.connect()
        try:
            result = conn.execute(query, parameters) if parameters else conn.execute(query)
            return result.fetchall()
        except duckdb.Error as e:
            logger.error("query_execution_failed", query=" ".join(query.split())[:200], error=str(e))
            raise


def create_database(db_path: str | Path) -> DatabaseManager:
    """
    Create a database file with the posing reference schema.

    Parent directories are created as needed; the returned manager is closed.

    Raises:
        RuntimeError: If the file cannot be created or the schema does not verify
    """
    path = Path(db_path)
    manager = DatabaseManager(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with manager:
            manager.initialize_schema()
            if not manager.verify_schema():
                raise RuntimeError("Schema verification failed after creation")
    except (OSError, duckdb.Error, RuntimeError) as e:
        logger.error("database_creation_failed", db_path=str(path), error=str(e))
        raise RuntimeError(f"Database creation failed: {e}") from e

    logger.info("database_created", db_path=str(path))
    return manager


def get_database_manager(db_path: str | Path, create_if_missing: bool = True) -> DatabaseManager:
    """
    Manager for an existing database file, creating or repairing it as needed.

    A file restored from backup, or written by an older version, gets any
    missing table or index created. The returned manager is closed.

    Raises:
        FileNotFoundError: If the file is missing and ``create_if_missing`` is False
        RuntimeError: If a new database cannot be created
    """
    if not Path(db_path).exists():
        if not create_if_missing:
            raise FileNotFoundError(f"Database file not found: {db_path}")
        return create_database(db_path)

    manager = DatabaseManager(db_path)
    with manager:
        if not manager.verify_schema():
            logger.warning("schema_reinitializing", db_path=str(db_path))
            manager.initialize_schema()
    return manager
