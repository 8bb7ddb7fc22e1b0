"""
Unit tests for database module.
"""

import duckdb
import pytest

from posinglib.models.database import DatabaseManager, create_database, get_database_manager
from posinglib.models.schema import TABLE_NAME


class TestDatabaseManager:
    """Test cases for DatabaseManager class."""

    def test_init(self):
        """Test DatabaseManager initialization."""
        manager = DatabaseManager("/tmp/test.db")

        assert manager.db_path == "/tmp/test.db"
        assert manager._connection is None

    def test_connect_reuses_connection(self, temp_dir):
        """Test that connect creates one DuckDB connection and reuses it."""
        manager = DatabaseManager(str(temp_dir / "test.db"))

        conn = manager.connect()

        assert isinstance(conn, duckdb.DuckDBPyConnection)
        assert manager.connect() is conn
        manager.close()

    def test_context_manager_closes(self, temp_dir):
        """Test DatabaseManager as context manager."""
        with DatabaseManager(str(temp_dir / "test.db")) as manager:
            manager.connect()

        assert manager._connection is None

    def test_initialize_and_verify_schema(self, temp_dir):
        """Test schema initialization."""
        manager = DatabaseManager(str(temp_dir / "test.db"))

        assert manager.verify_schema() is False

        manager.initialize_schema()

        assert manager.verify_schema() is True
        manager.close()

    def test_initialize_schema_is_idempotent(self, temp_dir):
        """Test running schema initialization twice."""
        manager = DatabaseManager(str(temp_dir / "test.db"))

        manager.initialize_schema()
        manager.initialize_schema()

        assert manager.verify_schema() is True
        manager.close()

    def test_verify_schema_missing_column(self, temp_dir):
        """Test verification fails for a table lacking required columns."""
        manager = DatabaseManager(str(temp_dir / "test.db"))
        manager.execute_query(f"CREATE TABLE {TABLE_NAME} (id TEXT PRIMARY KEY)")

        assert manager.verify_schema() is False
        manager.close()

    def test_execute_query_with_parameters(self, temp_dir):
        """Test parameterized queries."""
        manager = DatabaseManager(str(temp_dir / "test.db"))
        manager.initialize_schema()

        manager.execute_query(
            f"INSERT INTO {TABLE_NAME} (id, user_id, image_url, head_count, grandparents, parents) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            ("r1", "user-1", "data:image/jpeg;base64,AAAA", 3, "none", "both"),
        )
        rows = manager.execute_query(
            f"SELECT id, pet_count, memo, is_favorite FROM {TABLE_NAME} WHERE user_id = ?", ("user-1",)
        )

        assert rows == [("r1", 0, "", False)]
        manager.close()

    def test_execute_query_error(self, temp_dir):
        """Test that query errors propagate."""
        manager = DatabaseManager(str(temp_dir / "test.db"))

        with pytest.raises(duckdb.Error):
            manager.execute_query("SELECT * FROM missing_table")
        manager.close()


class TestDatabaseCreation:
    """Test cases for database creation helpers."""

    def test_create_database(self, temp_dir):
        """Test creating a database in a missing directory."""
        db_path = temp_dir / "nested" / "posing_refs.db"

        manager = create_database(str(db_path))

        assert db_path.exists()
        assert manager._connection is None
        assert manager.verify_schema() is True
        manager.close()

    def test_get_database_manager_creates(self, temp_dir):
        """Test getting a manager creates the database by default."""
        db_path = temp_dir / "posing_refs.db"

        get_database_manager(str(db_path))

        assert db_path.exists()

    def test_get_database_manager_missing(self, temp_dir):
        """Test missing database without creation."""
        with pytest.raises(FileNotFoundError):
            get_database_manager(str(temp_dir / "missing.db"), create_if_missing=False)

    def test_get_database_manager_repairs_schema(self, temp_dir):
        """Test an existing file without the table gets its schema."""
        db_path = str(temp_dir / "posing_refs.db")
        duckdb.connect(db_path).close()

        manager = get_database_manager(db_path)

        assert manager.verify_schema() is True
        manager.close()
