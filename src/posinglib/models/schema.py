"""
Database schema definitions for posinglib application.

This module contains SQL schema definitions for the posing reference table.
Child tags are stored as JSON text so both the current and the legacy shape
survive a round trip unchanged.
"""

from typing import List

TABLE_NAME = "posing_refs"

# SQL schema for the posing reference table
POSING_REFS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS posing_refs (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    image_url TEXT NOT NULL,
    head_count INTEGER NOT NULL,
    grandparents TEXT NOT NULL,
    parents TEXT NOT NULL,
    children TEXT,
    children_tags TEXT,
    pet_count INTEGER NOT NULL DEFAULT 0,
    memo TEXT NOT NULL DEFAULT '',
    is_favorite BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

POSING_REFS_TABLE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_posing_refs_user_created ON posing_refs(user_id, created_at);",
]

ALL_SCHEMA_STATEMENTS = [POSING_REFS_TABLE_SCHEMA] + POSING_REFS_TABLE_INDEXES

REQUIRED_COLUMNS = {
    "id",
    "user_id",
    "image_url",
    "head_count",
    "grandparents",
    "parents",
    "children",
    "children_tags",
    "pet_count",
    "memo",
    "is_favorite",
    "created_at",
}

# Column order used by every SELECT in the photo store
SELECT_COLUMNS = (
    "id",
    "user_id",
    "image_url",
    "head_count",
    "grandparents",
    "parents",
    "children",
    "children_tags",
    "pet_count",
    "memo",
    "is_favorite",
    "created_at",
)


def get_schema_statements() -> List[str]:
    """
    Get all database schema creation statements.

    Returns:
        List of SQL statements to create tables and indexes
    """
    return ALL_SCHEMA_STATEMENTS


def validate_schema_compatibility() -> bool:
    """
    Validate that the schema is compatible with the PhotoRecord model.

    Returns:
        True if every required column appears in the table definition
    """
    schema_lower = POSING_REFS_TABLE_SCHEMA.lower()
    return all(column in schema_lower for column in REQUIRED_COLUMNS)
