"""
Models module for posinglib application.

This module contains data models and schemas:
- PhotoRecord: Data class for a stored reference image and its tags
- TagMetadata: Composition tags shared by an upload batch or edit form
- CountedChildTag / LegacyChildTag: Child tag variants
- DatabaseManager: Database connection and schema management
"""

from .database import DatabaseManager, create_database, get_database_manager
from .photo import (
    AGE_GROUPS,
    CHILD_OPTIONS,
    GRANDPARENT_OPTIONS,
    PARENT_OPTIONS,
    ChildTag,
    CountedChildTag,
    LegacyChildTag,
    PhotoRecord,
    TagMetadata,
    parse_children,
)
from .schema import get_schema_statements, validate_schema_compatibility

__all__ = [
    "AGE_GROUPS",
    "CHILD_OPTIONS",
    "GRANDPARENT_OPTIONS",
    "PARENT_OPTIONS",
    "ChildTag",
    "CountedChildTag",
    "LegacyChildTag",
    "PhotoRecord",
    "TagMetadata",
    "parse_children",
    "DatabaseManager",
    "create_database",
    "get_database_manager",
    "get_schema_statements",
    "validate_schema_compatibility",
]
