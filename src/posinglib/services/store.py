"""
Photo store for posing reference records.

Each user gets one DuckDB file under ``{data_dir}/{app_id}/``; every query is
additionally scoped by ``user_id``. The store behaves like a small document
database:

- ``create`` / ``update`` / ``delete`` raise StoreWriteError on rejection,
  including records whose serialized size exceeds the record-size ceiling
- ``subscribe`` pushes a full snapshot (newest first) immediately and after
  every successful write
- when a backup bucket is configured the database file is restored from
  Cloud Storage on first open and uploaded in the background after writes

Usage Examples:
    store = PhotoStore(AppConfig.from_env(), user_id="anon-123")
    unsubscribe = store.subscribe(lambda records: print(len(records)))
    record_id = store.create(TagMetadata(head_count=4), image_url)
    store.set_favorite(record_id, True)
    unsubscribe()
"""

import atexit
import json
import re
import threading
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import duckdb

from ..config import AppConfig
from ..error_handling import StorageError, StoreSubscriptionError, StoreWriteError
from ..logging_config import get_logger, log_error, log_user_action
from ..models.database import DatabaseManager, get_database_manager
from ..models.photo import PhotoRecord, TagMetadata, derive_children_tags, serialize_children
from ..models.schema import SELECT_COLUMNS, TABLE_NAME
from .storage import DatabaseBackupService, get_database_blob_path

logger = get_logger(__name__)

SnapshotListener = Callable[[list[PhotoRecord]], None]
ErrorListener = Callable[[StoreSubscriptionError], None]

UPDATABLE_FIELDS = (
    "image_url",
    "head_count",
    "grandparents",
    "parents",
    "children",
    "pet_count",
    "memo",
    "is_favorite",
)


def _safe_path_component(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]", "_", value)


class PhotoStore:
    """
    Per-user record store with live snapshot subscriptions.

    Attributes:
        user_id: Identity every record and query is scoped to
        db_path: Local DuckDB file for this user
        gcs_db_path: Backup object path when Cloud Storage backup is enabled

    Thread Safety:
        Database access is serialized with a lock, so concurrent writes from
        a batch upload are safe. Listeners run on the writing thread.
    """

    def __init__(self, config: AppConfig, user_id: str, backup: DatabaseBackupService | None = None):
        """
        Initialize the store for one user.

        Args:
            config: Application settings
            user_id: Authenticated user identity
            backup: Optional Cloud Storage backup service
        """
        if not user_id:
            raise ValueError("user_id is required")

        self.config = config
        self.user_id = user_id
        self.max_record_bytes = config.max_record_bytes
        self.db_path = Path(config.data_dir) / _safe_path_component(config.app_id) / (
            f"posing_refs_{_safe_path_component(user_id)}.db"
        )
        self.gcs_db_path = get_database_blob_path(config.app_id, user_id)
        self.backup = backup

        self._lock = threading.RLock()
        self._db_manager: DatabaseManager | None = None
        self._listeners: dict[int, tuple[SnapshotListener, ErrorListener | None]] = {}
        self._next_listener_id = 0
        self._backup_executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="db-backup") if backup is not None else None
        )

        logger.info(
            "photo_store_initialized",
            user_id=user_id,
            db_path=str(self.db_path),
            backup_enabled=backup is not None,
        )

    @property
    def db_manager(self) -> DatabaseManager:
        """Get database manager, restoring or creating the database if needed."""
        if self._db_manager is None:
            with self._lock:
                if self._db_manager is None:
                    self._restore_from_backup()
                    self._db_manager = get_database_manager(str(self.db_path), create_if_missing=True)
        return self._db_manager

    def _restore_from_backup(self) -> None:
        if self.backup is None or self.db_path.exists():
            return
        try:
            db_data = self.backup.download_database_file(self.gcs_db_path)
        except StorageError:
            logger.warning("database_restore_skipped", user_id=self.user_id, gcs_path=self.gcs_db_path)
            return
        if db_data:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.db_path.write_bytes(db_data)
            log_user_action(self.user_id, "database_restored_from_gcs", gcs_path=self.gcs_db_path)

    # ------------------------------------------------------------------
    # Reads and subscriptions
    # ------------------------------------------------------------------

    def _fetch_rows(self, where: str = "", parameters: tuple = ()) -> list[PhotoRecord]:
        query = (
            f"SELECT {', '.join(SELECT_COLUMNS)} FROM {TABLE_NAME} "
            f"WHERE user_id = ? {where} ORDER BY created_at DESC, id"
        )
        with self._lock:
            with self.db_manager as db:
                rows = db.execute_query(query, (self.user_id, *parameters))
        return [PhotoRecord.from_dict(dict(zip(SELECT_COLUMNS, row))) for row in rows]

    def list_records(self) -> list[PhotoRecord]:
        """
        Current snapshot, newest first.

        Raises:
            StoreSubscriptionError: If the query fails
        """
        try:
            return self._fetch_rows()
        except (duckdb.Error, OSError, RuntimeError, ValueError) as e:
            raise StoreSubscriptionError(
                f"Failed to load records: {e}",
                details={"user_id": self.user_id, "operation": "list_records"},
                original_exception=e,
            ) from e

    def get_record(self, record_id: str) -> PhotoRecord | None:
        """Single record by id, or None if it does not exist for this user."""
        records = self._fetch_rows("AND id = ?", (record_id,))
        return records[0] if records else None

    def subscribe(self, on_snapshot: SnapshotListener, on_error: ErrorListener | None = None) -> Callable[[], None]:
        """
        Register a snapshot listener.

        The current snapshot is delivered before this method returns.

        Args:
            on_snapshot: Called with the full record list, newest first
            on_error: Called with StoreSubscriptionError when a snapshot query fails

        Returns:
            Callable that removes the listener
        """
        with self._lock:
            listener_id = self._next_listener_id
            self._next_listener_id += 1
            self._listeners[listener_id] = (on_snapshot, on_error)

        logger.debug("snapshot_listener_added", user_id=self.user_id, listener_id=listener_id)
        self._push_snapshot({listener_id: (on_snapshot, on_error)})

        def unsubscribe() -> None:
            with self._lock:
                self._listeners.pop(listener_id, None)
            logger.debug("snapshot_listener_removed", user_id=self.user_id, listener_id=listener_id)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _push_snapshot(self, listeners: dict[int, tuple[SnapshotListener, ErrorListener | None]]) -> None:
        if not listeners:
            return

        try:
            snapshot = self.list_records()
        except StoreSubscriptionError as e:
            for _, on_error in listeners.values():
                if on_error is not None:
                    on_error(e)
            return

        for listener_id, (on_snapshot, _) in listeners.items():
            try:
                on_snapshot(list(snapshot))
            except Exception as e:
                log_error(e, {"operation": "snapshot_listener", "listener_id": listener_id, "user_id": self.user_id})

    def _after_write(self) -> None:
        with self._lock:
            listeners = dict(self._listeners)
        self._push_snapshot(listeners)
        self._trigger_backup()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _check_record_size(self, document: dict[str, Any], record_id: str) -> None:
        size = len(json.dumps(document, ensure_ascii=False, default=str).encode("utf-8"))
        if size > self.max_record_bytes:
            raise StoreWriteError(
                f"Record {record_id} is {size} bytes, limit is {self.max_record_bytes}",
                code="record_too_large",
                user_message="이미지 용량이 너무 커서 저장하지 못했습니다.",
                details={"record_id": record_id, "record_size": size, "max_record_bytes": self.max_record_bytes},
            )

    def create(self, tags: TagMetadata, image_url: str) -> str:
        """
        Create one record.

        Args:
            tags: Composition tags for the record
            image_url: Encoded image data URI

        Returns:
            Id assigned to the new record

        Raises:
            StoreWriteError: If the record is invalid, too large, or the insert fails
        """
        record_id = str(uuid.uuid4())
        problems = tags.validate()
        if problems:
            raise StoreWriteError(
                f"Invalid tags for new record: {'; '.join(problems)}",
                code="invalid_record",
                user_message="태그 정보가 올바르지 않습니다.",
                details={"problems": problems},
            )

        fields = tags.to_fields()
        children_json = json.dumps(serialize_children(fields["children"]))
        document = {
            "image_url": image_url,
            **fields,
            "children": children_json,
            "is_favorite": False,
        }
        self._check_record_size(document, record_id)

        # Stored as naive UTC; PhotoRecord.from_dict re-attaches the zone
        created_at = datetime.now(UTC).replace(tzinfo=None)

        try:
            with self._lock:
                with self.db_manager as db:
                    db.execute_query(
                        f"""INSERT INTO {TABLE_NAME}
                           (id, user_id, image_url, head_count, grandparents, parents,
                            children, children_tags, pet_count, memo, is_favorite, created_at)
                           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                        (
                            record_id,
                            self.user_id,
                            image_url,
                            fields["head_count"],
                            fields["grandparents"],
                            fields["parents"],
                            children_json,
                            json.dumps(fields["children_tags"]),
                            fields["pet_count"],
                            fields["memo"],
                            False,
                            created_at,
                        ),
                    )
        except (duckdb.Error, OSError, RuntimeError) as e:
            raise StoreWriteError(
                f"Failed to create record: {e}",
                details={"user_id": self.user_id, "record_id": record_id, "operation": "create"},
                original_exception=e,
            ) from e

        log_user_action(self.user_id, "record_created", record_id=record_id, image_length=len(image_url))
        self._after_write()
        return record_id

    def update(self, record_id: str, fields: dict[str, Any]) -> None:
        """
        Replace the given fields of one record.

        ``children_tags`` is re-derived whenever ``children`` is written.

        Args:
            record_id: Record to update
            fields: Mapping of field name to new value (see UPDATABLE_FIELDS)

        Raises:
            StoreWriteError: If the record does not exist, a field is unknown,
                the result is too large, or the update fails
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS) - {"children_tags"}
        if unknown:
            raise StoreWriteError(
                f"Unknown fields for update: {sorted(unknown)}",
                code="invalid_update",
                details={"record_id": record_id, "fields": sorted(unknown)},
            )

        values = {name: value for name, value in fields.items() if name in UPDATABLE_FIELDS}
        if "children" in values:
            children = list(values["children"])
            values["children"] = json.dumps(serialize_children(children))
            values["children_tags"] = json.dumps(derive_children_tags(children))
        if not values:
            return

        try:
            with self._lock:
                existing = self.get_record(record_id)
                if existing is None:
                    raise StoreWriteError(
                        f"Record {record_id} not found",
                        code="record_not_found",
                        user_message="해당 레퍼런스를 찾을 수 없습니다.",
                        details={"record_id": record_id, "operation": "update"},
                    )

                merged = {**existing.to_dict(), **values}
                merged.pop("id", None)
                merged.pop("user_id", None)
                self._check_record_size(merged, record_id)

                assignments = ", ".join(f"{name} = ?" for name in values)
                with self.db_manager as db:
                    db.execute_query(
                        f"UPDATE {TABLE_NAME} SET {assignments} WHERE id = ? AND user_id = ?",
                        (*values.values(), record_id, self.user_id),
                    )
        except (duckdb.Error, OSError, RuntimeError) as e:
            raise StoreWriteError(
                f"Failed to update record: {e}",
                details={"user_id": self.user_id, "record_id": record_id, "operation": "update"},
                original_exception=e,
            ) from e

        log_user_action(self.user_id, "record_updated", record_id=record_id, fields=sorted(values))
        self._after_write()

    def update_tags(self, record_id: str, tags: TagMetadata) -> None:
        """Replace every tag field of a record (edit form save)."""
        problems = tags.validate()
        if problems:
            raise StoreWriteError(
                f"Invalid tags for record {record_id}: {'; '.join(problems)}",
                code="invalid_record",
                user_message="태그 정보가 올바르지 않습니다.",
                details={"record_id": record_id, "problems": problems},
            )
        fields = tags.to_fields()
        fields.pop("children_tags")
        self.update(record_id, fields)

    def set_favorite(self, record_id: str, is_favorite: bool) -> None:
        self.update(record_id, {"is_favorite": bool(is_favorite)})

    def delete(self, record_id: str) -> None:
        """
        Delete one record.

        Raises:
            StoreWriteError: If the record does not exist or the delete fails
        """
        try:
            with self._lock:
                if self.get_record(record_id) is None:
                    raise StoreWriteError(
                        f"Record {record_id} not found",
                        code="record_not_found",
                        user_message="해당 레퍼런스를 찾을 수 없습니다.",
                        details={"record_id": record_id, "operation": "delete"},
                    )
                with self.db_manager as db:
                    db.execute_query(
                        f"DELETE FROM {TABLE_NAME} WHERE id = ? AND user_id = ?", (record_id, self.user_id)
                    )
        except (duckdb.Error, OSError, RuntimeError) as e:
            raise StoreWriteError(
                f"Failed to delete record: {e}",
                details={"user_id": self.user_id, "record_id": record_id, "operation": "delete"},
                original_exception=e,
            ) from e

        log_user_action(self.user_id, "record_deleted", record_id=record_id)
        self._after_write()

    # ------------------------------------------------------------------
    # Backup
    # ------------------------------------------------------------------

    def _trigger_backup(self) -> None:
        if self._backup_executor is not None:
            self._backup_executor.submit(self.upload_backup)

    def upload_backup(self) -> bool:
        """
        Upload the local database file to Cloud Storage.

        Returns:
            bool: True if uploaded, False if backup is disabled or failed
        """
        if self.backup is None or not self.db_path.exists():
            return False

        with self._lock:
            db_data = self.db_path.read_bytes()

        try:
            self.backup.upload_database_file(self.gcs_db_path, db_data, self.user_id)
        except StorageError:
            logger.warning("database_backup_failed", user_id=self.user_id, gcs_path=self.gcs_db_path)
            return False

        return True

    def close(self) -> None:
        """Stop background backups and drop listeners."""
        if self._backup_executor is not None:
            self._backup_executor.shutdown(wait=True)
            self._backup_executor = None
        with self._lock:
            self._listeners.clear()
            if self._db_manager is not None:
                self._db_manager.close()


# Store instances per (app id, user id)
_photo_stores: dict[tuple[str, str], PhotoStore] = {}
_photo_stores_lock = threading.Lock()


def get_photo_store(config: AppConfig, user_id: str) -> PhotoStore:
    """
    Get the photo store for a user, creating it on first use.

    Args:
        config: Application settings
        user_id: Authenticated user identity

    Returns:
        PhotoStore: Store instance shared by every session of that user
    """
    key = (config.app_id, user_id)
    with _photo_stores_lock:
        if key not in _photo_stores:
            _photo_stores[key] = PhotoStore(config, user_id, backup=DatabaseBackupService.from_config(config))
        return _photo_stores[key]


def cleanup_photo_stores() -> None:
    """Close all store instances."""
    with _photo_stores_lock:
        for store in _photo_stores.values():
            store.close()
        _photo_stores.clear()


# Flushes pending backup uploads when the server process exits
atexit.register(cleanup_photo_stores)
