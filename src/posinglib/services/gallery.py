"""
Live gallery state for one session.

Holds the latest store snapshot, the session's filter settings and the
viewer. The visible list is recomputed from scratch whenever a snapshot
arrives or a filter changes, so it is always ``filter_records(records, filters)``.
"""

import threading

from ..error_handling import StoreSubscriptionError
from ..logging_config import get_logger, log_user_action
from ..models.photo import PhotoRecord, TagMetadata
from .filters import FilterConfig, active_filter_count, filter_records
from .store import PhotoStore
from .viewer import ViewerState

logger = get_logger(__name__)


class LiveGallery:
    """
    Filtered, navigable view over a user's records.

    Attributes:
        records: Latest full snapshot, newest first
        filters: Active filter settings
        viewer: Full-screen viewer state
        stale: True when the last snapshot refresh failed
        last_error: The refresh failure, if any
    """

    def __init__(self, store: PhotoStore, filters: FilterConfig | None = None) -> None:
        self.store = store
        self.filters = filters or FilterConfig()
        self.viewer = ViewerState()
        self.records: list[PhotoRecord] = []
        self.stale = False
        self.last_error: StoreSubscriptionError | None = None
        self._visible: list[PhotoRecord] = []
        self._lock = threading.Lock()
        self._unsubscribe = store.subscribe(self._on_snapshot, self._on_error)

    def _on_snapshot(self, records: list[PhotoRecord]) -> None:
        with self._lock:
            self.records = records
            self.stale = False
            self.last_error = None
            self._set_visible(filter_records(records, self.filters))

    def _on_error(self, error: StoreSubscriptionError) -> None:
        # Previous snapshot stays on screen
        logger.warning("gallery_snapshot_failed", user_id=self.store.user_id, error=str(error))
        with self._lock:
            self.stale = True
            self.last_error = error

    def refresh(self) -> None:
        """Recompute the visible list after the filters were changed in place."""
        with self._lock:
            self._set_visible(filter_records(self.records, self.filters))

    def _set_visible(self, visible: list[PhotoRecord]) -> None:
        self._visible = visible
        current_id = self.viewer.current_id
        # The viewer only shows records the grid shows
        if current_id is not None and all(record.id != current_id for record in visible):
            self.viewer.close()
            logger.info("viewer_closed_record_hidden", record_id=current_id)

    def set_filters(self, filters: FilterConfig) -> None:
        self.filters = filters
        self.refresh()

    def reset_filters(self) -> None:
        self.filters.reset()
        self.refresh()

    @property
    def visible_records(self) -> list[PhotoRecord]:
        with self._lock:
            return list(self._visible)

    @property
    def visible_ids(self) -> list[str]:
        return [record.id for record in self.visible_records]

    @property
    def active_filter_count(self) -> int:
        return active_filter_count(self.filters)

    # ------------------------------------------------------------------
    # Viewer
    # ------------------------------------------------------------------

    @property
    def current_record(self) -> PhotoRecord | None:
        """Record shown in the viewer, looked up in the visible records."""
        if self.viewer.current_id is None:
            return None
        for record in self.visible_records:
            if record.id == self.viewer.current_id:
                return record
        return None

    def open_viewer(self, record_id: str) -> None:
        self.viewer.open(record_id)

    def close_viewer(self) -> None:
        self.viewer.close()

    def next(self) -> None:
        self.viewer.next(self.visible_ids)

    def prev(self) -> None:
        self.viewer.prev(self.visible_ids)

    def handle_key(self, key: str) -> None:
        self.viewer.handle_key(key, self.visible_ids)

    # ------------------------------------------------------------------
    # Record actions
    # ------------------------------------------------------------------

    def edit_record(self, record_id: str, tags: TagMetadata) -> None:
        """
        Save an edit form over a record's tags.

        Raises:
            StoreWriteError: If the store rejects the update
        """
        self.store.update_tags(record_id, tags)

    def toggle_favorite(self, record_id: str, current_value: bool) -> None:
        """
        Flip the favorite flag of a record.

        Raises:
            StoreWriteError: If the store rejects the update
        """
        self.store.set_favorite(record_id, not current_value)

    def delete_record(self, record_id: str) -> None:
        """
        Delete a record, closing the viewer if it shows that record.

        Raises:
            StoreWriteError: If the store rejects the delete
        """
        self.store.delete(record_id)
        self.viewer.on_record_deleted(record_id)
        log_user_action(self.store.user_id, "gallery_record_deleted", record_id=record_id)

    def close(self) -> None:
        """Stop receiving snapshots."""
        self._unsubscribe()
