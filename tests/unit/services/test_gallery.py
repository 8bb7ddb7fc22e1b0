"""
Unit tests for the live gallery.
"""

from unittest.mock import patch

import pytest

from posinglib.error_handling import StoreSubscriptionError, StoreWriteError
from posinglib.models.photo import CountedChildTag, TagMetadata
from posinglib.services.filters import FilterConfig
from posinglib.services.gallery import LiveGallery
from posinglib.services.store import PhotoStore

IMAGE_URL = "data:image/jpeg;base64,AAAA"


class TestLiveGallery:
    """Test cases for LiveGallery against a real store."""

    def setup_method(self):
        self.store = None
        self.gallery = None

    def teardown_method(self):
        if self.gallery is not None:
            self.gallery.close()
        if self.store is not None:
            self.store.close()

    def make_gallery(self, app_config):
        self.store = PhotoStore(app_config, "test-user-123")
        self.gallery = LiveGallery(self.store)
        return self.gallery

    def test_receives_initial_snapshot(self, app_config):
        self.store = PhotoStore(app_config, "test-user-123")
        self.store.create(TagMetadata(), IMAGE_URL)

        self.gallery = LiveGallery(self.store)

        assert len(self.gallery.records) == 1
        assert len(self.gallery.visible_records) == 1

    def test_visible_records_follow_store_writes(self, app_config):
        gallery = self.make_gallery(app_config)

        record_id = self.store.create(TagMetadata(), IMAGE_URL)
        assert gallery.visible_ids == [record_id]

        self.store.delete(record_id)
        assert gallery.visible_ids == []

    def test_filters_applied_to_every_snapshot(self, app_config):
        gallery = self.make_gallery(app_config)
        gallery.set_filters(FilterConfig(children=[CountedChildTag("kid", 2)]))

        match_id = self.store.create(TagMetadata(children=[CountedChildTag("kid", 2)]), IMAGE_URL)
        self.store.create(TagMetadata(children=[CountedChildTag("kid", 1)]), IMAGE_URL)

        assert len(gallery.records) == 2
        assert gallery.visible_ids == [match_id]
        assert gallery.active_filter_count == 1

    def test_in_place_filter_change_needs_refresh(self, app_config):
        gallery = self.make_gallery(app_config)
        favorite_id = self.store.create(TagMetadata(), IMAGE_URL)
        self.store.create(TagMetadata(), IMAGE_URL)
        self.store.set_favorite(favorite_id, True)

        gallery.filters.only_favorites = True
        gallery.refresh()
        assert gallery.visible_ids == [favorite_id]

        gallery.reset_filters()
        assert len(gallery.visible_ids) == 2

    def test_toggle_favorite(self, app_config):
        gallery = self.make_gallery(app_config)
        record_id = self.store.create(TagMetadata(), IMAGE_URL)

        gallery.toggle_favorite(record_id, current_value=False)

        assert gallery.records[0].is_favorite is True

    def test_edit_record(self, app_config):
        gallery = self.make_gallery(app_config)
        record_id = self.store.create(TagMetadata(), IMAGE_URL)

        gallery.edit_record(record_id, TagMetadata(head_count=6, memo="계단 구도"))

        assert gallery.records[0].head_count == 6
        assert gallery.records[0].memo == "계단 구도"

    def test_navigation_uses_visible_records(self, app_config):
        gallery = self.make_gallery(app_config)
        ids = [self.store.create(TagMetadata(), IMAGE_URL) for _ in range(3)]
        visible = gallery.visible_ids
        assert sorted(visible) == sorted(ids)

        gallery.open_viewer(visible[-1])
        gallery.next()
        assert gallery.current_record.id == visible[0]

        gallery.prev()
        assert gallery.current_record.id == visible[-1]

        gallery.handle_key("Escape")
        assert gallery.current_record is None

    def test_unfavoriting_hidden_record_closes_viewer(self, app_config):
        gallery = self.make_gallery(app_config)
        ids = [self.store.create(TagMetadata(), IMAGE_URL) for _ in range(3)]
        for record_id in ids:
            self.store.set_favorite(record_id, True)
        gallery.set_filters(FilterConfig(only_favorites=True))
        current = gallery.visible_ids[0]
        gallery.open_viewer(current)

        gallery.toggle_favorite(current, True)

        assert current not in gallery.visible_ids
        assert gallery.viewer.is_open is False
        assert gallery.current_record is None

    def test_filter_change_hiding_record_closes_viewer(self, app_config):
        gallery = self.make_gallery(app_config)
        kept = self.store.create(TagMetadata(head_count=4), IMAGE_URL)
        hidden = self.store.create(TagMetadata(head_count=3), IMAGE_URL)
        gallery.open_viewer(hidden)

        gallery.filters.head_count = 4
        gallery.refresh()

        assert gallery.visible_ids == [kept]
        assert gallery.viewer.is_open is False

    def test_filter_change_keeps_visible_record_open(self, app_config):
        gallery = self.make_gallery(app_config)
        record_id = self.store.create(TagMetadata(head_count=4), IMAGE_URL)
        self.store.create(TagMetadata(head_count=3), IMAGE_URL)
        gallery.open_viewer(record_id)

        gallery.set_filters(FilterConfig(head_count=4))

        assert gallery.current_record.id == record_id

    def test_deleting_viewed_record_closes_viewer(self, app_config):
        gallery = self.make_gallery(app_config)
        record_id = self.store.create(TagMetadata(), IMAGE_URL)
        gallery.open_viewer(record_id)

        gallery.delete_record(record_id)

        assert gallery.viewer.is_open is False
        assert gallery.records == []

    def test_failed_delete_keeps_viewer_open(self, app_config):
        gallery = self.make_gallery(app_config)
        record_id = self.store.create(TagMetadata(), IMAGE_URL)
        gallery.open_viewer(record_id)

        with patch.object(self.store, "delete", side_effect=StoreWriteError("denied")):
            with pytest.raises(StoreWriteError):
                gallery.delete_record(record_id)

        assert gallery.viewer.current_id == record_id

    def test_subscription_error_keeps_last_snapshot(self, app_config):
        gallery = self.make_gallery(app_config)
        record_id = self.store.create(TagMetadata(), IMAGE_URL)

        with patch.object(self.store, "list_records", side_effect=StoreSubscriptionError("offline")):
            self.store.create(TagMetadata(), IMAGE_URL)

        assert gallery.stale is True
        assert gallery.last_error is not None
        assert gallery.visible_ids == [record_id]

        self.store.set_favorite(record_id, True)
        assert gallery.stale is False
        assert len(gallery.records) == 2

    def test_close_unsubscribes(self, app_config):
        gallery = self.make_gallery(app_config)
        assert self.store.listener_count == 1

        gallery.close()
        self.gallery = None
        self.store.create(TagMetadata(), IMAGE_URL)

        assert self.store.listener_count == 0
        assert gallery.records == []
