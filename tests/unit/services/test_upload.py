"""
Unit tests for upload batch handling.
"""

import threading
from unittest.mock import MagicMock

import pytest

from posinglib.error_handling import BatchSizeExceeded, ImageDecodeError, StorageError, StoreWriteError
from posinglib.models.photo import CountedChildTag, TagMetadata
from posinglib.services.image_processor import ImageNormalizer, NormalizedImage
from posinglib.services.upload import BatchWriteResult, UploadSession, WriteOutcome, persist_batch


def normalized(name: str) -> NormalizedImage:
    return NormalizedImage(
        data_url=f"data:image/jpeg;base64,{name}",
        width=10,
        height=10,
        quality=90,
        used_fallback=False,
        filename=name,
    )


def mock_store(fail_urls=()):
    """Store whose create fails for the given image URLs."""
    store = MagicMock()
    store.user_id = "test-user-123"
    lock = threading.Lock()
    counter = {"next": 0}

    def create(tags, image_url):
        if image_url in fail_urls:
            raise StoreWriteError("too large", code="record_too_large")
        with lock:
            counter["next"] += 1
            return f"id-{counter['next']}"

    store.create.side_effect = create
    return store


class TestUploadSessionAdmission:
    """Test cases for adding files to the pending batch."""

    def setup_method(self):
        self.normalizer = MagicMock(spec=ImageNormalizer)
        self.normalizer.normalize_batch.side_effect = lambda files: [normalized(name) for name, _ in files]
        self.session = UploadSession(self.normalizer, max_batch_size=10)

    def test_add_files(self):
        added = self.session.add_files([("a.jpg", b"a"), ("b.jpg", b"b")])

        assert [image.filename for image in added] == ["a.jpg", "b.jpg"]
        assert [image.filename for image in self.session.pending] == ["a.jpg", "b.jpg"]
        assert self.session.remaining_slots == 8

    def test_selections_accumulate_up_to_limit(self):
        self.session.add_files([(f"{i}.jpg", b"x") for i in range(6)])
        self.session.add_files([(f"{i}.jpg", b"x") for i in range(6, 10)])

        assert len(self.session.pending) == 10
        assert self.session.remaining_slots == 0

    def test_exceeding_limit_rejected_before_processing(self):
        self.session.add_files([(f"{i}.jpg", b"x") for i in range(8)])
        self.normalizer.normalize_batch.reset_mock()

        with pytest.raises(BatchSizeExceeded) as exc_info:
            self.session.add_files([(f"new{i}.jpg", b"x") for i in range(3)])

        assert exc_info.value.requested == 11
        assert exc_info.value.limit == 10
        assert exc_info.value.code == "batch_size_exceeded"
        self.normalizer.normalize_batch.assert_not_called()
        assert len(self.session.pending) == 8

    def test_eleven_files_at_once_rejected(self):
        with pytest.raises(BatchSizeExceeded):
            self.session.add_files([(f"{i}.jpg", b"x") for i in range(11)])

        assert self.session.pending == []

    def test_empty_selection(self):
        assert self.session.add_files([]) == []
        self.normalizer.normalize_batch.assert_not_called()

    def test_remove_image(self):
        self.session.add_files([("a.jpg", b"a"), ("b.jpg", b"b"), ("c.jpg", b"c")])

        self.session.remove_image(1)
        self.session.remove_image(10)

        assert [image.filename for image in self.session.pending] == ["a.jpg", "c.jpg"]

    def test_reset_restores_defaults(self):
        self.session.add_files([("a.jpg", b"a")])
        self.session.tags.head_count = 7
        self.session.tags.toggle_child("kid")

        self.session.reset()

        assert self.session.pending == []
        assert self.session.tags == TagMetadata()


class TestUploadSessionFailFast:
    """A corrupt file keeps the whole selection out of the pending batch."""

    def test_corrupt_file_rejects_selection(self, image_factory):
        session = UploadSession(ImageNormalizer(workers=4), max_batch_size=10)
        session.add_files([("first.jpg", image_factory(size=(40, 30)))])

        selection = [
            ("a.jpg", image_factory(size=(50, 40))),
            ("b.jpg", image_factory(size=(60, 40))),
            ("c.jpg", image_factory(size=(70, 40))),
            ("broken.jpg", b"not an image at all"),
        ]
        with pytest.raises(ImageDecodeError):
            session.add_files(selection)

        assert [image.filename for image in session.pending] == ["first.jpg"]


class TestUploadSessionConfirm:
    """Test cases for persisting the pending batch."""

    def setup_method(self):
        self.normalizer = MagicMock(spec=ImageNormalizer)
        self.normalizer.normalize_batch.side_effect = lambda files: [normalized(name) for name, _ in files]
        self.session = UploadSession(self.normalizer, max_batch_size=10, write_workers=3)

    def test_all_succeed_resets_session(self):
        self.session.add_files([("a", b"a"), ("b", b"b"), ("c", b"c")])
        self.session.tags = TagMetadata(head_count=5, children=[CountedChildTag("kid", 2)])
        store = mock_store()

        result = self.session.confirm(store)

        assert result.all_succeeded is True
        assert len(result.succeeded) == 3
        assert sorted(result.record_ids) == ["id-1", "id-2", "id-3"]
        assert self.session.pending == []
        assert self.session.tags == TagMetadata()

        for call in store.create.call_args_list:
            tags, image_url = call.args
            assert tags.head_count == 5
            assert tags.children == [CountedChildTag("kid", 2)]

    def test_partial_failure_keeps_failed_images(self):
        self.session.add_files([("a", b"a"), ("b", b"b"), ("c", b"c")])
        self.session.tags.memo = "keep me"
        store = mock_store(fail_urls={"data:image/jpeg;base64,b"})

        result = self.session.confirm(store)

        assert result.all_succeeded is False
        assert len(result.succeeded) == 2
        assert [outcome.index for outcome in result.failed] == [1]
        assert result.failed[0].error.code == "record_too_large"
        assert [image.filename for image in self.session.pending] == ["b"]
        assert self.session.tags.memo == "keep me"
        assert "3장 중 2장만 저장되었습니다" in result.user_message()

    def test_confirm_with_nothing_pending(self):
        store = mock_store()

        result = self.session.confirm(store)

        assert result.outcomes == []
        store.create.assert_not_called()


class TestPersistBatch:
    """Test cases for join-all batch writes."""

    def test_outcomes_in_batch_order(self):
        store = mock_store(fail_urls={"url-0"})

        result = persist_batch(store, TagMetadata(), ["url-0", "url-1", "url-2"], workers=2)

        assert [outcome.index for outcome in result.outcomes] == [0, 1, 2]
        assert [outcome.success for outcome in result.outcomes] == [False, True, True]
        assert store.create.call_count == 3

    def test_all_failed_message(self):
        store = mock_store(fail_urls={"url-0", "url-1"})

        result = persist_batch(store, TagMetadata(), ["url-0", "url-1"])

        assert result.succeeded == []
        assert result.user_message() == "이미지 저장에 실패했습니다. (용량 제한 등)"

    def test_any_domain_error_becomes_failed_outcome(self):
        store = mock_store()
        store.create.side_effect = [
            "id-1",
            StorageError("backup restore failed"),
        ]

        result = persist_batch(store, TagMetadata(), ["url-0", "url-1"], workers=1)

        assert [outcome.success for outcome in result.outcomes] == [True, False]
        assert isinstance(result.failed[0].error, StorageError)

    def test_empty_batch(self):
        assert persist_batch(mock_store(), TagMetadata(), []) == BatchWriteResult()


class TestBatchWriteResult:
    """Test cases for BatchWriteResult."""

    def test_success_message(self):
        result = BatchWriteResult(
            outcomes=[
                WriteOutcome(index=0, success=True, record_id="a"),
                WriteOutcome(index=1, success=True, record_id="b"),
            ]
        )

        assert result.all_succeeded is True
        assert result.record_ids == ["a", "b"]
        assert result.user_message() == "2장의 레퍼런스를 저장했습니다."
