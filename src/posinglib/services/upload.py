"""Upload batch handling for posinglib application.

Selected files are normalized concurrently and admitted all-or-nothing into
the pending batch. Confirming the batch writes one record per pending image
with the shared tags; writes run concurrently and every outcome is reported,
so a partially stored batch is visible to the caller.
"""

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace

from ..error_handling import BatchSizeExceeded, PosingLibError
from ..logging_config import get_logger
from ..models.photo import TagMetadata
from .image_processor import ImageNormalizer, NormalizedImage
from .store import PhotoStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class WriteOutcome:
    """Result of persisting one image of a batch."""

    index: int
    success: bool
    record_id: str | None = None
    error: PosingLibError | None = None


@dataclass
class BatchWriteResult:
    """Per-image outcomes of one batch write, in batch order."""

    outcomes: list[WriteOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[WriteOutcome]:
        return [outcome for outcome in self.outcomes if outcome.success]

    @property
    def failed(self) -> list[WriteOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.success]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    @property
    def record_ids(self) -> list[str]:
        return [outcome.record_id for outcome in self.succeeded if outcome.record_id]

    def user_message(self) -> str:
        """Single message summarizing the batch for the user."""
        total = len(self.outcomes)
        if self.all_succeeded:
            return f"{total}장의 레퍼런스를 저장했습니다."
        if not self.succeeded:
            return "이미지 저장에 실패했습니다. (용량 제한 등)"
        return f"{total}장 중 {len(self.succeeded)}장만 저장되었습니다. 일부 이미지 저장에 실패했습니다. (용량 제한 등)"


def persist_batch(
    store: PhotoStore, tags: TagMetadata, image_urls: Sequence[str], workers: int = 4
) -> BatchWriteResult:
    """
    Create one record per image, concurrently, and collect every outcome.

    Already stored records are not rolled back when a sibling fails.

    Args:
        store: Target photo store
        tags: Tags shared by every record
        image_urls: Encoded images, one record each
        workers: Maximum concurrent writes

    Returns:
        BatchWriteResult with one outcome per image
    """
    if not image_urls:
        return BatchWriteResult()

    def write(index: int, image_url: str) -> WriteOutcome:
        try:
            return WriteOutcome(index=index, success=True, record_id=store.create(tags, image_url))
        except PosingLibError as e:
            return WriteOutcome(index=index, success=False, error=e)

    max_workers = max(1, min(workers, len(image_urls)))
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="persist") as executor:
        futures = [executor.submit(write, index, image_url) for index, image_url in enumerate(image_urls)]
        result = BatchWriteResult(outcomes=[future.result() for future in futures])

    logger.info(
        "batch_persisted",
        user_id=store.user_id,
        total=len(result.outcomes),
        succeeded=len(result.succeeded),
        failed=len(result.failed),
    )
    return result


class UploadSession:
    """
    Pending multi-image upload sharing one set of tags.

    Attributes:
        pending: Normalized images waiting for confirmation
        tags: Tags applied to every pending image on confirm
    """

    def __init__(self, normalizer: ImageNormalizer, max_batch_size: int = 10, write_workers: int = 4) -> None:
        self.normalizer = normalizer
        self.max_batch_size = max_batch_size
        self.write_workers = write_workers
        self.pending: list[NormalizedImage] = []
        self.tags = TagMetadata()

    @property
    def remaining_slots(self) -> int:
        return max(0, self.max_batch_size - len(self.pending))

    def add_files(self, files: Sequence[tuple[str, bytes]]) -> list[NormalizedImage]:
        """
        Normalize and admit files into the pending batch.

        Admission is all-or-nothing: if any file fails to decode, none of the
        selection is added.

        Args:
            files: Sequence of (filename, image bytes)

        Returns:
            The newly admitted images

        Raises:
            BatchSizeExceeded: If the selection would exceed the batch cap;
                raised before any file is processed
            ImageDecodeError: If any file cannot be decoded
        """
        if not files:
            return []

        requested = len(self.pending) + len(files)
        if requested > self.max_batch_size:
            raise BatchSizeExceeded(requested=requested, limit=self.max_batch_size)

        normalized = self.normalizer.normalize_batch(files)
        self.pending.extend(normalized)
        logger.info("upload_files_admitted", added=len(normalized), pending=len(self.pending))
        return normalized

    def remove_image(self, index: int) -> None:
        if 0 <= index < len(self.pending):
            del self.pending[index]

    def confirm(self, store: PhotoStore) -> BatchWriteResult:
        """
        Persist every pending image with the shared tags.

        Stored images leave the pending batch; failed ones stay so the user
        can retry them. The session resets to defaults once everything is
        stored.

        Args:
            store: Target photo store

        Returns:
            BatchWriteResult with one outcome per pending image
        """
        if not self.pending:
            return BatchWriteResult()

        tags = replace(self.tags, children=list(self.tags.children))
        result = persist_batch(store, tags, [image.data_url for image in self.pending], workers=self.write_workers)

        failed_indexes = {outcome.index for outcome in result.failed}
        self.pending = [image for index, image in enumerate(self.pending) if index in failed_indexes]

        if result.all_succeeded:
            self.reset()
        return result

    def reset(self) -> None:
        """Drop pending images and restore default tags."""
        self.pending = []
        self.tags = TagMetadata()
