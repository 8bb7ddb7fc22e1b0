"""Image normalization service for posinglib application.

Turns an arbitrary user photo into a JPEG data URI small enough to live inside
a single store record: downscale to the maximum dimension, then lower JPEG
quality step by step, then one last hard downscale.
"""

import base64
import io
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime

from PIL import Image, ImageOps

from ..config import AppConfig
from ..error_handling import ImageDecodeError, ImageProcessingError, ValidationError
from ..logging_config import get_logger, log_error, log_performance

try:
    from pillow_heif import register_heif_opener  # type: ignore[import-untyped]

    register_heif_opener()
    HEIF_AVAILABLE = True
except ImportError:
    HEIF_AVAILABLE = False

logger = get_logger(__name__)


@dataclass(frozen=True)
class NormalizedImage:
    """Result of normalizing one source image."""

    data_url: str
    width: int
    height: int
    quality: int
    used_fallback: bool
    filename: str = ""

    @property
    def encoded_length(self) -> int:
        return len(self.data_url)


class ImageNormalizer:
    """Service fitting images under the store's record payload ceiling."""

    OUTPUT_FORMAT = "JPEG"
    MIME_TYPE = "image/jpeg"

    # Base64 text is ~33% larger than the bytes it encodes
    BASE64_INFLATION = 1.33

    # JPEG quality in percent; 90 -> 80 -> 70 -> 60 -> 50
    INITIAL_QUALITY = 90
    MIN_QUALITY = 50
    QUALITY_STEP = 10

    FALLBACK_SCALE = 0.7
    FALLBACK_QUALITY = 60

    def __init__(
        self,
        max_dimension: int = 1600,
        max_payload_bytes: int = 1_000_000,
        max_file_size: int = 50 * 1024 * 1024,
        workers: int = 4,
    ) -> None:
        """
        Initialize the image normalizer.

        Args:
            max_dimension: Longest allowed side of the output in pixels
            max_payload_bytes: Payload ceiling before base64 inflation
            max_file_size: Largest accepted source file in bytes
            workers: Threads used by normalize_batch
        """
        self.max_dimension = max_dimension
        self.max_payload_bytes = max_payload_bytes
        self.max_file_size = max_file_size
        self.workers = max(1, workers)

        if not HEIF_AVAILABLE:
            logger.debug("heif_support_unavailable", message="Install pillow-heif for HEIC support")

    @classmethod
    def from_config(cls, config: AppConfig) -> "ImageNormalizer":
        return cls(
            max_dimension=config.max_image_dimension,
            max_payload_bytes=config.max_payload_bytes,
            max_file_size=config.max_file_size,
            workers=config.normalizer_workers,
        )

    @property
    def max_encoded_length(self) -> int:
        """Largest accepted data URI length."""
        return int(self.max_payload_bytes * self.BASE64_INFLATION)

    def validate_file_size(self, image_data: bytes, filename: str) -> None:
        """
        Reject source files above the configured size limit.

        Raises:
            ValidationError: If the file is larger than ``max_file_size``
        """
        file_size = len(image_data)
        if file_size > self.max_file_size:
            max_size_mb = self.max_file_size / (1024 * 1024)
            current_size_mb = file_size / (1024 * 1024)
            logger.warning(
                "file_size_too_large",
                filename=filename,
                file_size=file_size,
                max_size=self.max_file_size,
            )
            raise ValidationError(
                f"File '{filename}' is too large ({current_size_mb:.1f}MB). Maximum size: {max_size_mb:.0f}MB",
                code="file_too_large",
                user_message=f"'{filename}' 파일이 너무 큽니다. 최대 크기: {max_size_mb:.0f}MB",
                details={"filename": filename, "file_size": file_size, "max_size": self.max_file_size},
            )

    def decode(self, image_data: bytes, filename: str = "image") -> Image.Image:
        """
        Decode image bytes into an RGB pixel buffer with EXIF orientation applied.

        Raises:
            ImageDecodeError: If the data is empty, corrupt or not an image
        """
        if not image_data:
            raise ImageDecodeError(f"File '{filename}' is empty", filename=filename, details={"file_size": 0})

        try:
            with Image.open(io.BytesIO(image_data)) as source:
                source.load()
                image = ImageOps.exif_transpose(source)
                if image.mode != "RGB":
                    image = image.convert("RGB")
                else:
                    image = image.copy()
                return image
        except Exception as e:
            raise ImageDecodeError(
                f"Cannot decode image '{filename}': {e}",
                filename=filename,
                details={"file_size": len(image_data)},
                original_exception=e,
            ) from e

    def calculate_target_size(self, width: int, height: int) -> tuple[int, int]:
        """
        Scale so the longer side is at most ``max_dimension``, keeping aspect ratio.

        Images already within bounds keep their size; nothing is upscaled.
        The shorter side is rounded half up.
        """
        if width > height:
            if width > self.max_dimension:
                height = int(height * (self.max_dimension / width) + 0.5)
                width = self.max_dimension
        elif height > self.max_dimension:
            width = int(width * (self.max_dimension / height) + 0.5)
            height = self.max_dimension

        return (max(1, width), max(1, height))

    def _encode_data_url(self, image: Image.Image, quality: int) -> str:
        buffer = io.BytesIO()
        image.save(buffer, format=self.OUTPUT_FORMAT, quality=quality, optimize=True)
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:{self.MIME_TYPE};base64,{encoded}"

    def normalize(self, image_data: bytes, filename: str = "image") -> NormalizedImage:
        """
        Encode an image as a size-bounded JPEG data URI.

        Args:
            image_data: Raw image file bytes
            filename: Name used in logs and error messages

        Returns:
            NormalizedImage with the data URI, output size and final quality

        Raises:
            ImageDecodeError: If the file cannot be decoded
            ValidationError: If the file exceeds the size limit
            ImageProcessingError: If encoding fails
        """
        start_time = datetime.now()
        self.validate_file_size(image_data, filename)
        source = self.decode(image_data, filename)

        try:
            original_size = source.size
            width, height = self.calculate_target_size(*original_size)
            resized = source
            if (width, height) != original_size:
                resized = source.resize((width, height), Image.Resampling.LANCZOS)

            quality = self.INITIAL_QUALITY
            data_url = self._encode_data_url(resized, quality)

            while len(data_url) > self.max_encoded_length and quality > self.MIN_QUALITY:
                quality -= self.QUALITY_STEP
                data_url = self._encode_data_url(resized, quality)

            used_fallback = False
            if len(data_url) > self.max_encoded_length:
                # Single retry; the result is accepted even if still over the ceiling
                used_fallback = True
                width = max(1, int(width * self.FALLBACK_SCALE))
                height = max(1, int(height * self.FALLBACK_SCALE))
                quality = self.FALLBACK_QUALITY
                data_url = self._encode_data_url(source.resize((width, height), Image.Resampling.LANCZOS), quality)

                if len(data_url) > self.max_encoded_length:
                    logger.warning(
                        "normalized_image_over_ceiling",
                        filename=filename,
                        encoded_length=len(data_url),
                        max_encoded_length=self.max_encoded_length,
                    )

        except Exception as e:
            log_error(e, {"operation": "normalize_image", "filename": filename, "file_size": len(image_data)})
            raise ImageProcessingError(
                f"Failed to encode image '{filename}': {e}",
                code="image_encode_failed",
                details={"filename": filename, "operation": "normalize_image"},
                original_exception=e,
            ) from e

        duration = (datetime.now() - start_time).total_seconds()
        log_performance(
            "normalize_image",
            duration,
            filename=filename,
            original_size=original_size,
            output_size=(width, height),
            original_file_size=len(image_data),
            encoded_length=len(data_url),
            quality=quality,
            used_fallback=used_fallback,
        )

        return NormalizedImage(
            data_url=data_url,
            width=width,
            height=height,
            quality=quality,
            used_fallback=used_fallback,
            filename=filename,
        )

    def normalize_to_data_url(self, image_data: bytes, filename: str = "image") -> str:
        """Normalize an image and return only the encoded string."""
        return self.normalize(image_data, filename).data_url

    def normalize_batch(self, files: Sequence[tuple[str, bytes]]) -> list[NormalizedImage]:
        """
        Normalize several files concurrently, failing fast.

        Results keep the input order. The first failure cancels the files not
        yet started and is re-raised, so callers never see a partial batch.

        Args:
            files: Sequence of (filename, image bytes)

        Returns:
            List of NormalizedImage, one per input file

        Raises:
            ImageDecodeError: If any file cannot be decoded
        """
        if not files:
            return []

        results: list[NormalizedImage | None] = [None] * len(files)
        executor = ThreadPoolExecutor(max_workers=min(self.workers, len(files)), thread_name_prefix="normalize")
        try:
            futures = {
                executor.submit(self.normalize, image_data, filename): index
                for index, (filename, image_data) in enumerate(files)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown()

        logger.info("image_batch_normalized", file_count=len(files))
        return [result for result in results if result is not None]


def normalize_image(image_data: bytes, filename: str = "image") -> str:
    """Normalize one image with default limits and return its data URI."""
    return ImageNormalizer().normalize_to_data_url(image_data, filename)


def decode_data_url(data_url: str) -> bytes:
    """
    Raw bytes of a base64 data URI, for display.

    Raises:
        ImageDecodeError: If the value is not a base64 data URI
    """
    header, _, payload = data_url.partition(",")
    if not header.startswith("data:") or not header.endswith(";base64") or not payload:
        raise ImageDecodeError("Stored image is not a base64 data URI", details={"header": header[:40]})
    try:
        return base64.b64decode(payload, validate=True)
    except ValueError as e:
        raise ImageDecodeError(f"Stored image is not valid base64: {e}", original_exception=e) from e
