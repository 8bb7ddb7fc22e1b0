"""
Error taxonomy for posinglib application.

Every failure the app reports is a ``PosingLibError`` subclass. Each class
fixes its category, severity, default code and the Korean message shown to
staff; raising sites only add the technical message, a specific code and
details. Errors log themselves when constructed, so call sites that turn an
error into a flash message do not log it again.

Foreign exceptions that reach the UI are classified by ``ErrorHandler``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from .logging_config import get_logger, log_error, log_security_event

logger = get_logger(__name__)


class ErrorCategory(Enum):
    AUTHENTICATION = "authentication"
    IMAGE_PROCESSING = "image_processing"
    VALIDATION = "validation"
    STORE = "store"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorInfo:
    """Snapshot of an error for display and statistics."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    recoverable: bool = True
    retry_suggested: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
        }


class PosingLibError(Exception):
    """
    Base exception class for posinglib application.

    Subclasses override the class attributes below instead of the constructor.

    Args:
        message: Technical message for logs
        code: Specific error code, defaults to the class's ``default_code``
        user_message: Message shown in the UI, defaults to the class's message
        details: Extra context, logged and shown in the details expander
        original_exception: Exception this error wraps
    """

    category = ErrorCategory.UNKNOWN
    severity = ErrorSeverity.MEDIUM
    default_code = "unknown_error"
    default_user_message = "예기치 않은 오류가 발생했습니다."
    recoverable = True
    retry_suggested = False

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.code = code or self.default_code
        self.user_message = user_message or self.default_user_message
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            **self.details,
        }
        if self.original_exception is not None:
            error_context["original_exception"] = repr(self.original_exception)

        log_error(self, error_context)
        if self.category is ErrorCategory.AUTHENTICATION:
            log_security_event(self.code, context=error_context)

    def get_error_info(self) -> ErrorInfo:
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
            retry_suggested=self.retry_suggested,
        )


class AuthenticationError(PosingLibError):
    """Sign-in failed or nobody is signed in."""

    category = ErrorCategory.AUTHENTICATION
    severity = ErrorSeverity.HIGH
    default_code = "auth_failed"
    default_user_message = "로그인에 실패했습니다. 다시 시도해 주세요."
    retry_suggested = True


class ValidationError(PosingLibError):
    category = ErrorCategory.VALIDATION
    severity = ErrorSeverity.LOW
    default_code = "validation_failed"
    default_user_message = "입력값에 문제가 있습니다. 내용을 확인해 주세요."


class BatchSizeExceeded(ValidationError):
    """Selection would push the pending upload batch over its image cap."""

    default_code = "batch_size_exceeded"

    def __init__(self, requested: int, limit: int):
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Upload batch would hold {requested} images, limit is {limit}",
            user_message=f"한 번에 최대 {limit}장까지만 업로드할 수 있습니다.",
            details={"requested": requested, "limit": limit},
        )


class ImageProcessingError(PosingLibError):
    category = ErrorCategory.IMAGE_PROCESSING
    default_code = "image_processing_failed"
    default_user_message = "이미지 처리 중 오류가 발생했습니다."


class ImageDecodeError(ImageProcessingError):
    """Source file is empty, corrupt or not an image."""

    default_code = "image_decode_failed"

    def __init__(
        self,
        message: str,
        filename: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        self.filename = filename
        label = f"'{filename}' " if filename else ""
        super().__init__(
            message,
            user_message=f"이미지 {label}파일을 읽을 수 없습니다. 손상되었거나 이미지가 아닌 파일입니다.",
            details={"filename": filename, **(details or {})},
            original_exception=original_exception,
        )


class StoreWriteError(PosingLibError):
    """Create, update or delete rejected by the photo store."""

    category = ErrorCategory.STORE
    severity = ErrorSeverity.HIGH
    default_code = "store_write_failed"
    default_user_message = "저장 중 오류가 발생했습니다. (용량 제한 등)"


class StoreSubscriptionError(PosingLibError):
    """Snapshot query failed; subscribers keep their last snapshot."""

    category = ErrorCategory.STORE
    default_code = "store_subscription_failed"
    default_user_message = "사진 목록을 새로 불러오지 못했습니다. 마지막으로 불러온 목록을 표시합니다."
    retry_suggested = True


class StorageError(PosingLibError):
    """Cloud Storage backup failed."""

    category = ErrorCategory.STORAGE
    default_code = "storage_error"
    default_user_message = "백업 저장소 오류가 발생했습니다."
    retry_suggested = True


# Checked in order; the first rule with a keyword in the message wins
CLASSIFICATION_RULES: list[tuple[tuple[str, ...], type[PosingLibError]]] = [
    (("authentication", "auth", "token", "unauthorized"), AuthenticationError),
    (("image", "pillow", "jpeg", "decode", "cannot identify"), ImageProcessingError),
    (("database", "duckdb", "sql", "record", "permission"), StoreWriteError),
    (("storage", "gcs", "bucket", "cloud"), StorageError),
    (("validation", "invalid", "required", "missing"), ValidationError),
]


class ErrorHandler:
    """Classifies exceptions reaching the UI and counts them by code."""

    def __init__(self) -> None:
        self.error_counts: dict[str, int] = {}

    def handle_error(self, error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
        """
        Turn any exception into ErrorInfo.

        Args:
            error: Exception to handle
            context: Where it happened, e.g. ``{"operation": "render_page"}``

        Returns:
            ErrorInfo: Structured error information
        """
        if not isinstance(error, PosingLibError):
            error = self._classify_error(error, context or {})

        error_info = error.get_error_info()
        self._track_error(error_info.code)
        return error_info

    def _classify_error(self, error: Exception, context: dict[str, Any]) -> PosingLibError:
        message = str(error)
        lowered = message.lower()
        details = {"original_type": type(error).__name__, **context}

        for keywords, error_class in CLASSIFICATION_RULES:
            if any(keyword in lowered for keyword in keywords):
                return error_class(message, details=details, original_exception=error)
        return PosingLibError(message, details=details, original_exception=error)

    def _track_error(self, error_code: str) -> None:
        count = self.error_counts.get(error_code, 0) + 1
        self.error_counts[error_code] = count
        if count % 10 == 0:
            logger.warning("frequent_error_detected", error_code=error_code, count=count)

    def get_error_statistics(self) -> dict[str, int]:
        return dict(self.error_counts)

    def reset_statistics(self) -> None:
        self.error_counts.clear()


error_handler = ErrorHandler()


def handle_error(error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
    """Classify an exception with the shared handler."""
    return error_handler.handle_error(error, context)


def get_error_handler() -> ErrorHandler:
    return error_handler
