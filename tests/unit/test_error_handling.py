"""
Unit tests for error classification.
"""

import pytest

from posinglib.error_handling import (
    AuthenticationError,
    BatchSizeExceeded,
    ErrorCategory,
    ErrorHandler,
    ErrorSeverity,
    ImageDecodeError,
    ImageProcessingError,
    PosingLibError,
    StorageError,
    StoreSubscriptionError,
    StoreWriteError,
    ValidationError,
    get_error_handler,
    handle_error,
)


class TestErrorTaxonomy:
    """Test cases for the exception classes."""

    def test_batch_size_exceeded(self):
        error = BatchSizeExceeded(requested=12, limit=10)

        assert isinstance(error, ValidationError)
        assert error.category is ErrorCategory.VALIDATION
        assert error.details == {"requested": 12, "limit": 10}
        assert "10" in error.user_message

    def test_image_decode_error_names_file(self):
        error = ImageDecodeError("cannot identify image file", filename="broken.jpg")

        assert isinstance(error, ImageProcessingError)
        assert error.code == "image_decode_failed"
        assert error.filename == "broken.jpg"
        assert "broken.jpg" in error.user_message

    def test_store_write_error_defaults(self):
        error = StoreWriteError("insert failed")

        assert error.code == "store_write_failed"
        assert error.category is ErrorCategory.STORE
        assert error.severity is ErrorSeverity.HIGH
        assert "용량 제한" in error.user_message

    def test_store_subscription_error_is_retryable(self):
        error = StoreSubscriptionError("offline")

        assert error.code == "store_subscription_failed"
        assert error.retry_suggested is True

    def test_default_codes(self):
        assert PosingLibError("boom").code == "unknown_error"
        assert StorageError("gcs down").code == "storage_error"
        assert StorageError("gcs down", code="backup_upload_failed").code == "backup_upload_failed"

    def test_error_info_round_trip(self):
        error = AuthenticationError("bad token", code="invalid_token", details={"operation": "sign_in"})

        info = error.get_error_info().to_dict()

        assert info["category"] == "authentication"
        assert info["code"] == "invalid_token"
        assert info["message"] == "bad token"
        assert info["details"] == {"operation": "sign_in"}


class TestErrorHandler:
    """Test cases for ErrorHandler."""

    def setup_method(self):
        self.handler = ErrorHandler()

    def test_known_error_passes_through(self):
        error = StoreWriteError("too large", code="record_too_large")

        info = self.handler.handle_error(error)

        assert info.code == "record_too_large"
        assert self.handler.get_error_statistics() == {"record_too_large": 1}

    @pytest.mark.parametrize(
        "message,category",
        [
            ("token expired", ErrorCategory.AUTHENTICATION),
            ("cannot identify image file", ErrorCategory.IMAGE_PROCESSING),
            ("duckdb catalog error", ErrorCategory.STORE),
            ("bucket not reachable", ErrorCategory.STORAGE),
            ("invalid head count", ErrorCategory.VALIDATION),
            ("something odd", ErrorCategory.UNKNOWN),
        ],
    )
    def test_classifies_plain_exceptions(self, message, category):
        info = self.handler.handle_error(RuntimeError(message), {"operation": "test"})

        assert info.category is category
        assert info.details["original_type"] == "RuntimeError"
        assert info.details["operation"] == "test"

    def test_statistics_accumulate_and_reset(self):
        for _ in range(3):
            self.handler.handle_error(StorageError("gcs down"))

        assert self.handler.get_error_statistics() == {"storage_error": 3}

        self.handler.reset_statistics()
        assert self.handler.get_error_statistics() == {}

    def test_global_handler(self):
        assert get_error_handler() is get_error_handler()
        assert handle_error(ValueError("invalid value")).category is ErrorCategory.VALIDATION
