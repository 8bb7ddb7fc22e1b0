"""
Pytest configuration and fixtures for posinglib tests.
"""

import base64
import io
import json
import os
import tempfile
import time
from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from PIL import Image

from posinglib.config import AppConfig
from posinglib.models.photo import CountedChildTag, LegacyChildTag, PhotoRecord


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up test environment variables."""
    monkeypatch.setenv("TESTING", "true")
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.delenv("GCS_DATABASE_BUCKET", raising=False)
    monkeypatch.delenv("INITIAL_AUTH_TOKEN", raising=False)


@pytest.fixture
def app_config(temp_dir: Path) -> AppConfig:
    """Settings pointing the store at a temporary directory."""
    return AppConfig(app_id="test-app", data_dir=temp_dir, environment="test")


def create_test_image(size=(100, 100), color="red", format_type="JPEG", mode="RGB") -> bytes:
    """Create a solid-color test image in memory."""
    image = Image.new(mode, size, color=color)
    buffer = io.BytesIO()
    image.save(buffer, format=format_type)
    return buffer.getvalue()


def create_noise_image(size=(400, 300), format_type="PNG") -> bytes:
    """Create an image of random pixels, which JPEG cannot compress well."""
    image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    buffer = io.BytesIO()
    image.save(buffer, format=format_type)
    return buffer.getvalue()


class TestDataFactory:
    """Factory class for creating test data objects."""

    @staticmethod
    def create_record(
        record_id: str = "rec-1",
        user_id: str = "test-user-123",
        head_count: int = 3,
        grandparents: str = "none",
        parents: str = "both",
        children: tuple = (),
        pet_count: int = 0,
        memo: str = "",
        is_favorite: bool = False,
        created_at: datetime | None = None,
    ) -> PhotoRecord:
        """Create a PhotoRecord with sensible defaults."""
        return PhotoRecord(
            id=record_id,
            user_id=user_id,
            image_url="data:image/jpeg;base64,AAAA",
            head_count=head_count,
            grandparents=grandparents,
            parents=parents,
            children=tuple(children),
            children_tags=[child.age_group for child in children],
            pet_count=pet_count,
            memo=memo,
            is_favorite=is_favorite,
            created_at=created_at or datetime(2024, 5, 1, tzinfo=UTC),
        )

    @staticmethod
    def counted(age_group: str, count: int = 1) -> CountedChildTag:
        return CountedChildTag(age_group=age_group, count=count)

    @staticmethod
    def legacy(age_group: str) -> LegacyChildTag:
        return LegacyChildTag(age_group=age_group)

    @staticmethod
    def create_jwt_token(payload: dict | None = None) -> str:
        """Create an unsigned JWT carrying ``payload``.

        Args:
            payload: JWT payload dictionary. If None, creates a default payload.

        Returns:
            JWT token string
        """
        if payload is None:
            current_time = int(time.time())
            payload = {
                "sub": "test-user-123",
                "email": "test@example.com",
                "name": "Test User",
                "iat": current_time,
                "exp": current_time + int(timedelta(hours=1).total_seconds()),
            }

        header = {"alg": "RS256", "typ": "JWT"}
        header_b64 = base64.urlsafe_b64encode(json.dumps(header).encode()).decode().rstrip("=")
        payload_b64 = base64.urlsafe_b64encode(json.dumps(payload).encode()).decode().rstrip("=")
        signature_b64 = base64.urlsafe_b64encode(b"test_signature").decode().rstrip("=")

        return f"{header_b64}.{payload_b64}.{signature_b64}"


@pytest.fixture
def test_data_factory() -> TestDataFactory:
    """Provide TestDataFactory instance for tests."""
    return TestDataFactory()


@pytest.fixture
def image_factory():
    """Provide the solid-color image builder."""
    return create_test_image


@pytest.fixture
def noise_image_factory():
    """Provide the random-pixel image builder."""
    return create_noise_image
