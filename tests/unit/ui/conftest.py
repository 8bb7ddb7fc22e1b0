"""Configuration for UI unit tests."""

from unittest.mock import MagicMock, patch

import pytest

from posinglib.services.store import cleanup_photo_stores


class SessionState(dict):
    """Dict with attribute access, standing in for st.session_state."""

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError as e:
            raise AttributeError(key) from e

    def __setattr__(self, key, value):
        self[key] = value


@pytest.fixture
def session_state():
    """Patch streamlit's session state and spinner for handler tests."""
    state = SessionState()
    with patch("streamlit.session_state", state), patch("streamlit.spinner", MagicMock()):
        yield state


@pytest.fixture(autouse=True)
def close_photo_stores():
    """Drop cached stores so every test opens its own database."""
    yield
    cleanup_photo_stores()
