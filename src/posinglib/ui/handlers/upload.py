"""Upload handlers for posinglib application."""

from typing import Any

import streamlit as st

from ...error_handling import AuthenticationError, PosingLibError
from ...logging_config import get_logger
from ...services.image_processor import ImageNormalizer
from ...services.store import get_photo_store
from ...services.upload import BatchWriteResult, UploadSession
from ..components.common import set_flash_message
from .auth import get_app_config, get_identity_provider

logger = get_logger(__name__)


def get_upload_session() -> UploadSession:
    """Pending upload batch of the current browser session."""
    if "upload_session" not in st.session_state:
        config = get_app_config()
        st.session_state.upload_session = UploadSession(
            ImageNormalizer.from_config(config),
            max_batch_size=config.max_batch_size,
            write_workers=config.write_workers,
        )
    return st.session_state.upload_session


def _reset_file_uploader() -> None:
    # A new widget key empties the uploader
    st.session_state.uploader_key = st.session_state.get("uploader_key", 0) + 1


def handle_selected_files(uploaded_files: list[Any]) -> bool:
    """
    Normalize a file selection into the pending batch.

    Args:
        uploaded_files: Files from st.file_uploader

    Returns:
        bool: True if the selection was admitted
    """
    if not uploaded_files:
        return False

    session = get_upload_session()
    files = [(uploaded.name, uploaded.getvalue()) for uploaded in uploaded_files]
    _reset_file_uploader()

    try:
        with st.spinner("이미지 최적화 중..."):
            session.add_files(files)
    except PosingLibError as e:
        set_flash_message("error", e.user_message)
        logger.warning("upload_selection_rejected", code=e.code, file_count=len(files))
        return False

    return True


def handle_confirm_upload() -> BatchWriteResult | None:
    """
    Store every pending image with the shared tags.

    Returns:
        BatchWriteResult, or None when nothing was pending or nobody is signed in
    """
    session = get_upload_session()
    if not session.pending:
        return None

    try:
        identity = get_identity_provider().ensure_authenticated()
    except AuthenticationError as e:
        set_flash_message("error", e.user_message)
        return None

    store = get_photo_store(get_app_config(), identity.user_id)
    with st.spinner("저장 중..."):
        result = session.confirm(store)

    set_flash_message("success" if result.all_succeeded else "error", result.user_message())
    if result.all_succeeded:
        st.session_state.next_page = "gallery"
    return result


def clear_upload_session_state() -> None:
    """Drop the pending batch and empty the uploader."""
    if "upload_session" in st.session_state:
        st.session_state.upload_session.reset()
    _reset_file_uploader()
