"""Gallery handlers for posinglib application."""

import streamlit as st

from ...error_handling import PosingLibError
from ...logging_config import get_logger
from ...models.photo import PhotoRecord, TagMetadata
from ...services.gallery import LiveGallery
from ...services.store import get_photo_store
from ..components.common import set_flash_message
from .auth import get_app_config

logger = get_logger(__name__)


def get_live_gallery() -> LiveGallery | None:
    """
    Live gallery of the signed-in user, created on first use in the session.

    Returns:
        LiveGallery, or None when nobody is signed in
    """
    user_id = st.session_state.get("user_id")
    if not user_id:
        return None

    gallery: LiveGallery | None = st.session_state.get("live_gallery")
    if gallery is not None and gallery.store.user_id == user_id:
        return gallery

    if gallery is not None:
        gallery.close()

    store = get_photo_store(get_app_config(), user_id)
    gallery = LiveGallery(store)
    st.session_state.live_gallery = gallery
    logger.info("live_gallery_created", user_id=user_id, records=len(gallery.records))
    return gallery


def toggle_favorite(gallery: LiveGallery, record: PhotoRecord) -> None:
    try:
        gallery.toggle_favorite(record.id, record.is_favorite)
    except PosingLibError as e:
        set_flash_message("error", e.user_message)


def delete_record(gallery: LiveGallery, record_id: str) -> bool:
    """Delete a record; failures become a flash message."""
    try:
        gallery.delete_record(record_id)
    except PosingLibError as e:
        set_flash_message("error", e.user_message)
        return False
    st.session_state.pop("confirm_delete_id", None)
    set_flash_message("success", "삭제했습니다.")
    return True


def save_record_tags(gallery: LiveGallery, record_id: str, tags: TagMetadata) -> bool:
    """Save an edit form; failures become a flash message."""
    try:
        gallery.edit_record(record_id, tags)
    except PosingLibError as e:
        set_flash_message("error", e.user_message)
        return False
    st.session_state.pop("editing_record_id", None)
    st.session_state.pop("edit_tags", None)
    set_flash_message("success", "태그를 수정했습니다.")
    return True


def dismiss_viewer() -> None:
    """Close the viewer from its close button, Esc, the dialog X or an outside click."""
    st.session_state.pop("editing_record_id", None)
    st.session_state.pop("edit_tags", None)
    st.session_state.pop("confirm_delete_id", None)

    gallery: LiveGallery | None = st.session_state.get("live_gallery")
    if gallery is not None:
        gallery.handle_key("Escape")
