"""Upload page for posinglib application."""

import streamlit as st

from ...logging_config import get_logger
from ...services.image_processor import decode_data_url
from ..components.tag_form import render_tag_form
from ..handlers.auth import get_app_config, require_authentication
from ..handlers.upload import (
    clear_upload_session_state,
    get_upload_session,
    handle_confirm_upload,
    handle_selected_files,
)

logger = get_logger(__name__)

ACCEPTED_TYPES = ["jpg", "jpeg", "png", "webp", "heic", "heif"]


def _render_pending_images() -> None:
    session = get_upload_session()
    st.markdown(f"#### 선택한 사진 ({len(session.pending)}/{session.max_batch_size})")

    cols = st.columns(5)
    for index, image in enumerate(session.pending):
        with cols[index % 5]:
            st.image(decode_data_url(image.data_url), use_container_width=True)
            st.caption(f"{image.filename} · {image.width}×{image.height}")
            st.button("제거", key=f"remove_pending_{index}_{id(image)}", on_click=session.remove_image, args=(index,))


def render_upload_page() -> None:
    """Select up to the batch cap of images, tag them once, and save."""
    if not require_authentication():
        return

    config = get_app_config()
    session = get_upload_session()

    st.markdown("### 📤 레퍼런스 업로드")
    st.caption(f"한 번에 최대 {config.max_batch_size}장까지 올릴 수 있습니다. 모든 사진에 같은 태그가 저장됩니다.")

    uploaded_files = st.file_uploader(
        "사진을 끌어다 놓거나 클릭해서 선택하세요",
        type=ACCEPTED_TYPES,
        accept_multiple_files=True,
        disabled=session.remaining_slots == 0,
        key=f"photo_uploader_{st.session_state.get('uploader_key', 0)}",
    )
    if uploaded_files:
        handle_selected_files(uploaded_files)
        st.rerun()

    if not session.pending:
        st.info("업로드할 사진을 선택해 주세요.")
        return

    _render_pending_images()

    st.divider()
    st.markdown("#### 태그")
    render_tag_form(session.tags, key_prefix="upload")

    col1, col2 = st.columns([3, 1])
    with col1:
        if st.button(f"💾 {len(session.pending)}장 저장", type="primary", use_container_width=True):
            handle_confirm_upload()
            st.rerun()
    with col2:
        if st.button("전체 취소", use_container_width=True):
            clear_upload_session_state()
            st.rerun()
