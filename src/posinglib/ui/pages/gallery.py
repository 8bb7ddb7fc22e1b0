"""Gallery page for posinglib application."""

import streamlit as st

from ...logging_config import get_logger
from ..components.common import render_empty_state
from ..components.filters import render_filter_panel
from ..components.gallery import render_photo_grid, render_viewer_dialog
from ..handlers.auth import require_authentication
from ..handlers.gallery import get_live_gallery

logger = get_logger(__name__)


def render_gallery_page() -> None:
    """Render the filtered reference grid and the viewer."""
    if not require_authentication():
        return

    gallery = get_live_gallery()
    if gallery is None:
        return

    render_filter_panel(gallery)

    if gallery.stale and gallery.last_error is not None:
        st.warning(gallery.last_error.user_message)

    records = gallery.visible_records
    st.markdown(f"### 🖼️ 레퍼런스 {len(records)}장")

    if not gallery.records:
        render_empty_state(
            title="아직 레퍼런스가 없습니다",
            description="촬영 구도 레퍼런스 사진을 업로드해 보세요.",
            icon="📷",
            action_text="사진 업로드",
            action_page="upload",
        )
        return

    if not records:
        st.info("조건에 맞는 사진이 없습니다. 필터를 조정해 보세요.")
        return

    render_photo_grid(gallery, records)

    if gallery.viewer.is_open:
        render_viewer_dialog(gallery)
