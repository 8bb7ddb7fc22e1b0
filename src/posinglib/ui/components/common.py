"""Reusable UI components for posinglib application."""

import streamlit as st

from ... import __version__
from ...logging_config import get_logger
from ..handlers.auth import handle_logout

logger = get_logger(__name__)

PAGES = {"🖼️ 갤러리": "gallery", "📤 업로드": "upload"}


def set_flash_message(level: str, message: str) -> None:
    """Queue a message shown once on the next render ("success", "error", "warning", "info")."""
    st.session_state.flash_message = (level, message)


def render_flash_message() -> None:
    flash = st.session_state.pop("flash_message", None)
    if not flash:
        return
    level, message = flash
    {"success": st.success, "error": st.error, "warning": st.warning}.get(level, st.info)(message)


def render_empty_state(
    title: str,
    description: str,
    icon: str = "📭",
    action_text: str | None = None,
    action_page: str | None = None,
) -> None:
    """
    Render an empty state message with optional action button.

    Args:
        title: Main title for the empty state
        description: Description text
        icon: Emoji icon to display
        action_text: Text for action button (optional)
        action_page: Page to navigate to when action button is clicked (optional)
    """
    col1, col2, col3 = st.columns([1, 2, 1])

    with col2:
        st.markdown(
            f"""
        <div style='text-align: center; padding: 2rem 0;'>
            <div style='font-size: 4rem; margin-bottom: 1rem;'>{icon}</div>
            <h3 style='color: #666; margin-bottom: 1rem;'>{title}</h3>
            <p style='color: #888; margin-bottom: 2rem;'>{description}</p>
        </div>
        """,
            unsafe_allow_html=True,
        )

        if action_text and action_page:
            if st.button(action_text, use_container_width=True, type="primary"):
                st.session_state.next_page = action_page
                st.rerun()


def render_header() -> None:
    st.markdown("# 📸 포즈 레퍼런스 라이브러리")
    st.caption("가족사진 촬영용 구도 레퍼런스 모음")
    st.divider()


def render_sidebar() -> None:
    """Render navigation and the signed-in user."""
    with st.sidebar:
        st.markdown("### 📸 포즈 레퍼런스")
        st.divider()

        current_page = st.session_state.current_page
        for page_name, page_key in PAGES.items():
            if st.button(
                page_name,
                key=f"nav_{page_key}",
                use_container_width=True,
                type="primary" if page_key == current_page else "secondary",
            ):
                logger.info("page_navigation", from_page=current_page, to_page=page_key)
                st.session_state.next_page = page_key
                st.rerun()

        st.divider()

        if st.session_state.get("authenticated"):
            name = st.session_state.get("user_name") or "익명 사용자"
            st.caption(f"👤 {name}")
            st.caption(f"ID: {st.session_state.user_id}")
            st.button("🚪 로그아웃", key="logout", on_click=handle_logout, use_container_width=True)
        elif st.session_state.get("auth_error"):
            st.error(st.session_state.auth_error)


def render_footer() -> None:
    st.divider()
    st.markdown(
        f"""
    <div style='text-align: center; color: #666; font-size: 0.8em;'>
        <strong>posinglib v{__version__}</strong>
    </div>
    """,
        unsafe_allow_html=True,
    )
