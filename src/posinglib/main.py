"""
Main Streamlit application for posinglib.

This is the entry point for the posing reference gallery.
"""

import streamlit as st

from posinglib.config import get_config
from posinglib.logging_config import bind_session_context, configure_structured_logging, get_logger
from posinglib.ui.components.common import render_flash_message, render_footer, render_header, render_sidebar
from posinglib.ui.components.error_display import error_context
from posinglib.ui.handlers.auth import authenticate_user, get_app_config
from posinglib.ui.handlers.upload import clear_upload_session_state
from posinglib.ui.pages.gallery import render_gallery_page
from posinglib.ui.pages.upload import render_upload_page

configure_structured_logging()
logger = get_logger(__name__)


def initialize_session_state() -> None:
    """Initialize session state variables."""
    if "authenticated" not in st.session_state:
        st.session_state.authenticated = False

    if "user_id" not in st.session_state:
        st.session_state.user_id = None

    if "auth_error" not in st.session_state:
        st.session_state.auth_error = None

    if "current_page" not in st.session_state:
        st.session_state.current_page = "gallery"


def handle_page_navigation() -> None:
    """Apply a navigation requested on the previous run."""
    next_page = st.session_state.pop("next_page", None)
    if not next_page:
        return

    previous_page = st.session_state.current_page
    st.session_state.current_page = next_page
    logger.info("page_navigated", from_page=previous_page, to_page=next_page)

    if previous_page == "upload" and next_page != "upload":
        upload_session = st.session_state.get("upload_session")
        if upload_session is not None and upload_session.pending:
            # Leaving the page drops the unsaved selection
            clear_upload_session_state()


def render_main_content() -> None:
    """Render the main content area based on current page."""
    current_page = st.session_state.current_page

    with error_context({"operation": "render_page", "page": current_page}):
        if current_page == "upload":
            render_upload_page()
        else:
            render_gallery_page()


def main() -> None:
    """Main application entry point."""
    st.set_page_config(
        page_title="포즈 레퍼런스 라이브러리",
        page_icon="📸",
        layout="wide",
        initial_sidebar_state="expanded",
    )

    initialize_session_state()
    handle_page_navigation()

    with error_context({"operation": "authenticate"}):
        authenticate_user()
    bind_session_context(st.session_state.user_id, get_app_config().app_id)

    render_header()
    render_sidebar()
    render_flash_message()

    with st.container():
        render_main_content()

    render_footer()

    if get_config().get("DEBUG", False, bool):
        with st.expander("Debug Info"):
            st.write(
                {
                    "user_id": st.session_state.user_id,
                    "current_page": st.session_state.current_page,
                    "authenticated": st.session_state.authenticated,
                }
            )


if __name__ == "__main__":
    main()
