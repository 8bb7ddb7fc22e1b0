"""Authentication handlers for posinglib application."""

import streamlit as st

from ...config import AppConfig
from ...error_handling import AuthenticationError
from ...logging_config import clear_session_context, get_logger
from ...services.auth import IdentityProvider

logger = get_logger(__name__)


@st.cache_resource
def get_app_config() -> AppConfig:
    """Settings built once per server process."""
    return AppConfig.from_env()


def get_identity_provider() -> IdentityProvider:
    """Identity provider of the current browser session."""
    if "identity_provider" not in st.session_state:
        st.session_state.identity_provider = IdentityProvider(get_app_config())
    return st.session_state.identity_provider


def authenticate_user() -> bool:
    """
    Sign the session in with the host token, or anonymously.

    Returns:
        bool: True if a user is signed in
    """
    provider = get_identity_provider()
    if provider.is_authenticated():
        return True

    try:
        identity = provider.sign_in()
    except AuthenticationError as e:
        st.session_state.authenticated = False
        st.session_state.user_id = None
        st.session_state.auth_error = e.user_message
        logger.warning("authentication_failed", code=e.code)
        return False

    st.session_state.authenticated = True
    st.session_state.user_id = identity.user_id
    st.session_state.user_name = identity.name
    st.session_state.auth_error = None
    logger.info("authentication_success", user_id=identity.user_id, anonymous=identity.is_anonymous)
    return True


def require_authentication() -> bool:
    """
    Require a signed-in user for the current page.

    Returns:
        bool: True if authenticated, False otherwise (error already shown)
    """
    if st.session_state.get("authenticated"):
        return True

    st.error(st.session_state.get("auth_error") or "로그인에 실패했습니다. 다시 시도해 주세요.")
    if st.button("🔄 다시 시도", type="primary"):
        st.rerun()
    return False


def handle_logout() -> None:
    """
    Sign the session out and drop its per-user state.

    The next run signs in again, with the host token when there is one and
    otherwise as a new anonymous user.
    """
    provider = get_identity_provider()
    user_id = st.session_state.get("user_id")
    provider.sign_out()

    gallery = st.session_state.pop("live_gallery", None)
    if gallery is not None:
        gallery.close()
    for key in ("upload_session", "editing_record_id", "edit_tags", "confirm_delete_id"):
        st.session_state.pop(key, None)

    st.session_state.authenticated = False
    st.session_state.user_id = None
    st.session_state.user_name = None
    st.session_state.auth_error = None
    st.session_state.current_page = "gallery"
    clear_session_context()

    logger.info("user_logout", user_id=user_id)
