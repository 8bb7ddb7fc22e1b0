"""
Streamlit error display components.

Every failure that reaches the UI is shown as one user-facing message; the
technical details stay in the structured log unless the debug expander is on.
"""

from typing import Any

import streamlit as st

from ...error_handling import ErrorInfo, ErrorSeverity, handle_error
from ...logging_config import get_logger

try:
    from streamlit.runtime.scriptrunner_utils.exceptions import RerunException, StopException

    CONTROL_FLOW_EXCEPTIONS: tuple[type[BaseException], ...] = (RerunException, StopException)
except ImportError:
    CONTROL_FLOW_EXCEPTIONS = ()

logger = get_logger(__name__)

ALERT_TYPES = {
    ErrorSeverity.LOW: "info",
    ErrorSeverity.MEDIUM: "warning",
    ErrorSeverity.HIGH: "error",
    ErrorSeverity.CRITICAL: "error",
}


def _render_error_details(error_info: ErrorInfo) -> None:
    with st.expander("자세한 정보", expanded=False):
        st.write("**오류 코드:**", error_info.code)
        st.write("**분류:**", error_info.category.value)
        st.write("**발생 시각:**", error_info.timestamp.strftime("%Y-%m-%d %H:%M:%S"))
        for key, value in error_info.details.items():
            if key != "original_exception":
                st.write(f"- {key}: {value}")


def display_error(error_info: ErrorInfo, show_details: bool = False, container: Any = None) -> None:
    """
    Show one alert for an error, colored by severity.

    Args:
        error_info: Structured error information
        show_details: Also show code, category and details in an expander
        container: Streamlit container to render into, defaults to the page
    """
    alert = getattr(st, ALERT_TYPES.get(error_info.severity, "error"))

    with container if container is not None else st.container():
        alert(error_info.user_message)
        if show_details and error_info.details:
            _render_error_details(error_info)

    logger.info(
        "error_displayed_to_user",
        error_code=error_info.code,
        category=error_info.category.value,
        severity=error_info.severity.value,
    )


def display_exception(
    exception: Exception,
    context: dict[str, Any] | None = None,
    show_details: bool = False,
    container: Any = None,
) -> None:
    """Classify an exception and show it as one alert."""
    display_error(handle_error(exception, context), show_details=show_details, container=container)


class StreamlitErrorContext:
    """Context manager that shows, instead of propagating, errors raised while rendering."""

    def __init__(self, context: dict[str, Any] | None = None, show_details: bool = False, container: Any = None):
        self.context = context
        self.show_details = show_details
        self.container = container

    def __enter__(self) -> "StreamlitErrorContext":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> bool:
        # st.rerun() and st.stop() must reach the script runner
        if exc_val is None or isinstance(exc_val, CONTROL_FLOW_EXCEPTIONS):
            return False
        if not isinstance(exc_val, Exception):
            return False

        display_exception(exc_val, self.context, show_details=self.show_details, container=self.container)
        return True


def error_context(
    context: dict[str, Any] | None = None,
    show_details: bool = False,
    container: Any = None,
) -> StreamlitErrorContext:
    """Create an error context manager for Streamlit operations."""
    return StreamlitErrorContext(context, show_details, container)
