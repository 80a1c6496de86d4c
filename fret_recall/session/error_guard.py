from typing import Callable, Optional

from ..logger import get_logger

logger = get_logger(__name__)

RUNTIME_ERROR_STATUS = "Session stopped due to an internal error."
RUNTIME_ERROR_RESULT = "Runtime error. Session stopped."

ErrorReporter = Callable[[str, BaseException], None]


def create_error_guard(
    stop_session: Callable[[], None],
    set_status_text: Callable[[str], None],
    set_result_message: Callable[[str, str], None],
    log_error: Optional[Callable[[str], None]] = None,
) -> ErrorReporter:
    """
    Build the single entry point for runtime failures of a session.

    Each report is logged. The first report of a cascade also stops the
    session and shows a fixed message; reports raised while that is in
    progress (for example from inside ``stop_session``) are only logged.
    """
    log = log_error or logger.error
    is_handling = False

    def report(context: str, error: BaseException) -> None:
        nonlocal is_handling
        log(f"[Session Runtime Error] {context}: {error!r}")
        if is_handling:
            return

        is_handling = True
        try:
            stop_session()
            set_status_text(RUNTIME_ERROR_STATUS)
            set_result_message(RUNTIME_ERROR_RESULT, "error")
        except Exception as stop_error:
            log(f"[Session Runtime Error] Failed to stop session cleanly: {stop_error!r}")
        finally:
            is_handling = False

    return report
