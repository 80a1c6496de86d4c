"""Plain-terminal rendering of a practice session."""

from typing import Mapping

from ..core.interfaces import ISessionView

_TONE_PREFIX = {"success": "[ok] ", "error": "[!!] ", "neutral": ""}


class ConsoleSessionView(ISessionView):
    """Prints every session signal as a line on stdout."""

    def __init__(self, show_tuner: bool = False):
        self.show_tuner = show_tuner
        self.timer_value = None

    def set_prompt_text(self, text: str) -> None:
        if text:
            print(f"\n>>> {text}")

    def set_status_text(self, text: str) -> None:
        print(f"    {text}")

    def set_result_message(self, text: str, tone: str = "neutral") -> None:
        print(f"    {_TONE_PREFIX.get(tone, '')}{text}")

    def notify_user_error(self, message: str) -> None:
        print(f"ERROR: {message}")

    def set_session_buttons(self, state: Mapping[str, bool]) -> None:
        pass

    def set_tuner_visible(self, visible: bool) -> None:
        self.show_tuner = visible

    def reset_tuner(self) -> None:
        pass

    def set_timer_value(self, seconds: int) -> None:
        self.timer_value = seconds
        if seconds % 10 == 0 or seconds <= 5:
            print(f"    {seconds}s left")

    def set_session_goal_progress(self, text: str) -> None:
        if text:
            print(f"    {text}")

    def show_calibration_modal(self) -> None:
        print("=== Calibration ===")

    def hide_calibration_modal(self) -> None:
        print("=== Calibration closed ===")

    def set_calibration_progress(self, percent: float) -> None:
        print(f"    calibrating... {percent:.0f}%")
