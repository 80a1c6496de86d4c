from typing import Mapping

from .core.interfaces import ISessionView


class MockSessionView(ISessionView):
    """Records every signal a session sends, for unit tests."""

    def __init__(self):
        self.prompts = []
        self.statuses = []
        self.results = []  # (text, tone)
        self.errors = []
        self.buttons = []
        self.tuner_visible = None
        self.tuner_resets = 0
        self.timer_values = []
        self.goal_progress = []
        self.calibration_modal_open = False
        self.calibration_progress = []

    @property
    def last_result(self):
        return self.results[-1] if self.results else None

    def set_prompt_text(self, text: str) -> None:
        self.prompts.append(text)

    def set_status_text(self, text: str) -> None:
        self.statuses.append(text)

    def set_result_message(self, text: str, tone: str = "neutral") -> None:
        self.results.append((text, tone))

    def notify_user_error(self, message: str) -> None:
        self.errors.append(message)

    def set_session_buttons(self, state: Mapping[str, bool]) -> None:
        self.buttons.append(dict(state))

    def set_tuner_visible(self, visible: bool) -> None:
        self.tuner_visible = visible

    def reset_tuner(self) -> None:
        self.tuner_resets += 1

    def set_timer_value(self, seconds: int) -> None:
        self.timer_values.append(seconds)

    def set_session_goal_progress(self, text: str) -> None:
        self.goal_progress.append(text)

    def show_calibration_modal(self) -> None:
        self.calibration_modal_open = True

    def hide_calibration_modal(self) -> None:
        self.calibration_modal_open = False

    def set_calibration_progress(self, percent: float) -> None:
        self.calibration_progress.append(percent)
