"""Defines the collaborator interfaces the Fret Recall engine talks to."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Callable, Mapping

from ..note_types import AudioFrame


class IAudioProvider(ABC):
    """An abstract interface for audio providers."""

    @abstractmethod
    def start(self, on_frame: Callable[[AudioFrame], None]) -> None:
        """Starts the audio stream, calling the callback with each captured window."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stops the audio stream."""
        pass

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """The sample rate of the audio stream."""
        pass

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """True while frames are being delivered."""
        pass


class ISessionView(ABC):
    """Signal sink for everything a practice session shows to the player."""

    @abstractmethod
    def set_prompt_text(self, text: str) -> None:
        pass

    @abstractmethod
    def set_status_text(self, text: str) -> None:
        pass

    @abstractmethod
    def set_result_message(self, text: str, tone: str = "neutral") -> None:
        """Show a result line; tone is 'neutral', 'success' or 'error'."""
        pass

    @abstractmethod
    def notify_user_error(self, message: str) -> None:
        pass

    @abstractmethod
    def set_session_buttons(self, state: Mapping[str, bool]) -> None:
        """Apply a {button: disabled} mapping."""
        pass

    @abstractmethod
    def set_tuner_visible(self, visible: bool) -> None:
        pass

    @abstractmethod
    def reset_tuner(self) -> None:
        """Clear the tuner needle and detected-note readout."""
        pass

    @abstractmethod
    def set_timer_value(self, seconds: int) -> None:
        pass

    @abstractmethod
    def set_session_goal_progress(self, text: str) -> None:
        """Show goal progress; an empty string hides it."""
        pass

    @abstractmethod
    def show_calibration_modal(self) -> None:
        pass

    @abstractmethod
    def hide_calibration_modal(self) -> None:
        pass

    @abstractmethod
    def set_calibration_progress(self, percent: float) -> None:
        pass
