"""Interactive tuning calibration against the open A string."""

import queue
from typing import Callable, Mapping, Optional

from .audio.pitch import calculate_rms_level, estimate_pitch
from .core.interfaces import IAudioProvider, ISessionView
from .detection.calibration import (
    CalibrationState,
    FinishCalibrationOutcome,
    build_finish_outcome,
    close_calibration_session,
    compute_calibrated_reference,
    evaluate_calibration_sample,
    open_a_tuning_info,
)
from .logger import get_logger
from .note_types import AudioFrame
from .session.scheduler import TaskScheduler
from .stats import StatsStore

logger = get_logger(__name__)

CLOSE_TASK_KEY = "calibration_close"
CALIBRATION_PROMPT = "Play the open A string and let it ring..."


class CalibrationSession:
    """
    Collects pitch samples of the open A string and turns them into a new A4
    reference.

    Frames either come from a stream this object opens itself (``start()``)
    or are handed in by a running practice session through ``handle_frame``.
    The modal is closed after a fixed delay through the scheduler, so
    ``cancel()`` can invalidate a close that is still pending.
    """

    def __init__(
        self,
        audio_provider: IAudioProvider,
        view: ISessionView,
        scheduler: Optional[TaskScheduler] = None,
        stats_store: Optional[StatsStore] = None,
        tuning: Optional[Mapping[str, str]] = None,
        required_samples: int = 30,
        tolerance_ratio: float = 0.15,
        volume_threshold: float = 0.03,
        stop_listening: Optional[Callable[[bool], None]] = None,
        on_reference_changed: Optional[Callable[[float], None]] = None,
    ):
        self.audio_provider = audio_provider
        self.view = view
        self.scheduler = scheduler or TaskScheduler()
        self.stats_store = stats_store
        self.tuning_info = open_a_tuning_info(tuning)
        self.required_samples = required_samples
        self.tolerance_ratio = tolerance_ratio
        self.volume_threshold = volume_threshold
        self._stop_listening = stop_listening or self._release_stream
        self._on_reference_changed = on_reference_changed

        self.state = CalibrationState()
        self.calibrated_a4: Optional[float] = None
        self.last_outcome: Optional[FinishCalibrationOutcome] = None
        self.event_queue = queue.Queue()
        self._owns_stream = False

    @property
    def is_calibrating(self) -> bool:
        return self.state.is_calibrating

    def start(self, practice_is_listening: bool = False) -> None:
        """Begin collecting samples, opening the stream unless a practice session already holds it."""
        self.scheduler.cancel(CLOSE_TASK_KEY)
        self.state.is_calibrating = True
        self.state.frequencies = []
        self.state.is_listening = practice_is_listening
        self.last_outcome = None

        self.view.show_calibration_modal()
        self.view.set_calibration_progress(0.0)
        self.view.set_status_text(CALIBRATION_PROMPT)

        if not practice_is_listening and not self.audio_provider.is_running:
            self.audio_provider.start(self._on_audio_frame)
            self._owns_stream = True

        logger.info(
            f"Calibration started: expecting ~{self.tuning_info.expected_frequency:.2f}Hz, "
            f"{self.required_samples} samples"
        )

    def _on_audio_frame(self, frame: AudioFrame) -> None:
        if self.state.is_calibrating:
            self.event_queue.put(frame)

    def process_events(self) -> None:
        """Drain frames from an owned stream, then run due tasks. Call from the owner loop."""
        try:
            while not self.event_queue.empty():
                self.handle_frame(self.event_queue.get_nowait())
        except queue.Empty:
            pass
        self.scheduler.run_pending()

    def handle_frame(self, frame: AudioFrame) -> None:
        if not self.state.is_calibrating:
            return
        if calculate_rms_level(frame.samples) < self.volume_threshold:
            return

        frequency = estimate_pitch(frame.samples, frame.sample_rate)
        if frequency <= 0:
            return

        result = evaluate_calibration_sample(
            frequency,
            self.tuning_info.expected_frequency,
            len(self.state.frequencies),
            self.required_samples,
            self.tolerance_ratio,
        )
        if not result.accepted:
            logger.debug(f"Calibration sample rejected: {frequency:.2f}Hz")
            return

        self.state.frequencies.append(frequency)
        self.view.set_calibration_progress(result.progress_percent)
        if result.is_complete:
            self.finish()

    def finish(self) -> FinishCalibrationOutcome:
        """Turn the collected samples into an outcome and arm the delayed close."""
        samples = list(self.state.frequencies)
        self.state.is_calibrating = False

        calibrated = compute_calibrated_reference(samples, self.tuning_info.octave)
        outcome = build_finish_outcome(bool(samples), calibrated)
        self.last_outcome = outcome
        self.view.set_status_text(outcome.status_text)

        if outcome.kind == "success":
            self._commit(outcome.next_calibrated_a4)
        else:
            logger.warning(f"Calibration failed ({outcome.timeout_context})")

        self.scheduler.schedule(CLOSE_TASK_KEY, outcome.delay_ms, self.close, outcome.timeout_context)
        return outcome

    def _commit(self, calibrated_a4: float) -> None:
        self.calibrated_a4 = calibrated_a4
        logger.info(f"Calibrated A4 = {calibrated_a4:.2f} Hz")
        if self.stats_store is not None:
            self.stats_store.save_calibrated_a4(calibrated_a4)
        if self._on_reference_changed is not None:
            self._on_reference_changed(calibrated_a4)

    def cancel(self) -> None:
        self.scheduler.cancel(CLOSE_TASK_KEY)
        self.close()

    def close(self) -> None:
        close_calibration_session(self.state, self.view.hide_calibration_modal, self._stop_listening)

    def _release_stream(self, keep_stream_open: bool) -> None:
        # A stream opened here has no other user, whatever the flag says
        if self._owns_stream:
            self.audio_provider.stop()
            self._owns_stream = False
