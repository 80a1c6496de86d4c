import time
import queue
from typing import Callable, Iterable, List, Optional

import numpy as np

from .audio.pitch import calculate_rms_level, estimate_pitch
from .calibration_session import CalibrationSession
from .core.config import DEFAULT_CONFIGS
from .core.interfaces import IAudioProvider, ISessionView
from .detection.rhythm import NORMAL, evaluate_rhythm_timing, format_rhythm_feedback
from .detection.tracking import StabilityTracker
from .logger import get_logger
from .note_matcher import NoteMatcher
from .note_types import CHORD, AudioFrame, Prompt, RhythmTimingSnapshot
from .note_utils import DEFAULT_A4_FREQUENCY, freq_to_pitch_class, get_note_name
from .session.error_guard import create_error_guard
from .session.executors import TIMED_TICK_CONTEXT, create_timed_tick_handler, execute_time_up_plan
from .session.planner import (
    ResultMessage,
    build_next_prompt_plan,
    build_start_plan,
    build_success_plan,
    build_time_up_plan,
    create_session_reset_state,
)
from .session.scheduler import TaskScheduler
from .session.session_stats import (
    SessionStats,
    format_goal_progress,
    format_goal_reached,
    session_goal_target,
)
from .stats import StatsStore
from .strategies import Completed, Failed, IChallengeStrategy, PracticeContext, available_modes, get_strategy
from .strategies.adaptive import note_stat_key

# Get logger for this module
logger = get_logger(__name__)

ChordDetector = Callable[[np.ndarray, int], Iterable[str]]
RhythmTimingSource = Callable[[], RhythmTimingSnapshot]

TIMER_TASK_KEY = "timed_tick"
NEXT_PROMPT_TASK_KEY = "next_prompt"
COOLDOWN_TASK_KEY = "mismatch_cooldown"
MISMATCH_COOLDOWN_MS = 1500

IDLE_SESSION_BUTTONS = {"start": False, "stop": True, "hint": True, "play_sound": True}

CHORD_DETECTOR_REQUIRED_MESSAGE = "Chord modes need a chord detector, and none is configured."
RHYTHM_CLICK_REQUIRED_MESSAGE = "Enable Click to practice rhythm timing."


def missing_judge_message(
    mode: str, detection_type: Optional[str], has_chord_detector: bool, has_rhythm_timing: bool
) -> Optional[str]:
    """Why ``mode`` could not judge anything with the given inputs, or None."""
    if detection_type == CHORD and not has_chord_detector:
        return CHORD_DETECTOR_REQUIRED_MESSAGE
    if mode == "rhythm" and not has_rhythm_timing:
        return RHYTHM_CLICK_REQUIRED_MESSAGE
    return None


def judgeable_modes(has_chord_detector: bool = False, has_rhythm_timing: bool = False) -> List[str]:
    """Training modes a session can run with the given inputs."""
    return [
        mode
        for mode in available_modes()
        if missing_judge_message(mode, get_strategy(mode).detection_type, has_chord_detector, has_rhythm_timing)
        is None
    ]


class PracticeSession:
    """
    Runs one training mode against a stream of audio frames.

    The audio provider calls back on its own thread; frames are only queued
    there. ``process_events()`` drains the queue, judges the frames and runs
    due scheduler tasks, and must be called from the owner's loop.
    """

    def __init__(
        self,
        audio_provider: IAudioProvider,
        view: ISessionView,
        context: Optional[PracticeContext] = None,
        stats_store: Optional[StatsStore] = None,
        detection_config: Optional[dict] = None,
        pitch_config: Optional[dict] = None,
        calibration_config: Optional[dict] = None,
        scheduler: Optional[TaskScheduler] = None,
        clock: Callable[[], float] = time.monotonic,
        chord_detector: Optional[ChordDetector] = None,
        rhythm_timing: Optional[RhythmTimingSource] = None,
        rhythm_window: str = NORMAL,
        session_pace: str = "normal",
        showing_all_notes: bool = False,
    ) -> None:
        """Initialize the session.

        Args:
            audio_provider: Source of audio frames
            view: Sink for prompts, results and button states
            context: Practice settings shared with the strategies
            stats_store: Optional persistence for note stats, high score and calibration
            detection_config: Overrides for the 'detection' config section
            pitch_config: Overrides for the 'pitch_detection' config section
            calibration_config: Overrides for the 'calibration' config section
            scheduler: Task scheduler, or None to create one on ``clock``
            clock: Monotonic clock in seconds
            chord_detector: Returns the note names heard in a frame, for chord modes
            rhythm_timing: Metronome snapshot on the same clock, in milliseconds
            rhythm_window: 'strict', 'normal' or 'loose'
            session_pace: 'slow', 'normal', 'fast' or 'ultra'
            showing_all_notes: Whether the fretboard already shows every note
        """
        self.audio_provider = audio_provider
        self.view = view
        self.context = context or PracticeContext()
        self.stats_store = stats_store
        self.clock = clock
        self.chord_detector = chord_detector
        self.rhythm_timing = rhythm_timing
        self.rhythm_window = rhythm_window
        self.session_pace = session_pace
        self.showing_all_notes = showing_all_notes

        detection = {**DEFAULT_CONFIGS["detection"], **(detection_config or {})}
        self.pitch_options = {**DEFAULT_CONFIGS["pitch_detection"], **(pitch_config or {})}
        calibration = {**DEFAULT_CONFIGS["calibration"], **(calibration_config or {})}
        self.volume_threshold = detection["volume_threshold"]

        self.tracker = StabilityTracker(
            required_stable_frames=detection["required_stable_frames"],
            max_pitch_window=detection["max_pitch_window"],
            volume_threshold=self.volume_threshold,
            silence_reset_frames=detection["silence_reset_frames"],
            min_frequency=detection["min_note_frequency"],
            max_frequency=detection["max_note_frequency"],
        )
        self.state = create_session_reset_state()
        self.tracker.state = self.state

        self.scheduler = scheduler or TaskScheduler(clock=clock)
        self.report_error = create_error_guard(
            stop_session=self.stop_listening,
            set_status_text=view.set_status_text,
            set_result_message=view.set_result_message,
        )
        self.scheduler.set_error_handler(self.report_error)

        stored_a4 = stats_store.calibrated_a4 if stats_store is not None else None
        self.calibrated_a4 = stored_a4 or DEFAULT_A4_FREQUENCY

        self.calibration = CalibrationSession(
            audio_provider,
            view,
            scheduler=self.scheduler,
            stats_store=stats_store,
            tuning=self.context.instrument.tuning,
            required_samples=calibration["required_samples"],
            tolerance_ratio=calibration["tolerance_ratio"],
            volume_threshold=self.volume_threshold,
            stop_listening=self._stop_after_calibration,
            on_reference_changed=self.set_calibrated_a4,
        )

        self.mode: Optional[str] = None
        self.strategy: Optional[IChallengeStrategy] = None
        self.is_listening = False
        self.cooldown = False
        self.score = 0
        self.time_left = 0
        self.prompt_started_at = 0.0
        self.goal_target: Optional[int] = None
        self.session_stats: Optional[SessionStats] = None
        self.last_session_stats: Optional[SessionStats] = None
        if stats_store is not None and stats_store.last_session:
            self.last_session_stats = SessionStats.from_dict(stats_store.last_session)
        self.event_queue = queue.Queue()

    # Session lifecycle

    def start(
        self,
        mode: str,
        progression_name: Optional[str] = None,
        timed_duration: int = 60,
        session_goal: Optional[str] = None,
    ) -> bool:
        """Start practising ``mode``. Returns False when the preflight refuses to start.

        ``session_goal`` is a goal key such as 'correct_20'; the session stops
        once that many answers were correct. Timed sessions ignore it.
        """
        try:
            strategy = get_strategy(mode)
        except ValueError as e:
            logger.error(str(e))
            strategy = None

        plan = build_start_plan(
            mode,
            strategy.detection_type if strategy else None,
            progression_name,
            self.context.instrument.chord_progressions,
            timed_duration,
        )
        if not plan.should_start:
            self.view.notify_user_error(plan.error_message)
            return False

        missing = missing_judge_message(
            mode,
            strategy.detection_type if strategy else None,
            self.chord_detector is not None,
            self.rhythm_timing is not None,
        )
        if missing is not None:
            logger.warning(f"Refusing to start {mode}: {missing}")
            self.view.notify_user_error(missing)
            return False

        try:
            self.mode = mode
            self.strategy = strategy
            self.view.set_session_buttons(plan.session_buttons.as_mapping())
            self._apply_reset_state()
            self.context.progression = list(plan.progression.selected)
            if plan.reset_arpeggio_index:
                self.context.arpeggio_index = 0
            self.score = plan.timed.initial_score
            self.session_stats = SessionStats(
                mode=mode,
                instrument_name=self.context.instrument.name,
                string_order=list(self.context.instrument.string_order),
                enabled_strings=list(self.context.enabled_strings),
                min_fret=self.context.min_fret,
                max_fret=self.context.max_fret,
                started_at=time.time(),
            )
            self.goal_target = None if plan.timed.enabled else session_goal_target(session_goal)
            if self.goal_target is not None:
                self.view.set_session_goal_progress(format_goal_progress(0, self.goal_target))
            else:
                self.view.set_session_goal_progress("")

            self.is_listening = True
            self.context.is_listening = True
            if not self.audio_provider.is_running:
                self.audio_provider.start(self._on_audio_frame)

            if plan.timed.enabled:
                self.time_left = plan.timed.duration_seconds
                self.view.set_timer_value(self.time_left)
                tick = create_timed_tick_handler(
                    decrement_time_left=self._decrement_time_left,
                    set_timer_value=self.view.set_timer_value,
                    handle_time_up=self._handle_time_up,
                    on_runtime_error=self.report_error,
                )
                self.scheduler.schedule(TIMER_TASK_KEY, 1000, tick, TIMED_TICK_CONTEXT, interval_ms=1000)

            logger.info(f"Session started: mode={mode}")
            self.next_prompt()
        except Exception as e:
            logger.error(f"Error starting session: {e}")
            self.stop_listening()
            raise

        return self.is_listening

    def next_prompt(self) -> Optional[Prompt]:
        self.tracker.reset()
        strategy = self.strategy
        result = strategy.next(self.context) if strategy is not None else None
        prompt = result if isinstance(result, Prompt) else None

        plan = build_next_prompt_plan(
            has_strategy=strategy is not None,
            detection_type=strategy.detection_type if strategy is not None else None,
            has_prompt=prompt is not None,
        )

        if isinstance(result, Failed):
            self.view.notify_user_error(result.message)
        elif isinstance(result, Completed):
            self.state.pending_result_message = ResultMessage(result.message, "success")
        if plan.error_message:
            self.view.notify_user_error(plan.error_message)

        self.view.set_tuner_visible(plan.tuner_visible)
        if plan.should_reset_tuner:
            self.view.reset_tuner()

        if plan.should_stop_listening:
            logger.info(f"Stopping session ({plan.stop_reason})")
            self.stop_listening()
            return None

        self.context.current_prompt = prompt
        self.prompt_started_at = self.clock()
        self.view.set_prompt_text(prompt.display_text)
        logger.debug(f"New prompt: {prompt.display_text}")
        return prompt

    def stop_listening(self, keep_stream_open: bool = False) -> None:
        """Stop the session and clear every per-session field."""
        pending = self.state.pending_result_message
        self.is_listening = False
        self.context.is_listening = False
        self.cooldown = False
        for key in (TIMER_TASK_KEY, NEXT_PROMPT_TASK_KEY, COOLDOWN_TASK_KEY):
            self.scheduler.cancel(key)

        if not keep_stream_open and self.audio_provider.is_running:
            self.audio_provider.stop()
            self.view.set_status_text("Ready")

        self._apply_reset_state()
        self._drain_queue()
        self._finalize_session_stats()

        self.view.set_tuner_visible(False)
        self.view.reset_tuner()
        self.view.set_session_buttons(IDLE_SESSION_BUTTONS)
        self.view.set_prompt_text("")
        if pending is not None:
            self.view.set_result_message(pending.text, pending.tone)

        logger.info(f"Session stopped. Score: {self.score}")

    def _finalize_session_stats(self) -> None:
        if self.session_stats is None:
            return
        final = self.session_stats.finalize(time.time())
        self.session_stats = None
        self.last_session_stats = final
        logger.info(
            f"Session summary: {final.correct_attempts}/{final.total_attempts} correct, "
            f"best streak {final.best_correct_streak}"
        )
        if self.stats_store is not None:
            self.stats_store.save_last_session(final.to_dict())

    def _apply_reset_state(self) -> None:
        state = create_session_reset_state()
        self.state = state
        self.tracker.state = state

        context = self.context
        context.current_prompt = state.current_prompt
        context.scale_notes = state.scale_notes
        context.scale_index = state.scale_index
        context.progression = state.progression
        context.progression_index = state.progression_index
        context.arpeggio_index = state.arpeggio_index
        context.arpeggio_chord = None
        context.current_melody_id = state.melody_id
        context.melody_event_index = state.melody_event_index
        context.melody_found_notes = state.melody_found_notes

    # Calibration

    def start_calibration(self) -> None:
        if not self.audio_provider.is_running:
            self.audio_provider.start(self._on_audio_frame)
        self.calibration.start(practice_is_listening=self.is_listening)

    def set_calibrated_a4(self, frequency: float) -> None:
        self.calibrated_a4 = frequency

    def _stop_after_calibration(self, keep_stream_open: bool) -> None:
        if self.is_listening:
            self.stop_listening(keep_stream_open)
        elif self.audio_provider.is_running:
            self.audio_provider.stop()

    # Frame processing

    def _on_audio_frame(self, frame: AudioFrame) -> None:
        """Audio-thread callback; only queues."""
        if self.is_listening or self.calibration.is_calibrating:
            self.event_queue.put(frame)

    def _drain_queue(self) -> None:
        try:
            while True:
                self.event_queue.get_nowait()
        except queue.Empty:
            pass

    def process_events(self) -> None:
        """Process queued frames and due tasks. Should be called from the main loop."""
        try:
            while not self.event_queue.empty():
                frame = self.event_queue.get_nowait()
                try:
                    self._handle_frame(frame)
                except Exception as e:
                    self.report_error("audio frame processing", e)
        except queue.Empty:
            # This is expected if the queue is empty, no-op.
            pass
        self.scheduler.run_pending()

    def _handle_frame(self, frame: AudioFrame) -> None:
        if self.calibration.is_calibrating:
            self.calibration.handle_frame(frame)
            return

        prompt = self.context.current_prompt
        if not self.is_listening or self.cooldown or prompt is None:
            return

        if self.tracker.apply_silence_gate(calculate_rms_level(frame.samples)):
            return

        if self.strategy.detection_type == CHORD:
            self._handle_chord_frame(frame, prompt)
        else:
            self._handle_monophonic_frame(frame, prompt)

    def _resolve_note(self, frequency: float) -> Optional[str]:
        return freq_to_pitch_class(frequency, self.calibrated_a4)

    def _handle_monophonic_frame(self, frame: AudioFrame, prompt: Prompt) -> None:
        frequency = estimate_pitch(
            frame.samples,
            frame.sample_rate,
            min_frequency=self.pitch_options["min_frequency"],
            max_frequency=self.pitch_options["max_frequency"],
            threshold=self.pitch_options["threshold"],
        )
        if frequency <= 0:
            return

        result = self.tracker.add_pitch(frequency, prompt.target_note, self._resolve_note)
        if result.detected_note:
            self.state.live_detected_note = result.detected_note
        if result.is_stable_match or result.is_stable_mismatch:
            self._handle_stable_note(prompt, result.detected_note, result.smoothed_frequency)

    def _handle_chord_frame(self, frame: AudioFrame, prompt: Prompt) -> None:
        detected = list(self.chord_detector(frame.samples, frame.sample_rate))
        result = self.tracker.add_chord(detected, prompt.target_chord_notes)
        if result.is_stable_match:
            self._handle_success(prompt)
        elif result.is_stable_mismatch:
            self._record_attempt(prompt, False)
            self.view.set_result_message(f"Heard: {result.detected_notes_text or '...'} [wrong]", "error")
            self._start_cooldown(MISMATCH_COOLDOWN_MS)

    def _handle_stable_note(self, prompt: Prompt, note: str, frequency: Optional[float]) -> None:
        if self.mode == "free":
            self.view.set_status_text(f"Heard: {note}")
            return

        if self.mode == "rhythm":
            self._judge_rhythm(note)
            return

        event_notes = prompt.target_melody_event_notes
        if event_notes and len(event_notes) > 1:
            self._handle_melody_event_note(prompt, note)
            return

        if prompt.target_note and NoteMatcher.match(prompt.target_note, note):
            self._handle_success(prompt)
            return

        self._record_attempt(prompt, False)
        heard = get_note_name(frequency, self.calibrated_a4) if frequency else note
        self.view.set_result_message(f"Heard: {heard} [wrong]", "error")
        self._start_cooldown(MISMATCH_COOLDOWN_MS)

    def _handle_melody_event_note(self, prompt: Prompt, note: str) -> None:
        """Notes of a multi-note melody event may be played one at a time."""
        targets = NoteMatcher.pitch_class_set(
            prompt.target_chord_notes or [event_note.note for event_note in prompt.target_melody_event_notes]
        )
        pitch_class = NoteMatcher.pitch_class(note)
        if pitch_class not in targets:
            self._record_attempt(prompt, False)
            self.view.set_result_message(f"Heard: {note} [off target]", "error")
            self._start_cooldown(MISMATCH_COOLDOWN_MS)
            return

        found_notes = self.context.melody_found_notes
        was_found = pitch_class in found_notes
        found_notes.add(pitch_class)
        if len(found_notes) < len(targets):
            if not was_found:
                self.view.set_result_message(f"Heard: {note} [{len(found_notes)}/{len(targets)}]")
            self.tracker.reset()
            return

        self._handle_success(prompt)

    def _judge_rhythm(self, note: str) -> None:
        result = evaluate_rhythm_timing(self.clock() * 1000, self.rhythm_timing(), self.rhythm_window)
        if result is None:
            self.view.set_result_message(RHYTHM_CLICK_REQUIRED_MESSAGE, "error")
            return
        if result.beat_at_ms == self.state.rhythm_last_judged_beat_at_ms:
            return

        self.state.rhythm_last_judged_beat_at_ms = result.beat_at_ms
        if self.session_stats is not None:
            self.session_stats.record_rhythm(result)
        self.view.set_result_message(format_rhythm_feedback(result, note), result.tone)

    def _handle_success(self, prompt: Prompt) -> None:
        elapsed = self.clock() - self.prompt_started_at
        self._record_attempt(prompt, True, elapsed)
        if self._goal_reached():
            return

        plan = build_success_plan(
            mode=self.mode,
            detection_type=self.strategy.detection_type,
            elapsed_seconds=elapsed,
            arpeggio_index=self.context.arpeggio_index,
            arpeggio_length=len(prompt.target_chord_notes),
            showing_all_notes=self.showing_all_notes,
            session_pace=self.session_pace,
        )
        self.context.arpeggio_index = plan.next_arpeggio_index
        self.score += plan.score_delta
        logger.info(f"Correct: '{prompt.display_text}' in {elapsed:.2f}s ({plan.kind})")

        if plan.message:
            self.view.set_result_message(plan.message, "success")
        if plan.hide_tuner:
            self.view.set_tuner_visible(False)

        if plan.delay_ms > 0:
            self.cooldown = True
            self.scheduler.schedule(
                NEXT_PROMPT_TASK_KEY, plan.delay_ms, self._advance_after_cooldown, "success cooldown"
            )
        else:
            self.next_prompt()

    def _advance_after_cooldown(self) -> None:
        self.cooldown = False
        self.next_prompt()

    def _start_cooldown(self, delay_ms: int) -> None:
        self.cooldown = True
        self.scheduler.schedule(COOLDOWN_TASK_KEY, delay_ms, self._end_cooldown, "mismatch cooldown")

    def _end_cooldown(self) -> None:
        self.cooldown = False
        self.tracker.reset()

    def _goal_reached(self) -> bool:
        """Update goal progress; stops the session once the goal is met."""
        if self.goal_target is None or self.session_stats is None:
            return False

        correct = self.session_stats.correct_attempts
        self.view.set_session_goal_progress(format_goal_progress(correct, self.goal_target))
        if correct < self.goal_target:
            return False

        logger.info(f"Session goal of {self.goal_target} correct answers reached")
        self.stop_listening()
        self.view.set_result_message(format_goal_reached(self.goal_target), "success")
        return True

    def _record_attempt(self, prompt: Prompt, correct: bool, elapsed: float = 0.0) -> None:
        if self.session_stats is not None:
            self.session_stats.record_attempt(prompt, correct, elapsed, self.context.instrument)
        if self.stats_store is None or not prompt.target_note or not prompt.target_string:
            return
        key = note_stat_key(prompt.target_note, prompt.target_string)
        self.context.note_stats[key] = self.stats_store.record_attempt(key, correct, elapsed)

    # Timed mode

    def _decrement_time_left(self) -> int:
        self.time_left -= 1
        return self.time_left

    def _handle_time_up(self) -> None:
        high_score = self.stats_store.high_score if self.stats_store is not None else 0
        plan = build_time_up_plan(self.score, high_score)
        execute_time_up_plan(
            plan,
            clear_timer=lambda: self.scheduler.cancel(TIMER_TASK_KEY),
            persist_high_score=self._persist_high_score,
            stop_listening=self.stop_listening,
            set_result_message=self.view.set_result_message,
        )

    def _persist_high_score(self, score: int) -> None:
        if self.stats_store is not None:
            self.stats_store.save_high_score(score)
