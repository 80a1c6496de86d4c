"""Main entry point for the Fret Recall CLI."""

import os
import sys
import time
import argparse
from typing import List, Optional

from ..audio.pitch import calculate_rms_level, estimate_pitch
from ..audio.providers import LiveAudioProvider, WavFileAudioProvider
from ..calibration_session import CLOSE_TASK_KEY, CalibrationSession
from ..core.config import ConfigManager
from ..core.interfaces import IAudioProvider
from ..instruments import INSTRUMENTS
from ..logger import get_logger
from ..logging_config import setup_logging
from ..note_types import AudioFrame
from ..note_utils import DEFAULT_A4_FREQUENCY, get_note_name
from ..practice_session import PracticeSession, judgeable_modes
from ..session.session_stats import NO_GOAL, SESSION_GOALS
from ..stats import StatsStore
from ..strategies import PracticeContext
from .console_view import ConsoleSessionView

logger = get_logger(__name__)

POLL_INTERVAL = 0.01


def _add_audio_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--device", type=int, default=None, help="Audio input device ID")
    parser.add_argument("--wav", type=str, default=None, help="Read audio from a WAV file instead")
    parser.add_argument(
        "--instrument",
        choices=sorted(INSTRUMENTS),
        default=None,
        help="Instrument (default: from the session config)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fret Recall - guitar and ukulele ear training")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--config-dir", type=str, default=None, help="Configuration directory (default: ~/.config/fret_recall)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    detect_parser = subparsers.add_parser("detect", help="Print the pitch of the incoming audio")
    _add_audio_arguments(detect_parser)
    detect_parser.add_argument("--duration", type=float, default=10.0, help="Seconds to listen")
    detect_parser.add_argument("--flats", action="store_true", help="Use flat notes instead of sharps")

    calibrate_parser = subparsers.add_parser("calibrate", help="Calibrate A4 from the open A string")
    _add_audio_arguments(calibrate_parser)

    practice_parser = subparsers.add_parser("practice", help="Run a practice session in the terminal")
    _add_audio_arguments(practice_parser)
    # The terminal has no chord detector or metronome click
    practice_parser.add_argument("--mode", choices=judgeable_modes(), default=None, help="Training mode")
    practice_parser.add_argument("--progression", type=str, default=None, help="Chord progression name")
    practice_parser.add_argument("--difficulty", choices=["natural", "all"], default=None)
    practice_parser.add_argument("--duration", type=float, default=None, help="Stop after this many seconds")
    practice_parser.add_argument(
        "--goal",
        choices=[NO_GOAL, *SESSION_GOALS],
        default=None,
        help="Stop after this many correct answers (default: from the session config)",
    )

    return parser


def _create_provider(args, audio_config: dict) -> IAudioProvider:
    if args.wav:
        return WavFileAudioProvider(args.wav, chunk_size=audio_config["chunk_size"])
    return LiveAudioProvider(
        device_id=args.device if args.device is not None else audio_config["device_id"],
        sample_rate=audio_config["sample_rate"],
        channels=audio_config["channels"],
        chunk_size=audio_config["chunk_size"],
    )


def run_detect(args, config_manager: ConfigManager, stats_store: StatsStore) -> int:
    provider = _create_provider(args, config_manager.get_config("audio_input"))
    pitch_config = config_manager.get_config("pitch_detection")
    volume_threshold = config_manager.get_config("detection")["volume_threshold"]
    a4 = stats_store.calibrated_a4 or DEFAULT_A4_FREQUENCY
    detections = {}

    def on_frame(frame: AudioFrame) -> None:
        if calculate_rms_level(frame.samples) < volume_threshold:
            return
        frequency = estimate_pitch(frame.samples, frame.sample_rate, **pitch_config)
        if frequency <= 0:
            return
        note = get_note_name(frequency, a4, use_flats=args.flats)
        detections[note] = detections.get(note, 0) + 1
        logger.info(f"[{frame.timestamp:.2f}s] {note} ({frequency:.1f}Hz)")

    logger.info(f"Listening for {args.duration} seconds (A4 = {a4:.2f}Hz)...")
    provider.start(on_frame)
    try:
        deadline = time.monotonic() + args.duration
        while time.monotonic() < deadline and provider.is_running:
            time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        logger.info("Detection interrupted by user")
    finally:
        provider.stop()

    logger.info(f"Detected {sum(detections.values())} pitched frames.")
    for note_name, count in sorted(detections.items(), key=lambda x: x[1], reverse=True):
        logger.info(f"  {note_name}: {count} frames")
    return 0


def run_calibrate(args, config_manager: ConfigManager, stats_store: StatsStore) -> int:
    instrument = INSTRUMENTS[args.instrument or config_manager.get_config("session")["instrument"]]
    calibration_config = config_manager.get_config("calibration")
    provider = _create_provider(args, config_manager.get_config("audio_input"))
    calibration = CalibrationSession(
        provider,
        ConsoleSessionView(),
        stats_store=stats_store,
        tuning=instrument.tuning,
        required_samples=calibration_config["required_samples"],
        tolerance_ratio=calibration_config["tolerance_ratio"],
        volume_threshold=config_manager.get_config("detection")["volume_threshold"],
    )

    calibration.start()
    try:
        while calibration.is_calibrating or calibration.scheduler.is_scheduled(CLOSE_TASK_KEY):
            if calibration.is_calibrating and not provider.is_running:
                # A WAV file ran out before enough samples were collected
                calibration.finish()
            calibration.process_events()
            time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        logger.info("Calibration cancelled by user")
        calibration.cancel()
        return 1

    outcome = calibration.last_outcome
    return 0 if outcome is not None and outcome.kind == "success" else 1


def run_practice(args, config_manager: ConfigManager, stats_store: StatsStore) -> int:
    session_config = config_manager.get_config("session")
    instrument = INSTRUMENTS[args.instrument or session_config["instrument"]]
    context = PracticeContext(
        instrument=instrument,
        difficulty=args.difficulty or session_config["difficulty"],
        min_fret=session_config["min_fret"],
        max_fret=session_config["max_fret"],
        note_stats=stats_store.note_stats(),
    )
    provider = _create_provider(args, config_manager.get_config("audio_input"))
    session = PracticeSession(
        provider,
        ConsoleSessionView(),
        context=context,
        stats_store=stats_store,
        detection_config=config_manager.get_config("detection"),
        pitch_config=config_manager.get_config("pitch_detection"),
        calibration_config=config_manager.get_config("calibration"),
        rhythm_window=session_config["rhythm_timing_window"],
        session_pace=session_config["session_pace"],
    )

    mode = args.mode or session_config["mode"]
    goal = args.goal or session_config["session_goal"]
    if not session.start(mode, args.progression, session_config["timed_duration"], goal):
        return 1

    deadline = time.monotonic() + args.duration if args.duration else None
    try:
        while session.is_listening:
            session.process_events()
            if deadline is not None and time.monotonic() >= deadline:
                break
            if args.wav and not provider.is_running:
                break
            time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        logger.info("Session interrupted by user")
    finally:
        if session.is_listening:
            session.stop_listening()

    logger.info(f"Final score: {session.score}")
    summary = session.last_session_stats
    if summary is not None and summary.total_attempts:
        logger.info(
            f"Correct: {summary.correct_attempts}/{summary.total_attempts}, "
            f"best streak: {summary.best_correct_streak}"
        )
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Command line arguments, or None to use sys.argv

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    setup_logging("DEBUG" if parsed_args.debug else None)

    commands = {
        "detect": run_detect,
        "calibrate": run_calibrate,
        "practice": run_practice,
    }
    command = commands.get(parsed_args.command)
    if command is None:
        parser.print_help()
        return 1

    config_manager = ConfigManager(parsed_args.config_dir)
    stats_path = os.path.join(parsed_args.config_dir, "stats.json") if parsed_args.config_dir else None
    stats_store = StatsStore(stats_path)
    return command(parsed_args, config_manager, stats_store)


if __name__ == "__main__":
    sys.exit(main())
