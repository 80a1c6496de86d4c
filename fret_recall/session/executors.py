"""Carry out lifecycle plans against injected collaborators."""

from typing import Callable

from ..logger import get_logger
from .planner import TimeUpPlan

logger = get_logger(__name__)

TIMED_TICK_CONTEXT = "timed interval tick"


def execute_time_up_plan(
    plan: TimeUpPlan,
    clear_timer: Callable[[], None],
    persist_high_score: Callable[[int], None],
    stop_listening: Callable[[], None],
    set_result_message: Callable[[str], None],
) -> None:
    clear_timer()
    if plan.should_persist_high_score:
        persist_high_score(plan.next_high_score)
    stop_listening()
    set_result_message(plan.message)
    logger.info(plan.message)


def create_timed_tick_handler(
    decrement_time_left: Callable[[], int],
    set_timer_value: Callable[[int], None],
    handle_time_up: Callable[[], None],
    on_runtime_error: Callable[[str, BaseException], None],
) -> Callable[[], None]:
    """Build the once-per-second countdown callback of a timed session.

    Nothing raised during a tick escapes; it is handed to ``on_runtime_error``.
    """

    def tick() -> None:
        try:
            time_left = decrement_time_left()
            set_timer_value(time_left)
            if time_left <= 0:
                handle_time_up()
        except Exception as e:
            on_runtime_error(TIMED_TICK_CONTEXT, e)

    return tick
