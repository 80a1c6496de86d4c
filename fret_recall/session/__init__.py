from .error_guard import create_error_guard
from .executors import create_timed_tick_handler, execute_time_up_plan
from .planner import (
    build_next_prompt_plan,
    build_start_plan,
    build_success_plan,
    build_time_up_plan,
    create_session_reset_state,
)
from .scheduler import TaskScheduler
from .session_stats import SessionStats, session_goal_target

__all__ = [
    "SessionStats",
    "TaskScheduler",
    "build_next_prompt_plan",
    "build_start_plan",
    "build_success_plan",
    "build_time_up_plan",
    "create_error_guard",
    "create_session_reset_state",
    "create_timed_tick_handler",
    "execute_time_up_plan",
    "session_goal_target",
]
