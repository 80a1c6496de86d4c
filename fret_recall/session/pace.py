"""Delays that make a session feel slower or snappier."""

SLOW = "slow"
NORMAL = "normal"
FAST = "fast"
ULTRA = "ultra"

SESSION_PACES = (SLOW, NORMAL, FAST, ULTRA)

_STANDARD_SUCCESS_DELAY_MS = {SLOW: 1500, NORMAL: 650, FAST: 280, ULTRA: 120}
_ARPEGGIO_COMPLETE_DELAY_MS = {SLOW: 1500, NORMAL: 900, FAST: 500, ULTRA: 240}


def normalize_session_pace(value) -> str:
    return value if value in SESSION_PACES else NORMAL


def standard_success_delay_ms(pace: str) -> int:
    return _STANDARD_SUCCESS_DELAY_MS[normalize_session_pace(pace)]


def arpeggio_complete_delay_ms(pace: str) -> int:
    return _ARPEGGIO_COMPLETE_DELAY_MS[normalize_session_pace(pace)]
