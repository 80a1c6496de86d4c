import re
from typing import Iterable, Optional, Set

from .logger import get_logger

# Get logger for this module
logger = get_logger(__name__)

# Compile regex to extract note name and octave
# This pattern matches:
# - Note name (A-G, case insensitive)
# - Optional accidental (# or b)
# - Optional octave number, possibly negative
NOTE_PATTERN = re.compile(r"^([A-Ga-g][#b]?)(-?[0-9]*)$")


class NoteMatcher:
    """
    Encapsulates logic for comparing detected notes to target notes,
    including normalization and enharmonic equivalence.
    """

    FLAT_TO_SHARP = {
        "AB": "G#",
        "BB": "A#",
        "CB": "B",
        "DB": "C#",
        "EB": "D#",
        "FB": "E",
        "GB": "F#",
    }
    ENHARMONIC_MAP = {
        "B#": "C",
        "E#": "F",
    }

    @classmethod
    def normalize(cls, note: Optional[str]) -> Optional[str]:
        """Normalize a note to an upper-case sharp pitch class plus optional octave.

        Returns None when the text is not a note name.
        """
        if note is None:
            return None
        match = NOTE_PATTERN.match(str(note).strip())
        if not match:
            return None

        pitch_class = match.group(1).upper()
        pitch_class = cls.FLAT_TO_SHARP.get(pitch_class, pitch_class)
        pitch_class = cls.ENHARMONIC_MAP.get(pitch_class, pitch_class)
        return pitch_class + match.group(2)

    @classmethod
    def pitch_class(cls, note: Optional[str]) -> Optional[str]:
        normalized = cls.normalize(note)
        if normalized is None:
            return None
        return normalized.rstrip("-0123456789")

    @classmethod
    def match(cls, target: Optional[str], played: Optional[str]) -> bool:
        """
        Check if the played note matches the target note.

        Args:
            target: The target note (e.g., 'A', 'A#', 'Bb', 'E2')
            played: The played note (e.g., 'A4', 'A#3', 'Bb2')
        Returns:
            bool: True if the notes match, False otherwise
        """
        normalized_target = cls.normalize(target)
        normalized_played = cls.normalize(played)

        if normalized_target is None or normalized_played is None:
            logger.debug(f"Invalid note format - target: '{target}', played: '{played}'")
            return False

        return normalized_target.rstrip("-0123456789") == normalized_played.rstrip("-0123456789")

    @classmethod
    def pitch_class_set(cls, notes: Iterable[str]) -> Set[str]:
        result = set()
        for note in notes:
            pitch_class = cls.pitch_class(note)
            if pitch_class is not None:
                result.add(pitch_class)
        return result

    @classmethod
    def chord_matches(cls, target_notes: Iterable[str], detected_notes: Iterable[str]) -> bool:
        """True when every target pitch class was detected."""
        target = cls.pitch_class_set(target_notes)
        if not target:
            return False
        return target.issubset(cls.pitch_class_set(detected_notes))
