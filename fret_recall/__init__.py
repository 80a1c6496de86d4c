"""Fret Recall: guitar and ukulele ear training on top of live pitch detection."""

__version__ = "0.1.0"
