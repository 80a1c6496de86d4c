"""Core components for the Fret Recall application."""

# Import interfaces for easier access
from .interfaces import IAudioProvider, ISessionView

__all__ = ["IAudioProvider", "ISessionView"]
