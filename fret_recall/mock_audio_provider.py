from typing import Callable, Optional

from .core.interfaces import IAudioProvider
from .note_types import AudioFrame


class MockAudioProvider(IAudioProvider):
    """A mock provider for unit tests. Frames are pushed by hand with ``emit``."""

    def __init__(self, sample_rate: int = 44100):
        self._sample_rate = sample_rate
        self.callback: Optional[Callable[[AudioFrame], None]] = None
        self._is_running = False
        self.start_count = 0
        self.stop_count = 0

    def start(self, on_frame):
        self.callback = on_frame
        self._is_running = True
        self.start_count += 1

    def stop(self):
        self._is_running = False
        self.stop_count += 1

    def emit(self, samples, timestamp: float = 0.0) -> None:
        if self._is_running and self.callback:
            self.callback(AudioFrame(samples, self._sample_rate, timestamp))

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def is_running(self) -> bool:
        return self._is_running
