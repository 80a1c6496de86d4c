import threading
import time
from typing import Callable, Optional

import numpy as np
import sounddevice as sd
import soundfile as sf

from ..core.interfaces import IAudioProvider
from ..logger import get_logger
from ..note_types import AudioFrame

logger = get_logger(__name__)


def _to_mono(data: np.ndarray) -> np.ndarray:
    if data.ndim > 1:
        return data.mean(axis=1).astype(np.float32)
    return data.astype(np.float32, copy=False)


class LiveAudioProvider(IAudioProvider):
    """Provides live audio from an input device using sounddevice."""

    def __init__(
        self,
        device_id: Optional[int] = None,
        sample_rate: int = 44100,
        channels: int = 1,
        chunk_size: int = 2048,
    ):
        self._device_id = device_id
        self._sample_rate = sample_rate
        self._channels = channels
        self._chunk_size = chunk_size
        self._stream: Optional[sd.InputStream] = None
        self._on_frame: Optional[Callable[[AudioFrame], None]] = None

    def start(self, on_frame: Callable[[AudioFrame], None]) -> None:
        if self._stream is not None:
            return
        self._on_frame = on_frame
        self._stream = sd.InputStream(
            device=self._device_id,
            channels=self._channels,
            samplerate=self._sample_rate,
            blocksize=self._chunk_size,
            callback=self._audio_callback,
            dtype="float32",
        )
        self._stream.start()
        logger.info(
            f"Audio input started: device={self._device_id}, "
            f"rate={self._sample_rate}Hz, blocksize={self._chunk_size}"
        )

    def stop(self) -> None:
        if self._stream:
            self._stream.stop()
            self._stream.close()
            self._stream = None
            logger.info("Audio input stopped")

    def _audio_callback(self, indata: np.ndarray, _frames: int, _time_info, status) -> None:
        if status:
            logger.warning(f"Audio input status: {status}")
        if self._on_frame:
            # sounddevice reuses indata, so hand out a copy
            self._on_frame(AudioFrame(_to_mono(indata.copy()), self._sample_rate, time.monotonic()))

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def is_running(self) -> bool:
        return self._stream is not None


class WavFileAudioProvider(IAudioProvider):
    """Provides audio frames by reading from a WAV file."""

    def __init__(
        self,
        file_path: str,
        chunk_size: int = 2048,
        loop: bool = False,
        gain: float = 1.0,
        realtime: bool = True,
    ):
        self._file_path = file_path
        self._chunk_size = chunk_size
        self._loop = loop
        self._gain = gain
        self._realtime = realtime
        self._on_frame: Optional[Callable[[AudioFrame], None]] = None
        self._is_running = False
        self._thread: Optional[threading.Thread] = None

        with sf.SoundFile(self._file_path) as f:
            self._sample_rate = f.samplerate

    def start(self, on_frame: Callable[[AudioFrame], None]) -> None:
        if self._is_running:
            return

        self._on_frame = on_frame
        self._is_running = True
        self._thread = threading.Thread(target=self._stream_data, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._is_running = False
        if self._thread and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for a non-looping file to finish streaming."""
        if self._thread:
            self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        """Returns True if the provider is currently streaming data."""
        return self._is_running

    def _stream_data(self) -> None:
        position = 0
        try:
            while self._is_running:
                with sf.SoundFile(self._file_path) as f:
                    while self._is_running:
                        data = f.read(self._chunk_size, dtype="float32", always_2d=True)
                        if len(data) == 0:
                            break

                        samples = _to_mono(data)
                        if self._gain != 1.0:
                            samples = samples * self._gain

                        if self._on_frame:
                            self._on_frame(
                                AudioFrame(samples, self._sample_rate, position / self._sample_rate)
                            )
                        position += len(samples)

                        # Simulate real-time playback speed
                        if self._realtime:
                            time.sleep(self._chunk_size / self._sample_rate)

                if not self._loop:
                    break
        except RuntimeError as e:
            logger.error(f"Error streaming WAV file {self._file_path}: {e}")
        finally:
            self._is_running = False

    @property
    def sample_rate(self) -> int:
        return self._sample_rate
