"""Microphone level metering for the voice recorder.

`AudioLevelMonitor` samples an analyser attached to a live audio source on a
background timer and keeps a smoothed RMS level that callers poll with
`current_level()`. Audio backends plug in by implementing `AudioSource` and
`AudioAnalyser`.
"""

__all__ = [
    "AudioAnalyser",
    "AudioLevelMonitor",
    "AudioSource",
    "rms_level",
]

import math
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from aibs_informatics_core.utils.logging import get_logger

logger = get_logger(__name__)

SAMPLE_INTERVAL_SECONDS = 0.016
FFT_SIZE = 512
ANALYSER_SMOOTHING = 0.22
PREVIOUS_WEIGHT = 0.28
CURRENT_WEIGHT = 0.72
SILENCE = 128


def rms_level(samples: bytes) -> float:
    """Root mean square of unsigned 8-bit time domain samples centred at 128.

    Returns:
        A level between 0 (silence) and 1.
    """
    if not samples:
        return 0.0
    total = sum(((value - SILENCE) / SILENCE) ** 2 for value in samples)
    return min(1.0, math.sqrt(total / len(samples)))


class AudioAnalyser(ABC):
    """Time domain analyser attached to an audio source."""

    @property
    @abstractmethod
    def buffer_size(self) -> int:
        """Number of samples returned per read."""

    @abstractmethod
    def read_time_domain(self, buffer: bytearray) -> bool:
        """Fill `buffer` with the latest samples. Returns False when no data is available."""

    @abstractmethod
    def close(self) -> None:
        """Disconnect the analyser and release its audio context."""


class AudioSource(ABC):
    """A live audio input, such as a microphone stream."""

    @abstractmethod
    def open_analyser(self, fft_size: int, smoothing: float) -> AudioAnalyser:
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop the underlying stream tracks."""


class AudioLevelMonitor:
    """Smoothed input level of one audio source at a time.

    Every `interval` seconds the analyser is read and the level becomes
    `0.28 * previous + 0.72 * rms`. Starting while a session is running tears the
    previous one down first, timer included. `stop()` without a running session
    does nothing.

    Example:
        ```python
        monitor = AudioLevelMonitor()
        monitor.start(microphone)
        level = monitor.current_level()
        monitor.stop()
        ```
    """

    def __init__(
        self,
        interval: float = SAMPLE_INTERVAL_SECONDS,
        on_level: Optional[Callable[[float], None]] = None,
    ):
        self.interval = interval
        self.on_level = on_level
        self._level = 0.0
        self._lock = threading.RLock()
        self._source: Optional[AudioSource] = None
        self._analyser: Optional[AudioAnalyser] = None
        self._buffer = bytearray()
        self._stopped: Optional[threading.Event] = None
        self._timer: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._analyser is not None

    def current_level(self) -> float:
        return self._level

    def start(self, source: AudioSource, run_timer: bool = True) -> None:
        """Attach to `source` and begin sampling.

        Args:
            source (AudioSource): The audio input to meter.
            run_timer (bool): Sample on a background timer. When False, the caller
                drives sampling through `sample()`.
        """
        previous_timer = None
        with self._lock:
            if self.is_running:
                logger.info("Audio monitor already running. Releasing previous session.")
                previous_timer = self._teardown()
        self._join(previous_timer)

        with self._lock:
            analyser = source.open_analyser(FFT_SIZE, ANALYSER_SMOOTHING)
            self._source = source
            self._analyser = analyser
            self._buffer = bytearray(analyser.buffer_size)
            self._level = 0.0
            if run_timer:
                self._stopped = threading.Event()
                self._timer = threading.Thread(
                    target=self._run, args=(self._stopped,), name="audio-level-monitor", daemon=True
                )
                self._timer.start()
            logger.debug(f"Audio monitor started (buffer size {analyser.buffer_size})")

    def stop(self) -> None:
        with self._lock:
            if not self.is_running:
                return
            timer = self._teardown()
        self._join(timer)
        logger.debug("Audio monitor stopped")

    def sample(self, session: Optional[threading.Event] = None) -> float:
        """Read the analyser once and update the smoothed level.

        Args:
            session (Optional[threading.Event]): Stop event of the timer calling in.
                Samples of a torn down session are ignored.
        """
        with self._lock:
            if session is not None and session.is_set():
                return self._level
            if self._analyser is None or not self._analyser.read_time_domain(self._buffer):
                return self._level
            current = rms_level(bytes(self._buffer))
            self._level = PREVIOUS_WEIGHT * self._level + CURRENT_WEIGHT * current
            level = self._level
        if self.on_level is not None:
            self.on_level(level)
        return level

    def _run(self, stopped: threading.Event) -> None:
        while not stopped.wait(self.interval):
            self.sample(stopped)

    def _join(self, timer: Optional[threading.Thread]) -> None:
        if timer is not None and timer is not threading.current_thread():
            timer.join(timeout=max(self.interval * 10, 0.1))

    def _teardown(self) -> Optional[threading.Thread]:
        """Release the running session. Returns its timer thread, to be joined unlocked."""
        timer = self._timer
        if self._stopped is not None:
            self._stopped.set()
        self._stopped = None
        self._timer = None

        analyser, source = self._analyser, self._source
        self._analyser = None
        self._source = None
        self._buffer = bytearray()
        self._level = 0.0
        if analyser is not None:
            try:
                analyser.close()
            except (OSError, RuntimeError) as e:
                logger.warning(f"Error closing audio analyser: {e}")
        if source is not None:
            try:
                source.stop()
            except (OSError, RuntimeError) as e:
                logger.warning(f"Error stopping audio source: {e}")
