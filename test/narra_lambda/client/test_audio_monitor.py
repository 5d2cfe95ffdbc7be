import threading
from test.base import BaseTest
from typing import List

from narra_lambda.client.audio_monitor import (
    AudioAnalyser,
    AudioLevelMonitor,
    AudioSource,
    rms_level,
)


class FakeAnalyser(AudioAnalyser):
    def __init__(self, samples: bytes = bytes([0] * 4), available: bool = True):
        self.samples = samples
        self.available = available
        self.closed = False

    @property
    def buffer_size(self) -> int:
        return len(self.samples)

    def read_time_domain(self, buffer: bytearray) -> bool:
        if not self.available:
            return False
        buffer[:] = self.samples
        return True

    def close(self) -> None:
        self.closed = True


class FakeSource(AudioSource):
    def __init__(self, analyser: FakeAnalyser):
        self.analyser = analyser
        self.opened_with: List[tuple] = []
        self.stopped = False

    def open_analyser(self, fft_size: int, smoothing: float) -> AudioAnalyser:
        self.opened_with.append((fft_size, smoothing))
        return self.analyser

    def stop(self) -> None:
        self.stopped = True


class BrokenAnalyser(FakeAnalyser):
    def close(self) -> None:
        raise RuntimeError("context already closed")


class RmsLevelTests(BaseTest):
    def test__rms_level(self):
        self.assertEqual(rms_level(b""), 0.0)
        self.assertEqual(rms_level(bytes([128] * 8)), 0.0)
        self.assertEqual(rms_level(bytes([0] * 8)), 1.0)
        self.assertAlmostEqual(rms_level(bytes([255, 1])), 127 / 128)


class AudioLevelMonitorTests(BaseTest):
    def test__sample__smooths_level(self):
        source = FakeSource(FakeAnalyser())
        monitor = AudioLevelMonitor()
        monitor.start(source, run_timer=False)

        self.assertEqual(source.opened_with, [(512, 0.22)])
        self.assertAlmostEqual(monitor.sample(), 0.72)
        self.assertAlmostEqual(monitor.sample(), 0.28 * 0.72 + 0.72)
        self.assertAlmostEqual(monitor.current_level(), 0.9216)

    def test__sample__keeps_level_without_data(self):
        analyser = FakeAnalyser(available=False)
        monitor = AudioLevelMonitor()
        monitor.start(FakeSource(analyser), run_timer=False)

        self.assertEqual(monitor.sample(), 0.0)

    def test__sample__ignores_stopped_session(self):
        monitor = AudioLevelMonitor()
        monitor.start(FakeSource(FakeAnalyser()), run_timer=False)
        stopped = threading.Event()
        stopped.set()

        self.assertEqual(monitor.sample(stopped), 0.0)

    def test__sample__not_running(self):
        self.assertEqual(AudioLevelMonitor().sample(), 0.0)

    def test__stop__releases_resources(self):
        source = FakeSource(FakeAnalyser())
        monitor = AudioLevelMonitor()
        monitor.start(source, run_timer=False)
        monitor.sample()

        monitor.stop()

        self.assertFalse(monitor.is_running)
        self.assertTrue(source.analyser.closed)
        self.assertTrue(source.stopped)
        self.assertEqual(monitor.current_level(), 0.0)
        # Stopping twice is a no-op
        monitor.stop()

    def test__start__tears_down_previous_session(self):
        first = FakeSource(FakeAnalyser())
        second = FakeSource(FakeAnalyser(bytes([128] * 4)))
        monitor = AudioLevelMonitor()
        monitor.start(first, run_timer=False)
        monitor.sample()

        monitor.start(second, run_timer=False)

        self.assertTrue(first.analyser.closed)
        self.assertTrue(first.stopped)
        self.assertFalse(second.stopped)
        self.assertEqual(monitor.current_level(), 0.0)
        self.assertEqual(monitor.sample(), 0.0)

    def test__stop__tolerates_close_errors(self):
        source = FakeSource(BrokenAnalyser())
        monitor = AudioLevelMonitor()
        monitor.start(source, run_timer=False)

        monitor.stop()

        self.assertFalse(monitor.is_running)
        self.assertTrue(source.stopped)

    def test__start__timer_reports_levels(self):
        levels: List[float] = []
        reported = threading.Event()

        def on_level(level: float) -> None:
            levels.append(level)
            if len(levels) >= 2:
                reported.set()

        monitor = AudioLevelMonitor(interval=0.001, on_level=on_level)
        monitor.start(FakeSource(FakeAnalyser()))
        try:
            self.assertTrue(reported.wait(timeout=5))
        finally:
            monitor.stop()

        self.assertAlmostEqual(levels[0], 0.72)
        self.assertGreater(levels[1], levels[0])
