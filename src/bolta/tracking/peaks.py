"""Local-maximum detection over the buffered magnitude series."""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence

from loguru import logger

from .buffer import SampleBuffer
from .models import PeakCandidate


class PeakDetector:
    """Flags the midpoint of a centred window when it is a strict maximum.

    The midpoint qualifies only if its magnitude is strictly greater than
    every other magnitude in the window and strictly greater than
    ``peak_min``.  Equal magnitudes anywhere in the window disqualify it,
    so a sensor plateau never produces more than zero peaks.

    Args:
        window_size: Odd number of samples in the detection window.
        peak_min: Noise floor; the peak magnitude must exceed it.
        history_size: Capacity of the recent-peak history.
    """

    def __init__(self, window_size: int = 5, peak_min: float = 6.0, history_size: int = 10):
        if window_size < 3 or window_size % 2 == 0:
            raise ValueError(f"window_size must be an odd number >= 3, got {window_size}")
        self.window_size = window_size
        self.peak_min = peak_min
        self._history: deque[PeakCandidate] = deque(maxlen=history_size)

    @property
    def history(self) -> list[PeakCandidate]:
        return list(self._history)

    def is_peak(self, magnitudes: Sequence[float]) -> bool:
        """Pure check on a window of magnitudes (length must equal window_size)."""
        if len(magnitudes) != self.window_size:
            return False
        mid = self.window_size // 2
        center = magnitudes[mid]
        if center <= self.peak_min:
            return False
        return all(m < center for i, m in enumerate(magnitudes) if i != mid)

    def detect(self, buffer: SampleBuffer) -> PeakCandidate | None:
        """Check the buffer's newest window; return the peak if its midpoint is one."""
        window = buffer.window(self.window_size)
        if not window:
            return None
        if not self.is_peak([entry.magnitude for entry in window]):
            return None

        center = window[self.window_size // 2]
        candidate = PeakCandidate(magnitude=center.magnitude, timestamp=center.timestamp)
        self._history.append(candidate)
        logger.debug(f"Peak at t={candidate.timestamp} magnitude={candidate.magnitude:.2f}")
        return candidate

    def reset(self) -> None:
        self._history.clear()
