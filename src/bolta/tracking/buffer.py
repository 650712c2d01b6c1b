"""Fixed-capacity ring buffer of recent motion samples."""

from __future__ import annotations

from collections import deque

from .models import BufferedSample, MotionSample


class SampleBuffer:
    """The most recent samples with their cached magnitudes.

    The oldest entry is evicted once capacity is reached, so ``len(buffer)``
    never exceeds ``capacity``.
    """

    def __init__(self, capacity: int = 10):
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: deque[BufferedSample] = deque(maxlen=capacity)

    def push(self, sample: MotionSample) -> BufferedSample:
        entry = BufferedSample.from_sample(sample)
        self._entries.append(entry)
        return entry

    def window(self, size: int) -> list[BufferedSample]:
        """Return the last *size* entries, oldest first.

        Returns an empty list when fewer than *size* entries are buffered.
        """
        if size <= 0 or len(self._entries) < size:
            return []
        return list(self._entries)[-size:]

    def latest(self) -> BufferedSample | None:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
