"""Bounded, time-ordered price sample buffer."""

import bisect
from collections import deque
from typing import Deque, List, Optional

from .models import PriceSample


class PriceHistory:
    """
    Fixed-capacity FIFO of price samples.

    Samples must be appended in non-decreasing timestamp order; once full,
    the oldest sample is evicted first.
    """

    def __init__(self, capacity: int = 180):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._samples: Deque[PriceSample] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._samples)

    def append(self, sample: PriceSample) -> None:
        if self._samples and sample.timestamp < self._samples[-1].timestamp:
            raise ValueError("samples must be appended in time order")
        self._samples.append(sample)

    def clear(self) -> None:
        self._samples.clear()

    def samples(self) -> List[PriceSample]:
        return list(self._samples)

    @property
    def latest(self) -> Optional[PriceSample]:
        return self._samples[-1] if self._samples else None


def nearest_sample(samples: List[PriceSample], timestamp: float) -> Optional[PriceSample]:
    """Sample with minimum absolute time distance; earlier sample wins ties."""
    if not samples:
        return None

    times = [s.timestamp for s in samples]
    idx = bisect.bisect_left(times, timestamp)
    if idx == 0:
        return samples[0]
    if idx == len(samples):
        return samples[-1]

    before, after = samples[idx - 1], samples[idx]
    if after.timestamp - timestamp < timestamp - before.timestamp:
        return after
    return before
