# Copyright (c) mrmilbe

"""Sample data structures: decoded buffers and per-pixel summaries.

A ``SampleBuffer`` holds decoded PCM as float32 ``(channels, frames)``.
A ``SampleSummary`` holds one min/max/transient-weight triple per pixel
column, stored as three parallel float32 arrays.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np


@dataclass(frozen=True)
class SampleData:
    """Summary of one pixel column."""
    min: float = 0.0
    max: float = 0.0
    transient_weight: float = 0.0

    @classmethod
    def zero(cls) -> "SampleData":
        return ZERO


ZERO = SampleData(0.0, 0.0, 0.0)


class SampleSummary:
    """Ordered per-pixel summary sequence.

    Index ``i`` covers the virtual range
    ``[lower + i * samples_per_point, lower + (i + 1) * samples_per_point)``
    of the render range it was reduced from. Untouched entries are zero.
    """

    __slots__ = ("minimum", "maximum", "transient_weight")

    def __init__(self, minimum: np.ndarray, maximum: np.ndarray, transient_weight: np.ndarray) -> None:
        if not (len(minimum) == len(maximum) == len(transient_weight)):
            raise ValueError("Summary arrays must have equal length")
        self.minimum = np.asarray(minimum, dtype=np.float32)
        self.maximum = np.asarray(maximum, dtype=np.float32)
        self.transient_weight = np.asarray(transient_weight, dtype=np.float32)

    @classmethod
    def zeros(cls, count: int) -> "SampleSummary":
        count = max(0, int(count))
        return cls(
            np.zeros(count, dtype=np.float32),
            np.zeros(count, dtype=np.float32),
            np.zeros(count, dtype=np.float32),
        )

    @classmethod
    def from_samples(cls, samples: Sequence[SampleData]) -> "SampleSummary":
        return cls(
            np.array([s.min for s in samples], dtype=np.float32),
            np.array([s.max for s in samples], dtype=np.float32),
            np.array([s.transient_weight for s in samples], dtype=np.float32),
        )

    def __len__(self) -> int:
        return len(self.minimum)

    def __getitem__(self, index: int) -> SampleData:
        return SampleData(
            float(self.minimum[index]),
            float(self.maximum[index]),
            float(self.transient_weight[index]),
        )

    def __iter__(self) -> Iterator[SampleData]:
        for i in range(len(self)):
            yield self[i]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SampleSummary):
            return NotImplemented
        return (
            np.array_equal(self.minimum, other.minimum)
            and np.array_equal(self.maximum, other.maximum)
            and np.array_equal(self.transient_weight, other.transient_weight)
        )

    def __repr__(self) -> str:
        return f"SampleSummary(len={len(self)})"

    def copy(self) -> "SampleSummary":
        return SampleSummary(self.minimum.copy(), self.maximum.copy(), self.transient_weight.copy())


class SampleBuffer:
    """Read-only decoded multichannel float buffer, shape ``(channels, frames)``.

    C-contiguous float32 input is wrapped without copying, as a read-only
    view of the caller's array. Anything else (float64, ints, transposed or
    strided arrays) is copied and converted to float32 once, here; later
    changes to the caller's array are then not seen by the buffer.
    """

    __slots__ = ("_data",)

    def __init__(self, data: np.ndarray) -> None:
        data = np.asarray(data)
        if data.ndim != 2:
            raise ValueError(f"Expected a (channels, frames) array, got shape {data.shape}")
        if data.shape[0] == 0:
            raise ValueError("Sample buffer needs at least one channel")
        if not np.issubdtype(data.dtype, np.number):
            raise ValueError(f"Sample buffer must be numeric, got {data.dtype}")
        # view so the caller's own array stays writeable; copies only on dtype
        # or layout mismatch
        data = np.ascontiguousarray(data, dtype=np.float32).view()
        data.flags.writeable = False
        self._data = data

    @classmethod
    def from_array(cls, samples: np.ndarray, channels_first: bool = False) -> "SampleBuffer":
        """Build from mono ``(frames,)`` or interleaved ``(frames, channels)`` data."""
        samples = np.asarray(samples)
        if samples.ndim == 1:
            return cls(samples.reshape(1, -1))
        if samples.ndim == 2:
            return cls(samples if channels_first else samples.T)
        raise ValueError(f"Expected 1-D or 2-D sample array, got {samples.ndim}-D")

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def frame_count(self) -> int:
        return int(self._data.shape[1])

    @property
    def channel_count(self) -> int:
        return int(self._data.shape[0])

    def channel(self, index: int) -> np.ndarray:
        return self._data[index]

    def __repr__(self) -> str:
        return f"SampleBuffer(channels={self.channel_count}, frames={self.frame_count})"


def preview_buffer(duration: float = 10.0, sample_rate: int = 44100) -> SampleBuffer:
    """Synthetic mono buffer that looks like real audio, for demos and previews.

    A 110/440/880 Hz mix under a 100 ms fade in/out and a slow 0.5 Hz swell.
    """
    frame_count = max(0, int(duration * sample_rate))
    i = np.arange(frame_count, dtype=np.float64)
    t = i / float(sample_rate)
    base = np.sin(t * 440.0 * 2.0 * np.pi) * 0.3
    harmonic = np.sin(t * 880.0 * 2.0 * np.pi) * 0.15
    sub = np.sin(t * 110.0 * 2.0 * np.pi) * 0.2
    fade = sample_rate / 10.0
    envelope = np.minimum(1.0, i / fade) * np.minimum(1.0, (frame_count - i) / fade)
    variation = 0.5 + 0.5 * np.sin(t * 2.0 * np.pi * 0.5)
    signal = (base + harmonic + sub) * envelope * variation
    return SampleBuffer.from_array(signal.astype(np.float32))
