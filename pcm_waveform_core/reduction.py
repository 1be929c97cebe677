# Copyright (c) mrmilbe

"""Min/max reduction of a sample buffer to one summary entry per pixel.

Position in data flow:
    viewport.py → reduction.py → SampleSummary → render.py

The render range lives in virtual sample space: ``samples_to_prepend``
silent samples, then the real buffer, then ``samples_to_append`` silent
samples. Columns that fall entirely in the silent padding stay zero.

Columns are reduced in contiguous jobs on a shared thread pool. numpy
releases the GIL inside ``min``/``max`` so jobs run in parallel. A
``threading.Event`` is polled before each column; once set, the run
returns ``None`` and nothing is delivered.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from time import perf_counter
from typing import Callable, Dict, Optional

from .config import DEFAULT_REDUCTION_CONFIG, DisplayMode, WaveformReductionConfig
from .log import dbg
from .samples import SampleBuffer, SampleSummary
from .transients import compute_weights

_POOL_LOCK = threading.Lock()
# One pool per worker count; pools are never shut down.
_POOLS: Dict[int, ThreadPoolExecutor] = {}


def worker_count(max_workers: Optional[int] = None) -> int:
    if max_workers:
        return max(1, int(max_workers))
    return max(1, os.cpu_count() or 1)


def get_worker_pool(max_workers: Optional[int] = None) -> ThreadPoolExecutor:
    """Return the shared reduction pool with ``worker_count(max_workers)`` threads."""
    size = worker_count(max_workers)
    with _POOL_LOCK:
        pool = _POOLS.get(size)
        if pool is None:
            pool = ThreadPoolExecutor(max_workers=size, thread_name_prefix=f"waveform-bucket-{size}")
            _POOLS[size] = pool
        return pool


def reduce_range(
    buffer: SampleBuffer,
    width: int,
    render_range: range,
    *,
    samples_to_prepend: int = 0,
    samples_to_append: int = 0,
    display_mode: DisplayMode = DisplayMode.NORMAL,
    cancel_event: Optional[threading.Event] = None,
    executor: Optional[Executor] = None,
    buckets_per_job: int = DEFAULT_REDUCTION_CONFIG.buckets_per_job,
) -> Optional[SampleSummary]:
    """Reduce ``render_range`` of the virtual sample space to ``width`` columns.

    Returns ``None`` when there is less than one sample per column (including
    ``width <= 0``) or when ``cancel_event`` gets set. Samples past
    ``width * samples_per_point`` are not visited.
    """
    width = int(width)
    if width <= 0:
        return None
    samples_per_point = len(render_range) // width
    if samples_per_point <= 0:
        return None

    summary = SampleSummary.zeros(width)
    data = buffer.data
    real_start = int(samples_to_prepend)
    real_end = real_start + buffer.frame_count
    lower = render_range.start

    def is_cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    def reduce_columns(first: int, last: int) -> None:
        for point in range(first, last):
            if is_cancelled():
                return
            start_v = lower + point * samples_per_point
            end_v = start_v + samples_per_point
            if end_v <= real_start or start_v >= real_end:
                continue  # padding only
            actual_start = max(start_v, real_start) - real_start
            actual_end = min(end_v, real_end) - real_start
            if actual_end <= actual_start:
                continue
            segment = data[:, actual_start:actual_end]
            # union across channels: min of minima, max of maxima
            summary.minimum[point] = segment.min(axis=1).min()
            summary.maximum[point] = segment.max(axis=1).max()

    step = max(1, int(buckets_per_job))
    pool = executor if executor is not None else get_worker_pool()
    futures = [pool.submit(reduce_columns, first, min(first + step, width)) for first in range(0, width, step)]
    for future in futures:
        future.result()

    if is_cancelled():
        return None
    if display_mode.highlights_transients:
        compute_weights(summary)
    if is_cancelled():
        return None
    return summary


class ReductionTask:
    """One cancelable reduction of a buffer with fixed virtual padding.

    Typical usage::

        task = ReductionTask(buffer, samples_to_prepend=1000)
        task.resume(800, range(0, 50000), DisplayMode.NORMAL, on_summary)
        ...
        task.cancel()  # on_summary is not called after this returns

    ``completion`` runs on the task's own thread; callers that need the
    result on another thread hand it over themselves (see ``ViewportModel``).
    """

    def __init__(
        self,
        buffer: SampleBuffer,
        samples_to_prepend: int = 0,
        samples_to_append: int = 0,
        config: Optional[WaveformReductionConfig] = None,
    ) -> None:
        self.buffer = buffer
        self.samples_to_prepend = int(samples_to_prepend)
        self.samples_to_append = int(samples_to_append)
        self.config = config if config is not None else DEFAULT_REDUCTION_CONFIG
        self._cancelled = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def cancel(self) -> None:
        """Request early termination; a pending result is dropped."""
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def run(
        self,
        width: int,
        render_range: range,
        display_mode: DisplayMode = DisplayMode.NORMAL,
    ) -> Optional[SampleSummary]:
        """Reduce synchronously on the calling thread (columns still use the pool)."""
        t0 = perf_counter()
        summary = reduce_range(
            self.buffer,
            width,
            render_range,
            samples_to_prepend=self.samples_to_prepend,
            samples_to_append=self.samples_to_append,
            display_mode=display_mode,
            cancel_event=self._cancelled,
            executor=get_worker_pool(self.config.max_workers),
            buckets_per_job=self.config.buckets_per_job,
        )
        elapsed_ms = (perf_counter() - t0) * 1000.0
        if self.cancelled:
            dbg(f"[Reduction] cancelled after {elapsed_ms:.1f} ms ({render_range.start}..{render_range.stop}, w={width})")
        elif summary is None:
            dbg(f"[Reduction] skipped: {len(render_range)} samples over {width} px")
        else:
            dbg(f"[Reduction] {len(render_range)} samples -> {width} px in {elapsed_ms:.1f} ms ({display_mode.value})")
        return summary

    def resume(
        self,
        width: int,
        render_range: range,
        display_mode: DisplayMode,
        completion: Callable[[SampleSummary], None],
    ) -> None:
        """Start the reduction on a background thread and return immediately."""

        def work() -> None:
            summary = self.run(width, render_range, display_mode)
            if summary is None or self.cancelled:
                return
            completion(summary)

        self._thread = threading.Thread(target=work, name="waveform-reduction", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for a resumed run to end. Returns False if still running."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()
