# Copyright (c) mrmilbe

from __future__ import annotations

import math
import time
from queue import Empty, Queue
from typing import Callable, Optional, Tuple

import numpy as np

from .config import DEFAULT_REDUCTION_CONFIG, DisplayMode, WaveformReductionConfig
from .log import dbg
from .reduction import ReductionTask
from .samples import SampleBuffer, SampleSummary

# Granularity of wait_for_update's check for a task that ended without a result.
_WAIT_POLL_SECONDS = 0.05


class ViewportModel:
    """Visible window into a padded (virtual) sample space.

    Owns the render range, pixel width, padding and display mode. Every
    change cancels the reduction in flight and starts a new one. Finished
    reductions are queued; the owning thread applies them with
    ``process_deliveries()`` (or ``wait_for_update()``), which updates
    ``sample_data`` and calls ``on_update``. Results from superseded runs
    are dropped, so only the latest request is ever observed.
    """

    def __init__(
        self,
        buffer: SampleBuffer,
        samples_to_prepend: int = 0,
        samples_to_append: int = 0,
        global_total_samples: Optional[int] = None,
        display_mode: DisplayMode = DisplayMode.NORMAL,
        config: Optional[WaveformReductionConfig] = None,
        on_update: Optional[Callable[[SampleSummary], None]] = None,
    ) -> None:
        _check_padding(samples_to_prepend, samples_to_append)
        self.buffer = buffer
        self.config = config if config is not None else DEFAULT_REDUCTION_CONFIG
        self.on_update = on_update
        self._samples_to_prepend = int(samples_to_prepend)
        self._samples_to_append = int(samples_to_append)
        self._global_total_samples = None if global_total_samples is None else int(global_total_samples)
        self._display_mode = DisplayMode.parse(display_mode)
        self._render_range = range(0, self.effective_total_samples)
        self._width = 0.0
        self.sample_data = SampleSummary.zeros(0)
        self.alignment_sample_offset = 0
        self._task: Optional[ReductionTask] = None
        self._deliveries: "Queue[Tuple[ReductionTask, SampleSummary]]" = Queue()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def samples_to_prepend(self) -> int:
        return self._samples_to_prepend

    @property
    def samples_to_append(self) -> int:
        return self._samples_to_append

    @property
    def global_total_samples(self) -> Optional[int]:
        return self._global_total_samples

    @property
    def render_range(self) -> range:
        return self._render_range

    @property
    def width(self) -> float:
        return self._width

    @property
    def display_mode(self) -> DisplayMode:
        return self._display_mode

    @property
    def total_virtual_samples(self) -> int:
        return self.buffer.frame_count + self._samples_to_prepend + self._samples_to_append

    @property
    def effective_total_samples(self) -> int:
        if self._global_total_samples is not None:
            return self._global_total_samples
        return self.total_virtual_samples

    @property
    def visible_range_start(self) -> float:
        total = self.effective_total_samples
        if total <= 0:
            return 0.0
        return self._render_range.start / total

    @property
    def visible_range_end(self) -> float:
        total = self.effective_total_samples
        if total <= 0:
            return 1.0
        return self._render_range.stop / total

    @property
    def is_at_leading_edge(self) -> bool:
        return self._render_range.start == 0

    @property
    def is_at_trailing_edge(self) -> bool:
        return self._render_range.stop == self.effective_total_samples

    # ------------------------------------------------------------------
    # Mutations (each one regenerates)
    # ------------------------------------------------------------------
    def set_width(self, width: float) -> None:
        self._width = max(0.0, float(width))
        self.refresh()

    def set_render_range(self, render_range: range) -> None:
        self._render_range = _check_range(render_range)
        self.refresh()

    def set_global_total(self, total: Optional[int]) -> None:
        self._global_total_samples = None if total is None else int(total)
        self.refresh()

    def set_display_mode(self, mode: DisplayMode) -> None:
        self._display_mode = DisplayMode.parse(mode)
        self.refresh()

    def update_padding(self, samples_to_prepend: int, samples_to_append: int) -> None:
        """Change padding and shift the render range so the same audio stays in view."""
        _check_padding(samples_to_prepend, samples_to_append)
        prepend_delta = int(samples_to_prepend) - self._samples_to_prepend
        self._samples_to_prepend = int(samples_to_prepend)
        self._samples_to_append = int(samples_to_append)

        count = len(self._render_range)
        new_start = max(0, self._render_range.start + prepend_delta)
        new_end = min(new_start + count, self.total_virtual_samples)
        self.set_render_range(range(new_start, max(new_start, new_end)))

    def reset_padding(self, samples_to_prepend: int, samples_to_append: int) -> None:
        """Change padding without moving the render range; the audio moves in view."""
        _check_padding(samples_to_prepend, samples_to_append)
        self._samples_to_prepend = int(samples_to_prepend)
        self._samples_to_append = int(samples_to_append)
        self.refresh()

    def restore_state(self, samples_to_prepend: int, samples_to_append: int, render_range: range) -> None:
        """Overwrite padding and render range together (undo/revert)."""
        _check_padding(samples_to_prepend, samples_to_append)
        self._samples_to_prepend = int(samples_to_prepend)
        self._samples_to_append = int(samples_to_append)
        self._render_range = _check_range(render_range)
        self.refresh()

    def zoom(self, factor: float) -> None:
        """Zoom around the range midpoint; ``factor > 1`` zooms in."""
        new_range = zoom_range(self._render_range, factor, self.effective_total_samples)
        if new_range != self._render_range:
            self.set_render_range(new_range)

    def pan(self, offset: float, track_alignment: bool = False) -> int:
        """Move the range by a pixel offset, keeping its length inside the total.

        Returns the applied shift in samples (``old_start - new_start``); with
        ``track_alignment`` it is also added to ``alignment_sample_offset``.
        """
        start = self.offset_sample(self._render_range.start, offset)
        new_range = pan_range(self._render_range, start, self.effective_total_samples)
        difference = self._render_range.start - new_range.start
        if track_alignment:
            self.alignment_sample_offset += difference
        if new_range != self._render_range:
            self.set_render_range(new_range)
        return difference

    # ------------------------------------------------------------------
    # Regeneration and delivery
    # ------------------------------------------------------------------
    def refresh(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        if self._width <= 0:
            dbg("[Viewport] width is 0, summary not requested")
            return
        task = ReductionTask(
            self.buffer,
            samples_to_prepend=self._samples_to_prepend,
            samples_to_append=self._samples_to_append,
            config=self.config,
        )
        self._task = task
        task.resume(
            int(self._width),
            self._render_range,
            self._display_mode,
            lambda summary: self._deliveries.put((task, summary)),
        )

    def process_deliveries(self) -> int:
        """Apply finished reductions on the calling (owning) thread.

        Returns the number of summaries applied (0 or 1 in practice).
        """
        applied = 0
        while True:
            try:
                task, summary = self._deliveries.get_nowait()
            except Empty:
                return applied
            if self._accept(task, summary):
                applied += 1

    def wait_for_update(self, timeout: Optional[float] = None) -> Optional[SampleSummary]:
        """Block until the current request delivers, then apply it.

        Returns ``None`` on timeout, or when no request is pending or it ended
        without a result (degenerate geometry).
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            task = self._task
            if task is None:
                return None
            wait = _WAIT_POLL_SECONDS
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                wait = min(wait, remaining)
            try:
                delivered_task, summary = self._deliveries.get(timeout=wait)
            except Empty:
                if task.join(0) and self._deliveries.empty():
                    return None
                continue
            if self._accept(delivered_task, summary):
                return summary

    def close(self, wait: bool = False, timeout: Optional[float] = None) -> bool:
        """Cancel the reduction in flight.

        With ``wait`` the call also joins the task's thread (see
        ``ReductionTask.join``). Returns False if it is still running after
        ``timeout``.
        """
        task, self._task = self._task, None
        if task is None:
            return True
        task.cancel()
        if wait:
            return task.join(timeout)
        return True

    def _accept(self, task: ReductionTask, summary: SampleSummary) -> bool:
        if task is not self._task or task.cancelled:
            dbg("[Viewport] dropped result of a superseded reduction")
            return False
        self.sample_data = summary
        if self.on_update is not None:
            self.on_update(summary)
        return True

    # ------------------------------------------------------------------
    # Conversions
    # ------------------------------------------------------------------
    def position_to_sample(self, position: float) -> int:
        if self._width <= 0:
            return self._render_range.start
        ratio = len(self._render_range) / self._width
        sample = self._render_range.start + _round_half_away(position * ratio)
        return _clamp(sample, 0, self.effective_total_samples)

    def sample_to_position(self, sample: int) -> float:
        count = len(self._render_range)
        if self._width <= 0 or count == 0:
            return 0.0
        return (sample - self._render_range.start) * self._width / count

    def offset_sample(self, old_sample: int, offset: float) -> int:
        if self._width <= 0:
            return old_sample
        ratio = len(self._render_range) / self._width
        sample = old_sample + _round_half_away(offset * ratio)
        return _clamp(sample, 0, self.effective_total_samples)


# ----------------------------------------------------------------------
# Range policy helpers
# ----------------------------------------------------------------------

def zoom_range(render_range: range, factor: float, total: int) -> range:
    """Scale the range length by ``1 / factor`` around its midpoint, within ``[0, total]``.

    Returns the input unchanged for ``factor <= 0`` or when the result would
    be empty.
    """
    if factor <= 0:
        return render_range
    count = len(render_range)
    new_count = int(count / factor)
    # truncate toward zero so zoom in and zoom out are symmetric
    delta = int((count - new_count) / 2)
    start = max(0, render_range.start + delta)
    end = min(render_range.stop - delta, total)
    if end <= start:
        return render_range
    return range(start, end)


def pan_range(render_range: range, start: int, total: int) -> range:
    """Move the range to ``start``, sliding it back inside ``[0, total]`` if needed."""
    count = len(render_range)
    end = start + count
    if start < 0:
        start = 0
        end = count
    elif end > total:
        end = total
        start = max(0, end - count)
    return range(start, end)


def create_model(
    samples,
    samples_to_prepend: int = 0,
    samples_to_append: int = 0,
    global_total_samples: Optional[int] = None,
    *,
    channels_first: bool = False,
    display_mode: DisplayMode = DisplayMode.NORMAL,
    config: Optional[WaveformReductionConfig] = None,
    on_update: Optional[Callable[[SampleSummary], None]] = None,
) -> Optional[ViewportModel]:
    """Build a model from a sample array, or return None if the input is unusable."""
    try:
        if isinstance(samples, SampleBuffer):
            buffer = samples
        else:
            buffer = SampleBuffer.from_array(np.asarray(samples), channels_first=channels_first)
        return ViewportModel(
            buffer,
            samples_to_prepend=samples_to_prepend,
            samples_to_append=samples_to_append,
            global_total_samples=global_total_samples,
            display_mode=display_mode,
            config=config,
            on_update=on_update,
        )
    except (TypeError, ValueError) as e:
        dbg(f"[Viewport] Failed to create model: {e}")
        return None


def _check_padding(samples_to_prepend: int, samples_to_append: int) -> None:
    if samples_to_prepend < 0 or samples_to_append < 0:
        raise ValueError(f"Padding must be >= 0, got prepend={samples_to_prepend}, append={samples_to_append}")


def _check_range(render_range: range) -> range:
    if not isinstance(render_range, range):
        raise ValueError(f"Render range must be a range, got {type(render_range).__name__}")
    if render_range.step != 1:
        raise ValueError(f"Render range must have step 1, got {render_range.step}")
    if render_range.start < 0:
        raise ValueError(f"Render range must start at >= 0, got {render_range.start}")
    return render_range


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _clamp(value: int, low: int, high: int) -> int:
    return min(max(low, value), high)
