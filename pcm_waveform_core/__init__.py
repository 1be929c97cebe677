# Copyright (c) mrmilbe

"""Cancelable waveform peak reduction and viewport mapping."""

from .config import DisplayMode, WaveformReductionConfig, WaveformRenderConfig
from .samples import SampleBuffer, SampleData, SampleSummary, preview_buffer
from .transients import compute_weights
from .scaling import scale_amplitude, scale_amplitudes
from .reduction import ReductionTask, reduce_range
from .viewport import ViewportModel, create_model, pan_range, zoom_range

__all__ = [
    "DisplayMode",
    "WaveformReductionConfig",
    "WaveformRenderConfig",
    "SampleBuffer",
    "SampleData",
    "SampleSummary",
    "preview_buffer",
    "compute_weights",
    "scale_amplitude",
    "scale_amplitudes",
    "ReductionTask",
    "reduce_range",
    "ViewportModel",
    "create_model",
    "pan_range",
    "zoom_range",
]
