# Copyright (c) mrmilbe

"""Tests for the viewport model: padding, conversions, zoom/pan and delivery."""

from __future__ import annotations

import threading

import numpy as np
import pytest

from pcm_waveform_core.config import DisplayMode, WaveformReductionConfig
from pcm_waveform_core.samples import SampleBuffer, SampleData
from pcm_waveform_core.viewport import ViewportModel, create_model, pan_range, zoom_range

TIMEOUT = 10.0


def _model(frames: int = 10000, **kwargs) -> ViewportModel:
    signal = np.sin(np.arange(frames, dtype=np.float64) * 0.01).astype(np.float32)
    return ViewportModel(SampleBuffer.from_array(signal), **kwargs)


def _close(*models: ViewportModel) -> None:
    for model in models:
        assert model.close(wait=True, timeout=TIMEOUT)


def _join_reductions() -> None:
    for thread in threading.enumerate():
        if thread.name == "waveform-reduction":
            thread.join(TIMEOUT)


# ----------------------------------------------------------------------
# Padding
# ----------------------------------------------------------------------

def test_initial_range_covers_effective_total() -> None:
    padded = _model(samples_to_prepend=100, samples_to_append=50)
    assert padded.total_virtual_samples == 10150
    assert padded.render_range == range(0, 10150)

    shared = _model(global_total_samples=20000)
    assert shared.effective_total_samples == 20000
    assert shared.render_range == range(0, 20000)
    _close(padded, shared)


def test_update_padding_shifts_render_range() -> None:
    model = _model()
    assert model.render_range.start == 0

    model.update_padding(1000, 0)

    assert model.samples_to_prepend == 1000
    assert model.render_range.start == 1000
    assert len(model.render_range) == 10000
    assert model.total_virtual_samples == 11000
    _close(model)


def test_update_padding_preserves_count() -> None:
    model = _model()
    model.update_padding(500, 500)
    assert len(model.render_range) == 10000
    assert model.render_range == range(500, 10500)
    _close(model)


def test_update_padding_clamps_at_zero() -> None:
    model = _model()
    model.restore_state(2000, 0, range(500, 4500))
    model.update_padding(0, 0)
    assert model.render_range == range(0, 4000)
    _close(model)


def test_update_padding_clamps_at_total() -> None:
    model = _model()
    model.restore_state(0, 0, range(6000, 10000))
    model.update_padding(3000, 0)
    assert model.render_range.start == 9000
    assert model.render_range.stop == 13000
    _close(model)


def test_reset_padding_keeps_render_range() -> None:
    model = _model()
    model.set_width(100)
    model.reset_padding(1000, 0)
    assert model.render_range.start == 0
    assert model.samples_to_prepend == 1000

    model.reset_padding(500, 300)
    assert model.samples_to_prepend == 500
    assert model.samples_to_append == 300
    assert model.render_range == range(0, 10000)
    _close(model)


def test_restore_state_overwrites_padding_and_range() -> None:
    model = _model()
    original = (model.samples_to_prepend, model.samples_to_append, model.render_range)
    model.update_padding(2000, 1000)
    assert (model.samples_to_prepend, model.samples_to_append, model.render_range) != original

    model.restore_state(*original)
    assert model.samples_to_prepend == 0
    assert model.samples_to_append == 0
    assert model.render_range == range(0, 10000)
    _close(model)


def test_total_virtual_samples_invariant() -> None:
    model = _model(frames=1234)
    for prepend, append in [(0, 0), (10, 0), (0, 99), (500, 700)]:
        model.reset_padding(prepend, append)
        assert model.total_virtual_samples == 1234 + prepend + append
    _close(model)


def test_invalid_arguments_raise() -> None:
    model = _model()
    with pytest.raises(ValueError):
        model.update_padding(-1, 0)
    with pytest.raises(ValueError):
        model.reset_padding(0, -5)
    with pytest.raises(ValueError):
        model.set_render_range(range(0, 100, 2))
    with pytest.raises(ValueError):
        model.set_render_range((0, 100))
    _close(model)


# ----------------------------------------------------------------------
# Derived reads and conversions
# ----------------------------------------------------------------------

def test_visible_range_and_edges() -> None:
    model = _model()
    assert model.visible_range_start == 0.0
    assert model.visible_range_end == 1.0
    assert model.is_at_leading_edge
    assert model.is_at_trailing_edge

    model.set_render_range(range(2500, 5000))
    assert model.visible_range_start == 0.25
    assert model.visible_range_end == 0.5
    assert not model.is_at_leading_edge
    assert not model.is_at_trailing_edge

    model.set_global_total(20000)
    assert model.visible_range_end == 0.25
    _close(model)


def test_conversions() -> None:
    model = _model()
    model.set_width(100)
    assert model.position_to_sample(50) == 5000
    assert model.sample_to_position(5000) == 50.0
    assert model.offset_sample(5000, 10) == 6000
    assert model.offset_sample(5000, -10) == 4000
    _close(model)


def test_conversions_clamp_to_effective_total() -> None:
    model = _model()
    model.set_width(100)
    assert model.position_to_sample(250) == 10000
    assert model.position_to_sample(-5) == 0
    assert model.offset_sample(100, -50) == 0
    assert model.offset_sample(9000, 50) == 10000
    _close(model)


def test_position_to_sample_rounds() -> None:
    model = _model()
    model.set_render_range(range(0, 1000))
    model.set_width(300)
    assert model.position_to_sample(1) == 3
    assert model.position_to_sample(2) == 7
    _close(model)


def test_conversions_without_width_are_no_ops() -> None:
    model = _model()
    model.set_render_range(range(100, 900))
    assert model.position_to_sample(40) == 100
    assert model.offset_sample(321, 40) == 321
    assert model.sample_to_position(500) == 0.0
    _close(model)


# ----------------------------------------------------------------------
# Zoom and pan
# ----------------------------------------------------------------------

def test_zoom_range_recenters() -> None:
    assert zoom_range(range(0, 10000), 2.0, 10000) == range(2500, 7500)
    assert zoom_range(range(2500, 7500), 0.5, 10000) == range(0, 10000)
    # zooming out past the ends clamps to the total
    assert zoom_range(range(0, 10000), 0.5, 10000) == range(0, 10000)
    assert zoom_range(range(0, 10000), 0.0, 10000) == range(0, 10000)
    assert zoom_range(range(0, 10), 100.0, 10) == range(0, 10)


def test_pan_range_preserves_length() -> None:
    assert pan_range(range(2500, 7500), 3000, 10000) == range(3000, 8000)
    assert pan_range(range(2500, 7500), 7500, 10000) == range(5000, 10000)
    assert pan_range(range(2500, 7500), -10, 10000) == range(0, 5000)


def test_model_zoom_and_pan() -> None:
    model = _model()
    model.set_width(100)
    model.zoom(2.0)
    assert model.render_range == range(2500, 7500)

    shift = model.pan(10)
    assert model.render_range == range(3000, 8000)
    assert shift == -500
    assert model.alignment_sample_offset == 0
    _close(model)


def test_alignment_pan_accumulates_applied_shift() -> None:
    model = _model()
    model.set_width(100)
    model.zoom(2.0)

    # requested +5000 samples, only +2500 fit before the end
    shift = model.pan(100, track_alignment=True)
    assert model.render_range == range(5000, 10000)
    assert shift == -2500
    assert model.alignment_sample_offset == -2500

    model.pan(-20, track_alignment=True)
    assert model.render_range == range(4000, 9000)
    assert model.alignment_sample_offset == -1500
    _close(model)


# ----------------------------------------------------------------------
# Regeneration and delivery
# ----------------------------------------------------------------------

def test_no_request_without_width() -> None:
    model = _model()
    model.set_render_range(range(0, 5000))
    assert model.wait_for_update(timeout=0.5) is None
    assert len(model.sample_data) == 0
    _close(model)


def test_delivery_updates_sample_data_and_notifies() -> None:
    received = []
    model = _model(on_update=received.append)
    model.set_width(100)

    summary = model.wait_for_update(timeout=TIMEOUT)

    assert summary is not None
    assert len(summary) == 100
    assert model.sample_data is summary
    assert received == [summary]
    _close(model)


def test_second_request_supersedes_first() -> None:
    received = []
    model = _model(frames=400000, on_update=received.append)
    model.set_width(400)
    model.set_width(250)

    summary = model.wait_for_update(timeout=TIMEOUT)
    _join_reductions()
    model.process_deliveries()

    assert summary is not None
    assert len(summary) == 250
    assert len(received) == 1
    assert received[0] is summary
    _close(model)


def test_process_deliveries_applies_pending_result() -> None:
    model = _model()
    model.set_width(64)
    _join_reductions()
    assert model.process_deliveries() == 1
    assert len(model.sample_data) == 64
    assert model.process_deliveries() == 0
    _close(model)


def test_close_cancels_and_joins_the_running_task() -> None:
    received = []
    model = _model(frames=2000000, on_update=received.append)
    model.set_width(800)

    assert model.close(wait=True, timeout=TIMEOUT)

    assert model.process_deliveries() == 0
    assert model.wait_for_update(timeout=0.2) is None
    assert received == []
    # a second close has nothing to wait for
    assert model.close(wait=True, timeout=0.0)


def test_models_with_different_worker_counts_deliver_independently() -> None:
    buffer = SampleBuffer.from_array(np.sin(np.arange(500000, dtype=np.float64) * 0.003))
    first = ViewportModel(buffer, config=WaveformReductionConfig(max_workers=2))
    second = ViewportModel(buffer, config=WaveformReductionConfig(max_workers=3))
    errors = []
    previous_hook = threading.excepthook
    threading.excepthook = lambda args: errors.append(repr(args.exc_value))
    try:
        for i in range(10):
            for model in (first, second):
                model.set_width(300 + i)
                summary = model.wait_for_update(timeout=TIMEOUT)
                assert summary is not None
                assert len(summary) == 300 + i
                assert model.sample_data is summary
        _close(first, second)
    finally:
        threading.excepthook = previous_hook
    assert errors == []


def test_padding_reset_moves_audio_in_view() -> None:
    model = ViewportModel(SampleBuffer(np.full((1, 10000), 0.5, dtype=np.float32)))
    model.set_width(100)
    assert model.wait_for_update(timeout=TIMEOUT)[0] == SampleData(0.5, 0.5, 0.0)

    model.reset_padding(1000, 0)
    summary = model.wait_for_update(timeout=TIMEOUT)
    # range stays [0, 10000) so the first ten columns are now padding
    assert summary[9] == SampleData.zero()
    assert summary[10] == SampleData(0.5, 0.5, 0.0)
    _close(model)


def test_display_mode_change_regenerates_with_weights() -> None:
    model = _model()
    model.set_width(50)
    normal = model.wait_for_update(timeout=TIMEOUT)
    assert np.all(normal.transient_weight == 0.0)

    model.set_display_mode(DisplayMode.TRANSIENT_HIGHLIGHT)
    highlighted = model.wait_for_update(timeout=TIMEOUT)
    assert model.display_mode is DisplayMode.TRANSIENT_HIGHLIGHT
    assert highlighted.transient_weight.max() == 1.0
    _close(model)


def test_degenerate_request_keeps_previous_summary() -> None:
    model = _model(frames=1000)
    model.set_width(10)
    first = model.wait_for_update(timeout=TIMEOUT)
    assert first is not None

    model.set_width(5000)
    assert model.wait_for_update(timeout=TIMEOUT) is None
    assert model.sample_data is first
    _close(model)


def test_create_model_reports_failure_as_none() -> None:
    assert create_model(np.zeros((2, 2, 2))) is None
    assert create_model(np.zeros(100), samples_to_prepend=-1) is None

    model = create_model(np.zeros((100, 2)), samples_to_prepend=10, global_total_samples=500)
    assert model is not None
    assert model.buffer.channel_count == 2
    assert model.render_range == range(0, 500)
    _close(model)
