# Copyright (c) mrmilbe

"""Outline and PIL image generation from a SampleSummary.

Position in data flow:
    viewport.py → reduction.py → SampleSummary → render.py → PIL Image

The outline is one closed polygon: the upper edge (column maxima) from left
to right, then the lower edge (column minima) from right to left. In
transient-highlight mode both edges go through ``scale_amplitudes`` first.
Positive amplitudes point up.
"""

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

from .config import DEFAULT_RENDER_CONFIG, DisplayMode, WaveformRenderConfig
from .samples import SampleSummary
from .scaling import scale_amplitudes

Point = Tuple[float, float]


def display_amplitudes(summary: SampleSummary, display_mode: DisplayMode) -> Tuple[np.ndarray, np.ndarray]:
    """Return ``(maxima, minima)`` as they should be painted."""
    maxima = summary.maximum.astype(np.float64)
    minima = summary.minimum.astype(np.float64)
    if display_mode.highlights_transients:
        maxima = scale_amplitudes(maxima, summary.transient_weight)
        minima = scale_amplitudes(minima, summary.transient_weight)
    return maxima, minima


def waveform_outline(
    summary: SampleSummary,
    height: float,
    display_mode: DisplayMode = DisplayMode.NORMAL,
    x_scale: float = 1.0,
    top: float = 0.0,
) -> List[Point]:
    """Polygon points for a filled waveform ``height`` pixels tall.

    Column ``i`` sits at ``x = i * x_scale``. The first point is the left end
    of the centre line; the polygon is closed implicitly.
    """
    mid_y = top + height / 2.0
    half = height / 2.0
    points: List[Point] = [(0.0, mid_y)]
    n = len(summary)
    if n == 0:
        return points

    maxima, minima = display_amplitudes(summary, display_mode)
    xs = np.arange(n, dtype=np.float64) * float(x_scale)
    upper_y = mid_y - half * maxima
    lower_y = mid_y - half * minima
    points.extend(zip(xs.tolist(), upper_y.tolist()))
    points.extend(zip(xs[::-1].tolist(), lower_y[::-1].tolist()))
    return points


def render_summary_image(
    summary: SampleSummary,
    render_cfg: Optional[WaveformRenderConfig] = None,
    display_mode: DisplayMode = DisplayMode.NORMAL,
) -> Image.Image:
    """Paint the filled outline onto a new RGB image.

    Columns are stretched to ``render_cfg.image_width``; amplitudes map to the
    height inside ``margin_px``.
    """
    cfg = render_cfg if render_cfg is not None else DEFAULT_RENDER_CONFIG
    w = max(1, int(cfg.image_width))
    h = max(1, int(cfg.image_height))
    margin = max(0, int(cfg.margin_px))

    img = Image.new("RGB", (w, h), tuple(cfg.background_color))
    draw = ImageDraw.Draw(img)
    usable_h = max(1, h - 2 * margin)
    center_y = margin + usable_h / 2.0

    n = len(summary)
    if n > 0:
        x_scale = (w - 1) / max(1, n - 1)
        outline = waveform_outline(summary, usable_h, display_mode, x_scale=x_scale, top=margin)
        if n == 1:
            # a single column has no area; draw it as a line
            _, y_top = outline[1]
            _, y_bottom = outline[2]
            draw.line((0, y_top, w - 1, y_top), fill=tuple(cfg.waveform_color), width=1)
            draw.line((0, y_bottom, w - 1, y_bottom), fill=tuple(cfg.waveform_color), width=1)
        else:
            draw.polygon(outline, fill=tuple(cfg.waveform_color), outline=tuple(cfg.waveform_color))

    if cfg.center_line:
        draw.line((0, int(center_y), w, int(center_y)), fill=(40, 40, 40), width=1)
    return img


def save_waveform_png(
    summary: SampleSummary,
    out_path: str,
    render_cfg: Optional[WaveformRenderConfig] = None,
    display_mode: DisplayMode = DisplayMode.NORMAL,
) -> None:
    img = render_summary_image(summary, render_cfg, display_mode)
    img.save(out_path, format="PNG")


def render_config_for_width(render_cfg: WaveformRenderConfig, width: int) -> WaveformRenderConfig:
    """Copy of ``render_cfg`` with a different image width."""
    return replace(render_cfg, image_width=max(1, int(width)))
