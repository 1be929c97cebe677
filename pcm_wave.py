# Copyright (c) mrmilbe

"""pcm_wave - render a waveform snapshot through the viewport pipeline.

Reduces a sample array (a ``.npy`` dump, or a synthetic preview signal) to
one peak pair per pixel for the requested viewport and saves it as PNG.

Run with:
    python pcm_wave.py --out preview.png --mode transient --zoom 4
    or
    pcm_wave --input samples.npy --out wave.png (after pip install)
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from pcm_waveform_core.config import (
    DisplayMode,
    WaveformReductionConfig,
    WaveformRenderConfig,
    load_config,
)
from pcm_waveform_core.render import render_config_for_width, save_waveform_png
from pcm_waveform_core.samples import preview_buffer
from pcm_waveform_core.viewport import create_model


def positive_int(value: str) -> int:
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return ivalue


def non_negative_int(value: str) -> int:
    ivalue = int(value)
    if ivalue < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return ivalue


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pcm_wave",
        description="Render a waveform snapshot from a sample array.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--input", type=str, default=None,
                        help="Sample array saved with numpy.save, shape (frames,) or (frames, channels). "
                             "A synthetic preview signal is used when omitted.")
    parser.add_argument("--out", type=str, default="waveform.png", help="Output PNG path")
    parser.add_argument("--config", type=str, default=None, help="JSON config file")
    parser.add_argument("--width", type=positive_int, default=None,
                        help="Image width in pixels (also the number of summary columns)")
    parser.add_argument("--height", type=positive_int, default=None, help="Image height in pixels")
    parser.add_argument("--mode", type=str, choices=["normal", "transient"], default=None,
                        help="Display mode")
    parser.add_argument("--zoom", type=float, default=1.0, help="Zoom factor (>1 zooms in)")
    parser.add_argument("--pan", type=float, default=0.0, help="Pan offset in pixels after zooming")
    parser.add_argument("--prepend", type=non_negative_int, default=0, help="Silent samples before the audio")
    parser.add_argument("--append", type=non_negative_int, default=0, help="Silent samples after the audio")
    parser.add_argument("--duration", type=float, default=10.0, help="Preview signal length in seconds")
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait for the reduction")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.config:
        reduction_cfg, render_cfg = load_config(args.config)
        print(f"[Config] Loaded from {args.config}")
    else:
        reduction_cfg, render_cfg = WaveformReductionConfig(), WaveformRenderConfig()
    if args.width is not None:
        render_cfg = render_config_for_width(render_cfg, args.width)
    if args.height is not None:
        render_cfg.image_height = args.height
    display_mode = DisplayMode.parse(args.mode) if args.mode else reduction_cfg.display_mode

    if args.input:
        try:
            samples = np.load(args.input, allow_pickle=False)
        except (OSError, ValueError) as e:
            print(f"[Input] Failed to load {args.input}: {e}", file=sys.stderr)
            return 1
    else:
        samples = preview_buffer(duration=args.duration)

    model = create_model(
        samples,
        samples_to_prepend=args.prepend,
        samples_to_append=args.append,
        display_mode=display_mode,
        config=reduction_cfg,
    )
    if model is None:
        print("[Input] Unusable sample array", file=sys.stderr)
        return 1

    try:
        model.set_width(render_cfg.image_width)
        if args.zoom != 1.0:
            model.zoom(args.zoom)
        if args.pan:
            model.pan(args.pan)
        summary = model.wait_for_update(timeout=args.timeout)
    finally:
        model.close(wait=True, timeout=args.timeout)

    if summary is None:
        print(
            f"[Render] No waveform for {len(model.render_range)} samples over {render_cfg.image_width} px",
            file=sys.stderr,
        )
        return 1

    out_path = Path(args.out)
    save_waveform_png(summary, str(out_path), render_cfg, display_mode)
    print(f"[Render] {model.render_range.start}..{model.render_range.stop} -> {out_path} ({display_mode.value})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
