# Copyright (c) mrmilbe

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from .log import dbg


class DisplayMode(Enum):
    """How a summary is prepared and painted."""
    NORMAL = "normal"
    TRANSIENT_HIGHLIGHT = "transient_highlight"  # transient pass + amplitude curve

    @property
    def highlights_transients(self) -> bool:
        return self is DisplayMode.TRANSIENT_HIGHLIGHT

    @classmethod
    def parse(cls, value: Union[str, "DisplayMode"]) -> "DisplayMode":
        """Accept an enum member, its value, or a short alias ("transient")."""
        if isinstance(value, DisplayMode):
            return value
        text = str(value).strip().lower().replace("-", "_")
        if text == "transient":
            text = cls.TRANSIENT_HIGHLIGHT.value
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown display mode: {value!r}") from None


@dataclass
class WaveformReductionConfig:
    display_mode: DisplayMode = DisplayMode.NORMAL
    max_workers: Optional[int] = None  # None -> one worker per hardware thread
    buckets_per_job: int = 64


@dataclass
class WaveformRenderConfig:
    image_width: int = 1200
    image_height: int = 200
    background_color: Tuple[int, int, int] = (5, 5, 5)
    waveform_color: Tuple[int, int, int] = (0, 120, 255)
    margin_px: int = 4
    center_line: bool = False


DEFAULT_REDUCTION_CONFIG = WaveformReductionConfig()
DEFAULT_RENDER_CONFIG = WaveformRenderConfig()


def config_to_dict(reduction_cfg: WaveformReductionConfig, render_cfg: WaveformRenderConfig) -> dict:
    """Serialize configs to a dictionary for JSON export."""
    return {
        "reduction": {
            "display_mode": reduction_cfg.display_mode.value,
            "max_workers": reduction_cfg.max_workers,
            "buckets_per_job": reduction_cfg.buckets_per_job,
        },
        "render": {
            "image_width": render_cfg.image_width,
            "image_height": render_cfg.image_height,
            "background_color": list(render_cfg.background_color),
            "waveform_color": list(render_cfg.waveform_color),
            "margin_px": render_cfg.margin_px,
            "center_line": render_cfg.center_line,
        },
    }


def dict_to_config(data: dict) -> tuple[WaveformReductionConfig, WaveformRenderConfig]:
    """Deserialize configs from a dictionary loaded from JSON.

    Missing keys fall back to defaults; an unknown display mode falls back
    to the default mode.
    """
    reduction_data = data.get("reduction", {})
    render_data = data.get("render", {})

    mode_str = reduction_data.get("display_mode", DEFAULT_REDUCTION_CONFIG.display_mode.value)
    try:
        display_mode = DisplayMode.parse(mode_str)
    except ValueError:
        display_mode = DEFAULT_REDUCTION_CONFIG.display_mode

    max_workers = reduction_data.get("max_workers", DEFAULT_REDUCTION_CONFIG.max_workers)
    reduction_cfg = WaveformReductionConfig(
        display_mode=display_mode,
        max_workers=int(max_workers) if max_workers else None,
        buckets_per_job=max(1, int(reduction_data.get("buckets_per_job", DEFAULT_REDUCTION_CONFIG.buckets_per_job))),
    )

    render_cfg = WaveformRenderConfig(
        image_width=render_data.get("image_width", DEFAULT_RENDER_CONFIG.image_width),
        image_height=render_data.get("image_height", DEFAULT_RENDER_CONFIG.image_height),
        background_color=tuple(render_data.get("background_color", DEFAULT_RENDER_CONFIG.background_color)),
        waveform_color=tuple(render_data.get("waveform_color", DEFAULT_RENDER_CONFIG.waveform_color)),
        margin_px=render_data.get("margin_px", DEFAULT_RENDER_CONFIG.margin_px),
        center_line=render_data.get("center_line", DEFAULT_RENDER_CONFIG.center_line),
    )
    return reduction_cfg, render_cfg


def load_config(path: Union[str, Path]) -> tuple[WaveformReductionConfig, WaveformRenderConfig]:
    """Load configs from a JSON file, returning defaults if it can't be read."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        dbg(f"[Config] Failed to load {path}: {e}")
        return WaveformReductionConfig(), WaveformRenderConfig()
    if not isinstance(data, dict):
        dbg(f"[Config] Ignoring {path}: top level is not an object")
        return WaveformReductionConfig(), WaveformRenderConfig()
    return dict_to_config(data)


def save_config(
    path: Union[str, Path],
    reduction_cfg: WaveformReductionConfig,
    render_cfg: WaveformRenderConfig,
) -> Path:
    path = Path(path)
    path.write_text(json.dumps(config_to_dict(reduction_cfg, render_cfg), indent=2), encoding="utf-8")
    return path
