# Copyright (c) mrmilbe

from __future__ import annotations

import os

# Set PCM_WAVE_DEBUG=1 (or flip this at runtime) to print "[Tag] ..." lines.
DEBUG = os.environ.get("PCM_WAVE_DEBUG", "").strip().lower() in ("1", "true")


def dbg(msg: str) -> None:
    if DEBUG:
        print(msg, flush=True)
