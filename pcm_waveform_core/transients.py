# Copyright (c) mrmilbe

from __future__ import annotations

import numpy as np

from .samples import SampleSummary

# Below this peak-to-peak change the summary is treated as steady (silence or
# a constant level) and no weights are assigned.
MIN_DERIVATIVE = 0.001


def compute_weights(summary: SampleSummary) -> SampleSummary:
    """Fill ``summary.transient_weight`` from the amplitude derivative.

    Weight is ``sqrt(|peak[i] - peak[i-1]| / max_derivative)``, so the
    steepest change scores 1.0. The first column copies the second column's
    derivative since it has no left neighbour. Modifies in place and returns
    the same summary.
    """
    n = len(summary)
    if n <= 1:
        return summary

    peaks = np.maximum(
        np.abs(summary.minimum.astype(np.float64)),
        np.abs(summary.maximum.astype(np.float64)),
    )
    derivatives = np.empty(n, dtype=np.float64)
    derivatives[1:] = np.abs(np.diff(peaks))
    derivatives[0] = derivatives[1]

    max_derivative = float(np.max(derivatives))
    if max_derivative <= MIN_DERIVATIVE:
        return summary

    summary.transient_weight[:] = np.sqrt(derivatives / max_derivative)
    return summary
