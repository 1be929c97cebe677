# Copyright (c) mrmilbe

"""Amplitude curve for transient-highlight display.

Two parts: non-transient columns are attenuated towards 15% of their
amplitude, and transient columns are pulled towards full scale by a power
curve whose exponent shrinks as the weight grows.
"""

from __future__ import annotations

import numpy as np

NON_TRANSIENT_ATTENUATION = 0.15
TRANSIENT_EXPANSION_EXPONENT = 1.5


def scale_amplitude(amplitude: float, weight: float) -> float:
    """Scale one amplitude in [-1, 1] by a transient weight in [0, 1].

    Sign preserving; ``weight == 0`` gives ``amplitude * 0.15`` and
    ``weight == 1`` maps full scale to full scale.
    """
    attenuation = NON_TRANSIENT_ATTENUATION + weight * (1.0 - NON_TRANSIENT_ATTENUATION)
    scale_factor = 1.0 / (1.0 + weight * TRANSIENT_EXPANSION_EXPONENT)
    scaled = abs(amplitude) ** scale_factor * attenuation
    return scaled if amplitude >= 0 else -scaled


def scale_amplitudes(amplitudes: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Vectorized ``scale_amplitude`` over matching arrays."""
    amps = np.asarray(amplitudes, dtype=np.float64)
    w = np.asarray(weights, dtype=np.float64)
    attenuation = NON_TRANSIENT_ATTENUATION + w * (1.0 - NON_TRANSIENT_ATTENUATION)
    scale_factor = 1.0 / (1.0 + w * TRANSIENT_EXPANSION_EXPONENT)
    scaled = np.power(np.abs(amps), scale_factor) * attenuation
    return np.where(amps >= 0, scaled, -scaled)
