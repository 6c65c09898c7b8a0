"""Periodic wave tables: one LFO cycle precomputed into an array.

The table is computed once per session and indexed per sample, so the
hot loop never calls sin().
"""

from enum import IntEnum

import numpy as np


class WaveShape(IntEnum):
    SINE = 0
    TRIANGLE = 1


WAVE_NAMES = ["sine", "triangle"]


def _unit_wave(shape, point, length):
    """Shape value in [0, 1] at integer table positions `point`."""
    if shape == WaveShape.SINE:
        return (np.sin(point / length * 2.0 * np.pi) + 1.0) / 2.0
    if shape == WaveShape.TRIANGLE:
        d = point * 2.0 / length
        quarter = 4 * point // length
        # Rising through 0.5 at point 0, peak at 1/4, trough at 3/4
        return np.where(quarter == 0, d + 0.5,
                        np.where(quarter == 3, d - 1.5, 1.5 - d))
    raise ValueError(f"Unknown wave shape '{shape}'. Options: {WAVE_NAMES}")


def generate_wave_table(shape, length, min_value, max_value, phase,
                        dtype=np.float32) -> np.ndarray:
    """Generate one full cycle of `shape` scaled to [min_value, max_value].

    Args:
        shape: WaveShape (or its int code)
        length: number of table entries (one cycle)
        min_value, max_value: output range
        phase: initial phase in radians. 3*pi/2 starts both shapes at
            min_value on index 0.
        dtype: float32/float64 store values as is; integer dtypes round
            half away from zero.

    Returns:
        array of `length` values
    """
    shape = WaveShape(shape)
    length = int(length)
    if length <= 0:
        return np.zeros(0, dtype=dtype)

    phase_offset = int(phase / np.pi / 2.0 * length + 0.5)
    point = (np.arange(length, dtype=np.int64) + phase_offset) % length
    d = _unit_wave(shape, point, length)
    d = d * (max_value - min_value) + min_value

    if np.issubdtype(np.dtype(dtype), np.integer):
        d = np.trunc(d + np.where(d < 0.0, -0.5, 0.5))
    return d.astype(dtype)
