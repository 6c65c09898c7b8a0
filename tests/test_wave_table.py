"""Test LFO wave table generation.

Run: uv run python -m pytest tests/test_wave_table.py
"""

import math
import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from primitives.wave_table import WaveShape, generate_wave_table

START_AT_MIN = 3 * math.pi / 2


@pytest.mark.parametrize("shape", [WaveShape.SINE, WaveShape.TRIANGLE])
def test_sweep_starts_at_minimum(shape):
    table = generate_wave_table(shape, 100, 0.0, 88.0, START_AT_MIN)
    assert len(table) == 100
    assert table.dtype == np.float32
    assert table[0] == pytest.approx(0.0, abs=1e-4)
    # Half a cycle later the sweep is at its peak
    assert table[50] == pytest.approx(88.0, abs=1e-4)
    assert table.min() >= 0.0
    assert table.max() <= 88.0


def test_sine_shape():
    n = 64
    table = generate_wave_table(WaveShape.SINE, n, -1.0, 1.0, 0.0, dtype=np.float64)
    expected = np.sin(np.arange(n) / n * 2 * np.pi)
    np.testing.assert_allclose(table, expected, atol=1e-12)


def test_triangle_shape():
    table = generate_wave_table(WaveShape.TRIANGLE, 8, 0.0, 8.0, 0.0, dtype=np.float64)
    # Rises from the midpoint, peaks at 1/4, bottoms out at 3/4
    np.testing.assert_allclose(table, [4, 6, 8, 6, 4, 2, 0, 2])


def test_min_offset_is_respected():
    table = generate_wave_table(WaveShape.SINE, 200, 44.0, 90.0, START_AT_MIN)
    assert table.min() == pytest.approx(44.0, abs=1e-4)
    assert table.max() == pytest.approx(90.0, abs=1e-4)


def test_integer_output_rounds_half_away_from_zero():
    up = generate_wave_table(WaveShape.TRIANGLE, 4, 0.0, 3.0, 0.0, dtype=np.int16)
    assert up.dtype == np.int16
    assert list(up) == [2, 3, 2, 0]

    down = generate_wave_table(WaveShape.TRIANGLE, 4, -3.0, 0.0, 0.0, dtype=np.int32)
    assert list(down) == [-2, 0, -2, -3]


def test_full_cycle_phase_shift_is_identity():
    a = generate_wave_table(WaveShape.SINE, 128, 0.0, 1.0, 0.0)
    b = generate_wave_table(WaveShape.SINE, 128, 0.0, 1.0, 2 * math.pi)
    np.testing.assert_array_equal(a, b)


def test_empty_table():
    assert len(generate_wave_table(WaveShape.SINE, 0, 0.0, 1.0, 0.0)) == 0


def test_unknown_shape():
    with pytest.raises(ValueError):
        generate_wave_table(7, 16, 0.0, 1.0, 0.0)
