"""Circular buffer delay line, written backwards, read forwards.

Each frame the write cursor steps back one slot, so reading at
`pos + k` (mod length) returns the sample written k frames ago:
k=0 is the sample just written, larger offsets are older.

The helpers are njit functions so the flanger kernel inlines them;
they are equally callable from plain Python.
"""

from numba import njit


def delay_buffer_length(delay_min, delay_depth, sample_rate):
    """Buffer slots needed for a sweep up to delay_min + delay_depth seconds.

    One extra slot for 0..n inclusive offsets, one more for the
    quadratic interpolator's third tap.
    """
    n = int((delay_min + delay_depth) * sample_rate + 0.5)
    return n + 2


@njit(cache=True)
def write_backwards(pos, length):
    """Retreat the write cursor by one slot."""
    return (pos + length - 1) % length


@njit(cache=True)
def read_linear(buf, pos, int_delay, frac, length):
    """Two-tap linear interpolation at int_delay + frac frames back."""
    d0 = buf[(pos + int_delay) % length]
    d1 = buf[(pos + int_delay + 1) % length]
    return d0 + (d1 - d0) * frac


@njit(cache=True)
def read_quadratic(buf, pos, int_delay, frac, length):
    """Three-tap quadratic (Lagrange) interpolation.

    Parabola through the taps at offsets 0, 1, 2 evaluated at frac.
    """
    d0 = buf[(pos + int_delay) % length]
    d1 = buf[(pos + int_delay + 1) % length] - d0
    d2 = buf[(pos + int_delay + 2) % length] - d0
    a = d2 * 0.5 - d1
    b = d1 * 2.0 - d2 * 0.5
    return d0 + (a * frac + b) * frac
