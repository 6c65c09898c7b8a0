"""Numba-optimized flanger inner loop.

One call processes a block of interleaved frames against the session's
delay buffers and LFO table. All state lives in arrays owned by the
session; the kernel only reads cursors in and hands them back out, and
allocates nothing.
"""

from numba import njit

from primitives.delay_line import write_backwards, read_linear, read_quadratic

INTERP_LINEAR = 0
INTERP_QUADRATIC = 1


@njit(cache=True)
def _process_block(
    ibuf, obuf, n_frames, channels,
    # Delay line state
    delay_bufs, delay_last, buf_len, write_pos,
    # LFO state
    lfo, lfo_len, lfo_pos, lfo_offsets,
    # Gains
    feedback_gain, in_gain, wet_gain,
    interpolation,
    # Output representation
    round_out, out_lo, out_hi,
):
    clips = 0
    k = 0
    for _ in range(n_frames):
        write_pos = write_backwards(write_pos, buf_len)

        for c in range(channels):
            delay = lfo[(lfo_pos + lfo_offsets[c]) % lfo_len]
            int_delay = int(delay)
            frac = delay - int_delay

            x = ibuf[k]
            delay_bufs[c, write_pos] = x + delay_last[c] * feedback_gain

            if interpolation == INTERP_LINEAR:
                delayed = read_linear(delay_bufs[c], write_pos, int_delay, frac, buf_len)
            else:
                delayed = read_quadratic(delay_bufs[c], write_pos, int_delay, frac, buf_len)

            delay_last[c] = delayed
            out = x * in_gain + delayed * wet_gain

            # --- Round + saturate to the output representation ---
            if round_out:
                if out < 0.0:
                    if out <= out_lo - 0.5:
                        clips += 1
                        out = out_lo
                    else:
                        out = float(int(out - 0.5))
                else:
                    if out >= out_hi + 0.5:
                        clips += 1
                        out = out_hi
                    else:
                        out = float(int(out + 0.5))
            elif out < out_lo:
                clips += 1
                out = out_lo
            elif out > out_hi:
                clips += 1
                out = out_hi

            obuf[k] = out
            k += 1

        lfo_pos = (lfo_pos + 1) % lfo_len

    return write_pos, lfo_pos, clips
