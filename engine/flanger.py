"""Multi-channel flanger session, the core engine.

Signal flow (per channel):

            +------------- regen ---------------+
            |                                   |
    In -->( + )--> [DELAY line] --(interp)------+--> wet_gain --+
      |               ^ delay + depth                           |
      |               |                                        ( + )--> Out
      |             [LFO] speed / shape / phase                 |
      +-------------------------------------------> in_gain ----+

Lifecycle:
    session = initialize(config, channels, sample_rate)   # start
    result = process(session, ibuf, obuf)                 # flow, any number of times
    finalize(session)                                     # stop, idempotent
"""

import logging
import math
import time
from typing import NamedTuple

import numpy as np

from engine.numba_flanger import _process_block
from engine.params import EffectConfig
from primitives.delay_line import delay_buffer_length
from primitives.wave_table import generate_wave_table
from shared.errors import ConfigurationError, UnsupportedChannelCount

log = logging.getLogger(__name__)

MAX_CHANNELS = 4


class DerivedGains(NamedTuple):
    in_gain: float
    wet_gain: float


class FlowResult(NamedTuple):
    consumed: int   # input samples (frames * channels)
    produced: int   # output samples, always == consumed
    clips: int      # clipping events in this call


def derive_gains(config: EffectConfig) -> DerivedGains:
    """Balance output for the mix, then the feedback loop."""
    in_gain = 1.0 / (1.0 + config.wet_mix)
    wet_gain = config.wet_mix / (1.0 + config.wet_mix)
    wet_gain *= 1.0 - abs(config.feedback_gain)
    return DerivedGains(in_gain, wet_gain)


def _output_bounds(dtype):
    """(round, lo, hi) for the host sample representation."""
    dtype = np.dtype(dtype)
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        return True, float(info.min), float(info.max)
    return False, -1.0, 1.0


class FlangerSession:
    """Delay buffers, LFO table, and cursors for one stream.

    Not thread-safe: the host serializes calls into a session.
    """

    def __init__(self, config: EffectConfig, channels: int, sample_rate: float):
        self.config = config
        self.channels = int(channels)
        self.sample_rate = sample_rate
        self.clips = 0
        self._reset_state()

    def _reset_state(self):
        self.gains = None
        self.delay_bufs = None
        self.delay_last = None
        self.buffer_length = 0
        self.write_pos = 0
        self.lfo = None
        self.lfo_length = 0
        self.lfo_pos = 0
        self.lfo_offsets = None

    @property
    def started(self) -> bool:
        return self.delay_bufs is not None

    def start(self):
        """Allocate buffers and build the LFO table."""
        cfg = self.config
        if self.channels > MAX_CHANNELS:
            raise UnsupportedChannelCount(self.channels, MAX_CHANNELS)
        if self.channels < 1:
            raise ConfigurationError(
                f"channel count must be at least 1 (got {self.channels})", param="channels")
        if not self.sample_rate > 0:
            raise ConfigurationError(
                f"sample rate must be positive (got {self.sample_rate})", param="sample_rate")
        lfo_length = int(self.sample_rate / cfg.speed)
        if lfo_length < 1:
            raise ConfigurationError(
                f"sample rate {self.sample_rate} too low for speed {cfg.speed}Hz",
                param="sample_rate")

        self.gains = derive_gains(cfg)
        log.debug("in_gain=%g feedback_gain=%g delay_gain=%g",
                  self.gains.in_gain, cfg.feedback_gain, self.gains.wet_gain)

        try:
            # --- Delay buffers, one per channel ---
            self.buffer_length = delay_buffer_length(
                cfg.delay_min, cfg.delay_depth, self.sample_rate)
            self.delay_bufs = np.zeros((self.channels, self.buffer_length), dtype=np.float64)
            self.delay_last = np.zeros(self.channels, dtype=np.float64)

            # --- LFO lookup table (sweep starts at minimum delay) ---
            self.lfo_length = lfo_length
            self.lfo = generate_wave_table(
                cfg.wave_shape, self.lfo_length,
                float(int(cfg.delay_min * self.sample_rate + 0.5)),
                float(self.buffer_length - 2),
                3 * math.pi / 2,
                dtype=np.float32)
            self.lfo_offsets = np.array(
                [int(c * self.lfo_length * cfg.channel_phase + 0.5)
                 for c in range(self.channels)], dtype=np.int64)
        except BaseException:
            self._reset_state()
            raise

        self.write_pos = 0
        self.lfo_pos = 0
        self.clips = 0
        log.debug("delay_buf_length=%d lfo_length=%d",
                  self.buffer_length, self.lfo_length)
        return self

    def flow(self, ibuf: np.ndarray, obuf: np.ndarray) -> FlowResult:
        """Process min(len(ibuf), len(obuf)) // channels whole frames.

        ibuf, obuf: 1-D interleaved samples. obuf's dtype picks the output
        representation: integer dtypes are rounded and saturated to the
        dtype's range, floating dtypes are saturated to [-1, 1].
        """
        if not self.started:
            raise RuntimeError("flanger session is not started")
        frames = min(len(ibuf), len(obuf)) // self.channels
        n = frames * self.channels
        if frames == 0:
            return FlowResult(0, 0, 0)

        round_out, lo, hi = _output_bounds(obuf.dtype)
        self.write_pos, self.lfo_pos, clips = _process_block(
            ibuf, obuf, frames, self.channels,
            self.delay_bufs, self.delay_last, self.buffer_length, self.write_pos,
            self.lfo, self.lfo_length, self.lfo_pos, self.lfo_offsets,
            self.config.feedback_gain, self.gains.in_gain, self.gains.wet_gain,
            int(self.config.interpolation),
            round_out, lo, hi,
        )
        self.clips += clips
        return FlowResult(n, n, clips)

    def stop(self):
        """Release buffers and zero all state. Safe to call repeatedly."""
        self._reset_state()
        self.clips = 0

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc):
        self.stop()
        return False


# ── Host-facing API ───────────────────────────────────────────────────

def initialize(config: EffectConfig, channels: int, sample_rate: float) -> FlangerSession:
    return FlangerSession(config, channels, sample_rate).start()


def process(session: FlangerSession, ibuf, obuf) -> FlowResult:
    return session.flow(ibuf, obuf)


def finalize(session: FlangerSession) -> None:
    session.stop()


def render_flanger(input_audio: np.ndarray, config: EffectConfig, sample_rate,
                   chunk_callback=None, chunk_size=4096) -> np.ndarray:
    """Run a whole float buffer through one session in host-sized blocks.

    Args:
        input_audio: float array -- mono (samples,) or (samples, channels)
        config: resolved EffectConfig
        sample_rate: Hz
        chunk_callback: if provided, called with each rendered chunk.
            Return True to continue, False to stop early.
        chunk_size: frames per block (default 4096 ~ 93ms)

    Returns:
        float64 output, same shape as the input
    """
    t0 = time.perf_counter()
    audio = np.asarray(input_audio, dtype=np.float64)
    mono = audio.ndim == 1
    frames_in = audio[:, np.newaxis] if mono else audio
    n_frames, channels = frames_in.shape
    interleaved = np.ascontiguousarray(frames_in).reshape(-1)
    output = np.zeros(n_frames * channels, dtype=np.float64)

    session = initialize(config, channels, sample_rate)
    try:
        step = chunk_size * channels
        for start in range(0, len(interleaved), step):
            end = min(start + step, len(interleaved))
            process(session, interleaved[start:end], output[start:end])
            if chunk_callback is not None:
                chunk = output[start:end].reshape(-1, channels)
                if not chunk_callback(chunk[:, 0] if mono else chunk):
                    break
        clips = session.clips
    finally:
        finalize(session)

    elapsed = time.perf_counter() - t0
    duration = n_frames / sample_rate
    rtf = duration / elapsed if elapsed > 0 else float('inf')
    log.info("render %.1fs audio in %.3fs (%d ch, %.0fx RT, %d clips)",
             duration, elapsed, channels, rtf, clips)

    result = output.reshape(n_frames, channels)
    return result[:, 0] if mono else result
