"""Audio I/O and host sample conversion for the renderer.

Host blocks carry 32-bit signed integer samples; files and numpy
pipelines carry float64 in [-1, 1].
"""

import numpy as np
from scipy.io import wavfile

HOST_DTYPE = np.int32
HOST_SCALE = 2147483648.0  # 2**31, full scale of a host sample


def load_wav(path):
    """Load a WAV file as float64, keeping all channels and the file's rate.

    Returns (audio, sample_rate); audio is (samples,) for mono files and
    (samples, channels) otherwise.
    """
    sr, data = wavfile.read(path)
    if data.dtype == np.int16:
        audio = data.astype(np.float64) / 32768.0
    elif data.dtype == np.int32:
        audio = data.astype(np.float64) / HOST_SCALE
    elif data.dtype == np.uint8:
        audio = (data.astype(np.float64) - 128.0) / 128.0
    else:
        audio = data.astype(np.float64)
    return audio, sr


def save_wav(path, audio, sr=44100):
    """Save float audio as 16-bit WAV, clipped to [-1, 1].

    No normalization: the flanger's gains are already balanced.
    """
    out = np.round(np.clip(audio, -1.0, 1.0) * 32767).astype(np.int16)
    wavfile.write(path, sr, out)


def to_host_samples(audio):
    """Float [-1, 1] -> int32 host samples (rounded, saturated)."""
    scaled = np.round(np.asarray(audio, dtype=np.float64) * HOST_SCALE)
    info = np.iinfo(HOST_DTYPE)
    return np.clip(scaled, info.min, info.max).astype(HOST_DTYPE)


def from_host_samples(samples):
    """int32 host samples -> float64."""
    return np.asarray(samples, dtype=np.float64) / HOST_SCALE


def safety_check(output):
    """Reject non-finite output.

    Returns (ok, error_message).
    """
    if not np.all(np.isfinite(output)):
        return False, "ERROR: output diverged (non-finite values)"
    return True, ""


def make_impulse(sr=44100, seconds=0.5, channels=1):
    """Unit impulse on frame 0 of every channel, silence after."""
    n = int(sr * seconds)
    impulse = np.zeros(n) if channels == 1 else np.zeros((n, channels))
    if n:
        impulse[0] = 1.0
    return impulse
