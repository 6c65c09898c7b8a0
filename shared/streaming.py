"""Live monitoring of flanger host blocks.

HostBlockPlayer opens an int32 output stream with the session's channel
count, so each processed block goes to the device exactly as the host
received it, with no float round trip. The renderer imports this module
only for --play.
"""

import logging

import numpy as np
import sounddevice as sd

from shared.audio import HOST_DTYPE

log = logging.getLogger(__name__)


class HostBlockPlayer:
    """Plays interleaved int32 host blocks on the default output device.

    Use as a context manager; the instance itself is the chunk_callback
    for flange_host_blocks. The device stream opens on the first block,
    after the session has accepted the channel count. The callback
    returns False once the device fails, which ends the render loop early.
    """

    def __init__(self, sample_rate, channels, latency="high"):
        self.sample_rate = sample_rate
        self.channels = channels
        self.latency = latency
        self.frames_played = 0
        self.failed = False
        self._stream = None

    def _open(self):
        self._stream = sd.OutputStream(
            samplerate=self.sample_rate, channels=self.channels,
            dtype="int32", latency=self.latency,
        )
        self._stream.start()
        log.debug("playback: %d ch at %g Hz", self.channels, self.sample_rate)

    def __enter__(self):
        return self

    def __call__(self, block):
        if self.failed:
            return False
        frames = np.ascontiguousarray(block, dtype=HOST_DTYPE).reshape(-1, self.channels)
        try:
            if self._stream is None:
                self._open()
            underflowed = self._stream.write(frames)
        except sd.PortAudioError as exc:
            log.error("playback stopped: %s", exc)
            self.failed = True
            return False
        if underflowed:
            log.debug("output underflow at frame %d", self.frames_played)
        self.frames_played += len(frames)
        return True

    def __exit__(self, exc_type, exc, tb):
        stream, self._stream = self._stream, None
        if stream is None:
            return False
        try:
            if exc_type is None and not self.failed:
                stream.stop()  # drains queued blocks
            else:
                stream.abort()
        finally:
            stream.close()
        log.info("played %.2fs", self.frames_played / self.sample_rate)
        return False
