"""Offline WAV rendering: load audio, flange it block by block, save output.

Usage:
    uv run python -m audio.render input.wav output.wav [delay depth regen width speed shape phase interp]
    uv run python -m audio.render input.wav output.wav --preset presets/deep.json

Without effect arguments or --preset, uses the default params.
"""

import argparse
import json
import logging
import os
import sys

import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from engine.flanger import initialize, process, finalize
from engine.params import SCHEMA, resolve_config, config_from_params
from shared.audio import (load_wav, save_wav, to_host_samples, from_host_samples,
                          safety_check, HOST_DTYPE)
from shared.errors import FlangerError

log = logging.getLogger(__name__)


def load_preset(path):
    """Load a params dict from JSON."""
    with open(path) as f:
        preset = json.load(f)
    preset.pop("_meta", None)
    return preset


def flange_host_blocks(audio, config, sr, chunk_size=4096, chunk_callback=None):
    """Frame float audio into int32 host blocks and run one session over them.

    chunk_callback, if given, receives each processed int32 block
    (interleaved, as the host sees it) and returns False to stop early.
    Returns (float64 output with the input's shape, total clip count).
    """
    mono = audio.ndim == 1
    frames = audio[:, np.newaxis] if mono else audio
    n_frames, channels = frames.shape
    ibuf = to_host_samples(frames).reshape(-1)
    obuf = np.zeros_like(ibuf, dtype=HOST_DTYPE)

    session = initialize(config, channels, sr)
    try:
        step = chunk_size * channels
        for start in range(0, len(ibuf), step):
            end = min(start + step, len(ibuf))
            result = process(session, ibuf[start:end], obuf[start:end])
            if result.clips:
                log.debug("block at frame %d: %d clips", start // channels, result.clips)
            if chunk_callback is not None and not chunk_callback(obuf[start:end]):
                break
        clips = session.clips
    finally:
        finalize(session)

    output = from_host_samples(obuf).reshape(n_frames, channels)
    return (output[:, 0] if mono else output), clips


def main(argv=None):
    parser = argparse.ArgumentParser(description="Process audio through the flanger")
    parser.add_argument("input", help="Input WAV file")
    parser.add_argument("output", help="Output WAV file")
    parser.add_argument("effect_args", nargs="*", metavar="ARG",
                        help=f"Flanger parameters {SCHEMA.usage()}")
    parser.add_argument("--preset", help="Preset JSON file")
    parser.add_argument("--tail", type=float, default=0.05,
                        help="Silence appended for the delayed tail, seconds (default 0.05)")
    parser.add_argument("--chunk", type=int, default=4096,
                        help="Host block size in frames (default 4096)")
    parser.add_argument("--play", action="store_true",
                        help="Play blocks through the default output device while rendering")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_intermixed_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(name)s %(levelname)s: %(message)s")

    if args.preset and args.effect_args:
        parser.error("use either --preset or positional effect parameters, not both")
    if args.chunk < 1:
        parser.error("--chunk must be at least 1")

    try:
        if args.preset:
            config = config_from_params(load_preset(args.preset))
        else:
            config = resolve_config(args.effect_args)

        audio, sr = load_wav(args.input)
        n = audio.shape[0]
        ch = 1 if audio.ndim == 1 else audio.shape[1]
        print(f"Loaded {args.input}: {n} samples, {sr} Hz, {ch} ch")

        tail_samples = int(max(args.tail, 0.0) * sr)
        if audio.ndim == 2:
            audio = np.vstack([audio, np.zeros((tail_samples, audio.shape[1]))])
        else:
            audio = np.concatenate([audio, np.zeros(tail_samples)])

        if args.play:
            from shared.streaming import HostBlockPlayer
            with HostBlockPlayer(sr, ch) as player:
                output, clips = flange_host_blocks(
                    audio, config, sr, chunk_size=args.chunk, chunk_callback=player)
        else:
            output, clips = flange_host_blocks(audio, config, sr, chunk_size=args.chunk)
    except FlangerError as exc:
        log.error("%s", exc)
        print(f"usage: flanger {SCHEMA.usage()}", file=sys.stderr)
        return 1

    ok, message = safety_check(output)
    if not ok:
        log.error("%s", message)
        return 1
    if clips:
        log.warning("%d samples clipped", clips)

    save_wav(args.output, output, sr)
    print(f"Saved {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
