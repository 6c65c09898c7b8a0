"""Test the offline WAV renderer end to end.

Run: uv run python -m pytest tests/test_render.py
"""

import json
import os
import sys

import numpy as np
from scipy.io import wavfile

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from audio.render import flange_host_blocks, main
from engine.flanger import render_flanger
from engine.params import EffectConfig
from shared.audio import from_host_samples, load_wav, make_impulse, to_host_samples

SR = 44100


def write_stereo_tone(path, seconds=0.25, sr=SR):
    t = np.arange(int(sr * seconds)) / sr
    left = 0.4 * np.sin(2 * np.pi * 220.0 * t)
    right = 0.4 * np.sin(2 * np.pi * 330.0 * t)
    data = (np.column_stack([left, right]) * 32767).astype(np.int16)
    wavfile.write(path, sr, data)
    return data


def test_host_sample_conversion():
    audio = np.array([0.0, 0.5, -0.5, 1.0, -1.0, 2.0])
    samples = to_host_samples(audio)
    assert samples.dtype == np.int32
    assert list(samples) == [0, 2**30, -2**30, 2**31 - 1, -2**31, 2**31 - 1]
    np.testing.assert_allclose(from_host_samples(samples[:3]), audio[:3])


def test_host_blocks_match_float_render():
    audio = make_impulse(SR, seconds=0.1, channels=2) * 0.5
    cfg = EffectConfig(feedback_gain=0.5, wet_mix=1.0, delay_depth=0.0, delay_min=0.001)
    hosted, clips = flange_host_blocks(audio, cfg, SR, chunk_size=100)
    assert clips == 0
    assert hosted.shape == audio.shape
    floating = render_flanger(audio, cfg, SR)
    # Host samples carry 32-bit precision
    np.testing.assert_allclose(hosted, floating, atol=1e-8)


def test_host_block_callback_sees_interleaved_int32():
    audio = np.random.default_rng(2).uniform(-0.5, 0.5, (441, 3))
    blocks = []

    def keep_two(block):
        blocks.append(block.copy())
        return len(blocks) < 2

    output, _ = flange_host_blocks(audio, EffectConfig(), SR, chunk_size=64,
                                   chunk_callback=keep_two)
    assert len(blocks) == 2
    assert all(b.dtype == np.int32 and b.shape == (64 * 3,) for b in blocks)
    np.testing.assert_array_equal(from_host_samples(blocks[0]).reshape(-1, 3), output[:64])
    # Stopped early: frames after the second block were never processed
    assert output[:128].any()
    assert not output[128:].any()


def test_dry_render_round_trip(tmp_path):
    src = tmp_path / "in.wav"
    dst = tmp_path / "out.wav"
    data = write_stereo_tone(src)
    # width 0 -> dry only
    assert main([str(src), str(dst), "0", "2", "0", "0", "--tail", "0"]) == 0
    sr, out = wavfile.read(dst)
    assert sr == SR
    assert out.shape == data.shape
    assert np.max(np.abs(out.astype(np.int32) - data.astype(np.int32))) <= 1


def test_render_with_preset_adds_tail(tmp_path):
    src = tmp_path / "in.wav"
    dst = tmp_path / "out.wav"
    preset = tmp_path / "deep.json"
    data = write_stereo_tone(src)
    preset.write_text(json.dumps({"_meta": {"name": "deep"}, "delay": 1, "depth": 5,
                                  "regen": -60, "shape": "triangle", "interp": "quadratic"}))
    assert main([str(src), str(dst), "--preset", str(preset), "--tail", "0.01",
                 "--chunk", "256"]) == 0
    audio, sr = load_wav(dst)
    assert audio.shape == (len(data) + int(0.01 * SR), 2)
    assert np.all(np.isfinite(audio))
    assert np.abs(audio).max() > 0.1


def test_negative_regen_positional(tmp_path):
    src = tmp_path / "in.wav"
    dst = tmp_path / "out.wav"
    write_stereo_tone(src)
    assert main([str(src), str(dst), "0", "2", "-50", "triangle"]) == 0
    assert dst.exists()


def test_bad_arguments_fail(tmp_path):
    src = tmp_path / "in.wav"
    dst = tmp_path / "out.wav"
    write_stereo_tone(src)
    assert main([str(src), str(dst), "20"]) == 1
    assert main([str(src), str(dst), "0", "2", "0", "71", "0.5", "sine", "25", "lin", "x"]) == 1
    assert not dst.exists()


def test_too_many_channels_fails(tmp_path):
    src = tmp_path / "six.wav"
    dst = tmp_path / "out.wav"
    wavfile.write(src, SR, np.zeros((100, 6), dtype=np.int16))
    assert main([str(src), str(dst)]) == 1
    assert not dst.exists()
