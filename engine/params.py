"""Parameter schema and resolver for the flanger.

This is the shared contract between the CLI, presets, and scripting.
User-facing values are in the units of the usage line (ms, %, Hz);
resolve_config / config_from_params convert them into an EffectConfig
in internal units (seconds, unit gains).

Usage line:  [delay depth regen width speed shape phase interp]

         RANGE  DEFAULT DESCRIPTION
delay    0 10     0     base delay in milliseconds
depth    0 10     2     added swept delay in milliseconds
regen  -95 +95    0     percentage regeneration (delayed signal feedback)
width    0 100   71     percentage of delayed signal mixed with original
speed  0.1 10   0.5     sweeps per second (Hz)
shape    --     sine    swept wave shape: sine|triangle
phase    0 100   25     swept wave percentage phase-shift for multi-channel
                        (e.g. stereo) flange; 0 = 100 = same phase on each channel
interp   --     linear  delay-line interpolation: linear|quadratic
"""

import logging
import math
import numbers
from dataclasses import dataclass
from enum import IntEnum

from shared.params import ParamType as T, ParamDef, ParamSchema
from primitives.wave_table import WaveShape, WAVE_NAMES
from shared.errors import ConfigurationError

log = logging.getLogger(__name__)


class Interpolation(IntEnum):
    LINEAR = 0
    QUADRATIC = 1


INTERP_NAMES = ["linear", "quadratic"]

# ── Schema ────────────────────────────────────────────────────────────

_PARAMS = [
    ParamDef("delay", T.FLOAT, section="delay", label="Delay", unit="ms",
             default=0.0, range=(0.0, 10.0)),

    ParamDef("depth", T.FLOAT, section="delay", label="Depth", unit="ms",
             default=2.0, range=(0.0, 10.0)),

    ParamDef("regen", T.FLOAT, section="mix", label="Regen", unit="%",
             default=0.0, range=(-95.0, 95.0)),

    ParamDef("width", T.FLOAT, section="mix", label="Width", unit="%",
             default=71.0, range=(0.0, 100.0)),

    ParamDef("speed", T.FLOAT, section="modulation", label="Speed", unit="Hz",
             default=0.5, range=(0.1, 10.0)),

    ParamDef("shape", T.CHOICE, section="modulation", label="Shape",
             default=int(WaveShape.SINE), choices=WAVE_NAMES),

    ParamDef("phase", T.FLOAT, section="modulation", label="Phase", unit="%",
             default=25.0, range=(0.0, 100.0)),

    ParamDef("interp", T.CHOICE, section="delay", label="Interp",
             default=int(Interpolation.LINEAR), choices=INTERP_NAMES),
]

SCHEMA = ParamSchema(_PARAMS)

default_params = SCHEMA.default_params
PARAM_RANGES = SCHEMA.param_ranges()

# EffectConfig field -> (param key, user units per internal unit)
_FIELD_UNITS = {
    "delay_min": ("delay", 1000.0),
    "delay_depth": ("depth", 1000.0),
    "feedback_gain": ("regen", 100.0),
    "wet_mix": ("width", 100.0),
    "speed": ("speed", 1.0),
    "channel_phase": ("phase", 100.0),
}


@dataclass(frozen=True)
class EffectConfig:
    """Resolved parameters in internal units, fixed for a session.

    Construction checks every field against the parameter ranges, so a
    config built directly (not through the resolver) is held to the same
    limits. Raises ConfigurationError naming the parameter.
    """
    delay_min: float = 0.0          # seconds
    delay_depth: float = 0.002      # seconds
    feedback_gain: float = 0.0      # -0.95..0.95
    wet_mix: float = 0.71           # 0..1
    speed: float = 0.5              # Hz
    wave_shape: WaveShape = WaveShape.SINE
    channel_phase: float = 0.25     # fraction of a cycle per channel
    interpolation: Interpolation = Interpolation.LINEAR

    def __post_init__(self):
        for field, (key, scale) in _FIELD_UNITS.items():
            value = getattr(self, field)
            lo, hi = PARAM_RANGES[key]
            # Bounds scaled by the same division the resolver applies
            if isinstance(value, bool) or not isinstance(value, numbers.Real) \
                    or not math.isfinite(value) \
                    or not lo / scale <= value <= hi / scale:
                raise ConfigurationError(
                    f"parameter `{key}' must be between {lo:g} and {hi:g} "
                    f"(got {field}={value!r})", param=key)
        for field, key, enum, names in (
                ("wave_shape", "shape", WaveShape, WAVE_NAMES),
                ("interpolation", "interp", Interpolation, INTERP_NAMES)):
            try:
                enum(getattr(self, field))
            except ValueError:
                raise ConfigurationError(
                    f"parameter `{key}' must be one of {names}", param=key) from None

    def as_params(self) -> dict:
        """Back to the user-facing params dict."""
        return {
            "delay": self.delay_min * 1000.0,
            "depth": self.delay_depth * 1000.0,
            "regen": self.feedback_gain * 100.0,
            "width": self.wet_mix * 100.0,
            "speed": self.speed,
            "shape": int(self.wave_shape),
            "phase": self.channel_phase * 100.0,
            "interp": int(self.interpolation),
        }


def _to_config(params: dict) -> EffectConfig:
    log.info("parameters:\n"
             "delay = %gms\n"
             "depth = %gms\n"
             "regen = %g%%\n"
             "width = %g%%\n"
             "speed = %gHz\n"
             "shape = %s\n"
             "phase = %g%%\n"
             "interp= %s",
             params["delay"], params["depth"], params["regen"], params["width"],
             params["speed"], WAVE_NAMES[params["shape"]], params["phase"],
             INTERP_NAMES[params["interp"]])

    return EffectConfig(
        delay_min=params["delay"] / 1000.0,
        delay_depth=params["depth"] / 1000.0,
        feedback_gain=params["regen"] / 100.0,
        wet_mix=params["width"] / 100.0,
        speed=float(params["speed"]),
        wave_shape=WaveShape(params["shape"]),
        channel_phase=params["phase"] / 100.0,
        interpolation=Interpolation(params["interp"]),
    )


def resolve_config(argv) -> EffectConfig:
    """Resolve a positional argument list (the usage line) into an EffectConfig.

    Raises ConfigurationError on an out-of-range value or leftover arguments.
    """
    return _to_config(SCHEMA.parse_args(list(argv)))


def config_from_params(params: dict) -> EffectConfig:
    """Resolve a params dict (e.g. a JSON preset) into an EffectConfig."""
    return _to_config(SCHEMA.validate(params))
