"""Declarative parameter schema.

The effect's parameter contract is a list of ParamDef objects.
ParamSchema wraps the list and provides defaults, ranges, and the two
ways parameters arrive: a positional argument list (CLI usage line) and
a params dict (presets, scripting). Both are validated strictly:
out-of-range values are errors, never clamped.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from shared.errors import ConfigurationError


class ParamType(Enum):
    FLOAT = "float"
    CHOICE = "choice"


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    section: str
    label: str = ""
    unit: str = ""
    range: tuple | None = None  # (min, max) inclusive, for FLOAT
    choices: list[str] | None = None  # names for CHOICE; value is the index


# A number as strtod would consume it
_NUMERIC_PREFIX = re.compile(
    r"\s*[+-]?((\d+\.?\d*|\.\d+)([eE][+-]?\d+)?|inf(inity)?|nan)", re.IGNORECASE)


def match_choice(text: str, choices: list[str]) -> int | None:
    """Index of the choice that `text` names, or None.

    Case-insensitive; any unambiguous prefix is accepted.
    """
    found = None
    for i, name in enumerate(choices):
        if name.lower().startswith(text.lower()):
            if found is not None and found != i:
                return None
            found = i
    return found


class ParamSchema:
    def __init__(self, params: list[ParamDef]):
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self) -> dict:
        return {p.key: p.default for p in self._params}

    def param_ranges(self) -> dict[str, tuple]:
        """Continuous params only -> (min, max)."""
        return {p.key: p.range for p in self._params
                if p.type == ParamType.FLOAT and p.range is not None}

    def usage(self) -> str:
        return "[" + " ".join(p.key for p in self._params) + "]"

    def _check_range(self, p: ParamDef, value: float) -> float:
        lo, hi = p.range
        if not math.isfinite(value) or value < lo or value > hi:
            raise ConfigurationError(
                f"parameter `{p.key}' must be between {lo:g} and {hi:g}", param=p.key)
        return value

    def parse_args(self, argv: list[str]) -> dict:
        """Parse positional args in declaration order.

        A token that is not a number at all leaves a numeric slot at its
        default and moves on, so `["triangle"]` sets only the shape.
        Likewise a token naming no choice skips a choice slot.
        """
        params = self.default_params()
        args = list(argv)
        for p in self._params:
            if not args:
                break
            token = args[0]
            if p.type == ParamType.FLOAT:
                if not _NUMERIC_PREFIX.fullmatch(token):
                    if _NUMERIC_PREFIX.match(token):
                        # Number with trailing junk, e.g. "5ms" or "1_0"
                        lo, hi = p.range
                        raise ConfigurationError(
                            f"parameter `{p.key}' must be between {lo:g} and {hi:g}",
                            param=p.key)
                    continue
                params[p.key] = self._check_range(p, float(token))
            else:
                idx = match_choice(token, p.choices)
                if idx is None:
                    continue
                params[p.key] = idx
            args.pop(0)

        if args:
            raise ConfigurationError(
                f"unexpected argument `{args[0]}'; usage: {self.usage()}")
        return params

    def validate(self, raw: dict) -> dict:
        """Strictly validate a params dict; missing keys take defaults.

        Choice params accept a name (or unambiguous prefix) or an index.
        """
        params = self.default_params()
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                raise ConfigurationError(f"unknown parameter `{key}'", param=key)
            if p.type == ParamType.FLOAT:
                if isinstance(value, bool):
                    raise ConfigurationError(f"parameter `{key}' must be a number", param=key)
                try:
                    v = float(value)
                except (TypeError, ValueError):
                    raise ConfigurationError(
                        f"parameter `{key}' must be a number", param=key) from None
                params[key] = self._check_range(p, v)
            else:
                if isinstance(value, str):
                    idx = match_choice(value, p.choices) if value else None
                elif isinstance(value, int) and not isinstance(value, bool) \
                        and 0 <= value < len(p.choices):
                    idx = value
                else:
                    idx = None
                if idx is None:
                    raise ConfigurationError(
                        f"parameter `{key}' must be one of {p.choices}", param=key)
                params[key] = idx
        return params
