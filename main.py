#!/usr/bin/env python3
"""Flange a WAV file from the project root.

Usage:
    uv run python main.py input.wav output.wav [delay depth regen width speed shape phase interp]
"""

import sys

if __name__ == "__main__":
    from audio.render import main
    sys.exit(main())
