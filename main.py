#!/usr/bin/env python3
"""Run the compandor from the project root.

Usage:
    uv run python main.py compress input.wav compressed.wav
    uv run python main.py expand compressed.wav restored.wav
    uv run python main.py measure --sr 8000
"""

import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from audio.render import main  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(name)s %(levelname)s: %(message)s")


if __name__ == "__main__":
    main()
