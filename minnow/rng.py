"""A pseudo-random engine seeded from the operating system's entropy."""

from __future__ import annotations

import os
import random

_SEED_BYTES = 1024 * 4


def get_random_engine() -> random.Random:
    """Return a new generator seeded with 1024 words of system entropy."""
    return random.Random(int.from_bytes(os.urandom(_SEED_BYTES), "big"))