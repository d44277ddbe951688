"""
Process-wide source of randomness shared by every generative distribution.
"""

from typing import Optional

import numpy as np

_random = np.random.default_rng()


def get_random() -> np.random.Generator:
    return _random


def set_seed(seed: Optional[int]) -> np.random.Generator:
    """Replaces the shared generator; distributions pick it up on their next draw."""
    global _random
    _random = np.random.default_rng(seed)
    return _random
