"""
Random number generation utilities.

All stochastic steps take an explicit ``numpy.random.Generator`` so a run
is reproducible from its seed. Seeds may be integers or strings; a string
seed is mapped to a SeedSequence through its code points.
"""

from typing import Optional, Union

import numpy as np

Seed = Union[int, str, None]


def make_rng(seed: Seed = None) -> np.random.Generator:
    """
    Build a generator from an int, str or None seed.

    Args:
        seed: Seed value. None draws fresh OS entropy.

    Returns:
        numpy Generator
    """
    if isinstance(seed, str):
        return np.random.default_rng(np.random.SeedSequence([ord(c) for c in seed] or [0]))
    return np.random.default_rng(seed)


def coerce_rng(rng: Optional[np.random.Generator] = None, seed: Seed = None) -> np.random.Generator:
    """Return ``rng`` if given, otherwise a generator built from ``seed``."""
    if rng is not None:
        return rng
    return make_rng(seed)
