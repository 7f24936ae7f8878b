"""
Quality measures for a relaxation run.

Used for per-iteration logging and by the tests that check the partition
invariant and the Lloyd descent property.
"""

import numpy as np

from .ownership import cell_centres


def partition_counts(ownership: np.ndarray, n_sites: int) -> np.ndarray:
    """Number of cells owned by each site."""
    return np.bincount(ownership.ravel(), minlength=n_sites)


def is_total_partition(ownership: np.ndarray, n_sites: int) -> bool:
    """True when every cell holds exactly one id in [0, n_sites)."""
    if ownership.size == 0:
        return False
    return bool(ownership.min() >= 0 and ownership.max() < n_sites)


def lloyd_energy(
    positions: np.ndarray,
    ownership: np.ndarray,
    weights: np.ndarray,
    supersampling: int = 1,
) -> float:
    """
    Weighted squared distance from every cell to its owning site.

    Args:
        positions: (N, 2) site positions in site space
        ownership: (H', W') ownership grid for those positions
        weights: (H', W') pixel weights
        supersampling: Grid upscale factor

    Returns:
        Energy in squared site units
    """
    grid_h, grid_w = ownership.shape
    cx, cy = cell_centres(grid_w, grid_h, 1)
    owner_pos = np.asarray(positions, dtype=np.float64)[ownership] * supersampling
    d2 = (cx[None, :] - owner_pos[..., 0]) ** 2 + (cy[:, None] - owner_pos[..., 1]) ** 2
    return float(np.sum(weights * d2) / (supersampling * supersampling))


def mean_displacement(old: np.ndarray, new: np.ndarray) -> float:
    """Mean distance moved by the sites between two iterations."""
    if len(old) == 0:
        return 0.0
    return float(np.mean(np.linalg.norm(np.asarray(new) - np.asarray(old), axis=1)))
