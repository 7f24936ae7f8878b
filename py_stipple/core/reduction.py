"""
Weighted reduction pipeline: ownership grid + weights -> per-site centroids.

Stage A reduces each row of the ownership grid into one accumulator per
(site, row); stage B sums those rows into one accumulator per site. Each
accumulator is the 4-tuple ``(sumX, sumY, sumWeight, count)`` where
``sumX`` and ``sumY`` are weighted cell-centre coordinates on the
supersampled grid.
"""

from dataclasses import dataclass

import numpy as np
import structlog

from ..errors import ConfigurationError

logger = structlog.get_logger()

SUM_X, SUM_Y, SUM_W, COUNT = range(4)
WEIGHT_SCALE = 255.0


@dataclass(frozen=True)
class CentroidResult:
    """Centroids extracted from a final accumulator."""

    centroids: np.ndarray  # (N, 2) site-space, zeros where not valid
    mean_weights: np.ndarray  # (N,) on the 0-255 scale
    valid: np.ndarray  # (N,) bool, False where the site gathered no weight
    counts: np.ndarray  # (N,) owned cells


def _row_terms(weights: np.ndarray):
    grid_h, grid_w = weights.shape
    cx = np.arange(grid_w, dtype=np.float64)[None, :] + 0.5
    cy = np.arange(grid_h, dtype=np.float64)[:, None] + 0.5
    return cx * weights, cy * weights


def reduce_rows(
    ownership: np.ndarray,
    weights: np.ndarray,
    n_sites: int,
    strategy: str = "scatter",
) -> np.ndarray:
    """
    Stage A: per (site, row) accumulators.

    Args:
        ownership: (H', W') site ids
        weights: (H', W') pixel weights on the same grid
        n_sites: Number of sites N
        strategy: "scatter" accumulates each cell once into its owner;
            "scan" rescans every row once per site id

    Returns:
        (N, H', 4) float64 intermediate accumulator
    """
    if ownership.shape != weights.shape:
        raise ConfigurationError(
            f"Ownership grid {ownership.shape} and weight grid {weights.shape} differ"
        )
    grid_h, grid_w = ownership.shape
    wx, wy = _row_terms(weights)

    if strategy == "scatter":
        rows = np.broadcast_to(np.arange(grid_h)[:, None], ownership.shape)
        keys = (ownership.astype(np.int64) * grid_h + rows).ravel()
        size = n_sites * grid_h
        acc = np.empty((size, 4), dtype=np.float64)
        acc[:, SUM_X] = np.bincount(keys, weights=wx.ravel(), minlength=size)
        acc[:, SUM_Y] = np.bincount(keys, weights=wy.ravel(), minlength=size)
        acc[:, SUM_W] = np.bincount(keys, weights=weights.ravel(), minlength=size)
        acc[:, COUNT] = np.bincount(keys, minlength=size)
        return acc.reshape(n_sites, grid_h, 4)

    if strategy == "scan":
        acc = np.zeros((n_sites, grid_h, 4), dtype=np.float64)
        for site_id in range(n_sites):
            owned = ownership == site_id
            acc[site_id, :, SUM_X] = np.where(owned, wx, 0.0).sum(axis=1)
            acc[site_id, :, SUM_Y] = np.where(owned, wy, 0.0).sum(axis=1)
            acc[site_id, :, SUM_W] = np.where(owned, weights, 0.0).sum(axis=1)
            acc[site_id, :, COUNT] = owned.sum(axis=1)
        return acc

    raise ConfigurationError(f"Unknown reduction strategy: {strategy!r}")


def reduce_columns(intermediate: np.ndarray) -> np.ndarray:
    """Stage B: sum the row accumulators of each site into (N, 4)."""
    return intermediate.sum(axis=1)


def extract_centroids(final: np.ndarray, supersampling: int = 1) -> CentroidResult:
    """
    Turn final accumulators into site-space centroids and mean weights.

    A site whose accumulated weight is zero has no defined centroid; it is
    reported with ``valid=False`` and a zero placeholder instead of NaN.
    """
    total_w = final[:, SUM_W]
    counts = final[:, COUNT]
    valid = total_w > 0.0

    centroids = np.zeros((len(final), 2), dtype=np.float64)
    centroids[valid] = final[valid, :2] / total_w[valid, None] / supersampling

    mean_weights = np.zeros(len(final), dtype=np.float64)
    owned = counts > 0
    mean_weights[owned] = total_w[owned] / counts[owned] * WEIGHT_SCALE

    n_frozen = int(np.count_nonzero(~valid))
    if n_frozen:
        logger.debug("Sites without weight frozen", count=n_frozen)

    return CentroidResult(centroids=centroids, mean_weights=mean_weights, valid=valid, counts=counts)


def reduce_ownership(
    ownership: np.ndarray,
    weights: np.ndarray,
    n_sites: int,
    supersampling: int = 1,
    strategy: str = "scatter",
) -> CentroidResult:
    """Run stage A, stage B and centroid extraction."""
    intermediate = reduce_rows(ownership, weights, n_sites, strategy=strategy)
    final = reduce_columns(intermediate)
    return extract_centroids(final, supersampling)
