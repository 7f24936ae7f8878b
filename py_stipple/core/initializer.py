"""
Site initializer: density-biased rejection sampling.

A candidate location is drawn uniformly over the field and accepted when
``u * max_weight < weight(location)``, so dark pixels are accepted more
often than light ones. Sampling continues until exactly N sites are
accepted; positions are independent and may repeat.
"""

from typing import Optional

import numpy as np
import structlog

from ..errors import ConfigurationError
from ..utils.random import Seed, coerce_rng
from .density import DensityField
from .sites import SiteSet

logger = structlog.get_logger()

# Candidates drawn per batch, as a multiple of the sites still missing
BATCH_FACTOR = 4
MIN_BATCH = 256


def initialize_sites(
    field: DensityField,
    n_sites: int,
    rng: Optional[np.random.Generator] = None,
    seed: Seed = None,
    weight_floor: float = 0.0,
) -> SiteSet:
    """
    Rejection-sample ``n_sites`` initial positions from ``field``.

    Args:
        field: Density field to sample
        n_sites: Number of sites to place
        rng: Random generator; built from ``seed`` when omitted
        seed: Seed used when no generator is given
        weight_floor: Lowest weight a pixel can carry

    Returns:
        SiteSet with exactly ``n_sites`` sites and zero weights

    Raises:
        ConfigurationError: If n_sites <= 0 or the field has no weight anywhere
    """
    if n_sites <= 0:
        raise ConfigurationError(f"n_sites must be positive, got {n_sites}")

    weights = field.weights(weight_floor)
    max_weight = float(weights.max())
    if max_weight <= 0.0:
        raise ConfigurationError("Density field has zero weight everywhere; nothing to stipple")

    rng = coerce_rng(rng, seed)
    width, height = field.width, field.height
    accepted = []
    n_accepted = 0
    n_drawn = 0

    while n_accepted < n_sites:
        batch = max(MIN_BATCH, BATCH_FACTOR * (n_sites - n_accepted))
        xs = rng.random(batch) * width
        ys = rng.random(batch) * height
        u = rng.random(batch)
        n_drawn += batch

        ix = np.minimum(xs.astype(np.int64), width - 1)
        iy = np.minimum(ys.astype(np.int64), height - 1)
        keep = u * max_weight < weights[iy, ix]

        chunk = np.column_stack([xs[keep], ys[keep]])[: n_sites - n_accepted]
        accepted.append(chunk)
        n_accepted += len(chunk)

    positions = np.vstack(accepted)
    logger.info(
        "Sites initialized",
        n_sites=n_sites,
        candidates=n_drawn,
        acceptance=round(n_sites / n_drawn, 4),
    )
    return SiteSet(positions)
