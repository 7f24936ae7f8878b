"""
Ownership rasterizer: assign every cell of the supersampled grid to its
nearest site.

Contract shared by every backend: the owner of cell ``(x, y)`` of the
``W*S x H*S`` grid is the site minimizing the distance between the cell
centre ``(x + 0.5, y + 0.5)`` and ``position * S``, with ties going to the
lowest site id. The result is a total partition: every cell holds an id in
``[0, N)``.

Backends:

- ``cone``: lower envelope of identical cones. Sites are composited in id
  order into a depth buffer and a cell only changes owner when the new cone
  is strictly closer, so the first (lowest id) site wins ties. This mirrors
  depth-tested cone rasterization without drawing any geometry.
- ``brute_force``: vectorized nearest-site scan over row bands, optionally
  spread over a thread pool.
- ``kdtree``: ``scipy.spatial.cKDTree`` nearest-neighbour queries.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Tuple, Type

import numpy as np
import scipy.spatial
import structlog

from ..errors import CapabilityError, ConfigurationError

logger = structlog.get_logger()

# Upper bound on N * band_rows * W' elements held by one brute-force band
BAND_ELEMENTS = 1 << 22


def cell_centres(width: int, height: int, supersampling: int) -> Tuple[np.ndarray, np.ndarray]:
    """Cell centre coordinates of the supersampled grid along x and y."""
    cx = np.arange(width * supersampling, dtype=np.float64) + 0.5
    cy = np.arange(height * supersampling, dtype=np.float64) + 0.5
    return cx, cy


class OwnershipRasterizer:
    """Base class for ownership backends."""

    name = "base"

    def __init__(self, workers: int = 1):
        if workers < 1:
            raise ConfigurationError(f"workers must be >= 1, got {workers}")
        self.workers = workers

    @classmethod
    def available(cls) -> bool:
        """Whether this backend can run in the current environment."""
        return True

    def rasterize(
        self, positions: np.ndarray, width: int, height: int, supersampling: int = 1
    ) -> np.ndarray:
        """
        Build the ownership grid for ``positions``.

        Args:
            positions: (N, 2) site positions in site space
            width: Field width in site units
            height: Field height in site units
            supersampling: Integer grid upscale factor S >= 1

        Returns:
            (H*S, W*S) int32 array of site ids

        Raises:
            ConfigurationError: If there are no sites or S < 1
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        if len(positions) == 0:
            raise ConfigurationError("Cannot rasterize ownership for zero sites")
        if supersampling < 1:
            raise ConfigurationError(f"supersampling must be >= 1, got {supersampling}")

        scaled = positions * supersampling
        owners = self._rasterize(scaled, width * supersampling, height * supersampling)
        return owners.astype(np.int32, copy=False)

    def _rasterize(self, scaled: np.ndarray, grid_w: int, grid_h: int) -> np.ndarray:
        raise NotImplementedError


class ConeRasterizer(OwnershipRasterizer):
    """Depth-composited cones, one per site, drawn in id order."""

    name = "cone"

    def _rasterize(self, scaled, grid_w, grid_h):
        cx, cy = cell_centres(grid_w, grid_h, 1)
        depth = np.full((grid_h, grid_w), np.inf)
        owners = np.zeros((grid_h, grid_w), dtype=np.int32)

        for site_id, (px, py) in enumerate(scaled):
            # Squared distance orders cells exactly like the cone height
            cone = (cy[:, None] - py) ** 2 + (cx[None, :] - px) ** 2
            closer = cone < depth
            depth[closer] = cone[closer]
            owners[closer] = site_id
        return owners


class BruteForceRasterizer(OwnershipRasterizer):
    """Per-cell nearest-site scan over row bands."""

    name = "brute_force"

    def _band(self, scaled, cx, cy_band):
        dx2 = (cx[None, :] - scaled[:, 0, None]) ** 2  # (N, W')
        dy2 = (cy_band[None, :] - scaled[:, 1, None]) ** 2  # (N, rows)
        d2 = dy2[:, :, None] + dx2[:, None, :]  # (N, rows, W')
        # argmin returns the first minimum, i.e. the lowest site id
        return np.argmin(d2, axis=0)

    def _rasterize(self, scaled, grid_w, grid_h):
        cx, cy = cell_centres(grid_w, grid_h, 1)
        rows = max(1, BAND_ELEMENTS // max(1, len(scaled) * grid_w))
        bands = [(s, min(grid_h, s + rows)) for s in range(0, grid_h, rows)]

        if self.workers == 1 or len(bands) == 1:
            parts = [self._band(scaled, cx, cy[s:e]) for s, e in bands]
        else:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [pool.submit(self._band, scaled, cx, cy[s:e]) for s, e in bands]
                parts = [f.result() for f in futures]
        return np.vstack(parts)


class KDTreeRasterizer(OwnershipRasterizer):
    """Spatial index queries with an explicit lowest-id tie break."""

    name = "kdtree"

    # Relative slack on the ball radius used to gather every tied site
    tie_tolerance = 1e-9

    @classmethod
    def available(cls) -> bool:
        return hasattr(scipy.spatial, "cKDTree")

    def _rasterize(self, scaled, grid_w, grid_h):
        tree = scipy.spatial.cKDTree(scaled)
        cx, cy = cell_centres(grid_w, grid_h, 1)
        ys, xs = np.meshgrid(cy, cx, indexing="ij")
        coords = np.column_stack([xs.ravel(), ys.ravel()])
        if len(scaled) == 1:
            return np.zeros((grid_h, grid_w), dtype=np.int32)

        dist, idx = tree.query(coords, k=2, workers=self.workers)
        owners = idx[:, 0].astype(np.int64)
        tied = dist[:, 1] == dist[:, 0]
        if np.any(tied):
            owners[tied] = self._resolve_ties(tree, scaled, coords[tied], dist[tied, 0])
        return owners.reshape(grid_h, grid_w)

    def _resolve_ties(self, tree, scaled, points, nearest):
        """Lowest id among all sites at the nearest distance of each point."""
        radius = nearest * (1.0 + self.tie_tolerance) + self.tie_tolerance
        candidates = tree.query_ball_point(points, r=radius, workers=self.workers)
        owners = np.empty(len(points), dtype=np.int64)
        for i, ids in enumerate(candidates):
            ids = np.sort(np.asarray(ids, dtype=np.int64))
            # Same expression as the other backends so exact ties compare equal
            d2 = (points[i, 1] - scaled[ids, 1]) ** 2 + (points[i, 0] - scaled[ids, 0]) ** 2
            owners[i] = ids[np.argmin(d2)]
        logger.debug("Ownership ties resolved", cells=len(points))
        return owners


RASTERIZERS: Dict[str, Type[OwnershipRasterizer]] = {
    ConeRasterizer.name: ConeRasterizer,
    BruteForceRasterizer.name: BruteForceRasterizer,
    KDTreeRasterizer.name: KDTreeRasterizer,
}


def get_rasterizer(name: str, workers: int = 1) -> OwnershipRasterizer:
    """
    Resolve a backend by name.

    Raises:
        CapabilityError: If the backend is unknown or unavailable here
    """
    cls = RASTERIZERS.get(name)
    if cls is None:
        raise CapabilityError(
            f"Unknown rasterizer backend {name!r}; available: {sorted(RASTERIZERS)}"
        )
    if not cls.available():
        raise CapabilityError(f"Rasterizer backend {name!r} is not available in this environment")
    logger.debug("Rasterizer resolved", backend=name, workers=workers)
    return cls(workers=workers)
