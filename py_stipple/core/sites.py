"""Stipple sites and the immutable site set the driver replaces each iteration."""

from dataclasses import dataclass
from typing import Iterator, List, Optional

import numpy as np


@dataclass(frozen=True)
class Site:
    """One weighted point. ``weight`` uses the 0-255 presentation scale."""

    id: int
    x: float
    y: float
    weight: float = 0.0

    @property
    def position(self):
        return (self.x, self.y)


class SiteSet:
    """
    Batch of N sites stored as read-only arrays.

    Site ids are the row indices: dense, 0..N-1 and stable for a run.
    A new SiteSet is built for every iteration; arrays are never mutated.
    """

    def __init__(self, positions: np.ndarray, weights: Optional[np.ndarray] = None):
        pos = np.array(positions, dtype=np.float64).reshape(-1, 2)
        if weights is None:
            w = np.zeros(len(pos), dtype=np.float64)
        else:
            w = np.array(weights, dtype=np.float64).reshape(-1)
        if len(w) != len(pos):
            raise ValueError(f"Got {len(pos)} positions but {len(w)} weights")
        pos.setflags(write=False)
        w.setflags(write=False)
        self._positions = pos
        self._weights = w

    @classmethod
    def from_sites(cls, sites: List[Site]) -> "SiteSet":
        """Build from Site objects; ids must be exactly 0..N-1."""
        ordered = sorted(sites, key=lambda s: s.id)
        if [s.id for s in ordered] != list(range(len(ordered))):
            raise ValueError("Site ids must be dense 0..N-1")
        return cls(
            np.array([[s.x, s.y] for s in ordered], dtype=np.float64).reshape(-1, 2),
            np.array([s.weight for s in ordered], dtype=np.float64),
        )

    @property
    def positions(self) -> np.ndarray:
        return self._positions

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    def __len__(self) -> int:
        return len(self._positions)

    def __iter__(self) -> Iterator[Site]:
        return iter(self.to_sites())

    def __getitem__(self, site_id: int) -> Site:
        x, y = self._positions[site_id]
        return Site(id=int(site_id), x=float(x), y=float(y), weight=float(self._weights[site_id]))

    def to_sites(self) -> List[Site]:
        """Materialize as a list of Site objects in id order."""
        return [self[i] for i in range(len(self))]

    def replace(self, positions: np.ndarray, weights: np.ndarray) -> "SiteSet":
        """Return a new SiteSet with the same ids and new values."""
        if len(positions) != len(self):
            raise ValueError("Replacement must keep the site count")
        return SiteSet(positions, weights)

    def __repr__(self) -> str:
        return f"SiteSet(n={len(self)})"
