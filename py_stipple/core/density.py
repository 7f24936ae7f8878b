"""Density field: an immutable luminance grid read by the relaxation."""

from typing import Union

import numpy as np

from ..errors import ConfigurationError

# Rec. 601 luma coefficients
LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


class DensityField:
    """
    Sampled ``H x W`` luminance grid with values in [0, 1].

    Luminance 0 is black. The importance weight of a pixel is
    ``1 - luminance``, so dark regions attract more stipples.
    """

    def __init__(self, samples: np.ndarray):
        arr = np.array(samples, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[0] == 0 or arr.shape[1] == 0:
            raise ConfigurationError(f"Density field must be a non-empty 2D grid, got shape {arr.shape}")
        if not np.all(np.isfinite(arr)):
            raise ConfigurationError("Density field contains non-finite samples")
        arr = np.clip(arr, 0.0, 1.0)
        arr.setflags(write=False)
        self._samples = arr

    @classmethod
    def from_luminance(cls, luminance: np.ndarray) -> "DensityField":
        """Build from a luminance array, uint8 (0-255) or float (0-1)."""
        arr = np.asarray(luminance)
        if arr.dtype == np.uint8:
            arr = arr.astype(np.float64) / 255.0
        return cls(arr)

    @classmethod
    def from_rgb(cls, rgb: np.ndarray) -> "DensityField":
        """
        Build from an RGB or RGBA image array.

        Args:
            rgb: (H, W, 3|4) array, uint8 or float in [0, 1]. Alpha is ignored.
        """
        arr = np.asarray(rgb)
        if arr.ndim != 3 or arr.shape[-1] < 3:
            raise ConfigurationError(f"Expected (H, W, 3|4) image, got shape {arr.shape}")
        scale = 255.0 if arr.dtype == np.uint8 else 1.0
        luma = arr[..., :3].astype(np.float64) @ LUMA_WEIGHTS
        return cls(luma / scale)

    @classmethod
    def uniform(cls, width: int, height: int, value: float = 0.5) -> "DensityField":
        """Constant field, used for tests and calibration."""
        return cls(np.full((height, width), value, dtype=np.float64))

    @property
    def width(self) -> int:
        return self._samples.shape[1]

    @property
    def height(self) -> int:
        return self._samples.shape[0]

    @property
    def samples(self) -> np.ndarray:
        """Read-only (H, W) luminance array."""
        return self._samples

    def _index(self, x: float, y: float):
        ix = min(max(int(np.floor(x)), 0), self.width - 1)
        iy = min(max(int(np.floor(y)), 0), self.height - 1)
        return iy, ix

    def sample(self, x: float, y: float) -> float:
        """Luminance at the pixel containing (x, y), clamped to the grid."""
        return float(self._samples[self._index(x, y)])

    def weight(self, x: float, y: float, weight_floor: float = 0.0) -> float:
        """Importance weight at (x, y)."""
        return float(remap_weight(1.0 - self.sample(x, y), weight_floor))

    def weights(self, weight_floor: float = 0.0) -> np.ndarray:
        """(H, W) importance weights, ``1 - luminance`` remapped above the floor."""
        return remap_weight(1.0 - self._samples, weight_floor)

    def supersampled_weights(self, supersampling: int = 1, weight_floor: float = 0.0) -> np.ndarray:
        """
        Weights on the ``H*S x W*S`` ownership grid.

        Each sample covers its ``S x S`` block (nearest sampling).
        """
        w = self.weights(weight_floor)
        if supersampling == 1:
            return w
        return np.repeat(np.repeat(w, supersampling, axis=0), supersampling, axis=1)

    def __repr__(self) -> str:
        return f"DensityField(width={self.width}, height={self.height})"


def remap_weight(omega: Union[float, np.ndarray], weight_floor: float = 0.0):
    """Map omega in [0, 1] to [floor, 1] so a positive floor keeps every pixel weighted."""
    if weight_floor <= 0.0:
        return omega
    return weight_floor + (1.0 - weight_floor) * omega
