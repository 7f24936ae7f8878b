"""
Centroid transport: write a batch of centroids through the coordinate codec.

The reduction produces full-precision centroids. Before they are applied to
the site set they cross a bounded-width boundary, one row of uint8 channels
per site, and are decoded again. Layouts:

- ``multi_channel``: [x0, x1, x2, y0, y1, y2, w]. Coordinates are 24-bit
  fixed point with 8 fractional bits, weight is one 0-255 channel.
- ``nibble``: [x_lo, y_lo, xy_hi, w]. Coordinates are integers on the
  supersampled grid, high nibbles shared in one channel.
- ``none``: no packing, floats pass straight through.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np
import structlog

from ..errors import ConfigurationError
from .codec import (
    NIBBLE_MAX,
    max_value,
    pack_channels,
    pack_nibble_pairs,
    quantization_epsilon,
    unpack_channels,
    unpack_nibble_pairs,
)

logger = structlog.get_logger()

COORD_CHANNELS = 3
FRACTION_BITS = 8


class TransportMode(str, Enum):
    """Packing applied to centroids between reduction and site update."""

    NONE = "none"
    MULTI_CHANNEL = "multi_channel"
    NIBBLE = "nibble"


@dataclass(frozen=True)
class CentroidTransport:
    """Encoder/decoder pair for one run's centroid batches."""

    mode: TransportMode = TransportMode.MULTI_CHANNEL
    supersampling: int = 1

    @classmethod
    def for_mode(cls, mode, supersampling: int = 1) -> "CentroidTransport":
        try:
            resolved = TransportMode(mode)
        except ValueError:
            raise ConfigurationError(f"Unknown transport mode: {mode!r}") from None
        return cls(mode=resolved, supersampling=supersampling)

    @property
    def channels(self) -> int:
        """Channels per encoded site row."""
        if self.mode is TransportMode.MULTI_CHANNEL:
            return 2 * COORD_CHANNELS + 1
        if self.mode is TransportMode.NIBBLE:
            return 4
        return 0

    @property
    def epsilon(self) -> float:
        """Worst-case coordinate error in site units."""
        if self.mode is TransportMode.MULTI_CHANNEL:
            return quantization_epsilon(FRACTION_BITS)
        if self.mode is TransportMode.NIBBLE:
            return 0.5 / self.supersampling
        return 0.0

    def check_capacity(self, width: int, height: int) -> None:
        """
        Verify every in-field coordinate is representable.

        Raises:
            ConfigurationError: If the field is too large for this mode
        """
        if self.mode is TransportMode.MULTI_CHANNEL:
            limit = max_value(COORD_CHANNELS) / float(1 << FRACTION_BITS)
            if max(width, height) > limit:
                raise ConfigurationError(
                    f"Field {width}x{height} exceeds multi_channel transport range ({limit:.0f})"
                )
        elif self.mode is TransportMode.NIBBLE:
            span = max(width, height) * self.supersampling
            if span > NIBBLE_MAX + 1:
                raise ConfigurationError(
                    f"Supersampled field span {span} exceeds nibble transport range ({NIBBLE_MAX + 1})"
                )

    def encode(self, positions: np.ndarray, weights: np.ndarray) -> np.ndarray:
        """
        Encode centroids (site space) and 0-255 weights.

        Args:
            positions: (N, 2) float array
            weights: (N,) float array on the 0-255 scale

        Returns:
            (N, channels) uint8 array, or an (N, 3) float copy for mode "none"
        """
        positions = np.asarray(positions, dtype=np.float64)
        weights = np.asarray(weights, dtype=np.float64)
        if self.mode is TransportMode.NONE:
            return np.column_stack([positions, weights])

        w = np.clip(np.rint(weights), 0, 255).astype(np.int64)
        if self.mode is TransportMode.MULTI_CHANNEL:
            fixed = np.rint(positions * (1 << FRACTION_BITS)).astype(np.int64)
            xs = pack_channels(fixed[:, 0], COORD_CHANNELS)
            ys = pack_channels(fixed[:, 1], COORD_CHANNELS)
            return np.concatenate([xs, ys, w[:, None].astype(np.uint8)], axis=1)

        # Nibble mode works on the supersampled integer grid
        grid = np.floor(positions * self.supersampling).astype(np.int64)
        grid = np.clip(grid, 0, NIBBLE_MAX)
        packed = pack_nibble_pairs(grid[:, 0], grid[:, 1])
        return np.concatenate([packed, w[:, None].astype(np.uint8)], axis=1)

    def decode(self, encoded: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Inverse of ``encode``.

        Returns:
            Tuple of (positions (N, 2), weights (N,))
        """
        if self.mode is TransportMode.NONE:
            return encoded[:, :2].copy(), encoded[:, 2].copy()

        if self.mode is TransportMode.MULTI_CHANNEL:
            scale = float(1 << FRACTION_BITS)
            xs = unpack_channels(encoded[:, :COORD_CHANNELS]) / scale
            ys = unpack_channels(encoded[:, COORD_CHANNELS:2 * COORD_CHANNELS]) / scale
            weights = encoded[:, 2 * COORD_CHANNELS].astype(np.float64)
            return np.column_stack([xs, ys]), weights

        xs, ys = unpack_nibble_pairs(encoded[:, :3])
        # Cell centre of the supersampled cell, back in site units
        positions = (np.column_stack([xs, ys]).astype(np.float64) + 0.5) / self.supersampling
        return positions, encoded[:, 3].astype(np.float64)

    def round_trip(self, positions: np.ndarray, weights: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Encode then decode, as a centroid batch crossing the transport boundary."""
        encoded = self.encode(positions, weights)
        logger.debug("Centroids encoded", mode=self.mode.value, shape=encoded.shape)
        return self.decode(encoded)
