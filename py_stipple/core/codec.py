"""
Coordinate codec: pack scalar values into fixed-width channel tuples.

Two packing modes are supported:

1. Multi-channel integer packing. A value is split little-endian in base
   ``2**channel_bits`` across ``num_channels`` channels. With the default
   8-bit channels and 3 channels this covers 0..16,777,215.

2. Nibble-interleaved pair packing. Two coordinates share one spare 8-bit
   channel: its low nibble carries ``x >> 8`` and its high nibble carries
   ``y >> 8``. Coordinates up to 4095 fit in three channels total.

Continuous values go through fixed point (``encode_fixed``) and round-trip
within ``quantization_epsilon(fraction_bits)``.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from ..errors import CodecRangeError

NIBBLE_MAX = 4095


def quantization_epsilon(bits: int = 8) -> float:
    """Worst-case round-trip error of a fixed-point value with ``bits`` fractional bits."""
    return 1.0 / (1 << bits)


def max_value(num_channels: int, channel_bits: int = 8) -> int:
    """Largest integer representable in ``num_channels`` channels."""
    return (1 << (num_channels * channel_bits)) - 1


def encode(value: int, num_channels: int = 3, channel_bits: int = 8) -> Tuple[int, ...]:
    """
    Split a non-negative integer across channels, least significant first.

    Args:
        value: Integer to pack
        num_channels: Number of output channels
        channel_bits: Width of one channel in bits

    Returns:
        Tuple of ``num_channels`` ints, each in [0, 2**channel_bits)

    Raises:
        CodecRangeError: If value is negative or too large
    """
    if num_channels < 1 or channel_bits < 1:
        raise CodecRangeError("num_channels and channel_bits must be positive")
    v = int(value)
    if v != value or v < 0 or v > max_value(num_channels, channel_bits):
        raise CodecRangeError(
            f"{value!r} not representable in {num_channels}x{channel_bits}-bit channels"
        )
    mask = (1 << channel_bits) - 1
    return tuple((v >> (i * channel_bits)) & mask for i in range(num_channels))


def decode(channels: Sequence[int], channel_bits: int = 8) -> int:
    """Exact inverse of ``encode``."""
    limit = 1 << channel_bits
    value = 0
    for i, c in enumerate(channels):
        c = int(c)
        if c < 0 or c >= limit:
            raise CodecRangeError(f"channel value {c} outside [0, {limit})")
        value |= c << (i * channel_bits)
    return value


def encode_fixed(
    value: float,
    num_channels: int = 3,
    channel_bits: int = 8,
    fraction_bits: Optional[int] = None,
) -> Tuple[int, ...]:
    """Pack a non-negative real as fixed point with ``fraction_bits`` fractional bits."""
    if fraction_bits is None:
        fraction_bits = channel_bits
    if not np.isfinite(value):
        raise CodecRangeError(f"cannot encode non-finite value {value!r}")
    return encode(int(round(value * (1 << fraction_bits))), num_channels, channel_bits)


def decode_fixed(
    channels: Sequence[int],
    channel_bits: int = 8,
    fraction_bits: Optional[int] = None,
) -> float:
    """Inverse of ``encode_fixed``."""
    if fraction_bits is None:
        fraction_bits = channel_bits
    return decode(channels, channel_bits) / float(1 << fraction_bits)


def encode_nibble_pair(x: int, y: int) -> Tuple[int, int, int]:
    """
    Pack two coordinates in [0, 4095] into three 8-bit channels.

    Returns:
        (x & 0xFF, y & 0xFF, (x >> 8) | ((y >> 8) << 4))
    """
    for name, v in (("x", x), ("y", y)):
        if int(v) != v or v < 0 or v > NIBBLE_MAX:
            raise CodecRangeError(f"{name}={v!r} outside nibble range [0, {NIBBLE_MAX}]")
    x, y = int(x), int(y)
    return x & 0xFF, y & 0xFF, (x >> 8) | ((y >> 8) << 4)


def decode_nibble_pair(x_lo: int, y_lo: int, packed: int) -> Tuple[int, int]:
    """Inverse of ``encode_nibble_pair``."""
    for c in (x_lo, y_lo, packed):
        if c < 0 or c > 0xFF:
            raise CodecRangeError(f"channel value {c} outside [0, 256)")
    return int(x_lo) | ((int(packed) & 0x0F) << 8), int(y_lo) | ((int(packed) >> 4) << 8)


# Vectorized forms


def _channel_dtype(channel_bits: int):
    if channel_bits <= 8:
        return np.uint8
    if channel_bits <= 16:
        return np.uint16
    return np.uint32


def pack_channels(values: np.ndarray, num_channels: int = 3, channel_bits: int = 8) -> np.ndarray:
    """
    Array form of ``encode``.

    Args:
        values: Integer array of any shape
        num_channels: Channels per value
        channel_bits: Bits per channel

    Returns:
        Array of shape ``values.shape + (num_channels,)``
    """
    v = np.asarray(values)
    if v.size and (np.any(v < 0) or np.any(v > max_value(num_channels, channel_bits))):
        raise CodecRangeError(f"values outside [0, {max_value(num_channels, channel_bits)}]")
    v = v.astype(np.int64)
    mask = (1 << channel_bits) - 1
    shifts = np.arange(num_channels, dtype=np.int64) * channel_bits
    return ((v[..., None] >> shifts) & mask).astype(_channel_dtype(channel_bits))


def unpack_channels(channels: np.ndarray, channel_bits: int = 8) -> np.ndarray:
    """Array form of ``decode``; the last axis holds the channels."""
    c = np.asarray(channels).astype(np.int64)
    shifts = np.arange(c.shape[-1], dtype=np.int64) * channel_bits
    return np.sum(c << shifts, axis=-1)


def pack_nibble_pairs(xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
    """Array form of ``encode_nibble_pair``; returns shape ``xs.shape + (3,)`` uint8."""
    xs = np.asarray(xs).astype(np.int64)
    ys = np.asarray(ys).astype(np.int64)
    if xs.size and (xs.min() < 0 or xs.max() > NIBBLE_MAX or ys.min() < 0 or ys.max() > NIBBLE_MAX):
        raise CodecRangeError(f"coordinates outside nibble range [0, {NIBBLE_MAX}]")
    return np.stack([xs & 0xFF, ys & 0xFF, (xs >> 8) | ((ys >> 8) << 4)], axis=-1).astype(np.uint8)


def unpack_nibble_pairs(channels: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Array form of ``decode_nibble_pair``."""
    c = np.asarray(channels).astype(np.int64)
    xs = c[..., 0] | ((c[..., 2] & 0x0F) << 8)
    ys = c[..., 1] | ((c[..., 2] >> 4) << 8)
    return xs, ys
