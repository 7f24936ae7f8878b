"""Tests for the coordinate codec."""

import pytest
import numpy as np
from py_stipple.core.codec import (
    encode, decode, encode_fixed, decode_fixed, encode_nibble_pair, decode_nibble_pair,
    pack_channels, unpack_channels, pack_nibble_pairs, unpack_nibble_pairs,
    quantization_epsilon, max_value,
)
from py_stipple.errors import CodecRangeError


class TestMultiChannelPacking:
    """Test base-256 integer packing."""

    @pytest.mark.parametrize("value,expected", [
        (0, (0, 0, 0)),
        (255, (255, 0, 0)),
        (256, (0, 1, 0)),
        (4095, (255, 15, 0)),
        (65535, (255, 255, 0)),
        (65536, (0, 0, 1)),
        (16777215, (255, 255, 255)),
    ])
    def test_boundary_values(self, value, expected):
        """Test exact channel layout and recovery at boundaries."""
        channels = encode(value)
        assert channels == expected
        assert decode(channels) == value

    def test_fewer_channels(self):
        """Test packing into two channels."""
        assert encode(4095, num_channels=2) == (255, 15)
        assert decode((255, 15)) == 4095

    def test_wider_channels(self):
        """Test packing with 4-bit channels."""
        channels = encode(4095, num_channels=3, channel_bits=4)
        assert channels == (15, 15, 15)
        assert decode(channels, channel_bits=4) == 4095

    @pytest.mark.parametrize("value", [-1, 16777216, 2.5])
    def test_out_of_range(self, value):
        """Test that unrepresentable values are rejected."""
        with pytest.raises(CodecRangeError):
            encode(value)

    def test_decode_rejects_bad_channel(self):
        """Test that channel values beyond the channel width are rejected."""
        with pytest.raises(CodecRangeError):
            decode((256, 0, 0))

    def test_max_value(self):
        assert max_value(3) == 16777215
        assert max_value(1) == 255


class TestFixedPoint:
    """Test fixed-point packing of continuous values."""

    def test_exact_fraction(self):
        """Test that multiples of the epsilon round-trip exactly."""
        channels = encode_fixed(1.5)
        assert channels == (128, 1, 0)
        assert decode_fixed(channels) == 1.5

    @pytest.mark.parametrize("value", [0.0, 0.001, 12.3456, 255.999, 4095.5, 31.87])
    def test_round_trip_within_epsilon(self, value):
        """Test that continuous values round-trip within the quantization epsilon."""
        recovered = decode_fixed(encode_fixed(value))
        assert abs(recovered - value) <= quantization_epsilon(8)

    def test_epsilon(self):
        assert quantization_epsilon(8) == 1 / 256
        assert quantization_epsilon(4) == 1 / 16

    def test_non_finite(self):
        """Test that NaN cannot be encoded."""
        with pytest.raises(CodecRangeError):
            encode_fixed(float("nan"))


class TestNibblePacking:
    """Test nibble-interleaved coordinate packing."""

    @pytest.mark.parametrize("x,y,expected", [
        (0, 0, (0, 0, 0)),
        (255, 255, (255, 255, 0)),
        (256, 256, (0, 0, 0x11)),
        (4095, 0, (255, 0, 0x0F)),
        (0, 4095, (0, 255, 0xF0)),
        (4095, 4095, (255, 255, 255)),
    ])
    def test_boundary_pairs(self, x, y, expected):
        """Test layout and exact recovery of boundary coordinates."""
        packed = encode_nibble_pair(x, y)
        assert packed == expected
        assert decode_nibble_pair(*packed) == (x, y)

    def test_axes_do_not_interfere(self):
        """Test that x high bits never leak into y and vice versa."""
        for x, y in [(1234, 3210), (4000, 17), (17, 4000)]:
            assert decode_nibble_pair(*encode_nibble_pair(x, y)) == (x, y)

    @pytest.mark.parametrize("x,y", [(4096, 0), (0, 4096), (-1, 0)])
    def test_out_of_range(self, x, y):
        with pytest.raises(CodecRangeError):
            encode_nibble_pair(x, y)


class TestVectorized:
    """Test numpy forms against the scalar codec."""

    def test_pack_matches_scalar(self):
        values = np.array([0, 255, 256, 4095, 65535, 123456])
        packed = pack_channels(values, 3)
        assert packed.dtype == np.uint8
        assert packed.shape == (6, 3)
        for v, row in zip(values, packed):
            assert tuple(int(c) for c in row) == encode(int(v))
        np.testing.assert_array_equal(unpack_channels(packed), values)

    def test_pack_rejects_out_of_range(self):
        with pytest.raises(CodecRangeError):
            pack_channels(np.array([0, 1 << 24]), 3)

    def test_nibble_arrays(self):
        xs = np.array([0, 255, 256, 4095])
        ys = np.array([4095, 256, 255, 0])
        packed = pack_nibble_pairs(xs, ys)
        for x, y, row in zip(xs, ys, packed):
            assert tuple(int(c) for c in row) == encode_nibble_pair(int(x), int(y))
        rx, ry = unpack_nibble_pairs(packed)
        np.testing.assert_array_equal(rx, xs)
        np.testing.assert_array_equal(ry, ys)
