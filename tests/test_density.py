"""Tests for the density field and site initializer."""

import pytest
import numpy as np
from py_stipple.core.density import DensityField
from py_stipple.core.initializer import initialize_sites
from py_stipple.utils.image import load_density_field
from py_stipple.utils.random import make_rng
from py_stipple.errors import ConfigurationError


class TestDensityField:
    """Test density field construction and sampling."""

    def test_from_luminance_uint8(self):
        field = DensityField.from_luminance(np.array([[0, 255], [51, 102]], dtype=np.uint8))
        assert field.width == 2
        assert field.height == 2
        assert field.sample(0, 0) == 0.0
        assert field.sample(1, 0) == 1.0
        assert field.sample(0.9, 1.9) == pytest.approx(0.2)

    def test_from_rgb(self):
        """Test luma conversion of RGB pixels."""
        rgb = np.zeros((1, 3, 3), dtype=np.uint8)
        rgb[0, 1] = 255
        rgb[0, 2] = (255, 0, 0)
        field = DensityField.from_rgb(rgb)
        assert field.sample(0, 0) == 0.0
        assert field.sample(1, 0) == pytest.approx(1.0)
        assert field.sample(2, 0) == pytest.approx(0.299)

    def test_rgba_alpha_ignored(self):
        rgba = np.full((2, 2, 4), 0.5, dtype=np.float32)
        rgba[..., 3] = 0.0
        field = DensityField.from_rgb(rgba)
        np.testing.assert_allclose(field.samples, 0.5, atol=1e-6)

    def test_read_only(self):
        """Test that samples cannot be modified."""
        field = DensityField.uniform(4, 4)
        with pytest.raises(ValueError):
            field.samples[0, 0] = 1.0

    def test_clamped_sampling(self):
        samples = np.arange(6, dtype=np.float64).reshape(2, 3) / 10
        field = DensityField(samples)
        assert field.sample(-5, -5) == 0.0
        assert field.sample(10, 10) == pytest.approx(0.5)

    def test_values_clipped(self):
        field = DensityField(np.array([[-1.0, 2.0]]))
        np.testing.assert_array_equal(field.samples, [[0.0, 1.0]])

    @pytest.mark.parametrize("samples", [np.zeros(4), np.zeros((0, 3)), np.array([[np.nan]])])
    def test_invalid_grid(self, samples):
        with pytest.raises(ConfigurationError):
            DensityField(samples)

    def test_weights(self):
        """Test that darker pixels weigh more and the floor lifts white."""
        field = DensityField(np.array([[0.0, 0.25, 1.0]]))
        np.testing.assert_allclose(field.weights(), [[1.0, 0.75, 0.0]])
        np.testing.assert_allclose(field.weights(0.1), [[1.0, 0.775, 0.1]])
        assert field.weight(2, 0, weight_floor=0.1) == pytest.approx(0.1)

    def test_supersampled_weights(self):
        field = DensityField(np.array([[0.0, 1.0], [0.5, 0.5]]))
        w = field.supersampled_weights(3)
        assert w.shape == (6, 6)
        np.testing.assert_array_equal(w[:3, :3], 1.0)
        np.testing.assert_array_equal(w[:3, 3:], 0.0)
        np.testing.assert_array_equal(w[3:, :], 0.5)


class TestInitializer:
    """Test rejection-sampled site placement."""

    def test_exact_count_and_bounds(self):
        field = DensityField.uniform(40, 30, 0.5)
        sites = initialize_sites(field, 100, seed=1)
        assert len(sites) == 100
        assert np.all(sites.positions[:, 0] >= 0) and np.all(sites.positions[:, 0] < 40)
        assert np.all(sites.positions[:, 1] >= 0) and np.all(sites.positions[:, 1] < 30)
        np.testing.assert_array_equal(sites.weights, 0.0)

    def test_reproducible(self):
        """Test that the same seed gives the same sites."""
        field = DensityField.uniform(20, 20)
        a = initialize_sites(field, 25, seed="stipple")
        b = initialize_sites(field, 25, seed="stipple")
        c = initialize_sites(field, 25, seed="other")
        np.testing.assert_array_equal(a.positions, b.positions)
        assert not np.array_equal(a.positions, c.positions)

    def test_explicit_generator(self):
        field = DensityField.uniform(20, 20)
        a = initialize_sites(field, 10, rng=make_rng(5))
        b = initialize_sites(field, 10, seed=5)
        np.testing.assert_array_equal(a.positions, b.positions)

    def test_dark_regions_preferred(self):
        """Test that white pixels (zero weight) never receive sites."""
        samples = np.ones((20, 40))
        samples[:, :20] = 0.0
        sites = initialize_sites(DensityField(samples), 200, seed=3)
        assert np.all(sites.positions[:, 0] < 20)

    def test_bias_follows_weight(self):
        """Test that a darker half receives more sites than a lighter half."""
        samples = np.full((50, 100), 0.8)
        samples[:, :50] = 0.2
        sites = initialize_sites(DensityField(samples), 2000, seed=11)
        dark = np.count_nonzero(sites.positions[:, 0] < 50)
        assert dark > 2000 * 0.7

    def test_degenerate_field(self):
        """Test that an all-white field is a configuration error."""
        with pytest.raises(ConfigurationError):
            initialize_sites(DensityField.uniform(8, 8, 1.0), 4, seed=0)

    def test_floor_rescues_white_field(self):
        sites = initialize_sites(DensityField.uniform(8, 8, 1.0), 4, seed=0, weight_floor=0.2)
        assert len(sites) == 4

    @pytest.mark.parametrize("n", [0, -3])
    def test_non_positive_count(self, n):
        with pytest.raises(ConfigurationError):
            initialize_sites(DensityField.uniform(8, 8), n, seed=0)


class TestImageLoading:
    """Test image decoding errors."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_density_field(tmp_path / "missing.png")

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "broken.png"
        path.write_bytes(b"not an image at all")
        with pytest.raises(ConfigurationError, match="Cannot read image"):
            load_density_field(path)
