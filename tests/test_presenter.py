"""Tests for the stipple presenter."""

import pytest
import numpy as np
from py_stipple.core.presenter import (
    disk_radius,
    render_stipples,
    save_stipples,
    stipple_disks,
)
from py_stipple.core.sites import Site, SiteSet


class TestDisks:
    """Test the radius and visibility policy."""

    def test_radius(self):
        assert disk_radius(0.0) == pytest.approx(0.4)
        assert disk_radius(255.0) == pytest.approx(0.41)
        assert disk_radius(255.0, base_radius=2.0) == pytest.approx(0.82)

    def test_visibility_threshold(self):
        """Test that only sites above the threshold are drawn."""
        sites = SiteSet(np.array([[1.0, 1.0]] * 4), np.array([5.0, 10.0, 11.0, 200.0]))
        disks = stipple_disks(sites)
        assert len(disks) == 2
        assert disks[0].radius == pytest.approx(0.4 + 0.01 * 11 / 255)

    def test_scaling(self):
        disks = stipple_disks([Site(id=0, x=2.0, y=3.0, weight=255.0)], scale=4.0)
        assert disks[0].x == pytest.approx(8.0)
        assert disks[0].y == pytest.approx(12.0)
        assert disks[0].radius == pytest.approx(1.64)


class TestRender:
    """Test rasterized output."""

    def test_canvas_size(self):
        image = render_stipples(SiteSet(np.array([[1.0, 1.0]]), np.array([255.0])), 8, 4, scale=4.0)
        assert image.shape == (16, 32, 4)
        assert image.dtype == np.uint8

    def test_blank_when_nothing_visible(self):
        sites = SiteSet(np.array([[2.0, 2.0]]), np.array([3.0]))
        image = render_stipples(sites, 8, 4, scale=2.0)
        np.testing.assert_array_equal(image[..., :3], 255)

    def test_disk_is_drawn(self):
        """Test that a large disk darkens its centre pixel."""
        sites = SiteSet(np.array([[4.0, 2.0]]), np.array([255.0]))
        image = render_stipples(sites, 8, 4, scale=4.0, base_radius=3.0)
        assert image[8, 16, :3].max() < 128
        assert image[0, 0, :3].min() == 255

    def test_save_forces_png(self, tmp_path):
        sites = SiteSet(np.array([[4.0, 2.0]]), np.array([255.0]))
        written = save_stipples(tmp_path / "out.jpg", sites, 8, 4, scale=2.0)
        assert written.suffix == ".png"
        assert written.exists()
