"""Tests for viewer session lifecycle."""

import numpy as np
import pytest

from depthpoint.buffers import TexturedPointBuffer, ViewportSettings
from depthpoint.imaging import ImageDecodeError
from depthpoint.session import DepthPointSession, DimensionMismatchError, NoDepthMapError


class TestLoadDepthMap:
    def test_builds_cloud_and_stats(self, depth_png):
        session = DepthPointSession()
        cloud = session.load_depth_map(depth_png, name="depth.png", content_type="image/png")
        assert cloud.full.point_count == 16
        assert cloud.preview.point_count == 1
        assert session.point_cloud is cloud

        stats = session.stats
        assert (stats.width, stats.height) == (4, 4)
        assert stats.name == "depth.png"
        assert stats.type == "image/png"
        assert stats.point_count == 16
        assert stats.size.endswith("Bytes")

    def test_uses_depth_scale_setting(self, depth_png):
        session = DepthPointSession(ViewportSettings(depth_scale=10))
        cloud = session.load_depth_map(depth_png)
        # Last pixel is 240 → 240/255 * 10 / 10
        assert cloud.full.positions[-1, 2] == pytest.approx(240 / 255, rel=1e-6)

    def test_new_upload_replaces(self, depth_png, color_png):
        session = DepthPointSession()
        first = session.load_depth_map(depth_png)
        session.load_color_image(color_png)
        second = session.load_depth_map(color_png)
        assert second is not first
        assert not second.has_overlay
        assert session.settings.use_color_image is False

    def test_rejects_non_image(self, depth_png):
        session = DepthPointSession()
        with pytest.raises(ImageDecodeError):
            session.load_depth_map(depth_png, content_type="text/plain")
        assert session.point_cloud is None


class TestLoadColorImage:
    def test_overlay_attached(self, depth_png, color_png):
        session = DepthPointSession()
        session.load_depth_map(depth_png)
        cloud = session.load_color_image(color_png)
        assert isinstance(cloud.full, TexturedPointBuffer)
        assert cloud.full.textured_colors.shape == cloud.full.colors.shape
        np.testing.assert_allclose(cloud.full.textured_colors[0], [200 / 255, 100 / 255, 50 / 255], rtol=1e-6)
        assert session.settings.use_color_image is True

    def test_positions_unchanged(self, depth_png, color_png):
        session = DepthPointSession()
        before = session.load_depth_map(depth_png).full.positions.copy()
        after = session.load_color_image(color_png).full.positions
        np.testing.assert_array_equal(before, after)

    def test_dimension_mismatch(self, depth_png, wrong_size_png):
        session = DepthPointSession()
        session.load_depth_map(depth_png)
        with pytest.raises(DimensionMismatchError, match="10x10 does not match depth map 4x4"):
            session.load_color_image(wrong_size_png)
        assert not session.point_cloud.has_overlay

    def test_requires_depth_map(self, color_png):
        with pytest.raises(NoDepthMapError):
            DepthPointSession().load_color_image(color_png)


class TestDepthScaleAndReset:
    def test_set_depth_scale_rebuilds(self, depth_png, color_png):
        session = DepthPointSession()
        session.load_depth_map(depth_png)
        session.load_color_image(color_png)
        cloud = session.set_depth_scale(-30)
        assert cloud.depth_scale == -30
        assert (cloud.full.positions[:, 2] <= 0).all()
        # Overlay survives the rebuild
        assert cloud.has_overlay

    def test_set_depth_scale_without_image(self):
        session = DepthPointSession()
        assert session.set_depth_scale(5) is None
        assert session.settings.depth_scale == 5

    def test_reset(self, depth_png, color_png):
        session = DepthPointSession()
        session.load_depth_map(depth_png)
        cloud = session.load_color_image(color_png)
        session.reset()
        assert session.point_cloud is None
        assert session.stats is None
        assert not cloud.has_overlay
        assert session.settings.use_color_image is False
