"""Viewer session state: current depth map, point cloud, overlay and stats."""

import logging

from .buffers import ImageStats, PointCloud, ViewportSettings
from .imaging import DecodedImage, check_content_type, decode_image, format_file_size
from .pointcloud import build_point_cloud, extract_color_overlay

log = logging.getLogger(__name__)


class DimensionMismatchError(ValueError):
    """Color image size differs from the depth map it should texture."""


class NoDepthMapError(RuntimeError):
    """Operation needs a depth map but none has been loaded."""


class DepthPointSession:
    """
    Holds the point cloud for one uploaded depth map.

    A new depth upload replaces the cloud wholesale. A color image of the
    same size attaches an overlay to the current cloud; reset() drops both.
    """

    def __init__(self, settings: ViewportSettings | None = None):
        self.settings = settings or ViewportSettings()
        self._depth: DecodedImage | None = None
        self._overlay = None
        self._cloud: PointCloud | None = None
        self._stats: ImageStats | None = None

    @property
    def point_cloud(self) -> PointCloud | None:
        return self._cloud

    @property
    def stats(self) -> ImageStats | None:
        return self._stats

    def load_depth_map(self, data: bytes, name: str = "", content_type: str = "") -> PointCloud:
        check_content_type(content_type)
        image = decode_image(data)

        self.reset()
        self._depth = image
        self._cloud = build_point_cloud(
            image.pixels, image.width, image.height, self.settings.depth_scale
        )
        self._stats = ImageStats(
            width=image.width,
            height=image.height,
            name=name,
            size=format_file_size(len(data)),
            type=content_type,
            point_count=self._cloud.point_count,
        )
        log.info(
            f"Depth map {name or '<unnamed>'} {image.width}x{image.height}: "
            f"{self._cloud.full.point_count} full / {self._cloud.preview.point_count} preview points"
        )
        return self._cloud

    def load_color_image(self, data: bytes, content_type: str = "") -> PointCloud:
        if self._cloud is None or self._depth is None:
            raise NoDepthMapError("Upload a depth map before adding a color image")
        check_content_type(content_type)
        image = decode_image(data)

        if image.size != self._depth.size:
            raise DimensionMismatchError(
                f"Color image {image.width}x{image.height} does not match "
                f"depth map {self._depth.width}x{self._depth.height}"
            )

        self._overlay = extract_color_overlay(image.pixels, image.width, image.height)
        self._cloud.with_overlay(self._overlay)
        self.settings.use_color_image = True
        log.info(f"Color overlay applied: {len(self._overlay)} points")
        return self._cloud

    def set_depth_scale(self, depth_scale: float) -> PointCloud | None:
        """Recompute the cloud at a new depth scale; overlay colors carry over."""
        self.settings.depth_scale = depth_scale
        if self._depth is None:
            return None

        image = self._depth
        self._cloud = build_point_cloud(image.pixels, image.width, image.height, depth_scale)
        if self._overlay is not None:
            self._cloud.with_overlay(self._overlay)
        return self._cloud

    def reset(self) -> None:
        if self._cloud is not None:
            self._cloud.clear_overlay()
        self._depth = None
        self._overlay = None
        self._cloud = None
        self._stats = None
        self.settings.use_color_image = False
