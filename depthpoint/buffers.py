"""Point buffer, point cloud and viewport types."""

from dataclasses import dataclass
from typing import Literal

import numpy as np
from pydantic import BaseModel

from .config import settings


def _as_points(arr) -> np.ndarray:
    arr = np.ascontiguousarray(arr, dtype=np.float32).reshape(-1, 3)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class PointBuffer:
    """
    Parallel per-point arrays in raster-scan order of the sampling walk.

    positions: N x 3 float32 (x, y, z)
    colors:    N x 3 float32, normalized to [0, 1]
    """

    positions: np.ndarray
    colors: np.ndarray

    def __post_init__(self):
        positions = _as_points(self.positions)
        colors = _as_points(self.colors)
        if len(positions) != len(colors):
            raise ValueError(
                f"positions has {len(positions)} points but colors has {len(colors)}"
            )
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "colors", colors)

    @property
    def point_count(self) -> int:
        return len(self.positions)

    @classmethod
    def empty(cls) -> "PointBuffer":
        return cls(np.zeros((0, 3), np.float32), np.zeros((0, 3), np.float32))


@dataclass(frozen=True, eq=False)
class TexturedPointBuffer(PointBuffer):
    """PointBuffer with true-color overlay sampled from a second image."""

    textured_colors: np.ndarray = None

    def __post_init__(self):
        super().__post_init__()
        if self.textured_colors is None:
            raise ValueError("textured_colors is required")
        textured = _as_points(self.textured_colors)
        if len(textured) != len(self.colors):
            raise ValueError(
                f"Overlay has {len(textured)} points but buffer has {len(self.colors)}"
            )
        object.__setattr__(self, "textured_colors", textured)

    def without_overlay(self) -> PointBuffer:
        return PointBuffer(self.positions, self.colors)


class ViewportSettings(BaseModel):
    point_size: float = settings.DEFAULT_POINT_SIZE
    depth_scale: float = settings.DEFAULT_DEPTH_SCALE
    sampling: int = 1  # not used by extraction
    color_scheme: Literal["original", "depth", "plasma"] = "original"
    use_color_image: bool = False


@dataclass
class PointCloud:
    """Full and preview buffers built from the same image and depth scale."""

    full: PointBuffer
    preview: PointBuffer
    depth_scale: float
    full_step: int = 1
    preview_step: int = 8

    @property
    def point_count(self) -> int:
        return self.full.point_count

    @property
    def has_overlay(self) -> bool:
        return isinstance(self.full, TexturedPointBuffer)

    def with_overlay(self, textured_colors: np.ndarray) -> "PointCloud":
        """Attach true-color overlay to the full buffer in place."""
        base = self.full.without_overlay() if self.has_overlay else self.full
        self.full = TexturedPointBuffer(base.positions, base.colors, textured_colors)
        return self

    def clear_overlay(self) -> "PointCloud":
        if self.has_overlay:
            self.full = self.full.without_overlay()
        return self

    def display_colors(self, viewport: ViewportSettings) -> np.ndarray:
        """Colors the renderer should show for the full buffer."""
        if viewport.use_color_image and self.has_overlay:
            return self.full.textured_colors
        return self.full.colors


@dataclass(frozen=True)
class ImageStats:
    width: int
    height: int
    name: str
    size: str
    type: str
    point_count: int
