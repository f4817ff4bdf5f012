"""Numpy-vectorized depth map → point cloud extraction. No Python loops over pixels."""

import logging

import numpy as np

from .buffers import PointBuffer, PointCloud

log = logging.getLogger(__name__)

# Images above this pixel count are sampled at LARGE_IMAGE_STEP for the full buffer
FULL_RES_PIXEL_LIMIT = 1_000_000
LARGE_IMAGE_STEP = 2
PREVIEW_STEP_FACTOR = 4
MIN_PREVIEW_STEP = 8
# Largest image dimension maps to this many world units
REFERENCE_SPAN = 10.0
DEPTH_DIVISOR = 10.0


class PixelBufferError(ValueError):
    """Pixel buffer does not hold width*height RGBA pixels."""


def _rgba_grid(pixels, width: int, height: int) -> np.ndarray:
    """View pixels as an H x W x 4 uint8 array without copying."""
    if width < 0 or height < 0:
        raise PixelBufferError(f"Invalid image size {width}x{height}")
    if isinstance(pixels, np.ndarray):
        if pixels.dtype != np.uint8:
            raise PixelBufferError(f"Pixel array must be uint8, got {pixels.dtype}")
        data = np.ascontiguousarray(pixels).reshape(-1)
    else:
        data = np.frombuffer(pixels, dtype=np.uint8)
    expected = width * height * 4
    if data.size != expected:
        raise PixelBufferError(
            f"Pixel buffer has {data.size} bytes, expected {expected} for {width}x{height} RGBA"
        )
    return data.reshape(height, width, 4)


def full_sampling_step(width: int, height: int) -> int:
    return LARGE_IMAGE_STEP if width * height > FULL_RES_PIXEL_LIMIT else 1


def preview_sampling_step(full_step: int) -> int:
    return max(full_step * PREVIEW_STEP_FACTOR, MIN_PREVIEW_STEP)


def sampling_steps(width: int, height: int) -> tuple[int, int]:
    """Return (full_step, preview_step) for an image of the given size."""
    full_step = full_sampling_step(width, height)
    return full_step, preview_sampling_step(full_step)


def _sample_colors(grid: np.ndarray, step: int) -> np.ndarray:
    rgb = grid[::step, ::step, :3]
    return (rgb.reshape(-1, 3) / 255.0).astype(np.float32)


def _extract(grid: np.ndarray, step: int, depth_scale: float) -> PointBuffer:
    height, width = grid.shape[:2]
    if width == 0 or height == 0:
        return PointBuffer.empty()

    rgb = grid[::step, ::step, :3].astype(np.float64)
    depth = rgb.sum(axis=-1) / 3.0 / 255.0

    scale = max(width, height) / REFERENCE_SPAN
    xs = np.arange(0, width, step, dtype=np.float64)
    ys = np.arange(0, height, step, dtype=np.float64)
    xx, yy = np.meshgrid(xs, ys)  # rows = y, cols = x

    x = (xx - width / 2) / scale
    y = (height / 2 - yy) / scale  # flip Y: image row 0 is up
    z = depth * depth_scale / DEPTH_DIVISOR

    positions = np.stack([x, y, z], axis=-1).reshape(-1, 3).astype(np.float32)
    return PointBuffer(positions, _sample_colors(grid, step))


def extract_points(
    pixels,
    width: int,
    height: int,
    step: int = 1,
    depth_scale: float = 60.0,
) -> PointBuffer:
    """
    Sample an RGBA pixel buffer every `step` pixels into a PointBuffer.

    Yields exactly ceil(width/step) * ceil(height/step) points in row-major
    order. X/Y are centered and scaled so the larger image dimension spans
    REFERENCE_SPAN units; Z is the mean of R, G, B normalized to 0-1, times
    depth_scale / 10. Colors are the raw channels normalized to 0-1.

    step is clamped to at least 1. Raises PixelBufferError if the buffer
    length is not width*height*4.
    """
    step = max(1, int(step))
    grid = _rgba_grid(pixels, width, height)
    return _extract(grid, step, depth_scale)


def build_point_cloud(
    pixels,
    width: int,
    height: int,
    depth_scale: float = 60.0,
) -> PointCloud:
    """
    Build full and preview buffers from one depth map.

    Full density samples every pixel, or every 2nd pixel above one megapixel.
    Preview density is 4x coarser than full and never finer than every 8th pixel.
    """
    grid = _rgba_grid(pixels, width, height)
    full_step, preview_step = sampling_steps(width, height)

    full = _extract(grid, full_step, depth_scale)
    preview = _extract(grid, preview_step, depth_scale)
    log.debug(
        f"Point cloud {width}x{height}: full={full.point_count} (step {full_step}), "
        f"preview={preview.point_count} (step {preview_step})"
    )
    return PointCloud(
        full=full,
        preview=preview,
        depth_scale=depth_scale,
        full_step=full_step,
        preview_step=preview_step,
    )


def extract_color_overlay(pixels, width: int, height: int) -> np.ndarray:
    """
    Sample true colors from an image with the same dimensions as the depth map.

    Uses the full-density step, so row i lines up with row i of
    PointCloud.full. Returns N x 3 float32 in [0, 1]; no positions.
    """
    grid = _rgba_grid(pixels, width, height)
    if width == 0 or height == 0:
        return np.zeros((0, 3), dtype=np.float32)
    return _sample_colors(grid, full_sampling_step(width, height))
