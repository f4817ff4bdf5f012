"""Pipeline orchestrator: depth map (+ color image) → point cloud → packed bytes."""

import asyncio
import time
import logging

from .buffers import ViewportSettings
from .packing import pack_point_cloud
from .session import DepthPointSession

log = logging.getLogger(__name__)


def build_response(
    depth_image: bytes,
    depth_scale: float,
    color_image: bytes = b"",
    name: str = "",
    content_type: str = "",
) -> tuple[bytes, dict]:
    """
    Synchronous pipeline: decode → extract full + preview → overlay → pack.
    Returns (binary_pointcloud, metadata_dict).
    """
    timings = {}
    t0 = time.time()

    session = DepthPointSession(ViewportSettings(depth_scale=depth_scale))

    # 1. Depth map → full + preview buffers
    t = time.time()
    cloud = session.load_depth_map(depth_image, name=name, content_type=content_type)
    timings["pointcloud_ms"] = int((time.time() - t) * 1000)

    # 2. Optional true-color overlay (must match depth map size)
    if color_image:
        t = time.time()
        session.load_color_image(color_image)
        timings["overlay_ms"] = int((time.time() - t) * 1000)

    stats = session.stats
    metadata = {
        "name": stats.name,
        "type": stats.type,
        "size": stats.size,
        "width": stats.width,
        "height": stats.height,
        "point_count": stats.point_count,
        "use_color_image": session.settings.use_color_image,
    }

    # 3. Pack for the client
    t = time.time()
    packed = pack_point_cloud(cloud, {**metadata, "timing": timings})
    timings["pack_ms"] = int((time.time() - t) * 1000)

    timings["total_ms"] = int((time.time() - t0) * 1000)
    metadata["timing"] = timings
    log.info(
        f"Pipeline complete: {stats.width}x{stats.height}, {stats.point_count} points, "
        f"{len(packed)} bytes in {timings['total_ms']}ms"
    )
    return packed, metadata


async def run_pipeline(
    depth_image: bytes,
    depth_scale: float,
    color_image: bytes = b"",
    name: str = "",
    content_type: str = "",
) -> tuple[bytes, dict]:
    """Run build_response in the default executor, off the event loop."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, build_response, depth_image, depth_scale, color_image, name, content_type
    )
