"""Binary point cloud packing for the WebGL client."""

import json
import struct

import numpy as np

from .buffers import PointBuffer, PointCloud, TexturedPointBuffer

# Per point (16 bytes): position 3 x float32, color 3 x uint8, padding 1 byte
POINT_DTYPE = np.dtype([
    ("pos", np.float32, (3,)),
    ("color", np.uint8, (3,)),
    ("pad", np.uint8),
])

HEADER_LEN = struct.Struct("<I")


def _quantize(colors: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(colors * 255.0), 0, 255).astype(np.uint8)


def pack_point_buffer(buffer: PointBuffer) -> bytes:
    packed = np.zeros(buffer.point_count, dtype=POINT_DTYPE)
    packed["pos"] = buffer.positions
    packed["color"] = _quantize(buffer.colors)
    return packed.tobytes()


def pack_point_cloud(cloud: PointCloud, metadata: dict | None = None) -> bytes:
    """
    Pack a point cloud as [4B header_len][JSON header][full][preview][texture].

    The header carries point counts, byte offsets of each section (relative
    to the end of the header) and any caller metadata. The texture section
    is present only when the full buffer has an overlay.
    """
    full_bytes = pack_point_buffer(cloud.full)
    preview_bytes = pack_point_buffer(cloud.preview)
    texture_bytes = b""
    if cloud.has_overlay:
        texture_bytes = _quantize(cloud.full.textured_colors).tobytes()

    header = {
        **(metadata or {}),
        "full_count": cloud.full.point_count,
        "preview_count": cloud.preview.point_count,
        "has_texture": cloud.has_overlay,
        "depth_scale": cloud.depth_scale,
        "full_step": cloud.full_step,
        "preview_step": cloud.preview_step,
        "stride": POINT_DTYPE.itemsize,
        "offsets": {
            "full": 0,
            "preview": len(full_bytes),
            "texture": len(full_bytes) + len(preview_bytes),
        },
    }
    header_json = json.dumps(header).encode("utf-8")
    return HEADER_LEN.pack(len(header_json)) + header_json + full_bytes + preview_bytes + texture_bytes


def unpack_point_cloud(data: bytes) -> tuple[dict, PointCloud]:
    """Parse bytes from pack_point_cloud. Colors come back quantized to 1/255."""
    (header_len,) = HEADER_LEN.unpack_from(data)
    start = HEADER_LEN.size
    header = json.loads(data[start:start + header_len])
    body = data[start + header_len:]

    offsets = header["offsets"]
    full = np.frombuffer(body, dtype=POINT_DTYPE, count=header["full_count"], offset=offsets["full"])
    preview = np.frombuffer(
        body, dtype=POINT_DTYPE, count=header["preview_count"], offset=offsets["preview"]
    )

    full_buffer = PointBuffer(full["pos"], full["color"] / 255.0)
    if header["has_texture"]:
        texture = np.frombuffer(
            body, dtype=np.uint8, count=header["full_count"] * 3, offset=offsets["texture"]
        ).reshape(-1, 3)
        full_buffer = TexturedPointBuffer(full_buffer.positions, full_buffer.colors, texture / 255.0)

    cloud = PointCloud(
        full=full_buffer,
        preview=PointBuffer(preview["pos"], preview["color"] / 255.0),
        depth_scale=header["depth_scale"],
        full_step=header["full_step"],
        preview_step=header["preview_step"],
    )
    return header, cloud
