"""RunPod serverless handler — wraps the depth map point cloud pipeline."""

import base64
import binascii
import zlib
import logging

import runpod

from .config import settings
from .pipeline import run_pipeline

logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)


class UploadTooLargeError(ValueError):
    """Decoded upload exceeds settings.MAX_UPLOAD_BYTES."""


def _decode_field(job_input: dict, key: str) -> bytes:
    value = job_input.get(key, "")
    if not value:
        return b""
    try:
        data = base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise ValueError(f"{key} is not valid base64: {e}") from e
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise UploadTooLargeError(f"{key} exceeds {settings.MAX_UPLOAD_BYTES} bytes")
    return data


def encode_payload(result_bytes: bytes, chunk_size: int) -> list[str]:
    """zlib-compress, base64-encode and split into chunk_size pieces."""
    b64_data = base64.b64encode(zlib.compress(result_bytes, level=6)).decode("ascii")
    log.info(f"Response: {len(result_bytes)} raw → {len(b64_data)} b64")
    return [b64_data[i:i + chunk_size] for i in range(0, len(b64_data), chunk_size)]


async def handler(job):
    """
    RunPod async streaming handler. Yields chunks of base64-encoded
    compressed point cloud data to bypass response size limits.

    Input:
    {
        "depth_image": str (base64 PNG/JPEG),
        "color_image": str (optional, base64, same size as depth_image),
        "depth_scale": float (optional),
        "name": str (optional),
        "content_type": str (optional)
    }

    Yields:
    First: {"metadata": {...}, "total_chunks": N, "chunk_index": 0, "data": "..."}
    Then:  {"chunk_index": 1, "data": "..."} ...
    """
    job_input = job["input"]
    depth_scale = job_input.get("depth_scale", settings.DEFAULT_DEPTH_SCALE)

    try:
        depth_image = _decode_field(job_input, "depth_image")
        color_image = _decode_field(job_input, "color_image")
    except ValueError as e:
        yield {"error": str(e)}
        return

    if not depth_image:
        yield {"error": "No depth map provided"}
        return

    try:
        result_bytes, metadata = await run_pipeline(
            depth_image=depth_image,
            depth_scale=float(depth_scale),
            color_image=color_image,
            name=job_input.get("name", ""),
            content_type=job_input.get("content_type", ""),
        )
    except Exception as e:
        log.exception("Pipeline error")
        yield {"error": str(e)}
        return

    chunks = encode_payload(result_bytes, settings.CHUNK_SIZE)
    log.info(f"Streaming {len(chunks)} chunks for {metadata['point_count']} points")

    for index, data in enumerate(chunks):
        message = {"chunk_index": index, "data": data}
        if index == 0:
            message.update(metadata=metadata, total_chunks=len(chunks), compressed=True)
        yield message


if __name__ == "__main__":
    runpod.serverless.start({
        "handler": handler,
        "return_aggregate_stream": True,
    })
