"""FastAPI application — depth map point cloud server."""

import base64
import binascii
import logging
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from pydantic import BaseModel

from .config import settings
from .pipeline import run_pipeline

logging.basicConfig(level=logging.INFO)
log = logging.getLogger(__name__)

app = FastAPI(title="DepthPoint Server", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class PointCloudRequest(BaseModel):
    depth_image: str  # base64 PNG/JPEG
    color_image: str = ""  # base64, same pixel size as depth_image
    depth_scale: float = settings.DEFAULT_DEPTH_SCALE
    name: str = ""
    content_type: str = ""


def decode_upload(encoded: str, field: str) -> bytes:
    """Decode a base64 upload field, enforcing MAX_UPLOAD_BYTES."""
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(400, f"{field} is not valid base64")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(413, f"{field} exceeds {settings.MAX_UPLOAD_BYTES} bytes")
    return data


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "config": {
            "default_depth_scale": settings.DEFAULT_DEPTH_SCALE,
            "max_upload_bytes": settings.MAX_UPLOAD_BYTES,
        },
    }


@app.post("/pointcloud")
async def pointcloud(req: PointCloudRequest):
    if not req.depth_image:
        raise HTTPException(400, "No depth map provided")

    depth_bytes = decode_upload(req.depth_image, "depth_image")
    color_bytes = decode_upload(req.color_image, "color_image") if req.color_image else b""

    try:
        result, metadata = await run_pipeline(
            depth_image=depth_bytes,
            depth_scale=req.depth_scale,
            color_image=color_bytes,
            name=req.name,
            content_type=req.content_type,
        )
    except ValueError as e:
        log.warning(f"Rejected upload: {e}")
        raise HTTPException(400, str(e))
    except Exception as e:
        log.exception("Pipeline error")
        raise HTTPException(500, str(e))

    return Response(
        content=result,
        media_type="application/octet-stream",
        headers={
            "X-Content-Type": "depthpoint/pointcloud",
            "X-Point-Count": str(metadata["point_count"]),
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
