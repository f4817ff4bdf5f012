"""Image decoding into raw RGBA bytes, plus upload display helpers."""

from dataclasses import dataclass
from io import BytesIO
import logging

from PIL import Image, UnidentifiedImageError

log = logging.getLogger(__name__)

SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


class ImageDecodeError(ValueError):
    """Upload is not a decodable image."""


@dataclass(frozen=True)
class DecodedImage:
    width: int
    height: int
    pixels: bytes  # row-major RGBA, width*height*4 bytes

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height


def check_content_type(content_type: str) -> None:
    """Reject uploads whose MIME type is set and is not an image."""
    if content_type and not content_type.startswith("image/"):
        raise ImageDecodeError("Please upload a valid PNG or JPEG depth map.")


def decode_image(data: bytes) -> DecodedImage:
    """Decode PNG/JPEG (or anything Pillow reads) to RGBA pixel bytes."""
    try:
        with Image.open(BytesIO(data)) as img:
            rgba = img.convert("RGBA")
    except Image.DecompressionBombError as e:
        raise ImageDecodeError(f"The image is too large to process. ({e})") from e
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Failed to load image. Ensure it is a valid format. ({e})") from e

    w, h = rgba.size
    log.info(f"Decoded image: {w}x{h} from {len(data)} bytes")
    return DecodedImage(width=w, height=h, pixels=rgba.tobytes())


def format_file_size(num_bytes: int) -> str:
    """Human-readable byte size, e.g. 2464153 → '2.35 MB'."""
    if num_bytes <= 0:
        return "0 Bytes"
    i = 0
    while num_bytes >= 1024 ** (i + 1) and i < len(SIZE_UNITS) - 1:
        i += 1
    value = round(num_bytes / 1024 ** i, 2)
    # Strip trailing zeros: 1.50 → 1.5, 2.00 → 2
    return f"{value:g} {SIZE_UNITS[i]}"
