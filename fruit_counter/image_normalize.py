"""Image normalization for the vision model upload.

Goals:
- Accept any image Pillow can decode (JPEG, PNG, WebP, TIFF, ...),
  tolerating truncated or slightly malformed files. Importing this module
  sets ImageFile.LOAD_TRUNCATED_IMAGES for the whole process (Pillow has
  no per-call switch).
- Apply EXIF orientation before measuring, so the output is upright.
- Bound the longer side by MAX_LONG_SIDE without ever upscaling.
- Re-encode as progressive JPEG, lowering quality step by step until the
  result fits MAX_IMAGE_BYTES or the quality floor is reached.
"""

import logging
import time
from dataclasses import dataclass
from io import BytesIO
from typing import List

from PIL import Image, ImageFile, ImageOps, UnidentifiedImageError

from fruit_counter.config import (
    MAX_LONG_SIDE,
    MAX_IMAGE_BYTES,
    JPEG_QUALITY_INITIAL,
    JPEG_QUALITY_FLOOR,
    JPEG_QUALITY_STEP,
)

logger = logging.getLogger(__name__)

# Minor format irregularities (e.g. a cut-off JPEG tail) are not fatal.
ImageFile.LOAD_TRUNCATED_IMAGES = True

OUTPUT_MIME = "image/jpeg"


class ImageDecodeError(ValueError):
    """Input bytes could not be interpreted as an image."""


@dataclass(frozen=True)
class NormalizedImage:
    data: bytes
    mime: str
    width: int
    height: int
    quality: int
    attempts: int

    @property
    def size(self) -> int:
        return len(self.data)


# -----------------------------------
# Low-level helpers
# -----------------------------------


def decode_image(raw: bytes) -> Image.Image:
    """Decode raw bytes into a fully loaded PIL image."""
    if not raw:
        raise ImageDecodeError("Empty image payload")
    try:
        img = Image.open(BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise ImageDecodeError(f"Cannot decode image: {e}") from e
    return img


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white and return an RGB image."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def prepare_frame(img: Image.Image, max_side: int = MAX_LONG_SIDE) -> Image.Image:
    """Upright, RGB, long side <= max_side. The source image is left untouched."""
    frame = ImageOps.exif_transpose(img)
    frame = _to_rgb(frame)
    if frame is img:
        frame = img.copy()
    if max(frame.size) > max_side:
        # thumbnail keeps the aspect ratio and never enlarges
        frame.thumbnail((max_side, max_side), Image.LANCZOS)
    return frame


def encode_jpeg(frame: Image.Image, quality: int) -> bytes:
    buf = BytesIO()
    frame.save(buf, format="JPEG", quality=quality, progressive=True, optimize=True)
    return buf.getvalue()


def quality_schedule(
    initial: int = JPEG_QUALITY_INITIAL,
    floor: int = JPEG_QUALITY_FLOOR,
    step: int = JPEG_QUALITY_STEP,
) -> List[int]:
    """
    Qualities to try, highest first. Never goes below `floor`, so the
    schedule has at most (initial - floor) // step + 1 entries.
    """
    if step <= 0:
        raise ValueError("Quality step must be positive")
    if initial <= floor:
        return [initial]
    return list(range(initial, floor - 1, -step))


# -----------------------------------
# Public API
# -----------------------------------


def normalize_image(
    raw: bytes,
    max_side: int = MAX_LONG_SIDE,
    max_bytes: int = MAX_IMAGE_BYTES,
    initial_quality: int = JPEG_QUALITY_INITIAL,
    floor_quality: int = JPEG_QUALITY_FLOOR,
    quality_step: int = JPEG_QUALITY_STEP,
) -> NormalizedImage:
    """
    Re-encode `raw` so that it fits the vision model limits.

    Every attempt encodes the same upright, resized frame built from the
    original decode, never a previously compressed JPEG. When the floor
    quality is reached the smallest attempt is returned even if it is
    still above `max_bytes`.

    Raises:
        ImageDecodeError: `raw` is not an image.
    """
    t0 = time.time()
    source = decode_image(raw)
    in_w, in_h = source.size
    frame = prepare_frame(source, max_side=max_side)
    out_w, out_h = frame.size

    best = None
    attempts = 0
    for quality in quality_schedule(initial_quality, floor_quality, quality_step):
        attempts += 1
        data = encode_jpeg(frame, quality)
        logger.debug("JPEG attempt quality=%s size=%s bytes", quality, len(data))
        if best is None or len(data) <= len(best[1]):
            best = (quality, data)
        if len(data) <= max_bytes:
            break

    quality, data = best
    if len(data) > max_bytes:
        logger.warning(
            "Image still above limit at quality floor (size=%s, limit=%s)",
            len(data),
            max_bytes,
        )

    logger.info(
        "Normalized image %sx%s (%s, %s bytes) -> %sx%s jpeg q=%s (%s bytes, attempts=%s) in %sms",
        in_w,
        in_h,
        source.format,
        len(raw),
        out_w,
        out_h,
        quality,
        len(data),
        attempts,
        round((time.time() - t0) * 1000, 2),
    )

    return NormalizedImage(
        data=data,
        mime=OUTPUT_MIME,
        width=out_w,
        height=out_h,
        quality=quality,
        attempts=attempts,
    )
