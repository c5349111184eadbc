"""
Image derivatives for vehicle uploads.

Every upload yields two JPEG artifacts:
- a normalized full-size copy (EXIF orientation applied, RGB, long edge
  bounded, progressive JPEG)
- a thumbnail cropped to fill the configured box exactly

Decoding and encoding are CPU-bound, so they run on a small thread pool
shared by the whole process.
"""

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from dealer_catalog.utils.exceptions import UnsupportedMediaException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedImage:
    full: bytes
    thumbnail: bytes
    size: tuple[int, int]
    thumbnail_size: tuple[int, int]


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white; JPEG has no alpha channel."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _encode_jpeg(img: Image.Image, quality: int, progressive: bool = False) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True, progressive=progressive)
    return buf.getvalue()


class ImageProcessor:

    def __init__(
        self,
        thumbnail_size: tuple[int, int] = (300, 200),
        max_dimension: int = 2560,
        quality: int = 85,
        thumbnail_quality: int = 80,
        workers: int = 2,
    ):
        self.thumbnail_size = thumbnail_size
        self.max_dimension = max_dimension
        self.quality = quality
        self.thumbnail_quality = thumbnail_quality
        self._executor = ThreadPoolExecutor(max_workers=max(1, workers), thread_name_prefix="imaging")

    def render(self, data: bytes) -> RenderedImage:
        """Produce both derivatives on the worker pool and wait for them."""
        return self._executor.submit(self.render_sync, data).result()

    def render_sync(self, data: bytes) -> RenderedImage:
        try:
            with Image.open(io.BytesIO(data)) as src:
                src.load()
                oriented = ImageOps.exif_transpose(src)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
            logger.warning(f"[IMAGING] Rejected undecodable upload: {e}")
            raise UnsupportedMediaException("File is not a decodable image") from e

        img = _to_rgb(oriented)

        full = img.copy()
        full.thumbnail((self.max_dimension, self.max_dimension), Image.Resampling.LANCZOS)

        thumb = ImageOps.fit(img, self.thumbnail_size, method=Image.Resampling.LANCZOS,
                             centering=(0.5, 0.5))

        return RenderedImage(
            full=_encode_jpeg(full, self.quality, progressive=True),
            thumbnail=_encode_jpeg(thumb, self.thumbnail_quality),
            size=full.size,
            thumbnail_size=thumb.size,
        )

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
