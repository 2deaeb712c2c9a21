"""
Image transformer using Pillow.

Implements the variant policy: orient according to EXIF data, scale so
the image covers the target box, center-crop to exactly the box, and
encode at 100% quality in the source format.

Orientation is corrected first. Rotating after cropping would swap the
output's width and height for sideways photos.
"""

import io
import logging
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError, features

from ...core.images.transform import ImageTransformer, TransformError

logger = logging.getLogger(__name__)

# formats with a lossy quality knob; everything else is saved with defaults
QUALITY_FORMATS = {"JPEG", "WEBP"}
MAX_QUALITY = 100


class PillowImageTransformer:
    """Cover+crop transformer backed by Pillow."""

    def __init__(self, resample: int = Image.Resampling.LANCZOS) -> None:
        self._resample = resample

    @property
    def is_available(self) -> bool:
        # Pillow wheels bundle these; a source build without them can't encode
        return bool(features.check_codec("jpg") and features.check_codec("zlib"))

    def transform(self, data: bytes, width: int, height: int) -> bytes:
        """
        Return the image cropped and scaled to exactly width x height.

        Raises:
            TransformError: if the bytes are not a decodable image
        """
        try:
            with Image.open(io.BytesIO(data)) as source:
                image_format = source.format or "PNG"
                image = ImageOps.exif_transpose(source)
                image = self._cover_crop(image, width, height)
                return self._encode(image, image_format)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise TransformError(f"Cannot transform image: {e}") from e

    def content_type(self, data: bytes) -> Optional[str]:
        """MIME type of the encoded bytes, read from the image header."""
        try:
            with Image.open(io.BytesIO(data)) as image:
                return image.get_format_mimetype()
        except (UnidentifiedImageError, OSError, ValueError):
            return None

    def _cover_crop(self, image: Image.Image, width: int, height: int) -> Image.Image:
        src_width, src_height = image.size

        # scale to cover the box, then trim the overflow around the center
        scale = max(width / src_width, height / src_height)
        scaled = (
            max(width, round(src_width * scale)),
            max(height, round(src_height * scale)),
        )
        image = image.resize(scaled, resample=self._resample)

        left = (scaled[0] - width) // 2
        top = (scaled[1] - height) // 2
        return image.crop((left, top, left + width, top + height))

    def _encode(self, image: Image.Image, image_format: str) -> bytes:
        if image_format == "JPEG" and image.mode not in ("RGB", "L", "CMYK"):
            image = image.convert("RGB")

        options = {}
        if image_format in QUALITY_FORMATS:
            options["quality"] = MAX_QUALITY

        output = io.BytesIO()
        image.save(output, format=image_format, **options)
        return output.getvalue()


def create_image_transformer(enabled: bool = True) -> Optional[ImageTransformer]:
    """
    Factory function for the image transformer.

    Args:
        enabled: If False, return None and collections run in degraded
            mode (variants are skipped)

    Returns:
        ImageTransformer implementation, or None
    """
    if not enabled:
        logger.warning("Image processing disabled by configuration")
        return None

    transformer = PillowImageTransformer()
    if not transformer.is_available:
        logger.warning("Pillow is installed without JPEG/zlib support")

    return transformer
