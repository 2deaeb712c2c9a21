"""
Write-time transformation of image variants.

Every variant store runs the same fixed policy on the uploaded bytes
before they are persisted: orient from EXIF, scale to cover the target
box, center-crop to exactly that box, encode at maximum quality.

The pixel work belongs to an ImageTransformer implementation in the
infrastructure layer. This module only decides what happens around it.
"""

import asyncio
import logging
from typing import Optional, Protocol

from .models import Dimensions

logger = logging.getLogger(__name__)


class TransformError(Exception):
    """Raised when a variant cannot be produced from the source image."""
    pass


class ImageTransformer(Protocol):
    """
    Interface for the image processing capability.

    transform() must be a pure function of its inputs and return an
    image of exactly width x height pixels.
    """

    @property
    def is_available(self) -> bool:
        """Whether the underlying image library can do any work."""
        ...

    def transform(self, data: bytes, width: int, height: int) -> bytes:
        """Cover+crop the image to width x height. Raises TransformError."""
        ...

    def content_type(self, data: bytes) -> Optional[str]:
        """MIME type of encoded image bytes, or None if unknown."""
        ...


class TransformPipeline:
    """
    Runs the variant transform for one store write.

    If no transformer is available the pipeline produces nothing: the
    caller gets None and the variant is skipped. The source bytes are
    never written in place of a variant.
    """

    def __init__(self, transformer: Optional[ImageTransformer] = None) -> None:
        self._transformer = transformer

    @property
    def is_available(self) -> bool:
        return self._transformer is not None and self._transformer.is_available

    def content_type(self, data: bytes, default: str) -> str:
        """Content type of a produced variant, falling back to default."""
        if self._transformer is None:
            return default
        return self._transformer.content_type(data) or default

    async def run(
        self,
        data: bytes,
        dimensions: Dimensions,
        *,
        file_name: str = "",
    ) -> Optional[bytes]:
        """
        Produce the variant bytes.

        Returns None in degraded mode (no image processing available).

        Raises:
            TransformError: if the source cannot be decoded or encoded
        """
        if not self.is_available:
            logger.warning(
                "Image processing not available, variant not produced",
                extra={"file_name": file_name, "dimensions": dimensions.display},
            )
            return None

        try:
            # Pillow is synchronous, keep it off the event loop
            result = await asyncio.to_thread(
                self._transformer.transform,
                data,
                dimensions.width,
                dimensions.height,
            )
        except TransformError:
            raise
        except Exception as e:
            raise TransformError(f"Transform to {dimensions.display} failed: {e}") from e

        logger.debug(
            "Transformed variant",
            extra={
                "file_name": file_name,
                "dimensions": dimensions.display,
                "size_bytes": len(result),
            }
        )

        return result
